#!/usr/bin/env python3
"""
Audit a document table for names the matcher cannot resolve back to themselves.

Each document's own name is used as a query. A document whose name resolves
to nothing (ambiguous with a sibling) or to a different row is unreachable by
name and usually needs a more distinctive title or a keyword. Keywords are
checked the same way, since a duplicate keyword only ever reaches its first row.

Usage:
    python scripts/check_table.py --table grade1.csv
"""

import argparse
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from docmailer.records import TableLoadError, load_records
from docmailer.resolver import MatcherConfig, resolve_match


def audit(records, config: MatcherConfig):
    """
    Resolve every record's display name against the full table.

    Returns a list of problem dicts (index, name, problem, detail).
    """
    problems = []
    for index, record in enumerate(records):
        if not record.normalized_display_name:
            problems.append({"index": index, "name": record.display_name, "problem": "empty_name", "detail": ""})
            continue
        if not record.link:
            problems.append({"index": index, "name": record.display_name, "problem": "missing_link", "detail": ""})

        result = resolve_match(record.display_name, records, config)
        if not result.matched:
            problems.append({
                "index": index,
                "name": record.display_name,
                "problem": result.reason.value,
                "detail": f"best={result.best_score} second={result.second_best_score}",
            })
        elif result.record is not record:
            problems.append({
                "index": index,
                "name": record.display_name,
                "problem": "shadowed",
                "detail": f"resolves to '{result.record.display_name}' via {result.matched_on}",
            })

        if record.normalized_keyword and config.keyword_first:
            hit = resolve_match(record.keyword, records, config).record
            if hit is not None and hit is not record:
                problems.append({
                    "index": index,
                    "name": record.display_name,
                    "problem": "keyword_shadowed",
                    "detail": f"keyword '{record.keyword}' resolves to '{hit.display_name}'",
                })
    return problems


def main():
    parser = argparse.ArgumentParser(description="Check that every document name resolves to itself")
    parser.add_argument("--table", type=Path, default=Path("grade1.csv"), help="Path to document CSV")
    parser.add_argument("--no-keywords", action="store_true", help="Ignore the keyword column")
    args = parser.parse_args()

    try:
        records = load_records(args.table)
    except TableLoadError as e:
        print(f"❌ {e}")
        sys.exit(1)

    print(f"Loaded {len(records)} documents from {args.table}")
    problems = audit(records, MatcherConfig(keyword_first=not args.no_keywords))

    if not problems:
        print("✅ Every document resolves to itself by name")
        sys.exit(0)

    print(f"\n❌ {len(problems)} problems found:")
    for p in problems:
        line = f"   - row {p['index'] + 2}: {p['name']!r} [{p['problem']}]"
        if p["detail"]:
            line += f" {p['detail']}"
        print(line)
    sys.exit(1)


if __name__ == "__main__":
    main()
