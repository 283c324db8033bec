import argparse
import json
import sys
from pathlib import Path

from . import __version__
from .config import Settings
from .logger import get_logger, reset_logger
from .mailer import ConsoleTransport, build_transport
from .records import RecordTable, TableLoadError
from .service import STATUS_SENT, DispatchService


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env(Path(args.env_file) if args.env_file else None)
    if getattr(args, "table", None):
        settings.table_path = Path(args.table)
    return settings


def _configure_logging(settings: Settings, console: bool = True):
    reset_logger()
    return get_logger(
        level=settings.log_level,
        log_dir=settings.log_dir,
        enable_console=console,
    )


def _load_table(settings: Settings) -> RecordTable:
    table = RecordTable(settings.table_path)
    try:
        table.load()
    except TableLoadError as e:
        raise SystemExit(str(e))
    return table


def build_service(settings: Settings, transport=None, logger=None) -> DispatchService:
    table = _load_table(settings)
    if transport is None:
        try:
            transport = build_transport(settings)
        except ValueError as e:
            raise SystemExit(str(e))
    return DispatchService(
        table,
        transport,
        matcher_config=settings.matcher_config(),
        sender=settings.email_from,
        signature=settings.email_signature,
        logger=logger,
    )


def cmd_serve(args: argparse.Namespace) -> None:
    from .server import create_app

    settings = _settings(args)
    problems = settings.validate()
    if problems:
        raise SystemExit("Invalid configuration:\n" + "\n".join(f" - {p}" for p in problems))
    logger = _configure_logging(settings)
    service = build_service(settings, logger=logger)
    app = create_app(service)
    host = args.host or settings.host
    port = args.port or settings.port
    logger.info(f"Server running on {host}:{port}", documents=len(service.table))
    app.run(host=host, port=port, debug=args.debug)


def cmd_lookup(args: argparse.Namespace) -> None:
    settings = _settings(args)
    logger = _configure_logging(settings, console=args.verbose)
    service = build_service(settings, transport=ConsoleTransport(), logger=logger)
    result = service.lookup(args.query)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return
    print(f"Query: {result.query!r}")
    if result.matched:
        detail = f"via {result.matched_on}"
        if result.best_score >= 0:
            detail += f", score={result.best_score}"
        print(f"Match: {result.record.display_name} ({detail})")
        print(f"Link:  {result.record.link}")
        return
    print(f"No match: {result.reason.value} (best={result.best_score}, second={result.second_best_score})")
    raise SystemExit(1)


def cmd_send(args: argparse.Namespace) -> None:
    settings = _settings(args)
    if args.dry_run:
        settings.email_transport = "console"
    logger = _configure_logging(settings)
    service = build_service(settings, logger=logger)
    outcome = service.dispatch({
        "pdf_name": args.query,
        "teacher_name": args.name,
        "teacher_email": args.email,
    })
    print(f"Status: {outcome['status']}")
    for key in ("pdf_name", "pdf_link", "email_id", "reason", "error"):
        if outcome.get(key):
            print(f"{key}: {outcome[key]}")
    for err in outcome.get("errors", []):
        print(f" - {err}")
    if outcome["status"] != STATUS_SENT:
        raise SystemExit(1)


def cmd_list(args: argparse.Namespace) -> None:
    settings = _settings(args)
    _configure_logging(settings, console=False)
    table = _load_table(settings)
    records = table.current_snapshot()
    if not records:
        print("No documents in table.")
        return
    print(f"Found {len(records)} documents in {settings.table_path}:\n")
    for record in records:
        print(f"Name: {record.display_name}")
        if record.keyword:
            print(f"  Keyword: {record.keyword}")
        print(f"  Link: {record.link}")
        print()


def main(argv=None):
    parser = argparse.ArgumentParser(prog="docmailer", description="Look up a document by name and email its link")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--env-file", help="Path to a .env file (default: ./.env)")

    subparsers = parser.add_subparsers(dest="command")

    srv = subparsers.add_parser("serve", help="Run the webhook HTTP server")
    srv.add_argument("--host", help="Bind address (default: HOST or 0.0.0.0)")
    srv.add_argument("--port", type=int, help="Port (default: PORT or 5050)")
    srv.add_argument("--table", help="Path to document CSV (default: TABLE_PATH or grade1.csv)")
    srv.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    srv.set_defaults(func=cmd_serve)

    lkp = subparsers.add_parser("lookup", help="Resolve a query against the table without sending email")
    lkp.add_argument("--query", required=True, help="Free-text document name or keyword")
    lkp.add_argument("--table", help="Path to document CSV")
    lkp.add_argument("--json", action="store_true", help="Print the full match result as JSON")
    lkp.add_argument("--verbose", action="store_true", help="Echo log lines to the console")
    lkp.set_defaults(func=cmd_lookup)

    snd = subparsers.add_parser("send", help="Resolve a query and email the document link")
    snd.add_argument("--query", required=True, help="Free-text document name or keyword")
    snd.add_argument("--name", required=True, help="Recipient name")
    snd.add_argument("--email", required=True, help="Recipient email address")
    snd.add_argument("--table", help="Path to document CSV")
    snd.add_argument("--dry-run", action="store_true", help="Log the email instead of sending it")
    snd.set_defaults(func=cmd_send)

    lst = subparsers.add_parser("list", help="List all documents in the table")
    lst.add_argument("--table", help="Path to document CSV")
    lst.set_defaults(func=cmd_list)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help(sys.stderr)


if __name__ == "__main__":
    main()
