"""
Lookup-and-notify orchestration.

Ties the record table, the resolver and an email transport together. Every
entry point returns a plain status dict so the HTTP layer and the CLI can
report outcomes without catching exceptions themselves.
"""

from typing import Any, Dict, Optional

from .logger import StructuredLogger, get_logger
from .mailer import DeliveryError, compose_email
from .records import RecordTable, TableLoadError
from .resolver import DEFAULT_CONFIG, MatchResult, MatcherConfig, resolve_match
from .schema import extract_dispatch_fields, validate_dispatch_request

STATUS_SENT = "sent"
STATUS_INVALID = "invalid"
STATUS_NOT_FOUND = "not_found"
STATUS_DELIVERY_FAILED = "delivery_failed"


class DispatchService:
    def __init__(
        self,
        table: RecordTable,
        transport,
        matcher_config: MatcherConfig = DEFAULT_CONFIG,
        sender: Optional[str] = None,
        signature: str = "ESC 17",
        logger: Optional[StructuredLogger] = None,
    ):
        self.table = table
        self.transport = transport
        self.matcher_config = matcher_config
        self.sender = sender or "docmailer@localhost"
        self.signature = signature
        self.logger = logger or get_logger()

    def lookup(self, query: Optional[str]) -> MatchResult:
        # One snapshot per lookup; a concurrent reload swaps in a new tuple.
        snapshot = self.table.current_snapshot()
        result = resolve_match(query, snapshot, self.matcher_config)
        self.logger.record_lookup(
            result.matched,
            source=result.matched_on,
            reason=result.reason.value if result.reason else None,
        )
        if result.matched:
            self.logger.info(
                "Document matched",
                query=result.query,
                pdf_name=result.record.display_name,
                matched_on=result.matched_on,
                score=result.best_score,
            )
        else:
            self.logger.info(
                "No document matched",
                query=result.query,
                reason=result.reason.value,
                best_score=result.best_score,
                second_best_score=result.second_best_score,
            )
        return result

    def dispatch(self, body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Resolve the requested document and email it to the recipient.

        Args:
            body: Raw webhook payload

        Returns:
            Outcome dict whose ``status`` is one of sent, invalid,
            not_found or delivery_failed
        """
        fields = extract_dispatch_fields(body)
        self.logger.debug("Resolved request fields", **fields)

        errors = validate_dispatch_request(fields)
        if errors:
            return {"status": STATUS_INVALID, "errors": errors, "resolved": fields}

        result = self.lookup(fields["query"])
        if not result.matched:
            return {
                "status": STATUS_NOT_FOUND,
                "pdf_name": fields["query"],
                "reason": result.reason.value,
            }

        record = result.record
        email = compose_email(
            record,
            recipient_name=fields["recipient_name"],
            recipient_email=fields["recipient_email"],
            sender=self.sender,
            signature=self.signature,
        )
        try:
            email_id = self.transport.send(email)
        except DeliveryError as e:
            self.logger.record_email_failure(type(e.__cause__ or e).__name__)
            self.logger.error("Email delivery failed", to=email.to, pdf_name=record.display_name, error=str(e))
            return {
                "status": STATUS_DELIVERY_FAILED,
                "pdf_name": record.display_name,
                "error": str(e),
            }

        self.logger.record_email_sent()
        self.logger.info("Email sent", to=email.to, pdf_name=record.display_name, email_id=email_id)
        return {
            "status": STATUS_SENT,
            "pdf_name": record.display_name,
            "pdf_link": record.link,
            "email_id": email_id,
            "matched_on": result.matched_on,
        }

    def reload(self) -> Dict[str, Any]:
        try:
            records = self.table.load()
        except TableLoadError as e:
            self.logger.error("Table reload failed", path=str(self.table.path), error=str(e))
            return {"ok": False, "message": str(e), "count": len(self.table)}
        return {"ok": True, "count": len(records), "generation": self.table.generation}
