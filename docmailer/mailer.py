"""
Outbound email: message composition and delivery transports.

Every transport exposes ``send(email) -> str`` returning the provider's
message id and raises DeliveryError on failure.
"""

import smtplib
import uuid
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

import requests

from .logger import get_logger
from .records import Record
from .retry import CircuitBreaker, CircuitOpenError, RetryError, exponential_backoff, should_retry_http_status

logger = get_logger()


class DeliveryError(Exception):
    """Raised when an email could not be handed to the provider."""
    pass


class RetryableProviderError(Exception):
    """Provider answered with a status worth retrying."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Provider returned {status_code}: {body[:200]}")
        self.status_code = status_code


# Failures that mean the provider itself is unhealthy. A 4xx for one message
# or an unreadable response body does not count against the circuit.
PROVIDER_FAILURES = (
    RetryError,
    RetryableProviderError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


@dataclass(frozen=True)
class OutboundEmail:
    sender: str
    to: str
    subject: str
    text: str


def compose_email(
    record: Record,
    recipient_name: str,
    recipient_email: str,
    sender: str,
    signature: str = "ESC 17",
) -> OutboundEmail:
    subject = f"Requested PDF: {record.display_name}"
    text = (
        f"Hi {recipient_name},\n\n"
        f"Here is your requested document:\n\n"
        f"{record.display_name}\n{record.link}\n\n"
        f"- {signature}"
    )
    return OutboundEmail(sender=sender, to=recipient_email, subject=subject, text=text)


class ResendTransport:
    """Sends through the Resend HTTP API."""

    name = "resend"

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 15.0,
        max_retries: int = 2,
        base_delay: float = 1.0,
        breaker: Optional[CircuitBreaker] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60,
            expected_exception=PROVIDER_FAILURES,
        )
        self._post = exponential_backoff(
            max_retries=max_retries,
            base_delay=base_delay,
            exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError, RetryableProviderError),
            on_retry=self._log_retry,
        )(self._post_once)

    @staticmethod
    def _log_retry(attempt: int, error: Exception, delay: float):
        logger.warning("Retrying email delivery", attempt=attempt, error=str(error), delay=delay)

    def _post_once(self, payload: dict) -> dict:
        resp = requests.post(
            self.api_url,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        if should_retry_http_status(resp.status_code):
            raise RetryableProviderError(resp.status_code, resp.text)
        resp.raise_for_status()
        return resp.json()

    def send(self, email: OutboundEmail) -> str:
        payload = {
            "from": email.sender,
            "to": [email.to],
            "subject": email.subject,
            "text": email.text,
        }
        try:
            data = self.breaker.call(self._post, payload)
        except CircuitOpenError as e:
            raise DeliveryError(str(e)) from e
        except RetryError as e:
            raise DeliveryError(f"Resend delivery failed: {e}") from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "HTTPError"
            raise DeliveryError(f"Resend rejected the email ({status})") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise DeliveryError(f"Resend request error: {e}") from e

        message_id = data.get("id") if isinstance(data, dict) else None
        if not message_id:
            raise DeliveryError("Resend response did not include a message id")
        return message_id


class SmtpTransport:
    """Sends through an SMTP relay with optional STARTTLS and login."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = True,
        timeout: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def _build_message(self, email: OutboundEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = email.sender
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(email.text)
        return msg

    def send(self, email: OutboundEmail) -> str:
        msg = self._build_message(email)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"SMTP delivery failed: {e}") from e
        return msg["Message-ID"]


class ConsoleTransport:
    """Logs the message instead of sending it."""

    name = "console"

    def send(self, email: OutboundEmail) -> str:
        message_id = f"console-{uuid.uuid4()}"
        logger.info(
            "Email not sent (console transport)",
            id=message_id,
            to=email.to,
            subject=email.subject,
        )
        logger.debug(email.text)
        return message_id


def build_transport(settings):
    """Instantiate the transport named by ``settings.email_transport``."""
    kind = settings.email_transport
    if kind == "resend":
        if not settings.resend_api_key:
            raise ValueError("RESEND_API_KEY is required for the resend transport")
        return ResendTransport(api_key=settings.resend_api_key, api_url=settings.resend_api_url)
    if kind == "smtp":
        if not settings.smtp_host:
            raise ValueError("SMTP_HOST is required for the smtp transport")
        return SmtpTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
        )
    if kind == "console":
        return ConsoleTransport()
    raise ValueError(f"Unknown email transport: {kind}")
