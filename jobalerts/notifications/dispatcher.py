"""Outbound message delivery.

NotificationDispatcher is the seam between the alert pipeline and the
transport: anything with a matching send() can be injected. EmailDispatcher
delivers over SMTP with retry and exponential backoff and never raises.
"""

import logging
import time
from email.message import EmailMessage
from typing import Callable, Optional, Protocol

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.config.models import EmailConfig
from jobalerts.logging import get_logger

from .models import DispatchResult, SMTPDeliveryError
from .smtp_client import SMTPClient, build_sender_address, normalize_recipient

logger = get_logger(__name__, component="notification")

MAX_RETRY_DELAY_SECONDS = 60.0


class NotificationDispatcher(Protocol):
    """Delivers one rendered message to one recipient."""

    def send(
        self, recipient_email: str, subject: str, html_body: str, text_body: str
    ) -> DispatchResult:
        ...


class EmailDispatcher:
    """Sends multipart (text + HTML) email through SMTP.

    Each send makes up to ``email_config.max_retries + 1`` attempts. The
    delay before attempt n (n >= 2) is
    ``retry_initial_delay * retry_backoff_multiplier ** (n - 2)``, clamped to
    60 seconds. Failures are reported in the DispatchResult, never raised.
    """

    def __init__(
        self,
        env_config: EnvironmentConfig,
        email_config: EmailConfig,
        smtp_client: Optional[SMTPClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.env_config = env_config
        self.email_config = email_config
        self.smtp_client = smtp_client or SMTPClient(timeout=email_config.timeout_seconds)
        self.sleep = sleep
        self.logger = logger_instance or logger

    def build_message(
        self, recipient_email: str, subject: str, html_body: str, text_body: str
    ) -> EmailMessage:
        """Build the outgoing message.

        Raises:
            ValueError: If the recipient address is invalid
        """
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = build_sender_address(self.env_config)
        message["To"] = normalize_recipient(recipient_email)
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")
        return message

    def send(
        self, recipient_email: str, subject: str, html_body: str, text_body: str
    ) -> DispatchResult:
        try:
            message = self.build_message(recipient_email, subject, html_body, text_body)
        except ValueError as e:
            self.logger.error(
                f"Failed to build email message: {e}",
                extra={"event": "notification.message.invalid"},
            )
            return DispatchResult.failed(str(e))

        max_attempts = self.email_config.max_retries + 1
        last_error = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = self.email_config.retry_initial_delay * (
                    self.email_config.retry_backoff_multiplier ** (attempt - 2)
                )
                delay = min(delay, MAX_RETRY_DELAY_SECONDS)
                self.logger.warning(
                    f"Retrying delivery to {message['To']} "
                    f"(attempt {attempt}/{max_attempts}) after {delay:.1f}s delay",
                    extra={"event": "notification.send.retry", "attempt": attempt},
                )
                self.sleep(delay)

            try:
                self.smtp_client.send(message, self.env_config, self.email_config.use_tls)
            except SMTPDeliveryError as e:
                last_error = str(e)
                self.logger.warning(
                    f"SMTP delivery failed (attempt {attempt}/{max_attempts}): {e}",
                    extra={
                        "event": "notification.send.failure",
                        "attempt": attempt,
                        "retry_remaining": attempt < max_attempts,
                    },
                )
                continue

            self.logger.info(
                f"Email delivered to {message['To']} (attempts: {attempt})",
                extra={"event": "notification.send.success", "attempt": attempt},
            )
            return DispatchResult(success=True, attempts=attempt)

        self.logger.error(
            f"SMTP delivery failed after {max_attempts} attempts: {last_error}",
            extra={"event": "notification.send.exhausted", "attempts": max_attempts},
        )
        return DispatchResult.failed(last_error, attempts=max_attempts)
