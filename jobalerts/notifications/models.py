"""Data models and exceptions for the notification service."""

from dataclasses import dataclass
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised when a single SMTP delivery attempt fails."""

    pass


@dataclass
class DispatchResult:
    """Outcome of delivering one message through a dispatcher.

    Attributes:
        success: True if the message was accepted by the transport
        attempts: Number of send attempts made (0 if never attempted)
        error: Error message of the last failed attempt
    """

    success: bool
    attempts: int = 0
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str, attempts: int = 0) -> "DispatchResult":
        return cls(success=False, attempts=attempts, error=error)


@dataclass
class RenderedEmail:
    """Subject and bodies produced from one template set."""

    subject: str
    html_body: str
    text_body: str
