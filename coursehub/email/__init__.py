"""Email module using the Gmail API."""

from .schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from .service import EmailService
from .templates import render_refund_notification


__all__ = [
    "EmailRecipient",
    "EmailService",
    "SendEmailRequest",
    "SendEmailResponse",
    "render_refund_notification",
]
