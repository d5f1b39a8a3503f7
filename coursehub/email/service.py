"""Email service using Gmail API with Service Account.

Uses domain-wide delegation to send emails on behalf of a Google Workspace user.
The service account must have domain-wide delegation enabled in Google Admin Console
with scope https://www.googleapis.com/auth/gmail.send.
"""

import base64
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from pathlib import Path
from typing import TYPE_CHECKING, Any

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from coursehub.core.logging import get_logger

from .schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from .templates import refund_notification_subject, render_refund_notification


if TYPE_CHECKING:
    from googleapiclient._apis.gmail.v1 import GmailResource


logger = get_logger(__name__)

# Gmail API scope for sending emails
GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class EmailService:
    """Service for sending emails via Gmail API.

    Uses a service account with domain-wide delegation to impersonate
    the configured sender mailbox.
    """

    def __init__(
        self,
        credentials_path: str,
        sender_address: str,
        sender_name: str = "CourseHub",
    ):
        """Initialize Gmail API service.

        Args:
            credentials_path: Path to service account JSON file
            sender_address: Email address to send from (must be in Google Workspace)
            sender_name: Display name for sender
        """
        self.credentials_path = credentials_path
        self.sender_address = sender_address
        self.sender_name = sender_name
        self._service: GmailResource | None = None

        if not Path(credentials_path).exists():
            logger.warning(
                "email_credentials_not_found",
                path=credentials_path,
                message="Gmail API will not be available",
            )

    def _get_service(self) -> "GmailResource":
        """Get or create Gmail API service (lazy).

        Raises:
            FileNotFoundError: If credentials file doesn't exist
        """
        if self._service is not None:
            return self._service

        credentials_file = Path(self.credentials_path)
        if not credentials_file.exists():
            msg = f"Credentials file not found: {self.credentials_path}"
            raise FileNotFoundError(msg)

        try:
            credentials = service_account.Credentials.from_service_account_file(
                str(credentials_file),
                scopes=GMAIL_SCOPES,
            )
            delegated_credentials = credentials.with_subject(self.sender_address)
            self._service = build(
                "gmail",
                "v1",
                credentials=delegated_credentials,
                cache_discovery=False,
            )
            logger.info("gmail_service_initialized", sender=self.sender_address)
            return self._service

        except Exception as e:
            logger.exception(
                "gmail_service_init_failed",
                error=str(e),
                credentials_path=self.credentials_path,
            )
            raise

    def _format_address(self, recipient: EmailRecipient) -> str:
        """Format address with optional display name, quoted as needed."""
        return formataddr((recipient.name or "", recipient.email))

    def _create_message(self, request: SendEmailRequest) -> dict[str, Any]:
        """Create email message in Gmail API format (base64url ``raw``)."""
        message = MIMEMultipart("alternative")
        message["From"] = formataddr((self.sender_name, self.sender_address))
        message["To"] = ", ".join(self._format_address(r) for r in request.to)
        message["Subject"] = request.subject

        if request.reply_to:
            message["Reply-To"] = self._format_address(request.reply_to)

        # Plain text first, then HTML (clients prefer the last part)
        if request.body_text:
            message.attach(MIMEText(request.body_text, "plain", "utf-8"))
        message.attach(MIMEText(request.body_html, "html", "utf-8"))

        raw_message = base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")
        return {"raw": raw_message}

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        """Send an email via Gmail API.

        Never raises for delivery problems; failures are logged and reported
        through ``SendEmailResponse.success``.
        """
        try:
            service = self._get_service()
            message = self._create_message(request)

            # "me" refers to the impersonated sender
            result = (
                service.users().messages().send(userId="me", body=message).execute()
            )

            logger.info(
                "email_sent",
                message_id=result.get("id"),
                thread_id=result.get("threadId"),
                to=[r.email for r in request.to],
                subject=request.subject[:50],
            )
            return SendEmailResponse(
                success=True,
                message_id=result.get("id"),
                thread_id=result.get("threadId"),
            )

        except HttpError as e:
            logger.exception(
                "email_send_failed",
                error=str(e),
                to=[r.email for r in request.to],
                subject=request.subject[:50],
            )
            return SendEmailResponse(success=False, error=f"Gmail API error: {e}")

        except FileNotFoundError as e:
            logger.error("email_credentials_missing", error=str(e))
            return SendEmailResponse(
                success=False,
                error="Email service not configured: credentials file missing",
            )

        except Exception as e:
            logger.exception("email_send_unexpected_error", error=str(e))
            return SendEmailResponse(success=False, error=f"Unexpected error: {e!s}")

    async def send_refund_notification(
        self,
        admin_address: str,
        user_name: str,
        user_email: str,
        course_name: str,
        message: str,
    ) -> SendEmailResponse:
        """Notify the administrator about a new refund request.

        Reply-To is set to the learner so the administrator can answer
        directly.
        """
        body_html, body_text = render_refund_notification(
            user_name=user_name,
            user_email=user_email,
            course_name=course_name,
            message=message,
        )
        request = SendEmailRequest(
            to=[EmailRecipient(email=admin_address, name="Administrator")],
            subject=refund_notification_subject(course_name),
            body_html=body_html,
            body_text=body_text,
            reply_to=EmailRecipient(email=user_email, name=user_name),
        )
        return await self.send_email(request)
