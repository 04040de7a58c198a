"""
Email service for sending transactional emails.

WHAT: A unified interface for the emails the portal sends: invitations,
status updates on requests and workflow-driven messages.

WHY: Email reaches people who are not looking at the portal:
1. Invitations - the only way a new profile learns its accept link
2. Status updates - clients hear when their work moves to review or done
3. Workflow actions - admins can send custom emails from automation rules

HOW: Uses the Resend REST API through httpx when RESEND_API_KEY is set and
a logging mock provider otherwise. Bodies are rendered from Jinja2
templates sharing one branded layout.

Design decisions:
- Provider abstraction: easy to switch providers, trivial to mock in tests
- Fail-safe: callers treat email as a secondary effect and only log failures
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, List
from urllib.parse import urlparse

import httpx
from jinja2 import DictLoader, Environment, select_autoescape

from agencyos.core.config import settings
from agencyos.core.exceptions import EmailServiceError
from agencyos.models.base import utcnow

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


# ============================================================================
# Email Types and Messages
# ============================================================================


class EmailType(str, Enum):
    """
    Types of transactional emails.

    WHY: Categorizing emails keeps logs searchable per type.
    """

    INVITATION = "invitation"
    STATUS_CHANGE = "status_change"
    WORKFLOW = "workflow"


@dataclass
class EmailMessage:
    """
    Represents an email to be sent.

    WHAT: Data container for email content and metadata.
    """

    to_email: str
    """Recipient email address."""

    subject: str
    """Email subject line."""

    html_content: str
    """HTML email body."""

    text_content: Optional[str] = None
    """Plain text fallback."""

    from_email: Optional[str] = None
    """Sender (defaults to EMAIL_FROM)."""

    reply_to: Optional[str] = None

    email_type: EmailType = EmailType.INVITATION
    """Type of email for logging."""

    metadata: Optional[Dict[str, Any]] = None


@dataclass
class EmailResult:
    """Result of an email send operation."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    provider: Optional[str] = None


# ============================================================================
# Email Provider Interface
# ============================================================================


class EmailProvider(ABC):
    """
    Abstract base class for email providers.

    WHY: Provider abstraction allows switching providers and testing with
    a mock provider.
    """

    @abstractmethod
    async def send(self, message: EmailMessage) -> EmailResult:
        """
        Send an email message.

        Returns:
            EmailResult with success status and provider details
        """

    @abstractmethod
    def is_configured(self) -> bool:
        """True if API keys/credentials are present."""


class ResendProvider(EmailProvider):
    """Resend email provider implementation."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = 30.0):
        self._api_key = api_key or settings.RESEND_API_KEY
        self._timeout = timeout
        self._default_from = settings.EMAIL_FROM or f"AgencyOS <noreply@{self._get_domain()}>"

    def _get_domain(self) -> str:
        """Get domain from FRONTEND_URL for the default sender."""
        return urlparse(settings.FRONTEND_URL).netloc or "localhost"

    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def send(self, message: EmailMessage) -> EmailResult:
        """
        Send email via the Resend API.

        HOW: One POST per message with httpx; non-2xx answers and transport
        errors become a failed EmailResult rather than an exception.
        """
        if not self.is_configured():
            return EmailResult(success=False, error="Resend API key not configured", provider="resend")

        payload = {
            "from": message.from_email or self._default_from,
            "to": [message.to_email],
            "subject": message.subject,
            "html": message.html_content,
        }
        if message.text_content:
            payload["text"] = message.text_content
        if message.reply_to:
            payload["reply_to"] = message.reply_to

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"Resend send error: {e}")
            return EmailResult(success=False, error=str(e), provider="resend")

        if response.status_code in (200, 201):
            return EmailResult(success=True, message_id=response.json().get("id"), provider="resend")
        return EmailResult(
            success=False,
            error=f"Resend API error: {response.status_code} - {response.text}",
            provider="resend",
        )


class MockEmailProvider(EmailProvider):
    """
    Mock email provider for testing and development.

    WHY: Exercises email flows without sending real emails; messages are
    logged and kept in ``sent_emails``.
    """

    sent_emails: List[EmailMessage] = []
    """Class-level list to track sent emails for testing."""

    def is_configured(self) -> bool:
        return True

    async def send(self, message: EmailMessage) -> EmailResult:
        logger.info(
            f"[MOCK EMAIL] To: {message.to_email}, "
            f"Subject: {message.subject}, "
            f"Type: {message.email_type.value}"
        )
        MockEmailProvider.sent_emails.append(message)
        return EmailResult(
            success=True,
            message_id=f"mock-{utcnow().timestamp()}",
            provider="mock",
        )

    @classmethod
    def clear_sent_emails(cls):
        """Clear sent emails list (for test cleanup)."""
        cls.sent_emails = []


# ============================================================================
# Email Templates
# ============================================================================


_TEMPLATES = {
    "base.html": """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{{ title }}</title></head>
<body style="font-family: Arial, sans-serif; color: #333; background: #f5f5f5;">
  <div style="max-width: 600px; margin: 40px auto; background: #fff; border-radius: 8px;">
    <div style="background: #111827; color: #fff; padding: 24px; text-align: center;">
      <h1 style="margin: 0; font-size: 22px;">{{ project_name }}</h1>
    </div>
    <div style="padding: 32px;">{% block content %}{% endblock %}</div>
    <div style="padding: 16px 32px; font-size: 13px; color: #6b7280; text-align: center;">
      &copy; {{ year }} {{ project_name }}
    </div>
  </div>
</body>
</html>""",
    "invitation.html": """{% extends "base.html" %}
{% block content %}
<p>Hi {{ name }},</p>
<p>{{ inviter }} invited you to join {{ company or project_name }} as {{ role }}.</p>
<p><a href="{{ url }}" style="background: #2563eb; color: #fff; padding: 12px 24px;
   border-radius: 6px; text-decoration: none;">Accept invitation</a></p>
<p>This link expires on {{ expires_at }}.</p>
{% endblock %}""",
    "status_change.html": """{% extends "base.html" %}
{% block content %}
<p>Hi {{ name }},</p>
<p>Your request <strong>{{ request_title }}</strong> moved from {{ old_status }} to {{ new_status }}.</p>
<p><a href="{{ url }}">View the request</a></p>
{% endblock %}""",
    "workflow.html": """{% extends "base.html" %}
{% block content %}
<p>{{ message }}</p>
{% if url %}<p><a href="{{ url }}">View the request</a></p>{% endif %}
{% endblock %}""",
}


class EmailTemplates:
    """
    Jinja2 templates for the portal's emails.

    WHY: One shared layout keeps branding consistent; autoescape keeps
    request titles and names from injecting markup.
    """

    def __init__(self):
        self._env = Environment(
            loader=DictLoader(_TEMPLATES),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def render(self, template_name: str, **context: Any) -> str:
        base_context = {
            "project_name": settings.PROJECT_NAME.replace(" API", ""),
            "year": utcnow().year,
        }
        base_context.update(context)
        return self._env.get_template(template_name).render(**base_context)


# ============================================================================
# Email Service
# ============================================================================


class EmailService:
    """
    High-level email service for the portal's transactional emails.

    HOW: Picks the Resend provider when configured, the mock provider
    otherwise, renders Jinja2 templates and logs every send.
    """

    def __init__(
        self,
        provider: Optional[EmailProvider] = None,
        templates: Optional[EmailTemplates] = None,
    ):
        if provider:
            self._provider = provider
        elif settings.RESEND_API_KEY:
            self._provider = ResendProvider()
        else:
            logger.warning("No email provider configured, using mock provider")
            self._provider = MockEmailProvider()

        self._templates = templates or EmailTemplates()

    @property
    def provider(self) -> EmailProvider:
        return self._provider

    async def send_email(self, message: EmailMessage, raise_on_failure: bool = False) -> EmailResult:
        """
        Send an email message.

        Args:
            message: Email message to send
            raise_on_failure: Raise instead of returning a failed result

        Returns:
            EmailResult with send status

        Raises:
            EmailServiceError: If sending failed and raise_on_failure is set
        """
        logger.info(
            f"Sending {message.email_type.value} email to {message.to_email}",
            extra={"email_type": message.email_type.value, "to": message.to_email},
        )

        result = await self._provider.send(message)

        if result.success:
            logger.info(
                f"Email sent successfully: {result.message_id}",
                extra={"message_id": result.message_id, "provider": result.provider},
            )
        else:
            logger.error(
                f"Email send failed: {result.error}",
                extra={"email_type": message.email_type.value, "to": message.to_email},
            )
            if raise_on_failure:
                raise EmailServiceError(provider=result.provider)

        return result

    async def send_invitation_email(
        self,
        to_email: str,
        invitee_name: Optional[str],
        inviter_name: str,
        role: str,
        invitation_url: str,
        expires_at,
        company_name: Optional[str] = None,
    ) -> EmailResult:
        """Send the accept link for a new invitation."""
        html = self._templates.render(
            "invitation.html",
            title="You're invited",
            name=invitee_name or to_email,
            inviter=inviter_name,
            company=company_name,
            role=role,
            url=invitation_url,
            expires_at=expires_at.strftime("%Y-%m-%d"),
        )
        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject="You're invited to AgencyOS",
                html_content=html,
                text_content=f"Accept your invitation: {invitation_url}",
                email_type=EmailType.INVITATION,
            )
        )

    async def send_status_change_email(
        self,
        to_email: str,
        recipient_name: Optional[str],
        request_id: int,
        request_title: str,
        old_status: str,
        new_status: str,
    ) -> EmailResult:
        url = f"{settings.FRONTEND_URL}/requests/{request_id}"
        html = self._templates.render(
            "status_change.html",
            title="Request updated",
            name=recipient_name or to_email,
            request_title=request_title,
            old_status=old_status,
            new_status=new_status,
            url=url,
        )
        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject=f"Request update: {request_title}",
                html_content=html,
                text_content=f"{request_title} moved from {old_status} to {new_status}. {url}",
                email_type=EmailType.STATUS_CHANGE,
            )
        )

    async def send_workflow_email(
        self,
        to_email: str,
        subject: str,
        message: str,
        request_id: Optional[int] = None,
    ) -> EmailResult:
        """Send an email configured on a workflow rule."""
        url = f"{settings.FRONTEND_URL}/requests/{request_id}" if request_id else None
        html = self._templates.render("workflow.html", title=subject, message=message, url=url)
        return await self.send_email(
            EmailMessage(
                to_email=to_email,
                subject=subject,
                html_content=html,
                text_content=message,
                email_type=EmailType.WORKFLOW,
            )
        )


# ============================================================================
# Module-level convenience functions
# ============================================================================


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """
    Get or create the global email service instance.

    Returns:
        EmailService instance
    """
    global _email_service

    if _email_service is None:
        _email_service = EmailService()

    return _email_service


def set_email_service(service: Optional[EmailService]) -> None:
    """Replace the global email service (None resets to lazy creation)."""
    global _email_service
    _email_service = service
