"""Email delivery for invitation and password-reset links.

Delivery is attempted through the auth provider first (it mails the link
itself), then through SMTP. Neither path raises: callers receive False and
decide what to do with the undelivered link.
"""

import asyncio
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import httpx

from config import get_settings
from services.auth_service import GoTrueClient

logger = logging.getLogger(__name__)

_BASE_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background-color: #4a6cf7; color: white; padding: 20px; text-align: center; }
    .content { padding: 20px; border: 1px solid #ddd; border-top: none; }
    .button { display: inline-block; background-color: #4a6cf7; color: white; text-decoration: none; padding: 10px 20px; border-radius: 4px; margin: 20px 0; }
    .footer { font-size: 12px; text-align: center; margin-top: 20px; color: #777; }
"""


def setup_link(raw_token: str) -> str:
    return f"{get_settings().client_url.rstrip('/')}/setup-password/{raw_token}"


def reset_link(raw_token: str) -> str:
    return f"{get_settings().client_url.rstrip('/')}/reset-password/{raw_token}"


def _render(title: str, paragraphs: list[str], url: str, button: str, footer: str) -> str:
    body = "\n".join(f"<p>{p}</p>" for p in paragraphs)
    return f"""<!DOCTYPE html>
<html>
<head><style>{_BASE_STYLE}</style></head>
<body>
  <div class="container">
    <div class="header"><h1>{title}</h1></div>
    <div class="content">
      {body}
      <a href="{url}" class="button" target="_blank">{button}</a>
      <p><strong>Note:</strong> This link will expire in 1 hour for security reasons.</p>
    </div>
    <div class="footer">
      <p>{footer}</p>
      <p>&copy; {datetime.now().year} Video Approval Dashboard. All rights reserved.</p>
    </div>
  </div>
</body>
</html>
"""


class EmailService:
    """Sends setup and reset links, provider first, SMTP as fallback."""

    @property
    def smtp_configured(self) -> bool:
        settings = get_settings()
        return bool(settings.smtp_host and settings.smtp_user and settings.smtp_password)

    def _send_smtp(self, to_email: str, subject: str, body_text: str, body_html: str) -> None:
        settings = get_settings()
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.from_email or settings.smtp_user
        msg["To"] = to_email
        msg.attach(MIMEText(body_text, "plain"))
        msg.attach(MIMEText(body_html, "html"))

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)

    async def send_smtp(
        self, to_email: str, subject: str, body_text: str, body_html: str
    ) -> bool:
        """Send through SMTP in a worker thread. Returns False on any failure."""
        if not self.smtp_configured:
            logger.warning("SMTP not configured, cannot send '%s' to %s", subject, to_email)
            return False
        try:
            await asyncio.to_thread(self._send_smtp, to_email, subject, body_text, body_html)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s failed: %s", to_email, e)
            return False
        logger.info("Email sent to %s: %s", to_email, subject)
        return True

    async def send_via_provider(
        self, link_type: str, to_email: str, redirect_to: str, data: Optional[dict] = None
    ) -> bool:
        """Have the auth provider mail the link. Returns False if unavailable or failed."""
        if not get_settings().supabase_enabled:
            return False
        try:
            result = await GoTrueClient.generate_link(link_type, to_email, redirect_to, data)
        except httpx.HTTPError as e:
            logger.warning("Provider %s email to %s raised: %s", link_type, to_email, e)
            return False
        if "error" in result:
            logger.warning(
                "Provider %s email to %s failed (status=%s): %s",
                link_type, to_email, result.get("status"), result["error"],
            )
            return False
        logger.info("Provider %s email sent to %s", link_type, to_email)
        return True

    async def send_invitation(self, to_email: str, name: str | None, role: str, raw_token: str) -> bool:
        url = setup_link(raw_token)
        if await self.send_via_provider("invite", to_email, url, {"name": name, "role": role}):
            return True

        logger.info("Falling back to SMTP for invitation to %s", to_email)
        greeting = f"Hello {name}," if name else "Hello,"
        body_text = (
            f"{greeting}\n\nYou have been invited to join the Video Approval Dashboard "
            f"as a {role}.\n\nSet up your password here:\n{url}\n\n"
            "This link will expire in 1 hour."
        )
        body_html = _render(
            "Welcome to the Video Approval Dashboard",
            [
                greeting,
                f"You have been invited to join the Video Approval Dashboard as a <strong>{role}</strong>.",
                "Please click the button below to set up your password and activate your account:",
            ],
            url,
            "Set Up Your Password",
            "If you did not request this invitation, please ignore this email.",
        )
        return await self.send_smtp(
            to_email, "Account Invitation - Video Approval Dashboard", body_text, body_html
        )

    async def send_password_reset(self, to_email: str, name: str | None, raw_token: str) -> bool:
        url = reset_link(raw_token)
        if await self.send_via_provider("recovery", to_email, url):
            return True

        logger.info("Falling back to SMTP for password reset to %s", to_email)
        greeting = f"Hello {name}," if name else "Hello,"
        body_text = (
            f"{greeting}\n\nYou requested a password reset for your Video Approval "
            f"Dashboard account.\n\nReset your password here:\n{url}\n\n"
            "This link will expire in 1 hour."
        )
        body_html = _render(
            "Password Reset",
            [
                greeting,
                "You requested a password reset for your Video Approval Dashboard account.",
                "Please click the button below to reset your password:",
            ],
            url,
            "Reset Your Password",
            "This is an automated message. Please do not reply to this email.",
        )
        return await self.send_smtp(
            to_email, "Password Reset - Video Approval Dashboard", body_text, body_html
        )


def get_email_service() -> EmailService:
    """FastAPI dependency; overridden in tests."""
    return EmailService()
