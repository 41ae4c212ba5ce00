"""Password recovery: issue a six-digit code by e-mail, then reset with it."""

from __future__ import annotations

import secrets
from datetime import timedelta
from html import escape

import structlog
from src.core.config import get_settings
from src.domain.services.auth_service import AuthService
from src.domain.services.reset_codes import ResetCodeNotFoundError, ResetCodeRegistry
from src.libs.resend_client import MailerProtocol, ResendClientError

logger = structlog.get_logger()


def generate_reset_code() -> str:
    """Six decimal digits, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


def render_reset_email(app_name: str, code: str, ttl_minutes: int) -> tuple[str, str, str]:
    """Return (subject, text, html) for a reset-code message."""
    subject = f"{app_name} password reset code"
    text = f"Your {app_name} password reset code is {code}. It expires in {ttl_minutes} minutes."
    html = (
        '<div style="font-family:Arial,Helvetica,sans-serif;line-height:1.6;color:#111">'
        f"<h2>{escape(app_name)} password reset</h2>"
        "<p>Use the following verification code to reset your password:</p>"
        f'<p style="font-size:24px;font-weight:bold;letter-spacing:3px">{escape(code)}</p>'
        f"<p>This code expires in {ttl_minutes} minutes. "
        "If you did not request this, you can ignore this message.</p>"
        "</div>"
    )
    return subject, text, html


class PasswordResetService:
    def __init__(
        self,
        auth: AuthService,
        registry: ResetCodeRegistry,
        mailer: MailerProtocol,
    ) -> None:
        self.auth = auth
        self.registry = registry
        self.mailer = mailer

    async def request_reset(self, email: str) -> None:
        """Send a reset code if ``email`` belongs to an account.

        Unknown addresses return normally so the response does not reveal
        whether an account exists.
        """
        settings = get_settings()
        user = await self.auth.users.get_by_email(email)
        if user is None:
            await logger.ainfo("reset_requested_unknown_email")
            return

        code = generate_reset_code()
        ttl = timedelta(seconds=settings.reset_code_ttl_seconds)
        await self.registry.issue(user.id, code, ttl)

        subject, text, html = render_reset_email(
            settings.app_name, code, max(1, settings.reset_code_ttl_seconds // 60)
        )
        try:
            await self.mailer.send_email(
                to_emails=[user.email], subject=subject, html=html, text=text
            )
        except ResendClientError as exc:
            await logger.awarning("reset_email_failed", user_id=user.id, error=str(exc))
            if settings.is_production:
                # An undeliverable code must not stay outstanding.
                await self.registry.cancel(user.id)
            else:
                await logger.ainfo("reset_code_dev_fallback", user_id=user.id, code=code)

    async def reset_password(self, email: str, code: str, new_password: str) -> None:
        """Consume ``code`` and store ``new_password``.

        Raises a ``ResetCodeError`` subclass; an unknown e-mail is reported as
        ``ResetCodeNotFoundError``.
        """
        user = await self.auth.users.get_by_email(email)
        if user is None:
            raise ResetCodeNotFoundError("Reset code not found")

        await self.registry.verify(user.id, code)
        await self.auth.set_password(user.id, new_password)
