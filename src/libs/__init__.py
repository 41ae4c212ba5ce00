"""Shared library helpers."""

from src.libs.resend_client import (
    MailerProtocol,
    ResendAPIError,
    ResendClient,
    ResendClientError,
    ResendEmailResponse,
)

__all__ = [
    "MailerProtocol",
    "ResendAPIError",
    "ResendClient",
    "ResendClientError",
    "ResendEmailResponse",
]
