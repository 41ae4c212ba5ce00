"""One-time password-reset codes.

A user has at most one outstanding code. Issuing overwrites, a successful
verification deletes the record in the same atomic step, and expired
records never match. A code is discarded after too many wrong guesses. Atomicity per user is the store's job: see
``src.infrastructure.reset_store`` for the in-process and Redis backends.
"""

from __future__ import annotations

import enum
import hmac
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

import structlog
from src.domain.models import ResetRecord

logger = structlog.get_logger()


class ResetCodeError(Exception):
    """Base exception for reset-code verification failures."""


class ResetCodeNotFoundError(ResetCodeError):
    """No outstanding code for the user."""


class ResetCodeExpiredError(ResetCodeError):
    """The outstanding code is past its expiry."""


class ResetCodeMismatchError(ResetCodeError):
    """The supplied code does not match the outstanding one."""


class ConsumeOutcome(str, enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MISMATCH = "mismatch"


class ResetCodeStore(Protocol):
    """Key-value capability the registry needs: put / compare-and-delete / delete."""

    async def put(self, user_id: str, record: ResetRecord, ttl_seconds: int) -> None: ...

    async def consume(self, user_id: str, code: str, now: float) -> ConsumeOutcome: ...

    async def discard(self, user_id: str) -> None: ...

    async def close(self) -> None: ...


def evaluate(record: ResetRecord | None, code: str, now: float) -> ConsumeOutcome:
    """Classify a verification attempt against the stored record."""
    if record is None:
        return ConsumeOutcome.NOT_FOUND
    if record.is_expired(now):
        return ConsumeOutcome.EXPIRED
    if not hmac.compare_digest(record.code.encode(), code.encode()):
        return ConsumeOutcome.MISMATCH
    return ConsumeOutcome.OK


_FAILURES: dict[ConsumeOutcome, type[ResetCodeError]] = {
    ConsumeOutcome.NOT_FOUND: ResetCodeNotFoundError,
    ConsumeOutcome.EXPIRED: ResetCodeExpiredError,
    ConsumeOutcome.MISMATCH: ResetCodeMismatchError,
}


class ResetCodeRegistry:
    def __init__(
        self,
        store: ResetCodeStore,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self._clock = clock or (lambda: datetime.now(UTC))

    async def issue(self, user_id: str, code: str, ttl: timedelta) -> None:
        """Store ``code`` for ``user_id``, replacing any earlier code."""
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")

        expires_at = (self._clock() + ttl).timestamp()
        await self.store.put(
            user_id,
            ResetRecord(code=code, expires_at=expires_at),
            ttl_seconds=int(ttl.total_seconds()),
        )
        await logger.ainfo("reset_code_issued", user_id=user_id, ttl_seconds=ttl.total_seconds())

    async def verify(self, user_id: str, code: str) -> None:
        """Consume the outstanding code or raise a ``ResetCodeError`` subclass."""
        outcome = await self.store.consume(user_id, code, self._clock().timestamp())
        if outcome is ConsumeOutcome.OK:
            await logger.ainfo("reset_code_consumed", user_id=user_id)
            return

        await logger.awarning("reset_code_rejected", user_id=user_id, reason=outcome.value)
        raise _FAILURES[outcome](f"Reset code {outcome.value.replace('_', ' ')}")

    async def cancel(self, user_id: str) -> None:
        await self.store.discard(user_id)
        await logger.ainfo("reset_code_cancelled", user_id=user_id)
