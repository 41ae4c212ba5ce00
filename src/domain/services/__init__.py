"""Domain services."""

from src.domain.services.authorization import (
    AuthorizationGate,
    ForbiddenError,
    UnauthenticatedError,
)
from src.domain.services.payments import (
    PaymentNotFoundError,
    PaymentNotFoundOrProcessedError,
    PaymentWorkflow,
)
from src.domain.services.reset_codes import (
    ResetCodeExpiredError,
    ResetCodeMismatchError,
    ResetCodeNotFoundError,
    ResetCodeRegistry,
)

__all__ = [
    "AuthorizationGate",
    "ForbiddenError",
    "PaymentNotFoundError",
    "PaymentNotFoundOrProcessedError",
    "PaymentWorkflow",
    "ResetCodeExpiredError",
    "ResetCodeMismatchError",
    "ResetCodeNotFoundError",
    "ResetCodeRegistry",
    "UnauthenticatedError",
]
