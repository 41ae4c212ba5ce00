from src.core.auth import Role
from src.domain.models import (
    Payment,
    PaymentStatus,
    PaymentSummary,
    PaymentVerification,
    ResetRecord,
    User,
)

__all__ = [
    "Payment",
    "PaymentStatus",
    "PaymentSummary",
    "PaymentVerification",
    "ResetRecord",
    "Role",
    "User",
]
