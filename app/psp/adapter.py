"""
PSP Adapter Base Class and Interface.
Provides a uniform interface over the supported payment methods
(cash on delivery, Stripe hosted checkout, PayFast redirect).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

from app.errors import ConfigurationError, ValidationError

if TYPE_CHECKING:  # pragma: no cover
    from app.models import Order


class PaymentMethod(str, Enum):
    """Supported payment methods."""
    COD = "cod"
    STRIPE = "stripe"
    PAYFAST = "payfast"

    @property
    def is_redirect(self) -> bool:
        return self is not PaymentMethod.COD


class PaymentOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    PENDING = "pending"


@dataclass(frozen=True)
class PaymentTarget:
    """What the client should do next after placing an order."""
    kind: str                          # "accepted" or "redirect"
    url: Optional[str] = None
    session_id: Optional[str] = None

    @classmethod
    def accepted(cls) -> "PaymentTarget":
        return cls(kind="accepted")

    @classmethod
    def redirect(cls, url: str, session_id: Optional[str] = None) -> "PaymentTarget":
        return cls(kind="redirect", url=url, session_id=session_id)

    @property
    def is_accepted(self) -> bool:
        return self.kind == "accepted"


@dataclass(frozen=True)
class CallbackResult:
    """Provider-neutral reading of a return redirect or notification."""
    merchant_reference: Optional[str]
    outcome: PaymentOutcome
    gateway_reference: Optional[str] = None
    amount: Optional[Decimal] = None
    payment_status: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.outcome is PaymentOutcome.COMPLETED


def read_success_flag(value: Any) -> bool:
    """Return-URL flags arrive as the strings "true"/"false"."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


class PaymentAdapter(ABC):
    """
    Base adapter for payment methods.
    All method implementations must inherit from this class.
    """

    method: PaymentMethod

    def is_configured(self) -> bool:
        return True

    def ensure_configured(self) -> None:
        """
        Raises:
            ConfigurationError: If credentials or URLs are missing
        """
        if not self.is_configured():
            raise ConfigurationError(f"{self.method.value} payments are not configured")

    @abstractmethod
    def initiate(self, order: "Order") -> PaymentTarget:
        """
        Start a payment for a freshly created order.

        Returns:
            PaymentTarget telling the client to proceed or where to redirect
        """
        pass

    def parse_callback(self, payload: Mapping[str, Any]) -> CallbackResult:
        """
        Interpret a provider callback payload.

        Raises:
            InvalidSignature: If the payload fails authenticity checks
            ValidationError: If the method has no callbacks
        """
        raise ValidationError(f"{self.method.value} payments have no provider callback")

    def parse_return(self, params: Mapping[str, Any]) -> CallbackResult:
        """Read the success flag from the user's return redirect."""
        if not self.method.is_redirect:
            raise ValidationError(f"{self.method.value} orders are not verified by redirect")
        success = read_success_flag(params.get("success"))
        return CallbackResult(
            merchant_reference=params.get("orderId") or params.get("order_id"),
            outcome=PaymentOutcome.COMPLETED if success else PaymentOutcome.FAILED,
            raw=dict(params),
        )

    def __repr__(self):
        return f"<{self.__class__.__name__}(method={self.method.value})>"
