"""PSP Adapter Dispatcher - Routes to the adapter for an order's payment method."""
from typing import Dict, Union

from app.config import Settings
from app.errors import ValidationError
from .adapter import PaymentAdapter, PaymentMethod
from .cod_adapter import CodAdapter
from .payfast_adapter import PayFastAdapter
from .stripe_adapter import StripeCheckoutAdapter


class PaymentDispatcher:
    """
    Holds one adapter per payment method.
    Built once at startup from read-only settings.
    """

    def __init__(self, adapters: Dict[PaymentMethod, PaymentAdapter]):
        self._adapters = dict(adapters)

    def get_adapter(self, method: Union[str, PaymentMethod]) -> PaymentAdapter:
        """
        Raises:
            ValidationError: If the method is not supported
        """
        try:
            key = PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unsupported payment method: {method}")
        if key not in self._adapters:
            raise ValidationError(f"Unsupported payment method: {method}")
        return self._adapters[key]

    @property
    def methods(self):
        return list(self._adapters)


def build_dispatcher(settings: Settings) -> PaymentDispatcher:
    """Construct every adapter from settings. Missing credentials surface later as ConfigurationError."""
    return PaymentDispatcher({
        PaymentMethod.COD: CodAdapter(),
        PaymentMethod.STRIPE: StripeCheckoutAdapter(
            api_key=settings.STRIPE_SECRET_KEY,
            frontend_url=settings.FRONTEND_URL,
        ),
        PaymentMethod.PAYFAST: PayFastAdapter(
            merchant_id=settings.PAYFAST_MERCHANT_ID,
            merchant_key=settings.PAYFAST_MERCHANT_KEY,
            base_url=settings.PAYFAST_BASE_URL,
            frontend_url=settings.FRONTEND_URL,
            backend_url=settings.BACKEND_URL,
            passphrase=settings.PAYFAST_PASSPHRASE,
            country_code=settings.PHONE_COUNTRY_CODE,
        ),
    })
