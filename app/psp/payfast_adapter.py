"""
PayFast redirect adapter.

Outbound: a signed URL carrying the payment parameters in its query string.
Inbound: the ITN (instant transaction notification) form post, whose
signature is recomputed with the shared passphrase before it is trusted.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from app.errors import InvalidSignature, ValidationError
from app.logging_config import get_logger
from app.services.pricing_service import format_amount
from .adapter import CallbackResult, PaymentAdapter, PaymentMethod, PaymentOutcome, PaymentTarget
from .signature import (
    SIGNATURE_FIELD,
    build_query_string,
    format_phone_number,
    generate_signature,
    verify_signature,
)

logger = get_logger(__name__)

STATUS_MAP = {
    "COMPLETE": PaymentOutcome.COMPLETED,
    "FAILED": PaymentOutcome.FAILED,
    "CANCELLED": PaymentOutcome.FAILED,
}

NOTIFY_PATH = "/api/order/payfast/notify"


class PayFastAdapter(PaymentAdapter):
    """PayFast payment gateway adapter."""

    method = PaymentMethod.PAYFAST

    def __init__(
        self,
        merchant_id: Optional[str],
        merchant_key: Optional[str],
        base_url: Optional[str],
        frontend_url: str,
        backend_url: str,
        passphrase: Optional[str] = None,
        country_code: str = "27",
    ):
        self.merchant_id = merchant_id
        self.merchant_key = merchant_key
        self.base_url = base_url
        self.frontend_url = frontend_url.rstrip("/")
        self.backend_url = backend_url.rstrip("/")
        self.passphrase = passphrase or None
        self.country_code = country_code

    def is_configured(self) -> bool:
        return bool(self.merchant_id and self.merchant_key and self.base_url)

    def build_payment_data(self, order) -> Dict[str, Any]:
        """Outbound parameters, in the order PayFast documents them."""
        address = order.address or {}
        return {
            "merchant_id": self.merchant_id,
            "merchant_key": self.merchant_key,
            "amount": format_amount(order.amount),
            "item_name": "Order Payment",
            "item_description": "Purchase from our store",
            "payment_method": "cc",
            "m_payment_id": order.id,
            "email_address": address.get("email"),
            "cell_number": format_phone_number(address.get("phone"), self.country_code),
            "return_url": (
                f"{self.frontend_url}/verify?success=true&orderId={order.id}"
                f"&payment_method={self.method.value}"
            ),
            "cancel_url": f"{self.frontend_url}/cart",
            "notify_url": f"{self.backend_url}{NOTIFY_PATH}",
            "name_first": address.get("first_name"),
            "name_last": address.get("last_name"),
            "custom_str1": order.user_id,
        }

    def initiate(self, order) -> PaymentTarget:
        self.ensure_configured()
        payment_data = self.build_payment_data(order)
        payment_data[SIGNATURE_FIELD] = generate_signature(payment_data, self.passphrase)
        url = f"{self.base_url}?{build_query_string(payment_data)}"
        logger.info("payfast_payment_url_built", order_id=order.id)
        return PaymentTarget.redirect(url)

    def parse_callback(self, payload: Mapping[str, Any]) -> CallbackResult:
        """
        Verify and read an ITN post.

        Raises:
            InvalidSignature: Signature missing/mismatched or foreign merchant
            ValidationError: Merchant reference missing or amount unreadable
        """
        self.ensure_configured()
        params = dict(payload)
        if not verify_signature(params, params.get(SIGNATURE_FIELD), self.passphrase):
            raise InvalidSignature("PayFast notification signature mismatch")

        merchant_id = params.get("merchant_id")
        if merchant_id and merchant_id != self.merchant_id:
            raise InvalidSignature("PayFast notification is for another merchant")

        merchant_reference = params.get("m_payment_id")
        if not merchant_reference:
            raise ValidationError("PayFast notification has no m_payment_id")

        amount = None
        if params.get("amount_gross"):
            try:
                amount = Decimal(str(params["amount_gross"]))
            except InvalidOperation as e:
                raise ValidationError("PayFast notification amount is not a number") from e
            if not amount.is_finite():
                raise ValidationError("PayFast notification amount is not a number")

        status = str(params.get("payment_status") or "").upper()
        return CallbackResult(
            merchant_reference=merchant_reference,
            outcome=STATUS_MAP.get(status, PaymentOutcome.PENDING),
            gateway_reference=params.get("pf_payment_id") or None,
            amount=amount,
            payment_status=status or None,
            raw=params,
        )
