"""Stripe hosted checkout adapter."""
from typing import Any, Dict, List, Optional

import stripe

from app.errors import GatewayUnavailable
from app.logging_config import get_logger
from app.services.pricing_service import to_minor_units
from .adapter import PaymentAdapter, PaymentMethod, PaymentTarget

logger = get_logger(__name__)


class StripeCheckoutAdapter(PaymentAdapter):
    """Sends the shopper to a Stripe-hosted checkout page."""

    method = PaymentMethod.STRIPE

    def __init__(self, api_key: Optional[str], frontend_url: str):
        self.api_key = api_key
        self.frontend_url = frontend_url.rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key and self.frontend_url)

    def return_url(self, order_id: str, success: bool) -> str:
        flag = "true" if success else "false"
        return f"{self.frontend_url}/verify?success={flag}&orderId={order_id}&payment_method={self.method.value}"

    def build_line_items(self, order) -> List[Dict[str, Any]]:
        """One entry per ordered item plus a synthetic delivery line."""
        line_items = [
            {
                "price_data": {
                    "currency": order.currency,
                    "product_data": {"name": item["name"]},
                    "unit_amount": to_minor_units(item["price"]),
                },
                "quantity": item["quantity"],
            }
            for item in order.items
        ]
        line_items.append({
            "price_data": {
                "currency": order.currency,
                "product_data": {"name": "Delivery Charges"},
                "unit_amount": to_minor_units(order.delivery_charge),
            },
            "quantity": 1,
        })
        return line_items

    def initiate(self, order) -> PaymentTarget:
        """Create a Checkout Session and return its redirect URL."""
        self.ensure_configured()

        session_params = {
            "mode": "payment",
            "line_items": self.build_line_items(order),
            "success_url": self.return_url(order.id, True),
            "cancel_url": self.return_url(order.id, False),
            "client_reference_id": order.id,
            "metadata": {"order_id": order.id, "user_id": order.user_id},
        }
        email = (order.address or {}).get("email")
        if email:
            session_params["customer_email"] = email

        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **session_params)
        except stripe.StripeError as e:
            logger.error(
                "stripe_checkout_session_failed",
                order_id=order.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise GatewayUnavailable("Could not start Stripe checkout") from e

        logger.info("stripe_checkout_session_created", order_id=order.id, session_id=session.id)
        return PaymentTarget.redirect(session.url, session_id=session.id)

    def parse_callback(self, payload):
        # Stripe confirmation arrives through the authenticated return redirect
        return self.parse_return(payload)
