"""
Order placement and payment reconciliation.

State machine: PENDING -> {PAID, FAILED, CANCELLED}. Transitions go through
OrderStore's conditional updates, so the first transition to PAID wins and
repeated confirmations of PAID are harmless no-ops.
"""
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping, Optional, Union

from app.errors import OrderAlreadyFinalized, OrderNotFound, ValidationError
from app.logging_config import get_logger
from app.models import Order, PaymentState
from app.psp.adapter import PaymentMethod, PaymentTarget
from app.psp.dispatcher import PaymentDispatcher
from .cart_service import CartStore
from .catalog import ProductCatalog
from .order_store import OrderStore
from .pricing_service import calculate_order_total, format_amount, to_decimal

logger = get_logger(__name__)

REDIRECT_ADDRESS_FIELDS = ("email", "first_name", "last_name")


@dataclass
class PlacementResult:
    order: Order
    target: PaymentTarget


@dataclass
class PaymentResult:
    order: Order
    success: bool
    transitioned: bool


class OrderService:
    def __init__(
        self,
        store: OrderStore,
        dispatcher: PaymentDispatcher,
        catalog: ProductCatalog,
        carts: CartStore,
        delivery_charge: Union[Decimal, int, str],
        currency: str,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.catalog = catalog
        self.carts = carts
        self.delivery_charge = to_decimal(delivery_charge)
        self.currency = currency

    # ------------------------------------------------------
    # Placement
    # ------------------------------------------------------

    def _snapshot_items(self, items: Iterable[Mapping[str, Any]]) -> List[dict]:
        items = list(items or [])
        if not items:
            raise ValidationError("Order must contain at least one item")

        products = self.catalog.get_products(str(item.get("product_id") or "") for item in items)
        snapshots = []
        for item in items:
            product_id = str(item.get("product_id") or "")
            product = products.get(product_id)
            if product is None:
                raise ValidationError(f"Unknown product: {product_id or '<missing>'}")

            quantity = item.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise ValidationError(f"Invalid quantity for product {product_id}")

            size = item.get("size") or None
            if product.sizes and size not in product.sizes:
                raise ValidationError(f"Size {size!r} is not available for product {product_id}")

            snapshots.append({
                "product_id": product.id,
                "name": product.name,
                "price": format_amount(product.price),
                "quantity": quantity,
                "size": size,
                "image": product.image,
            })
        return snapshots

    @staticmethod
    def _validate_address(address: Any, method: PaymentMethod) -> dict:
        if not isinstance(address, Mapping):
            raise ValidationError("Address is required")
        if method.is_redirect:
            missing = [f for f in REDIRECT_ADDRESS_FIELDS if not str(address.get(f) or "").strip()]
            if missing:
                raise ValidationError(f"Address is missing required fields: {', '.join(missing)}")
        return dict(address)

    def _check_amount(self, amount: Any, expected: Decimal) -> None:
        try:
            client_amount = to_decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError("Order amount is not a number")
        if not client_amount.is_finite():
            raise ValidationError("Order amount is not a number")
        if client_amount <= 0:
            raise ValidationError("Order amount must be positive")
        if client_amount != expected:
            raise ValidationError(
                f"Order amount {format_amount(client_amount)} does not match total {format_amount(expected)}"
            )

    def create_order(
        self,
        user_id: str,
        items: Iterable[Mapping[str, Any]],
        address: Mapping[str, Any],
        amount: Any,
        method: Union[str, PaymentMethod],
    ) -> Order:
        """
        Validate input and persist a PENDING order.

        The stored amount is recomputed from catalog prices; a client amount
        that disagrees is rejected. Cash on delivery orders clear the cart
        straight away.

        Raises:
            ValidationError: Bad items, address, amount or method
            ConfigurationError: The method's gateway is not configured
        """
        adapter = self.dispatcher.get_adapter(method)
        snapshots = self._snapshot_items(items)
        contact = self._validate_address(address, adapter.method)
        expected = calculate_order_total(snapshots, self.delivery_charge)
        self._check_amount(amount, expected)
        adapter.ensure_configured()

        order = self.store.add(Order(
            id=uuid.uuid4().hex,
            user_id=str(user_id),
            items=snapshots,
            address=contact,
            amount=expected,
            delivery_charge=self.delivery_charge,
            currency=self.currency,
            payment_method=adapter.method.value,
            payment_state=PaymentState.PENDING.value,
        ))
        logger.info(
            "order_created",
            order_id=order.id,
            user_id=order.user_id,
            payment_method=order.payment_method,
            amount=format_amount(expected),
        )

        if adapter.method is PaymentMethod.COD:
            self._clear_cart_once(order.id, order.user_id)
        return order

    def initiate_payment(self, order: Order) -> PaymentTarget:
        """
        Ask the order's adapter for a payment target.

        Raises:
            GatewayUnavailable: Provider call failed; the order stays PENDING
        """
        adapter = self.dispatcher.get_adapter(order.payment_method)
        target = adapter.initiate(order)
        if target.session_id:
            self.store.record_gateway_reference(order.id, target.session_id)
        return target

    def place_order(self, user_id, items, address, amount, method) -> PlacementResult:
        order = self.create_order(user_id, items, address, amount, method)
        try:
            target = self.initiate_payment(order)
        except Exception:
            logger.warning("payment_initiation_failed", order_id=order.id, payment_method=order.payment_method)
            raise
        return PlacementResult(order=order, target=target)

    # ------------------------------------------------------
    # Transitions
    # ------------------------------------------------------

    def _clear_cart_once(self, order_id: str, user_id: str) -> None:
        if self.store.claim_cart_clear(order_id):
            self.carts.clear(user_id)

    def _settle_paid(self, order_id: str, gateway_reference: Optional[str] = None) -> bool:
        """PENDING -> PAID. Returns False if it was already PAID."""
        if self.store.mark_paid(order_id, gateway_reference):
            logger.info("order_paid", order_id=order_id, gateway_reference=gateway_reference)
            return True

        current = self.store.get(order_id, include_voided=True)
        if current is None:
            raise OrderNotFound(order_id)
        if current.payment_state == PaymentState.PAID.value:
            logger.info("order_already_paid", order_id=order_id)
            return False
        raise OrderAlreadyFinalized(order_id, current.payment_state)

    def _get_user_order(self, order_id: str, user_id: str) -> Order:
        order = self.store.get(order_id)
        if order is None or order.user_id != str(user_id):
            raise OrderNotFound(order_id)
        return order

    def confirm_verification(self, order_id: str, user_id: str, success: bool) -> PaymentResult:
        """
        Apply the outcome reported by the shopper's return redirect.

        success=True marks the order PAID (idempotent) and clears the cart once.
        success=False voids a PENDING order; afterwards the order is gone for
        the user and further calls raise OrderNotFound.
        """
        order = self._get_user_order(order_id, user_id)

        if success:
            transitioned = self._settle_paid(order_id)
            self._clear_cart_once(order_id, order.user_id)
            return PaymentResult(order=self.store.get(order_id), success=True, transitioned=transitioned)

        if order.payment_state != PaymentState.PENDING.value:
            raise OrderAlreadyFinalized(order_id, order.payment_state)

        if not self.store.void(order_id):
            current = self.store.get(order_id, include_voided=True)
            if current is None or current.payment_state == PaymentState.CANCELLED.value:
                raise OrderNotFound(order_id)
            raise OrderAlreadyFinalized(order_id, current.payment_state)

        logger.info("order_cancelled", order_id=order_id, user_id=order.user_id)
        return PaymentResult(
            order=self.store.get(order_id, include_voided=True),
            success=False,
            transitioned=True,
        )

    def verify_return(
        self,
        order_id: str,
        user_id: str,
        method: Union[str, PaymentMethod],
        params: Mapping[str, Any],
    ) -> PaymentResult:
        """Read the return parameters with the method's adapter, then confirm."""
        adapter = self.dispatcher.get_adapter(method)
        order = self._get_user_order(order_id, user_id)
        if order.payment_method != adapter.method.value:
            raise ValidationError("Payment method does not match the order")
        result = adapter.parse_return(params)
        return self.confirm_verification(order_id, user_id, result.completed)

    def apply_notification(self, payload: Mapping[str, Any]) -> PaymentResult:
        """
        Handle a server-to-server PayFast notification.

        Only a COMPLETE status moves the order (to PAID, recording the
        provider's payment id). Any other status leaves it PENDING since
        notifications are retried and may report intermediate states.

        Raises:
            InvalidSignature: Payload failed verification; nothing changes
            OrderNotFound: Merchant reference unknown
            OrderAlreadyFinalized: Completion arrived for a voided order
        """
        adapter = self.dispatcher.get_adapter(PaymentMethod.PAYFAST)
        result = adapter.parse_callback(payload)

        order = self.store.get(result.merchant_reference, include_voided=True)
        if order is None:
            raise OrderNotFound(result.merchant_reference)
        if order.payment_method != adapter.method.value:
            raise ValidationError("Notification does not belong to a PayFast order")
        if result.amount is not None and result.amount != to_decimal(order.amount):
            raise ValidationError(
                f"Notified amount {format_amount(result.amount)} does not match order total"
            )

        if not result.completed:
            logger.info(
                "notification_not_complete",
                order_id=order.id,
                payment_status=result.payment_status,
            )
            return PaymentResult(order=order, success=False, transitioned=False)

        transitioned = self._settle_paid(order.id, result.gateway_reference)
        return PaymentResult(
            order=self.store.get(order.id, include_voided=True),
            success=True,
            transitioned=transitioned,
        )

    # ------------------------------------------------------
    # Listings
    # ------------------------------------------------------

    def list_orders(self) -> List[Order]:
        return self.store.list_all()

    def list_user_orders(self, user_id: str) -> List[Order]:
        return self.store.list_for_user(str(user_id))
