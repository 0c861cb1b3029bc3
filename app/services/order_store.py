"""
Order persistence with atomic state transitions.

Every transition out of PENDING is a single conditional UPDATE
(`... WHERE id = :id AND payment_state = 'pending'`); the affected row
count tells the caller whether it won. Concurrent attempts on the same
order therefore cannot both succeed.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models import Order, PaymentState, utcnow


class OrderStore:
    def __init__(self, db: Session):
        self.db = db

    def add(self, order: Order) -> Order:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def get(self, order_id: str, include_voided: bool = False) -> Optional[Order]:
        """Fetch an order. Voided (cancelled) orders are hidden unless asked for."""
        query = (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        if not include_voided:
            query = query.filter(Order.payment_state != PaymentState.CANCELLED.value)
        return query.first()

    def list_all(self) -> List[Order]:
        return self.db.query(Order).order_by(Order.created_at.desc()).all()

    def list_for_user(self, user_id: str) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(
                Order.user_id == user_id,
                Order.payment_state != PaymentState.CANCELLED.value,
            )
            .order_by(Order.created_at.desc())
            .all()
        )

    def _update_if_pending(self, order_id: str, values: dict) -> bool:
        values[Order.updated_at] = utcnow()
        count = (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.payment_state == PaymentState.PENDING.value)
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        return count == 1

    def mark_paid(self, order_id: str, gateway_reference: Optional[str] = None) -> bool:
        """PENDING -> PAID. Returns False when the order was not pending."""
        values = {
            Order.payment_state: PaymentState.PAID.value,
            Order.paid_at: utcnow(),
        }
        if gateway_reference:
            values[Order.gateway_reference] = gateway_reference
        return self._update_if_pending(order_id, values)

    def void(self, order_id: str) -> bool:
        """PENDING -> CANCELLED. The row is kept for audit but hidden from users."""
        return self._update_if_pending(order_id, {
            Order.payment_state: PaymentState.CANCELLED.value,
            Order.cancelled_at: utcnow(),
        })

    def record_gateway_reference(self, order_id: str, gateway_reference: str) -> bool:
        """Attach a provider session id while the order is still pending."""
        return self._update_if_pending(order_id, {Order.gateway_reference: gateway_reference})

    def claim_cart_clear(self, order_id: str) -> bool:
        """True exactly once per order: the caller that gets True clears the cart."""
        count = (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.cart_cleared_at.is_(None))
            .update({Order.cart_cleared_at: utcnow()}, synchronize_session=False)
        )
        self.db.commit()
        return count == 1
