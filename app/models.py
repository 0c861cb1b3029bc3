"""
SQLAlchemy models for the shop orders backend.

This file defines:
- Orders (the payment state machine's record)
- Users (external collaborator: only the cart snapshot is touched)
- Products (external collaborator: read-only price/name snapshot source)
- Notification Events (raw log of provider notifications)
"""
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, JSON, Numeric, Text, Index, func
)
from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentState(str, Enum):
    """Order payment lifecycle. Everything but PENDING is terminal."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


# =====================================================
# ORDER MODEL
# =====================================================

class Order(Base):
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)

    # Snapshots taken at placement time
    items = Column(JSON, nullable=False, default=list)     # [{product_id, name, price, quantity, size, image}]
    address = Column(JSON, nullable=False, default=dict)

    amount = Column(Numeric(12, 2), nullable=False)
    delivery_charge = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(8), nullable=False)

    payment_method = Column(String(16), nullable=False)   # cod / stripe / payfast
    payment_state = Column(String(16), nullable=False, default=PaymentState.PENDING.value, index=True)

    # Stripe checkout session id, or PayFast pf_payment_id once paid
    gateway_reference = Column(String(128), nullable=True, index=True)

    cart_cleared_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(),
                        onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_orders_user_created", "user_id", "created_at"),
    )

    @property
    def is_voided(self) -> bool:
        return self.payment_state == PaymentState.CANCELLED.value

    def __repr__(self):
        return f"<Order(id={self.id}, method={self.payment_method}, state={self.payment_state})>"


# =====================================================
# USER MODEL (cart owner)
# =====================================================

class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    name = Column(String(128), nullable=True)

    # {product_id: {size: quantity}}
    cart_data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# =====================================================
# PRODUCT MODEL (catalog)
# =====================================================

class Product(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    image = Column(String(512), nullable=True)
    sizes = Column(JSON, nullable=False, default=list)   # ["S", "M", "L"]
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# =====================================================
# NOTIFICATION EVENT MODEL
# =====================================================

class NotificationEvent(Base):
    __tablename__ = "notification_events"

    id = Column(Integer, primary_key=True)
    provider = Column(String(32), nullable=False)
    merchant_reference = Column(String(64), nullable=True, index=True)
    provider_reference = Column(String(128), nullable=True)
    payment_status = Column(String(32), nullable=True)

    payload = Column(JSON, nullable=True)
    status = Column(String(16), nullable=False, default="received")  # received/processed/rejected/failed
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
