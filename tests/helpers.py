"""Shared fixtures-by-function for the unittest-style test cases."""
from decimal import Decimal
from typing import Dict, Iterable, List

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.db import Base
from app import models
from app.psp.dispatcher import build_dispatcher
from app.psp.signature import generate_signature
from app.services.catalog import ProductSnapshot
from app.services.order_service import OrderService
from app.services.order_store import OrderStore

MERCHANT_ID = "10000100"
MERCHANT_KEY = "46f0cd694581a"
PASSPHRASE = "jt7NOE43FZPn"
PAYFAST_URL = "https://sandbox.payfast.co.za/eng/process"

SHIRT = ProductSnapshot(id="prod-shirt", name="Cotton Shirt", price=Decimal("500"), sizes=["S", "M", "L"])
MUG = ProductSnapshot(id="prod-mug", name="Coffee Mug", price=Decimal("125.50"))

ADDRESS = {
    "first_name": "Thandi",
    "last_name": "Nkosi",
    "email": "thandi@example.com",
    "phone": "082 123 4567",
    "street": "1 Long Street",
    "city": "Cape Town",
    "country": "ZA",
}


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL="sqlite://",
        FRONTEND_URL="http://shop.test",
        BACKEND_URL="http://api.shop.test",
        STRIPE_SECRET_KEY="sk_test_123",
        PAYFAST_MERCHANT_ID=MERCHANT_ID,
        PAYFAST_MERCHANT_KEY=MERCHANT_KEY,
        PAYFAST_PASSPHRASE=PASSPHRASE,
        PAYFAST_BASE_URL=PAYFAST_URL,
        DELIVERY_CHARGE=Decimal("250"),
    )
    values.update(overrides)
    return Settings(**values)


def make_session_factory(url: str = "sqlite://"):
    if url == "sqlite://":
        engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})

        # Writers take the lock at BEGIN and wait on the busy timeout
        @event.listens_for(engine, "connect")
        def _autocommit_driver(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


class StaticCatalog:
    def __init__(self, products: Iterable[ProductSnapshot] = (SHIRT, MUG)):
        self.products = {p.id: p for p in products}

    def get_products(self, product_ids) -> Dict[str, ProductSnapshot]:
        return {pid: self.products[pid] for pid in product_ids if pid in self.products}


class RecordingCarts:
    def __init__(self):
        self.cleared: List[str] = []

    def clear(self, user_id: str) -> None:
        self.cleared.append(user_id)


def make_service(db, settings=None, carts=None, catalog=None) -> OrderService:
    settings = settings or make_settings()
    return OrderService(
        store=OrderStore(db),
        dispatcher=build_dispatcher(settings),
        catalog=catalog or StaticCatalog(),
        carts=carts if carts is not None else RecordingCarts(),
        delivery_charge=settings.DELIVERY_CHARGE,
        currency=settings.CURRENCY,
    )


def shirt_line(quantity: int = 1, size: str = "M") -> dict:
    return {"product_id": SHIRT.id, "quantity": quantity, "size": size}


def signed_notification(order_id: str, amount: str, status: str = "COMPLETE",
                        passphrase: str = PASSPHRASE, **overrides) -> Dict[str, str]:
    payload = {
        "m_payment_id": order_id,
        "pf_payment_id": "1089250",
        "payment_status": status,
        "item_name": "Order Payment",
        "item_description": "Purchase from our store",
        "amount_gross": amount,
        "amount_fee": "-17.25",
        "amount_net": "732.75",
        "custom_str1": "user-1",
        "name_first": "Thandi",
        "name_last": "Nkosi",
        "email_address": "thandi@example.com",
        "merchant_id": MERCHANT_ID,
    }
    payload.update(overrides)
    payload["signature"] = generate_signature(payload, passphrase)
    return payload


def seed_catalog(db) -> None:
    db.add_all([
        models.Product(id=SHIRT.id, name=SHIRT.name, price=SHIRT.price, sizes=list(SHIRT.sizes)),
        models.Product(id=MUG.id, name=MUG.name, price=MUG.price, sizes=[]),
        models.Product(id="prod-retired", name="Old Hat", price=Decimal("99"), sizes=[], is_active=False),
    ])
    db.commit()
