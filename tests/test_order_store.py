import os
import tempfile
import threading
import unittest
from decimal import Decimal

from app.models import Order, PaymentState
from app.services.order_store import OrderStore

from helpers import RecordingCarts, make_service, make_session_factory, signed_notification


def new_order(order_id: str = "a" * 32, user_id: str = "user-1", method: str = "payfast") -> Order:
    return Order(
        id=order_id,
        user_id=user_id,
        items=[{"product_id": "prod-shirt", "name": "Cotton Shirt", "price": "500.00", "quantity": 1, "size": "M"}],
        address={},
        amount=Decimal("750.00"),
        delivery_charge=Decimal("250.00"),
        currency="inr",
        payment_method=method,
        payment_state=PaymentState.PENDING.value,
    )


class TestOrderStore(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.store = OrderStore(self.db)
        self.order = self.store.add(new_order())

    def tearDown(self):
        self.db.close()

    def test_mark_paid_only_from_pending(self):
        self.assertTrue(self.store.mark_paid(self.order.id, "pf-1"))
        self.assertFalse(self.store.mark_paid(self.order.id, "pf-2"))

        order = self.store.get(self.order.id)
        self.assertEqual(order.payment_state, PaymentState.PAID.value)
        self.assertEqual(order.gateway_reference, "pf-1")

    def test_paid_order_cannot_be_voided(self):
        self.store.mark_paid(self.order.id)
        self.assertFalse(self.store.void(self.order.id))
        self.assertFalse(self.store.record_gateway_reference(self.order.id, "cs_late"))

    def test_voided_order_hidden(self):
        self.assertTrue(self.store.void(self.order.id))
        self.assertFalse(self.store.mark_paid(self.order.id))

        self.assertIsNone(self.store.get(self.order.id))
        voided = self.store.get(self.order.id, include_voided=True)
        self.assertTrue(voided.is_voided)
        self.assertIsNotNone(voided.cancelled_at)
        self.assertEqual(self.store.list_for_user("user-1"), [])
        self.assertEqual(len(self.store.list_all()), 1)

    def test_cart_clear_claimed_once(self):
        self.assertTrue(self.store.claim_cart_clear(self.order.id))
        self.assertFalse(self.store.claim_cart_clear(self.order.id))
        self.assertFalse(self.store.claim_cart_clear("missing"))

    def test_listings_scoped_to_user(self):
        self.store.add(new_order("b" * 32, user_id="user-2"))
        self.assertEqual([o.id for o in self.store.list_for_user("user-2")], ["b" * 32])
        self.assertEqual(len(self.store.list_all()), 2)


class TestConcurrentTransitions(unittest.TestCase):
    """Separate sessions against one file database, racing on the same row."""

    workers = 8

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        url = "sqlite:///" + os.path.join(self.tmpdir.name, "orders.db")
        self.Session = make_session_factory(url)
        with self.Session() as db:
            OrderStore(db).add(new_order())

    def tearDown(self):
        self.Session.kw["bind"].dispose()
        self.tmpdir.cleanup()

    def race(self, *actions):
        barrier = threading.Barrier(len(actions))
        results = [None] * len(actions)

        def run(index, action):
            with self.Session() as db:
                barrier.wait()
                results[index] = action(OrderStore(db))

        threads = [threading.Thread(target=run, args=(i, a)) for i, a in enumerate(actions)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def final_state(self) -> str:
        with self.Session() as db:
            return OrderStore(db).get("a" * 32, include_voided=True).payment_state

    def test_single_winner_for_paid(self):
        results = self.race(*[lambda store: store.mark_paid("a" * 32)] * self.workers)
        self.assertEqual(results.count(True), 1)
        self.assertEqual(self.final_state(), PaymentState.PAID.value)

    def test_pay_and_void_are_exclusive(self):
        results = self.race(
            lambda store: store.mark_paid("a" * 32),
            lambda store: store.void("a" * 32),
        )
        self.assertEqual(results.count(True), 1)
        expected = PaymentState.PAID.value if results[0] else PaymentState.CANCELLED.value
        self.assertEqual(self.final_state(), expected)

    def test_cart_clear_single_winner(self):
        results = self.race(*[lambda store: store.claim_cart_clear("a" * 32)] * self.workers)
        self.assertEqual(results.count(True), 1)

    def test_verification_and_notification_race(self):
        carts = RecordingCarts()
        results = self.race(
            lambda store: make_service(store.db, carts=carts).confirm_verification("a" * 32, "user-1", True),
            lambda store: make_service(store.db, carts=carts).apply_notification(
                signed_notification("a" * 32, "750.00")
            ),
        )
        self.assertEqual([r.transitioned for r in results].count(True), 1)
        self.assertTrue(all(r.success for r in results))
        self.assertEqual(self.final_state(), PaymentState.PAID.value)
        self.assertEqual(carts.cleared, ["user-1"])


if __name__ == "__main__":
    unittest.main()
