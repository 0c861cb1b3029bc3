import unittest
from decimal import Decimal
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import stripe

from app.errors import ConfigurationError, GatewayUnavailable, InvalidSignature, ValidationError
from app.models import Order
from app.psp.adapter import PaymentMethod, PaymentOutcome
from app.psp.cod_adapter import CodAdapter
from app.psp.dispatcher import build_dispatcher
from app.psp.signature import generate_signature

from helpers import ADDRESS, MERCHANT_ID, PASSPHRASE, PAYFAST_URL, make_settings, signed_notification


def make_order(method=PaymentMethod.PAYFAST, **overrides) -> Order:
    values = dict(
        id="0f1e2d3c4b5a69788796a5b4c3d2e1f0",
        user_id="user-1",
        items=[
            {"product_id": "prod-shirt", "name": "Cotton Shirt", "price": "500.00", "quantity": 2, "size": "M"},
            {"product_id": "prod-mug", "name": "Coffee Mug", "price": "125.50", "quantity": 1, "size": None},
        ],
        address=dict(ADDRESS),
        amount=Decimal("1375.50"),
        delivery_charge=Decimal("250.00"),
        currency="inr",
        payment_method=method.value,
        payment_state="pending",
    )
    values.update(overrides)
    return Order(**values)


class TestDispatcher(unittest.TestCase):
    def test_one_adapter_per_method(self):
        dispatcher = build_dispatcher(make_settings())
        for method in PaymentMethod:
            self.assertIs(dispatcher.get_adapter(method.value).method, method)

    def test_unknown_method_rejected(self):
        dispatcher = build_dispatcher(make_settings())
        with self.assertRaises(ValidationError):
            dispatcher.get_adapter("paypal")


class TestCodAdapter(unittest.TestCase):
    def test_initiate_is_immediate(self):
        target = CodAdapter().initiate(make_order(PaymentMethod.COD))
        self.assertTrue(target.is_accepted)
        self.assertIsNone(target.url)

    def test_has_no_callbacks(self):
        with self.assertRaises(ValidationError):
            CodAdapter().parse_return({"success": "true"})
        with self.assertRaises(ValidationError):
            CodAdapter().parse_callback({})


class TestStripeCheckoutAdapter(unittest.TestCase):
    def setUp(self):
        self.adapter = build_dispatcher(make_settings()).get_adapter(PaymentMethod.STRIPE)
        self.order = make_order(PaymentMethod.STRIPE)

    def test_line_items_include_delivery(self):
        items = self.adapter.build_line_items(self.order)
        self.assertEqual(len(items), 3)
        self.assertEqual(items[0]["price_data"]["unit_amount"], 50000)
        self.assertEqual(items[0]["quantity"], 2)
        self.assertEqual(items[1]["price_data"]["unit_amount"], 12550)
        self.assertEqual(items[2]["price_data"]["product_data"]["name"], "Delivery Charges")
        self.assertEqual(items[2]["price_data"]["unit_amount"], 25000)
        self.assertEqual(items[2]["quantity"], 1)

    @patch("app.psp.stripe_adapter.stripe.checkout.Session.create")
    def test_initiate_returns_session_url(self, create):
        create.return_value = MagicMock(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1")

        target = self.adapter.initiate(self.order)

        self.assertEqual(target.kind, "redirect")
        self.assertEqual(target.url, "https://checkout.stripe.com/c/pay/cs_test_1")
        self.assertEqual(target.session_id, "cs_test_1")
        kwargs = create.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "sk_test_123")
        self.assertEqual(kwargs["mode"], "payment")
        self.assertEqual(
            kwargs["success_url"],
            f"http://shop.test/verify?success=true&orderId={self.order.id}&payment_method=stripe",
        )
        self.assertIn("success=false", kwargs["cancel_url"])
        self.assertEqual(kwargs["customer_email"], ADDRESS["email"])

    @patch("app.psp.stripe_adapter.stripe.checkout.Session.create")
    def test_provider_error_is_gateway_unavailable(self, create):
        create.side_effect = stripe.StripeError("connection reset")
        with self.assertRaises(GatewayUnavailable):
            self.adapter.initiate(self.order)

    def test_missing_key_is_configuration_error(self):
        adapter = build_dispatcher(make_settings(STRIPE_SECRET_KEY=None)).get_adapter(PaymentMethod.STRIPE)
        self.assertFalse(adapter.is_configured())
        with self.assertRaises(ConfigurationError):
            adapter.initiate(self.order)

    def test_return_flag(self):
        self.assertEqual(self.adapter.parse_return({"success": "true", "orderId": "x"}).outcome,
                         PaymentOutcome.COMPLETED)
        self.assertEqual(self.adapter.parse_return({"success": "false"}).outcome, PaymentOutcome.FAILED)
        self.assertEqual(self.adapter.parse_return({"success": True}).outcome, PaymentOutcome.COMPLETED)
        self.assertEqual(self.adapter.parse_return({}).outcome, PaymentOutcome.FAILED)


class TestPayFastAdapter(unittest.TestCase):
    def setUp(self):
        self.adapter = build_dispatcher(make_settings()).get_adapter(PaymentMethod.PAYFAST)
        self.order = make_order()

    def test_payment_data(self):
        data = self.adapter.build_payment_data(self.order)
        self.assertEqual(data["merchant_id"], MERCHANT_ID)
        self.assertEqual(data["amount"], "1375.50")
        self.assertEqual(data["m_payment_id"], self.order.id)
        self.assertEqual(data["cell_number"], "27821234567")
        self.assertEqual(data["notify_url"], "http://api.shop.test/api/order/payfast/notify")
        self.assertEqual(data["cancel_url"], "http://shop.test/cart")
        self.assertEqual(data["custom_str1"], "user-1")

    def test_initiate_builds_signed_url(self):
        target = self.adapter.initiate(self.order)
        self.assertTrue(target.url.startswith(PAYFAST_URL + "?merchant_id=" + MERCHANT_ID))

        query = {k: v[0] for k, v in parse_qs(urlsplit(target.url).query).items()}
        expected = generate_signature(self.adapter.build_payment_data(self.order), PASSPHRASE)
        self.assertEqual(query["signature"], expected)
        self.assertNotIn("passphrase", query)

    def test_initiate_is_deterministic(self):
        self.assertEqual(self.adapter.initiate(self.order).url, self.adapter.initiate(self.order).url)

    def test_unconfigured(self):
        adapter = build_dispatcher(make_settings(PAYFAST_BASE_URL=None)).get_adapter(PaymentMethod.PAYFAST)
        with self.assertRaises(ConfigurationError):
            adapter.initiate(self.order)

    def test_parse_complete_notification(self):
        result = self.adapter.parse_callback(signed_notification(self.order.id, "1375.50"))
        self.assertEqual(result.merchant_reference, self.order.id)
        self.assertEqual(result.outcome, PaymentOutcome.COMPLETED)
        self.assertEqual(result.gateway_reference, "1089250")
        self.assertEqual(result.amount, Decimal("1375.50"))

    def test_status_mapping(self):
        cases = {"FAILED": PaymentOutcome.FAILED, "CANCELLED": PaymentOutcome.FAILED, "PENDING": PaymentOutcome.PENDING}
        for status, outcome in cases.items():
            with self.subTest(status=status):
                result = self.adapter.parse_callback(signed_notification(self.order.id, "1375.50", status=status))
                self.assertEqual(result.outcome, outcome)

    def test_tampered_amount_rejected(self):
        payload = signed_notification(self.order.id, "1375.50")
        payload["amount_gross"] = "1.00"
        with self.assertRaises(InvalidSignature):
            self.adapter.parse_callback(payload)

    def test_unsigned_payload_rejected(self):
        payload = signed_notification(self.order.id, "1375.50")
        del payload["signature"]
        with self.assertRaises(InvalidSignature):
            self.adapter.parse_callback(payload)

    def test_wrong_passphrase_rejected(self):
        with self.assertRaises(InvalidSignature):
            self.adapter.parse_callback(signed_notification(self.order.id, "1375.50", passphrase="guess"))

    def test_other_merchant_rejected(self):
        payload = signed_notification(self.order.id, "1375.50", merchant_id="99999999")
        with self.assertRaises(InvalidSignature):
            self.adapter.parse_callback(payload)

    def test_missing_reference_rejected(self):
        payload = signed_notification("", "1375.50")
        with self.assertRaises(ValidationError):
            self.adapter.parse_callback(payload)

    def test_non_numeric_amount_rejected(self):
        for amount in ("abc", "NaN"):
            with self.subTest(amount=amount):
                with self.assertRaises(ValidationError):
                    self.adapter.parse_callback(signed_notification(self.order.id, amount))


if __name__ == "__main__":
    unittest.main()
