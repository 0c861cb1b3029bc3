"""Cash on delivery: nothing to collect electronically."""
from .adapter import PaymentAdapter, PaymentMethod, PaymentTarget


class CodAdapter(PaymentAdapter):
    """Orders are accepted immediately; cash is collected by the courier."""

    method = PaymentMethod.COD

    def initiate(self, order) -> PaymentTarget:
        return PaymentTarget.accepted()
