"""
Domain errors raised by the order/payment core.

Each error carries the HTTP status the API layer answers with; the
translation itself lives in app.main.
"""


class OrderError(Exception):
    """Base class for order/payment failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderError):
    """Malformed or incomplete order input. Rejected before any persistence."""

    status_code = 400


class ConfigurationError(OrderError):
    """Gateway credentials or URLs are missing."""

    status_code = 503


class InvalidSignature(OrderError):
    """Inbound notification failed signature verification."""

    status_code = 400


class OrderNotFound(OrderError):
    status_code = 404

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class OrderAlreadyFinalized(OrderError):
    """Transition conflicts with a terminal state. Answered benignly."""

    status_code = 200

    def __init__(self, order_id: str, state: str):
        super().__init__(f"Order {order_id} is already {state}")
        self.order_id = order_id
        self.state = state


class GatewayUnavailable(OrderError):
    """Outbound call to the payment provider failed. The order stays pending."""

    status_code = 502
