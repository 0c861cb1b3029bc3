from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Money values travel as strings/ints in JSON; normalize to 2dp Decimal."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Any) -> str:
    """Fixed 2-decimal string, e.g. 750 -> "750.00"."""
    return f"{to_decimal(value):.2f}"


def to_minor_units(value: Any) -> int:
    """Amount in the smallest currency unit (cents/paise) for card gateways."""
    return int((to_decimal(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def calculate_order_total(items: Iterable[Mapping[str, Any]], delivery_charge: Any) -> Decimal:
    """
    Sum of item subtotals plus the delivery charge.

    Args:
        items: Snapshots with "price" and "quantity"
        delivery_charge: Flat fee added once per order

    Returns:
        Order total quantized to cents
    """
    subtotal = sum(
        (to_decimal(item["price"]) * int(item["quantity"]) for item in items),
        Decimal("0"),
    )
    return to_decimal(subtotal + to_decimal(delivery_charge))
