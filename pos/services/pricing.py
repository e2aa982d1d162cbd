from typing import Iterable

from pos.models.product import PricedLineItem

GRAMS_PER_KILOGRAM = 1000


def line_price(item: PricedLineItem) -> float:
    """Price of one cart line. Weight-sold prices are per kilogram, quantity in grams."""
    if item.sold_by_weight:
        return (item.unit_price / GRAMS_PER_KILOGRAM) * item.quantity
    return item.unit_price * item.quantity


def cart_subtotal(items: Iterable[PricedLineItem]) -> float:
    subtotal = 0.0
    for item in items:
        subtotal += line_price(item)
    return subtotal
