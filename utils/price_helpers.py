"""
Price helpers for callers rendering or ordering product results
"""

from typing import Iterable, List

from services.models import Product

PRICE_NOT_AVAILABLE = "Price not available"


def price_label(product: Product) -> str:
    """Display price, or the "not available" text when the match had none"""
    if product.price is None or not product.price.display_value:
        return PRICE_NOT_AVAILABLE
    return product.price.display_value


def sort_by_price(products: Iterable[Product], descending: bool = False) -> List[Product]:
    """
    Order products by numeric price.
    Products without a numeric price go last, keeping their original relative order.
    """
    products = list(products)
    priced = [p for p in products if p.price is not None and p.price.numeric_value is not None]
    unpriced = [p for p in products if p.price is None or p.price.numeric_value is None]
    priced.sort(key=lambda p: p.price.numeric_value, reverse=descending)
    return priced + unpriced
