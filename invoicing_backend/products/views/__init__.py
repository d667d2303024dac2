# products/views/__init__.py

"""
Products views package exports.
"""

from .product import ProductViewSet
from .stock_movement import StockMovementViewSet

__all__ = [
    "ProductViewSet",
    "StockMovementViewSet",
]
