from .product import ProductSerializer
from .stock_movement import ManualMovementSerializer, StockMovementSerializer

__all__ = [
    "ProductSerializer",
    "StockMovementSerializer",
    "ManualMovementSerializer",
]
