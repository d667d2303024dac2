from .stock_effects import (
    StockEffectResult,
    StockError,
    StockInsufficientError,
    StockShortage,
    apply_document_stock_effect,
    record_manual_movement,
    reverse_document_stock_effect,
)

__all__ = [
    "StockEffectResult",
    "StockError",
    "StockInsufficientError",
    "StockShortage",
    "apply_document_stock_effect",
    "record_manual_movement",
    "reverse_document_stock_effect",
]
