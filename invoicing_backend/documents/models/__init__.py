from .document import Document
from .line_item import LineItem
from .sequence import DocumentSequence

__all__ = [
    "Document",
    "LineItem",
    "DocumentSequence",
]
