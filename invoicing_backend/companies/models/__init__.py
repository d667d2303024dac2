"""
PATH: companies/models/__init__.py

Companies models export surface.
"""

from .company import Company
from .party import Client, Supplier

__all__ = [
    "Company",
    "Client",
    "Supplier",
]
