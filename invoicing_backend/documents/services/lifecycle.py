"""
DOCUMENT LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed conversions between document kinds
and the ONLY allowed status transitions.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from documents.models import Document

from .exceptions import (
    CreditNoteReferenceError,
    InvalidConversionError,
    InvalidStatusTransitionError,
)

MODULE_SALES = "sales"
MODULE_PURCHASES = "purchases"

STOCK_ENTRY = "entry"
STOCK_EXIT = "exit"


# ============================================================
# KIND CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class KindConfig:
    kind: str
    label: str
    prefix: str
    module: str
    converts_to: frozenset = frozenset()
    stock_effect: Optional[str] = None
    credits_kind: Optional[str] = None   # credit notes: the invoice kind they credit
    requires_due_date: bool = False

    @property
    def is_credit_note(self) -> bool:
        return self.credits_kind is not None

    @property
    def is_invoice(self) -> bool:
        return self.requires_due_date


KIND_CONFIG: dict[str, KindConfig] = {
    # ----- sales -----
    Document.KIND_QUOTE: KindConfig(
        kind=Document.KIND_QUOTE,
        label="Devis",
        prefix="DEV",
        module=MODULE_SALES,
        converts_to=frozenset({Document.KIND_SALE_ORDER}),
    ),
    Document.KIND_SALE_ORDER: KindConfig(
        kind=Document.KIND_SALE_ORDER,
        label="Bon de commande",
        prefix="BC",
        module=MODULE_SALES,
        converts_to=frozenset({Document.KIND_SALE_DELIVERY}),
    ),
    Document.KIND_SALE_DELIVERY: KindConfig(
        kind=Document.KIND_SALE_DELIVERY,
        label="Bon de livraison",
        prefix="BL",
        module=MODULE_SALES,
        converts_to=frozenset({Document.KIND_SALE_INVOICE}),
    ),
    Document.KIND_SALE_INVOICE: KindConfig(
        kind=Document.KIND_SALE_INVOICE,
        label="Facture",
        prefix="FAC",
        module=MODULE_SALES,
        converts_to=frozenset({Document.KIND_SALE_CREDIT_NOTE}),
        stock_effect=STOCK_EXIT,
        requires_due_date=True,
    ),
    Document.KIND_SALE_CREDIT_NOTE: KindConfig(
        kind=Document.KIND_SALE_CREDIT_NOTE,
        label="Facture d'avoir",
        prefix="AV",
        module=MODULE_SALES,
        stock_effect=STOCK_ENTRY,
        credits_kind=Document.KIND_SALE_INVOICE,
    ),
    # ----- purchases -----
    Document.KIND_PURCHASE_ORDER: KindConfig(
        kind=Document.KIND_PURCHASE_ORDER,
        label="Commande fournisseur",
        prefix="BC-A",
        module=MODULE_PURCHASES,
        converts_to=frozenset({Document.KIND_PURCHASE_DELIVERY}),
    ),
    Document.KIND_PURCHASE_DELIVERY: KindConfig(
        kind=Document.KIND_PURCHASE_DELIVERY,
        label="Bon de réception",
        prefix="BL-A",
        module=MODULE_PURCHASES,
        converts_to=frozenset({Document.KIND_PURCHASE_INVOICE}),
    ),
    Document.KIND_PURCHASE_INVOICE: KindConfig(
        kind=Document.KIND_PURCHASE_INVOICE,
        label="Facture d'achat",
        prefix="FAC-A",
        module=MODULE_PURCHASES,
        converts_to=frozenset({Document.KIND_PURCHASE_CREDIT_NOTE}),
        stock_effect=STOCK_ENTRY,
        requires_due_date=True,
    ),
    Document.KIND_PURCHASE_CREDIT_NOTE: KindConfig(
        kind=Document.KIND_PURCHASE_CREDIT_NOTE,
        label="Avoir fournisseur",
        prefix="AV-A",
        module=MODULE_PURCHASES,
        stock_effect=STOCK_EXIT,
        credits_kind=Document.KIND_PURCHASE_INVOICE,
    ),
}


def get_kind_config(kind: str) -> KindConfig:
    try:
        return KIND_CONFIG[kind]
    except KeyError:
        raise InvalidConversionError(f"Unknown document kind '{kind}'") from None


def is_credit_note_kind(kind: str) -> bool:
    config = KIND_CONFIG.get(kind)
    return bool(config and config.is_credit_note)


def is_invoice_kind(kind: str) -> bool:
    config = KIND_CONFIG.get(kind)
    return bool(config and config.is_invoice)


def is_purchase_kind(kind: str) -> bool:
    config = KIND_CONFIG.get(kind)
    return bool(config and config.module == MODULE_PURCHASES)


def stock_effect_for(kind: str, status: Optional[str] = None) -> Optional[str]:
    """
    entry / exit / None. A document parked in purchase_quote never moves stock.
    """
    if status == Document.STATUS_PURCHASE_QUOTE:
        return None
    config = KIND_CONFIG.get(kind)
    return config.stock_effect if config else None


# ============================================================
# CONVERSION GRAPH
# ============================================================

def can_convert(*, from_kind: str, to_kind: str) -> bool:
    config = KIND_CONFIG.get(from_kind)
    if config is None:
        return False
    return to_kind in config.converts_to


def validate_conversion(*, document: Document, target_kind: str):
    if document.status == Document.STATUS_CANCELLED:
        raise InvalidConversionError(
            f"Document {document.number} is cancelled and cannot be converted"
        )

    if not can_convert(from_kind=document.kind, to_kind=target_kind):
        raise InvalidConversionError(
            f"Document {document.number} ({document.kind}) cannot be "
            f"converted to '{target_kind}'"
        )


def validate_credit_note_source(*, kind: str, source: Optional[Document]):
    """
    Credit notes reference exactly one invoice of the matching side;
    every other kind references none.
    """
    config = get_kind_config(kind)

    if not config.is_credit_note:
        if source is not None:
            raise CreditNoteReferenceError(
                f"Only credit notes may reference a source invoice (kind '{kind}')"
            )
        return

    if source is None:
        raise CreditNoteReferenceError("A credit note must reference a source invoice")

    if source.kind != config.credits_kind:
        raise CreditNoteReferenceError(
            f"A {kind} must reference a {config.credits_kind}, got {source.kind}"
        )

    if source.status in {Document.STATUS_DRAFT, Document.STATUS_CANCELLED}:
        raise CreditNoteReferenceError(
            f"Invoice {source.number} is {source.status} and cannot be credited"
        )


# ============================================================
# STATUS MACHINE
# ============================================================

TERMINAL_STATES = {
    Document.STATUS_PAID,
    Document.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    Document.STATUS_DRAFT: {
        Document.STATUS_SENT,
        Document.STATUS_CANCELLED,
        Document.STATUS_PURCHASE_QUOTE,
    },
    Document.STATUS_SENT: {
        Document.STATUS_PAID,
        Document.STATUS_OVERDUE,
        Document.STATUS_CANCELLED,
    },
    Document.STATUS_OVERDUE: {
        Document.STATUS_PAID,
        Document.STATUS_CANCELLED,
    },
    Document.STATUS_PURCHASE_QUOTE: {
        Document.STATUS_CANCELLED,
    },
}

INVOICE_ONLY_STATES = {
    Document.STATUS_PAID,
    Document.STATUS_OVERDUE,
}

PURCHASE_ONLY_STATES = {
    Document.STATUS_PURCHASE_QUOTE,
}


def status_allowed_for_kind(*, kind: str, status: str) -> bool:
    if status in INVOICE_ONLY_STATES and not is_invoice_kind(kind):
        return False
    if status in PURCHASE_ONLY_STATES and not is_purchase_kind(kind):
        return False
    return status in dict(Document.STATUS_CHOICES)


def initial_statuses_for_kind(kind: str) -> set[str]:
    """Statuses a new document (create / convert) may start in."""
    statuses = {Document.STATUS_DRAFT}
    if is_purchase_kind(kind):
        statuses.add(Document.STATUS_PURCHASE_QUOTE)
    return statuses


def can_transition(*, kind: str, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    if not status_allowed_for_kind(kind=kind, status=to_status):
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_status_transition(*, document: Document, target_status: str):
    if not can_transition(
        kind=document.kind,
        from_status=document.status,
        to_status=target_status,
    ):
        raise InvalidStatusTransitionError(
            f"Document {document.number} ({document.kind}) cannot transition "
            f"from '{document.status}' to '{target_status}'"
        )
