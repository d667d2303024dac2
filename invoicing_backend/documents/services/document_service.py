# documents/services/document_service.py

"""
DOCUMENT SERVICE (DOMAIN-CONTROLLED)

SINGLE SOURCE OF TRUTH for:
- Document creation / update (totals ALWAYS recomputed here)
- Conversion along the kind graph (a NEW document per edge)
- Status transitions (cancellation reverses applied stock)
- Document numbering (row-locked sequence)

GUARANTEES:
- Every entry point is one transaction.atomic block: a domain error,
  a stock shortfall or a database error leaves nothing behind.
- Caller-supplied totals are ignored.
- A source document is never mutated by a conversion.
- Only draft and purchase_quote documents are editable, and only while
  they have no active downstream document and have not moved stock.
- Directly created documents move stock when they are sent; converted
  documents move stock when they are created.
- The TenantContext is passed explicitly; nothing reads ambient state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from companies.context import TenantContext
from companies.models import Client, Company, Supplier
from documents.models import Document, DocumentSequence, LineItem
from permissions.roles import (
    CAP_CREDIT_NOTES,
    CAP_DOCUMENTS_CANCEL,
    CAP_DOCUMENTS_CONVERT,
    CAP_PURCHASES_EDIT,
    CAP_SALES_EDIT,
)
from products.models import Product
from products.services.stock_effects import (
    StockEffectResult,
    apply_document_stock_effect,
    reverse_document_stock_effect,
)

from .exceptions import (
    CreditNoteReferenceError,
    DocumentFrozenError,
    DocumentValidationError,
    DuplicateConversionError,
    InvalidStatusTransitionError,
)
from .formatting import CURRENCIES
from .lifecycle import (
    MODULE_PURCHASES,
    get_kind_config,
    initial_statuses_for_kind,
    is_purchase_kind,
    stock_effect_for,
    validate_conversion,
    validate_credit_note_source,
    validate_status_transition,
)
from .totals import (
    FIXED_STAMP_AMOUNT,
    HUNDRED,
    ZERO,
    Totals,
    compute_totals,
    normalize_discount,
    to_decimal,
)

logger = logging.getLogger(__name__)

MONEY_STEP = Decimal("0.001")
DEFAULT_PAYMENT_TERM_DAYS = 30

EDITABLE_FIELDS = {
    "client",
    "supplier",
    "issue_date",
    "due_date",
    "validity_date",
    "currency",
    "notes",
    "stamp_included",
    "discount",
    "items",
}

IMMUTABLE_FIELDS = {"kind", "status", "number", "source_document", "origin"}

EDITABLE_STATUSES = {Document.STATUS_DRAFT, Document.STATUS_PURCHASE_QUOTE}


@dataclass(frozen=True)
class DocumentResult:
    document: Document
    stock: Optional[StockEffectResult] = None
    totals: Optional[Totals] = None

    @property
    def low_stock(self) -> list:
        return list(self.stock.low_stock) if self.stock else []


# ============================================================
# HELPERS
# ============================================================

def _money(value) -> Decimal:
    return to_decimal(value).quantize(MONEY_STEP, rounding=ROUND_HALF_UP)


def _stamp_amount() -> Decimal:
    return to_decimal(
        getattr(settings, "FISCAL_STAMP_AMOUNT", FIXED_STAMP_AMOUNT),
        FIXED_STAMP_AMOUNT,
    )


def _edit_capability(kind: str) -> str:
    return CAP_PURCHASES_EDIT if is_purchase_kind(kind) else CAP_SALES_EDIT


def _require_edit(ctx: TenantContext, kind: str):
    ctx.require(_edit_capability(kind))
    if get_kind_config(kind).is_credit_note:
        ctx.require(CAP_CREDIT_NOTES)


def _lock_document(ctx: TenantContext, document_id) -> Document:
    """Raises Document.DoesNotExist for foreign / unknown ids."""
    return Document.objects.select_for_update().get(
        pk=document_id,
        company_id=ctx.company_id,
    )


def _resolve(model, ctx: TenantContext, value, label: str):
    if value in (None, ""):
        return None

    if isinstance(value, model):
        if value.company_id != ctx.company_id:
            raise DocumentValidationError(f"{label} does not belong to this company")
        return value

    obj = model.objects.filter(company_id=ctx.company_id, pk=value).first()
    if obj is None:
        raise DocumentValidationError(f"Unknown {label.lower()} '{value}'")
    return obj


def _resolve_parties(ctx: TenantContext, kind: str, client, supplier):
    client = _resolve(Client, ctx, client, "Client")
    supplier = _resolve(Supplier, ctx, supplier, "Supplier")

    if get_kind_config(kind).module == MODULE_PURCHASES:
        if supplier is None:
            raise DocumentValidationError(f"A supplier is required for {kind}")
        if client is not None:
            raise DocumentValidationError(f"{kind} cannot have a client")
    else:
        if client is None:
            raise DocumentValidationError(f"A client is required for {kind}")
        if supplier is not None:
            raise DocumentValidationError(f"{kind} cannot have a supplier")

    return client, supplier


def _discount_fields(discount) -> tuple[Optional[str], Decimal]:
    if isinstance(discount, dict):
        if to_decimal(discount.get("value")) < ZERO:
            raise DocumentValidationError("Discount value cannot be negative")

    config = normalize_discount(discount)
    if config is None:
        return None, Decimal("0.000")
    return config.type, _money(config.value)


def _document_discount(document: Document) -> Optional[dict]:
    if not document.discount_type:
        return None
    return {"type": document.discount_type, "value": document.discount_value}


def _required_decimal(value, *, label: str, index: int) -> Decimal:
    result = to_decimal(value, default=None)
    if result is None:
        raise DocumentValidationError(f"Line {index + 1}: {label} must be a number")
    return result


def _clean_items(ctx: TenantContext, kind: str, raw_items) -> list[dict]:
    """
    Validate sign invariants and fill product defaults.

    sale lines:     quantity >= 0
    purchase lines: quantity > 0
    all lines:      unit_price >= 0, 0 <= vat_rate <= 100
    """
    purchase = is_purchase_kind(kind)
    cleaned = []

    for index, raw in enumerate(raw_items or []):
        if not isinstance(raw, dict):
            raise DocumentValidationError(f"Line {index + 1}: invalid line item")

        product = _resolve(Product, ctx, raw.get("product"), "Product")

        if raw.get("unit_price") in (None, "") and product is not None:
            unit_price = product.purchase_price if purchase else product.sale_price
        else:
            unit_price = _required_decimal(raw.get("unit_price"), label="unit_price", index=index)

        if raw.get("vat_rate") in (None, ""):
            vat_rate = product.vat_rate if product is not None else ZERO
        else:
            vat_rate = _required_decimal(raw.get("vat_rate"), label="vat_rate", index=index)

        if "fodec_applicable" in raw:
            fodec_applicable = bool(raw.get("fodec_applicable"))
        else:
            fodec_applicable = bool(product is not None and product.fodec_applicable)

        if raw.get("fodec_rate") in (None, ""):
            fodec_rate = product.fodec_rate if product is not None else Decimal("0.01")
        else:
            fodec_rate = _required_decimal(raw.get("fodec_rate"), label="fodec_rate", index=index)

        quantity = _required_decimal(raw.get("quantity"), label="quantity", index=index)

        if purchase and quantity <= ZERO:
            raise DocumentValidationError(f"Line {index + 1}: purchase quantity must be > 0")
        if quantity < ZERO:
            raise DocumentValidationError(f"Line {index + 1}: quantity cannot be negative")
        if Decimal(unit_price) < ZERO:
            raise DocumentValidationError(f"Line {index + 1}: unit_price cannot be negative")
        if Decimal(vat_rate) < ZERO or Decimal(vat_rate) > HUNDRED:
            raise DocumentValidationError(f"Line {index + 1}: vat_rate must be within 0-100")
        if fodec_applicable and Decimal(fodec_rate) < ZERO:
            raise DocumentValidationError(f"Line {index + 1}: fodec_rate cannot be negative")

        cleaned.append(
            {
                "product": product,
                "reference": (raw.get("reference") or (product.sku if product else "")).strip(),
                "description": (raw.get("description") or (product.name if product else "")).strip(),
                "quantity": quantity,
                "unit_price": Decimal(unit_price),
                "vat_rate": Decimal(vat_rate),
                "fodec_applicable": fodec_applicable,
                "fodec_rate": Decimal(fodec_rate),
            }
        )

    return cleaned


def _items_from_document(document: Document) -> list[dict]:
    return [
        {
            "product": item.product,
            "reference": item.reference,
            "description": item.description,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "vat_rate": item.vat_rate,
            "fodec_applicable": item.fodec_applicable,
            "fodec_rate": item.fodec_rate,
        }
        for item in document.items.select_related("product").order_by("position")
    ]


def _write_items_and_totals(*, document: Document, items: list[dict]) -> Totals:
    """
    Replace the document's lines and totals snapshot from `items`.
    The only place derived amounts are written.
    """
    totals = compute_totals(
        items,
        document.stamp_included,
        _document_discount(document),
        stamp_amount=_stamp_amount(),
    )

    document.items.all().delete()

    LineItem.objects.bulk_create(
        [
            LineItem(
                document=document,
                product=item["product"],
                position=position,
                reference=item["reference"][:128],
                description=item["description"][:500],
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                vat_rate=item["vat_rate"],
                fodec_applicable=item["fodec_applicable"],
                fodec_rate=item["fodec_rate"],
                total=_money(line.total),
                fodec_amount=_money(line.fodec_amount),
                vat_amount=_money(line.vat_amount),
            )
            for position, (item, line) in enumerate(zip(items, totals.lines))
        ]
    )

    document.subtotal = _money(totals.subtotal)
    document.total_fodec = _money(totals.total_fodec)
    document.discount_amount = _money(totals.discount_amount)
    document.base_tva = _money(totals.base_tva)
    document.tax_amount = _money(totals.tax_amount)
    document.stamp_amount = _money(totals.stamp)
    document.total = _money(totals.total)
    document.save()

    return totals


def _check_credit_cap(*, invoice: Document, credit_note: Document):
    """Cumulative active credit notes may not exceed the invoice total."""
    credited = (
        Document.objects.filter(source_document=invoice)
        .exclude(status=Document.STATUS_CANCELLED)
        .aggregate(total=Sum("total"))["total"]
    ) or Decimal("0.000")

    if credited > invoice.total:
        raise CreditNoteReferenceError(
            f"Credit notes for {invoice.number} ({credited}) would exceed "
            f"the invoice total ({invoice.total})"
        )

    logger.info(
        "Credit note checked against invoice",
        extra={
            "invoice": invoice.number,
            "credit_note": credit_note.number,
            "credited_total": str(credited),
        },
    )


def _currency(code) -> str:
    currency = str(code or "").strip().upper()
    if currency not in CURRENCIES:
        raise DocumentValidationError(
            f"Unsupported currency '{code}' (expected one of {sorted(CURRENCIES)})"
        )
    return currency


def _has_downstream(document: Document) -> bool:
    """Cancelled conversions and credit notes no longer hold their source."""
    return (
        document.conversions.exclude(status=Document.STATUS_CANCELLED).exists()
        or document.credit_notes.exclude(status=Document.STATUS_CANCELLED).exists()
    )


def _ensure_editable(document: Document):
    if document.status not in EDITABLE_STATUSES:
        raise DocumentFrozenError(
            f"Document {document.number} is {document.status} and cannot be edited"
        )

    if document.stock_applied_at is not None:
        raise DocumentFrozenError(
            f"Document {document.number} already moved stock and cannot be edited"
        )

    if _has_downstream(document):
        raise DocumentFrozenError(
            f"Document {document.number} was converted and cannot be edited"
        )


def _apply_stock_if_needed(ctx: TenantContext, document: Document) -> Optional[StockEffectResult]:
    if stock_effect_for(document.kind, document.status) is None:
        return None
    return apply_document_stock_effect(ctx=ctx, document=document)


def _default_due_date(kind: str, issue_date, due_date):
    if due_date or not get_kind_config(kind).requires_due_date:
        return due_date
    return issue_date + timedelta(days=DEFAULT_PAYMENT_TERM_DAYS)


# ============================================================
# NUMBERING
# ============================================================

def format_document_number(*, company: Company, kind: str, year: int, number: int) -> str:
    padding = int(company.document_number_padding or 0)
    return company.document_number_format.format(
        prefix=get_kind_config(kind).prefix,
        year=year,
        number=str(number).zfill(padding),
    )


@transaction.atomic
def next_document_number(*, company: Company, kind: str, issue_date=None) -> str:
    """
    Issue the next number for (company, kind, year) from a locked sequence row.
    """
    year = (issue_date or timezone.localdate()).year

    sequence, _ = DocumentSequence.objects.select_for_update().get_or_create(
        company=company,
        kind=kind,
        year=year,
    )
    sequence.last_number += 1
    sequence.save(update_fields=["last_number", "updated_at"])

    return format_document_number(
        company=company,
        kind=kind,
        year=year,
        number=sequence.last_number,
    )


# ============================================================
# PREVIEW
# ============================================================

def preview_totals(*, items, stamp_included: bool, discount=None) -> Totals:
    """Live totals for the UI (no persistence, no validation)."""
    return compute_totals(items, stamp_included, discount, stamp_amount=_stamp_amount())


# ============================================================
# CREATE
# ============================================================

@transaction.atomic
def create_document(*, ctx: TenantContext, data: dict) -> DocumentResult:
    kind = data.get("kind")
    config = get_kind_config(kind)
    _require_edit(ctx, kind)

    status = data.get("status") or Document.STATUS_DRAFT
    if status not in initial_statuses_for_kind(kind):
        raise InvalidStatusTransitionError(f"A new {kind} cannot start in '{status}'")

    company = Company.objects.get(pk=ctx.company_id)

    source = data.get("source_document")
    if source not in (None, ""):
        source = _resolve(Document, ctx, source, "Source document")
        # serialize concurrent credit notes on the same invoice
        source = _lock_document(ctx, source.pk)
    else:
        source = None
    validate_credit_note_source(kind=kind, source=source)

    client = data.get("client")
    supplier = data.get("supplier")
    if source is not None:
        client = client or source.client
        supplier = supplier or source.supplier
    client, supplier = _resolve_parties(ctx, kind, client, supplier)

    if source is not None and (client != source.client or supplier != source.supplier):
        raise CreditNoteReferenceError("A credit note must keep the party of its invoice")

    currency = _currency(
        data.get("currency") or (source.currency if source else company.default_currency)
    )
    if source is not None and currency != source.currency:
        raise CreditNoteReferenceError("A credit note must use the currency of its invoice")

    items = _clean_items(ctx, kind, data.get("items"))
    discount_type, discount_value = _discount_fields(data.get("discount"))

    issue_date = data.get("issue_date") or timezone.localdate()

    document = Document(
        company=company,
        kind=kind,
        number=next_document_number(company=company, kind=kind, issue_date=issue_date),
        status=status,
        client=client,
        supplier=supplier,
        issue_date=issue_date,
        due_date=_default_due_date(kind, issue_date, data.get("due_date")),
        validity_date=data.get("validity_date"),
        currency=currency,
        notes=data.get("notes") or "",
        # credit notes never carry the fiscal stamp
        stamp_included=bool(data.get("stamp_included")) and not config.is_credit_note,
        discount_type=discount_type,
        discount_value=discount_value,
        source_document=source,
        created_by_id=ctx.user_id,
    )
    document.save()

    totals = _write_items_and_totals(document=document, items=items)

    if source is not None:
        _check_credit_cap(invoice=source, credit_note=document)

    logger.info(
        "Document created",
        extra={
            "document_id": str(document.pk),
            "number": document.number,
            "kind": kind,
            "total": str(document.total),
        },
    )
    return DocumentResult(document=document, totals=totals)


# ============================================================
# UPDATE
# ============================================================

@transaction.atomic
def update_document(*, ctx: TenantContext, document_id, patch: dict) -> DocumentResult:
    document = _lock_document(ctx, document_id)
    _require_edit(ctx, document.kind)

    locked_fields = IMMUTABLE_FIELDS & set(patch)
    if locked_fields:
        raise DocumentValidationError(
            f"{sorted(locked_fields)} cannot be changed by an update "
            "(use convert / transition)"
        )

    unknown = set(patch) - EDITABLE_FIELDS
    if unknown:
        raise DocumentValidationError(f"Unknown fields: {sorted(unknown)}")

    _ensure_editable(document)

    client, supplier = _resolve_parties(
        ctx,
        document.kind,
        patch.get("client", document.client),
        patch.get("supplier", document.supplier),
    )
    document.client = client
    document.supplier = supplier

    for name in ("issue_date", "validity_date", "notes"):
        if name in patch:
            setattr(document, name, patch[name] if name != "notes" else (patch[name] or ""))

    if "due_date" in patch:
        document.due_date = patch["due_date"]
    document.due_date = _default_due_date(document.kind, document.issue_date, document.due_date)

    if patch.get("currency"):
        document.currency = _currency(patch["currency"])

    if "stamp_included" in patch:
        document.stamp_included = bool(patch["stamp_included"]) and not document.is_credit_note

    if "discount" in patch:
        document.discount_type, document.discount_value = _discount_fields(patch["discount"])

    if "items" in patch:
        items = _clean_items(ctx, document.kind, patch["items"])
    else:
        items = _items_from_document(document)

    invoice = None
    if document.source_document_id:
        # serialize concurrent credit notes on the same invoice
        invoice = _lock_document(ctx, document.source_document_id)

    totals = _write_items_and_totals(document=document, items=items)

    if invoice is not None:
        _check_credit_cap(invoice=invoice, credit_note=document)

    logger.info(
        "Document updated",
        extra={"document_id": str(document.pk), "number": document.number},
    )
    return DocumentResult(document=document, totals=totals)


# ============================================================
# CONVERT
# ============================================================

@transaction.atomic
def convert_document(
    *,
    ctx: TenantContext,
    document_id,
    target_kind: str,
    status: Optional[str] = None,
) -> DocumentResult:
    """
    Materialize a NEW document of `target_kind` from the source.

    The source is locked and never written. Converting with
    status="purchase_quote" suppresses the stock effect of the new document.
    """
    ctx.require(CAP_DOCUMENTS_CONVERT)

    source = _lock_document(ctx, document_id)
    validate_conversion(document=source, target_kind=target_kind)

    target = get_kind_config(target_kind)
    _require_edit(ctx, target_kind)

    active = Document.objects.filter(origin=source, kind=target_kind).exclude(
        status=Document.STATUS_CANCELLED
    )
    if active.exists():
        raise DuplicateConversionError(
            f"Document {source.number} was already converted to {target_kind}"
        )

    status = status or Document.STATUS_DRAFT
    if status not in initial_statuses_for_kind(target_kind):
        raise InvalidStatusTransitionError(
            f"A converted {target_kind} cannot start in '{status}'"
        )

    credit_source = source if target.is_credit_note else None
    validate_credit_note_source(kind=target_kind, source=credit_source)

    company = source.company
    issue_date = timezone.localdate()

    document = Document(
        company=company,
        kind=target_kind,
        number=next_document_number(company=company, kind=target_kind, issue_date=issue_date),
        status=status,
        client=source.client,
        supplier=source.supplier,
        issue_date=issue_date,
        due_date=_default_due_date(target_kind, issue_date, source.due_date),
        validity_date=None,
        currency=source.currency,
        notes=source.notes,
        stamp_included=source.stamp_included and not target.is_credit_note,
        discount_type=source.discount_type,
        discount_value=source.discount_value,
        source_document=credit_source,
        origin=source,
        created_by_id=ctx.user_id,
    )

    try:
        with transaction.atomic():
            document.save()
    except IntegrityError as exc:
        # concurrent conversion won the (origin, kind) constraint
        raise DuplicateConversionError(
            f"Document {source.number} was already converted to {target_kind}"
        ) from exc

    totals = _write_items_and_totals(document=document, items=_items_from_document(source))

    if credit_source is not None:
        _check_credit_cap(invoice=credit_source, credit_note=document)

    stock = _apply_stock_if_needed(ctx, document)

    logger.info(
        "Document converted",
        extra={
            "source": source.number,
            "number": document.number,
            "target_kind": target_kind,
            "stock_applied": bool(stock and stock.applied),
        },
    )
    return DocumentResult(document=document, stock=stock, totals=totals)


# ============================================================
# TRANSITION
# ============================================================

@transaction.atomic
def transition_document(*, ctx: TenantContext, document_id, target_status: str) -> DocumentResult:
    document = _lock_document(ctx, document_id)
    _require_edit(ctx, document.kind)

    validate_status_transition(document=document, target_status=target_status)

    stock = None
    if target_status == Document.STATUS_CANCELLED:
        ctx.require(CAP_DOCUMENTS_CANCEL)

        if _has_downstream(document):
            raise DocumentFrozenError(
                f"Document {document.number} has active downstream documents "
                "and cannot be cancelled"
            )

        if document.stock_effect_active:
            stock = reverse_document_stock_effect(ctx=ctx, document=document)

    previous = document.status
    document.status = target_status
    document.save(update_fields=["status", "updated_at"])

    # a directly created document is issued here; converted ones moved stock at conversion
    if target_status == Document.STATUS_SENT and document.stock_applied_at is None:
        stock = _apply_stock_if_needed(ctx, document)

    logger.info(
        "Document status changed",
        extra={
            "document_id": str(document.pk),
            "number": document.number,
            "from_status": previous,
            "to_status": target_status,
        },
    )
    return DocumentResult(document=document, stock=stock)
