# products/services/stock_effects.py

"""
STOCK SIDE-EFFECT COORDINATOR

Purpose:
- Apply the stock effect of a document (entry / exit) to product
  quantities, with one append-only StockMovement per product.
- Reverse an applied effect (document cancellation).
- Record manual movements (entry / exit / adjust with a note).

HARD RULES:
- All-or-nothing: every affected product is locked (select_for_update,
  in id order), every exit is checked, and only then are quantities
  written. One shortfall rejects the whole operation.
- Quantities are written with a conditional UPDATE
  (quantity >= demand), never read-modify-write.
- Manual lines (no product) are excluded from stock accounting.
- Low stock after the update is reported to the caller, not raised.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from companies.context import TenantContext
from documents.services.lifecycle import get_kind_config, stock_effect_for
from permissions.roles import CAP_INVENTORY_ADJUST
from products.models import Product, StockMovement

logger = logging.getLogger(__name__)

QTY_STEP = Decimal("0.001")


# ============================================================
# DOMAIN ERRORS
# ============================================================

class StockError(Exception):
    pass


@dataclass(frozen=True)
class StockShortage:
    product_id: Any
    sku: str
    name: str
    available: Decimal
    requested: Decimal


class StockInsufficientError(StockError):
    def __init__(self, shortages: list[StockShortage]):
        self.shortages = list(shortages)
        details = ", ".join(
            f"{s.sku or s.name}: available {s.available}, requested {s.requested}"
            for s in self.shortages
        )
        super().__init__(f"Insufficient stock ({details})")


@dataclass(frozen=True)
class StockEffectResult:
    direction: Optional[str]
    movements: list = field(default_factory=list)
    low_stock: list = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return bool(self.movements)


# ============================================================
# HELPERS
# ============================================================

def _to_qty(value) -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        raise StockError("quantity is required")
    try:
        qty = Decimal(str(value))
    except Exception as exc:
        raise StockError("quantity must be a number") from exc
    if not qty.is_finite():
        raise StockError("quantity must be a number")
    return qty.quantize(QTY_STEP)


def aggregate_document_demand(document) -> dict:
    """
    {product_id: total quantity} over the document's product lines.
    Manual lines and zero quantities are skipped.
    """
    demand: dict = defaultdict(Decimal)
    for item in document.items.all():
        if item.product_id is None:
            continue
        qty = Decimal(item.quantity or 0)
        if qty <= 0:
            continue
        demand[item.product_id] += qty
    return dict(demand)


def _move_stock(
    *,
    ctx: TenantContext,
    demand: dict,
    direction: str,
    note: str,
    document=None,
) -> StockEffectResult:
    """
    Core locked write. Must run inside an atomic block.
    """
    if not demand:
        return StockEffectResult(direction=direction)

    product_ids = sorted(demand, key=str)

    locked = {
        p.id: p
        for p in Product.objects.select_for_update()
        .filter(company_id=ctx.company_id, id__in=product_ids)
        .order_by("id")
    }

    unknown = [pid for pid in product_ids if pid not in locked]
    if unknown:
        raise StockError(f"Unknown product(s) for this company: {unknown}")

    if direction == StockMovement.MovementType.EXIT:
        shortages = [
            StockShortage(
                product_id=pid,
                sku=locked[pid].sku,
                name=locked[pid].name,
                available=Decimal(locked[pid].quantity),
                requested=demand[pid],
            )
            for pid in product_ids
            if Decimal(locked[pid].quantity) < demand[pid]
        ]
        if shortages:
            raise StockInsufficientError(shortages)

    now = timezone.now()
    movements = []

    for pid in product_ids:
        qty = demand[pid]

        if direction == StockMovement.MovementType.EXIT:
            updated = Product.objects.filter(pk=pid, quantity__gte=qty).update(
                quantity=F("quantity") - qty,
                updated_at=now,
            )
            if updated != 1:
                # rows are locked, so this only happens if the lock was not honoured
                raise StockInsufficientError([
                    StockShortage(
                        product_id=pid,
                        sku=locked[pid].sku,
                        name=locked[pid].name,
                        available=Decimal(locked[pid].quantity),
                        requested=qty,
                    )
                ])
        else:
            Product.objects.filter(pk=pid).update(
                quantity=F("quantity") + qty,
                updated_at=now,
            )

        movements.append(
            StockMovement.objects.create(
                company_id=ctx.company_id,
                product_id=pid,
                movement_type=direction,
                quantity=qty,
                note=note,
                document=document,
                performed_by_id=ctx.user_id,
            )
        )

    refreshed = list(Product.objects.filter(id__in=product_ids).order_by("id"))
    low_stock = [p for p in refreshed if p.is_low_stock]

    if low_stock:
        logger.warning(
            "Products at or below minimum stock",
            extra={
                "company_id": str(ctx.company_id),
                "skus": [p.sku for p in low_stock],
            },
        )

    return StockEffectResult(direction=direction, movements=movements, low_stock=low_stock)


def _opposite(direction: str) -> str:
    if direction == StockMovement.MovementType.EXIT:
        return StockMovement.MovementType.ENTRY
    return StockMovement.MovementType.EXIT


# ============================================================
# DOCUMENT EFFECTS
# ============================================================

@transaction.atomic
def apply_document_stock_effect(*, ctx: TenantContext, document) -> StockEffectResult:
    """
    Apply the kind's stock effect once. Documents without an effect
    (or parked in purchase_quote) return an empty result, and
    stock_applied_at is only stamped when a movement was written.
    """
    if document.company_id != ctx.company_id:
        raise StockError("Document does not belong to this company")

    direction = stock_effect_for(document.kind, document.status)
    if direction is None:
        return StockEffectResult(direction=None)

    if document.stock_applied_at is not None:
        raise StockError(f"Stock effect of {document.number} was already applied")

    label = get_kind_config(document.kind).label
    result = _move_stock(
        ctx=ctx,
        demand=aggregate_document_demand(document),
        direction=direction,
        note=f"{label} {document.number}",
        document=document,
    )

    if not result.applied:
        # no product lines: nothing to reverse later, nothing to freeze
        return result

    document.stock_applied_at = timezone.now()
    type(document).objects.filter(pk=document.pk).update(
        stock_applied_at=document.stock_applied_at
    )

    logger.info(
        "Document stock effect applied",
        extra={
            "document_id": str(document.pk),
            "number": document.number,
            "direction": direction,
            "movements": len(result.movements),
        },
    )
    return result


@transaction.atomic
def reverse_document_stock_effect(*, ctx: TenantContext, document) -> StockEffectResult:
    """
    Compensating movements for an applied effect. Movements are never
    deleted; the ledger keeps both directions.
    """
    if document.company_id != ctx.company_id:
        raise StockError("Document does not belong to this company")

    if document.stock_applied_at is None or document.stock_reversed_at is not None:
        return StockEffectResult(direction=None)

    applied = stock_effect_for(document.kind)
    if applied is None:
        return StockEffectResult(direction=None)

    direction = _opposite(applied)
    label = get_kind_config(document.kind).label
    result = _move_stock(
        ctx=ctx,
        demand=aggregate_document_demand(document),
        direction=direction,
        note=f"Annulation {label} {document.number}",
        document=document,
    )

    document.stock_reversed_at = timezone.now()
    type(document).objects.filter(pk=document.pk).update(
        stock_reversed_at=document.stock_reversed_at
    )

    logger.info(
        "Document stock effect reversed",
        extra={
            "document_id": str(document.pk),
            "number": document.number,
            "direction": direction,
        },
    )
    return result


# ============================================================
# MANUAL MOVEMENTS
# ============================================================

@transaction.atomic
def record_manual_movement(
    *,
    ctx: TenantContext,
    product: Product,
    movement_type: str,
    quantity,
    note: str = "",
) -> StockEffectResult:
    """
    entry / exit: quantity > 0.
    adjust: quantity is a signed non-zero delta (cannot go below zero).
    """
    ctx.require(CAP_INVENTORY_ADJUST)

    if product is None:
        raise StockError("product is required")

    qty = _to_qty(quantity)

    if movement_type in (StockMovement.MovementType.ENTRY, StockMovement.MovementType.EXIT):
        if qty <= 0:
            raise StockError("quantity must be greater than zero")
        return _move_stock(
            ctx=ctx,
            demand={product.pk: qty},
            direction=movement_type,
            note=note,
        )

    if movement_type != StockMovement.MovementType.ADJUST:
        raise StockError(f"Unknown movement type '{movement_type}'")

    if qty == 0:
        raise StockError("adjustment cannot be 0")

    locked = (
        Product.objects.select_for_update()
        .filter(company_id=ctx.company_id, pk=product.pk)
        .first()
    )
    if locked is None:
        raise StockError("Unknown product for this company")

    if qty < 0:
        updated = Product.objects.filter(pk=locked.pk, quantity__gte=-qty).update(
            quantity=F("quantity") + qty,
            updated_at=timezone.now(),
        )
        if updated != 1:
            raise StockInsufficientError([
                StockShortage(
                    product_id=locked.pk,
                    sku=locked.sku,
                    name=locked.name,
                    available=Decimal(locked.quantity),
                    requested=-qty,
                )
            ])
    else:
        Product.objects.filter(pk=locked.pk).update(
            quantity=F("quantity") + qty,
            updated_at=timezone.now(),
        )

    movement = StockMovement.objects.create(
        company_id=ctx.company_id,
        product=locked,
        movement_type=StockMovement.MovementType.ADJUST,
        quantity=abs(qty),
        signed_delta=qty,
        note=note,
        performed_by_id=ctx.user_id,
    )

    locked.refresh_from_db()

    logger.info(
        "Manual stock adjustment",
        extra={"product_id": str(locked.pk), "delta": str(qty)},
    )

    return StockEffectResult(
        direction=StockMovement.MovementType.ADJUST,
        movements=[movement],
        low_stock=[locked] if locked.is_low_stock else [],
    )
