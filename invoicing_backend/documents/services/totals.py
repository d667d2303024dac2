# documents/services/totals.py

"""
TOTALS CALCULATION ENGINE

PURPOSE:
- Turn line items + discount config + fiscal stamp flag into the legal
  totals of a commercial document.
- Safe to call on every keystroke (live UI preview) and at persistence
  time (the document service always recomputes; client totals are ignored).

RULES:
- Pure: no I/O, no ORM access, no hidden state. Same input, same output.
- Never raises. Junk input (None, text, NaN, negative discount) is
  normalized to safe values.
- Decimal arithmetic only. No rounding here; rounding to the currency
  precision happens when persisting (3 decimals) or formatting.

FORMULAS:
    total_i        = quantity_i * unit_price_i
    fodec_i        = total_i * fodec.rate          (0 when no FODEC)
    subtotal       = sum(total_i)
    total_fodec    = sum(fodec_i)
    discount       = subtotal * value / 100 (percent) | value (fixed), clamped to [0, subtotal]
    ratio          = (subtotal - discount) / subtotal       (1 when subtotal == 0)
    base_tva       = (subtotal - discount) + total_fodec
    tax_amount     = sum((total_i * ratio + fodec_i) * vat_rate_i / 100)
    stamp          = stamp_amount if stamp_included else 0
    total          = base_tva + tax_amount + stamp

The discount is spread over the lines in proportion to their value, and
each line keeps its own VAT rate.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

FIXED_STAMP_AMOUNT = Decimal("1.000")
DEFAULT_FODEC_RATE = Decimal("0.01")

DISCOUNT_PERCENT = "percent"
DISCOUNT_FIXED = "fixed"


# ============================================================
# VALUE TYPES
# ============================================================

@dataclass(frozen=True)
class Fodec:
    """FODEC surcharge, applied to the line total before VAT."""

    rate: Decimal = DEFAULT_FODEC_RATE


@dataclass(frozen=True)
class LineInput:
    quantity: Decimal
    unit_price: Decimal
    vat_rate: Decimal
    fodec: Optional[Fodec] = None


@dataclass(frozen=True)
class DiscountConfig:
    type: str
    value: Decimal


@dataclass(frozen=True)
class LineTotals:
    total: Decimal
    fodec_amount: Decimal
    vat_amount: Decimal

    @property
    def total_ttc(self) -> Decimal:
        return self.total + self.fodec_amount + self.vat_amount


@dataclass(frozen=True)
class VatBreakdownEntry:
    rate: Decimal
    base: Decimal
    tax_amount: Decimal


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    total_fodec: Decimal
    discount_amount: Decimal
    discount_ratio: Decimal
    base_tva: Decimal
    tax_amount: Decimal
    stamp: Decimal
    total: Decimal
    vat_breakdown: tuple[VatBreakdownEntry, ...] = ()
    lines: tuple[LineTotals, ...] = ()


# ============================================================
# NORMALIZATION (NEVER RAISES)
# ============================================================

def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Best-effort Decimal conversion.

    None, "", bools, unparsable text and non-finite values become `default`.
    Floats go through str() so 0.1 stays 0.1.
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            text = str(value).strip().replace(",", ".")
            if not text:
                return default
            result = Decimal(text)
        except (InvalidOperation, ValueError, TypeError):
            return default

    if not result.is_finite():
        return default

    return result


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def normalize_line(item: Any) -> LineInput:
    """
    Accepts a LineInput, a mapping, or any object exposing the line fields
    (e.g. a LineItem row). FODEC may be given as `fodec` (Fodec / None) or
    as the flat `fodec_applicable` + `fodec_rate` pair.
    """
    if isinstance(item, LineInput):
        return item

    if item is None:
        return LineInput(quantity=ZERO, unit_price=ZERO, vat_rate=ZERO)

    vat_rate = to_decimal(_field(item, "vat_rate"))
    vat_rate = min(max(vat_rate, ZERO), HUNDRED)

    fodec = _field(item, "fodec")
    if not isinstance(fodec, Fodec):
        fodec = None
        if bool(_field(item, "fodec_applicable", False)):
            rate = to_decimal(_field(item, "fodec_rate"), DEFAULT_FODEC_RATE)
            fodec = Fodec(rate=max(rate, ZERO))

    return LineInput(
        quantity=to_decimal(_field(item, "quantity")),
        unit_price=to_decimal(_field(item, "unit_price")),
        vat_rate=vat_rate,
        fodec=fodec,
    )


def normalize_discount(discount: Any) -> Optional[DiscountConfig]:
    """
    Missing, unknown-type or non-positive discounts mean "no discount".
    A percent discount is capped at 100.
    """
    if discount is None:
        return None

    kind = _field(discount, "type")
    if kind not in (DISCOUNT_PERCENT, DISCOUNT_FIXED):
        return None

    value = to_decimal(_field(discount, "value"))
    if value <= ZERO:
        return None

    if kind == DISCOUNT_PERCENT:
        value = min(value, HUNDRED)

    return DiscountConfig(type=kind, value=value)


# ============================================================
# ENGINE
# ============================================================

def compute_line(item: Any) -> LineTotals:
    """Derived amounts of one line (no document discount applied)."""
    line = normalize_line(item)

    total = line.quantity * line.unit_price
    fodec_amount = total * line.fodec.rate if line.fodec is not None else ZERO
    vat_amount = (total + fodec_amount) * line.vat_rate / HUNDRED

    return LineTotals(total=total, fodec_amount=fodec_amount, vat_amount=vat_amount)


def compute_discount_amount(subtotal: Decimal, discount: Optional[DiscountConfig]) -> Decimal:
    if discount is None or subtotal <= ZERO:
        return ZERO

    if discount.type == DISCOUNT_PERCENT:
        amount = subtotal * discount.value / HUNDRED
    else:
        amount = discount.value

    return min(max(amount, ZERO), subtotal)


def compute_totals(
    items: Optional[Iterable[Any]],
    stamp_included: bool,
    discount: Any = None,
    *,
    stamp_amount: Any = FIXED_STAMP_AMOUNT,
) -> Totals:
    lines = [normalize_line(item) for item in (items or [])]
    line_totals = tuple(compute_line(line) for line in lines)

    subtotal = sum((lt.total for lt in line_totals), ZERO)
    total_fodec = sum((lt.fodec_amount for lt in line_totals), ZERO)

    discount_amount = compute_discount_amount(subtotal, normalize_discount(discount))
    net = subtotal - discount_amount
    discount_ratio = net / subtotal if subtotal != ZERO else ONE

    base_tva = net + total_fodec

    tax_amount = ZERO
    breakdown: dict[Decimal, list[Decimal]] = {}
    for line, lt in zip(lines, line_totals):
        taxable = lt.total * discount_ratio + lt.fodec_amount
        line_tax = taxable * line.vat_rate / HUNDRED
        tax_amount += line_tax

        bucket = breakdown.setdefault(line.vat_rate, [ZERO, ZERO])
        bucket[0] += taxable
        bucket[1] += line_tax

    stamp = to_decimal(stamp_amount, FIXED_STAMP_AMOUNT) if stamp_included else ZERO

    return Totals(
        subtotal=subtotal,
        total_fodec=total_fodec,
        discount_amount=discount_amount,
        discount_ratio=discount_ratio,
        base_tva=base_tva,
        tax_amount=tax_amount,
        stamp=stamp,
        total=base_tva + tax_amount + stamp,
        vat_breakdown=tuple(
            VatBreakdownEntry(rate=rate, base=base, tax_amount=tax)
            for rate, (base, tax) in sorted(breakdown.items())
        ),
        lines=line_totals,
    )
