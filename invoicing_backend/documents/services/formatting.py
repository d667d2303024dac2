# documents/services/formatting.py

"""
AMOUNT FORMATTER

PURPOSE:
- amount_in_words(): legal French text of an amount ("arrêté la présente
  facture à la somme de ...") for PDF rendering.
- format_amount(): display string with the currency's minor-unit precision.

RULES:
- Pure functions, Decimal input (anything to_decimal accepts).
- Rounding to the currency precision (ROUND_HALF_UP) happens here, once,
  before the amount is split into major and minor units.
- Unknown currency codes: amount_in_words falls back to TND,
  format_amount renders "<amount with 2 decimals> <CODE>".
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .totals import to_decimal


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str
    major_unit_name: str
    major_unit_name_plural: str
    minor_unit_name: str
    minor_unit_name_plural: str
    minor_digits: int


CURRENCIES: dict[str, Currency] = {
    "TND": Currency("TND", "DT", "dinar", "dinars", "millime", "millimes", 3),
    "EUR": Currency("EUR", "€", "euro", "euros", "centime", "centimes", 2),
    "USD": Currency("USD", "$", "dollar", "dollars", "cent", "cents", 2),
}

DEFAULT_CURRENCY_CODE = "TND"


def get_currency(code: Any) -> Currency | None:
    return CURRENCIES.get(str(code or "").strip().upper())


def quantize_amount(amount: Any, digits: int) -> Decimal:
    exponent = Decimal(1).scaleb(-digits)
    return to_decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


# ============================================================
# NUMBER -> FRENCH WORDS
# ============================================================

_UNITS = [
    "zéro", "un", "deux", "trois", "quatre", "cinq", "six", "sept", "huit", "neuf",
    "dix", "onze", "douze", "treize", "quatorze", "quinze", "seize",
    "dix-sept", "dix-huit", "dix-neuf",
]

_TENS = {
    2: "vingt",
    3: "trente",
    4: "quarante",
    5: "cinquante",
    6: "soixante",
}


def _below_hundred(n: int, *, plural: bool = True) -> str:
    if n < 20:
        return _UNITS[n]

    ten, unit = divmod(n, 10)

    if ten in _TENS:
        word = _TENS[ten]
        if unit == 0:
            return word
        if unit == 1:
            return f"{word} et un"
        return f"{word}-{_UNITS[unit]}"

    if ten == 7:
        # 70-79 count on from soixante
        if unit == 1:
            return "soixante et onze"
        return f"soixante-{_UNITS[10 + unit]}"

    # 80-99 count on from quatre-vingt
    rest = n - 80
    if rest == 0:
        return "quatre-vingts" if plural else "quatre-vingt"
    return f"quatre-vingt-{_UNITS[rest]}"


def _below_thousand(n: int, *, plural: bool = True) -> str:
    """`plural=False` for a group followed by "mille" (cent/vingt stay invariable)."""
    hundreds, rest = divmod(n, 100)

    if hundreds == 0:
        return _below_hundred(rest, plural=plural)

    head = "cent" if hundreds == 1 else f"{_UNITS[hundreds]} cent"

    if rest == 0:
        return f"{head}s" if hundreds > 1 and plural else head

    return f"{head} {_below_hundred(rest, plural=plural)}"


def number_to_words(n: int) -> str:
    """French cardinal for an integer (long scale up to milliards)."""
    if n == 0:
        return _UNITS[0]
    if n < 0:
        return f"moins {number_to_words(-n)}"

    parts = []

    billions, n = divmod(n, 1_000_000_000)
    millions, n = divmod(n, 1_000_000)
    thousands, rest = divmod(n, 1000)

    if billions:
        # "milliard" is a noun, so the group before it keeps its plural
        words = "un" if billions == 1 else _below_thousand(billions)
        parts.append(f"{words} milliard{'s' if billions > 1 else ''}")

    if millions:
        words = "un" if millions == 1 else _below_thousand(millions)
        parts.append(f"{words} million{'s' if millions > 1 else ''}")

    if thousands:
        if thousands == 1:
            parts.append("mille")
        else:
            parts.append(f"{_below_thousand(thousands, plural=False)} mille")

    if rest:
        parts.append(_below_thousand(rest))

    return " ".join(parts)


def _unit_phrase(count: int, singular: str, plural: str) -> str:
    if count == 1:
        return f"un {singular}"

    words = number_to_words(count)
    if count % 1_000_000 == 0:
        # "un million de dinars", "deux milliards d'euros"
        joiner = "d'" if plural[0] in "aeiouyéh" else "de "
        return f"{words} {joiner}{plural}"

    return f"{words} {plural}"


def amount_in_words(amount: Any, currency_code: str = DEFAULT_CURRENCY_CODE) -> str:
    currency = get_currency(currency_code) or CURRENCIES[DEFAULT_CURRENCY_CODE]

    value = quantize_amount(amount, currency.minor_digits)
    negative = value < 0
    value = abs(value)

    major = int(value)
    minor = int((value - major) * (10 ** currency.minor_digits))

    if major == 0 and minor == 0:
        text = f"zéro {currency.major_unit_name}"
    else:
        pieces = []
        if major:
            pieces.append(
                _unit_phrase(major, currency.major_unit_name, currency.major_unit_name_plural)
            )
        if minor:
            pieces.append(
                _unit_phrase(minor, currency.minor_unit_name, currency.minor_unit_name_plural)
            )
        text = " et ".join(pieces)

    if negative and (major or minor):
        text = f"moins {text}"

    return text[0].upper() + text[1:]


# ============================================================
# DISPLAY STRING
# ============================================================

def _group_thousands(digits: str) -> str:
    return f"{int(digits):,}".replace(",", " ")


def format_amount(amount: Any, currency_code: str = DEFAULT_CURRENCY_CODE) -> str:
    """
    "1 201,900 DT", "214,20 €". Unknown currency: "12.50 XOF".
    """
    currency = get_currency(currency_code)

    if currency is None:
        value = quantize_amount(amount, 2)
        return f"{value:.2f} {str(currency_code or '').strip().upper()}"

    value = quantize_amount(amount, currency.minor_digits)
    sign = "-" if value < 0 else ""
    integer, _, fraction = f"{abs(value):.{currency.minor_digits}f}".partition(".")

    text = _group_thousands(integer)
    if fraction:
        text = f"{text},{fraction}"

    return f"{sign}{text} {currency.symbol}"
