# documents/api/serializers.py

"""
DOCUMENT SERIALIZERS

Read serializers expose the persisted snapshot.
Command serializers validate SHAPE only; business rules (sign invariants,
credit-note references, conversion graph) live in documents.services.

Totals sent by a client are never accepted: command serializers do not
declare them, so they are dropped before reaching the service.
"""

from decimal import ROUND_HALF_UP, Decimal

from rest_framework import serializers

from documents.models import Document, LineItem
from documents.services.formatting import CURRENCIES
from documents.services.totals import DISCOUNT_FIXED, DISCOUNT_PERCENT

MONEY_STEP = Decimal("0.001")
CURRENCY_CHOICES = sorted(CURRENCIES)


def _money_str(value) -> str:
    return str(Decimal(value).quantize(MONEY_STEP, rounding=ROUND_HALF_UP))


# ============================================================
# READ
# ============================================================

class LineItemSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True, default=None)

    class Meta:
        model = LineItem
        fields = [
            "id",
            "position",
            "product",
            "product_sku",
            "reference",
            "description",
            "quantity",
            "unit_price",
            "vat_rate",
            "fodec_applicable",
            "fodec_rate",
            "total",
            "fodec_amount",
            "vat_amount",
        ]
        read_only_fields = fields


class DocumentSerializer(serializers.ModelSerializer):
    items = LineItemSerializer(many=True, read_only=True)
    client_name = serializers.CharField(source="client.name", read_only=True, default=None)
    supplier_name = serializers.CharField(source="supplier.name", read_only=True, default=None)
    source_document_number = serializers.CharField(
        source="source_document.number", read_only=True, default=None
    )
    origin_number = serializers.CharField(source="origin.number", read_only=True, default=None)

    class Meta:
        model = Document
        fields = [
            "id",
            "kind",
            "number",
            "status",
            "client",
            "client_name",
            "supplier",
            "supplier_name",
            "issue_date",
            "due_date",
            "validity_date",
            "currency",
            "notes",
            "stamp_included",
            "discount_type",
            "discount_value",
            "subtotal",
            "total_fodec",
            "discount_amount",
            "base_tva",
            "tax_amount",
            "stamp_amount",
            "total",
            "source_document",
            "source_document_number",
            "origin",
            "origin_number",
            "stock_applied_at",
            "stock_reversed_at",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# ============================================================
# COMMANDS
# ============================================================

class DiscountSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[DISCOUNT_PERCENT, DISCOUNT_FIXED])
    value = serializers.DecimalField(max_digits=14, decimal_places=3)


class LineItemInputSerializer(serializers.Serializer):
    product = serializers.UUIDField(required=False, allow_null=True)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=128)
    description = serializers.CharField(required=False, allow_blank=True, max_length=500)
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    unit_price = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False, allow_null=True
    )
    vat_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True
    )
    fodec_applicable = serializers.BooleanField(required=False)
    fodec_rate = serializers.DecimalField(
        max_digits=6, decimal_places=4, required=False, allow_null=True
    )


class DocumentCreateSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=Document.KIND_CHOICES)
    status = serializers.ChoiceField(choices=Document.STATUS_CHOICES, required=False)
    client = serializers.UUIDField(required=False, allow_null=True)
    supplier = serializers.UUIDField(required=False, allow_null=True)
    source_document = serializers.UUIDField(required=False, allow_null=True)
    issue_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    validity_date = serializers.DateField(required=False, allow_null=True)
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    stamp_included = serializers.BooleanField(required=False, default=False)
    discount = DiscountSerializer(required=False, allow_null=True)
    items = LineItemInputSerializer(many=True, required=False)


class DocumentUpdateSerializer(serializers.Serializer):
    client = serializers.UUIDField(required=False, allow_null=True)
    supplier = serializers.UUIDField(required=False, allow_null=True)
    issue_date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False, allow_null=True)
    validity_date = serializers.DateField(required=False, allow_null=True)
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    stamp_included = serializers.BooleanField(required=False)
    discount = DiscountSerializer(required=False, allow_null=True)
    items = LineItemInputSerializer(many=True, required=False)


class DocumentConvertSerializer(serializers.Serializer):
    target_kind = serializers.ChoiceField(choices=Document.KIND_CHOICES)
    status = serializers.ChoiceField(choices=Document.STATUS_CHOICES, required=False)


class DocumentTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Document.STATUS_CHOICES)


class TotalsPreviewSerializer(serializers.Serializer):
    """Items stay raw dicts; the totals engine normalizes their values."""

    items = serializers.ListField(child=serializers.DictField(), required=False, default=list)
    stamp_included = serializers.BooleanField(required=False, default=False)
    discount = serializers.DictField(required=False, allow_null=True)


# ============================================================
# OUTPUT HELPERS
# ============================================================

def totals_payload(totals) -> dict:
    return {
        "subtotal": _money_str(totals.subtotal),
        "total_fodec": _money_str(totals.total_fodec),
        "discount_amount": _money_str(totals.discount_amount),
        "discount_ratio": str(totals.discount_ratio),
        "base_tva": _money_str(totals.base_tva),
        "tax_amount": _money_str(totals.tax_amount),
        "stamp": _money_str(totals.stamp),
        "total": _money_str(totals.total),
        "vat_breakdown": [
            {
                "rate": str(entry.rate),
                "base": _money_str(entry.base),
                "tax_amount": _money_str(entry.tax_amount),
            }
            for entry in totals.vat_breakdown
        ],
        "lines": [
            {
                "total": _money_str(line.total),
                "fodec_amount": _money_str(line.fodec_amount),
                "vat_amount": _money_str(line.vat_amount),
                "total_ttc": _money_str(line.total_ttc),
            }
            for line in totals.lines
        ],
    }


def low_stock_payload(products) -> list:
    return [
        {
            "id": str(p.id),
            "sku": p.sku,
            "name": p.name,
            "quantity": str(p.quantity),
            "min_stock": str(p.min_stock),
        }
        for p in products
    ]
