# products/serializers/product.py

"""
PRODUCT SERIALIZER

Purpose:
- Canonical Product serializer for staff inventory screens.
- `quantity` is read-only: stock only changes through
  products.services.stock_effects (documents or manual movements).
"""

from rest_framework import serializers

from products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    """
    GUARANTEES:
    - No client-side stock writes
    - SKU normalized (trimmed, upper-case) and unique per company
    """

    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "sku",
            "name",
            "description",
            "unit",
            "quantity",
            "min_stock",
            "is_low_stock",
            "sale_price",
            "purchase_price",
            "vat_rate",
            "fodec_applicable",
            "fodec_rate",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "quantity",
            "is_low_stock",
            "created_at",
            "updated_at",
        ]

    def validate_sku(self, value):
        value = (value or "").strip().upper()
        if not value:
            raise serializers.ValidationError("SKU is required")

        company_id = self.context.get("company_id")
        qs = Product.objects.filter(company_id=company_id, sku=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("SKU already exists for this company")
        return value

    def validate_vat_rate(self, value):
        if value is None or value < 0 or value > 100:
            raise serializers.ValidationError("VAT rate must be within 0-100")
        return value

    def validate(self, attrs):
        for name in ("sale_price", "purchase_price", "min_stock"):
            value = attrs.get(name)
            if value is not None and value < 0:
                raise serializers.ValidationError({name: f"{name} cannot be negative"})
        return attrs
