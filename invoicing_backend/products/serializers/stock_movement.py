# products/serializers/stock_movement.py

from rest_framework import serializers

from products.models import StockMovement


class StockMovementSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    document_number = serializers.CharField(
        source="document.number", read_only=True, default=None
    )

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product",
            "product_sku",
            "product_name",
            "movement_type",
            "quantity",
            "signed_delta",
            "note",
            "document",
            "document_number",
            "performed_by",
            "created_at",
        ]
        read_only_fields = fields


class ManualMovementSerializer(serializers.Serializer):
    """
    entry / exit: quantity > 0
    adjust:       signed, non-zero delta
    """

    product = serializers.UUIDField()
    movement_type = serializers.ChoiceField(choices=StockMovement.MovementType.choices)
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    note = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")

    def validate(self, attrs):
        qty = attrs["quantity"]
        if attrs["movement_type"] == StockMovement.MovementType.ADJUST:
            if qty == 0:
                raise serializers.ValidationError({"quantity": "Adjustment cannot be 0"})
        elif qty <= 0:
            raise serializers.ValidationError({"quantity": "Quantity must be greater than zero"})
        return attrs
