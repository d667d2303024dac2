# products/models/stock_movement.py

"""
CANONICAL INVENTORY LEDGER

Immutable inventory ledger entry.

GUARANTEES:
- Append-only (no updates, no deletes)
- Created ONCE, never edited
- quantity is always positive; direction lives in movement_type
- Document-driven movements reference their document
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from companies.models import Company

from .product import Product


class StockMovement(models.Model):
    class MovementType(models.TextChoices):
        ENTRY = "entry", "Entrée"
        EXIT = "exit", "Sortie"
        ADJUST = "adjust", "Ajustement"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="stock_movements"
    )
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="stock_movements"
    )

    movement_type = models.CharField(max_length=8, choices=MovementType.choices)
    quantity = models.DecimalField(max_digits=14, decimal_places=3)

    # ADJUST movements record the signed delta here (quantity stays absolute).
    signed_delta = models.DecimalField(max_digits=14, decimal_places=3)

    note = models.CharField(max_length=255, blank=True, default="")

    document = models.ForeignKey(
        "documents.Document",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["company", "created_at"], name="movement_company_created_idx"),
            models.Index(fields=["product", "created_at"], name="movement_product_created_idx"),
            models.Index(fields=["document", "created_at"], name="movement_document_created_idx"),
            models.Index(fields=["movement_type"], name="movement_type_idx"),
        ]

    def clean(self):
        if self.quantity is None or Decimal(self.quantity) <= Decimal("0"):
            raise ValidationError("quantity must be greater than zero")

        qty = Decimal(self.quantity)
        delta = Decimal(self.signed_delta if self.signed_delta is not None else 0)

        if self.movement_type == self.MovementType.ENTRY and delta != qty:
            raise ValidationError("entry movements must have signed_delta == quantity")

        if self.movement_type == self.MovementType.EXIT and delta != -qty:
            raise ValidationError("exit movements must have signed_delta == -quantity")

        if self.movement_type == self.MovementType.ADJUST and abs(delta) != qty:
            raise ValidationError("adjust movements must have |signed_delta| == quantity")

        if self.product_id and self.company_id:
            owner = (
                Product.objects.filter(id=self.product_id)
                .values_list("company_id", flat=True)
                .first()
            )
            if owner is not None and owner != self.company_id:
                raise ValidationError("Product does not belong to company")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        if self.signed_delta is None and self.quantity is not None:
            qty = Decimal(self.quantity)
            self.signed_delta = -qty if self.movement_type == self.MovementType.EXIT else qty

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.movement_type} | {self.quantity}"
