# documents/models/line_item.py

"""
DOCUMENT LINE ITEM

Snapshot row of a document.

Notes:
- total / fodec_amount / vat_amount are DERIVED and written by the
  document service from the totals engine; callers never set them.
- product is optional: manual (free-text) lines have no product and are
  excluded from stock accounting.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from products.models import Product

from .document import Document


class LineItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="line_items",
    )

    position = models.PositiveIntegerField(default=0)

    reference = models.CharField(max_length=128, blank=True, default="")
    description = models.CharField(max_length=500, blank=True, default="")

    quantity = models.DecimalField(max_digits=14, decimal_places=3)
    unit_price = models.DecimalField(max_digits=14, decimal_places=3)
    vat_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))

    fodec_applicable = models.BooleanField(default=False)
    fodec_rate = models.DecimalField(
        max_digits=6, decimal_places=4, default=Decimal("0.0100")
    )

    total = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))
    fodec_amount = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))
    vat_amount = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))

    class Meta:
        ordering = ["position"]
        indexes = [
            models.Index(fields=["document", "position"], name="lineitem_document_pos_idx"),
        ]

    def clean(self):
        if self.unit_price is not None and Decimal(self.unit_price) < Decimal("0"):
            raise ValidationError({"unit_price": "unit_price cannot be negative"})

        if self.quantity is not None and Decimal(self.quantity) < Decimal("0"):
            raise ValidationError({"quantity": "quantity cannot be negative"})

        rate = Decimal(self.vat_rate or 0)
        if rate < Decimal("0") or rate > Decimal("100"):
            raise ValidationError({"vat_rate": "VAT rate must be within 0-100"})

        if self.product_id and self.document_id:
            if self.product.company_id != self.document.company_id:
                raise ValidationError({"product": "Product does not belong to company"})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_manual(self) -> bool:
        return self.product_id is None

    def __str__(self):
        return f"{self.reference or self.description} x {self.quantity}"
