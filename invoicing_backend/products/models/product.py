# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from companies.models import Company


class Product(models.Model):
    """
    Represents a stocked (or service) product of a company.

    STOCK MODEL (IMPORTANT):
    - `quantity` is the on-hand quantity and is SERVICE-MANAGED:
      it only changes through products.services.stock_effects, together with an
      append-only StockMovement row.
    - `min_stock` is the low-stock threshold (quantity <= min_stock).

    Tax defaults (vat_rate, fodec_*) pre-fill document lines; the line
    keeps its own snapshot afterwards.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="products",
    )

    sku = models.CharField(max_length=128, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")
    unit = models.CharField(max_length=32, blank=True, default="")

    quantity = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0.000")
    )
    min_stock = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0.000")
    )

    sale_price = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0.000")
    )
    purchase_price = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0.000")
    )

    vat_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("19.00")
    )
    fodec_applicable = models.BooleanField(default=False)
    fodec_rate = models.DecimalField(
        max_digits=6, decimal_places=4, default=Decimal("0.0100")
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "sku"],
                name="uniq_product_sku_per_company",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=Decimal("0")),
                name="product_quantity_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "name"], name="product_company_name_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        for field in ("sale_price", "purchase_price", "min_stock"):
            value = getattr(self, field)
            if value is not None and Decimal(value) < Decimal("0"):
                raise ValidationError({field: f"{field} cannot be negative"})

        rate = Decimal(self.vat_rate or 0)
        if rate < Decimal("0") or rate > Decimal("100"):
            raise ValidationError({"vat_rate": "VAT rate must be within 0-100"})

        if self.fodec_applicable and Decimal(self.fodec_rate or 0) <= Decimal("0"):
            raise ValidationError({"fodec_rate": "fodec_rate must be > 0 when FODEC applies"})

    @property
    def is_low_stock(self) -> bool:
        return Decimal(self.quantity or 0) <= Decimal(self.min_stock or 0)
