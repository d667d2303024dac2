# companies/models/company.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


def _default_currency():
    return getattr(settings, "DEFAULT_CURRENCY", "TND")


def _default_number_format():
    return getattr(settings, "DOCUMENT_NUMBER_FORMAT", "{prefix}-{year}-{number}")


def _default_number_padding():
    return getattr(settings, "DOCUMENT_NUMBER_PADDING", 4)


class Company(models.Model):
    """
    Tenant of the invoicing system.

    Every document, product and party belongs to exactly one company.
    Numbering settings live here; the running counters live in
    documents.DocumentSequence (row-locked per kind and year).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    tax_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Matricule fiscal",
    )
    address = models.TextField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")

    default_currency = models.CharField(max_length=3, default=_default_currency)
    default_vat_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("19.00")
    )

    document_number_format = models.CharField(
        max_length=64,
        default=_default_number_format,
        help_text="Tokens: {prefix}, {year}, {number}",
    )
    document_number_padding = models.PositiveSmallIntegerField(
        default=_default_number_padding
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "companies"

    def clean(self):
        if not (self.name or "").strip():
            raise ValidationError({"name": "name is required"})

        if "{number}" not in (self.document_number_format or ""):
            raise ValidationError(
                {"document_number_format": "format must contain {number}"}
            )

        rate = Decimal(self.default_vat_rate or 0)
        if rate < Decimal("0") or rate > Decimal("100"):
            raise ValidationError({"default_vat_rate": "VAT rate must be within 0-100"})

    def save(self, *args, **kwargs):
        self.default_currency = (self.default_currency or "").strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name
