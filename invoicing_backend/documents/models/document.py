# documents/models/document.py

"""
COMMERCIAL DOCUMENT

One persisted record of the commercial chain (quote, order, delivery,
invoice, credit note; sales and purchases).

GUARANTEES:
- Totals columns are a SNAPSHOT written by documents.services only
- Every conversion materializes a NEW Document (origin -> new row)
- A source has at most one active (non-cancelled) conversion per target kind
- Credit notes reference exactly one invoice (source_document)
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from companies.models import Client, Company, Supplier


class Document(models.Model):
    # -------------------------
    # Kinds
    # -------------------------
    KIND_QUOTE = "quote"
    KIND_SALE_ORDER = "sale_order"
    KIND_SALE_DELIVERY = "sale_delivery"
    KIND_SALE_INVOICE = "sale_invoice"
    KIND_SALE_CREDIT_NOTE = "sale_credit_note"

    KIND_PURCHASE_ORDER = "purchase_order"
    KIND_PURCHASE_DELIVERY = "purchase_delivery"
    KIND_PURCHASE_INVOICE = "purchase_invoice"
    KIND_PURCHASE_CREDIT_NOTE = "purchase_credit_note"

    KIND_CHOICES = [
        (KIND_QUOTE, "Devis"),
        (KIND_SALE_ORDER, "Bon de commande"),
        (KIND_SALE_DELIVERY, "Bon de livraison"),
        (KIND_SALE_INVOICE, "Facture"),
        (KIND_SALE_CREDIT_NOTE, "Facture d'avoir"),
        (KIND_PURCHASE_ORDER, "Commande fournisseur"),
        (KIND_PURCHASE_DELIVERY, "Bon de réception"),
        (KIND_PURCHASE_INVOICE, "Facture d'achat"),
        (KIND_PURCHASE_CREDIT_NOTE, "Avoir fournisseur"),
    ]

    # -------------------------
    # Statuses
    # -------------------------
    STATUS_DRAFT = "draft"
    STATUS_SENT = "sent"
    STATUS_PAID = "paid"
    STATUS_OVERDUE = "overdue"
    STATUS_CANCELLED = "cancelled"
    STATUS_PURCHASE_QUOTE = "purchase_quote"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Brouillon"),
        (STATUS_SENT, "Envoyé"),
        (STATUS_PAID, "Payé"),
        (STATUS_OVERDUE, "Échu"),
        (STATUS_CANCELLED, "Annulé"),
        (STATUS_PURCHASE_QUOTE, "Demande de prix"),
    ]

    DISCOUNT_PERCENT = "percent"
    DISCOUNT_FIXED = "fixed"

    DISCOUNT_CHOICES = [
        (DISCOUNT_PERCENT, "Percent"),
        (DISCOUNT_FIXED, "Fixed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="documents",
    )

    kind = models.CharField(max_length=32, choices=KIND_CHOICES, db_index=True)
    number = models.CharField(max_length=64)
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_DRAFT,
        db_index=True,
    )

    client = models.ForeignKey(
        Client,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="documents",
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="documents",
    )

    issue_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)
    validity_date = models.DateField(null=True, blank=True)

    currency = models.CharField(max_length=3, default="TND")
    notes = models.TextField(blank=True, default="")

    stamp_included = models.BooleanField(default=False)

    discount_type = models.CharField(
        max_length=10,
        choices=DISCOUNT_CHOICES,
        null=True,
        blank=True,
    )
    discount_value = models.DecimalField(
        max_digits=14, decimal_places=3, default=Decimal("0.000")
    )

    # -------------------------
    # Totals snapshot (service-written)
    # -------------------------
    subtotal = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))
    total_fodec = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))
    discount_amount = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))
    base_tva = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))
    stamp_amount = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))
    total = models.DecimalField(max_digits=14, decimal_places=3, default=Decimal("0.000"))

    # -------------------------
    # Provenance
    # -------------------------
    source_document = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="credit_notes",
        help_text="Invoice credited by this credit note (credit notes only).",
    )
    origin = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="conversions",
        help_text="Document this one was converted from.",
    )

    stock_applied_at = models.DateTimeField(null=True, blank=True)
    stock_reversed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="documents",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-issue_date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "number"],
                name="uniq_document_number_per_company",
            ),
            models.UniqueConstraint(
                fields=["origin", "kind"],
                condition=models.Q(origin__isnull=False) & ~models.Q(status="cancelled"),
                name="uniq_active_conversion_per_origin_and_kind",
            ),
            models.CheckConstraint(
                condition=models.Q(discount_value__gte=Decimal("0")),
                name="document_discount_value_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "kind", "status"], name="document_company_kind_idx"),
            models.Index(fields=["company", "issue_date"], name="document_company_issued_idx"),
        ]

    CREDIT_NOTE_KINDS = {KIND_SALE_CREDIT_NOTE, KIND_PURCHASE_CREDIT_NOTE}

    def clean(self):
        is_credit_note = self.kind in self.CREDIT_NOTE_KINDS

        if is_credit_note and not self.source_document_id:
            raise ValidationError(
                {"source_document": "Credit notes must reference a source invoice"}
            )

        if not is_credit_note and self.source_document_id:
            raise ValidationError(
                {"source_document": "Only credit notes may reference a source invoice"}
            )

        if self.origin_id and self.origin_id == self.id:
            raise ValidationError({"origin": "A document cannot originate from itself"})

        if self.discount_type is None and Decimal(self.discount_value or 0) != Decimal("0"):
            raise ValidationError(
                {"discount_type": "discount_type is required when a discount is set"}
            )

        if self.client_id and self.company_id and self.client.company_id != self.company_id:
            raise ValidationError({"client": "Client does not belong to company"})

        if self.supplier_id and self.company_id and self.supplier.company_id != self.company_id:
            raise ValidationError({"supplier": "Supplier does not belong to company"})

    def save(self, *args, **kwargs):
        self.currency = (self.currency or "").strip().upper()
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_credit_note(self) -> bool:
        return self.kind in self.CREDIT_NOTE_KINDS

    @property
    def stock_effect_active(self) -> bool:
        return self.stock_applied_at is not None and self.stock_reversed_at is None

    def __str__(self):
        return f"{self.number} ({self.kind})"
