import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


MONEY = dict(decimal_places=3, default=Decimal("0.000"), max_digits=14)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("companies", "0001_initial"),
        ("products", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Document",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("quote", "Devis"),
                            ("sale_order", "Bon de commande"),
                            ("sale_delivery", "Bon de livraison"),
                            ("sale_invoice", "Facture"),
                            ("sale_credit_note", "Facture d'avoir"),
                            ("purchase_order", "Commande fournisseur"),
                            ("purchase_delivery", "Bon de réception"),
                            ("purchase_invoice", "Facture d'achat"),
                            ("purchase_credit_note", "Avoir fournisseur"),
                        ],
                        db_index=True,
                        max_length=32,
                    ),
                ),
                ("number", models.CharField(max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Brouillon"),
                            ("sent", "Envoyé"),
                            ("paid", "Payé"),
                            ("overdue", "Échu"),
                            ("cancelled", "Annulé"),
                            ("purchase_quote", "Demande de prix"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("issue_date", models.DateField(default=django.utils.timezone.localdate)),
                ("due_date", models.DateField(blank=True, null=True)),
                ("validity_date", models.DateField(blank=True, null=True)),
                ("currency", models.CharField(default="TND", max_length=3)),
                ("notes", models.TextField(blank=True, default="")),
                ("stamp_included", models.BooleanField(default=False)),
                (
                    "discount_type",
                    models.CharField(
                        blank=True,
                        choices=[("percent", "Percent"), ("fixed", "Fixed")],
                        max_length=10,
                        null=True,
                    ),
                ),
                ("discount_value", models.DecimalField(**MONEY)),
                ("subtotal", models.DecimalField(**MONEY)),
                ("total_fodec", models.DecimalField(**MONEY)),
                ("discount_amount", models.DecimalField(**MONEY)),
                ("base_tva", models.DecimalField(**MONEY)),
                ("tax_amount", models.DecimalField(**MONEY)),
                ("stamp_amount", models.DecimalField(**MONEY)),
                ("total", models.DecimalField(**MONEY)),
                ("stock_applied_at", models.DateTimeField(blank=True, null=True)),
                ("stock_reversed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="documents",
                        to="companies.company",
                    ),
                ),
                (
                    "client",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="documents",
                        to="companies.client",
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="documents",
                        to="companies.supplier",
                    ),
                ),
                (
                    "source_document",
                    models.ForeignKey(
                        blank=True,
                        help_text="Invoice credited by this credit note (credit notes only).",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_notes",
                        to="documents.document",
                    ),
                ),
                (
                    "origin",
                    models.ForeignKey(
                        blank=True,
                        help_text="Document this one was converted from.",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="conversions",
                        to="documents.document",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="documents",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-issue_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["company", "kind", "status"], name="document_company_kind_idx"),
                    models.Index(fields=["company", "issue_date"], name="document_company_issued_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "number"), name="uniq_document_number_per_company"),
                    models.UniqueConstraint(
                        condition=models.Q(("origin__isnull", False)),
                        fields=("origin", "kind"),
                        name="uniq_conversion_per_origin_and_kind",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("discount_value__gte", Decimal("0"))),
                        name="document_discount_value_nonnegative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LineItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("position", models.PositiveIntegerField(default=0)),
                ("reference", models.CharField(blank=True, default="", max_length=128)),
                ("description", models.CharField(blank=True, default="", max_length=500)),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("unit_price", models.DecimalField(decimal_places=3, max_digits=14)),
                ("vat_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("fodec_applicable", models.BooleanField(default=False)),
                ("fodec_rate", models.DecimalField(decimal_places=4, default=Decimal("0.0100"), max_digits=6)),
                ("total", models.DecimalField(**MONEY)),
                ("fodec_amount", models.DecimalField(**MONEY)),
                ("vat_amount", models.DecimalField(**MONEY)),
                (
                    "document",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="documents.document",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="line_items",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["position"],
                "indexes": [
                    models.Index(fields=["document", "position"], name="lineitem_document_pos_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DocumentSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(max_length=32)),
                ("year", models.PositiveIntegerField()),
                ("last_number", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="document_sequences",
                        to="companies.company",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "kind", "year"),
                        name="uniq_sequence_per_company_kind_year",
                    ),
                ],
            },
        ),
    ]
