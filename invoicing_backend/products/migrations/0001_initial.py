import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("companies", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("sku", models.CharField(db_index=True, max_length=128)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("unit", models.CharField(blank=True, default="", max_length=32)),
                ("quantity", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=14)),
                ("min_stock", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=14)),
                ("sale_price", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=14)),
                ("purchase_price", models.DecimalField(decimal_places=3, default=Decimal("0.000"), max_digits=14)),
                ("vat_rate", models.DecimalField(decimal_places=2, default=Decimal("19.00"), max_digits=5)),
                ("fodec_applicable", models.BooleanField(default=False)),
                ("fodec_rate", models.DecimalField(decimal_places=4, default=Decimal("0.0100"), max_digits=6)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="products",
                        to="companies.company",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["company", "name"], name="product_company_name_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "sku"), name="uniq_product_sku_per_company"),
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gte", Decimal("0"))),
                        name="product_quantity_nonnegative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "movement_type",
                    models.CharField(
                        choices=[("entry", "Entrée"), ("exit", "Sortie"), ("adjust", "Ajustement")],
                        max_length=8,
                    ),
                ),
                ("quantity", models.DecimalField(decimal_places=3, max_digits=14)),
                ("signed_delta", models.DecimalField(decimal_places=3, max_digits=14)),
                ("note", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_movements",
                        to="companies.company",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="products.product",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["company", "created_at"], name="movement_company_created_idx"),
                    models.Index(fields=["product", "created_at"], name="movement_product_created_idx"),
                    models.Index(fields=["movement_type"], name="movement_type_idx"),
                ],
            },
        ),
    ]
