# companies/management/commands/seed_demo.py

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from companies.context import TenantContext
from companies.models import Client, Company, Supplier
from permissions.roles import ROLE_ACCOUNTANT, ROLE_ADMIN, ROLE_CASHIER, ROLE_MANAGER
from products.models import Product
from products.services.stock_effects import record_manual_movement


@dataclass(frozen=True)
class SeedUserSpec:
    label: str
    role: str
    email: str


USER_SPECS = [
    SeedUserSpec("Admin", ROLE_ADMIN, "admin@example.com"),
    SeedUserSpec("Manager", ROLE_MANAGER, "manager@example.com"),
    SeedUserSpec("Accountant", ROLE_ACCOUNTANT, "accountant@example.com"),
    SeedUserSpec("Cashier", ROLE_CASHIER, "cashier@example.com"),
]

CLIENTS = ["Société Carthage Services", "Boulangerie El Menzah"]
SUPPLIERS = ["Grossiste Sousse", "Quincaillerie du Sahel"]

# sku, name, sale price, purchase price, vat, fodec, opening stock, min stock
PRODUCTS = [
    ("CAB-3G15", "Câble 3G1.5 (m)", "2.400", "1.600", "19", False, "500", "100"),
    ("DISJ-16A", "Disjoncteur 16A", "18.500", "11.200", "19", True, "40", "10"),
    ("PRI-2P", "Prise double", "7.900", "4.300", "19", False, "60", "15"),
    ("LIV-TECH", "Livre technique", "35.000", "24.000", "7", False, "12", "3"),
]


def _upsert_user(*, User, seed: SeedUserSpec, company: Company, password: str):
    """
    Idempotent user seed:
    - create if missing
    - re-attach role / company if exists
    """
    user = User.objects.filter(email=seed.email).first()
    if user is None:
        user = User.objects.create_user(
            email=seed.email,
            password=password,
            role=seed.role,
            company=company,
            is_staff=seed.role == ROLE_ADMIN,
            is_superuser=seed.role == ROLE_ADMIN,
        )
        return user, True

    if user.role != seed.role or user.company_id != company.pk:
        user.role = seed.role
        user.company = company
        user.save(update_fields=["role", "company", "updated_at"])
    return user, False


class Command(BaseCommand):
    help = "Seed a demo company with staff users, parties and products with opening stock."

    def add_arguments(self, parser):
        parser.add_argument(
            "--company",
            type=str,
            default="Démo SARL",
            help="Company name (default: Démo SARL)",
        )
        parser.add_argument(
            "--password",
            type=str,
            default="Pass1234!",
            help="Password for seeded users (default: Pass1234!)",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        name = (options.get("company") or "").strip()
        password = options.get("password") or ""

        if not name:
            raise CommandError("--company must not be empty.")
        if len(password) < 6:
            raise CommandError("--password must be at least 6 characters.")

        company, created = Company.objects.get_or_create(name=name)
        self.stdout.write(f"{'created' if created else 'exists '}: company {company.name}")

        User = get_user_model()
        manager = None
        for seed in USER_SPECS:
            user, created = _upsert_user(User=User, seed=seed, company=company, password=password)
            if seed.role == ROLE_MANAGER:
                manager = user
            self.stdout.write(f"{'created' if created else 'exists '}: {seed.label} ({seed.email})")

        for party in CLIENTS:
            Client.objects.get_or_create(company=company, name=party)
        for party in SUPPLIERS:
            Supplier.objects.get_or_create(company=company, name=party)

        ctx = TenantContext.for_user(manager)
        for sku, label, sale, purchase, vat, fodec, opening, minimum in PRODUCTS:
            product, created = Product.objects.get_or_create(
                company=company,
                sku=sku,
                defaults={
                    "name": label,
                    "sale_price": Decimal(sale),
                    "purchase_price": Decimal(purchase),
                    "vat_rate": Decimal(vat),
                    "fodec_applicable": fodec,
                    "min_stock": Decimal(minimum),
                },
            )
            if created:
                # opening stock goes through the ledger like any other entry
                record_manual_movement(
                    ctx=ctx,
                    product=product,
                    movement_type="entry",
                    quantity=opening,
                    note="Stock initial",
                )

        self.stdout.write(self.style.SUCCESS("Demo data seeded."))
