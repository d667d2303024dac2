# documents/tests/helpers.py

from decimal import Decimal

from django.contrib.auth import get_user_model

from companies.context import TenantContext
from companies.models import Client, Company, Supplier
from products.models import Product

User = get_user_model()


def make_company(name="Atelier Medina"):
    return Company.objects.create(name=name)


def make_user(company, role="manager", email=None):
    return User.objects.create_user(
        email=email or f"{role}@{company.name.lower().replace(' ', '-')}.tn",
        password="pass",
        role=role,
        company=company,
    )


def ctx_for(user):
    return TenantContext.for_user(user)


def make_client(company, name="Société Carthage"):
    return Client.objects.create(company=company, name=name)


def make_supplier(company, name="Grossiste Sousse"):
    return Supplier.objects.create(company=company, name=name)


def make_product(company, sku, quantity="0", min_stock="0", **extra):
    extra.setdefault("name", f"Produit {sku}")
    extra.setdefault("sale_price", Decimal("100.000"))
    extra.setdefault("purchase_price", Decimal("60.000"))
    extra.setdefault("vat_rate", Decimal("19.00"))
    return Product.objects.create(
        company=company,
        sku=sku,
        quantity=Decimal(quantity),
        min_stock=Decimal(min_stock),
        **extra,
    )


def line(product=None, quantity="1", unit_price="100", vat_rate="19", **extra):
    item = {
        "product": product.pk if product is not None else None,
        "quantity": Decimal(quantity),
        "unit_price": Decimal(unit_price),
        "vat_rate": Decimal(vat_rate),
    }
    item.update(extra)
    return item
