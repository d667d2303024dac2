# companies/tests/test_seed_demo.py

from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase

from companies.models import Company
from products.models import Product, StockMovement

User = get_user_model()


class SeedDemoCommandTests(TestCase):
    """
    GUARANTEES:
    - One company with every staff role
    - Opening stock is recorded in the ledger
    - Running twice changes nothing
    """

    def _run(self):
        call_command("seed_demo", "--company", "Démo Test", stdout=StringIO())

    def test_seed_is_idempotent(self):
        self._run()
        self._run()

        company = Company.objects.get(name="Démo Test")
        self.assertEqual(User.objects.filter(company=company).count(), 4)
        self.assertEqual(Product.objects.filter(company=company).count(), 4)
        self.assertEqual(StockMovement.objects.filter(company=company).count(), 4)

        cable = Product.objects.get(company=company, sku="CAB-3G15")
        self.assertEqual(cable.quantity, Decimal("500.000"))
