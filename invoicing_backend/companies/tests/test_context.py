# companies/tests/test_context.py

from django.core.exceptions import PermissionDenied, ValidationError
from django.test import TestCase

from companies.context import TenantContext
from companies.models import Company
from documents.tests.helpers import make_company, make_user
from permissions.roles import CAP_DOCUMENTS_CANCEL, CAP_SALES_EDIT


class TenantContextTests(TestCase):
    """
    GUARANTEES:
    - The context is built from the user, never from ambient state
    - Users without a company get no context
    - Capabilities follow the role
    """

    def setUp(self):
        self.company = make_company()

    def test_for_user(self):
        user = make_user(self.company, role="cashier")
        ctx = TenantContext.for_user(user)

        self.assertEqual(ctx.company_id, self.company.pk)
        self.assertEqual(ctx.user_id, user.pk)
        self.assertEqual(ctx.role, "cashier")
        self.assertTrue(ctx.can(CAP_SALES_EDIT))
        self.assertFalse(ctx.can(CAP_DOCUMENTS_CANCEL))

        with self.assertRaises(PermissionDenied):
            ctx.require(CAP_DOCUMENTS_CANCEL)

    def test_user_without_company(self):
        user = make_user(self.company, role="manager")
        user.company = None

        with self.assertRaises(PermissionDenied):
            TenantContext.for_user(user)


class CompanyModelTests(TestCase):
    def test_defaults_come_from_settings(self):
        company = Company.objects.create(name="Défauts")

        self.assertEqual(company.default_currency, "TND")
        self.assertEqual(company.document_number_format, "{prefix}-{year}-{number}")
        self.assertEqual(company.document_number_padding, 4)

    def test_number_format_needs_number_token(self):
        company = Company(name="Mauvais format", document_number_format="{prefix}-{year}")
        with self.assertRaises(ValidationError):
            company.full_clean()
