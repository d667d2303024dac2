# products/tests/test_stock.py

from decimal import Decimal

from django.core.exceptions import PermissionDenied, ValidationError
from django.test import TestCase

from documents.tests.helpers import ctx_for, make_company, make_product, make_user
from products.models import StockMovement
from products.services import (
    StockError,
    StockInsufficientError,
    record_manual_movement,
)


class ManualMovementTests(TestCase):
    """
    Manual stock movements.

    GUARANTEES:
    - Stock quantities are never negative
    - Every change leaves exactly one ledger row
    - Ledger rows are immutable
    """

    def setUp(self):
        self.company = make_company()
        self.user = make_user(self.company, role="accountant")
        self.ctx = ctx_for(self.user)
        self.product = make_product(self.company, "CAB-3G", quantity="10", min_stock="3")

    def test_entry(self):
        result = record_manual_movement(
            ctx=self.ctx,
            product=self.product,
            movement_type="entry",
            quantity="5",
            note="Inventaire initial",
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, Decimal("15.000"))

        movement = result.movements[0]
        self.assertEqual(movement.signed_delta, Decimal("5.000"))
        self.assertEqual(movement.note, "Inventaire initial")
        self.assertIsNone(movement.document)

    def test_exit_reports_low_stock(self):
        result = record_manual_movement(
            ctx=self.ctx, product=self.product, movement_type="exit", quantity="8"
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, Decimal("2.000"))
        self.assertEqual([p.sku for p in result.low_stock], ["CAB-3G"])

    def test_exit_beyond_stock_is_rejected(self):
        with self.assertRaises(StockInsufficientError):
            record_manual_movement(
                ctx=self.ctx, product=self.product, movement_type="exit", quantity="11"
            )

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, Decimal("10.000"))
        self.assertFalse(StockMovement.objects.exists())

    def test_signed_adjustment(self):
        result = record_manual_movement(
            ctx=self.ctx, product=self.product, movement_type="adjust", quantity="-4"
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, Decimal("6.000"))

        movement = result.movements[0]
        self.assertEqual(movement.movement_type, StockMovement.MovementType.ADJUST)
        self.assertEqual(movement.quantity, Decimal("4.000"))
        self.assertEqual(movement.signed_delta, Decimal("-4.000"))

    def test_adjustment_cannot_go_negative(self):
        with self.assertRaises(StockInsufficientError):
            record_manual_movement(
                ctx=self.ctx, product=self.product, movement_type="adjust", quantity="-20"
            )

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, Decimal("10.000"))

    def test_invalid_quantities(self):
        for movement_type, quantity in (("entry", "0"), ("exit", "-1"), ("adjust", "0")):
            with self.assertRaises(StockError):
                record_manual_movement(
                    ctx=self.ctx,
                    product=self.product,
                    movement_type=movement_type,
                    quantity=quantity,
                )

        with self.assertRaises(StockError):
            record_manual_movement(
                ctx=self.ctx, product=self.product, movement_type="transfer", quantity="1"
            )

    def test_cashier_cannot_move_stock(self):
        cashier = make_user(self.company, role="cashier")
        with self.assertRaises(PermissionDenied):
            record_manual_movement(
                ctx=ctx_for(cashier), product=self.product, movement_type="entry", quantity="1"
            )

    def test_foreign_product_is_rejected(self):
        stranger = make_user(make_company("Autre"), role="manager")
        with self.assertRaises(StockError):
            record_manual_movement(
                ctx=ctx_for(stranger), product=self.product, movement_type="entry", quantity="1"
            )

    def test_movements_are_immutable(self):
        movement = record_manual_movement(
            ctx=self.ctx, product=self.product, movement_type="entry", quantity="1"
        ).movements[0]

        movement.note = "modifié"
        with self.assertRaises(ValidationError):
            movement.save()

        with self.assertRaises(ValidationError):
            movement.delete()

        self.assertEqual(StockMovement.objects.count(), 1)
