# documents/tests/test_document_service.py

from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import PermissionDenied
from django.test import TestCase
from django.utils import timezone

from documents.models import Document, LineItem
from documents.services.document_service import (
    convert_document,
    create_document,
    next_document_number,
    transition_document,
    update_document,
)
from documents.services.exceptions import (
    CreditNoteReferenceError,
    DocumentFrozenError,
    DocumentValidationError,
    DuplicateConversionError,
    InvalidConversionError,
    InvalidStatusTransitionError,
)
from documents.tests.helpers import (
    ctx_for,
    line,
    make_client,
    make_company,
    make_product,
    make_supplier,
    make_user,
)


class DocumentServiceTestBase(TestCase):
    def setUp(self):
        self.company = make_company()
        self.manager = make_user(self.company, role="manager")
        self.ctx = ctx_for(self.manager)
        self.client_party = make_client(self.company)
        self.supplier = make_supplier(self.company)
        self.year = timezone.localdate().year

    def create(self, kind=Document.KIND_QUOTE, items=None, **data):
        data.setdefault("client", self.client_party.pk)
        data["kind"] = kind
        data["items"] = items if items is not None else [line(quantity="2")]
        return create_document(ctx=self.ctx, data=data)

    def convert(self, document, target_kind, **kwargs):
        return convert_document(
            ctx=self.ctx,
            document_id=document.pk,
            target_kind=target_kind,
            **kwargs,
        )


class CreateDocumentTests(DocumentServiceTestBase):
    """
    GUARANTEES:
    - Totals are computed server-side and persisted as a snapshot
    - Numbers follow the company format per kind and year
    - Parties must match the document side
    """

    def test_create_quote_persists_totals(self):
        result = self.create(items=[line(quantity="2", unit_price="100", vat_rate="19")])
        doc = result.document

        doc.refresh_from_db()
        self.assertEqual(doc.status, Document.STATUS_DRAFT)
        self.assertEqual(doc.subtotal, Decimal("200.000"))
        self.assertEqual(doc.base_tva, Decimal("200.000"))
        self.assertEqual(doc.tax_amount, Decimal("38.000"))
        self.assertEqual(doc.total, Decimal("238.000"))
        self.assertEqual(doc.currency, "TND")

        item = doc.items.get()
        self.assertEqual(item.total, Decimal("200.000"))
        self.assertEqual(item.vat_amount, Decimal("38.000"))

    def test_client_totals_are_ignored(self):
        result = self.create(total=Decimal("999"), subtotal=Decimal("1"))
        self.assertEqual(result.document.total, Decimal("238.000"))

    def test_discount_and_stamp(self):
        result = self.create(
            discount={"type": "percent", "value": Decimal("10")},
            stamp_included=True,
        )
        doc = result.document
        self.assertEqual(doc.discount_amount, Decimal("20.000"))
        self.assertEqual(doc.stamp_amount, Decimal("1.000"))
        self.assertEqual(doc.total, Decimal("215.200"))

    def test_negative_discount_is_rejected(self):
        with self.assertRaises(DocumentValidationError):
            self.create(discount={"type": "fixed", "value": Decimal("-5")})

    def test_numbering_per_kind(self):
        first = self.create().document
        second = self.create().document
        invoice = self.create(kind=Document.KIND_SALE_INVOICE).document

        self.assertEqual(first.number, f"DEV-{self.year}-0001")
        self.assertEqual(second.number, f"DEV-{self.year}-0002")
        self.assertEqual(invoice.number, f"FAC-{self.year}-0001")

    def test_company_number_format(self):
        self.company.document_number_format = "{prefix}/{number}/{year}"
        self.company.document_number_padding = 2
        self.company.save()

        number = next_document_number(company=self.company, kind=Document.KIND_PURCHASE_ORDER)
        self.assertEqual(number, f"BC-A/01/{self.year}")

    def test_sales_document_requires_client(self):
        with self.assertRaises(DocumentValidationError):
            self.create(client=None)

        with self.assertRaises(DocumentValidationError):
            self.create(supplier=self.supplier.pk)

    def test_purchase_document_requires_supplier(self):
        with self.assertRaises(DocumentValidationError):
            self.create(kind=Document.KIND_PURCHASE_ORDER)

        result = self.create(
            kind=Document.KIND_PURCHASE_ORDER,
            client=None,
            supplier=self.supplier.pk,
        )
        self.assertEqual(result.document.supplier, self.supplier)

    def test_party_of_another_company_is_rejected(self):
        other = make_client(make_company("Autre"), name="Intrus")
        with self.assertRaises(DocumentValidationError):
            self.create(client=other.pk)

    def test_sign_invariants(self):
        with self.assertRaises(DocumentValidationError):
            self.create(items=[line(quantity="-1")])

        with self.assertRaises(DocumentValidationError):
            self.create(items=[line(unit_price="-1")])

        with self.assertRaises(DocumentValidationError):
            self.create(items=[line(vat_rate="120")])

        # sale lines accept zero quantity, purchase lines do not
        self.create(items=[line(quantity="0")])
        with self.assertRaises(DocumentValidationError):
            self.create(
                kind=Document.KIND_PURCHASE_ORDER,
                client=None,
                supplier=self.supplier.pk,
                items=[line(quantity="0")],
            )

    def test_product_defaults_fill_line(self):
        product = make_product(
            self.company,
            "VIS-8",
            quantity="10",
            sale_price=Decimal("12.500"),
            vat_rate=Decimal("7.00"),
            fodec_applicable=True,
        )
        result = self.create(items=[{"product": product.pk, "quantity": Decimal("2")}])

        item = result.document.items.get()
        self.assertEqual(item.unit_price, Decimal("12.500"))
        self.assertEqual(item.vat_rate, Decimal("7.00"))
        self.assertTrue(item.fodec_applicable)
        self.assertEqual(item.reference, "VIS-8")
        self.assertEqual(item.fodec_amount, Decimal("0.250"))

    def test_invoice_due_date_defaults(self):
        doc = self.create(kind=Document.KIND_SALE_INVOICE).document
        self.assertEqual(doc.due_date, doc.issue_date + timedelta(days=30))

    def test_currency_is_uppercased(self):
        doc = self.create(currency="eur").document
        self.assertEqual(doc.currency, "EUR")

    def test_unsupported_currency_is_rejected(self):
        with self.assertRaises(DocumentValidationError):
            self.create(currency="zzz")

        doc = self.create().document
        with self.assertRaises(DocumentValidationError):
            update_document(ctx=self.ctx, document_id=doc.pk, patch={"currency": "XOF"})

        doc.refresh_from_db()
        self.assertEqual(doc.currency, "TND")
        self.assertEqual(Document.objects.count(), 1)

    def test_draft_invoice_does_not_move_stock(self):
        product = make_product(self.company, "VIS-8", quantity="10")
        invoice = self.create(
            kind=Document.KIND_SALE_INVOICE,
            items=[line(product, quantity="4")],
        ).document

        product.refresh_from_db()
        self.assertEqual(product.quantity, Decimal("10.000"))
        self.assertIsNone(invoice.stock_applied_at)

    def test_new_document_cannot_start_paid(self):
        with self.assertRaises(InvalidStatusTransitionError):
            self.create(kind=Document.KIND_SALE_INVOICE, status=Document.STATUS_PAID)

    def test_cashier_cannot_create_purchase_documents(self):
        cashier = make_user(self.company, role="cashier")
        with self.assertRaises(PermissionDenied):
            create_document(
                ctx=ctx_for(cashier),
                data={
                    "kind": Document.KIND_PURCHASE_ORDER,
                    "supplier": self.supplier.pk,
                    "items": [line()],
                },
            )


class UpdateDocumentTests(DocumentServiceTestBase):
    """
    GUARANTEES:
    - Draft documents are freely editable and totals are recomputed
    - Kind / status / number never change through an update
    - Sent, converted or stock-moving documents are frozen
    - A directly created invoice moves stock when it is sent
    """

    def test_update_recomputes_totals(self):
        doc = self.create().document

        result = update_document(
            ctx=self.ctx,
            document_id=doc.pk,
            patch={"items": [line(quantity="1", unit_price="50", vat_rate="0")], "notes": "Révisé"},
        )

        doc.refresh_from_db()
        self.assertEqual(result.document.total, Decimal("50.000"))
        self.assertEqual(doc.total, Decimal("50.000"))
        self.assertEqual(doc.notes, "Révisé")
        self.assertEqual(doc.items.count(), 1)

    def test_update_discount_keeps_items(self):
        doc = self.create().document
        update_document(
            ctx=self.ctx,
            document_id=doc.pk,
            patch={"discount": {"type": "fixed", "value": Decimal("300")}},
        )

        doc.refresh_from_db()
        self.assertEqual(doc.items.count(), 1)
        self.assertEqual(doc.discount_amount, Decimal("200.000"))
        self.assertEqual(doc.total, Decimal("0.000"))

    def test_immutable_fields(self):
        doc = self.create().document
        for patch in ({"status": "sent"}, {"kind": Document.KIND_SALE_ORDER}, {"number": "X"}):
            with self.assertRaises(DocumentValidationError):
                update_document(ctx=self.ctx, document_id=doc.pk, patch=patch)

    def test_converted_document_is_frozen(self):
        quote = self.create().document
        self.convert(quote, Document.KIND_SALE_ORDER)

        with self.assertRaises(DocumentFrozenError):
            update_document(ctx=self.ctx, document_id=quote.pk, patch={"notes": "trop tard"})

    def test_draft_invoice_is_editable_until_sent(self):
        product = make_product(self.company, "VIS-8", quantity="10")
        invoice = self.create(
            kind=Document.KIND_SALE_INVOICE,
            items=[line(product, quantity="1")],
        ).document

        update_document(
            ctx=self.ctx,
            document_id=invoice.pk,
            patch={"items": [line(product, quantity="5")]},
        )
        product.refresh_from_db()
        self.assertEqual(product.quantity, Decimal("10.000"))

        result = transition_document(
            ctx=self.ctx,
            document_id=invoice.pk,
            target_status=Document.STATUS_SENT,
        )

        product.refresh_from_db()
        invoice.refresh_from_db()
        self.assertEqual(product.quantity, Decimal("5.000"))
        self.assertTrue(result.stock.applied)
        self.assertIsNotNone(invoice.stock_applied_at)
        self.assertEqual(invoice.stock_movements.get().quantity, Decimal("5.000"))

        with self.assertRaises(DocumentFrozenError):
            update_document(ctx=self.ctx, document_id=invoice.pk, patch={"notes": "x"})

    def test_sent_invoice_without_products_is_frozen_but_not_stamped(self):
        invoice = self.create(
            kind=Document.KIND_SALE_INVOICE,
            items=[line(None, quantity="2", description="Conseil")],
        ).document
        transition_document(ctx=self.ctx, document_id=invoice.pk, target_status=Document.STATUS_SENT)

        invoice.refresh_from_db()
        self.assertIsNone(invoice.stock_applied_at)
        self.assertFalse(invoice.stock_movements.exists())

        with self.assertRaises(DocumentFrozenError):
            update_document(ctx=self.ctx, document_id=invoice.pk, patch={"notes": "x"})

    def test_cancelled_conversion_releases_the_source(self):
        quote = self.create().document
        order = self.convert(quote, Document.KIND_SALE_ORDER).document
        transition_document(ctx=self.ctx, document_id=order.pk, target_status=Document.STATUS_CANCELLED)

        update_document(ctx=self.ctx, document_id=quote.pk, patch={"notes": "Révisé"})
        quote.refresh_from_db()
        self.assertEqual(quote.notes, "Révisé")

    def test_foreign_document_is_not_found(self):
        doc = self.create().document
        stranger = make_user(make_company("Autre"), role="manager")

        with self.assertRaises(Document.DoesNotExist):
            update_document(ctx=ctx_for(stranger), document_id=doc.pk, patch={"notes": "x"})


class ConvertDocumentTests(DocumentServiceTestBase):
    """
    GUARANTEES:
    - Each conversion creates a new document; the source is untouched
    - A source converts at most once per target kind, until that
      conversion is cancelled
    - Undeclared edges create nothing
    """

    def test_full_sales_chain(self):
        quote = self.create(
            items=[line(quantity="2")],
            discount={"type": "percent", "value": Decimal("10")},
        ).document

        order = self.convert(quote, Document.KIND_SALE_ORDER).document
        delivery = self.convert(order, Document.KIND_SALE_DELIVERY).document
        invoice = self.convert(delivery, Document.KIND_SALE_INVOICE).document

        self.assertEqual(order.origin, quote)
        self.assertEqual(delivery.origin, order)
        self.assertEqual(invoice.origin, delivery)
        self.assertEqual(invoice.number, f"FAC-{self.year}-0001")
        self.assertEqual(invoice.total, quote.total)
        self.assertEqual(invoice.client, quote.client)
        self.assertIsNotNone(invoice.due_date)

        quote.refresh_from_db()
        self.assertEqual(quote.status, Document.STATUS_DRAFT)
        self.assertEqual(quote.items.count(), 1)
        self.assertEqual(Document.objects.count(), 4)

    def test_duplicate_conversion_is_rejected(self):
        quote = self.create().document
        self.convert(quote, Document.KIND_SALE_ORDER)

        with self.assertRaises(DuplicateConversionError):
            self.convert(quote, Document.KIND_SALE_ORDER)

        self.assertEqual(Document.objects.filter(origin=quote).count(), 1)

    def test_delivery_can_be_invoiced_again_after_cancellation(self):
        product = make_product(self.company, "CAB-3", quantity="10")
        quote = self.create(items=[line(product, quantity="4")]).document
        order = self.convert(quote, Document.KIND_SALE_ORDER).document
        delivery = self.convert(order, Document.KIND_SALE_DELIVERY).document

        first = self.convert(delivery, Document.KIND_SALE_INVOICE).document
        transition_document(ctx=self.ctx, document_id=first.pk, target_status=Document.STATUS_CANCELLED)

        second = self.convert(delivery, Document.KIND_SALE_INVOICE).document

        product.refresh_from_db()
        self.assertNotEqual(first.pk, second.pk)
        self.assertEqual(second.origin, delivery)
        self.assertEqual(product.quantity, Decimal("6.000"))

        with self.assertRaises(DuplicateConversionError):
            self.convert(delivery, Document.KIND_SALE_INVOICE)

    def test_undeclared_edge_creates_nothing(self):
        quote = self.create().document
        order = self.convert(quote, Document.KIND_SALE_ORDER).document
        delivery = self.convert(order, Document.KIND_SALE_DELIVERY).document
        before = Document.objects.count()

        with self.assertRaises(InvalidConversionError):
            self.convert(delivery, Document.KIND_SALE_CREDIT_NOTE)

        self.assertEqual(Document.objects.count(), before)

    def test_cancelled_document_cannot_be_converted(self):
        quote = self.create().document
        transition_document(ctx=self.ctx, document_id=quote.pk, target_status=Document.STATUS_CANCELLED)

        with self.assertRaises(InvalidConversionError):
            self.convert(quote, Document.KIND_SALE_ORDER)

    def test_purchase_quote_status_suppresses_stock(self):
        product = make_product(self.company, "PAP-A4", quantity="4")
        order = self.create(
            kind=Document.KIND_PURCHASE_ORDER,
            client=None,
            supplier=self.supplier.pk,
            items=[line(product, quantity="6", unit_price="3")],
        ).document
        delivery = self.convert(order, Document.KIND_PURCHASE_DELIVERY).document

        result = self.convert(
            delivery,
            Document.KIND_PURCHASE_INVOICE,
            status=Document.STATUS_PURCHASE_QUOTE,
        )

        product.refresh_from_db()
        self.assertEqual(product.quantity, Decimal("4.000"))
        self.assertIsNone(result.document.stock_applied_at)
        self.assertFalse(result.document.stock_movements.exists())

    def test_purchase_invoice_adds_stock(self):
        product = make_product(self.company, "PAP-A4", quantity="4")
        order = self.create(
            kind=Document.KIND_PURCHASE_ORDER,
            client=None,
            supplier=self.supplier.pk,
            items=[line(product, quantity="6", unit_price="3")],
        ).document
        delivery = self.convert(order, Document.KIND_PURCHASE_DELIVERY).document
        invoice = self.convert(delivery, Document.KIND_PURCHASE_INVOICE).document

        product.refresh_from_db()
        self.assertEqual(product.quantity, Decimal("10.000"))
        self.assertIsNotNone(invoice.stock_applied_at)


class CreditNoteTests(DocumentServiceTestBase):
    """
    GUARANTEES:
    - A credit note references exactly one issued invoice of the same side
    - Credit notes never carry the fiscal stamp
    - Cumulative credit notes cannot exceed the invoice total
    """

    def setUp(self):
        super().setUp()
        self.product = make_product(self.company, "CHA-01", quantity="10")
        self.invoice = self.create(
            kind=Document.KIND_SALE_INVOICE,
            items=[line(self.product, quantity="3", unit_price="100", vat_rate="19")],
            stamp_included=True,
        ).document
        transition_document(ctx=self.ctx, document_id=self.invoice.pk, target_status=Document.STATUS_SENT)
        self.invoice.refresh_from_db()

    def credit(self, quantity):
        return self.create(
            kind=Document.KIND_SALE_CREDIT_NOTE,
            client=None,
            source_document=self.invoice.pk,
            items=[line(self.product, quantity=quantity, unit_price="100", vat_rate="19")],
            stamp_included=True,
        )

    def test_credit_note_returns_stock_when_sent(self):
        result = self.credit("1")
        note = result.document

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, Decimal("7.000"))
        self.assertEqual(note.source_document, self.invoice)
        self.assertEqual(note.client, self.invoice.client)
        self.assertFalse(note.stamp_included)
        self.assertEqual(note.total, Decimal("119.000"))

        transition_document(ctx=self.ctx, document_id=note.pk, target_status=Document.STATUS_SENT)

        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, Decimal("8.000"))

    def test_update_cannot_exceed_cumulative_cap(self):
        note = self.credit("1").document

        with self.assertRaises(CreditNoteReferenceError):
            update_document(
                ctx=self.ctx,
                document_id=note.pk,
                patch={"items": [line(self.product, quantity="5", unit_price="100", vat_rate="19")]},
            )

        note.refresh_from_db()
        self.assertEqual(note.total, Decimal("119.000"))
        self.assertEqual(note.items.get().quantity, Decimal("1.000"))

    def test_parked_purchase_credit_note_stays_capped(self):
        invoice = self.create(
            kind=Document.KIND_PURCHASE_INVOICE,
            client=None,
            supplier=self.supplier.pk,
            items=[line(quantity="1", unit_price="100", vat_rate="0")],
        ).document
        transition_document(ctx=self.ctx, document_id=invoice.pk, target_status=Document.STATUS_SENT)

        note = self.create(
            kind=Document.KIND_PURCHASE_CREDIT_NOTE,
            client=None,
            source_document=invoice.pk,
            status=Document.STATUS_PURCHASE_QUOTE,
            items=[line(quantity="1", unit_price="50", vat_rate="0")],
        ).document

        with self.assertRaises(CreditNoteReferenceError):
            update_document(
                ctx=self.ctx,
                document_id=note.pk,
                patch={"items": [line(quantity="10", unit_price="100", vat_rate="0")]},
            )

        note.refresh_from_db()
        self.assertEqual(note.total, Decimal("50.000"))

    def test_credit_note_by_conversion(self):
        note = self.convert(self.invoice, Document.KIND_SALE_CREDIT_NOTE).document

        self.assertEqual(note.source_document, self.invoice)
        self.assertEqual(note.origin, self.invoice)
        self.assertEqual(note.stamp_amount, Decimal("0.000"))
        self.assertEqual(note.total, Decimal("357.000"))

    def test_cumulative_cap(self):
        self.credit("2")
        with self.assertRaises(CreditNoteReferenceError):
            self.credit("2")

        self.assertEqual(self.invoice.credit_notes.count(), 1)

    def test_credit_note_requires_invoice(self):
        with self.assertRaises(CreditNoteReferenceError):
            self.create(kind=Document.KIND_SALE_CREDIT_NOTE)

        quote = self.create().document
        with self.assertRaises(CreditNoteReferenceError):
            self.create(kind=Document.KIND_SALE_CREDIT_NOTE, client=None, source_document=quote.pk)

    def test_draft_invoice_cannot_be_credited(self):
        draft = self.create(kind=Document.KIND_SALE_INVOICE).document
        with self.assertRaises(CreditNoteReferenceError):
            self.create(kind=Document.KIND_SALE_CREDIT_NOTE, client=None, source_document=draft.pk)

    def test_credit_note_keeps_invoice_currency(self):
        with self.assertRaises(CreditNoteReferenceError):
            self.create(
                kind=Document.KIND_SALE_CREDIT_NOTE,
                client=None,
                source_document=self.invoice.pk,
                currency="EUR",
            )

    def test_invoice_with_active_credit_note_cannot_be_cancelled(self):
        self.credit("1")
        with self.assertRaises(DocumentFrozenError):
            transition_document(
                ctx=self.ctx,
                document_id=self.invoice.pk,
                target_status=Document.STATUS_CANCELLED,
            )


class TransitionDocumentTests(DocumentServiceTestBase):
    """
    GUARANTEES:
    - Only declared transitions apply
    - Cancelling a stock-moving document writes compensating movements
    - Cancellation needs the cancel capability
    """

    def test_sent_then_paid(self):
        invoice = self.create(kind=Document.KIND_SALE_INVOICE).document
        transition_document(ctx=self.ctx, document_id=invoice.pk, target_status="sent")
        transition_document(ctx=self.ctx, document_id=invoice.pk, target_status="paid")

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Document.STATUS_PAID)

        with self.assertRaises(InvalidStatusTransitionError):
            transition_document(ctx=self.ctx, document_id=invoice.pk, target_status="cancelled")

    def test_backwards_transition_is_rejected(self):
        quote = self.create().document
        transition_document(ctx=self.ctx, document_id=quote.pk, target_status="sent")

        with self.assertRaises(InvalidStatusTransitionError):
            transition_document(ctx=self.ctx, document_id=quote.pk, target_status="draft")

    def test_cancel_reverses_stock(self):
        product = make_product(self.company, "LAM-9", quantity="5")
        invoice = self.create(
            kind=Document.KIND_SALE_INVOICE,
            items=[line(product, quantity="3")],
        ).document
        transition_document(ctx=self.ctx, document_id=invoice.pk, target_status="sent")

        product.refresh_from_db()
        self.assertEqual(product.quantity, Decimal("2.000"))

        result = transition_document(ctx=self.ctx, document_id=invoice.pk, target_status="cancelled")

        product.refresh_from_db()
        invoice.refresh_from_db()
        self.assertEqual(product.quantity, Decimal("5.000"))
        self.assertIsNotNone(invoice.stock_reversed_at)
        self.assertTrue(result.stock.applied)
        self.assertEqual(invoice.stock_movements.count(), 2)

    def test_cashier_cannot_cancel(self):
        cashier = make_user(self.company, role="cashier")
        quote = self.create().document

        with self.assertRaises(PermissionDenied):
            transition_document(
                ctx=ctx_for(cashier),
                document_id=quote.pk,
                target_status=Document.STATUS_CANCELLED,
            )

        quote.refresh_from_db()
        self.assertEqual(quote.status, Document.STATUS_DRAFT)

    def test_line_items_follow_document(self):
        doc = self.create(items=[line(), line(quantity="3")]).document
        self.assertEqual(
            list(LineItem.objects.filter(document=doc).values_list("position", flat=True)),
            [0, 1],
        )
