# documents/tests/test_lifecycle.py

from django.test import SimpleTestCase

from documents.models import Document
from documents.services.exceptions import (
    CreditNoteReferenceError,
    InvalidConversionError,
    InvalidStatusTransitionError,
)
from documents.services.lifecycle import (
    KIND_CONFIG,
    STOCK_ENTRY,
    STOCK_EXIT,
    TERMINAL_STATES,
    can_convert,
    can_transition,
    get_kind_config,
    initial_statuses_for_kind,
    stock_effect_for,
    validate_conversion,
    validate_credit_note_source,
    validate_status_transition,
)


def _doc(kind, status=Document.STATUS_DRAFT):
    return Document(kind=kind, status=status, number="TEST-0001")


class ConversionGraphTests(SimpleTestCase):
    """
    GUARANTEES:
    - Only declared edges convert
    - The graph is closed over the known kinds and has no cycles
    - Credit notes are leaves
    """

    def test_sales_chain(self):
        chain = [
            Document.KIND_QUOTE,
            Document.KIND_SALE_ORDER,
            Document.KIND_SALE_DELIVERY,
            Document.KIND_SALE_INVOICE,
            Document.KIND_SALE_CREDIT_NOTE,
        ]
        for source, target in zip(chain, chain[1:]):
            self.assertTrue(can_convert(from_kind=source, to_kind=target))

    def test_purchase_chain(self):
        chain = [
            Document.KIND_PURCHASE_ORDER,
            Document.KIND_PURCHASE_DELIVERY,
            Document.KIND_PURCHASE_INVOICE,
            Document.KIND_PURCHASE_CREDIT_NOTE,
        ]
        for source, target in zip(chain, chain[1:]):
            self.assertTrue(can_convert(from_kind=source, to_kind=target))

    def test_undeclared_edges(self):
        self.assertFalse(
            can_convert(from_kind=Document.KIND_SALE_DELIVERY, to_kind=Document.KIND_SALE_CREDIT_NOTE)
        )
        self.assertFalse(
            can_convert(from_kind=Document.KIND_SALE_ORDER, to_kind=Document.KIND_QUOTE)
        )
        self.assertFalse(
            can_convert(from_kind=Document.KIND_QUOTE, to_kind=Document.KIND_PURCHASE_ORDER)
        )
        self.assertFalse(can_convert(from_kind="bogus", to_kind=Document.KIND_QUOTE))

    def test_graph_is_closed_and_acyclic(self):
        for config in KIND_CONFIG.values():
            for target in config.converts_to:
                self.assertIn(target, KIND_CONFIG)

            seen = set()
            frontier = set(config.converts_to)
            while frontier:
                kind = frontier.pop()
                self.assertNotEqual(kind, config.kind)
                if kind not in seen:
                    seen.add(kind)
                    frontier |= KIND_CONFIG[kind].converts_to

    def test_credit_notes_are_leaves(self):
        for config in KIND_CONFIG.values():
            if config.is_credit_note:
                self.assertEqual(config.converts_to, frozenset())

    def test_validate_conversion_rejects_undeclared_edge(self):
        with self.assertRaises(InvalidConversionError):
            validate_conversion(
                document=_doc(Document.KIND_SALE_DELIVERY),
                target_kind=Document.KIND_SALE_CREDIT_NOTE,
            )

    def test_validate_conversion_rejects_cancelled_source(self):
        with self.assertRaises(InvalidConversionError):
            validate_conversion(
                document=_doc(Document.KIND_QUOTE, Document.STATUS_CANCELLED),
                target_kind=Document.KIND_SALE_ORDER,
            )

    def test_unknown_kind(self):
        with self.assertRaises(InvalidConversionError):
            get_kind_config("bogus")


class CreditNoteSourceTests(SimpleTestCase):
    def test_credit_note_needs_matching_invoice(self):
        sent_invoice = _doc(Document.KIND_SALE_INVOICE, Document.STATUS_SENT)
        validate_credit_note_source(kind=Document.KIND_SALE_CREDIT_NOTE, source=sent_invoice)

        with self.assertRaises(CreditNoteReferenceError):
            validate_credit_note_source(kind=Document.KIND_SALE_CREDIT_NOTE, source=None)

        with self.assertRaises(CreditNoteReferenceError):
            validate_credit_note_source(
                kind=Document.KIND_PURCHASE_CREDIT_NOTE,
                source=sent_invoice,
            )

    def test_draft_invoice_cannot_be_credited(self):
        with self.assertRaises(CreditNoteReferenceError):
            validate_credit_note_source(
                kind=Document.KIND_SALE_CREDIT_NOTE,
                source=_doc(Document.KIND_SALE_INVOICE),
            )

    def test_other_kinds_reject_a_source(self):
        with self.assertRaises(CreditNoteReferenceError):
            validate_credit_note_source(
                kind=Document.KIND_SALE_INVOICE,
                source=_doc(Document.KIND_SALE_INVOICE, Document.STATUS_SENT),
            )


class StatusMachineTests(SimpleTestCase):
    """
    GUARANTEES:
    - draft -> {sent, cancelled}, sent -> {paid, overdue, cancelled}
    - Terminal statuses never move
    - paid / overdue are invoice statuses, purchase_quote is purchase-only
    """

    def test_allowed_transitions(self):
        kind = Document.KIND_SALE_INVOICE
        self.assertTrue(can_transition(kind=kind, from_status="draft", to_status="sent"))
        self.assertTrue(can_transition(kind=kind, from_status="draft", to_status="cancelled"))
        self.assertTrue(can_transition(kind=kind, from_status="sent", to_status="paid"))
        self.assertTrue(can_transition(kind=kind, from_status="sent", to_status="overdue"))
        self.assertTrue(can_transition(kind=kind, from_status="overdue", to_status="paid"))

    def test_rejected_transitions(self):
        kind = Document.KIND_SALE_INVOICE
        self.assertFalse(can_transition(kind=kind, from_status="sent", to_status="draft"))
        self.assertFalse(can_transition(kind=kind, from_status="draft", to_status="paid"))

    def test_terminal_states_are_final(self):
        for terminal in TERMINAL_STATES:
            for target, _ in Document.STATUS_CHOICES:
                self.assertFalse(
                    can_transition(
                        kind=Document.KIND_SALE_INVOICE,
                        from_status=terminal,
                        to_status=target,
                    )
                )

    def test_invoice_only_statuses(self):
        self.assertFalse(
            can_transition(kind=Document.KIND_QUOTE, from_status="sent", to_status="paid")
        )

    def test_purchase_quote_status(self):
        self.assertTrue(
            can_transition(
                kind=Document.KIND_PURCHASE_ORDER,
                from_status="draft",
                to_status="purchase_quote",
            )
        )
        self.assertFalse(
            can_transition(
                kind=Document.KIND_SALE_ORDER,
                from_status="draft",
                to_status="purchase_quote",
            )
        )
        self.assertIn("purchase_quote", initial_statuses_for_kind(Document.KIND_PURCHASE_INVOICE))
        self.assertEqual(initial_statuses_for_kind(Document.KIND_QUOTE), {"draft"})

    def test_validate_status_transition_raises(self):
        with self.assertRaises(InvalidStatusTransitionError):
            validate_status_transition(
                document=_doc(Document.KIND_QUOTE, Document.STATUS_PAID),
                target_status=Document.STATUS_CANCELLED,
            )


class StockEffectTableTests(SimpleTestCase):
    def test_effects(self):
        self.assertEqual(stock_effect_for(Document.KIND_SALE_INVOICE), STOCK_EXIT)
        self.assertEqual(stock_effect_for(Document.KIND_SALE_CREDIT_NOTE), STOCK_ENTRY)
        self.assertEqual(stock_effect_for(Document.KIND_PURCHASE_INVOICE), STOCK_ENTRY)
        self.assertEqual(stock_effect_for(Document.KIND_PURCHASE_CREDIT_NOTE), STOCK_EXIT)
        self.assertIsNone(stock_effect_for(Document.KIND_SALE_DELIVERY))
        self.assertIsNone(stock_effect_for(Document.KIND_QUOTE))

    def test_purchase_quote_suppresses_effect(self):
        self.assertIsNone(
            stock_effect_for(Document.KIND_PURCHASE_INVOICE, Document.STATUS_PURCHASE_QUOTE)
        )
