# documents/tests/test_formatting.py

from decimal import Decimal

from django.test import SimpleTestCase

from documents.services.formatting import amount_in_words, format_amount, number_to_words


class NumberToWordsTests(SimpleTestCase):
    def test_small_numbers(self):
        self.assertEqual(number_to_words(0), "zéro")
        self.assertEqual(number_to_words(17), "dix-sept")
        self.assertEqual(number_to_words(21), "vingt et un")
        self.assertEqual(number_to_words(45), "quarante-cinq")

    def test_seventies_and_eighties(self):
        self.assertEqual(number_to_words(71), "soixante et onze")
        self.assertEqual(number_to_words(77), "soixante-dix-sept")
        self.assertEqual(number_to_words(80), "quatre-vingts")
        self.assertEqual(number_to_words(81), "quatre-vingt-un")
        self.assertEqual(number_to_words(99), "quatre-vingt-dix-neuf")

    def test_hundreds_and_thousands(self):
        self.assertEqual(number_to_words(100), "cent")
        self.assertEqual(number_to_words(200), "deux cents")
        self.assertEqual(number_to_words(201), "deux cent un")
        self.assertEqual(number_to_words(1000), "mille")
        self.assertEqual(number_to_words(1001), "mille un")
        self.assertEqual(number_to_words(200000), "deux cent mille")
        self.assertEqual(number_to_words(80000), "quatre-vingt mille")

    def test_compound_group_before_mille_stays_invariable(self):
        self.assertEqual(number_to_words(180000), "cent quatre-vingt mille")
        self.assertEqual(number_to_words(380000), "trois cent quatre-vingt mille")
        self.assertEqual(number_to_words(180), "cent quatre-vingts")
        self.assertEqual(
            number_to_words(80_080_000),
            "quatre-vingts millions quatre-vingt mille",
        )

    def test_large_numbers(self):
        self.assertEqual(number_to_words(1_000_000), "un million")
        self.assertEqual(number_to_words(2_500_000), "deux millions cinq cent mille")
        self.assertEqual(number_to_words(3_000_000_000), "trois milliards")
        self.assertEqual(number_to_words(-5), "moins cinq")


class AmountInWordsTests(SimpleTestCase):
    """
    GUARANTEES:
    - Major and minor units are named per currency
    - Rounding to the currency precision happens before splitting
    - Unknown currencies fall back to dinars
    """

    def test_dinars_and_millimes(self):
        self.assertEqual(
            amount_in_words(Decimal("1201.900"), "TND"),
            "Mille deux cent un dinars et neuf cents millimes",
        )

    def test_singular_and_zero(self):
        self.assertEqual(amount_in_words(1, "TND"), "Un dinar")
        self.assertEqual(amount_in_words(0, "TND"), "Zéro dinar")
        self.assertEqual(amount_in_words("0.001", "TND"), "Un millime")

    def test_minor_units_only(self):
        self.assertEqual(amount_in_words("0.5", "TND"), "Cinq cents millimes")

    def test_euros(self):
        self.assertEqual(
            amount_in_words(Decimal("214.2"), "EUR"),
            "Deux cent quatorze euros et vingt centimes",
        )

    def test_rounding_to_currency_precision(self):
        self.assertEqual(amount_in_words("9.999", "USD"), "Dix dollars")

    def test_exact_millions_take_de(self):
        self.assertEqual(amount_in_words(1_000_000, "TND"), "Un million de dinars")
        self.assertEqual(amount_in_words(2_000_000, "EUR"), "Deux millions d'euros")

    def test_negative_amount(self):
        self.assertEqual(amount_in_words(-3, "TND"), "Moins trois dinars")

    def test_unknown_currency_falls_back_to_dinars(self):
        self.assertEqual(amount_in_words(5, "XOF"), "Cinq dinars")
        self.assertEqual(amount_in_words(5, None), "Cinq dinars")


class FormatAmountTests(SimpleTestCase):
    def test_known_currencies(self):
        self.assertEqual(format_amount(Decimal("1201.9"), "TND"), "1 201,900 DT")
        self.assertEqual(format_amount("214.2", "EUR"), "214,20 €")
        self.assertEqual(format_amount(-5, "usd"), "-5,00 $")

    def test_unknown_currency(self):
        self.assertEqual(format_amount("12.5", "xof"), "12.50 XOF")
