"""
Tests for text, amount and RUT normalization and the line anchor helpers.

Run with: pytest tests/ -v
"""

import pytest

from sii_extractor.doctypes.anchors import (
    amount_near,
    find_ruts,
    label_value,
    labelled_rut,
    line_amount,
    month_number,
)
from sii_extractor.parser.normalizers import (
    AmountNormalizer,
    RutNormalizer,
    TextNormalizer,
    sanitize_text,
    split_lines,
)


class TestAmountNormalizer:
    """Tests for amount normalization."""

    def setup_method(self):
        self.normalizer = AmountNormalizer()

    def test_thousands_dots(self):
        assert self.normalizer.normalize("28.000") == 28000
        assert self.normalizer.normalize("1.234.567") == 1234567

    def test_integral_amounts_are_int(self):
        assert isinstance(self.normalizer.normalize("28.000"), int)
        assert isinstance(self.normalizer.normalize("450"), int)

    def test_decimal_comma(self):
        assert self.normalizer.normalize("1.234,56") == 1234.56
        assert self.normalizer.normalize("12,5") == 12.5

    def test_decimal_dot(self):
        assert self.normalizer.normalize("1234.5") == 1234.5

    def test_currency_markers(self):
        assert self.normalizer.normalize("$ 28.000") == 28000
        assert self.normalizer.normalize("CLP 5.000") == 5000
        assert self.normalizer.normalize("Total $ 1.190.000") == 1190000

    def test_dash_suffix(self):
        assert self.normalizer.normalize("$ 45.000.-") == 45000
        assert self.normalizer.normalize("28.000,-") == 28000

    def test_empty_and_invalid(self):
        assert self.normalizer.normalize("") is None
        assert self.normalizer.normalize(None) is None
        assert self.normalizer.normalize("abc") is None
        assert self.normalizer.normalize("$") is None

    def test_huge_digit_run(self):
        assert self.normalizer.normalize("1" * 5000) is None
        assert self.normalizer.normalize("9" * 400) is None


class TestRutNormalizer:
    """Tests for RUT normalization."""

    def setup_method(self):
        self.normalizer = RutNormalizer()

    def test_dots_and_lowercase_check(self):
        assert self.normalizer.normalize("16.840.767- k") == "16840767-K"

    def test_space_before_check(self):
        assert self.normalizer.normalize("16840767 5") == "16840767-5"

    def test_unicode_dash(self):
        assert self.normalizer.normalize("16.840.767–K") == "16840767-K"

    def test_empty(self):
        assert self.normalizer.normalize("") == ""
        assert self.normalizer.normalize(None) == ""

    def test_idempotent(self):
        samples = [
            "16.840.767- k",
            "16840767 5",
            "76.543.210 - 3",
            "9.876.543-2",
            "12345678-K",
            ". 16840767 K",
            "16840767 K .",
            " .16.840.767 k. ",
        ]
        for sample in samples:
            once = self.normalizer.normalize(sample)
            assert self.normalizer.normalize(once) == once

    def test_stray_dots_around_value(self):
        assert self.normalizer.normalize(". 16840767 K") == "16840767-K"
        assert self.normalizer.normalize("16840767 K .") == "16840767-K"


class TestTextNormalizer:
    """Tests for raw text sanitization."""

    def test_carriage_returns(self):
        assert sanitize_text("a\r\nb") == "a\nb"

    def test_spaces_collapsed(self):
        assert sanitize_text("A  \t B") == "A B"

    def test_trailing_spaces_before_newline(self):
        assert sanitize_text("x  \ny") == "x\ny"

    def test_unicode_dashes(self):
        assert sanitize_text("76.543.210—3") == "76.543.210-3"

    def test_trimmed(self):
        assert sanitize_text("\n  BOLETA  \n") == "BOLETA"

    def test_empty(self):
        assert sanitize_text("") == ""
        assert sanitize_text(None) == ""

    def test_split_lines_skips_blank_lines(self):
        assert split_lines("uno\n\n  dos  \n \ntres") == ["uno", "dos", "tres"]
        assert TextNormalizer.split_lines("a\n\nb") == ["a", "b"]


class TestAnchors:
    """Tests for the label-based lookup helpers."""

    def test_amount_on_next_line(self):
        lines = ["Total Honorarios $:", "28.000"]
        assert amount_near(lines, 0, r"Total\s+Honorarios") == 28000

    def test_amount_on_same_line(self):
        lines = ["MONTO NETO $ 1.000.000", "IVA $ 190.000"]
        assert amount_near(lines, 0, r"MONTO NETO") == 1000000

    def test_missing_anchor(self):
        assert amount_near(["foo"], -1) is None

    def test_percentages_ignored(self):
        assert line_amount("I.V.A. 19% $ 190.000") == 190000
        assert line_amount("FONASA 7 % ........ $ 61.250", last=True) == 61250

    def test_label_value(self):
        assert label_value("Emisor: JUAN PEREZ", r"^Emisor:") == "JUAN PEREZ"
        assert label_value("Emisor:", r"^Emisor:") is None
        assert label_value(None, r"^Emisor:") is None

    def test_labelled_rut_without_dash(self):
        assert labelled_rut("Rut: 16.840.767 K") == "16840767-K"

    def test_find_ruts_ignores_amounts(self):
        text = "TOTAL $ 1.190.000\nRUT: 76.543.210-3\n28.000"
        assert find_ruts(text) == ["76543210-3"]

    @pytest.mark.parametrize("value,expected", [
        ("Período: Agosto 2025", 8),
        ("JUNIO 2025", 6),
        ("sin mes", None),
        (None, None),
    ])
    def test_month_number(self, value, expected):
        assert month_number(value) == expected
