"""
Normalizers Module

This module handles normalization of raw document text and of the values
extracted from it. Every format extractor goes through these helpers, so a
change to a normalization rule lands everywhere at once.

What normalization does:
- Raw text → one canonical surface (no CR, ASCII dashes, single spaces)
- Amounts → int/float, with Chilean separators ("28.000", "1.234,56")
- RUTs → "12345678-K" (no dots, ASCII dash, upper-case check char)

Why this matters:
Text converted from SII PDFs is noisy. The same RUT shows up as
"16.840.767- K", "16840767 k" or "16.840.767–K" depending on the generator,
and amounts carry "$", ".-" suffixes or thousands dots that break float().
Detection and extraction regexes assume the canonical forms produced here.
"""

import math
import re
from typing import List, Optional, Union

from loguru import logger


Number = Union[int, float]

# Unicode dash variants seen in SII PDFs: en dash, em dash, minus sign
DASH_VARIANTS = re.compile('[\u2013\u2014\u2212]')

# Shape of a RUT in running text: dots optional, dash required
RUT_PATTERN = r'\b\d{1,2}\.?\d{3}\.?\d{3} ?- ?[0-9Kk]\b'

# Shape of a monetary token: "28.000", "1.234.567", "450", optionally ",56"
AMOUNT_PATTERN = r'(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d{1,2})?'


class TextNormalizer:
    """Sanitizes raw document text before any pattern matching."""

    @staticmethod
    def sanitize(text: str) -> str:
        """
        Normalize raw text into the surface every extractor assumes.

        - Remove carriage returns
        - Collapse unicode dashes to ASCII hyphen
        - Convert non-breaking spaces to plain spaces
        - Collapse runs of spaces/tabs to one space
        - Remove spaces before line breaks
        - Trim the whole blob
        """
        if not text:
            return ''

        text = text.replace('\r', '')
        text = DASH_VARIANTS.sub('-', text)
        text = text.replace('\u00a0', ' ')
        text = re.sub(r'[ \t]+', ' ', text)
        text = re.sub(r' +\n', '\n', text)

        return text.strip()

    @staticmethod
    def split_lines(text: str) -> List[str]:
        """Split sanitized text into stripped, non-empty lines."""
        return [line.strip() for line in text.split('\n') if line.strip()]


class AmountNormalizer:
    """
    Normalizes monetary strings to numbers.

    Handles Chilean (es-CL) formatting first:
    - "28.000"     → 28000 (dots as thousands separators)
    - "1.234,56"   → 1234.56 (comma as decimal point)
    - "$ 45.000.-" → 45000 (currency sign and ".-" suffix)
    and falls back to anglo decimals ("1234.56") and bare digits.
    """

    MARKERS = re.compile(r'\$|CLP|\bTotal\b', re.IGNORECASE)
    THOUSANDS = re.compile(r'^\d{1,3}(\.\d{3})+$')
    DOT_DECIMAL = re.compile(r'^\d+\.\d{1,2}$')
    COMMA_DECIMAL = re.compile(r',\d{1,2}$')

    def normalize(self, value: Optional[str]) -> Optional[Number]:
        """
        Normalize a monetary string to a number.

        Args:
            value: Raw amount text, e.g. "Total $ 28.000.-"

        Returns:
            int for integral amounts, float for decimals, None if unparseable
        """
        if not value:
            return None

        cleaned = self.MARKERS.sub('', str(value))
        cleaned = re.sub(r'\s+', '', cleaned)
        cleaned = re.sub(r'[.,]-$', '', cleaned)

        if not cleaned:
            return None

        has_comma = ',' in cleaned

        # Decimal comma (1.234,56 or 123,5)
        if has_comma and self.COMMA_DECIMAL.search(cleaned):
            cleaned = cleaned.replace('.', '').replace(',', '.')
            return self._to_float(cleaned, value)

        if not has_comma:
            if self.THOUSANDS.match(cleaned):
                return self._to_int(cleaned.replace('.', ''), value)

            if self.DOT_DECIMAL.match(cleaned):
                return self._to_float(cleaned, value)

            return self._to_int(re.sub(r'\D', '', cleaned), value)

        # Commas that are not decimal separators: keep digits and dots only
        return self._to_float(re.sub(r'[^\d.]', '', cleaned), value)

    @staticmethod
    def _to_int(digits: str, original: str) -> Optional[int]:
        if not digits:
            logger.debug(f"Could not parse amount: {original!r}")
            return None
        # int() rejects very long digit runs; float() overflows on huge ones
        try:
            number = int(digits)
            float(number)
        except (ValueError, OverflowError):
            logger.debug(f"Amount out of range: {str(original)[:40]!r}")
            return None
        return number

    @staticmethod
    def _to_float(cleaned: str, original: str) -> Optional[float]:
        try:
            number = float(cleaned)
        except ValueError:
            logger.debug(f"Could not parse amount: {original!r}")
            return None
        return number if math.isfinite(number) else None


class RutNormalizer:
    """
    Canonicalizes Chilean RUT strings.

    The output is a surface form for display and equality checks only:
    the check digit is never validated.
    """

    SPACED_CHECK = re.compile(r'^(\d+)\s+([Kk0-9])$')

    def normalize(self, value: Optional[str]) -> str:
        """
        Normalize a RUT to "<digits>-<check>".

        "16.840.767- k" → "16840767-K", "16840767 5" → "16840767-5"
        """
        if not value:
            return ''

        rut = str(value).strip()
        rut = rut.replace('.', '').strip()
        rut = DASH_VARIANTS.sub('-', rut)
        rut = re.sub(r'\s*-\s*', '-', rut)
        rut = self.SPACED_CHECK.sub(r'\1-\2', rut)

        return rut.upper().strip()


# Convenience functions

_amount_normalizer = AmountNormalizer()
_rut_normalizer = RutNormalizer()


def sanitize_text(text: str) -> str:
    """Sanitize raw document text."""
    return TextNormalizer.sanitize(text)


def split_lines(text: str) -> List[str]:
    """Sanitize text and split it into non-empty lines."""
    return TextNormalizer.split_lines(TextNormalizer.sanitize(text))


def normalize_amount(value: Optional[str]) -> Optional[Number]:
    """Normalize a monetary string to a number."""
    return _amount_normalizer.normalize(value)


def normalize_rut(value: Optional[str]) -> str:
    """Normalize a RUT string."""
    return _rut_normalizer.normalize(value)
