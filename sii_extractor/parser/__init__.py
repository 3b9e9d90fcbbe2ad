"""
Parser Package

Shared normalization helpers used by every format extractor:
- Text sanitizing before line splitting
- Amount parsing with Chilean separators
- RUT canonicalization

Usage:
    from sii_extractor.parser import normalize_amount, normalize_rut

    normalize_amount('$ 28.000.-')   # 28000
    normalize_rut('16.840.767- k')   # '16840767-K'
"""

from .normalizers import (
    AMOUNT_PATTERN,
    RUT_PATTERN,
    AmountNormalizer,
    RutNormalizer,
    TextNormalizer,
    normalize_amount,
    normalize_rut,
    sanitize_text,
    split_lines,
)

__all__ = [
    'AMOUNT_PATTERN',
    'RUT_PATTERN',
    'AmountNormalizer',
    'RutNormalizer',
    'TextNormalizer',
    'normalize_amount',
    'normalize_rut',
    'sanitize_text',
    'split_lines',
]
