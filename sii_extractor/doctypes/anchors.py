"""
Line Anchor Helpers

Label-based lookups over the sanitized lines of a document.

Layouts place a value on the anchor's own line, on the next line, or a few
lines away, and not consistently. These helpers find an anchor line by label
pattern and search a bounded window around it, with whole-text fallbacks.
"""

import re
from typing import Callable, List, Optional, Pattern, Union

from ..parser.normalizers import (
    AMOUNT_PATTERN,
    RUT_PATTERN,
    Number,
    normalize_amount,
    normalize_rut,
)

PatternLike = Union[str, Pattern]

# "RUT:", "R.U.T.:", "Rut" labels
RUT_LABEL = r'\bR\.?U\.?T\.?\s*:?'

# RUT value right after a label: dash or a single space before the check char
LABELLED_RUT_VALUE = r'\d{1,2}\.?\d{3}\.?\d{3}(?: ?- ?| )?[0-9Kk]\b'

# Company-form keywords used to spot a legal name among header lines
COMPANY_KEYWORDS = r'(?:\b(?:SPA|LTDA|LIMITADA|SOCIEDAD|EIRL)\b|\bS\.A\.)'

MONTHS = {
    'enero': 1,
    'febrero': 2,
    'marzo': 3,
    'abril': 4,
    'mayo': 5,
    'junio': 6,
    'julio': 7,
    'agosto': 8,
    'septiembre': 9,
    'octubre': 10,
    'noviembre': 11,
    'diciembre': 12,
}

MONTH_NAMES = '|'.join(name.upper() for name in MONTHS)

# "19%", "(19 %)", "10,49 %"
PERCENTAGE = re.compile(r'\d+(?:[.,]\d+)?\s*%')


def _compile(pattern: PatternLike) -> Pattern:
    if isinstance(pattern, str):
        return re.compile(pattern, re.IGNORECASE)
    return pattern


def find_index(lines: List[str], pattern: PatternLike, start: int = 0) -> int:
    """Index of the first line at or after start matching pattern, or -1."""
    regex = _compile(pattern)
    for i in range(max(start, 0), len(lines)):
        if regex.search(lines[i]):
            return i
    return -1


def find_line(lines: List[str], pattern: PatternLike) -> Optional[str]:
    """First line matching pattern."""
    idx = find_index(lines, pattern)
    return lines[idx] if idx >= 0 else None


def line_at(lines: List[str], idx: int) -> str:
    """Line at idx, or '' when out of range."""
    if 0 <= idx < len(lines):
        return lines[idx]
    return ''


def window(lines: List[str], start: int, size: int) -> List[str]:
    """Up to size lines starting at start (clamped to the document)."""
    start = max(start, 0)
    return lines[start:start + size]


def search_window(
    lines: List[str],
    start: int,
    size: int,
    pattern: PatternLike,
    group: int = 1,
) -> Optional[str]:
    """First capture of pattern within a bounded window of lines."""
    regex = _compile(pattern)
    for line in window(lines, start, size):
        match = regex.search(line)
        if match:
            return match.group(group).strip()
    return None


def label_value(line: Optional[str], label: PatternLike) -> Optional[str]:
    """
    Text after a label on the same line ("Emisor: ACME" → "ACME").

    Returns None when the label is absent or nothing follows it.
    """
    if not line:
        return None
    regex = _compile(label)
    match = regex.search(line)
    if not match:
        return None
    value = line[match.end():].strip(' :')
    return value or None


def _drop_percentages(text: str) -> str:
    return PERCENTAGE.sub(' ', text)


def first_amount(text: Optional[str]) -> Optional[Number]:
    """Normalize the first monetary token in text, ignoring percentages."""
    if not text:
        return None
    match = re.search(AMOUNT_PATTERN, _drop_percentages(text))
    return normalize_amount(match.group(0)) if match else None


def line_amount(line: Optional[str], last: bool = False) -> Optional[Number]:
    """First (or last) monetary token on a line, ignoring percentages."""
    if not line:
        return None
    matches = re.findall(AMOUNT_PATTERN, _drop_percentages(line))
    if not matches:
        return None
    return normalize_amount(matches[-1] if last else matches[0])


def amount_near(lines: List[str], idx: int, label: Optional[PatternLike] = None) -> Optional[Number]:
    """
    Amount on the anchor line (after the label when given) or on the next line.
    """
    if idx < 0:
        return None
    line = lines[idx]
    if label is not None:
        match = _compile(label).search(line)
        if match:
            line = line[match.end():]
    amount = first_amount(line)
    if amount is None:
        amount = first_amount(line_at(lines, idx + 1))
    return amount


def labelled_amount(text: str, label: str) -> Optional[Number]:
    """Amount following label on the same line: "MONTO NETO $ 1.000"."""
    match = re.search(label + r'[^\n\d]*(' + AMOUNT_PATTERN + ')', text, re.IGNORECASE)
    return normalize_amount(match.group(1)) if match else None


def money_after(text: str, label: str) -> Optional[Number]:
    """
    Amount after the first "$" following label on the same line.

    Dotted-leader layouts: "FONASA 7 % ........ $ 61.250" → 61250
    """
    match = re.search(label + r'[^\n$]*\$ ?(' + AMOUNT_PATTERN + ')', text, re.IGNORECASE)
    return normalize_amount(match.group(1)) if match else None


def last_amount(text: str) -> Optional[Number]:
    """Normalize the last monetary token in the whole text."""
    matches = re.findall(AMOUNT_PATTERN, text)
    return normalize_amount(matches[-1]) if matches else None


def find_ruts(text: str) -> List[str]:
    """Every RUT-shaped token in text, normalized, in document order."""
    return [normalize_rut(m.group(0)) for m in re.finditer(RUT_PATTERN, text)]


def first_rut(text: Optional[str]) -> Optional[str]:
    """First RUT in text, normalized."""
    if not text:
        return None
    ruts = find_ruts(text)
    return ruts[0] if ruts else None


def labelled_rut(text: Optional[str], label: str = RUT_LABEL) -> Optional[str]:
    """
    First RUT following a RUT label in text.

    After a label the dash is optional ("Rut: 16.840.767 K").
    """
    if not text:
        return None
    match = re.search(label + r'\s*(' + LABELLED_RUT_VALUE + ')', text, re.IGNORECASE)
    return normalize_rut(match.group(1)) if match else None


def labelled_ruts(text: str, label: str = RUT_LABEL) -> List[str]:
    """Every RUT following a RUT label in text, in document order."""
    pattern = re.compile(label + r'\s*(' + LABELLED_RUT_VALUE + ')', re.IGNORECASE)
    return [normalize_rut(m.group(1)) for m in pattern.finditer(text)]


def last_distinct_rut(lines: List[str], exclude: Optional[str] = None) -> Optional[str]:
    """Last RUT in the document that differs from exclude."""
    for line in reversed(lines):
        for rut in reversed(find_ruts(line)):
            if rut != exclude:
                return rut
    return None


def find_company_name(lines: List[str], keywords: str = COMPANY_KEYWORDS) -> Optional[str]:
    """First line that looks like a legal company name."""
    return find_line(lines, keywords)


def month_number(value: Optional[str]) -> Optional[int]:
    """Month number for the first Spanish month name in value."""
    if not value:
        return None
    lower = value.lower()
    for name, number in MONTHS.items():
        if name in lower:
            return number
    return None


def first_match(
    text: str,
    patterns: List[PatternLike],
    group: int = 1,
    transform: Callable[[str], str] = str.strip,
) -> Optional[str]:
    """Capture of the first pattern that matches text."""
    for pattern in patterns:
        match = _compile(pattern).search(text)
        if match:
            value = transform(match.group(group))
            if value:
                return value
    return None


def last_line_amount(lines: List[str], pattern: PatternLike) -> Optional[Number]:
    """Last amount on the last line matching pattern that carries one."""
    regex = _compile(pattern)
    for line in reversed(lines):
        if regex.search(line):
            amount = line_amount(line, last=True)
            if amount is not None:
                return amount
    return None
