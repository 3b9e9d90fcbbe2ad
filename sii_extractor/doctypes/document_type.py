"""
Document Format Definition

Defines the extractor interface shared by every supported SII layout and the
result types the engine hands back to callers.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields as dataclass_fields
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple, Union

from ..parser.normalizers import Number, sanitize_text


class DocumentFamily(Enum):
    """Document families the engine classifies."""

    RECEIPT = 'receipt'           # Boleta de honorarios
    INVOICE = 'invoice'           # Factura electrónica
    CREDIT_NOTE = 'credit_note'   # Nota de crédito
    PAYROLL = 'payroll'           # Liquidación de remuneraciones


# Envelope key for each ExtractedFields attribute
_FIELD_KEYS = {
    'issuer_id': 'issuerId',
    'issuer_name': 'issuerName',
    'recipient_id': 'recipientId',
    'recipient_name': 'recipientName',
    'document_date': 'documentDate',
    'document_number': 'documentNumber',
    'total_amount': 'totalAmount',
    'net_amount': 'netAmount',
    'secondary_tax_amount': 'secondaryTaxAmount',
    'description': 'description',
    'extras': 'extras',
}


@dataclass(frozen=True)
class ExtractedFields:
    """
    Fields extracted from one document.

    Every field is optional: no layout fills all of them, and a missing
    anchor simply leaves the field as None.
    """

    # Parties
    issuer_id: Optional[str] = None
    issuer_name: Optional[str] = None
    recipient_id: Optional[str] = None
    recipient_name: Optional[str] = None

    # Header
    document_date: Optional[str] = None     # free-form, layout dependent
    document_number: Optional[str] = None

    # Amounts
    total_amount: Optional[Number] = None
    net_amount: Optional[Number] = None
    secondary_tax_amount: Optional[Number] = None   # IVA or withholding

    description: Optional[str] = None

    # Layout-specific extra amounts (payroll line items), read-only
    extras: Mapping[str, Optional[Number]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'extras', MappingProxyType(dict(self.extras)))

    @property
    def is_empty(self) -> bool:
        """Whether no field at all was extracted."""
        return not self.extras and all(
            getattr(self, f.name) is None
            for f in dataclass_fields(self)
            if f.name != 'extras'
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the envelope's camelCase field schema."""
        data = {}
        for f in dataclass_fields(self):
            value = getattr(self, f.name)
            data[_FIELD_KEYS[f.name]] = dict(value) if f.name == 'extras' else value
        return data


@dataclass(frozen=True)
class ParseResult:
    """
    Result envelope for one classification + extraction call.

    confidence is the winning detection score. It is a heuristic, not a
    probability: detectors add and subtract increments, so values above 1.0
    or below 0.0 are normal. Forced selections always report 1.0.
    """

    format_id: str
    confidence: float
    fields: ExtractedFields
    forced: bool = False

    # Detection scores per ranked format, registration order (automatic mode)
    scores: Tuple[Tuple[str, float], ...] = ()

    def to_dict(self, include_scores: bool = False) -> Dict[str, Any]:
        """Convert to the external envelope."""
        data = {
            'formatId': self.format_id,
            'confidence': self.confidence,
            'fields': self.fields.to_dict(),
        }
        if include_scores:
            data['scores'] = dict(self.scores)
        return data


class FormatExtractor(ABC):
    """
    One supported document layout.

    Subclasses set format_id, label and family, and implement detect()
    and extract(). Instances hold no state and can be shared across threads.
    """

    format_id: str = ''
    label: str = ''
    family: DocumentFamily = DocumentFamily.RECEIPT

    @abstractmethod
    def detect(self, text: str) -> float:
        """
        Score how likely the text belongs to this layout.

        Positive increments for this layout's anchors, negative increments
        for anchors of competing layouts. Unbounded.
        """

    @abstractmethod
    def extract(self, text: str) -> ExtractedFields:
        """Extract fields from the text. Never raises for odd input."""

    @staticmethod
    def score_anchors(
        text: str,
        anchors: List[Tuple[Union[str, Pattern], float]],
    ) -> float:
        """Sum the weights of every anchor pattern found in the sanitized text."""
        text = sanitize_text(text)
        score = 0.0
        for anchor, weight in anchors:
            pattern = re.compile(anchor, re.IGNORECASE) if isinstance(anchor, str) else anchor
            if pattern.search(text):
                score += weight
        return round(score, 6)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'format_id': self.format_id,
            'label': self.label,
            'family': self.family.value,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(format_id={self.format_id!r})"
