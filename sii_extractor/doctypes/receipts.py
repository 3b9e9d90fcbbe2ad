"""
Receipt Formats

Boletas de honorarios issued through the SII portal.

- sii_clasico: the classic layout. The issuer's name sits on the line right
  above the "BOLETA DE HONORARIOS" title and the recipient comes on a single
  "Señor(es): ... Rut: ..." line.
- sii_var_b: a variant with one "Label: value" line per field and a
  "Monto Total a Pagar" total.
"""

import re
from typing import Optional

from loguru import logger

from ..parser.normalizers import AMOUNT_PATTERN, normalize_amount, normalize_rut, split_lines
from .anchors import (
    amount_near,
    find_index,
    find_line,
    label_value,
    labelled_rut,
    last_amount,
    line_at,
)
from .document_type import DocumentFamily, ExtractedFields, FormatExtractor


# "N° 154", "Nº154", "N°: 154"
DOCUMENT_NUMBER = re.compile(r'\bN\s*[°º]\s*:?\s*(\d{1,7})', re.IGNORECASE)

# Resolution references ("Res. Ex. N° 83") look like document numbers
RESOLUTION_PREFIX = re.compile(r'Res\.?\s*Ex\.?', re.IGNORECASE)

DMY_DATE = re.compile(r'(\d{1,2}/\d{1,2}/\d{4})')


def _document_number(lines, text) -> Optional[str]:
    """Boleta number, skipping "Res. Ex. N° ..." resolution references."""
    title_line = find_line(lines, r'BOLETA.*\bN\s*[°º]')
    if title_line:
        match = DOCUMENT_NUMBER.search(title_line)
        if match:
            return match.group(1)

    for match in DOCUMENT_NUMBER.finditer(text):
        prefix = text[max(0, match.start() - 16):match.start()]
        if RESOLUTION_PREFIX.search(prefix):
            continue
        return match.group(1)
    return None


class SiiClasicoExtractor(FormatExtractor):
    """Classic SII boleta de honorarios."""

    format_id = 'sii_clasico'
    label = 'SII boleta clásica'
    family = DocumentFamily.RECEIPT

    ANCHORS = [
        (r'BOLETA DE HONORARIOS', 0.5),
        (r'Fecha\s*/\s*Hora\s*Emisi[oó]n', 0.3),
        (r'Total\s+Honorarios', 0.2),
    ]

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        # Issuer: name above the title, RUT from the "RUT:" line
        issuer_name = None
        idx_title = find_index(lines, r'BOLETA DE HONORARIOS')
        if idx_title > 0:
            issuer_name = lines[idx_title - 1]

        issuer_id = labelled_rut(find_line(lines, r'^RUT:'), r'^RUT:')

        # Recipient: "Señor(es): NAME Rut: 76.543.210-3"
        recipient_name = None
        recipient_id = None
        recipient_line = find_line(lines, r'Señor\(es\):')
        if recipient_line:
            match = re.search(r'Señor\(es\):\s*(.*?)\s*Rut:', recipient_line, re.IGNORECASE)
            if match:
                recipient_name = match.group(1).strip() or None
            recipient_id = labelled_rut(recipient_line, r'Rut:')

        # Date: dd/mm/yyyy from the emission stamp, else the "Fecha:" text
        document_date = None
        stamp = find_line(lines, r'Fecha\s*/\s*Hora\s*Emisi[oó]n')
        if stamp:
            match = DMY_DATE.search(stamp)
            if match:
                document_date = match.group(1)
        if not document_date:
            document_date = label_value(find_line(lines, r'^Fecha:'), r'^Fecha:')

        description = self._description(lines)

        # Total: on the "Total Honorarios" line or the next one
        total = amount_near(lines, find_index(lines, r'Total\s+Honorarios'), r'Total\s+Honorarios')
        if total is None:
            total = last_amount(joined)

        withheld = amount_near(
            lines,
            find_index(lines, r'Retenido|Retenci[oó]n'),
            r'(?:Impto\.?\s*)?Retenid[oa]:?|Retenci[oó]n:?',
        )

        return ExtractedFields(
            issuer_id=issuer_id,
            issuer_name=issuer_name,
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            document_date=document_date,
            document_number=_document_number(lines, joined),
            total_amount=total,
            secondary_tax_amount=withheld,
            description=description,
        )

    @staticmethod
    def _description(lines) -> Optional[str]:
        """Service line after "Por atención profesional:", without its amount."""
        idx = find_index(lines, r'Por atenci[oó]n profesional')
        if idx < 0:
            return None
        candidate = label_value(lines[idx], r'Por atenci[oó]n profesional:?')
        if not candidate:
            candidate = line_at(lines, idx + 1)
        candidate = re.sub(r'\s*\d[\d.,]*\s*$', '', candidate).strip()
        return candidate or None


class SiiVarBExtractor(FormatExtractor):
    """SII boleta, variant B ("Monto Total a Pagar", "Receptor:")."""

    format_id = 'sii_var_b'
    label = 'SII variante B'
    family = DocumentFamily.RECEIPT

    ANCHORS = [
        (r'BOLETA', 0.3),
        (r'Monto Total a Pagar', 0.4),
        (r'Receptor:', 0.3),
    ]

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)

        def value(label):
            return label_value(find_line(lines, label), label)

        issuer_id = value(r'^RUT Emisor:')
        recipient_id = value(r'^RUT Receptor:')

        document_date = None
        date_line = find_line(lines, r'^Fecha Emisi[oó]n:')
        if date_line:
            match = DMY_DATE.search(date_line)
            if match:
                document_date = match.group(1)

        total = None
        idx = find_index(lines, r'Monto Total a Pagar')
        if idx >= 0:
            same_line = re.search(AMOUNT_PATTERN, lines[idx])
            if same_line:
                total = normalize_amount(same_line.group(0))
            else:
                total = normalize_amount(line_at(lines, idx + 1))

        logger.debug(f"{self.format_id}: total={total}")

        return ExtractedFields(
            issuer_id=normalize_rut(issuer_id) or None,
            issuer_name=value(r'^Emisor:'),
            recipient_id=normalize_rut(recipient_id) or None,
            recipient_name=value(r'^Receptor:'),
            document_date=document_date,
            document_number=value(r'^(?:Boleta\s+)?N\s*[°º]\s*:?'),
            total_amount=total,
            description=value(r'^(?:Detalle|Glosa|Descripci[oó]n):'),
        )
