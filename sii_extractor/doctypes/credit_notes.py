"""
Credit Note Format

Nota de crédito electrónica. Credit notes reference the invoice they cancel
("Anula Documento FACTURA ELECTRONICA N° ..."), so they carry invoice cues;
the invoice detectors penalise "NOTA DE CRÉDITO" to keep them apart.
"""

import re
from typing import List, Optional

from ..parser.normalizers import split_lines
from .anchors import (
    COMPANY_KEYWORDS,
    find_company_name,
    find_index,
    find_line,
    first_match,
    first_rut,
    label_value,
    labelled_amount,
    labelled_rut,
    last_amount,
    last_line_amount,
    line_amount,
    line_at,
    window,
)
from .document_type import DocumentFamily, ExtractedFields, FormatExtractor
from .invoices import INVOICE_NUMBER, IVA, TOTAL_LINE

# Issuers of credit notes are often administrators or S.A. companies
ISSUER_KEYWORDS = COMPANY_KEYWORDS + r'|\bADMINISTRADORA\b|\bEMPRESA\b'

# Lines that end a free-text comment block
AMOUNT_LINE = re.compile(r'^(?:Monto|TOTAL|I\.?V\.?A)\b|\$', re.IGNORECASE)


class NotaCreditoExtractor(FormatExtractor):
    """Nota de crédito electrónica."""

    format_id = 'nota_credito'
    label = 'Nota de crédito'
    family = DocumentFamily.CREDIT_NOTE

    ANCHORS = [
        (r'NOTA\s+DE\s+CR[EÉ]DITO', 0.7),
        (r'S\.I\.I\.', 0.1),
        (r'\bTOTAL\b', 0.1),
        (r'Anula\s+Documento', 0.1),
    ]

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        recipient_name = None
        recipient_id = None
        idx_recipient = find_index(lines, r'^Se[ñn]or')
        if idx_recipient >= 0:
            recipient_name = label_value(lines[idx_recipient], r'^Se[ñn]or(?:\(es\))?\s*:?')
            for line in window(lines, idx_recipient, 5):
                recipient_id = labelled_rut(line) or first_rut(line)
                if recipient_id:
                    break

        # Exempt amount is the net for credit notes, affected amount otherwise
        exempt = labelled_amount(joined, r'Monto\s+Exento')
        affected = labelled_amount(joined, r'Monto\s+Afecto')

        total = last_line_amount(lines, TOTAL_LINE)
        if total is None:
            total = last_amount(joined)

        return ExtractedFields(
            issuer_id=labelled_rut(joined),
            issuer_name=find_company_name(lines, ISSUER_KEYWORDS) or line_at(lines, 0) or None,
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            document_date=first_match(joined, [
                r'Fecha\s+Documento:?\s*(\d{1,2}[-/]\d{1,2}[-/]\d{4})',
                r'Fecha[^\n\d]*(\d{1,2}/\d{1,2}/\d{4})',
            ]),
            document_number=first_match(joined, [INVOICE_NUMBER]),
            total_amount=total,
            net_amount=exempt if exempt is not None else affected,
            secondary_tax_amount=line_amount(find_line(lines, IVA), last=True),
            description=self._description(lines),
        )

    @staticmethod
    def _description(lines: List[str]) -> Optional[str]:
        """Comment block (up to 3 lines), else the cancelled-document reference."""
        idx = find_index(lines, r'^Comentario')
        if idx >= 0:
            parts = []
            inline = label_value(lines[idx], r'^Comentarios?\s*:?')
            if inline:
                parts.append(inline)
            for line in window(lines, idx + 1, 3):
                if AMOUNT_LINE.search(line):
                    break
                parts.append(line)
            if parts:
                return ' '.join(parts)

        return find_line(lines, r'Anula\s+Documento')
