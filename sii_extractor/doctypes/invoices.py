"""
Invoice Formats

Facturas electrónicas. Five layouts share the same fields but disagree on
where they put them:

- factura_sii: the standard SII print. "SEÑOR(ES)" recipient block,
  "MONTO NETO" / "I.V.A." / "TOTAL" summary.
- factura_simple: exempt invoice ("FACTURA NO AFECTA O EXENTA"), long-form
  date "d de mes del yyyy", no IVA.
- factura_afecta: "FACTURA AFECTA ELECTRÓNICA" with label-above-value
  blocks ("Cliente.", "Monto Neto" on one line, the value on the next).
- factura_retail: retail print with a "RECEPTOR" block and "TOTAL NETO".
- factura_electronica_moderna: sectioned layout ("INFORMACIÓN DEL RECEPTOR",
  "DETALLE DEL DOCUMENTO", "RESUMEN DEL DOCUMENTO").

Every detector penalises "HONORARIOS" and "NOTA DE CRÉDITO" so receipts and
credit notes that mention an invoice do not get classified as one.
"""

import re
from typing import List, Optional

from ..parser.normalizers import split_lines
from .anchors import (
    COMPANY_KEYWORDS,
    amount_near,
    find_company_name,
    find_index,
    find_line,
    first_match,
    first_rut,
    label_value,
    labelled_amount,
    labelled_rut,
    labelled_ruts,
    last_amount,
    last_line_amount,
    line_amount,
    line_at,
    window,
)
from .document_type import DocumentFamily, ExtractedFields, FormatExtractor


# Cues of competing families
NOT_HONORARIOS = (r'HONORARIOS', -1.0)
NOT_CREDIT_NOTE = (r'NOTA\s+DE\s+CR[EÉ]DITO', -1.0)

IVA = r'\bI\.?V\.?A\b'

# "N° 004512", "Nº: 2231", "Folio N° 55021"
INVOICE_NUMBER = r'\bN\s*[°º]\s*:?\s*-?\s*(\d{1,10})'

LONG_DATE = r'Fecha\s+Emisi[oó]n:?\s*(\d{1,2}\s+de\s+\w+\s+del?\s+\d{4})'

# "TOTAL" summary line, not "TOTAL NETO" / "TOTAL EXENTO"
TOTAL_LINE = r'\bTOTAL\b(?!\s+(?:NETO|EXENTO|AFECTO))'

# Trailing quantity / price / value columns of a detail row
TRAILING_COLUMNS = re.compile(r'(?:\s+[\d.,$]+)+$')


def _strip_columns(line: Optional[str]) -> Optional[str]:
    if not line:
        return None
    value = TRAILING_COLUMNS.sub('', line).strip()
    return value or None


class FacturaSiiExtractor(FormatExtractor):
    """Standard SII factura electrónica."""

    format_id = 'factura_sii'
    label = 'Factura SII'
    family = DocumentFamily.INVOICE

    ANCHORS = [
        (r'FACTURA', 0.5),
        (r'MONTO\s+NETO', 0.2),
        (IVA, 0.1),
        (r'\bTOTAL\b', 0.1),
        (r'Fecha\s+Emisi[oó]n', 0.2),
        NOT_HONORARIOS,
        NOT_CREDIT_NOTE,
    ]

    SERVICE_LINE = r'Servicio|Producci[oó]n|Producto|Administraci[oó]n|Asesor[ií]a|Arriendo'
    DETAIL_HEADER = r'C[oó]digo|Descripci[oó]n'

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        # Recipient block: the second labelled RUT belongs to it
        recipient_name = None
        recipient_id = None
        idx_recipient = find_index(lines, r'SEÑOR\(ES\)')
        if idx_recipient >= 0:
            recipient_name = label_value(lines[idx_recipient], r'SEÑOR\(ES\)\s*:?')
            ruts = labelled_ruts(joined)
            if len(ruts) > 1:
                recipient_id = ruts[1]

        document_date = first_match(joined, [
            LONG_DATE,
            r'Fecha(?:\s+Emisi[oó]n)?:\s*(\d{1,2}/\d{1,2}/\d{4})',
        ])

        total = last_line_amount(lines, TOTAL_LINE)
        if total is None:
            total = last_amount(joined)

        return ExtractedFields(
            issuer_id=labelled_rut(joined),
            issuer_name=find_company_name(lines) or line_at(lines, 0) or None,
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            document_date=document_date,
            document_number=first_match(joined, [INVOICE_NUMBER]),
            total_amount=total,
            net_amount=labelled_amount(joined, r'MONTO\s+NETO'),
            secondary_tax_amount=line_amount(find_line(lines, IVA), last=True),
            description=self._description(lines, max(idx_recipient, 0)),
        )

    def _description(self, lines: List[str], start: int) -> Optional[str]:
        """First service/product detail row after the recipient block."""
        for i in range(start, len(lines)):
            line = lines[i]
            if re.match(r'(?:Giro|SEÑOR\(ES\))', line, re.IGNORECASE):
                continue
            if re.search(self.DETAIL_HEADER, line, re.IGNORECASE):
                return _strip_columns(line_at(lines, i + 1))
            if re.search(self.SERVICE_LINE, line, re.IGNORECASE):
                return _strip_columns(line)
        return None


class FacturaSimpleExtractor(FormatExtractor):
    """Exempt invoice (factura no afecta o exenta)."""

    format_id = 'factura_simple'
    label = 'Factura exenta'
    family = DocumentFamily.INVOICE

    ANCHORS = [
        (r'Fecha\s+Emisi[oó]n:?\s*\d{1,2}\s+de\s+\w+\s+del\s+\d{4}', 0.5),
        (r'Administraci[oó]n|Honorarios', 0.4),
        (r'FACTURA\s+NO\s+AFECTA\s+O\s+EXENTA', 0.3),
        (r'MONTO\s+NETO', -0.5),
        (IVA, -0.5),
        (r'\bBOLETA\b', -0.5),
    ]

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        recipient_name = None
        recipient_id = None
        idx_recipient = find_index(lines, r'^SEÑOR\(ES\)')
        if idx_recipient >= 0:
            recipient_name = label_value(lines[idx_recipient], r'^SEÑOR\(ES\)\s*:?')
            for line in window(lines, idx_recipient, 5):
                recipient_id = labelled_rut(line) or first_rut(line)
                if recipient_id:
                    break

        description = None
        idx_service = find_index(
            lines,
            r'Servicio|Producto|Administraci[oó]n|Honorarios',
            start=max(idx_recipient, 0),
        )
        if idx_service >= 0:
            description = _strip_columns(lines[idx_service])

        net = tax = total = exempt = None
        for line in lines:
            if re.search(r'MONTO\s+NETO', line, re.IGNORECASE):
                net = line_amount(line, last=True)
            elif re.search(IVA, line, re.IGNORECASE):
                tax = line_amount(line, last=True)
            elif re.search(r'MONTO\s+EXENTO', line, re.IGNORECASE):
                exempt = line_amount(line, last=True)
            elif re.search(TOTAL_LINE, line, re.IGNORECASE):
                total = line_amount(line, last=True)

        if total is None:
            total = last_amount(joined)

        return ExtractedFields(
            issuer_id=labelled_rut(joined),
            issuer_name=find_company_name(lines) or line_at(lines, 0) or None,
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            document_date=first_match(joined, [LONG_DATE]),
            document_number=first_match(joined, [INVOICE_NUMBER]),
            total_amount=total,
            net_amount=net if net is not None else exempt,
            secondary_tax_amount=tax,
            description=description,
        )


class FacturaAfectaExtractor(FormatExtractor):
    """Factura afecta electrónica with label-above-value blocks."""

    format_id = 'factura_afecta'
    label = 'Factura afecta'
    family = DocumentFamily.INVOICE

    ANCHORS = [
        (r'FACTURA\s+AFECTA\s+ELECTR[ÓO]NICA', 0.6),
        (r'Monto\s+Neto', 0.2),
        (r'Monto\s+Total', 0.2),
        (re.compile(r'^Cliente\.', re.IGNORECASE | re.MULTILINE), 0.3),
        NOT_HONORARIOS,
        NOT_CREDIT_NOTE,
    ]

    NET = r'Monto\s+Neto'
    TAX = r'Monto\s+I\.?V\.?A\.?'
    TOTAL = r'Monto\s+Total'

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        # Issuer: the company line closest above the title
        issuer_name = None
        issuer_id = None
        idx_title = find_index(lines, r'FACTURA\s+AFECTA')
        if idx_title >= 0:
            for i in range(idx_title - 1, -1, -1):
                if re.search(COMPANY_KEYWORDS, lines[i], re.IGNORECASE):
                    issuer_name = lines[i]
                    break
            issuer_id = first_rut('\n'.join(lines[:idx_title + 1]))
        issuer_name = issuer_name or find_company_name(lines)
        issuer_id = issuer_id or first_rut(joined)

        # Recipient: "Cliente." and "R.U.T." labels with values below them
        recipient_name = None
        recipient_id = None
        idx_client = find_index(lines, r'^Cliente\.')
        if idx_client >= 0:
            for offset, line in enumerate(window(lines, idx_client, 10)):
                i = idx_client + offset
                if recipient_name is None and re.match(r'Cliente', line, re.IGNORECASE):
                    recipient_name = label_value(line, r'^Cliente\.?:?') or line_at(lines, i + 1) or None
                elif recipient_id is None and re.match(r'R\.U\.T\.', line, re.IGNORECASE):
                    recipient_id = labelled_rut(line) or first_rut(line_at(lines, i + 1))

        document_date = first_match(joined, [
            r'Fecha\s+Emisi[oó]n:?\s*(\d{1,2}[-/]\d{1,2}[-/]\d{4})',
            r'Fecha[^\n\d]*(\d{1,2}[-/]\d{1,2}[-/]\d{4})',
        ])

        idx_net = find_index(lines, self.NET)
        total = amount_near(lines, find_index(lines, self.TOTAL), self.TOTAL)
        if total is None:
            total = last_amount(joined)

        return ExtractedFields(
            issuer_id=issuer_id,
            issuer_name=issuer_name,
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            document_date=document_date,
            document_number=first_match(joined, [INVOICE_NUMBER]),
            total_amount=total,
            net_amount=amount_near(lines, idx_net, self.NET),
            secondary_tax_amount=amount_near(lines, find_index(lines, self.TAX), self.TAX),
            description=self._description(lines, idx_net),
        )

    @staticmethod
    def _description(lines: List[str], idx_net: int) -> Optional[str]:
        """Explicit "Descripción" value, else the detail line above "Monto Neto"."""
        idx = find_index(lines, r'^Descripci[oó]n\b')
        if idx >= 0:
            return label_value(lines[idx], r'^Descripci[oó]n\s*:?') or line_at(lines, idx + 1) or None

        candidate = line_at(lines, idx_net - 1) if idx_net > 0 else ''
        if not candidate or ':' in candidate:
            return None
        if re.match(r'(?:R\.U\.T|Direcci[oó]n|Cliente|Giro|Comuna|Ciudad)', candidate, re.IGNORECASE):
            return None
        if re.fullmatch(r'[\d.,$\s-]+', candidate):
            return None
        return candidate


class FacturaRetailExtractor(FormatExtractor):
    """Retail factura electrónica with a "RECEPTOR" block."""

    format_id = 'factura_retail'
    label = 'Factura retail'
    family = DocumentFamily.INVOICE

    ANCHORS = [
        (r'FACTURA\s+ELECTR[ÓO]NICA', 0.6),
        (r'TOTAL\s+NETO', 0.2),
        (IVA, 0.1),
        (r'\bTOTAL\s*\$', 0.1),
        (re.compile(r'^RECEPTOR\b[\s\S]{0,200}?Raz[oó]n\s+Social', re.IGNORECASE | re.MULTILINE), 0.3),
        NOT_HONORARIOS,
        NOT_CREDIT_NOTE,
    ]

    ISSUER_RUT_LINE = r'R\.?U\.?T\.?:?\s*\d{1,3}\.\d{3}\.\d{3}-[0-9Kk]'

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        # Issuer: first RUT line, company name within three lines of it
        issuer_id = None
        issuer_name = None
        idx_rut = find_index(lines, self.ISSUER_RUT_LINE)
        if idx_rut >= 0:
            issuer_id = labelled_rut(lines[idx_rut])
            for j in range(idx_rut - 3, idx_rut + 4):
                candidate = line_at(lines, j)
                if candidate and re.search(COMPANY_KEYWORDS, candidate, re.IGNORECASE):
                    issuer_name = candidate
                    break

        recipient_name = None
        recipient_id = None
        idx_recipient = find_index(lines, r'^RECEPTOR\b')
        if idx_recipient >= 0:
            block = window(lines, idx_recipient + 1, 8)
            for line in block:
                if recipient_name is None:
                    recipient_name = label_value(line, r'Raz[oó]n\s+Social\s*:')
                if recipient_id is None:
                    recipient_id = labelled_rut(line, r'\bRUT\s*:?')

        net = tax = total = None
        for line in lines:
            if re.search(r'TOTAL\s+NETO', line, re.IGNORECASE):
                net = line_amount(line, last=True)
            elif re.search(IVA + r'|19\s*%', line, re.IGNORECASE):
                tax = line_amount(line, last=True)
            elif re.search(r'\bTOTAL\b', line, re.IGNORECASE):
                total = line_amount(line, last=True)

        if total is None:
            total = last_amount(joined)

        description = None
        notes = find_line(lines, r'Notas\s+solicitadas|Proyecto|Pedido|Orden\s+de\s+Compra')
        if notes:
            description = re.sub(r'^[^:]*:\s*', '', notes).strip() or notes

        return ExtractedFields(
            issuer_id=issuer_id,
            issuer_name=issuer_name,
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            document_date=first_match(joined, [
                r'Fecha(?:\s+de)?\s+Emisi[oó]n:?\s*(\d{1,2}/\d{1,2}/\d{4})',
            ]),
            document_number=first_match(joined, [INVOICE_NUMBER]),
            total_amount=total,
            net_amount=net,
            secondary_tax_amount=tax,
            description=description,
        )


class FacturaElectronicaModernaExtractor(FormatExtractor):
    """Sectioned factura electrónica (receptor / detalle / resumen sections)."""

    format_id = 'factura_electronica_moderna'
    label = 'Factura electrónica (moderna)'
    family = DocumentFamily.INVOICE

    ANCHORS = [
        (r'FACTURA\s+ELECTR[ÓO]NICA', 0.6),
        (r'INFORMACI[OÓ]N\s+DEL\s+RECEPTOR', 0.3),
        (r'RESUMEN\s+DEL\s+DOCUMENTO', 0.2),
        NOT_HONORARIOS,
        NOT_CREDIT_NOTE,
    ]

    NET = r'Monto\s+Neto|\bNeto\b'
    TAX = IVA
    TOTAL = r'\bTotal\b'

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        recipient_name = None
        recipient_id = None
        idx_recipient = find_index(lines, r'INFORMACI[OÓ]N\s+DEL\s+RECEPTOR')
        if idx_recipient >= 0:
            for line in window(lines, idx_recipient + 1, 12):
                if recipient_name is None and re.match(r'Se[ñn]or', line, re.IGNORECASE):
                    recipient_name = label_value(line, r'^Se[ñn]or(?:\(es\))?\s*:?')
                elif recipient_id is None and re.match(r'R\.?U\.?T', line, re.IGNORECASE):
                    recipient_id = labelled_rut(line)

        net, tax, total = self._summary(lines)
        if total is None:
            total = last_amount(joined)

        return ExtractedFields(
            issuer_id=labelled_rut(joined, r'\bR\.?U\.?T\.?\s*:'),
            issuer_name=find_company_name(lines) or line_at(lines, 0) or None,
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            document_date=first_match(joined, [
                r'Fecha[^\n]*?(\d{4}-\d{2}-\d{2})',
                r'Fecha[^\n]*?(\d{1,2}/\d{1,2}/\d{4})',
            ]),
            document_number=first_match(joined, [INVOICE_NUMBER]),
            total_amount=total,
            net_amount=net,
            secondary_tax_amount=tax,
            description=self._description(lines),
        )

    def _summary(self, lines: List[str]):
        """Net, tax and total from the "RESUMEN DEL DOCUMENTO" section."""
        net = tax = total = None
        idx = find_index(lines, r'RESUMEN\s+DEL\s+DOCUMENTO')
        if idx < 0:
            return net, tax, total
        for i in range(idx + 1, len(lines)):
            line = lines[i]
            if net is None and re.search(self.NET, line, re.IGNORECASE):
                net = amount_near(lines, i, self.NET)
            elif tax is None and re.search(self.TAX, line, re.IGNORECASE):
                tax = amount_near(lines, i, self.TAX)
            elif total is None and re.search(self.TOTAL, line, re.IGNORECASE):
                total = amount_near(lines, i, self.TOTAL)
        return net, tax, total

    @staticmethod
    def _description(lines: List[str]) -> Optional[str]:
        idx = find_index(lines, r'^Descripci[oó]n\s*:')
        if idx >= 0:
            return label_value(lines[idx], r'^Descripci[oó]n\s*:') or line_at(lines, idx + 1) or None

        idx = find_index(lines, r'DETALLE\s+DEL\s+DOCUMENTO')
        if idx < 0:
            return None
        detail = []
        for line in window(lines, idx + 1, 3):
            if re.search(r'RESUMEN\s+DEL\s+DOCUMENTO', line, re.IGNORECASE):
                break
            detail.append(line)
        return ' '.join(detail) or None
