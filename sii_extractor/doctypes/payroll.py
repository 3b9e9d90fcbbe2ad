"""
Payroll Formats

Liquidaciones de remuneraciones. These are not SII documents, but they go
through the same pipeline: the "issuer" fields carry the worker, the date
carries the pay period and the document number carries the month number.

- liquidacion: generic layout. Employer on top, worker name and RUT on the
  last two lines, period on the third-from-last line (often letter-spaced,
  "J U N I O 2 0 2 5").
- liquidacion_tipo2: worker name and RUT on the first two lines,
  "Período:" label, total imponible on the sixth line.
- liquidacion_tipo3: employer-specific "LIQUIDACION DE SUELDOS" layout with
  dotted leaders ("SUELDO BASE ........ $ 700.000"). Only reachable by
  forcing its id.
"""

import re
from typing import Dict, List, Optional

from loguru import logger

from ..parser.normalizers import AMOUNT_PATTERN, RUT_PATTERN, Number, normalize_amount, split_lines
from .anchors import (
    MONTH_NAMES,
    find_index,
    find_line,
    first_match,
    first_rut,
    label_value,
    labelled_amount,
    labelled_ruts,
    last_distinct_rut,
    line_amount,
    line_at,
    money_after,
    month_number,
)
from .document_type import DocumentFamily, ExtractedFields, FormatExtractor


# Total imponible is always above this in a real payslip
MIN_TAXABLE_TOTAL = 300000


def _format_period(month: str, year: str) -> str:
    """Title-case month plus year: JUNIO, 2025 → Junio 2025."""
    return f"{month.capitalize()} {year}"


def _month_as_number(period: Optional[str]) -> Optional[str]:
    number = month_number(period)
    return str(number) if number is not None else None


class LiquidacionExtractor(FormatExtractor):
    """Generic liquidación de remuneraciones."""

    format_id = 'liquidacion'
    label = 'Liquidación de remuneraciones'
    family = DocumentFamily.PAYROLL

    ANCHORS = [
        (r'LIQUIDACI[OÓ]N', 0.7),
        (r'REMUNERACI[OÓ]N', 0.5),
        (r'SUELDO', 0.3),
        (r'HABERES', 0.2),
        (r'TOTAL HABERES', 0.2),
        (r'TOTAL DESCUENTOS', 0.2),
    ]

    EXTRAS = {
        'total_haberes': r'TOTAL\s+HABERES',
        'total_descuentos': r'TOTAL\s+DESCUENTOS',
        'liquido_a_pagar': r'L[IÍ]QUIDO\s+A\s+PAGA[RO]',
    }

    def detect(self, text: str) -> float:
        # Labels wrap across lines in some PDFs
        compact = re.sub(r'\s+', ' ', text).upper()
        return self.score_anchors(compact, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        employer_id = first_rut(joined)
        worker_id, worker_name = self._worker(lines, employer_id)
        logger.debug(f"{self.format_id}: worker={worker_id} {worker_name!r}")

        period = self._period(lines, joined)
        cargo = label_value(find_line(lines, r'^Cargo\s*:'), r'^Cargo\s*:')

        if cargo and period:
            description = f"{cargo} {period}"
        elif period:
            description = f"Liquidación {period}"
        else:
            description = None

        extras = {}
        for key, label in self.EXTRAS.items():
            amount = labelled_amount(joined, label)
            if amount is not None:
                extras[key] = amount

        return ExtractedFields(
            issuer_id=worker_id,
            issuer_name=worker_name,
            recipient_id=worker_id,
            recipient_name=worker_name,
            document_date=period,
            document_number=_month_as_number(period),
            total_amount=labelled_amount(joined, r'TOTAL\s+IMPONIBLE'),
            description=description,
            extras=extras,
        )

    @staticmethod
    def _worker(lines: List[str], employer_id: Optional[str]):
        """Worker RUT and name: the last two lines, else the last non-employer RUT."""
        worker_id = None
        worker_name = None

        if len(lines) >= 2:
            worker_id = first_rut(lines[-1])
            if worker_id and not first_rut(lines[-2]):
                worker_name = lines[-2]

        if not worker_id or not worker_name:
            fallback = last_distinct_rut(lines, exclude=employer_id)
            if fallback:
                worker_id = fallback
                for i, line in enumerate(lines):
                    if fallback in (first_rut(line) or ''):
                        previous = line_at(lines, i - 1)
                        if previous and not first_rut(previous):
                            worker_name = previous
                        break

        return worker_id, worker_name

    @staticmethod
    def _period(lines: List[str], text: str) -> Optional[str]:
        """Pay period as "Mes yyyy"."""
        if len(lines) >= 3:
            compact = re.sub(r'\s+', '', lines[-3])
            match = re.search(r'(' + MONTH_NAMES + r')(\d{4})', compact, re.IGNORECASE)
            if match:
                return _format_period(match.group(1), match.group(2))

        match = re.search(r'\b(' + MONTH_NAMES + r')\s+(?:DE\s+)?(20\d{2})\b', text, re.IGNORECASE)
        if match:
            return _format_period(match.group(1), match.group(2))
        return None


class LiquidacionTipo2Extractor(FormatExtractor):
    """Liquidación with worker header lines and "RUT TRABAJADOR" label."""

    format_id = 'liquidacion_tipo2'
    label = 'Liquidación (tipo 2)'
    family = DocumentFamily.PAYROLL

    ANCHORS = [
        (r'RUT\s+TRABAJADOR', 2.0),
        (r'Per[ií]odo\s*:', 1.0),
        (r'Base\s+Imponible', 1.0),
    ]

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        worker_name = line_at(lines, 0) or None
        worker_id = first_rut(line_at(lines, 1)) or last_distinct_rut(lines)

        period = label_value(find_line(lines, r'Per[ií]odo\s*:'), r'Per[ií]odo\s*:')

        cargo = None
        idx_cargo = find_index(lines, r'^CARGO\b')
        if idx_cargo >= 0:
            cargo = label_value(lines[idx_cargo], r'^CARGO\s*:?') or line_at(lines, idx_cargo + 1) or None

        description = ' '.join(part for part in (cargo, period) if part) or None

        extras = {}
        for key, label in LiquidacionExtractor.EXTRAS.items():
            amount = labelled_amount(joined, label)
            if amount is not None:
                extras[key] = amount

        return ExtractedFields(
            issuer_id=worker_id,
            issuer_name=worker_name,
            document_date=period,
            document_number=_month_as_number(period),
            total_amount=self._taxable_total(lines, joined),
            description=description,
            extras=extras,
        )

    @staticmethod
    def _taxable_total(lines: List[str], text: str) -> Optional[Number]:
        """Amount alone on the sixth line, else the largest plausible amount."""
        sixth = line_at(lines, 5)
        if re.fullmatch(r'\$?\s*' + AMOUNT_PATTERN + r'(?:[.,]-)?', sixth):
            return line_amount(sixth)

        without_ruts = re.sub(RUT_PATTERN, ' ', text)
        amounts = [normalize_amount(token) for token in re.findall(AMOUNT_PATTERN, without_ruts)]
        candidates = [a for a in amounts if a is not None and a > MIN_TAXABLE_TOTAL]
        return max(candidates) if candidates else None


class LiquidacionTipo3Extractor(FormatExtractor):
    """Liquidación de sueldos with dotted-leader amount lines."""

    format_id = 'liquidacion_tipo3'
    label = 'Liquidación de sueldos (tipo 3)'
    family = DocumentFamily.PAYROLL

    # Case-sensitive: the layout prints these headings in capitals
    ANCHORS = [
        (re.compile(r'LIQUIDACI[OÓ]N DE SUELDOS'), 2.0),
        (re.compile(r'HABERES'), 1.0),
        (re.compile(r'DESCUENTOS'), 1.0),
    ]

    # Extras key → line label preceding the "$ amount"
    LINE_ITEMS = {
        'sueldo_base': r'SUELDO\s+BASE',
        'gratificacion': r'GRATIFICACI[OÓ]N',
        'total_imponible': r'TOTAL\s+IMPONIBLE',
        'colacion': r'COLACI[OÓ]N',
        'movilizacion': r'MOVILIZACI[OÓ]N',
        'total_no_imponible': r'TOTAL\s+NO\s+IMPONIBLE',
        'total_haberes': r'TOTAL\s+HABERES',
        'fonasa': r'FONASA',
        'afp': r'\b(?:AFP|CAPITAL|CUPRUM|HABITAT|MODELO|PLANVITAL|PROVIDA|UNO)\b',
        'seguro_cesantia': r'SEGURO\s+CESANT[IÍ]A',
        'complemento': r'Complementario',
        'total_descuentos': r'TOTAL\s+DESCUENTOS',
        'liquido': r'L[IÍ]QUIDO\s+A\s+PAG[OA]R?',
        'total_tributable': r'TOTAL\s+TRIBUTABLE',
    }

    def detect(self, text: str) -> float:
        return self.score_anchors(text, self.ANCHORS)

    def extract(self, text: str) -> ExtractedFields:
        lines = split_lines(text)
        joined = '\n'.join(lines)

        # The employer's "Rut:" comes first, the worker's second
        ruts = labelled_ruts(joined, r'\bRut\s*:')
        worker_id = ruts[1] if len(ruts) >= 2 else (ruts[0] if ruts else None)

        period = first_match(joined, [r'Fecha\s+de\s+Ingreso:\s*([\d/]+)'])
        number = None
        if period:
            parts = period.split('/')
            if len(parts) >= 2 and parts[1].isdigit():
                number = str(int(parts[1]))

        extras: Dict[str, Optional[Number]] = {}
        for key, label in self.LINE_ITEMS.items():
            amount = money_after(joined, label)
            if amount is not None:
                extras[key] = amount

        taxable = extras.get('total_imponible')

        return ExtractedFields(
            issuer_id=worker_id,
            issuer_name=first_match(joined, [r'Nombre:\s*([^\n]+)']),
            document_date=period,
            document_number=number,
            total_amount=taxable,
            net_amount=taxable,
            description='Liquidación de remuneraciones',
            extras=extras,
        )
