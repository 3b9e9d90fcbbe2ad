"""
Document Formats

Format extractors for the supported SII layouts and the registry that
classifies a text blob into one of them.

Families:
- Receipts: sii_clasico, sii_var_b
- Invoices: factura_sii, factura_simple, factura_afecta, factura_retail,
  factura_electronica_moderna
- Credit notes: nota_credito
- Payroll: liquidacion, liquidacion_tipo2, liquidacion_tipo3 (forced only)
"""

from .document_type import (
    DocumentFamily,
    ExtractedFields,
    FormatExtractor,
    ParseResult,
)
from .receipts import SiiClasicoExtractor, SiiVarBExtractor
from .invoices import (
    FacturaAfectaExtractor,
    FacturaElectronicaModernaExtractor,
    FacturaRetailExtractor,
    FacturaSiiExtractor,
    FacturaSimpleExtractor,
)
from .credit_notes import NotaCreditoExtractor
from .payroll import (
    LiquidacionExtractor,
    LiquidacionTipo2Extractor,
    LiquidacionTipo3Extractor,
)
from .registry import (
    BUILTIN_EXTRACTORS,
    ExtractorRegistry,
    detect_format,
    get_registry,
    list_formats,
    parse_document,
)

__all__ = [
    'DocumentFamily',
    'ExtractedFields',
    'FormatExtractor',
    'ParseResult',
    'SiiClasicoExtractor',
    'SiiVarBExtractor',
    'FacturaSiiExtractor',
    'FacturaSimpleExtractor',
    'FacturaAfectaExtractor',
    'FacturaRetailExtractor',
    'FacturaElectronicaModernaExtractor',
    'NotaCreditoExtractor',
    'LiquidacionExtractor',
    'LiquidacionTipo2Extractor',
    'LiquidacionTipo3Extractor',
    'BUILTIN_EXTRACTORS',
    'ExtractorRegistry',
    'detect_format',
    'get_registry',
    'list_formats',
    'parse_document',
]
