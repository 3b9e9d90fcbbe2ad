"""
SII Extractor - Chilean tax and payroll document field extraction

Classifies the text of a Chilean fiscal document (boleta de honorarios,
factura, nota de crédito) or payslip (liquidación de remuneraciones) into
one of the supported layouts and extracts a fixed set of fields from it.

Usage:
    from sii_extractor import parse_document

    result = parse_document(text)
    print(result.format_id, result.confidence)
    print(result.fields.total_amount)

    # Force a layout
    result = parse_document(text, forced_format='factura_sii')
"""

__version__ = "1.0.0"

from .config import EngineConfig, load_config
from .exceptions import (
    ConfigError,
    EmptyDocumentError,
    ExtractorError,
    TextSourceError,
    UnknownFormatError,
)
from .doctypes import (
    ExtractedFields,
    ExtractorRegistry,
    FormatExtractor,
    ParseResult,
    detect_format,
    get_registry,
    list_formats,
    parse_document,
)
from .parser import normalize_amount, normalize_rut, sanitize_text
from .pdf_text import load_document_text

__all__ = [
    'EngineConfig',
    'load_config',
    'ConfigError',
    'EmptyDocumentError',
    'ExtractorError',
    'TextSourceError',
    'UnknownFormatError',
    'ExtractedFields',
    'ExtractorRegistry',
    'FormatExtractor',
    'ParseResult',
    'detect_format',
    'get_registry',
    'list_formats',
    'parse_document',
    'normalize_amount',
    'normalize_rut',
    'sanitize_text',
    'load_document_text',
]
