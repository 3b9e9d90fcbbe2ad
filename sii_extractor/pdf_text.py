"""
Document Text Source

Turns an input file into the text blob the engine classifies.

- .txt files are read as UTF-8
- .pdf files go through pdfplumber's text layer, first page only

SII documents fit on one page; later pages of multi-page PDFs are annexes
and terms that only add noise to detection. NUL characters, which some PDF
generators emit between glyphs, are removed.

There is no OCR: a PDF without a text layer (a scan) yields almost no text
and is rejected with EmptyDocumentError.
"""

from pathlib import Path
from typing import Union

from loguru import logger

from .exceptions import EmptyDocumentError, TextSourceError

SUPPORTED_SUFFIXES = ('.pdf', '.txt')


class DocumentTextLoader:
    """
    Loads document text from PDF or plain-text files.

    Usage:
        loader = DocumentTextLoader(min_text_length=10)
        text = loader.load(Path("boleta.pdf"))
    """

    def __init__(self, min_text_length: int = 10):
        """
        Initialize the loader.

        Args:
            min_text_length: Texts shorter than this (after stripping) are
                treated as scanned documents
        """
        self.min_text_length = min_text_length

    def load(self, path: Union[str, Path]) -> str:
        """
        Read the text of a document.

        Raises:
            TextSourceError: Missing file, unsupported type or unreadable PDF
            EmptyDocumentError: Not enough text (probably a scanned PDF)
        """
        path = Path(path)
        if not path.is_file():
            raise TextSourceError(path, "file not found")

        suffix = path.suffix.lower()
        if suffix == '.pdf':
            text = self._read_pdf(path)
        elif suffix == '.txt':
            text = self._read_txt(path)
        else:
            raise TextSourceError(path, f"unsupported file type '{suffix}' (expected {', '.join(SUPPORTED_SUFFIXES)})")

        text = text.replace('\x00', '')
        length = len(text.strip())
        logger.debug(f"Read {length} characters from {path.name}")

        if length < self.min_text_length:
            raise EmptyDocumentError(path, length)

        return text

    def _read_pdf(self, path: Path) -> str:
        """Text layer of the first page."""
        import pdfplumber

        try:
            with pdfplumber.open(path) as pdf:
                if not pdf.pages:
                    return ''
                return pdf.pages[0].extract_text() or ''
        except Exception as e:
            logger.error(f"Failed to read PDF {path.name}: {e}")
            raise TextSourceError(path, str(e)) from e

    def _read_txt(self, path: Path) -> str:
        try:
            return path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise TextSourceError(path, str(e)) from e


def load_document_text(path: Union[str, Path], min_text_length: int = 10) -> str:
    """Read the text of a PDF or .txt document."""
    return DocumentTextLoader(min_text_length=min_text_length).load(path)
