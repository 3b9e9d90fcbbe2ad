"""
Tests for reading document text from files.

Run with: pytest tests/ -v
"""

import pytest

from sii_extractor.exceptions import EmptyDocumentError, TextSourceError
from sii_extractor.pdf_text import DocumentTextLoader, load_document_text


class TestDocumentTextLoader:
    """Tests for the text loader."""

    def setup_method(self):
        self.loader = DocumentTextLoader(min_text_length=10)

    def test_txt(self, tmp_path):
        path = tmp_path / "boleta.txt"
        path.write_text("BOLETA DE HONORARIOS\nTotal Honorarios $: 28.000\n", encoding="utf-8")

        assert self.loader.load(path).startswith("BOLETA DE HONORARIOS")
        assert load_document_text(str(path)) == self.loader.load(path)

    def test_nul_characters_removed(self, tmp_path):
        path = tmp_path / "factura.txt"
        path.write_text("FACTURA\x00 ELECTRONICA\x00\nTOTAL $ 1.000", encoding="utf-8")

        assert "\x00" not in self.loader.load(path)

    def test_too_short(self, tmp_path):
        path = tmp_path / "scan.txt"
        path.write_text("  \n abc \n", encoding="utf-8")

        with pytest.raises(EmptyDocumentError) as exc_info:
            self.loader.load(path)
        assert exc_info.value.length == 3
        assert isinstance(exc_info.value, TextSourceError)

    def test_min_length_configurable(self, tmp_path):
        path = tmp_path / "short.txt"
        path.write_text("abc", encoding="utf-8")

        assert DocumentTextLoader(min_text_length=0).load(path) == "abc"

    def test_missing_file(self, tmp_path):
        with pytest.raises(TextSourceError) as exc_info:
            self.loader.load(tmp_path / "missing.pdf")
        assert "file not found" in str(exc_info.value)

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "boleta.docx"
        path.write_text("BOLETA DE HONORARIOS", encoding="utf-8")

        with pytest.raises(TextSourceError):
            self.loader.load(path)

    def test_invalid_pdf(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"this is not a pdf file")

        with pytest.raises(TextSourceError):
            self.loader.load(path)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "latin1.txt"
        path.write_bytes("Señor(es): ÑUÑOA".encode("latin-1"))

        with pytest.raises(TextSourceError):
            self.loader.load(path)
