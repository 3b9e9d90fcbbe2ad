"""
Tests for the sii-extract command line.

Run with: pytest tests/ -v
"""

import json
import shutil
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner
from loguru import logger

from sii_extractor.cli import main
from sii_extractor.doctypes import SiiClasicoExtractor

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Wide terminal so rich tables do not wrap ids
ENV = {"COLUMNS": "200"}


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    # The CLI points loguru at the runner's stderr, which is closed afterwards
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def document(tmp_path):
    def copy(name):
        path = tmp_path / f"{name}.txt"
        shutil.copy(FIXTURES_DIR / f"{name}.txt", path)
        return path
    return copy


class TestExtractCommand:
    """Tests for the extract command."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_json_to_stdout(self, document):
        result = self.runner.invoke(main, ["extract", str(document("sii_clasico"))], env=ENV)

        assert result.exit_code == 0
        assert '"formatId": "sii_clasico"' in result.output
        assert '"totalAmount": 28000' in result.output

    def test_output_file(self, document, tmp_path):
        output = tmp_path / "out" / "factura.json"
        result = self.runner.invoke(
            main,
            ["extract", str(document("factura_sii")), "-o", str(output)],
            env=ENV,
        )

        assert result.exit_code == 0
        assert "Output written to" in result.output

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["formatId"] == "factura_sii"
        assert data["fields"]["totalAmount"] == 1190000
        assert data["fields"]["description"] == "Servicio de mantención eléctrica"

    def test_forced_format(self, document, tmp_path):
        output = tmp_path / "tipo3.json"
        result = self.runner.invoke(
            main,
            ["extract", str(document("liquidacion_tipo3")), "--format", "liquidacion_tipo3", "-o", str(output)],
            env=ENV,
        )

        assert result.exit_code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["formatId"] == "liquidacion_tipo3"
        assert data["confidence"] == 1.0
        assert data["fields"]["extras"]["fonasa"] == 61250

    def test_auto_format(self, document, tmp_path):
        output = tmp_path / "auto.json"
        result = self.runner.invoke(
            main,
            ["extract", str(document("nota_credito")), "-f", "auto", "-o", str(output)],
            env=ENV,
        )

        assert result.exit_code == 0
        assert json.loads(output.read_text(encoding="utf-8"))["formatId"] == "nota_credito"

    def test_unknown_format(self, document):
        result = self.runner.invoke(
            main,
            ["extract", str(document("sii_clasico")), "--format", "factura_x"],
            env=ENV,
        )

        assert result.exit_code == 2
        assert "factura_x" in result.output

    def test_document_without_text(self, tmp_path):
        path = tmp_path / "scan.txt"
        path.write_text("   ", encoding="utf-8")

        result = self.runner.invoke(main, ["extract", str(path)], env=ENV)

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_file(self, tmp_path):
        result = self.runner.invoke(main, ["extract", str(tmp_path / "missing.pdf")], env=ENV)
        assert result.exit_code == 2


class TestOtherCommands:
    """Tests for detect, list-formats and global options."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_detect(self, document):
        result = self.runner.invoke(main, ["detect", str(document("factura_afecta"))], env=ENV)

        assert result.exit_code == 0
        assert "factura_afecta" in result.output
        assert "Detected format: factura_afecta" in result.output

    def test_detect_scores_once(self, document, monkeypatch):
        calls = []
        original = SiiClasicoExtractor.detect

        def counting_detect(extractor, text):
            calls.append(text)
            return original(extractor, text)

        monkeypatch.setattr(SiiClasicoExtractor, "detect", counting_detect)
        result = self.runner.invoke(main, ["detect", str(document("sii_clasico"))], env=ENV)

        assert result.exit_code == 0
        assert "Detected format: sii_clasico" in result.output
        assert len(calls) == 1

    def test_verbose_logs_scores(self, document):
        path = str(document("factura_afecta"))

        quiet = self.runner.invoke(main, ["detect", path], env=ENV)
        verbose = self.runner.invoke(main, ["-v", "detect", path], env=ENV)

        assert "score =" not in quiet.output
        assert "factura_afecta: score = 1.3" in verbose.output

    def test_list_formats(self):
        result = self.runner.invoke(main, ["list-formats"], env=ENV)

        assert result.exit_code == 0
        assert "factura_electronica_moderna" in result.output
        assert "liquidacion_tipo3" in result.output
        assert "forced only" in result.output

    def test_config_ranking(self, tmp_path):
        config = tmp_path / "engine.yaml"
        config.write_text("ranking: [liquidacion]\ndispatch: [liquidacion]\n", encoding="utf-8")

        result = self.runner.invoke(main, ["-c", str(config), "list-formats"], env=ENV)

        assert result.exit_code == 0
        assert "liquidacion" in result.output
        assert "sii_clasico" not in result.output

    def test_invalid_config(self, tmp_path):
        config = tmp_path / "engine.yaml"
        config.write_text("ranking: [factura_x]\n", encoding="utf-8")

        result = self.runner.invoke(main, ["-c", str(config), "list-formats"], env=ENV)

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_log_file(self, document, tmp_path):
        log_file = tmp_path / "engine.log"
        result = self.runner.invoke(
            main,
            ["--log-file", str(log_file), "extract", str(document("liquidacion"))],
            env=ENV,
        )

        assert result.exit_code == 0
        logger.remove()
        assert "Detected format: liquidacion" in log_file.read_text(encoding="utf-8")

    def test_version(self):
        result = self.runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "1.0.0" in result.output
