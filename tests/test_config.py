"""
Tests for engine configuration loading.

Run with: pytest tests/ -v
"""

from pathlib import Path

import pytest

from sii_extractor.config import EngineConfig, load_config
from sii_extractor.doctypes import ExtractorRegistry
from sii_extractor.exceptions import ConfigError

EXAMPLE_CONFIG = Path(__file__).parent.parent / "config" / "engine.yaml"


class TestLoadConfig:
    """Tests for reading engine.yaml files."""

    def write(self, tmp_path, content):
        path = tmp_path / "engine.yaml"
        path.write_text(content, encoding="utf-8")
        return path

    def test_defaults(self):
        config = load_config(None)

        assert config == EngineConfig()
        assert config.auto_sentinel == "auto"
        assert config.max_input_chars == 200000
        assert config.ranking is None

    def test_example_config(self):
        config = load_config(EXAMPLE_CONFIG)
        registry = ExtractorRegistry.from_config(config)

        ranked = [e.format_id for e in registry.ranking_set]
        assert ranked == [e.format_id for e in ExtractorRegistry.default().ranking_set]
        assert config.source == EXAMPLE_CONFIG

    def test_values(self, tmp_path):
        path = self.write(tmp_path, (
            "auto_sentinel: automatico\n"
            "max_input_chars: 5000\n"
            "log_level: debug\n"
            "ranking: [liquidacion, liquidacion_tipo3]\n"
        ))
        config = load_config(path)

        assert config.auto_sentinel == "automatico"
        assert config.max_input_chars == 5000
        assert config.min_text_length == 10
        assert config.log_level == "DEBUG"
        assert config.ranking == ["liquidacion", "liquidacion_tipo3"]
        assert config.dispatch is None

    def test_empty_file(self, tmp_path):
        assert load_config(self.write(tmp_path, "")) == EngineConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "missing.yaml")
        assert "file not found" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(self.write(tmp_path, "ranking: [unclosed\n"))

    @pytest.mark.parametrize("content", [
        "- just\n- a list\n",
        "unknown_key: 1\n",
        "auto_sentinel: ''\n",
        "max_input_chars: -1\n",
        "max_input_chars: true\n",
        "min_text_length: ten\n",
        "log_level: LOUD\n",
        "ranking: sii_clasico\n",
        "dispatch: [1, 2]\n",
    ])
    def test_invalid_values(self, tmp_path, content):
        with pytest.raises(ConfigError):
            load_config(self.write(tmp_path, content))

    def test_error_carries_path(self, tmp_path):
        path = self.write(tmp_path, "unknown_key: 1\n")
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)

        assert exc_info.value.path == path
        assert exc_info.value.details["path"] == str(path)
