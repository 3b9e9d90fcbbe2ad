"""Shared fixtures for the extraction engine tests."""

from pathlib import Path

import pytest

from sii_extractor.doctypes.registry import ExtractorRegistry

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def read_fixture(name: str) -> str:
    """Text of tests/fixtures/<name>.txt."""
    return (FIXTURES_DIR / f"{name}.txt").read_text(encoding="utf-8")


@pytest.fixture
def load_fixture():
    return read_fixture


@pytest.fixture
def registry():
    return ExtractorRegistry.default()
