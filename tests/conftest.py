"""Shared pytest fixtures and configuration for all tests."""

from pathlib import Path

import pytest

from ipcbridge.parser import parse_source


def pytest_configure(config):
    """Register markers for pytest."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture
def parse():
    """Parse a snippet the way the transform pipeline does."""

    def _parse(source: str, file_id: str = "sample.main.ipc.ts"):
        return parse_source(source, file_id)

    return _parse


@pytest.fixture
def write_module(tmp_path):
    """Write a module below ``tmp_path`` and return its path."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _no_debug_reraise(monkeypatch):
    monkeypatch.delenv("IPCBRIDGE_DEBUG", raising=False)
