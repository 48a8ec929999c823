"""Shared fixtures: a throwaway phpenv root with one installed PHP version."""

import pytest
from pathlib import Path

from phpenv_conf.config import ConfigManager
from phpenv_conf.settings import Settings

PHP_VERSION = "8.2.10"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keeps the developer's own phpenv setup out of the tests."""
    for var in ("PHPENV_ROOT", "PHPENV_VERSION", "PHPENV_CONF_SETTINGS"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def phpenv_root(tmp_path) -> Path:
    root = tmp_path / "phpenv"
    (root / "versions" / PHP_VERSION / "etc").mkdir(parents=True)
    return root


@pytest.fixture
def settings(phpenv_root) -> Settings:
    return Settings(root=phpenv_root, version=PHP_VERSION)


@pytest.fixture
def manager(settings) -> ConfigManager:
    return ConfigManager(settings)


@pytest.fixture
def make_ini(tmp_path):
    """Writes an ini file outside the phpenv root and returns its path."""
    source_dir = tmp_path / "src"
    source_dir.mkdir()

    def _make(filename: str, content: str = "; test\n") -> Path:
        path = source_dir / filename
        path.write_text(content, encoding="utf-8")
        return path
    return _make
