"""Unit tests for settings loading."""
import logging
import os
from unittest.mock import patch

import pytest

from polyviz import Settings, load_settings


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Run each test in an empty directory with no POLYVIZ_* variables set."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("POLYVIZ_"):
            monkeypatch.delenv(name)


def test_defaults_without_a_file():
    settings = load_settings()
    assert settings == Settings()
    assert settings.default_width == 800
    assert settings.default_height == 400
    assert settings.jpeg_quality == 0.95


def test_file_values_and_section(tmp_path, caplog):
    config = tmp_path / "custom.toml"
    config.write_text('[polyviz]\ndefault_width = 1024\ndefault_theme = "dark"\nshiny = true\n')
    with caplog.at_level(logging.WARNING, logger="PolyViz"):
        settings = load_settings(str(config))
    assert settings.default_width == 1024
    assert settings.default_theme == "dark"
    assert settings.default_height == 400
    assert "Ignoring unknown setting 'shiny'" in caplog.text


def test_default_file_in_working_directory(tmp_path):
    (tmp_path / "polyviz.toml").write_text("frame_rate = 30\n")
    assert load_settings().frame_rate == 30


def test_config_path_from_environment(tmp_path):
    config = tmp_path / "elsewhere.toml"
    config.write_text("jpeg_quality = 0.5\n")
    with patch.dict(os.environ, {"POLYVIZ_CONFIG": str(config)}):
        assert load_settings().jpeg_quality == 0.5


def test_environment_overrides_file(tmp_path, caplog):
    (tmp_path / "polyviz.toml").write_text("default_width = 1024\n")
    overrides = {
        "POLYVIZ_DEFAULT_WIDTH": "640",
        "POLYVIZ_JPEG_QUALITY": "0.8",
        "POLYVIZ_LOG_LEVEL": "DEBUG",
        "POLYVIZ_FRAME_RATE": "fast",
    }
    with patch.dict(os.environ, overrides), caplog.at_level(logging.WARNING, logger="PolyViz"):
        settings = load_settings()
    assert settings.default_width == 640
    assert settings.jpeg_quality == 0.8
    assert settings.log_level == "DEBUG"
    # unparseable values keep the previous value
    assert settings.frame_rate == 60
    assert "POLYVIZ_FRAME_RATE" in caplog.text
