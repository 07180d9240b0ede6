"""Tests for config.yaml loading and credential handling."""

from pathlib import Path

import pytest

from goldwatch.core.config import Credentials, load_config, section


def test_load_config_parses_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("output_dir: out\nrate_limits:\n  task_interval_ms: 10\n", encoding="utf-8")
    config = load_config(path)
    assert config["output_dir"] == "out"
    assert section(config, "rate_limits") == {"task_interval_ms": 10}


def test_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_empty_config_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_section_tolerates_missing_levels():
    assert section({}, "index", "proxy") == {}
    assert section({"index": {"proxy": None}}, "index", "proxy") == {}
    assert section({"index": {"proxy": {"base": 100}}}, "index", "proxy") == {"base": 100}


def test_repository_config_loads():
    config = load_config(Path(__file__).resolve().parent.parent / "config.yaml")
    assert config["window_size"] == 180
    assert set(section(config, "index", "proxy", "weights")) == {
        "EUR/USD", "USD/JPY", "GBP/USD", "USD/CAD",
    }


def test_credentials_from_env_treats_blank_as_absent():
    creds = Credentials.from_env({
        "TWELVE_DATA_KEY": " td ",
        "ALPHA_VANTAGE_KEY": "",
        "FRED_KEY": "fred",
    })
    assert creds.twelve_data_key == "td"
    assert creds.alpha_vantage_key is None
    assert creds.fred_key == "fred"
    assert creds.news_api_key is None
