"""Configuration loading: config.yaml settings and API credentials."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml


def load_config(config_path: str | Path = "config.yaml") -> Dict[str, Any]:
    """
    Load configuration from the specified YAML file.

    Args:
        config_path (str | Path): Path to the configuration file. Defaults to "config.yaml".

    Returns:
        Dict[str, Any]: A dictionary containing the configuration settings.
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found at {config_path}")

    with open(config_file, "r", encoding="utf-8") as file:
        config_data = yaml.safe_load(file)

    if not config_data:
        raise ValueError(f"Configuration file {config_path} is empty or invalid.")

    return config_data


def section(config: Mapping[str, Any], *path: str) -> Dict[str, Any]:
    """Return a nested config mapping, or an empty dict when any level is missing."""
    node: Any = config
    for key in path:
        if not isinstance(node, Mapping):
            return {}
        node = node.get(key)
    return dict(node) if isinstance(node, Mapping) else {}


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


@dataclass(frozen=True)
class Credentials:
    """API keys for the four upstream providers.

    Only ``news_api_key`` is optional: without it the events task is
    skipped. Blank values are treated as absent.
    """
    twelve_data_key: Optional[str] = None
    alpha_vantage_key: Optional[str] = None
    fred_key: Optional[str] = None
    news_api_key: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> "Credentials":
        """Read the credentials once from the environment (``.env`` already loaded)."""
        return cls(
            twelve_data_key=_clean(environ.get("TWELVE_DATA_KEY")),
            alpha_vantage_key=_clean(environ.get("ALPHA_VANTAGE_KEY")),
            fred_key=_clean(environ.get("FRED_KEY")),
            news_api_key=_clean(environ.get("NEWS_API_KEY")),
        )
