"""App configuration: environment settings and the persisted config.json.

Environment (read from `.env` at the repo root via python-dotenv):
  DATA_DIR       storage directory (default ./data)
  HOST           bind address for the dev server
  BACKEND_PORT   port for the dev server
  LOG_LEVEL      logging level name (default INFO)

config.json holds settings edited at runtime. get/update merge stored
values over defaults; `prompts` and `enabled_levels` are merged key-by-key,
`llm_connection` field-by-field, scalars overwritten.
"""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from rpg_chronicle.models import LEVELS, RunConfig

ROOT = Path(__file__).parent.parent
DEFAULT_DATA_DIR = ROOT / "data"

load_dotenv(ROOT / ".env")

_CONFIG_DEFAULTS: dict[str, Any] = {
    "min_session_messages": 10,
    "enabled_levels": {level: True for level in LEVELS},
    "llm_connection": {
        "provider_url": "",
        "api_key": "",
        "provider_format": "koboldcpp",
        "model": "",
        "timeout": 120,
    },
    "prompts": {level: "" for level in LEVELS},
}


def data_dir() -> Path:
    return Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def _defaults() -> dict[str, Any]:
    return json.loads(json.dumps(_CONFIG_DEFAULTS))


def _merge(config: dict[str, Any], fields: dict[str, Any]) -> None:
    if "min_session_messages" in fields:
        value = int(fields["min_session_messages"])
        if value < 1:
            raise ValueError("min_session_messages must be >= 1")
        config["min_session_messages"] = value
    if "enabled_levels" in fields:
        for level, enabled in fields["enabled_levels"].items():
            if level in config["enabled_levels"]:
                config["enabled_levels"][level] = bool(enabled)
    if "llm_connection" in fields:
        for key, value in fields["llm_connection"].items():
            if key in config["llm_connection"]:
                config["llm_connection"][key] = value
    if "prompts" in fields:
        for level, template in fields["prompts"].items():
            if level in config["prompts"]:
                config["prompts"][level] = template or ""


def load_config(path: Path) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = _defaults()
    if path.is_file():
        _merge(config, json.loads(path.read_text()))
    return config


def update_config(path: Path, fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config."""
    config = load_config(path)
    _merge(config, fields)
    path.write_text(json.dumps(config, indent=2))
    return config


def run_config_from(config: dict[str, Any]) -> RunConfig:
    return RunConfig.from_flags(config["min_session_messages"], config["enabled_levels"])
