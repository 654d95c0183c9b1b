"""Global app configuration (narration and image connections, engine tuning).

Stored as data/config.json. get_config() returns defaults merged with stored
values. update_config() applies partial updates: connection blocks and
engine settings are merged key by key, prompt overrides replaced per stage.
"""

import json
from pathlib import Path
from typing import Any

from choicecraft.settings import EngineSettings

_data_dir: Path | None = None

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm_connection": {
        "provider_url": "",
        "api_key": "",
        "provider_format": "koboldcpp",
        "model": "",
    },
    "asset_connection": {
        "provider_url": "",
        "api_key": "",
        "model": "",
    },
    "prompts": {},
    "engine": EngineSettings().model_dump(),
}


def init_config(data_dir: Path) -> None:
    global _data_dir
    _data_dir = Path(data_dir)
    _data_dir.mkdir(parents=True, exist_ok=True)


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_config() before using config"
    return _data_dir


def _config_path() -> Path:
    return data_dir() / "config.json"


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config: dict[str, Any] = json.loads(json.dumps(_CONFIG_DEFAULTS))
    path = _config_path()
    if path.is_file():
        stored = json.loads(path.read_text())
        for block in ("llm_connection", "asset_connection", "engine"):
            if isinstance(stored.get(block), dict):
                config[block].update(stored[block])
        if isinstance(stored.get("prompts"), dict):
            config["prompts"] = stored["prompts"]
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config.

    Engine values are validated first; an invalid value raises pydantic's
    ValidationError and nothing is written.
    """
    config = get_config()
    for block in ("llm_connection", "asset_connection", "engine"):
        if isinstance(fields.get(block), dict):
            config[block].update(fields[block])
    if isinstance(fields.get("prompts"), dict):
        for stage, template in fields["prompts"].items():
            if template:
                config["prompts"][stage] = template
            else:
                config["prompts"].pop(stage, None)
    config["engine"] = EngineSettings.model_validate(config["engine"]).model_dump()
    _config_path().write_text(json.dumps(config, indent=2))
    return config


def engine_settings() -> EngineSettings:
    return EngineSettings.model_validate(get_config()["engine"])
