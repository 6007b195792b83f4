from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from endless_novel.config.schema import AppConfigRoot, resolve_paths

ENV_DATA_DIR = "ENDLESS_NOVEL_DATA_DIR"
ENV_DB_PATH = "ENDLESS_NOVEL_DB_PATH"
ENV_PURCHASE_DELAY = "ENDLESS_NOVEL_PURCHASE_DELAY_S"

# Environment variable -> (section, key) it overrides.
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    ENV_DATA_DIR: ("app", "data_dir"),
    ENV_DB_PATH: ("storage", "sqlite_path"),
    ENV_PURCHASE_DELAY: ("gems", "purchase_delay_s"),
}


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return loaded


def _merge_into(target: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Recursively overlay ``layer`` onto ``target``; nested mappings merge, anything else replaces."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            _merge_into(current, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def _read_dotenv(path: Path) -> None:
    if not path.is_file():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        name, _, raw_value = line.partition("=")
        # Variables already set in the process win over .env.
        os.environ.setdefault(name.strip(), raw_value.strip().strip("'\""))


def _env_layer() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            layer.setdefault(section, {})[key] = value
    return layer


def load_config(
    config_path: Path | None = None,
    profile: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> AppConfigRoot:
    """Build the effective configuration from the current working directory.

    Layers, later ones winning: ``configs/default.yaml``, the named profile
    under ``configs/profiles``, ``config_path``, ``overrides`` and finally the
    ``ENDLESS_NOVEL_*`` environment variables. A ``.env`` file is read first.
    """
    root = Path.cwd()
    configs_dir = root / "configs"
    _read_dotenv(root / ".env")

    layers = [_load_yaml_mapping(configs_dir / "default.yaml")]
    if profile:
        layers.append(_load_yaml_mapping(configs_dir / "profiles" / f"{profile}.yaml"))
    if config_path:
        layers.append(_load_yaml_mapping(config_path))
    layers.append(overrides or {})
    layers.append(_env_layer())

    merged: dict[str, Any] = {}
    for layer in layers:
        _merge_into(merged, layer)

    config = resolve_paths(AppConfigRoot.model_validate(merged), root)
    logger.debug("Config resolved (profile={}, file={})", profile or "-", config_path or "-")
    return config


def masked_env_snapshot(config: AppConfigRoot | None = None) -> dict[str, str | None]:
    snapshot: dict[str, str | None] = {name: os.getenv(name) for name in _ENV_OVERRIDES}
    if config is None:
        return snapshot

    key_env = config.contact.public_key_env
    if key_env:
        snapshot[key_env] = "***" if os.getenv(key_env) else None
    snapshot["contact.endpoint"] = config.contact.endpoint
    return snapshot
