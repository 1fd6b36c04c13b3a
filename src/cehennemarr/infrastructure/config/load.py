"""Layered configuration loading.

Layers, lowest precedence first: built-in defaults, the YAML file,
``CEHENNEMARR_*`` environment variables (``.env`` included) and CLI flags.
Each layer may use the nested section form (``proxy: {mode: never}``) or
the flat aliases in ``_FLAT_MAP`` (``proxy_mode``); both are folded into
the section form before merging.
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTION_KEYS: set[str] = {"site", "http", "proxy", "logging", "cache"}
_TOP_LEVEL_KEYS = ("app_name", "environment", "relay_base_url")

_FLAT_MAP: dict[str, tuple[str, str]] = {
    "site_base_url": ("site", "base_url"),
    "embed_base_url": ("site", "embed_base_url"),
    "metadata_base_url": ("site", "metadata_base_url"),
    "match_strategy": ("site", "match_strategy"),
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_max_retries": ("http", "max_retries"),
    "http_max_concurrent": ("http", "max_concurrent"),
    "http_user_agent": ("http", "user_agent"),
    "proxy_mode": ("proxy", "mode"),
    "proxy_max_attempts": ("proxy", "max_proxy_attempts"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
}


def _merge_into(target: dict[str, Any], layer: Mapping[str, Any]) -> None:
    """Overlay *layer* on *target*; nested sections merge, lists are replaced."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            target[key] = value


def _sectioned(data: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {
        section: dict(data[section])
        for section in _SECTION_KEYS
        if isinstance(data.get(section), Mapping)
    }
    out.update({key: data[key] for key in _TOP_LEVEL_KEYS if key in data})

    for flat_key, (section, field) in _FLAT_MAP.items():
        if flat_key in data:
            out.setdefault(section, {})[field] = data[flat_key]

    # PROXY_LIST_URL replaces the whole feed set with one plain-text feed
    if "proxy_list_url" in data:
        out.setdefault("proxy", {})["feeds"] = [
            {"url": data["proxy_list_url"], "protocol": "http", "format": "text"}
        ]
    return out


def _yaml_layer(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Build the validated :class:`AppConfig`.

    Missing *config_path* or *dotenv_path* files raise ``FileNotFoundError``.
    Nothing is written to disk.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        # already-exported variables win over the file
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = [deepcopy(DEFAULT_CONFIG)]
    if config_path is not None:
        layers.append(_yaml_layer(config_path))
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    merged: dict[str, Any] = {}
    for layer in layers:
        _merge_into(merged, _sectioned(layer))
    return AppConfig.model_validate(merged)
