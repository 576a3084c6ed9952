"""Typed loader for defaults/note-comment.yml.

Every key is optional; anything omitted keeps the built-in default.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

# GitHub rejects issue/commit comments above 65,536 characters.
MAX_BODY_LENGTH = 65000

_KNOWN_KEYS = frozenset(
    {"max_body_length", "formatted_providers", "reserved_speakers", "fallback_title"}
)


class ConfigError(RuntimeError):
    """Data class for Config Error."""
    pass


@dataclass(frozen=True)
class RendererConfig:
    """Data class for Renderer Config."""
    max_body_length: int = MAX_BODY_LENGTH
    # Providers whose capture format may flatten embedded markdown.
    formatted_providers: tuple[str, ...] = ("codex", "claude")
    # Speaker headings (`### Name`) that end a file section besides provider/committer.
    reserved_speakers: tuple[str, ...] = ("System", "Tool")
    fallback_title: str = "Session instructions"


DEFAULT_CONFIG = RendererConfig()


def _require_mapping(value: Any, ctx: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{ctx}: expected mapping")
    return value


def _require_list(value: Any, ctx: str) -> list[Any]:
    if not isinstance(value, list):
        raise ConfigError(f"{ctx}: expected list")
    return value


def _require_str(value: Any, ctx: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{ctx}: expected string")
    s = value.strip()
    if not s:
        raise ConfigError(f"{ctx}: must be non-empty")
    return s


def _require_str_tuple(value: Any, ctx: str) -> tuple[str, ...]:
    raw = _require_list(value, ctx)
    return tuple(_require_str(item, f"{ctx}[{idx}]") for idx, item in enumerate(raw))


def _require_positive_int(value: Any, ctx: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{ctx}: expected integer")
    if value < 1:
        raise ConfigError(f"{ctx}: must be >= 1")
    return value


def _load_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"missing config file: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e


def parse_renderer_config(raw: Any) -> RendererConfig:
    """Validate an already-decoded config document."""
    # An empty file decodes to None.
    if raw is None:
        return DEFAULT_CONFIG
    cfg = _require_mapping(raw, "config")

    unknown = sorted(str(key) for key in cfg if key not in _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"config: unknown keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    if cfg.get("max_body_length") is not None:
        values["max_body_length"] = _require_positive_int(
            cfg["max_body_length"], "config.max_body_length"
        )
    if cfg.get("formatted_providers") is not None:
        values["formatted_providers"] = _require_str_tuple(
            cfg["formatted_providers"], "config.formatted_providers"
        )
    if cfg.get("reserved_speakers") is not None:
        values["reserved_speakers"] = _require_str_tuple(
            cfg["reserved_speakers"], "config.reserved_speakers"
        )
    if cfg.get("fallback_title") is not None:
        values["fallback_title"] = _require_str(cfg["fallback_title"], "config.fallback_title")

    return RendererConfig(**values)


def load_renderer_config(path: Path) -> RendererConfig:
    """Load renderer config."""
    return parse_renderer_config(_load_yaml(path))
