"""Configuration dataclasses and loader for the blueprint flow."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from src.blueprint_flow.exceptions import ConfigurationError
from src.shared.config import BlueprintSettings
from src.shared.constants import DEFAULT_AUTOSAVE_DEBOUNCE_MS, DEFAULT_STORAGE_DIR


@dataclass
class AutosaveConfig:
    """Debounced persistence settings."""

    enabled: bool = True
    debounce_ms: int = DEFAULT_AUTOSAVE_DEBOUNCE_MS


@dataclass
class GenerativeConfig:
    """Optional generative-text backend."""

    base_url: str = ""
    api_key: str = ""
    timeout: float = 30.0


@dataclass
class JourneyConfig:
    """Journey suggestion behaviour."""

    prefer_generative: bool = True


@dataclass
class LoggingConfig:
    """Log output settings."""

    level: str = "INFO"
    json_format: bool = True


@dataclass
class FlowConfig:
    """Top-level configuration composing all sub-configs."""

    autosave: AutosaveConfig = field(default_factory=AutosaveConfig)
    generative: GenerativeConfig = field(default_factory=GenerativeConfig)
    journey: JourneyConfig = field(default_factory=JourneyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    storage_dir: str = DEFAULT_STORAGE_DIR
    keep_revisions: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_SECTIONS: dict[str, type] = {
    "autosave": AutosaveConfig,
    "generative": GenerativeConfig,
    "journey": JourneyConfig,
    "logging": LoggingConfig,
}


def _pick(data: dict[str, Any], cls: type) -> dict[str, Any]:
    """Filter *data* to only keys accepted by *cls*."""
    valid = {f.name for f in cls.__dataclass_fields__.values()}
    return {k: v for k, v in data.items() if k in valid}


def apply_env_overrides(cfg: FlowConfig, settings: BlueprintSettings | None = None) -> FlowConfig:
    """Apply ``LOG_LEVEL``, ``BLUEPRINT_STORAGE_DIR`` and ``GENERATIVE_*`` overrides in place."""
    settings = settings or BlueprintSettings()
    if settings.log_level:
        cfg.logging.level = settings.log_level.upper()
    if settings.storage_dir:
        cfg.storage_dir = settings.storage_dir
    if settings.generative_backend_url:
        cfg.generative.base_url = settings.generative_backend_url
    if settings.generative_api_key:
        cfg.generative.api_key = settings.generative_api_key
    return cfg


def load_flow_config(
    path: Path | str | None = None,
    settings: BlueprintSettings | None = None,
) -> FlowConfig:
    """Load flow configuration from a YAML file.

    Missing sections fall back to defaults and unknown keys are ignored, so
    forward-compatible config files work.  Environment overrides are
    applied last.

    Args:
        path: Path to config YAML.  If ``None`` or the file does not
              exist, defaults are used.
        settings: Environment settings; read from the process environment
              when omitted.

    Raises:
        ConfigurationError: If the file is not valid YAML or not a mapping.
    """
    raw: dict[str, Any] = {}
    if path is not None and Path(path).exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        raw = loaded

    top_level = _pick(raw, FlowConfig)
    for key in _SECTIONS:
        top_level.pop(key, None)

    sections = {}
    for key, cls in _SECTIONS.items():
        section_raw = raw.get(key) or {}
        if not isinstance(section_raw, dict):
            raise ConfigurationError(f"Config section '{key}' must be a mapping")
        sections[key] = cls(**_pick(section_raw, cls))

    cfg = FlowConfig(**sections, **top_level)
    return apply_env_overrides(cfg, settings)
