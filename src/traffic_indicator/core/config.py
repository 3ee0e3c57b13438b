from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from traffic_indicator.core.exceptions import ConfigError

Location = Literal["off", "shown"]
IndicatorMode = Literal["auto", "download_only", "upload_only"]

# Integer encodings used by the status bar settings store: only 1 means
# enabled or shown, 0 is auto, 2 is upload, anything else is download.
_SHOWN = 1
_MODE_AUTO = 0
_MODE_UPLOAD = 2


def _is_legacy_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


class IndicatorConfig(BaseModel):
    enabled: bool = False
    location: Location = "off"
    indicator_mode: IndicatorMode = "auto"
    autohide_threshold_kbps: int = 0
    refresh_interval_seconds: int = 1

    @field_validator("enabled", mode="before")
    @classmethod
    def _legacy_enabled(cls, v: Any) -> Any:
        if _is_legacy_int(v):
            return v == _SHOWN
        return v

    @field_validator("location", mode="before")
    @classmethod
    def _legacy_location(cls, v: Any) -> Any:
        if _is_legacy_int(v):
            return "shown" if v == _SHOWN else "off"
        return v

    @field_validator("indicator_mode", mode="before")
    @classmethod
    def _legacy_mode(cls, v: Any) -> Any:
        if _is_legacy_int(v):
            if v == _MODE_AUTO:
                return "auto"
            return "upload_only" if v == _MODE_UPLOAD else "download_only"
        return v

    @field_validator("autohide_threshold_kbps")
    @classmethod
    def _threshold_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("autohide_threshold_kbps must be >= 0")
        return v

    @field_validator("refresh_interval_seconds")
    @classmethod
    def _interval_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("refresh_interval_seconds must be >= 1")
        return v


class SourceConfig(BaseModel):
    interface: str | None = None
    exclude: list[str] = Field(default_factory=list)
    include_loopback: bool = False


class RuntimeConfig(BaseModel):
    watch_config_file: bool = True
    config_poll_seconds: float = 2.0
    connectivity_poll_seconds: float = 1.0

    @field_validator("config_poll_seconds", "connectivity_poll_seconds")
    @classmethod
    def _poll_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("poll intervals must be > 0")
        return v


class UIConfig(BaseModel):
    enabled: bool = True
    refresh_hz: float = 4.0
    value_relative_size: float = 0.70
    unit_relative_size: float = 0.65
    tint_color: str = "white"


class AppConfig(BaseModel):
    indicator: IndicatorConfig = Field(default_factory=IndicatorConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    ui: UIConfig = Field(default_factory=UIConfig)


def load_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed reading config yaml: {path}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return raw


def parse_config(raw: dict[str, Any]) -> AppConfig:
    try:
        return AppConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def load_config(config_path: str | Path, overrides_json: str | None = None) -> AppConfig:
    load_dotenv(override=False)
    raw = load_yaml(Path(config_path))

    if overrides_json:
        try:
            override = json.loads(overrides_json)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid overrides json: {exc}") from exc
        if not isinstance(override, dict):
            raise ConfigError("Overrides json must be an object")
        raw = _deep_merge_dicts(raw, override)

    return parse_config(raw)


def _deep_merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge_dicts(out[k], v)
        else:
            out[k] = v
    return out
