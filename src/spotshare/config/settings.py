# src/spotshare/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/spotshare/config/defaults.yaml`, then optionally overridden by:
- environment variables: `SPOTSHARE_LOG_LEVEL`, `SPOTSHARE_BACKEND` (`memory` | `supabase`),
  `SUPABASE_URL`, `SUPABASE_ANON_KEY` (a `.env` file is loaded first, see `core/env.py`)
- an external YAML file via `SPOTSHARE_CONFIG_PATH`

Design rule:
- Policy knobs (delay window, distance range, poll interval) live in YAML, not in store code.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from spotshare.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `spotshare.config`."""
    text = resources.files("spotshare.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "SpotShare"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class BackendTables(BaseModel):
    spots: str = "parking_spots"
    locations: str = "locations"
    profiles: str = "profiles"


class BackendSettings(BaseModel):
    kind: Literal["memory", "supabase"] = "memory"
    url: str | None = None
    anon_key: str | None = None
    tables: BackendTables = Field(default_factory=BackendTables)

    @model_validator(mode="after")
    def _require_credentials(self) -> "BackendSettings":
        if self.kind == "supabase" and (not self.url or not self.anon_key):
            raise ValueError("backend.kind=supabase requires backend.url and backend.anon_key")
        return self


class VisibilitySettings(BaseModel):
    delay_window_ms: int = Field(60_000, ge=0)
    default_distance_km: float = Field(1.0, gt=0)
    min_distance_km: float = Field(0.1, gt=0)
    max_distance_km: float = Field(50.0, gt=0)

    @model_validator(mode="after")
    def _validate_range(self) -> "VisibilitySettings":
        if self.min_distance_km > self.max_distance_km:
            raise ValueError("visibility.min_distance_km must not exceed visibility.max_distance_km")
        if not self.min_distance_km <= self.default_distance_km <= self.max_distance_km:
            raise ValueError("visibility.default_distance_km must lie within [min_distance_km, max_distance_km]")
        return self


class FeedSettings(BaseModel):
    poll_interval_seconds: float = Field(2.0, gt=0)
    dedupe_by_id: bool = False


class GeolocationSettings(BaseModel):
    timeout_seconds: float = Field(10.0, gt=0)


class NavigationSettings(BaseModel):
    directions_url_template: str = (
        "https://www.google.com/maps/dir/{origin_lat},{origin_lon}/{dest_lat},{dest_lon}"
    )


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    visibility: VisibilitySettings = Field(default_factory=VisibilitySettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)
    geolocation: GeolocationSettings = Field(default_factory=GeolocationSettings)
    navigation: NavigationSettings = Field(default_factory=NavigationSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("SPOTSHARE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    backend_kind = os.getenv("SPOTSHARE_BACKEND")
    if backend_kind:
        data.setdefault("backend", {})["kind"] = backend_kind

    url = os.getenv("SUPABASE_URL")
    anon_key = os.getenv("SUPABASE_ANON_KEY")
    if url:
        data.setdefault("backend", {})["url"] = url
    if anon_key:
        data.setdefault("backend", {})["anon_key"] = anon_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("SPOTSHARE_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
