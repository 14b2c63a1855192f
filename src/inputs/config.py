# src/inputs/config.py
"""
Configuration loader for the listing tracker.

Goals
-----
- File-first configuration with validation via Pydantic.
- Everything optional: with no file and no environment, defaults apply.
- Minimal environment-variable overrides for CLI convenience.

Supported JSON shape
--------------------
    {
      "db_path": "db.json",
      "log_dir": "logs",
      "fetch": { "render_js": true, "timeout_s": 60, "challenge_wait_s": 60 }
    }

Environment overrides (optional)
--------------------------------
- BUKKEN_DB_PATH          -> AppConfig.db_path
- BUKKEN_LOG_DIR          -> AppConfig.log_dir
- BUKKEN_RENDER           -> AppConfig.fetch.render_js (1/true/yes/on)
- BUKKEN_TIMEOUT_S        -> AppConfig.fetch.timeout_s (float)
- BUKKEN_CHALLENGE_WAIT_S -> AppConfig.fetch.challenge_wait_s (float)

Public API
----------
- class ConfigLoader:
    - load(path: str | Path | None) -> AppConfig
    - load_json(text: str) -> AppConfig
    - with_overrides(cfg, **kwargs) -> AppConfig (non-destructive copies)
- function load_config(path: str | Path | None) -> AppConfig  (convenience)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.schemas.models import FetchPolicy

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}

# ----------------------------
# Pydantic model
# ----------------------------


class AppConfig(BaseModel):
    """
    Full configuration.

    Attributes:
        db_path: JSON collection file.
        log_dir: Directory for the rotating log file.
        fetch:   Retrieval policy for listing pages.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    db_path: Path = Field(Path("db.json"), description="Path of the JSON property collection.")
    log_dir: Path = Field(Path("logs"), description="Directory for logs/bukken.log.")
    fetch: FetchPolicy = Field(default_factory=FetchPolicy)


# ----------------------------
# Loader
# ----------------------------


@dataclass(frozen=True)
class ConfigLoader:
    """
    File-first config loader with light env overrides.

    Default search (when path=None): ./bukken.json; if absent, defaults apply.
    """

    env_prefix: str = "BUKKEN_"
    default_path: str = "bukken.json"

    # ---------- Public API ----------

    def load(self, path: str | Path | None = None) -> AppConfig:
        p = self._resolve_path(path)
        raw = self._read_json_file(p) if p is not None else {}
        cfg = self._parse_root(raw)
        return self._apply_env_overrides(cfg)

    def load_json(self, text: str) -> AppConfig:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON payload: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError("Config root must be a JSON object.")
        cfg = self._parse_root(raw)
        return self._apply_env_overrides(cfg)

    def with_overrides(
        self,
        cfg: AppConfig,
        *,
        db_path: str | Path | None = None,
        render_js: bool | None = None,
        timeout_s: float | None = None,
    ) -> AppConfig:
        """Return a *new* AppConfig with provided non-null overrides applied."""
        updates: dict[str, Any] = {}
        fetch_updates: dict[str, Any] = {}
        if db_path is not None:
            updates["db_path"] = Path(db_path)
        if render_js is not None:
            fetch_updates["render_js"] = render_js
        if timeout_s is not None:
            fetch_updates["timeout_s"] = timeout_s
        return self._updated(cfg, updates, fetch_updates)

    # ---------- Internals ----------

    def _resolve_path(self, path: str | Path | None) -> Path | None:
        if path is not None:
            p = Path(path)
            if not p.exists():
                raise FileNotFoundError(f"Config file not found: {p}")
            return p
        candidate = Path(self.default_path)
        return candidate if candidate.exists() else None

    def _read_json_file(self, p: Path) -> dict[str, Any]:
        if p.suffix.lower() != ".json":
            raise ValueError(f"Unsupported config format for {p.name}; only .json is supported.")
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {p}: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError(f"Config root in {p} must be a JSON object.")
        return cast(dict[str, Any], raw)

    def _parse_root(self, data: dict[str, Any]) -> AppConfig:
        try:
            return AppConfig.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Config validation failed:\n{e}") from e

    def _updated(self, cfg: AppConfig, updates: dict[str, Any], fetch_updates: dict[str, Any]) -> AppConfig:
        if fetch_updates:
            # re-validated so field bounds hold
            merged = {**cfg.fetch.model_dump(), **fetch_updates}
            updates["fetch"] = FetchPolicy.model_validate(merged)
        if not updates:
            return cfg
        return cfg.model_copy(update=updates)

    def _apply_env_overrides(self, cfg: AppConfig) -> AppConfig:
        prefix = self.env_prefix
        updates: dict[str, Any] = {}
        fetch_updates: dict[str, Any] = {}

        db_path = os.getenv(f"{prefix}DB_PATH")
        if db_path:
            updates["db_path"] = Path(db_path)

        log_dir = os.getenv(f"{prefix}LOG_DIR")
        if log_dir:
            updates["log_dir"] = Path(log_dir)

        render = os.getenv(f"{prefix}RENDER")
        if render:
            normalized = render.strip().lower()
            if normalized in _TRUTHY:
                fetch_updates["render_js"] = True
            elif normalized in _FALSY:
                fetch_updates["render_js"] = False

        for env_name, field in (("TIMEOUT_S", "timeout_s"), ("CHALLENGE_WAIT_S", "challenge_wait_s")):
            value = os.getenv(f"{prefix}{env_name}")
            if not value:
                continue
            try:
                seconds = float(value)
            except ValueError:
                # Ignore bad value; keep validated cfg value
                continue
            if seconds > 0 or (field == "challenge_wait_s" and seconds == 0):
                fetch_updates[field] = seconds

        return self._updated(cfg, updates, fetch_updates)


# ----------------------------
# Convenience function
# ----------------------------


def load_config(path: str | Path | None = None) -> AppConfig:
    """Convenience wrapper for one-shot callers."""
    return ConfigLoader().load(path)
