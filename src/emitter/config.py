from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


DEFAULT_WILDCARD_KEY = "*"
DEFAULT_ERROR_KEY = "error"
DEFAULT_FAILURE_HISTORY = 100

SETTINGS_FILE_ENV = "EMITTER_SETTINGS_FILE"


class EmitterSettings(BaseModel):
    """Per-bus settings: reserved key names and diagnostics sizing.

    Build one directly, or merge sources with :func:`load_settings`:

        settings = load_settings(file_path="emitter.yaml")
        bus = Emitter(settings)

    Precedence (lowest to highest): defaults < YAML file < environment.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    wildcard_key: str = Field(DEFAULT_WILDCARD_KEY, description="Key whose listeners receive every emission")
    error_key: str = Field(DEFAULT_ERROR_KEY, description="Key whose listeners receive listener failures")
    failure_history: int = Field(
        DEFAULT_FAILURE_HISTORY,
        ge=0,
        description="How many recovered failures a FailureLog keeps (0 disables history)",
    )

    @field_validator("wildcard_key", "error_key")
    @classmethod
    def ensure_key_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("reserved event keys must not be blank")
        return v

    @model_validator(mode="after")
    def ensure_keys_distinct(self) -> "EmitterSettings":
        if self.wildcard_key == self.error_key:
            raise ValueError(f"wildcard_key and error_key must differ (both {self.wildcard_key!r})")
        return self

    # ------------------------ Sources ------------------------
    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        env = os.environ if env is None else env
        mapping = {
            "EMITTER_WILDCARD_KEY": "wildcard_key",
            "EMITTER_ERROR_KEY": "error_key",
            "EMITTER_FAILURE_HISTORY": "failure_history",
        }
        out: Dict[str, Any] = {}
        for env_key, field_name in mapping.items():
            if env.get(env_key, "") != "":
                out[field_name] = env[env_key]
        return out

    @classmethod
    def from_yaml_file(cls, path: Path) -> Dict[str, Any]:
        """Read settings from a YAML document.

        Keys may sit at the top level or under an ``emitter:`` section.
        A missing file yields no overrides.
        """
        if not path.exists():
            logger.debug("Settings file not found: %s", path)
            return {}
        try:
            with path.open("r", encoding="utf-8") as f:
                doc = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to read settings file {path}: {exc}") from exc
        if not isinstance(doc, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping, got {type(doc).__name__}")
        section = doc.get("emitter")
        if isinstance(section, dict):
            doc = section
        logger.debug("Loaded emitter settings from %s", path)
        return {k: v for k, v in doc.items() if not isinstance(v, dict)}


def load_settings(
    *,
    env: Optional[Mapping[str, str]] = None,
    file_path: Optional[Path | str] = None,
) -> EmitterSettings:
    """Merge defaults, an optional YAML file and ``EMITTER_*`` variables."""
    env = os.environ if env is None else env
    data: Dict[str, Any] = {}

    chosen_path: Optional[Path] = None
    if file_path is not None:
        chosen_path = Path(file_path).expanduser()
    elif env.get(SETTINGS_FILE_ENV):
        chosen_path = Path(env[SETTINGS_FILE_ENV]).expanduser()
    if chosen_path is not None:
        data.update(EmitterSettings.from_yaml_file(chosen_path))

    data.update(EmitterSettings.from_env(env))
    try:
        settings = EmitterSettings(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
    logger.info(
        "Emitter settings: wildcard_key=%r error_key=%r failure_history=%d",
        settings.wildcard_key,
        settings.error_key,
        settings.failure_history,
    )
    return settings


__all__ = [
    "DEFAULT_ERROR_KEY",
    "DEFAULT_FAILURE_HISTORY",
    "DEFAULT_WILDCARD_KEY",
    "EmitterSettings",
    "SETTINGS_FILE_ENV",
    "load_settings",
]
