"""Plugin runtime configuration.

Values come from CYNTHIA_PLUGIN_* environment variables and can be
overridden by CLI flags:

    CYNTHIA_PLUGIN_LOG_LEVEL         logging level name (default WARNING)
    CYNTHIA_PLUGIN_RESPONSE_PREFIX   stdout prefix for responses (default "parse: ")
    CYNTHIA_PLUGIN_MAX_CONCURRENCY   requests handled at once (default 16)
    CYNTHIA_PLUGIN_RENDERER          "package.module:callable" content renderer
"""

from __future__ import annotations

import importlib
import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .transport.sink import RESPONSE_PREFIX

ENV_PREFIX = "CYNTHIA_PLUGIN_"

_ENV_FIELDS = {
    "log_level": "LOG_LEVEL",
    "response_prefix": "RESPONSE_PREFIX",
    "max_concurrency": "MAX_CONCURRENCY",
    "renderer": "RENDERER",
}


class ConfigError(ValueError):
    """Configuration value is missing or invalid."""


class PluginConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    log_level: str = "WARNING"
    response_prefix: str = RESPONSE_PREFIX
    max_concurrency: int = Field(default=16, ge=1)
    renderer: str | None = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        name = value.strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"Unknown log level: {value}")
        return name

    @field_validator("renderer")
    @classmethod
    def _renderer_target(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        module, sep, attr = value.strip().partition(":")
        if not sep or not module or not attr:
            raise ValueError(f"Renderer must look like 'package.module:callable', got {value!r}")
        return value.strip()

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> PluginConfig:
        """Build config from environment variables, then apply overrides.

        Overrides whose value is None are ignored, so CLI options that were
        not given fall through to the environment.

        Raises:
            ConfigError: If any value is invalid
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for field, suffix in _ENV_FIELDS.items():
            raw = env.get(f"{ENV_PREFIX}{suffix}")
            if raw is not None and raw != "":
                values[field] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid plugin configuration: {e}") from e


def load_renderer(target_path: str) -> Any:
    """Import a renderer callable from a "package.module:callable" string.

    Raises:
        ConfigError: If the module or attribute cannot be loaded
    """
    module_name, _, attr_path = target_path.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import renderer module {module_name!r}: {e}") from e

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ConfigError(f"Renderer {target_path!r} not found: {e}") from e

    if not callable(target):
        raise ConfigError(f"Renderer {target_path!r} is not callable")
    return target
