"""Configuration for body capturing.

Configuration precedence (highest to lowest):
1. Explicit parameters (``resolve_config(overrides=...)``)
2. Environment variables (``BODYCAPTURE_REQUEST_LIMIT`` etc.)
3. YAML configuration (``.bodycapture/config.yaml``, ``capture:`` section)
4. Built-in defaults
"""

from __future__ import annotations

import logging
import os
from collections import ChainMap
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError
from .types import (
    ASYNC_TIMEOUT,
    CONSIDER_REQUEST_READ_AFTER_CONTENT_LENGTH,
    DEFAULT_INITIAL_CAPACITY,
    DEFAULT_REQUEST_ENCODING,
    DEFAULT_RESPONSE_ENCODING,
    ENSURE_REQUEST_BODY_CONSUMED,
    INITIAL_REQUEST_CAPACITY,
    INITIAL_REQUEST_CAPACITY_FROM_CONTENT_LENGTH,
    INITIAL_RESPONSE_CAPACITY,
    PARAMETER_NAMES,
    REQUEST_LIMIT,
    RESPONSE_LIMIT,
    UNLIMITED,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "BODYCAPTURE_"
CONFIG_DIR_NAME = ".bodycapture"
CONFIG_FILE_NAME = "config.yaml"
PROJECT_MARKERS = ("pyproject.toml", "setup.py", ".git")


@dataclass
class BodyCaptureConfig:
    initial_request_capacity: int = DEFAULT_INITIAL_CAPACITY
    initial_request_capacity_from_content_length: bool = False
    request_limit: int = UNLIMITED
    consider_request_read_after_content_length: bool = False
    ensure_request_body_consumed: bool = False
    initial_response_capacity: int = DEFAULT_INITIAL_CAPACITY
    response_limit: int = UNLIMITED
    default_request_encoding: str | None = None
    default_response_encoding: str | None = None
    async_timeout: float | None = None

    def __post_init__(self) -> None:
        for name in (INITIAL_REQUEST_CAPACITY, REQUEST_LIMIT, INITIAL_RESPONSE_CAPACITY, RESPONSE_LIMIT):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(name, value, "a non-negative integer")
        if self.async_timeout is not None and not self.async_timeout > 0:
            raise ConfigurationError(ASYNC_TIMEOUT, self.async_timeout, "a positive number of seconds")

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, Any]) -> BodyCaptureConfig:
        """Create a configuration from raw parameter values.

        Values may be strings (as found in environment variables or init
        parameters) or already typed values (as found in YAML files).
        Missing parameters keep their defaults; unknown ones are ignored.

        Raises:
            ConfigurationError: If a value cannot be parsed or is out of range
        """
        return cls(
            initial_request_capacity=read_int_parameter(
                parameters, INITIAL_REQUEST_CAPACITY, DEFAULT_INITIAL_CAPACITY
            ),
            initial_request_capacity_from_content_length=read_bool_parameter(
                parameters, INITIAL_REQUEST_CAPACITY_FROM_CONTENT_LENGTH, False
            ),
            request_limit=read_int_parameter(parameters, REQUEST_LIMIT, UNLIMITED),
            consider_request_read_after_content_length=read_bool_parameter(
                parameters, CONSIDER_REQUEST_READ_AFTER_CONTENT_LENGTH, False
            ),
            ensure_request_body_consumed=read_bool_parameter(parameters, ENSURE_REQUEST_BODY_CONSUMED, False),
            initial_response_capacity=read_int_parameter(
                parameters, INITIAL_RESPONSE_CAPACITY, DEFAULT_INITIAL_CAPACITY
            ),
            response_limit=read_int_parameter(parameters, RESPONSE_LIMIT, UNLIMITED),
            default_request_encoding=parameters.get(DEFAULT_REQUEST_ENCODING) or None,
            default_response_encoding=parameters.get(DEFAULT_RESPONSE_ENCODING) or None,
            async_timeout=read_timeout_parameter(parameters, ASYNC_TIMEOUT),
        )


def read_int_parameter(parameters: Mapping[str, Any], name: str, default: int) -> int:
    raw_value = parameters.get(name)
    if raw_value is None:
        return default
    if isinstance(raw_value, bool):
        raise ConfigurationError(name, raw_value, "a non-negative integer")
    try:
        value = int(raw_value)
    except (TypeError, ValueError):
        raise ConfigurationError(name, raw_value, "a non-negative integer") from None
    if value < 0:
        raise ConfigurationError(name, raw_value, "a non-negative integer")
    return value


def read_bool_parameter(parameters: Mapping[str, Any], name: str, default: bool) -> bool:
    raw_value = parameters.get(name)
    if raw_value is None:
        return default
    if isinstance(raw_value, bool):
        return raw_value
    if raw_value == "true":
        return True
    if raw_value == "false":
        return False
    raise ConfigurationError(name, raw_value, "'true' or 'false'")


def read_timeout_parameter(parameters: Mapping[str, Any], name: str) -> float | None:
    raw_value = parameters.get(name)
    if raw_value is None:
        return None
    if isinstance(raw_value, bool):
        raise ConfigurationError(name, raw_value, "a positive number of seconds")
    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        raise ConfigurationError(name, raw_value, "a positive number of seconds") from None
    if not value > 0:
        raise ConfigurationError(name, raw_value, "a positive number of seconds")
    return value


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` (default: the CWD) to the first directory holding a project marker."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        if any((directory / marker).exists() for marker in PROJECT_MARKERS):
            return directory
    return None


def load_capture_file_config(path: Path | None = None) -> dict[str, Any] | None:
    """Load the ``capture`` section of the YAML configuration file.

    Args:
        path: Explicit file path; defaults to ``.bodycapture/config.yaml`` under the project root

    Returns:
        The ``capture`` mapping, or None if there is no usable file
    """
    if path is None:
        project_root = find_project_root()
        if project_root is None:
            return None
        path = project_root / CONFIG_DIR_NAME / CONFIG_FILE_NAME

    if not path.is_file():
        return None

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config file {path}: {e}")
        return None

    if not isinstance(data, dict):
        return None
    section = data.get("capture")
    if not isinstance(section, dict):
        return None

    logger.debug(f"Loaded capture config from {path}")
    return section


def load_env_parameters(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    environ = os.environ if environ is None else environ
    parameters = {}
    for name in PARAMETER_NAMES:
        value = environ.get(ENV_PREFIX + name.upper())
        if value is not None:
            parameters[name] = value
    return parameters


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> BodyCaptureConfig:
    """Build the effective configuration from all configuration sources."""
    parameters = ChainMap(
        dict(overrides or {}),
        load_env_parameters(environ),
        load_capture_file_config(config_path) or {},
    )
    logger.debug(f"Resolving capture config from parameters: {sorted(parameters)}")
    return BodyCaptureConfig.from_parameters(parameters)
