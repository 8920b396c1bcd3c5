#!/usr/bin/env python3
"""Configuration management for the Geyser accounts sink.

This module provides a type-safe, immutable configuration dataclass with
validation. Configuration is loaded once from a JSON file when the validator
loads the plugin and is shared read-only by every update afterwards.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, ClassVar
from urllib.parse import urlparse

from .models import FixedKey32
from .utils.identity_codec import DecodeError, decode, encode

# Get logger for this module
logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Base class for configuration failures."""


class ConfigIOError(ConfigError):
    """The configuration file could not be read."""


class ConfigParseError(ConfigError):
    """The configuration file is malformed or has invalid values."""


class InvalidIdentityError(ConfigError):
    """A configured program id is not a valid 32-byte base58 key."""


@dataclass(frozen=True, slots=True)
class SinkConfig:
    """Main configuration for the accounts sink.

    Attributes:
        endpoint: PostgREST base URL of the remote store (``supabase_url``)
        credential: API key sent with every request (``supabase_key``)
        allowed_programs: Decoded program ids whose accounts are forwarded
        request_timeout: HTTP request timeout in seconds
        max_connections: Upper bound of the shared connection pool
    """

    endpoint: str
    credential: str = field(repr=False)
    allowed_programs: frozenset[FixedKey32] = frozenset()
    request_timeout: float = 10.0
    max_connections: int = 10

    ENDPOINT_KEY: ClassVar[str] = "supabase_url"
    CREDENTIAL_KEY: ClassVar[str] = "supabase_key"
    PROGRAMS_KEY: ClassVar[str] = "programs"

    def __post_init__(self) -> None:
        """Validate sink configuration."""
        if not self.endpoint:
            raise ConfigParseError(f"Endpoint URL is required ({self.ENDPOINT_KEY})")

        parsed = urlparse(self.endpoint)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ConfigParseError(
                f"Invalid endpoint URL: {self.endpoint}. "
                "Expected an http or https URL"
            )

        if not self.credential:
            raise ConfigParseError(f"Credential is required ({self.CREDENTIAL_KEY})")

        if any(len(program) != 32 for program in self.allowed_programs):
            raise InvalidIdentityError("Allowed programs must be 32-byte keys")

        if not math.isfinite(self.request_timeout):
            raise ConfigParseError(f"Request timeout must be a finite number, got {self.request_timeout}")
        if self.request_timeout <= 0:
            raise ConfigParseError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ConfigParseError(f"Request timeout too long (max 120s), got {self.request_timeout}")

        if self.max_connections < 1:
            raise ConfigParseError(f"Max connections must be at least 1, got {self.max_connections}")
        if self.max_connections > 100:
            raise ConfigParseError(f"Max connections too high (max 100), got {self.max_connections}")

    @classmethod
    def load(cls, config_path: str) -> "SinkConfig":
        """Load configuration from a JSON file.

        Args:
            config_path: Path of the plugin configuration file

        Returns:
            SinkConfig instance with decoded program ids

        Raises:
            ConfigIOError: If the file cannot be read
            ConfigParseError: If the file is not valid JSON or a field is missing or invalid
            InvalidIdentityError: If a configured program is not a valid identity
        """
        try:
            with open(config_path, encoding="utf-8") as f:
                contents = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigIOError(f"Cannot read config file {config_path}: {e}") from e

        try:
            raw: Any = json.loads(contents)
        except json.JSONDecodeError as e:
            raise ConfigParseError(f"Config file {config_path} is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigParseError("Config file must contain a JSON object")

        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SinkConfig":
        """Build a configuration from an already parsed JSON object."""
        endpoint = cls._require_str(raw, cls.ENDPOINT_KEY)
        credential = cls._require_str(raw, cls.CREDENTIAL_KEY)

        programs = raw.get(cls.PROGRAMS_KEY)
        if programs is None:
            programs = []
        if not isinstance(programs, list):
            raise ConfigParseError(f"'{cls.PROGRAMS_KEY}' must be a list of base58 strings")

        allowed: set[FixedKey32] = set()
        for program in programs:
            try:
                allowed.add(decode(program))
            except DecodeError as e:
                raise InvalidIdentityError(f"Invalid program id in config: {e}") from e

        options: dict[str, Any] = {}
        if "request_timeout" in raw:
            timeout = raw["request_timeout"]
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
                raise ConfigParseError(f"'request_timeout' must be a number, got {timeout!r}")
            options["request_timeout"] = float(timeout)
        if "max_connections" in raw:
            max_connections = raw["max_connections"]
            if isinstance(max_connections, bool) or not isinstance(max_connections, int):
                raise ConfigParseError(f"'max_connections' must be an integer, got {max_connections!r}")
            options["max_connections"] = max_connections

        return cls(
            endpoint=endpoint,
            credential=credential,
            allowed_programs=frozenset(allowed),
            **options
        )

    @staticmethod
    def _require_str(raw: dict[str, Any], key: str) -> str:
        value = raw.get(key)
        if not isinstance(value, str) or not value:
            raise ConfigParseError(f"'{key}' is required and must be a non-empty string")
        return value

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Geyser Sink Configuration")
        logger.info("=" * 60)

        logger.info("Remote Store:")
        logger.info(f"  Endpoint: {self.endpoint}")
        logger.info("  Credential: [CONFIGURED]")
        logger.info(f"  Request Timeout: {self.request_timeout} seconds")
        logger.info(f"  Max Connections: {self.max_connections}")

        logger.info("Programs:")
        if not self.allowed_programs:
            logger.warning("  (none) - no accounts will be forwarded")
        for program in sorted(self.allowed_programs):
            logger.info(f"  {encode(program)}")

        logger.info("=" * 60)
