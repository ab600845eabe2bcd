"""Configuration management for MemoryRelay.

Configuration can come from three places:
- The host plugin config (a dict using camelCase keys)
- A memoryrelay.toml file
- MEMORYRELAY_* environment variables (fallback for credentials)

Example memoryrelay.toml structure:

    api_key = "${MEMORYRELAY_API_KEY}"
    agent_id = "my-agent"
    auto_recall = true
    auto_capture = true

    [circuit_breaker]
    max_failures = 3
    reset_timeout_ms = 60000

    [retry]
    max_retries = 3
    base_delay_ms = 1000

The host plugin config uses the same options in camelCase
(apiKey, agentId, circuitBreaker.maxFailures, ...).
"""

from __future__ import annotations

import logging
import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from .errors import ConfigError

DEFAULT_API_URL = "https://api.memoryrelay.net"
CONFIG_FILENAME = "memoryrelay.toml"

ENV_API_KEY = "MEMORYRELAY_API_KEY"
ENV_AGENT_ID = "MEMORYRELAY_AGENT_ID"
ENV_API_URL = "MEMORYRELAY_API_URL"


def _load_env_file(env_path: Path) -> None:
    """Load environment variables from .env file."""
    if not env_path.exists():
        return

    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue

                if "=" in line:
                    key, _, value = line.partition("=")
                    key = key.strip()
                    value = value.strip()

                    if value and value[0] in ('"', "'") and value[-1] == value[0]:
                        value = value[1:-1]

                    # Only set if not already in environment
                    if key and key not in os.environ:
                        os.environ[key] = value
    except OSError as e:
        logging.warning("[memoryrelay] Failed to load .env file %s: %s", env_path, e)


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${VAR} and $VAR environment variable references."""
    if isinstance(value, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        pattern = r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)"
        return re.sub(pattern, replace_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


def _camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _normalize_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Convert camelCase keys (host plugin config) to snake_case, recursively."""
    out: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, Mapping):
            value = _normalize_keys(value)
        out[_camel_to_snake(key)] = value
    return out


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker settings."""

    enabled: bool = True
    max_failures: int = 3
    reset_timeout_ms: int = 60000


@dataclass
class RetryConfig:
    """Retry settings.

    Attributes:
        enabled: Retry transient failures
        max_retries: Extra attempts after the first one
        base_delay_ms: Delay after the first failure, doubled each retry
    """

    enabled: bool = True
    max_retries: int = 3
    base_delay_ms: int = 1000


@dataclass
class EntityExtractionConfig:
    """Entity extraction for auto-capture."""

    enabled: bool = True


@dataclass
class QueryPreprocessingConfig:
    """Query preprocessing for auto-recall."""

    enabled: bool = True


@dataclass
class MemoryRelayConfig:
    """Complete MemoryRelay client configuration."""

    api_key: str = ""
    agent_id: str = ""
    api_url: str = DEFAULT_API_URL

    # Lifecycle hooks
    auto_recall: bool = False
    auto_capture: bool = False
    recall_limit: int = 5
    recall_threshold: float = 0.3

    # Per-request hard timeout
    timeout_ms: int = 30000

    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    entity_extraction: EntityExtractionConfig = field(default_factory=EntityExtractionConfig)
    query_preprocessing: QueryPreprocessingConfig = field(
        default_factory=QueryPreprocessingConfig
    )

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]], *, use_env: bool = True) -> MemoryRelayConfig:
        """Build config from a host plugin config dict.

        Accepts camelCase (apiKey, circuitBreaker.maxFailures) or snake_case keys.
        Missing credentials fall back to MEMORYRELAY_* environment variables
        when ``use_env`` is set. Options set to None use their defaults.

        Raises:
            ConfigError: If a section has the wrong shape or a numeric option
                is not a number
        """
        data = _normalize_keys(raw or {})
        config = cls()

        config.api_key = data.get("api_key") or (os.getenv(ENV_API_KEY, "") if use_env else "")
        config.agent_id = data.get("agent_id") or (os.getenv(ENV_AGENT_ID, "") if use_env else "")
        config.api_url = (
            data.get("api_url")
            or (os.getenv(ENV_API_URL) if use_env else None)
            or DEFAULT_API_URL
        )

        config.auto_recall = bool(data.get("auto_recall", False))
        config.auto_capture = bool(data.get("auto_capture", False))
        config.recall_limit = _int(data, "recall_limit", 5)
        config.recall_threshold = _float(data, "recall_threshold", 0.3)
        config.timeout_ms = _int(data, "timeout_ms", 30000)

        cb = _section(data, "circuit_breaker")
        config.circuit_breaker = CircuitBreakerConfig(
            enabled=bool(cb.get("enabled", True)),
            max_failures=_int(cb, "max_failures", 3),
            reset_timeout_ms=_int(cb, "reset_timeout_ms", 60000),
        )

        retry = _section(data, "retry")
        config.retry = RetryConfig(
            enabled=bool(retry.get("enabled", True)),
            max_retries=_int(retry, "max_retries", 3),
            base_delay_ms=_int(retry, "base_delay_ms", 1000),
        )

        config.entity_extraction = EntityExtractionConfig(
            enabled=bool(_section(data, "entity_extraction").get("enabled", True))
        )
        config.query_preprocessing = QueryPreprocessingConfig(
            enabled=bool(_section(data, "query_preprocessing").get("enabled", True))
        )

        return config

    @classmethod
    def load(cls, path: Path = Path(CONFIG_FILENAME)) -> MemoryRelayConfig:
        """Load configuration from a memoryrelay.toml file.

        Loads the first .env file found next to the config file, in the current
        working directory, or in a parent directory, then expands ${VAR}
        references. A ``[memoryrelay]`` table, if present, is used as the root.
        A missing file yields environment-only configuration.
        """
        if not path.exists():
            return cls.from_dict({})

        env_search_paths = [
            path.parent / ".env",
            Path.cwd() / ".env",
        ]
        current = path.parent.resolve()
        while current != current.parent:
            env_search_paths.append(current / ".env")
            current = current.parent

        for env_path in env_search_paths:
            if env_path.exists():
                _load_env_file(env_path)
                break

        try:
            raw_data = tomllib.loads(path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to parse {path}: {e}") from e

        data = _expand_env_vars(raw_data)
        if isinstance(data.get("memoryrelay"), dict):
            data = data["memoryrelay"]

        return cls.from_dict(data)

    def validate(self) -> MemoryRelayConfig:
        """Check required fields and ranges.

        Returns:
            self, for chaining

        Raises:
            ConfigError: With a message naming the offending option
        """
        if not self.api_key:
            raise ConfigError(
                f"Missing API key. Set apiKey in the plugin config or {ENV_API_KEY}. "
                "Get your API key from: https://memoryrelay.ai"
            )
        if not self.agent_id:
            raise ConfigError(f"Missing agentId. Set agentId in the plugin config or {ENV_AGENT_ID}.")
        if not self.api_url.startswith(("https://", "http://")):
            raise ConfigError(f"Invalid apiUrl: {self.api_url!r}")
        if not 0.0 <= self.recall_threshold <= 1.0:
            raise ConfigError("recallThreshold must be between 0 and 1")
        if self.recall_limit < 1:
            raise ConfigError("recallLimit must be >= 1")
        if self.circuit_breaker.max_failures < 1:
            raise ConfigError("circuitBreaker.maxFailures must be >= 1")
        if self.circuit_breaker.reset_timeout_ms < 0:
            raise ConfigError("circuitBreaker.resetTimeoutMs must be >= 0")
        if self.retry.max_retries < 0:
            raise ConfigError("retry.maxRetries must be >= 0")
        if self.retry.base_delay_ms < 0:
            raise ConfigError("retry.baseDelayMs must be >= 0")
        if self.timeout_ms <= 0:
            raise ConfigError("timeoutMs must be > 0")
        return self

    @property
    def endpoint(self) -> str:
        """API URL without scheme, for status display."""
        return re.sub(r"^https?://", "", self.api_url).rstrip("/")


def _get(data: Mapping[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    return default if value is None else value


def _int(data: Mapping[str, Any], key: str, default: int) -> int:
    return _convert(int, data, key, default)


def _float(data: Mapping[str, Any], key: str, default: float) -> float:
    return _convert(float, data, key, default)


def _convert(cast, data: Mapping[str, Any], key: str, default: Any) -> Any:
    value = _get(data, key, default)
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{key}' must be a number, got {value!r}") from e


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"'{name}' must be a table, got {type(value).__name__}")
    return value


def load_config(start_dir: Path = Path(".")) -> MemoryRelayConfig:
    """Load configuration, searching up from start_dir for memoryrelay.toml."""
    current = start_dir.resolve()
    while current != current.parent:
        config_path = current / CONFIG_FILENAME
        if config_path.exists():
            return MemoryRelayConfig.load(config_path)
        current = current.parent

    # No config file found, use environment only
    return MemoryRelayConfig.from_dict({})


__all__ = [
    "DEFAULT_API_URL",
    "CircuitBreakerConfig",
    "RetryConfig",
    "EntityExtractionConfig",
    "QueryPreprocessingConfig",
    "MemoryRelayConfig",
    "load_config",
]
