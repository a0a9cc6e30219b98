from dotenv import load_dotenv
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging
import os

import yaml

from a11y_audit.constants import (
    DEFAULT_MAX_CONCURRENT_CHECKS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_REQUEST_DELAY_SECONDS,
    DEFAULT_BATCH_DELAY_MULTIPLIER,
    DEFAULT_PAGE_TIMEOUT_SECONDS,
    DEFAULT_PAGE_WAIT_SECONDS,
    DEFAULT_NAVIGATION_TIMEOUT_SECONDS,
    DEFAULT_MAX_RETRIES,
    INITIAL_RETRY_DELAY_SECONDS,
    RETRY_DELAY_MULTIPLIER,
    MAX_RETRY_DELAY_SECONDS,
    RETRY_JITTER_MAX_SECONDS,
    SITEMAP_FETCH_RETRIES,
    SITEMAP_RETRY_DELAY_SECONDS,
    DEFAULT_AXE_SOURCE,
)

load_dotenv()  # Loads variables from .env file

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class AuditConfig:
    """Tunables for an audit run.

    Read once at startup and never mutated afterwards. Use
    ``dataclasses.replace`` (or ``with_overrides``) to derive a new snapshot.
    All durations are in seconds.
    """
    max_concurrent: int = DEFAULT_MAX_CONCURRENT_CHECKS
    batch_size: int = DEFAULT_BATCH_SIZE
    request_delay: float = DEFAULT_REQUEST_DELAY_SECONDS
    batch_delay_multiplier: float = DEFAULT_BATCH_DELAY_MULTIPLIER

    page_timeout: float = DEFAULT_PAGE_TIMEOUT_SECONDS
    page_wait: float = DEFAULT_PAGE_WAIT_SECONDS
    navigation_timeout: float = DEFAULT_NAVIGATION_TIMEOUT_SECONDS

    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = INITIAL_RETRY_DELAY_SECONDS
    retry_multiplier: float = RETRY_DELAY_MULTIPLIER
    max_retry_delay: float = MAX_RETRY_DELAY_SECONDS
    retry_jitter: float = RETRY_JITTER_MAX_SECONDS

    sitemap_fetch_retries: int = SITEMAP_FETCH_RETRIES
    sitemap_retry_delay: float = SITEMAP_RETRY_DELAY_SECONDS

    headless: bool = True
    axe_source: str = DEFAULT_AXE_SOURCE

    # Environment variable for each field
    ENV_VARS = {
        "max_concurrent": "A11Y_MAX_CONCURRENT",
        "batch_size": "A11Y_BATCH_SIZE",
        "request_delay": "A11Y_REQUEST_DELAY",
        "batch_delay_multiplier": "A11Y_BATCH_DELAY_MULTIPLIER",
        "page_timeout": "A11Y_PAGE_TIMEOUT",
        "page_wait": "A11Y_PAGE_WAIT",
        "navigation_timeout": "A11Y_NAV_TIMEOUT",
        "max_retries": "A11Y_MAX_RETRIES",
        "retry_delay": "A11Y_RETRY_DELAY",
        "retry_multiplier": "A11Y_RETRY_MULTIPLIER",
        "max_retry_delay": "A11Y_MAX_RETRY_DELAY",
        "retry_jitter": "A11Y_RETRY_JITTER",
        "sitemap_fetch_retries": "A11Y_SITEMAP_RETRIES",
        "sitemap_retry_delay": "A11Y_SITEMAP_RETRY_DELAY",
        "headless": "A11Y_HEADLESS",
        "axe_source": "A11Y_AXE_SOURCE",
    }

    @property
    def batch_delay(self) -> float:
        """Pause inserted between two batches."""
        return self.request_delay * self.batch_delay_multiplier

    @classmethod
    def from_env(cls) -> "AuditConfig":
        """Load configuration from environment variables.

        Values that cannot be converted keep their default.

        Returns:
            AuditConfig: Configuration instance with values from environment
        """
        values: Dict[str, Any] = {}

        for f in fields(cls):
            env_key = cls.ENV_VARS.get(f.name)
            if env_key is None:
                continue
            env_value = os.getenv(env_key)
            if env_value is None or env_value.strip() == "":
                continue

            try:
                values[f.name] = _convert(env_value, f.type)
            except ValueError:
                logger.warning(f"Ignoring invalid value for {env_key}: {env_value!r}")

        return cls(**values)

    @classmethod
    def from_file(cls, path: str, base: Optional["AuditConfig"] = None) -> "AuditConfig":
        """Load configuration from a YAML or JSON file.

        The file may hold the settings at top level or under an ``audit`` key.
        Unknown keys are ignored.

        Args:
            path: Path to a .yaml/.yml or .json file
            base: Configuration whose values are overridden (defaults if None)

        Returns:
            AuditConfig with values from file
        """
        config = base or cls()
        file_path = Path(path)

        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(file_path, "r") as f:
            if file_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)

        data = data or {}
        settings = data.get("audit", data)

        known = {f.name: f.type for f in fields(cls)}
        overrides = {}
        for key, value in settings.items():
            if key not in known:
                logger.debug(f"Ignoring unknown config key: {key}")
                continue
            overrides[key] = _convert(value, known[key]) if isinstance(value, str) else value

        return replace(config, **overrides)

    @classmethod
    def reliable(cls) -> "AuditConfig":
        """Preset trading speed for stability on fragile servers."""
        return cls(
            max_concurrent=1,
            batch_size=3,
            request_delay=3.0,
            page_timeout=90.0,
            page_wait=3.0,
            max_retries=5,
            retry_delay=10.0,
        )

    def with_overrides(self, **overrides: Any) -> "AuditConfig":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return replace(self, **changes)

    def validate(self) -> "AuditConfig":
        """Check value ranges.

        Returns:
            The same configuration, for chaining

        Raises:
            ValueError: If a value is out of range
        """
        for name in ("max_concurrent", "batch_size", "max_retries"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

        for name in (
            "request_delay",
            "page_wait",
            "retry_delay",
            "max_retry_delay",
            "retry_jitter",
            "sitemap_retry_delay",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

        if self.sitemap_fetch_retries < 0:
            raise ValueError("sitemap_fetch_retries must not be negative")
        if self.page_timeout <= 0 or self.navigation_timeout <= 0:
            raise ValueError("timeouts must be positive")
        if self.retry_multiplier < 1:
            raise ValueError("retry_multiplier must be at least 1")
        if self.batch_delay_multiplier < 0:
            raise ValueError("batch_delay_multiplier must not be negative")

        return self

    def to_dict(self) -> dict:
        """Convert configuration to dictionary.

        Returns:
            Dictionary of all configuration values
        """
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _convert(value: str, field_type: Any) -> Any:
    """Convert a raw string to the type of a config field."""
    value = value.strip()
    if field_type is bool:
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"Not a boolean: {value}")
    if field_type is int:
        return int(value)
    if field_type is float:
        return float(value)
    return value
