from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

import pytz

DEFAULT_COLLECTOR_URL = "http://0.0.0.0:3000"
DEFAULT_TZ = "Europe/Berlin"
ENV_PREFIX = "SUNNY_"
SECRETS_SECTION = "sunny"


class ConfigError(ValueError):
    """Raised when a configuration value cannot be used."""


@dataclass(frozen=True)
class DashboardSettings:
    collector_url: str = DEFAULT_COLLECTOR_URL
    timezone: str = DEFAULT_TZ
    request_timeout_s: float = 30.0
    http_retries: int = 0
    poll_interval_s: float = 0.5
    max_workers: int = 4
    log_level: str = "INFO"

    @property
    def tz(self):
        return pytz.timezone(self.timezone)


def _coerce(name: str, caster, raw: Any):
    try:
        return caster(raw)
    except (TypeError, ValueError) as ex:
        raise ConfigError(f"Invalid value for {name!r}: {raw!r}") from ex


def load_settings(
    secrets: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DashboardSettings:
    """
    Build settings from Streamlit secrets, then apply SUNNY_* environment overrides.

    Secrets may hold the keys at top level or inside a [sunny] section.
    """
    secrets = secrets or {}
    environ = os.environ if environ is None else environ

    section = secrets.get(SECRETS_SECTION) if hasattr(secrets, "get") else None
    values: dict[str, Any] = {}
    for f in fields(DashboardSettings):
        if f.name in secrets:
            values[f.name] = secrets[f.name]
        if section is not None and f.name in section:
            values[f.name] = section[f.name]
        env_key = ENV_PREFIX + f.name.upper()
        if env_key in environ:
            values[f.name] = environ[env_key]

    casters = {
        "collector_url": str,
        "timezone": str,
        "request_timeout_s": float,
        "http_retries": int,
        "poll_interval_s": float,
        "max_workers": int,
        "log_level": lambda v: str(v).upper(),
    }
    kwargs = {name: _coerce(name, casters[name], raw) for name, raw in values.items()}

    if "collector_url" in kwargs:
        kwargs["collector_url"] = kwargs["collector_url"].rstrip("/")
    if "timezone" in kwargs:
        try:
            pytz.timezone(kwargs["timezone"])
        except pytz.UnknownTimeZoneError as ex:
            raise ConfigError(f"Unknown time zone: {kwargs['timezone']}") from ex
    if kwargs.get("http_retries", 0) < 0:
        raise ConfigError("http_retries must not be negative")
    if kwargs.get("max_workers", 1) < 1:
        raise ConfigError("max_workers must be at least 1")

    return DashboardSettings(**kwargs)
