"""
cfg-file/arg-parse/click is overkill for the few things that need to be configured.
k8s makes it trivial to define env-vars so we'll just use that.
"""

import os
from dataclasses import dataclass
from typing import Mapping

from util.const import LEGACY_TLS_CIPHERS, LogLevel


class ConfigError(ValueError):
    """Bad or missing env-var."""


@dataclass(frozen=True)
class Settings:
    modem_host: str
    modem_password: str
    modem_username: str = "admin"
    modem_scheme: str = "https"
    # default prometheus_client implementation does not support setting the path, only the port.
    metrics_port: int = 9143
    poll_interval_seconds: int = 60
    request_timeout_seconds: int = 30
    tls_ciphers: str | None = LEGACY_TLS_CIPHERS
    log_level: LogLevel = LogLevel.INFO

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        # Password defaults to the last 8 digits of the SN; impossible to guess so require user provides
        password = env.get("MODEM_PASSWORD")
        if not password:
            raise ConfigError("MODEM_PASSWORD must be set")

        scheme = env.get("MODEM_SCHEME", "https").lower()
        if scheme not in ("http", "https"):
            raise ConfigError(f"MODEM_SCHEME must be http or https, not {scheme!r}")

        level_name = env.get("LOG_LEVEL", "INFO").upper()
        if level_name not in LogLevel.__members__:
            raise ConfigError(f"LOG_LEVEL must be one of {', '.join(LogLevel.__members__)}")

        return cls(
            modem_host=env.get("MODEM_HOST", "192.168.100.1"),
            modem_password=password,
            # support docs don't indicate that the username _can_ be changed
            modem_username=env.get("MODEM_USERNAME", "admin"),
            modem_scheme=scheme,
            metrics_port=_positive_int(env, "METRICS_PORT", 9143),
            poll_interval_seconds=_positive_int(env, "METRICS_POLL_INTERVAL_SECONDS", 60),
            request_timeout_seconds=_positive_int(env, "REQUEST_TIMEOUT_SECONDS", 30),
            # Empty string means "let openssl pick"
            tls_ciphers=env.get("MODEM_TLS_CIPHERS", LEGACY_TLS_CIPHERS) or None,
            log_level=LogLevel[level_name],
        )


def _positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, not {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{key} must be positive, not {value}")
    return value
