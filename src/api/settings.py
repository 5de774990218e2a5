from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - ADMIN_TOKEN: shared secret for the admin API (required for admin routes)
    - KV_REST_API_URL: base URL of the REST key-value service (optional)
    - KV_REST_API_TOKEN: bearer token for the key-value service (optional)
    - KV_ANNOUNCEMENTS_KEY: key holding the collection. Default 'announcements'
    - KV_TIMEOUT_SECONDS: timeout for key-value calls. Default 5
    - ANNOUNCEMENTS_FILE: path to the JSON file. Default './data/announcements.json'
    - EPHEMERAL_FILESYSTEM: 'true' to keep announcements in memory instead of on disk.
      Auto-detected on serverless platforms (VERCEL, AWS_LAMBDA_FUNCTION_NAME) when unset.
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: loguru level. Default 'INFO'
    - LOG_JSON: 'true' to emit serialized JSON log lines (default: false)
    """

    admin_token: Optional[str]
    kv_rest_api_url: Optional[str]
    kv_rest_api_token: Optional[str]
    kv_announcements_key: str
    kv_timeout_seconds: float
    announcements_file: str
    ephemeral_filesystem: bool
    cors_allow_origins: List[str]
    log_level: str
    log_json: bool

    @property
    def kv_configured(self) -> bool:
        """True when both key-value connection credentials are present."""
        return bool(self.kv_rest_api_url and self.kv_rest_api_token)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _get_optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _detect_ephemeral_filesystem() -> bool:
    explicit = os.getenv("EPHEMERAL_FILESYSTEM")
    if explicit is not None and explicit.strip() != "":
        return _parse_bool(explicit, False)
    # Serverless runtimes mount a read-only or per-invocation filesystem
    return bool(os.getenv("VERCEL") or os.getenv("AWS_LAMBDA_FUNCTION_NAME"))


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    return Settings(
        admin_token=_get_optional("ADMIN_TOKEN"),
        kv_rest_api_url=_get_optional("KV_REST_API_URL"),
        kv_rest_api_token=_get_optional("KV_REST_API_TOKEN"),
        kv_announcements_key=_get_env("KV_ANNOUNCEMENTS_KEY", "announcements").strip(),
        kv_timeout_seconds=_parse_float(_get_env("KV_TIMEOUT_SECONDS", "5"), 5.0),
        announcements_file=_get_env("ANNOUNCEMENTS_FILE", "./data/announcements.json").strip(),
        ephemeral_filesystem=_detect_ephemeral_filesystem(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=log_level,
        log_json=_parse_bool(_get_env("LOG_JSON", "false"), False),
    )
