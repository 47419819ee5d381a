"""Configuration management for the users API service."""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml


DEFAULT_PORT = 3001
DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024

_SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*(b|kb|mb|gb)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"b": 1, "kb": 1024, "mb": 1024 ** 2, "gb": 1024 ** 3}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the local SQLite record store."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "users.sqlite3").resolve(strict=False)


def _parse_bool(name: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean value, got {value!r}")


def _parse_int(name: str, value: object) -> int:
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def parse_size(name: str, value: object) -> int:
    """Parse byte sizes such as ``1048576``, ``512kb`` or ``10mb``."""

    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = _SIZE_PATTERN.match(str(value))
    if match is None:
        raise ValueError(f"{name} must be a size such as 1048576 or 10mb, got {value!r}")
    amount, unit = match.groups()
    return int(amount) * _SIZE_UNITS[(unit or "b").lower()]


@dataclass(frozen=True)
class Settings:
    """Process-wide settings populated once at start-up."""

    port: int = DEFAULT_PORT
    cors_origin: str = "*"
    trust_proxy: bool = True
    trusted_proxies: str = "*"
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    host: str = "0.0.0.0"
    environment: str = "development"
    store_backend: str = "supabase"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    database_path: Path = resolve_database_path(None)

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    def validate_store(self) -> None:
        """Ensure the selected record store has everything it needs."""

        if self.store_backend == "supabase":
            if not self.supabase_url or not self.supabase_key:
                raise ValueError(
                    "Missing Supabase configuration. Set SUPABASE_URL and SUPABASE_ANON_KEY,"
                    " or select STORE_BACKEND=sqlite for a local database."
                )
        elif self.store_backend != "sqlite":
            raise ValueError(f"Unknown store backend '{self.store_backend}'")

    @staticmethod
    def from_dict(data: Mapping[str, object], base: "Settings | None" = None) -> "Settings":
        """Overlay raw configuration values onto ``base`` (or the defaults)."""

        settings = base or Settings()
        known = {field.name for field in fields(Settings)}
        unknown = set(data.keys()) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        updates: Dict[str, object] = {}
        for key, value in data.items():
            if value is None:
                continue
            if key == "port":
                updates[key] = _parse_int(key, value)
            elif key == "max_body_bytes":
                updates[key] = parse_size(key, value)
            elif key == "trust_proxy":
                updates[key] = _parse_bool(key, value)
            elif key == "database_path":
                updates[key] = resolve_database_path(str(value))
            elif key == "store_backend":
                updates[key] = str(value).strip().lower()
            else:
                updates[key] = str(value)
        return replace(settings, **updates)


_ENVIRONMENT_KEYS = (
    ("PORT", "port"),
    ("HOST", "host"),
    ("FRONTEND_URL", "cors_origin"),
    ("TRUST_PROXY", "trust_proxy"),
    ("TRUSTED_PROXIES", "trusted_proxies"),
    ("MAX_BODY_BYTES", "max_body_bytes"),
    ("NODE_ENV", "environment"),
    ("APP_ENV", "environment"),
    ("STORE_BACKEND", "store_backend"),
    ("SUPABASE_URL", "supabase_url"),
    ("SUPABASE_KEY", "supabase_key"),
    ("SUPABASE_ANON_KEY", "supabase_key"),
    ("USERS_DB_PATH", "database_path"),
)


def _load_config_file(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return raw


def load_settings(
    environ: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> Settings:
    """Build :class:`Settings` from defaults, an optional YAML file and the environment."""

    env = os.environ if environ is None else environ
    settings = Settings()

    if config_path is None and env.get("USERS_API_CONFIG"):
        config_path = Path(env["USERS_API_CONFIG"]).expanduser()
    if config_path is not None:
        settings = Settings.from_dict(_load_config_file(config_path), base=settings)

    overrides: Dict[str, object] = {}
    for variable, key in _ENVIRONMENT_KEYS:
        value = env.get(variable)
        if value is None or value.strip() == "":
            continue
        if key in {"port", "trust_proxy", "max_body_bytes"}:
            # Report the environment variable rather than the field name.
            try:
                Settings.from_dict({key: value})
            except ValueError as exc:
                raise ValueError(f"Invalid value for {variable}: {exc}") from exc
        overrides[key] = value

    return Settings.from_dict(overrides, base=settings)


__all__ = ["Settings", "load_settings", "parse_size", "resolve_database_path"]
