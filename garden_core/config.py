# =============================================================================
# garden_core/config.py
# Runtime Settings for Garden Core
# =============================================================================
"""
Settings are read once at process start and threaded through explicitly.

Lookup order for each value:
1. .streamlit/secrets.toml ([supabase] url / key, [garden] everything else)
2. Environment variables (a .env file is loaded first if present)
3. Built-in defaults
"""

from __future__ import annotations
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from garden_core.errors import ConfigurationError
from garden_core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SECRETS_PATH = Path(".streamlit") / "secrets.toml"
DEFAULT_LOCAL_DB_PATH = Path("local_data") / "garden.db"
DEFAULT_CACHE_NAMESPACE = "@garden"
DEFAULT_REMOTE_TIMEOUT = 5.0


@dataclass
class Settings:
    """Connection and runtime settings."""
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    local_db_path: Path = DEFAULT_LOCAL_DB_PATH
    cache_namespace: str = DEFAULT_CACHE_NAMESPACE
    remote_timeout_seconds: float = DEFAULT_REMOTE_TIMEOUT
    log_level: str = "INFO"
    log_to_file: bool = False

    @property
    def has_remote(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def require_remote(self) -> None:
        """Raise ConfigurationError unless Supabase credentials are present."""
        if not self.supabase_url:
            raise ConfigurationError(
                "Supabase URL is not configured", config_key="SUPABASE_URL"
            )
        if not self.supabase_key:
            raise ConfigurationError(
                "Supabase key is not configured", config_key="SUPABASE_KEY"
            )


def load_secrets_toml(secrets_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load .streamlit/secrets.toml, returning {} when the file is absent."""
    secrets_path = secrets_path or DEFAULT_SECRETS_PATH

    if not secrets_path.exists():
        return {}

    try:
        with open(secrets_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(
            f"Could not parse {secrets_path}: {e}", config_key=str(secrets_path)
        ) from e


def _parse_timeout(raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Remote timeout must be a number, got {raw!r}",
            config_key="GARDEN_REMOTE_TIMEOUT",
        ) from e
    if value <= 0:
        raise ConfigurationError(
            f"Remote timeout must be positive, got {value}",
            config_key="GARDEN_REMOTE_TIMEOUT",
        )
    return value


def _parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


def load_settings(
    secrets_path: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> Settings:
    """
    Build Settings from secrets.toml and the environment.

    Args:
        secrets_path: Override for the secrets file location
        env: Mapping to read instead of os.environ (tests pass a dict)

    Returns:
        Populated Settings

    Raises:
        ConfigurationError: If a value is present but invalid
    """
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    secrets = load_secrets_toml(secrets_path)
    supabase = secrets.get("supabase", {})
    garden = secrets.get("garden", {})

    url = supabase.get("url") or env.get("SUPABASE_URL")
    key = supabase.get("key") or env.get("SUPABASE_KEY")

    db_path = garden.get("local_db_path") or env.get("GARDEN_LOCAL_DB")
    timeout = garden.get("remote_timeout_seconds") or env.get("GARDEN_REMOTE_TIMEOUT")
    log_level = garden.get("log_level") or env.get("GARDEN_LOG_LEVEL") or "INFO"
    log_to_file = garden.get("log_to_file", env.get("GARDEN_LOG_TO_FILE", False))

    settings = Settings(
        supabase_url=url,
        supabase_key=key,
        local_db_path=Path(db_path) if db_path else DEFAULT_LOCAL_DB_PATH,
        cache_namespace=garden.get("cache_namespace", DEFAULT_CACHE_NAMESPACE),
        remote_timeout_seconds=_parse_timeout(timeout) if timeout is not None else DEFAULT_REMOTE_TIMEOUT,
        log_level=str(log_level).upper(),
        log_to_file=_parse_bool(log_to_file),
    )

    if not settings.has_remote:
        logger.warning("Supabase credentials not found; running against the local cache only")

    return settings
