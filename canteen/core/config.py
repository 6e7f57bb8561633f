"""Application configuration."""

from dataclasses import dataclass
from os import getenv

from pydantic import BaseModel
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from canteen.core.errors import ConfigurationError

PLACEHOLDER_SERVICE_URL = "your_service_url_here"
PLACEHOLDER_ANON_KEY = "your_anon_key_here"
SUPPORTED_SCHEMES: tuple[str, ...] = ("postgresql", "sqlite")


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Forester Canteen"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    service_url: str = getenv("CANTEEN_SERVICE_URL", "")
    anon_key: str = getenv("CANTEEN_ANON_KEY", "")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "60"))
    session_secret: str = getenv("SESSION_SECRET", "dev-session-secret-change-me")
    session_restore_timeout_seconds: float = float(getenv("SESSION_RESTORE_TIMEOUT_SECONDS", "10"))
    recent_updates_limit: int = int(getenv("RECENT_UPDATES_LIMIT", "10"))
    seed_menu: bool = getenv("SEED_MENU", "1") == "1"


@dataclass(frozen=True)
class ConnectionConfig:
    """Validated connection parameters for the data service."""

    service_url: str
    anon_key: str


def load_connection_config(source: Settings) -> ConnectionConfig:
    """Validate service URL and anonymous key before any data access.

    Raises:
        ConfigurationError: when a value is missing, still a placeholder, or the
            URL cannot be parsed or uses an unsupported scheme.
    """
    service_url = (source.service_url or "").strip()
    anon_key = (source.anon_key or "").strip()

    if not service_url or service_url == PLACEHOLDER_SERVICE_URL:
        raise ConfigurationError("CANTEEN_SERVICE_URL is not set.")
    if not anon_key or anon_key == PLACEHOLDER_ANON_KEY:
        raise ConfigurationError("CANTEEN_ANON_KEY is not set.")

    try:
        url = make_url(service_url)
    except ArgumentError as exc:
        raise ConfigurationError(f"CANTEEN_SERVICE_URL is malformed: {exc}") from exc

    backend = url.get_backend_name()
    if backend not in SUPPORTED_SCHEMES:
        raise ConfigurationError(
            f"CANTEEN_SERVICE_URL scheme {url.drivername!r} is not supported; "
            f"use one of: {', '.join(SUPPORTED_SCHEMES)}."
        )
    return ConnectionConfig(service_url=service_url, anon_key=anon_key)


settings: Settings = Settings()
