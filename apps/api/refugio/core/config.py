import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "y", "on"}


def _csv(val: str | None, default: list[str]) -> list[str]:
    if not val:
        return default
    return [v.strip() for v in val.split(",") if v.strip()]


def _float(val: str | None, default: float) -> float:
    if not val:
        return default
    return float(val)


@dataclass(frozen=True)
class Settings:
    env: str = os.getenv("ENV", "local")

    # sql | supabase | local; one backing per process, never mixed
    data_backend: str = os.getenv("DATA_BACKEND", "sql")
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./refugio.db")
    supabase_url: str | None = os.getenv("SUPABASE_URL") or None
    supabase_key: str | None = os.getenv("SUPABASE_KEY") or None

    # Local fallback store
    local_store_backend: str = os.getenv("LOCAL_STORE_BACKEND", "file")
    local_store_root: str = os.getenv("LOCAL_STORE_ROOT", "./local_data")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Realtime
    realtime_reconnect_delay: float = _float(os.getenv("REALTIME_RECONNECT_DELAY"), 3.0)
    realtime_resubscribe_delay: float = _float(os.getenv("REALTIME_RESUBSCRIBE_DELAY"), 1.0)

    # Auth collaborator
    auth_mode: str = os.getenv("AUTH_MODE", "dev")
    dev_auth_prefix: str = os.getenv("DEV_AUTH_PREFIX", "dev_")
    jwt_secret: str | None = os.getenv("JWT_SECRET") or None
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "authenticated")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")

    # RSVP
    rsvp_max_guests: int = int(os.getenv("RSVP_MAX_GUESTS", "10"))

    cors_allow_origins: list[str] = field(
        default_factory=lambda: _csv(
            os.getenv("CORS_ALLOW_ORIGINS"),
            default=["http://localhost:3000", "http://localhost:5173"],
        )
    )

    security_headers_enabled: bool = _bool(
        os.getenv("SECURITY_HEADERS_ENABLED"),
        default=True,
    )


settings = Settings()
