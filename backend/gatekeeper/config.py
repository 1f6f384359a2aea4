import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, str(default)).strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean value")


def _parse_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc


class Settings(BaseModel):
    app_name: str = Field(default="Gatekeeper")
    debug: bool = Field(default=False)
    database_url: str = Field(default="")
    redis_url: str | None = Field(default=None)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_recycle: int = Field(default=1800)
    db_pool_pre_ping: bool = Field(default=True)
    cascade_deletes: bool = Field(default=True)
    bulk_atomic: bool = Field(default=False)
    default_per_page: int = Field(default=20)
    max_per_page: int = Field(default=100)
    lock_ttl_seconds: int = Field(default=30)
    lock_wait_seconds: float = Field(default=10.0)

    @classmethod
    def from_env(cls) -> "Settings":
        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL environment variable must be set")

        parsed_db = urlparse(database_url)
        if parsed_db.scheme != "postgresql+asyncpg":
            raise ValueError("DATABASE_URL must start with 'postgresql+asyncpg://'")
        if not parsed_db.hostname:
            raise ValueError("DATABASE_URL must include hostname")

        db_pool_size = _parse_int("DB_POOL_SIZE", cls.model_fields["db_pool_size"].default)
        if db_pool_size <= 0:
            raise ValueError("DB_POOL_SIZE must be greater than 0")

        db_max_overflow = _parse_int(
            "DB_MAX_OVERFLOW", cls.model_fields["db_max_overflow"].default
        )
        if db_max_overflow < 0:
            raise ValueError("DB_MAX_OVERFLOW must be greater than or equal to 0")

        db_pool_recycle = _parse_int(
            "DB_POOL_RECYCLE", cls.model_fields["db_pool_recycle"].default
        )
        if db_pool_recycle <= 0:
            raise ValueError("DB_POOL_RECYCLE must be greater than 0")

        default_per_page = _parse_int(
            "ACCESS_DEFAULT_PER_PAGE", cls.model_fields["default_per_page"].default
        )
        max_per_page = _parse_int(
            "ACCESS_MAX_PER_PAGE", cls.model_fields["max_per_page"].default
        )
        if max_per_page <= 0:
            raise ValueError("ACCESS_MAX_PER_PAGE must be greater than 0")
        if not 1 <= default_per_page <= max_per_page:
            raise ValueError(
                "ACCESS_DEFAULT_PER_PAGE must be between 1 and ACCESS_MAX_PER_PAGE"
            )

        lock_ttl_seconds = _parse_int(
            "ACCESS_LOCK_TTL_SECONDS", cls.model_fields["lock_ttl_seconds"].default
        )
        if lock_ttl_seconds <= 0:
            raise ValueError("ACCESS_LOCK_TTL_SECONDS must be greater than 0")

        raw_lock_wait = os.getenv(
            "ACCESS_LOCK_WAIT_SECONDS", str(cls.model_fields["lock_wait_seconds"].default)
        ).strip()
        try:
            lock_wait_seconds = float(raw_lock_wait)
        except ValueError as exc:
            raise ValueError("ACCESS_LOCK_WAIT_SECONDS must be a number") from exc
        if lock_wait_seconds <= 0:
            raise ValueError("ACCESS_LOCK_WAIT_SECONDS must be greater than 0")

        redis_url = os.getenv("REDIS_URL", "").strip() or None
        if redis_url is not None:
            parsed_redis = urlparse(redis_url)
            if parsed_redis.scheme not in {"redis", "rediss", "unix"}:
                raise ValueError("REDIS_URL must use the redis://, rediss:// or unix:// scheme")

        return cls(
            app_name=os.getenv("APP_NAME", cls.model_fields["app_name"].default),
            debug=_parse_bool("DEBUG", False),
            database_url=database_url,
            redis_url=redis_url,
            db_pool_size=db_pool_size,
            db_max_overflow=db_max_overflow,
            db_pool_recycle=db_pool_recycle,
            db_pool_pre_ping=_parse_bool(
                "DB_POOL_PRE_PING", cls.model_fields["db_pool_pre_ping"].default
            ),
            cascade_deletes=_parse_bool(
                "ACCESS_CASCADE_DELETES", cls.model_fields["cascade_deletes"].default
            ),
            bulk_atomic=_parse_bool(
                "ACCESS_BULK_ATOMIC", cls.model_fields["bulk_atomic"].default
            ),
            default_per_page=default_per_page,
            max_per_page=max_per_page,
            lock_ttl_seconds=lock_ttl_seconds,
            lock_wait_seconds=lock_wait_seconds,
        )


# Built on first access so importing the package never validates the environment.
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get the settings for the process entry point, creating them on first access.

    Services never call this; they receive the values they need from
    ``gatekeeper.dependencies``.

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    global _settings_instance

    if _settings_instance is not None:
        return _settings_instance

    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings.from_env()

    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings (used by tests that change the environment)."""
    global _settings_instance
    with _settings_lock:
        _settings_instance = None
