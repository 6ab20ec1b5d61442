import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


class ConfigurationError(RuntimeError):
    pass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    db_url: str
    token_ttl_hours: int = 24
    log_level: str = "INFO"
    duplicate_status: int = 400
    admin_username: str = ""
    admin_password: str = ""


@lru_cache
def get_settings() -> Settings:
    duplicate_status = int(os.getenv("ENGCONNECT_DUPLICATE_STATUS", "400"))
    if duplicate_status not in (400, 409):
        raise ConfigurationError("ENGCONNECT_DUPLICATE_STATUS must be 400 or 409")
    return Settings(
        secret_key=os.getenv("ENGCONNECT_SECRET_KEY", ""),
        db_url=os.getenv("ENGCONNECT_DB_URL") or f"sqlite:///{BASE_DIR / 'engconnect.db'}",
        token_ttl_hours=int(os.getenv("ENGCONNECT_TOKEN_TTL_HOURS", "24")),
        log_level=os.getenv("ENGCONNECT_LOG_LEVEL", "INFO").upper(),
        duplicate_status=duplicate_status,
        admin_username=os.getenv("ENGCONNECT_ADMIN_USERNAME", ""),
        admin_password=os.getenv("ENGCONNECT_ADMIN_PASSWORD", ""),
    )


def require_secret_key() -> str:
    """Return the signing secret, failing loudly when it is not configured."""
    secret = get_settings().secret_key
    if not secret:
        raise ConfigurationError("ENGCONNECT_SECRET_KEY is not set; refusing to serve authenticated routes")
    return secret
