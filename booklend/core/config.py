import logging
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass
class Settings:
    app_name: str = os.getenv("APP_NAME", "Library Lending API")

    # Storage
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./booklend.db")
    db_timeout_seconds: float = float(os.getenv("DB_TIMEOUT_SECONDS", "5"))

    # Sessions
    jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", "")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    session_ttl_minutes: int = int(os.getenv("SESSION_TTL_MINUTES", "60"))
    cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "token")
    cookie_secure: bool = _env_bool("COOKIE_SECURE", "False")

    # Lending rules
    loan_period_days: int = int(os.getenv("LOAN_PERIOD_DAYS", "14"))
    allow_admin_registration: bool = _env_bool("ALLOW_ADMIN_REGISTRATION", "True")

    # HTTP
    cors_origins: List[str] = field(default_factory=lambda: _env_list("CORS_ORIGINS", "http://localhost:5173"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s - %(message)s")
