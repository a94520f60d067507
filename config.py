from __future__ import annotations
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Absolute project dir
BASE_DIR = Path(__file__).resolve().parent
# Absolute instance dir (defaults to <project>/instance)
INSTANCE_DIR = Path(os.getenv("INSTANCE_DIR", BASE_DIR / "instance")).resolve()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    # Flask basics
    SECRET_KEY = os.getenv("SECRET_KEY", "dev")  # override in prod!
    JSON_SORT_KEYS = False

    # Database (absolute sqlite path; forward slashes are fine on Windows)
    DEFAULT_SQLITE = f"sqlite:///{(INSTANCE_DIR / 'database.db').as_posix()}"
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", DEFAULT_SQLITE)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Which DataManager backs the API: "db" (SQL) or "sheets" (Google Sheets)
    DATA_BACKEND = os.getenv("DATA_BACKEND", "db").strip().lower()
    # Serve the fixture decks/games instead of a real backend
    E2E_TEST_MODE = _env_flag("E2E_TEST_MODE")

    # Google Sheets backend (service account JSON key)
    GOOGLE_SERVICE_ACCOUNT_FILE = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE")

    # Deck link providers
    DECK_LINK_TIMEOUT = float(os.getenv("DECK_LINK_TIMEOUT", 10))
    DECK_LINK_CACHE_TIMEOUT = int(os.getenv("DECK_LINK_CACHE_TIMEOUT", 600))

    # Cookie security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE")

    # Server-side session data (stored in the cache backend)
    SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", 60 * 60 * 24 * 30))

    # Cache configuration (defaults to in-process SimpleCache)
    CACHE_DEFAULT_TIMEOUT = int(os.getenv("CACHE_DEFAULT_TIMEOUT", 600))
    CACHE_TYPE = os.getenv("CACHE_TYPE", "SimpleCache")
    CACHE_REDIS_URL = os.getenv("CACHE_REDIS_URL")
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", "1")
    RATELIMIT_STORAGE_URI = os.getenv(
        "RATELIMIT_STORAGE_URI",
        os.getenv("REDIS_URL") or "memory://",
    )
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per minute")
    ENABLE_TALISMAN = _env_flag("ENABLE_TALISMAN", "1")
    TALISMAN_FORCE_HTTPS = _env_flag("TALISMAN_FORCE_HTTPS", "1")
    CONTENT_SECURITY_POLICY = {
        "default-src": "'self'",
        "img-src": "'self' data: https://cards.scryfall.io https://storage.googleapis.com",
        "connect-src": "'self'",
    }

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    SESSION_COOKIE_SECURE = True


def _select_config():
    env = os.getenv("FLASK_ENV")
    if env == "development":
        return DevelopmentConfig
    secret = os.getenv("SECRET_KEY", "dev")
    if not secret or secret == "dev":
        raise RuntimeError("SECRET_KEY must be set to a non-default value in production.")
    return ProductionConfig


# Choose config
Config = _select_config()
