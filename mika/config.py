"""Flask configuration."""
import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration."""

    SECRET_KEY = os.environ.get("SESSION_SECRET") or os.environ.get("SECRET_KEY")
    APP_VERSION = os.environ.get("APP_VERSION", "0.1.0")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///mika.db")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Landing page -> workspace lookups
    WORKSPACE_CACHE_TTL = int(os.environ.get("WORKSPACE_CACHE_TTL", "300"))
    WORKSPACE_CACHE_SIZE = int(os.environ.get("WORKSPACE_CACHE_SIZE", "1024"))

    # Lead lifecycle
    STRICT_STAGE_TRANSITIONS = _env_bool("STRICT_STAGE_TRANSITIONS")

    # Tracking endpoint throttling
    TRACK_RATE_LIMIT = os.environ.get("TRACK_RATE_LIMIT", "600 per minute")
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", True)


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    TESTING = False
    SECRET_KEY = Config.SECRET_KEY or "dev-secret"


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    TESTING = False
    PREFERRED_URL_SCHEME = "https"


class TestingConfig(Config):
    """Testing configuration."""

    DEBUG = True
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    STRICT_STAGE_TRANSITIONS = False


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
