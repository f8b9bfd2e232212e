# app/config.py

import logging
import os
from typing import Optional
from urllib.parse import quote_plus

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s"


def configure_logging(level: str = "INFO"):
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())


def load_environment(profile: Optional[str] = None):
    """
    Loads .env, then .env.<profile> on top of it (overriding existing
    variables) when a profile is given.
    """
    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(env_path)
    else:
        logger.info("No .env file found, using system environment variables.")

    profile = profile or os.getenv("APP_PROFILE")
    if not profile:
        return

    filename = f".env.{profile}"
    if env_path:
        filename = os.path.join(os.path.dirname(env_path), filename)
    if not os.path.exists(filename):
        logger.warning("Profile file %s not found, using .env or system environment variables.", filename)
        return
    load_dotenv(filename, override=True)
    logger.info("Loaded profile '%s' from %s", profile, filename)


def _flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _database_url() -> Optional[str]:
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    user = os.getenv("DB_USER")
    password = os.getenv("DB_PASS")
    name = os.getenv("DB_NAME")
    if not (user and password and name):
        return None
    host = os.getenv("DB_HOST", "127.0.0.1")
    port = os.getenv("DB_PORT", "3306")
    return f"mysql+pymysql://{quote_plus(user)}:{quote_plus(password)}@{host}:{port}/{name}"


class Settings:
    def __init__(self):
        self.GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
        self.GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
        self.IMAGE_PREPROCESS = _flag("IMAGE_PREPROCESS", True)

        self.GCS_BUCKET_NAME = os.getenv("GCS_BUCKET_NAME")
        self.GOOGLE_CREDENTIALS_JSON = os.getenv("GOOGLE_CREDENTIALS_JSON")
        self.GCS_MAKE_PUBLIC = _flag("GCS_MAKE_PUBLIC")

        self.DATABASE_URL = _database_url()
        self.DB_ECHO = _flag("DB_ECHO")

        timeout = os.getenv("REQUEST_TIMEOUT_SECONDS")
        self.REQUEST_TIMEOUT_SECONDS = float(timeout) if timeout else None

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        self.HOST = os.getenv("HOST", "0.0.0.0")
        self.PORT = int(os.getenv("PORT", "8080"))

    def validate(self):
        missing = [
            name for name, value in (
                ("GEMINI_API_KEY", self.GEMINI_API_KEY),
                ("GCS_BUCKET_NAME", self.GCS_BUCKET_NAME),
                ("DATABASE_URL (or DB_USER, DB_PASS, DB_NAME)", self.DATABASE_URL),
            ) if not value
        ]
        if missing:
            raise ConfigError(f"missing required configuration: {', '.join(missing)}")
        return self


def load_settings(profile: Optional[str] = None) -> Settings:
    load_environment(profile)
    return Settings()
