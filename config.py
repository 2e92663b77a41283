import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(instance_path):
    """Build the Flask config mapping from the environment."""
    database_url = os.getenv("DATABASE_URL") or (
        "sqlite:///" + os.path.join(instance_path, "taskboard.db")
    )
    return {
        "SECRET_KEY": os.getenv("FLASK_SECRET_KEY"),
        "SQLALCHEMY_DATABASE_URI": database_url,
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        # Base64 task images travel inside JSON bodies
        "MAX_CONTENT_LENGTH": int(os.getenv("MAX_CONTENT_LENGTH_MB", "100")) * 1024 * 1024,
        "TOKEN_MAX_AGE": int(os.getenv("TOKEN_MAX_AGE", str(30 * 24 * 3600))),
        "AUTH_REQUIRED": _env_bool("AUTH_REQUIRED"),
        "CORS_ORIGINS": os.getenv("CORS_ORIGINS", "*"),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
        "LOG_FILE": os.getenv("LOG_FILE"),
    }


def configure_logging(level_name="INFO", logfile=None):
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    # Repeated app factory calls (tests) must not stack handlers
    if any(getattr(h, "_taskboard", False) for h in root.handlers):
        return

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATEFMT)
    handlers = [logging.StreamHandler(sys.stdout)]
    if logfile:
        # rotate at 5MB, keep 7 backups
        handlers.append(RotatingFileHandler(logfile, maxBytes=5_000_000, backupCount=7, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        handler._taskboard = True
        root.addHandler(handler)

    logging.getLogger(__name__).info("Logging initialized at %s; file: %s", level_name, logfile)
