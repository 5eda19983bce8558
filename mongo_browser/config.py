import os
import logging
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

from dotenv import load_dotenv

LOGGER_NAME = "mongo_browser"

# Load env from .env.local at the repository root if it exists
_env_path = Path(__file__).resolve().parent.parent / ".env.local"
if _env_path.exists():
    load_dotenv(_env_path)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(LOGGER_NAME).warning("Ignoring invalid %s=%r, using %s", name, value, default)
        return default


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    debounce_ms: int = 100
    page_size: int = 25
    auto_run: bool = True
    export_dir: str = "exports"
    log_dir: str = "logs"
    log_level: str = "INFO"

    @property
    def debounce_seconds(self) -> float:
        return max(0, self.debounce_ms) / 1000.0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
            debounce_ms=_env_int("MONGO_BROWSER_DEBOUNCE_MS", 100),
            page_size=_env_int("MONGO_BROWSER_PAGE_SIZE", 25),
            auto_run=_env_bool("MONGO_BROWSER_AUTO_RUN", True),
            export_dir=os.getenv("MONGO_BROWSER_EXPORT_DIR", "exports"),
            log_dir=os.getenv("MONGO_BROWSER_LOG_DIR", "logs"),
            log_level=os.getenv("MONGO_BROWSER_LOG_LEVEL", "INFO"),
        )


def setup_logging(settings: Settings) -> logging.Logger:
    """Attach the rotating file handler to the package logger (once)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    if logger.handlers:
        return logger
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_dir / "app.log", maxBytes=2*1024*1024, backupCount=3, encoding="utf-8")
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger
