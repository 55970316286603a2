"""
Settings for tama, read from the environment and an optional .env file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from tama.core.storage import DEFAULT_MODEL


def _state_home() -> Path:
    base = os.getenv("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return Path(base) / "tama"


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default


@dataclass
class Settings:
    chat_url: str = "http://localhost:11434/api/chat"
    models_url: str = "http://localhost:11434/api/ps"
    default_model: str = DEFAULT_MODEL
    connect_timeout: float = 10.0
    poll_interval: float = 0.5
    log_level: str = "INFO"
    log_file: Path = field(default_factory=lambda: _state_home() / "tama.log")

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        defaults = cls()
        return cls(
            chat_url=os.getenv("TAMA_CHAT_URL", defaults.chat_url),
            models_url=os.getenv("TAMA_MODELS_URL", defaults.models_url),
            default_model=os.getenv("TAMA_DEFAULT_MODEL", defaults.default_model),
            connect_timeout=_float("TAMA_CONNECT_TIMEOUT", defaults.connect_timeout),
            poll_interval=_float("TAMA_POLL_INTERVAL", defaults.poll_interval),
            log_level=os.getenv("TAMA_LOG_LEVEL", defaults.log_level).upper(),
            log_file=Path(os.getenv("TAMA_LOG_FILE", str(defaults.log_file))),
        )


def setup_logging(settings: Settings) -> None:
    """File-only logging; the terminal belongs to the UI."""
    logger.remove()
    try:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        return
    logger.add(
        settings.log_file,
        level=settings.log_level,
        rotation="10 MB",
        retention="1 week",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
    )
