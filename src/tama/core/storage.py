"""
Last-used model name, kept under the XDG data directory.
"""

import os
from pathlib import Path
from typing import Optional

from loguru import logger

DEFAULT_MODEL = "gpt-oss:20b"


def data_home() -> Path:
    base = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / "tama"


class ModelStore:
    def __init__(self, directory: Optional[Path] = None, default: str = DEFAULT_MODEL) -> None:
        self.directory = directory or data_home()
        self.default = default

    @property
    def path(self) -> Path:
        return self.directory / "last-model"

    def load(self) -> str:
        try:
            name = self.path.read_text().strip()
        except OSError:
            return self.default
        return name or self.default

    def persist(self, model: str) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self.path.write_text(model)
        except OSError as e:
            logger.warning(f"could not save last model to {self.path}: {e}")
