"""
Data models for the tama chat client.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional


@dataclass
class Turn:
    """
    A single request/response exchange between user and model.

    `response_text` stays empty while the turn streams; partial text lives in
    the turn store's accumulator until the turn is finalized.
    """
    request_text: str
    response_text: str = ""
    duration: Optional[timedelta] = None
    cancelled: bool = False
    error: Optional[str] = None
    degraded: bool = False

    @property
    def finalized(self) -> bool:
        return self.duration is not None

    @property
    def pending(self) -> bool:
        """Neither finalized nor cancelled."""
        return not self.finalized and not self.cancelled
