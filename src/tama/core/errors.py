"""
Exceptions raised by the tama core.
"""


class TamaError(Exception):
    """Base class for every error the core raises."""


class InvalidInput(TamaError):
    """Submission was empty after trimming."""


class DispatchActive(TamaError):
    """A request is still streaming; the command has to wait for it."""


class ConnectionFailure(TamaError):
    """The chat endpoint was unreachable or answered with a non-success status."""


class MalformedChunk(TamaError):
    """A streamed line did not decode as a chat chunk."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"malformed chunk ({reason}): {line[:80]!r}")
        self.line = line
        self.reason = reason
