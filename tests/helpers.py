"""Builders for fake Ollama streams and session events."""

import asyncio
import json
from datetime import timedelta

import httpx

from tama.core import domain
from tama.core.session import Session

CHAT_URL = "http://ollama.test/api/chat"
MODELS_URL = "http://ollama.test/api/ps"


def ndjson(*fragments: str, done: bool = True) -> bytes:
    """Build an Ollama chat stream body from text fragments."""
    lines = [
        json.dumps({"model": "m", "message": {"role": "assistant", "content": f}, "done": False})
        for f in fragments
    ]
    if done:
        lines.append(json.dumps({"model": "m", "message": {"role": "assistant", "content": ""}, "done": True}))
    return ("\n".join(lines) + "\n").encode()


class HangingStream(httpx.AsyncByteStream):
    """Sends `first`, then never sends anything again."""

    def __init__(self, first: bytes) -> None:
        self.first = first
        self.closed = False

    async def __aiter__(self):
        yield self.first
        await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class BrokenStream(httpx.AsyncByteStream):
    """Sends `first`, then fails the way a reset connection does."""

    def __init__(self, first: bytes) -> None:
        self.first = first

    async def __aiter__(self):
        yield self.first
        raise httpx.ReadError("connection reset")


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def drain(q: asyncio.Queue) -> list:
    events = []
    while not q.empty():
        events.append(q.get_nowait())
    return events


def start_cmd(commands):
    return next(c for c in commands if c['type'] == 'start_dispatch')


def finish(session: Session, commands, text: str, seconds: float = 1.5, **kwargs):
    """Feed a complete event for the dispatch started by `commands`."""
    cmd = start_cmd(commands)
    return session.apply(domain.complete(
        cmd['dispatch_id'], cmd['target'], text, timedelta(seconds=seconds), **kwargs
    ))
