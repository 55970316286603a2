"""
Decoding of Ollama's newline-delimited JSON chat stream.
"""

import asyncio
import contextlib
import json
from typing import Any, AsyncIterator

from tama.core.cancellation import CancelToken
from tama.core.errors import MalformedChunk


def parse_chunk(line: str) -> str:
    """
    Return the assistant text fragment carried by one stream line.

    Only `message.content` is consumed; `done` is advisory. Control chunks
    give back an empty string.
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise MalformedChunk(line, f"invalid json: {e.msg}") from e

    if not isinstance(data, dict):
        raise MalformedChunk(line, "not an object")

    if 'error' in data and 'message' not in data:
        raise MalformedChunk(line, f"server error: {data['error']}")

    msg: Any = data.get('message') or {}
    if not isinstance(msg, dict):
        raise MalformedChunk(line, "message is not an object")

    content = msg.get('content') or ''
    if not isinstance(content, str):
        raise MalformedChunk(line, "content is not a string")
    return content


async def read_until_cancelled(
    lines: AsyncIterator[str], token: CancelToken
) -> AsyncIterator[str]:
    """
    Yield lines until the stream ends or the token is signaled.

    The wait for the next line races the token, so a connection that stops
    sending never holds up cancellation.
    """
    it = lines.__aiter__()
    cancelled = asyncio.ensure_future(token.wait())
    try:
        while not token.cancelled:
            nxt: asyncio.Future = asyncio.ensure_future(it.__anext__())
            done, _ = await asyncio.wait(
                {nxt, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
            if cancelled in done:
                nxt.cancel()
                with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                    await nxt
                return
            try:
                line = nxt.result()
            except StopAsyncIteration:
                return
            yield line
    finally:
        cancelled.cancel()


async def adapt_lines(
    lines: AsyncIterator[str], token: CancelToken
) -> AsyncIterator[str]:
    """Turn raw stream lines into non-empty text fragments."""
    async with contextlib.aclosing(read_until_cancelled(lines, token)) as reader:
        async for line in reader:
            line = line.strip()
            if not line:
                continue
            fragment = parse_chunk(line)
            if fragment:
                yield fragment
