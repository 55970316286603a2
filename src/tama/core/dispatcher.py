"""
Streamed chat requests against Ollama's /api/chat endpoint.
"""

import asyncio
import contextlib
import time
from datetime import timedelta
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from tama.core import domain
from tama.core.cancellation import CancelToken
from tama.core.errors import ConnectionFailure, MalformedChunk
from tama.core.ollama_adapter import adapt_lines


class StreamingDispatcher:
    """
    Performs one streamed chat request per submitted turn.

    The dispatcher never touches session state: it reads the history it was
    handed and reports progress by putting events on `events_q`.
    """

    def __init__(
        self,
        events_q: asyncio.Queue,
        chat_url: str,
        connect_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.events_q = events_q
        self.chat_url = chat_url
        # Models can take minutes to load and to answer; only connecting is bounded.
        self.timeout = httpx.Timeout(None, connect=connect_timeout)
        self.transport = transport

    async def _emit(self, ev: Dict[str, Any]):
        await self.events_q.put(ev)

    async def run(
        self,
        dispatch_id: int,
        target: int,
        history: list[dict[str, str]],
        model: str,
        token: CancelToken,
    ) -> None:
        started = time.monotonic()

        def elapsed() -> timedelta:
            return timedelta(seconds=time.monotonic() - started)

        payload = {"model": model, "messages": history, "stream": True}
        text = ""
        degraded = False
        responded = False

        async def stream():
            nonlocal text, degraded, responded
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async with client.stream("POST", self.chat_url, json=payload) as response:
                    if response.status_code != httpx.codes.OK:
                        body = (await response.aread()).decode(errors="replace").strip()
                        raise ConnectionFailure(
                            f"request failed with status {response.status_code}: {body}"
                        )
                    responded = True
                    try:
                        async for fragment in adapt_lines(response.aiter_lines(), token):
                            text += fragment
                            await self._emit(domain.partial(dispatch_id, target, text))
                    except MalformedChunk as e:
                        # TODO: offer a strict mode that reports this as a failure
                        logger.warning(f"dispatch {dispatch_id}: {e}; ending stream early")
                        degraded = True

        logger.info(
            f"dispatch {dispatch_id}: {len(history)} messages to {model} (turn {target})"
        )
        # Headers can take as long as a model load; the token must win over that wait too.
        request = asyncio.ensure_future(stream())
        cancelled = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({request, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not request.done():
                request.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await request

        try:
            if not request.cancelled():
                request.result()
        except ConnectionFailure as e:
            logger.error(f"dispatch {dispatch_id}: {e}")
            await self._emit(domain.failure(dispatch_id, target, str(e), elapsed()))
            return
        except httpx.HTTPError as e:
            reason = str(e) or type(e).__name__
            if not responded:
                cause = f"failed to send request: {reason}"
                logger.error(f"dispatch {dispatch_id}: {cause}")
                await self._emit(domain.failure(dispatch_id, target, cause, elapsed()))
                return
            logger.warning(
                f"dispatch {dispatch_id}: stream interrupted: {reason}; keeping {len(text)} chars"
            )
            degraded = True

        if token.cancelled:
            logger.info(f"dispatch {dispatch_id}: stopped after {len(text)} chars")
        else:
            logger.info(f"dispatch {dispatch_id}: complete, {len(text)} chars in {elapsed()}")
        await self._emit(domain.complete(
            dispatch_id, target, text.strip(), elapsed(),
            cancelled=token.cancelled, degraded=degraded,
        ))
