"""
Lifetime of the single in-flight dispatch and the means to abort it.
"""

import asyncio
import itertools
from typing import Optional

from loguru import logger


class CancelToken:
    """Cooperative cancellation flag shared with one dispatcher task."""

    def __init__(self, dispatch_id: int) -> None:
        self.dispatch_id = dispatch_id
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class CancellationController:
    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._token: Optional[CancelToken] = None

    @property
    def active(self) -> bool:
        return self._token is not None

    @property
    def active_id(self) -> Optional[int]:
        return self._token.dispatch_id if self._token else None

    def begin_dispatch(self) -> CancelToken:
        if self._token is not None:
            logger.warning(f"discarding token of dispatch {self._token.dispatch_id}")
        self._token = CancelToken(next(self._ids))
        return self._token

    def cancel(self) -> bool:
        """Signal and drop the held token. Returns False when nothing was held."""
        token, self._token = self._token, None
        if token is None:
            return False
        token.cancel()
        logger.info(f"dispatch {token.dispatch_id} cancelled")
        return True

    def finish(self, dispatch_id: int) -> None:
        """Drop the token of a dispatch that ended on its own."""
        if self._token is not None and self._token.dispatch_id == dispatch_id:
            self._token = None
