"""
Running-model checks against /api/ps.
"""

import asyncio
from typing import Optional

import httpx
from loguru import logger

from tama.core import domain


class ModelMonitor:
    """
    Queries Ollama's running-models endpoint.

    Results go onto the same event queue the dispatcher writes to; the monitor
    only ever reports whether a model is resident, it never gates requests.
    """

    def __init__(
        self,
        events_q: asyncio.Queue,
        models_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.events_q = events_q
        self.models_url = models_url
        self.transport = transport

    async def running_models(self) -> list[str]:
        async with httpx.AsyncClient(timeout=5.0, transport=self.transport) as client:
            resp = await client.get(self.models_url)
            resp.raise_for_status()
            data = resp.json()
        return [m['name'] for m in data.get('models') or [] if m.get('name')]

    async def select_initial(self, last_model: str) -> None:
        """
        Adopt the first running model, or keep the last-used one.
        """
        try:
            running = await self.running_models()
        except (httpx.HTTPError, ValueError) as e:
            await self._report(e)
            return

        if running:
            logger.info(f"adopting running model {running[0]}")
            await self.events_q.put({'type': 'model_selected', 'model': running[0], 'loaded': True})
        else:
            await self.events_q.put({'type': 'model_selected', 'model': last_model, 'loaded': False})

    async def check(self, model: str) -> None:
        try:
            running = await self.running_models()
        except (httpx.HTTPError, ValueError) as e:
            await self._report(e)
            return
        await self.events_q.put({'type': 'model_status', 'model': model, 'loaded': model in running})

    async def _report(self, e: Exception) -> None:
        message = f"cannot reach {self.models_url}: {str(e) or type(e).__name__}"
        logger.warning(message)
        await self.events_q.put({'type': 'status_error', 'message': message})
