"""
The session: every piece of mutable chat state, owned by the event loop.

User commands and queued events are applied here one at a time. Methods return
the side effects (start a dispatch, persist the model, quit) for the caller to
run, so the session itself never does I/O.
"""

import time
from typing import Callable, Optional

from loguru import logger

from tama.core.cancellation import CancellationController
from tama.core.domain import Command, DomainEvent
from tama.core.errors import DispatchActive
from tama.core.modes import Mode, ModeMachine
from tama.core.navigator import Navigator
from tama.core.turn_store import TurnStore

DEGRADED_NOTICE = "response ended early: the stream sent a malformed chunk"


class Session:
    def __init__(self, model: str, clock: Callable[[], float] = time.monotonic) -> None:
        self.store = TurnStore()
        self.modes = ModeMachine()
        self.navigator = Navigator(self.store)
        self.cancellation = CancellationController()
        self.clock = clock

        self.model = model
        self.model_loaded = False
        self.loading_since: Optional[float] = None
        self.waiting_since: Optional[float] = None

        self.error: Optional[str] = None
        self.notice: Optional[str] = None

    @property
    def mode(self) -> Mode:
        return self.modes.mode

    @property
    def dispatch_active(self) -> bool:
        return self.cancellation.active

    @property
    def loading_model(self) -> bool:
        return self.loading_since is not None

    # -- commands ---------------------------------------------------------

    def submit(self, text: str) -> list[Command]:
        if self.dispatch_active:
            raise DispatchActive("waiting for response")

        target = self.store.submit(text)
        token = self.cancellation.begin_dispatch()
        history = self.store.build_history()

        self.modes.force_review()
        self.navigator.scroll_to_top()
        self.error = None
        self.notice = None
        self.model_loaded = False
        self.loading_since = self.clock()
        self.waiting_since = None

        logger.debug(f"turn {target} submitted ({len(self.store.turns[target].request_text)} chars)")
        return [
            {'type': 'persist_model', 'model': self.model},
            {'type': 'poll_model', 'model': self.model},
            {
                'type': 'start_dispatch',
                'dispatch_id': token.dispatch_id,
                'target': target,
                'model': self.model,
                'history': history,
                'token': token,
            },
        ]

    def enter_compose(self) -> None:
        self.modes.enter_compose(self.dispatch_active)

    def exit_compose(self) -> None:
        self.modes.exit_compose()

    def interrupt(self) -> list[Command]:
        """Cancel the active dispatch; with nothing in flight, quit."""
        if not self.cancellation.cancel():
            return [{'type': 'quit'}]

        self.store.cancel(self.store.target_index)
        self.store.accumulator = ""
        self.modes.force_review()
        self._stop_timers()
        return []

    def next_turn(self) -> bool:
        if self.mode is not Mode.REVIEW:
            return False
        return self.navigator.next()

    def previous_turn(self) -> bool:
        if self.mode is not Mode.REVIEW:
            return False
        return self.navigator.previous()

    def scroll_top(self) -> None:
        if self.mode is Mode.REVIEW:
            self.navigator.scroll_to_top()

    def scroll_bottom(self) -> None:
        if self.mode is Mode.REVIEW:
            self.navigator.scroll_to_bottom()

    def scroll_by(self, lines: int) -> None:
        if self.mode is Mode.REVIEW:
            self.navigator.scroll_by(lines)

    def reset(self) -> None:
        """
        Drop every turn. An in-flight dispatch keeps running; its events
        target an index that no longer exists and are ignored.
        """
        self.store.reset()
        self.navigator.scroll_to_top()
        self.error = None
        self.notice = None

    def terminate(self) -> list[Command]:
        return [{'type': 'quit'}]

    def dismiss_error(self) -> None:
        self.error = None
        self.notice = None

    # -- events -----------------------------------------------------------

    def apply(self, ev: DomainEvent) -> list[Command]:
        type = ev.get('type', '')

        # Interrupt releases the token before the dispatcher reports back, so
        # cancelled completions always end here as stale.
        if type in ('partial', 'complete', 'failure'):
            if ev['dispatch_id'] != self.cancellation.active_id:
                logger.debug(f"dropping {type} from stale dispatch {ev['dispatch_id']}")
                return []

        if type == 'partial':
            if ev['target'] == self.store.target_index:
                self.store.accumulator = ev['text']

        elif type == 'complete':
            self.cancellation.finish(ev['dispatch_id'])
            target = ev['target']
            self.store.finalize(target, ev['text'], ev['duration'])
            turn = self.store.get(target)
            if turn is not None and ev['degraded']:
                turn.degraded = True
                self.notice = DEGRADED_NOTICE
            self._settled(target)

        elif type == 'failure':
            self.cancellation.finish(ev['dispatch_id'])
            self.store.fail(ev['target'], ev['message'], ev['duration'])
            self.error = ev['message']
            self._settled(ev['target'])

        elif type == 'model_selected':
            self.model = ev['model']
            self.model_loaded = ev['loaded']
            return [{'type': 'persist_model', 'model': self.model}]

        elif type == 'model_status':
            if ev['model'] != self.model:
                return []
            self.model_loaded = ev['loaded']
            if ev['loaded'] and self.loading_model:
                self.loading_since = None
                if self.dispatch_active:
                    self.waiting_since = self.clock()

        elif type == 'status_error':
            self.error = ev['message']
            self.loading_since = None

        return []

    def _settled(self, target: int) -> None:
        self.modes.force_review()
        self._stop_timers()
        if target == self.store.current_index:
            self.navigator.scroll_to_top()

    def _stop_timers(self) -> None:
        self.loading_since = None
        self.waiting_since = None
