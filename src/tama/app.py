"""
tama: modal terminal chat for locally hosted Ollama models.
"""

import asyncio
from typing import Optional

import httpx
from loguru import logger
from rich.text import Text
from textual import events, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.screen import ModalScreen
from textual.widgets import Static

from tama.core.config import Settings, setup_logging
from tama.core.dispatcher import StreamingDispatcher
from tama.core.domain import Command, StartDispatchCommand
from tama.core.errors import DispatchActive, InvalidInput
from tama.core.model_status import ModelMonitor
from tama.core.modes import INPUT_TARGET, TEXT_COMMANDS, KeyRouter, Mode
from tama.core.session import Session
from tama.core.storage import ModelStore
from tama.screens import ConfirmScreen
from tama.widgets import PromptInput, StatusLine, TurnView

CONTENT_WIDTH = 100
WAITING_TEXT = "Waiting for response, ctrl-c to cancel"


class TamaApp(App):
    CSS = """
Screen {
    align-horizontal: center;
}
#title, #turn_view, #prompt, #waiting, #status, #error {
    width: 100%;
    max-width: 100;
}
#turn_view {
    height: 1fr;
}
#prompt, #waiting {
    border-top: solid $panel-lighten-2;
    border-bottom: solid $panel-lighten-2;
    border-left: none;
    border-right: none;
    padding: 0 1;
    margin-top: 1;
}
#status {
    color: $text-muted;
}
#error {
    color: $error;
}
    """
    BINDINGS = [
        Binding("ctrl+c", "interrupt", "cancel / quit", priority=True, show=False),
    ]

    def __init__(
        self,
        settings: Optional[Settings] = None,
        model_store: Optional[ModelStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.settings = settings or Settings()
        self.model_store = model_store or ModelStore(default=self.settings.default_model)

        self.event_q: asyncio.Queue = asyncio.Queue()
        self.dispatcher = StreamingDispatcher(
            self.event_q, self.settings.chat_url, self.settings.connect_timeout, transport=transport
        )
        self.monitor = ModelMonitor(self.event_q, self.settings.models_url, transport=transport)

        self.session = Session(self.model_store.load())
        self.keys = KeyRouter()
        self._focused_mode: Optional[Mode] = None
        self._mounted_ready = False
        self._scroll_pending = False

    def compose(self) -> ComposeResult:
        yield Static(id="title")
        yield TurnView(id="turn_view")
        yield PromptInput(id="prompt", placeholder="Type your message...")
        yield Static(WAITING_TEXT, id="waiting")
        yield StatusLine(id="status")
        yield Static(id="error")

    async def on_mount(self) -> None:
        view = self.main_screen.query_one("#turn_view", TurnView)
        self.watch(view, "scroll_y", self._on_view_scrolled, init=False)
        self.set_interval(self.settings.poll_interval, self._tick)

        self._pump()
        self._select_model()
        self._mounted_ready = True
        self._refresh_view()

    def on_resize(self, event: events.Resize) -> None:
        if self._mounted_ready:
            self._refresh_view()

    @property
    def main_screen(self):
        """The conversation screen, underneath any modal."""
        return self.screen_stack[0]

    @property
    def content_width(self) -> int:
        return max(min(self.size.width, CONTENT_WIDTH), 1)

    # -- input ------------------------------------------------------------

    async def on_key(self, event: events.Key) -> None:
        if isinstance(self.screen, ModalScreen):
            return

        mode = self.session.mode
        key = event.key
        # Printable keys only reach us in review mode; the prompt consumes them.
        if mode is Mode.REVIEW and event.character and event.is_printable:
            key = event.character

        action = self.keys.resolve(mode, key)
        if action is None:
            if self.keys.waiting:
                event.stop()
            return

        event.stop()
        event.prevent_default()
        await self.run_action(action)

    async def on_prompt_input_submit(self, message: PromptInput.Submit) -> None:
        text = message.value.strip()

        command = TEXT_COMMANDS.get(text)
        if command is not None:
            await self.run_action(command)
            return

        try:
            commands = self.session.submit(text)
        except InvalidInput:
            return
        except DispatchActive:
            self.notify(WAITING_TEXT, severity="warning")
            return

        self._run_commands(commands)
        self._refresh_view()

    # -- actions ----------------------------------------------------------

    def action_interrupt(self) -> None:
        self._run_commands(self.session.interrupt())
        self._refresh_view()

    def action_exit_compose(self) -> None:
        self.session.exit_compose()
        self._refresh_view()

    def action_enter_compose(self) -> None:
        try:
            self.session.enter_compose()
        except DispatchActive:
            self.notify(WAITING_TEXT, severity="warning")
            return
        self._refresh_view()

    def action_next_turn(self) -> None:
        if self.session.next_turn():
            self._refresh_view()

    def action_previous_turn(self) -> None:
        if self.session.previous_turn():
            self._refresh_view()

    def action_scroll_down(self) -> None:
        self.session.scroll_by(1)
        self._sync_scroll()

    def action_scroll_up(self) -> None:
        self.session.scroll_by(-1)
        self._sync_scroll()

    def action_scroll_top(self) -> None:
        self.session.scroll_top()
        self._sync_scroll()

    def action_scroll_bottom(self) -> None:
        self.session.scroll_bottom()
        self._sync_scroll()

    def action_reset_session(self) -> None:
        if not len(self.session.store):
            return
        if self.session.mode is Mode.COMPOSE:
            # typed "clear"
            self._reset()
            return

        def confirmed(answer: Optional[bool]) -> None:
            if answer:
                self._reset()

        self.push_screen(
            ConfirmScreen("Clear this conversation?", f"{len(self.session.store)} turns will be dropped."),
            confirmed,
        )

    def action_terminate(self) -> None:
        self._run_commands(self.session.terminate())

    def action_dismiss_error(self) -> None:
        self.session.dismiss_error()
        self._refresh_view()

    def _reset(self) -> None:
        logger.info(f"session reset, {len(self.session.store)} turns dropped")
        self.session.reset()
        self._refresh_view()

    # -- side effects -----------------------------------------------------

    def _run_commands(self, commands: list[Command]) -> None:
        for cmd in commands:
            type = cmd['type']
            if type == 'start_dispatch':
                self._dispatch(cmd)
            elif type == 'persist_model':
                self.model_store.persist(cmd['model'])
            elif type == 'poll_model':
                self._check_model(cmd['model'])
            elif type == 'quit':
                self.exit()

    @work(exclusive=True, group='dispatch')
    async def _dispatch(self, cmd: StartDispatchCommand):
        await self.dispatcher.run(
            cmd['dispatch_id'], cmd['target'], cmd['history'], cmd['model'], cmd['token']
        )

    @work(exclusive=True, group='startup')
    async def _select_model(self):
        await self.monitor.select_initial(self.session.model)

    @work(exclusive=True, group='poll')
    async def _check_model(self, model: str):
        await self.monitor.check(model)

    def _tick(self) -> None:
        if self.session.loading_model:
            self._check_model(self.session.model)
        if self.session.dispatch_active:
            self.main_screen.query_one("#status", StatusLine).show(self.session)

    @work(exclusive=True, group='pump')
    async def _pump(self):
        """
        Event processing loop.

        Dispatcher and model-monitor workers only produce events; every state
        change happens here, on the app's loop.
        """
        while True:
            ev = await self.event_q.get()
            commands = self.session.apply(ev)
            self._run_commands(commands)
            self._refresh_view()

    # -- view -------------------------------------------------------------

    def _refresh_view(self) -> None:
        session = self.session
        store = session.store
        width = self.content_width

        title = Text("TAMA", style="bold color(205)")
        title.append(" " + "─" * max(width - 5, 0))
        self.main_screen.query_one("#title", Static).update(title)

        streaming = store.accumulator if store.current_index == store.target_index else ""
        self.main_screen.query_one("#turn_view", TurnView).show(store.current, streaming, width)

        composing = session.mode is Mode.COMPOSE and not session.dispatch_active
        self.main_screen.query_one("#prompt", PromptInput).display = composing
        self.main_screen.query_one("#waiting", Static).display = session.dispatch_active
        self.main_screen.query_one("#status", StatusLine).show(session)

        message = session.error or session.notice or ""
        error = self.main_screen.query_one("#error", Static)
        error.update(f"Error: {session.error}" if session.error else message)
        error.display = bool(message)

        if session.mode is not self._focused_mode and not isinstance(self.screen, ModalScreen):
            self._focused_mode = session.mode
            self.keys.clear()
            self.main_screen.query_one(INPUT_TARGET[session.mode]).focus()

        self._scroll_pending = True
        self.call_after_refresh(self._sync_scroll)

    def _sync_scroll(self) -> None:
        view = self.main_screen.query_one("#turn_view", TurnView)
        nav = self.session.navigator
        nav.set_extent(int(view.max_scroll_y))
        view.scroll_to(y=nav.scroll_y, animate=False)
        self._scroll_pending = False

    def _on_view_scrolled(self, value: float) -> None:
        # Re-layout clamps scroll_y; only adopt positions the user reached.
        if not self._scroll_pending:
            self.session.navigator.sync(round(value))


def main():
    settings = Settings.from_env()
    setup_logging(settings)
    logger.info(f"starting tama, chat endpoint {settings.chat_url}")
    app = TamaApp(settings)
    app.run()


if __name__ == "__main__":
    main()
