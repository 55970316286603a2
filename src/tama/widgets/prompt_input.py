"""
Prompt input used while composing.
"""
from textual import events
from textual.message import Message
from textual.widgets import Input


class PromptInput(Input):
    class Submit(Message, bubble=True):
        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    async def on_key(self, event: events.Key) -> None:
        if event.key == "enter":
            event.stop()
            event.prevent_default()
            self.post_message(self.Submit(self.value))
            self.value = ""
