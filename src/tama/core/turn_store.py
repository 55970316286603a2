"""
Ordered collection of conversation turns and the two cursors into it.

`current_index` is what the user is looking at, `target_index` is what the
active dispatch writes into. They are usually equal but must never be aliased:
the user may navigate while a response streams.
"""

from datetime import timedelta
from typing import Optional

from tama.core.errors import InvalidInput
from tama.models import Turn


class TurnStore:
    def __init__(self) -> None:
        self.turns: list[Turn] = []
        self.current_index: Optional[int] = None
        self.target_index: Optional[int] = None
        self.accumulator: str = ""

    def __len__(self) -> int:
        return len(self.turns)

    def get(self, index: Optional[int]) -> Optional[Turn]:
        if index is None or not 0 <= index < len(self.turns):
            return None
        return self.turns[index]

    @property
    def current(self) -> Optional[Turn]:
        return self.get(self.current_index)

    @property
    def pending(self) -> Optional[Turn]:
        return next((t for t in self.turns if t.pending), None)

    def submit(self, request_text: str) -> int:
        text = request_text.strip()
        if not text:
            raise InvalidInput("cannot send an empty message")

        self.turns.append(Turn(request_text=text))
        index = len(self.turns) - 1
        self.current_index = index
        self.target_index = index
        self.accumulator = ""
        return index

    def finalize(self, target_index: int, response_text: str, duration: timedelta) -> None:
        turn = self.get(target_index)
        if turn is None:
            # session was reset while the response was in flight
            return
        turn.response_text = response_text.strip()
        turn.duration = duration
        self.accumulator = ""

    def fail(self, target_index: int, cause: str, duration: timedelta) -> None:
        turn = self.get(target_index)
        if turn is None:
            return
        turn.error = cause
        turn.duration = duration
        self.accumulator = ""

    def cancel(self, index: Optional[int]) -> None:
        turn = self.get(index)
        if turn is not None:
            turn.cancelled = True

    def build_history(self) -> list[dict[str, str]]:
        """
        Project the turns into chat messages for the next request.

        Cancelled turns contribute nothing. Fresh dicts are built every call, so
        a dispatch holding the result never sees later mutation.
        """
        history: list[dict[str, str]] = []
        for turn in self.turns:
            if turn.cancelled:
                continue
            history.append({'role': 'user', 'content': turn.request_text})
            if turn.response_text:
                history.append({'role': 'assistant', 'content': turn.response_text})
        return history

    def reset(self) -> None:
        self.turns.clear()
        self.current_index = None
        self.target_index = None
        self.accumulator = ""
