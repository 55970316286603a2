"""
Interaction modes and the per-mode key dispatch table.

Keys not claimed by the table fall through to the widget the mode declares in
INPUT_TARGET: the prompt input while composing, the turn viewport while
reviewing.
"""

from enum import Enum, auto
from typing import Optional

from tama.core.errors import DispatchActive


class Mode(Enum):
    COMPOSE = auto()
    REVIEW = auto()


INPUT_TARGET: dict[Mode, str] = {
    Mode.COMPOSE: "#prompt",
    Mode.REVIEW: "#turn_view",
}

# Key -> action name. Actions resolve to `action_<name>` on the app.
MODE_KEYMAP: dict[Mode, dict[str, str]] = {
    Mode.COMPOSE: {
        "escape": "exit_compose",
    },
    Mode.REVIEW: {
        "i": "enter_compose",
        # turn navigation
        "J": "next_turn",
        "K": "previous_turn",
        # scrolling within the displayed turn
        "j": "scroll_down",
        "k": "scroll_up",
        "G": "scroll_bottom",
        "ctrl+r": "reset_session",
        "q": "dismiss_error",
    },
}

# Key sequences: second key -> action, keyed by the prefix.
SEQUENCES: dict[Mode, dict[str, dict[str, str]]] = {
    Mode.COMPOSE: {},
    Mode.REVIEW: {
        "g": {"g": "scroll_top"},
    },
}

# Words typed at the prompt that run a command instead of being sent.
TEXT_COMMANDS: dict[str, str] = {
    "clear": "reset_session",
    "exit": "terminate",
    "quit": "terminate",
}


class ModeMachine:
    """Compose / review state machine. Starts composing, never terminates."""

    def __init__(self) -> None:
        self.mode = Mode.COMPOSE

    @property
    def composing(self) -> bool:
        return self.mode is Mode.COMPOSE

    def exit_compose(self) -> None:
        self.mode = Mode.REVIEW

    def enter_compose(self, dispatch_active: bool) -> None:
        if dispatch_active:
            raise DispatchActive("waiting for response")
        self.mode = Mode.COMPOSE

    def force_review(self) -> None:
        self.mode = Mode.REVIEW


class KeyRouter:
    """Resolves key presses to action names for the current mode."""

    def __init__(self) -> None:
        self._prefix: Optional[str] = None

    def resolve(self, mode: Mode, key: str) -> Optional[str]:
        sequences = SEQUENCES[mode]

        if self._prefix is not None:
            prefix, self._prefix = self._prefix, None
            action = sequences.get(prefix, {}).get(key)
            if action is not None:
                return action

        if key in sequences:
            self._prefix = key
            return None

        return MODE_KEYMAP[mode].get(key)

    def clear(self) -> None:
        self._prefix = None

    @property
    def waiting(self) -> bool:
        return self._prefix is not None
