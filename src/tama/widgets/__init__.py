"""
Custom UI widgets for the tama chat client.
"""
from .prompt_input import PromptInput
from .status_line import StatusLine
from .turn_view import TurnView

__all__ = ["PromptInput", "StatusLine", "TurnView"]
