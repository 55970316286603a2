"""
Viewport showing one conversation turn at a time.
"""
from typing import Optional

from rich.console import Group, RenderableType
from rich.markdown import Markdown
from rich.text import Text
from textual.containers import VerticalScroll
from textual.widgets import Static

from tama.models import Turn

RULE_STYLE = "color(240)"


def rule(label: str, width: int) -> Text:
    head = f"──── {label} "
    return Text(head + "─" * max(width - len(head), 0), style=RULE_STYLE)


def response_label(turn: Turn) -> str:
    if turn.cancelled:
        return "Response (cancelled)"
    if turn.duration is not None and turn.response_text:
        return f"Response ({turn.duration.total_seconds():.1f}s)"
    return "Response"


def render_turn(turn: Optional[Turn], streaming_text: str, width: int) -> RenderableType:
    """
    Request rule and text, response rule, then the response as markdown.

    `streaming_text` is only shown while the turn is still pending.
    """
    if turn is None:
        return Text("")

    parts: list[RenderableType] = [
        rule("Request", width),
        Text(turn.request_text),
        Text(""),
        rule(response_label(turn), width),
    ]

    if turn.response_text:
        parts.append(Markdown(turn.response_text))
    elif turn.cancelled:
        parts.append(Text("Request cancelled"))
    elif turn.error:
        parts.append(Text(f"Request failed: {turn.error}", style="red"))
    elif turn.pending and streaming_text:
        parts.append(Markdown(streaming_text))
    elif turn.pending:
        parts.append(Text("Waiting..."))

    return Group(*parts)


class TurnView(VerticalScroll):
    def compose(self):
        yield Static(id="turn_body")

    def show(self, turn: Optional[Turn], streaming_text: str, width: int) -> None:
        self.query_one("#turn_body", Static).update(render_turn(turn, streaming_text, width))
