"""
Modal screens for the tama chat client.
"""

from textual import on
from textual.widgets import Static, OptionList
from textual.widgets.option_list import Option
from textual.containers import Center, Vertical
from textual.screen import ModalScreen


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no question shown over the conversation."""
    CSS = """
#panel {
    width: 80%;
    max-width: 60;
    border: round $secondary;
    padding: 1 2;
}
#confirm_options {
    margin-top: 1;
}
#panel OptionList {
    border: none;
    background: transparent;
}
    """
    BINDINGS = [
        ('1', 'choose_yes', 'yes'),
        ('y', 'choose_yes', 'yes'),
        ('2', 'choose_no', 'no'),
        ('n', 'choose_no', 'no'),
        ('escape', 'choose_no', 'no'),
    ]

    def __init__(self, question: str, detail: str = "") -> None:
        super().__init__()
        self.question = question
        self.detail = detail

    def compose(self):
        yield Center(
                Vertical(
                    Static(f"[bold]{self.question}[/bold]\n", markup=True),
                    Static(f"[dim]{self.detail}[/dim]", markup=True),
                    OptionList(
                        Option("1. Yes", id="yes"),
                        Option("2. No", id="no"),
                        id="confirm_options",
                    ),
                ),
                id="panel",
        )

    def on_mount(self) -> None:
        """Focus the options with the first one selected."""
        ol = self.query_one(OptionList)
        ol.focus()
        ol.highlighted = 0

    @on(OptionList.OptionSelected)
    def on_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(event.option_id == 'yes')

    def action_choose_yes(self) -> None:
        self.dismiss(True)

    def action_choose_no(self) -> None:
        self.dismiss(False)
