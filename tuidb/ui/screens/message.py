"""A simple modal message screen (no buttons)."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Static


class MessageScreen(ModalScreen):
    """Modal screen that shows a message and closes via keyboard."""

    BINDINGS = [
        Binding("enter", "close", "Continue"),
        Binding("escape", "close", "Close", show=False),
        Binding("q", "close", "Close", show=False),
    ]

    CSS = """
    MessageScreen {
        align: center middle;
        background: transparent;
    }

    #message-dialog {
        width: 70;
        max-width: 90%;
        height: auto;
        border: solid $primary;
        border-title-color: $primary;
    }

    #message-dialog.error {
        border: solid $error;
        border-title-color: $error;
    }

    #message-content {
        padding: 1;
    }
    """

    def __init__(self, title: str, message: str, error: bool = False):
        super().__init__()
        self._title = title
        self.message = message
        self._error = error

    def compose(self) -> ComposeResult:
        dialog = Vertical(id="message-dialog", classes="error" if self._error else "")
        dialog.border_title = self._title
        dialog.border_subtitle = "<enter> continue"
        with dialog:
            yield Static(self.message, id="message-content", markup=False)

    def action_close(self) -> None:
        self.dismiss()

    def check_action(self, action: str, parameters: tuple) -> bool | None:
        # Prevent underlying screens from receiving actions when another modal is on top.
        if self.app.screen is not self:
            return False
        return super().check_action(action, parameters)
