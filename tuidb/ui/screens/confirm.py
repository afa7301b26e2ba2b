"""Yes/no confirmation dialog."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Static


class ConfirmScreen(ModalScreen[bool]):
    """Dismisses with True on ``y`` and False on ``n`` or escape."""

    BINDINGS = [
        Binding("y", "confirm", "Yes"),
        Binding("n", "cancel", "No"),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    CSS = """
    ConfirmScreen {
        align: center middle;
        background: transparent;
    }

    #confirm-dialog {
        width: 50;
        max-width: 90%;
        height: auto;
        border: solid $warning;
        border-title-color: $warning;
        padding: 1;
    }
    """

    def __init__(self, title: str, message: str = ""):
        super().__init__()
        self._title = title
        self._message = message

    def compose(self) -> ComposeResult:
        dialog = Vertical(id="confirm-dialog")
        dialog.border_title = self._title
        dialog.border_subtitle = "<y> yes  <n> no"
        with dialog:
            yield Static(self._message, markup=False)

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)
