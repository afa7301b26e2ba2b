"""Connection profile form: create, edit and test saved profiles."""

from __future__ import annotations

from collections.abc import Callable

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Label, Select, Static

from ...config import DATABASE_TYPE_LABELS, ConnectionConfig

# (field, label, placeholder)
_SERVER_FIELDS = (
    ("server", "Host", "localhost"),
    ("port", "Port", "3306"),
    ("database", "Database", "(optional)"),
    ("username", "User", ""),
    ("password", "Password", ""),
)


class ConnectionScreen(ModalScreen[ConnectionConfig | None]):
    """Form for one profile. Dismisses with the edited config or None."""

    BINDINGS = [
        Binding("ctrl+s", "save", "Save"),
        Binding("ctrl+t", "test", "Test"),
        Binding("escape", "cancel", "Cancel"),
    ]

    CSS = """
    ConnectionScreen {
        align: center middle;
        background: transparent;
    }

    #connection-dialog {
        width: 70;
        max-width: 95%;
        height: auto;
        max-height: 90%;
        border: solid $primary;
        border-title-color: $primary;
        padding: 0 1;
    }

    #connection-dialog Label {
        color: $text-muted;
        margin-top: 1;
    }

    #connection-dialog .hidden {
        display: none;
    }

    #connection-status {
        height: auto;
        margin-top: 1;
    }

    #connection-status.error {
        color: $error;
    }

    #connection-status.success {
        color: $success;
    }
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        tester: Callable[[ConnectionConfig, Callable[[str | None], None]], None] | None = None,
    ):
        super().__init__()
        self.config = config
        self.editing = config is not None
        self._tester = tester

    def compose(self) -> ComposeResult:
        config = self.config or ConnectionConfig(name="")
        dialog = Vertical(id="connection-dialog")
        dialog.border_title = "Edit connection" if self.editing else "New connection"
        dialog.border_subtitle = "^s save  ^t test  esc cancel"
        with dialog:
            yield Label("Name")
            yield Input(config.name, id="field-name")
            yield Label("Type")
            yield Select(
                [(label, db_type.value) for db_type, label in DATABASE_TYPE_LABELS.items()],
                value=config.db_type,
                allow_blank=False,
                id="field-db_type",
            )
            yield Label("File", id="label-file_path", classes="file-field")
            yield Input(config.file_path, placeholder="path/to/database.db", id="field-file_path", classes="file-field")
            for name, label, placeholder in _SERVER_FIELDS:
                yield Label(label, classes="server-field")
                yield Input(
                    str(getattr(config, name)),
                    placeholder=placeholder,
                    password=name == "password",
                    id=f"field-{name}",
                    classes="server-field",
                )
            yield Static("", id="connection-status", markup=False)

    def on_mount(self) -> None:
        self._update_visibility()
        self.query_one("#field-name", Input).focus()

    def on_select_changed(self, event: Select.Changed) -> None:
        self._update_visibility()

    def _update_visibility(self) -> None:
        file_based = self._read_config().is_file_based
        for widget in self.query(".file-field"):
            widget.set_class(not file_based, "hidden")
        for widget in self.query(".server-field"):
            widget.set_class(file_based, "hidden")

    def _read_config(self) -> ConnectionConfig:
        def value(name: str) -> str:
            return self.query_one(f"#field-{name}", Input).value.strip()

        db_type = self.query_one("#field-db_type", Select).value
        config = ConnectionConfig(name=value("name"), db_type=str(db_type))
        if config.is_file_based:
            config.file_path = value("file_path")
        else:
            config.server = value("server")
            config.port = value("port") or config.port
            config.database = value("database")
            config.username = value("username")
            config.password = self.query_one("#field-password", Input).value
        return config

    def _validate(self, config: ConnectionConfig) -> str | None:
        if not config.name:
            return "Name is required"
        if config.is_file_based and not config.file_path:
            return "File path is required"
        if not config.is_file_based and not config.server:
            return "Host is required"
        if config.port and not config.port.isdigit():
            return "Port must be a number"
        return None

    def _set_status(self, message: str, kind: str = "") -> None:
        status = self.query_one("#connection-status", Static)
        status.update(message)
        status.set_class(kind == "error", "error")
        status.set_class(kind == "success", "success")

    def action_save(self) -> None:
        config = self._read_config()
        problem = self._validate(config)
        if problem:
            self._set_status(problem, "error")
            return
        self.dismiss(config)

    def action_test(self) -> None:
        if self._tester is None:
            return
        config = self._read_config()
        problem = self._validate(config)
        if problem:
            self._set_status(problem, "error")
            return
        self._set_status("Testing...")
        self._tester(config, self._on_test_done)

    def _on_test_done(self, error: str | None) -> None:
        if not self.is_attached:
            return
        if error:
            self._set_status(error, "error")
        else:
            self._set_status("Connection OK", "success")

    def action_cancel(self) -> None:
        self.dismiss(None)
