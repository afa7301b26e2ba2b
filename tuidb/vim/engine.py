"""Vim emulation engine.

The VimEngine is a pure state machine that:
- Takes one key at a time
- Tracks mode, pending multi-key prefix, count, visual anchor and command line
- Emits at most one semantic Command per key

It performs no I/O and knows nothing about panes or databases; the pane
coordinator interprets the emitted commands.
"""

from __future__ import annotations

from dataclasses import dataclass

from .commands import INSERT_ENTRIES, Command, CommandKind
from .keymap import BindingType, VimKeymapProvider, get_vim_keymap
from .state import Position, VimMode, VimState

_KEY_ALIASES = {"space": " "}


@dataclass
class KeyResult:
    """Result of processing a key event."""

    consumed: bool = True            # Was the key handled?
    command: Command | None = None   # Semantic command to dispatch, if any
    mode: VimMode = VimMode.NORMAL   # Mode after the key


class VimEngine:
    """Main vim emulation controller."""

    def __init__(self, keymap: VimKeymapProvider | None = None) -> None:
        self._state = VimState()
        self._keymap = keymap or get_vim_keymap()

    @property
    def mode(self) -> VimMode:
        """Current vim mode."""
        return self._state.mode

    @property
    def state(self) -> VimState:
        """Current vim state."""
        return self._state

    @property
    def command_buffer(self) -> str:
        return self._state.command_buffer

    @property
    def command_line(self) -> str:
        """Command line as displayed, prefix included."""
        if self._state.mode != VimMode.COMMAND:
            return ""
        return self._state.command_prefix + self._state.command_buffer

    @property
    def register(self) -> str:
        return self._state.register

    def yank(self, text: str) -> None:
        """Store yanked text in the register."""
        self._state.register = text

    # ─────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────

    def handle_key(self, key: str, cursor: Position | None = None) -> KeyResult:
        """Process a key event.

        Args:
            key: The key that was pressed (e.g., "j", "G", "escape", "ctrl+e")
            cursor: The focused pane's cursor, used to anchor visual mode

        Returns:
            KeyResult with the emitted command, if any
        """
        key = _KEY_ALIASES.get(key, key)
        mode = self._state.mode

        if mode == VimMode.INSERT:
            return self._handle_insert_mode(key)
        elif mode == VimMode.VISUAL:
            return self._handle_visual_mode(key, cursor or (0, 0))
        elif mode == VimMode.COMMAND:
            return self._handle_command_mode(key)
        return self._handle_normal_mode(key, cursor or (0, 0))

    def enter_insert_mode(self) -> None:
        """Force insert mode, e.g. when a pane starts editing a cell."""
        self._state.enter_mode(VimMode.INSERT)

    def enter_normal_mode(self) -> None:
        """Force normal mode, clearing prefix, count, anchor and command line."""
        self._state.reset()

    def _result(self, command: Command | None = None, consumed: bool = True) -> KeyResult:
        return KeyResult(consumed=consumed, command=command, mode=self._state.mode)

    def _escape(self, kind: CommandKind) -> KeyResult:
        self._state.reset()
        return self._result(Command(kind))

    # ─────────────────────────────────────────────────────────────────
    # Insert Mode
    # ─────────────────────────────────────────────────────────────────

    def _handle_insert_mode(self, key: str) -> KeyResult:
        """Handle keys in insert mode."""
        binding = self._keymap.lookup(key, "insert")
        if binding is not None:
            if binding.command == CommandKind.EXIT_INSERT:
                return self._escape(CommandKind.EXIT_INSERT)
            return self._result(Command(binding.command))

        if len(key) == 1 and key.isprintable():
            return self._result(Command(CommandKind.INSERT_CHAR, text=key))

        return self._result(consumed=False)

    # ─────────────────────────────────────────────────────────────────
    # Normal Mode
    # ─────────────────────────────────────────────────────────────────

    def _handle_normal_mode(self, key: str, cursor: Position) -> KeyResult:
        """Handle keys in normal mode."""
        if key == "escape":
            return self._escape(CommandKind.ESCAPE)

        # Handle multi-char sequences (gg)
        if self._state.pending_prefix:
            result = self._handle_key_buffer(key, "normal")
            if result is not None:
                return result

        # Check for count prefix
        if self._state.accumulate_digit(key):
            return self._result()

        binding = self._keymap.lookup(key, "normal")

        if binding is None:
            if self._keymap.is_sequence_prefix(key):
                self._state.pending_prefix = key
                return self._result()
            self._state.reset_counts()
            return self._result(consumed=False)

        count = self._state.consume_count()

        if binding.type == BindingType.MODE_SWITCH:
            return self._execute_mode_switch(key, cursor)

        if binding.command in INSERT_ENTRIES:
            self._state.enter_mode(VimMode.INSERT)

        return self._result(Command(binding.command, count=count))

    def _handle_key_buffer(self, key: str, mode: str) -> KeyResult | None:
        """Resolve a pending multi-key sequence.

        Returns None when ``key`` cannot extend the prefix; the prefix is
        dropped and the caller re-evaluates ``key`` as a fresh key.
        """
        sequence = self._state.pending_prefix + key
        self._state.pending_prefix = ""

        binding = self._keymap.get_sequence(sequence, mode)
        if binding is None:
            return None
        count = self._state.consume_count()
        return self._result(Command(binding.command, count=count))

    def _execute_mode_switch(self, key: str, cursor: Position) -> KeyResult:
        if key == "v":
            self._state.start_visual(cursor)
            return self._result(Command(CommandKind.ENTER_VISUAL))

        self._state.enter_mode(VimMode.COMMAND)
        self._state.command_prefix = key
        self._state.command_buffer = ""
        return self._result(Command(CommandKind.ENTER_COMMAND_LINE, text=key))

    # ─────────────────────────────────────────────────────────────────
    # Visual Mode
    # ─────────────────────────────────────────────────────────────────

    def _handle_visual_mode(self, key: str, cursor: Position) -> KeyResult:
        """Handle keys in visual mode."""
        if key == "escape":
            return self._escape(CommandKind.EXIT_VISUAL)

        if self._state.pending_prefix:
            result = self._handle_key_buffer(key, "visual")
            if result is not None:
                return result

        if self._state.accumulate_digit(key):
            return self._result()

        binding = self._keymap.lookup(key, "visual")
        if binding is None:
            if self._keymap.is_sequence_prefix(key):
                self._state.pending_prefix = key
                return self._result()
            self._state.reset_counts()
            return self._result(consumed=False)

        count = self._state.consume_count()

        if binding.type == BindingType.MOTION:
            return self._result(Command(binding.command, count=count))

        if binding.type == BindingType.OPERATOR:
            selection = self._state.selection(cursor)
            kind = CommandKind.YANK_SELECTION if binding.command == CommandKind.YANK else CommandKind.DELETE_SELECTION
            self._state.reset()
            return self._result(Command(kind, selection=selection))

        if binding.type == BindingType.MODE_SWITCH:
            self._state.visual_anchor = None
            return self._execute_mode_switch(key, cursor)

        if binding.command == CommandKind.QUIT:
            return self._result(Command(CommandKind.QUIT))

        return self._result(consumed=False)

    # ─────────────────────────────────────────────────────────────────
    # Command Mode
    # ─────────────────────────────────────────────────────────────────

    def _handle_command_mode(self, key: str) -> KeyResult:
        """Handle keys in command-line mode."""
        state = self._state

        if key == "escape":
            return self._escape(CommandKind.CANCEL_COMMAND_LINE)

        if key == "enter":
            text = state.command_buffer
            is_search = state.command_prefix == "/"
            if is_search and text:
                state.last_search = text
            state.reset()
            kind = CommandKind.SUBMIT_SEARCH if is_search else CommandKind.SUBMIT_COMMAND_LINE
            return self._result(Command(kind, text=text))

        if key == "backspace":
            if not state.command_buffer:
                return self._escape(CommandKind.CANCEL_COMMAND_LINE)
            state.command_buffer = state.command_buffer[:-1]
            return self._result()

        binding = self._keymap.lookup(key, "command")
        if binding is not None and binding.command == CommandKind.QUIT:
            return self._result(Command(CommandKind.QUIT))

        if len(key) == 1 and key.isprintable():
            state.command_buffer += key
            return self._result()

        return self._result(consumed=False)
