"""Vim keymap configuration.

Defines every key binding as data so that tests and users can swap the
keymap without touching the engine. Keys are Textual key names for special
keys ("escape", "enter", "ctrl+e") and the character itself for printable
keys ("j", "G", "$", ":").
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto

from .commands import CommandKind as K


# Textual names of single keys. Any other binding key longer than one
# character is a multi-key sequence such as "gg".
SPECIAL_KEYS = frozenset({
    "left", "right", "up", "down", "home", "end",
    "enter", "tab", "escape", "backspace", "delete",
})


def is_sequence(key: str) -> bool:
    return len(key) > 1 and key not in SPECIAL_KEYS and "+" not in key


class BindingType(Enum):
    """Type of vim key binding."""

    MOTION = auto()          # Movement command (h, j, w, etc.)
    OPERATOR = auto()        # Acts on the cursor target or selection (d, y)
    ACTION = auto()          # Immediate action (i, a, o, p, u, etc.)
    MODE_SWITCH = auto()     # Mode change (v, :, /)


@dataclass
class VimBinding:
    """Definition of a vim key binding."""

    key: str                          # Key or key sequence (e.g., "w", "gg")
    type: BindingType                 # Type of binding
    command: K                        # Semantic command emitted
    description: str = ""             # Human-readable description
    modes: tuple[str, ...] = ("normal",)  # Which modes this applies to


def _motion(key: str, command: K, description: str) -> VimBinding:
    return VimBinding(key, BindingType.MOTION, command, description, modes=("normal", "visual"))


@dataclass
class VimKeymapConfig:
    """Configuration for vim keybindings."""

    # ─────────────────────────────────────────────────────────────────
    # Motions - cursor movement commands
    # ─────────────────────────────────────────────────────────────────
    motions: dict[str, VimBinding] = field(default_factory=lambda: {
        "h": _motion("h", K.MOVE_LEFT, "Left"),
        "l": _motion("l", K.MOVE_RIGHT, "Right"),
        "j": _motion("j", K.MOVE_DOWN, "Down"),
        "k": _motion("k", K.MOVE_UP, "Up"),
        "left": _motion("left", K.MOVE_LEFT, "Left"),
        "right": _motion("right", K.MOVE_RIGHT, "Right"),
        "down": _motion("down", K.MOVE_DOWN, "Down"),
        "up": _motion("up", K.MOVE_UP, "Up"),
        "0": _motion("0", K.LINE_START, "Line start"),
        "home": _motion("home", K.LINE_START, "Line start"),
        "$": _motion("$", K.LINE_END, "Line end"),
        "end": _motion("end", K.LINE_END, "Line end"),
        "w": _motion("w", K.WORD_FORWARD, "Next word"),
        "b": _motion("b", K.WORD_BACKWARD, "Previous word"),
        "gg": _motion("gg", K.GOTO_TOP, "First line"),
        "G": _motion("G", K.GOTO_BOTTOM, "Last line"),
    })

    # ─────────────────────────────────────────────────────────────────
    # Operators - act on the cursor target, or on the selection in visual
    # ─────────────────────────────────────────────────────────────────
    operators: dict[str, VimBinding] = field(default_factory=lambda: {
        "d": VimBinding("d", BindingType.OPERATOR, K.DELETE, "Delete", modes=("normal", "visual")),
        "y": VimBinding("y", BindingType.OPERATOR, K.YANK, "Yank", modes=("normal", "visual")),
        "x": VimBinding("x", BindingType.OPERATOR, K.DELETE_CHAR, "Delete char", modes=("normal", "visual")),
    })

    # ─────────────────────────────────────────────────────────────────
    # Actions - immediate commands
    # ─────────────────────────────────────────────────────────────────
    actions: dict[str, VimBinding] = field(default_factory=lambda: {
        # Insert mode entry
        "i": VimBinding("i", BindingType.ACTION, K.ENTER_INSERT, "Insert"),
        "a": VimBinding("a", BindingType.ACTION, K.ENTER_INSERT_AFTER, "Append"),
        "I": VimBinding("I", BindingType.ACTION, K.INSERT_LINE_START, "Insert at line start"),
        "A": VimBinding("A", BindingType.ACTION, K.INSERT_LINE_END, "Append at line end"),
        "o": VimBinding("o", BindingType.ACTION, K.OPEN_LINE_BELOW, "Open line below"),
        "O": VimBinding("O", BindingType.ACTION, K.OPEN_LINE_ABOVE, "Open line above"),
        "e": VimBinding("e", BindingType.ACTION, K.EDIT_CELL, "Edit cell / connection"),

        # Undo/redo and paste
        "u": VimBinding("u", BindingType.ACTION, K.UNDO, "Undo"),
        "r": VimBinding("r", BindingType.ACTION, K.REDO, "Redo"),
        "p": VimBinding("p", BindingType.ACTION, K.PASTE, "Paste"),

        # Search
        "n": VimBinding("n", BindingType.ACTION, K.NEXT_MATCH, "Next match"),
        "N": VimBinding("N", BindingType.ACTION, K.PREV_MATCH, "Previous match"),

        # Panes and connections
        "enter": VimBinding("enter", BindingType.ACTION, K.ACTIVATE, "Open"),
        "tab": VimBinding("tab", BindingType.ACTION, K.NEXT_PANE, "Next pane"),
        "shift+tab": VimBinding("shift+tab", BindingType.ACTION, K.PREV_PANE, "Previous pane"),
        "X": VimBinding("X", BindingType.ACTION, K.CLOSE_CONNECTION, "Close connection"),
        "C": VimBinding("C", BindingType.ACTION, K.CONNECTION_MANAGER, "New connection"),
        "R": VimBinding("R", BindingType.ACTION, K.REFRESH, "Refresh"),

        "escape": VimBinding("escape", BindingType.ACTION, K.ESCAPE, "Back"),
    })

    # ─────────────────────────────────────────────────────────────────
    # Global actions - same meaning in normal and insert mode
    # ─────────────────────────────────────────────────────────────────
    global_actions: dict[str, VimBinding] = field(default_factory=lambda: {
        "ctrl+e": VimBinding("ctrl+e", BindingType.ACTION, K.EXECUTE_AT_CURSOR, "Execute statement", modes=("normal", "insert")),
        "ctrl+r": VimBinding("ctrl+r", BindingType.ACTION, K.EXECUTE_ALL, "Execute all", modes=("normal", "insert")),
        "ctrl+s": VimBinding("ctrl+s", BindingType.ACTION, K.COMMIT, "Save changes", modes=("normal", "insert")),
        "ctrl+n": VimBinding("ctrl+n", BindingType.ACTION, K.NEW_ROW, "New row", modes=("normal", "insert")),
        "ctrl+d": VimBinding("ctrl+d", BindingType.ACTION, K.DISCARD_CHANGES, "Discard changes", modes=("normal", "insert")),
        "ctrl+c": VimBinding("ctrl+c", BindingType.ACTION, K.QUIT, "Quit", modes=("normal", "insert", "visual", "command")),
        "ctrl+q": VimBinding("ctrl+q", BindingType.ACTION, K.QUIT, "Quit", modes=("normal", "insert", "visual", "command")),
    })

    # ─────────────────────────────────────────────────────────────────
    # Insert mode keys other than printable characters
    # ─────────────────────────────────────────────────────────────────
    insert_keys: dict[str, VimBinding] = field(default_factory=lambda: {
        "escape": VimBinding("escape", BindingType.ACTION, K.EXIT_INSERT, "Normal mode", modes=("insert",)),
        "enter": VimBinding("enter", BindingType.ACTION, K.INSERT_NEWLINE, "Newline", modes=("insert",)),
        "tab": VimBinding("tab", BindingType.ACTION, K.INSERT_TAB, "Tab", modes=("insert",)),
        "backspace": VimBinding("backspace", BindingType.ACTION, K.BACKSPACE, "Backspace", modes=("insert",)),
        "delete": VimBinding("delete", BindingType.ACTION, K.DELETE_CHAR, "Delete", modes=("insert",)),
        "left": VimBinding("left", BindingType.MOTION, K.MOVE_LEFT, "Left", modes=("insert",)),
        "right": VimBinding("right", BindingType.MOTION, K.MOVE_RIGHT, "Right", modes=("insert",)),
        "up": VimBinding("up", BindingType.MOTION, K.MOVE_UP, "Up", modes=("insert",)),
        "down": VimBinding("down", BindingType.MOTION, K.MOVE_DOWN, "Down", modes=("insert",)),
        "home": VimBinding("home", BindingType.MOTION, K.LINE_START, "Line start", modes=("insert",)),
        "end": VimBinding("end", BindingType.MOTION, K.LINE_END, "Line end", modes=("insert",)),
    })

    # ─────────────────────────────────────────────────────────────────
    # Mode switches
    # ─────────────────────────────────────────────────────────────────
    mode_switches: dict[str, VimBinding] = field(default_factory=lambda: {
        "v": VimBinding("v", BindingType.MODE_SWITCH, K.ENTER_VISUAL, "Visual mode"),
        ":": VimBinding(":", BindingType.MODE_SWITCH, K.ENTER_COMMAND_LINE, "Command mode", modes=("normal", "visual")),
        "/": VimBinding("/", BindingType.MODE_SWITCH, K.ENTER_COMMAND_LINE, "Search"),
    })


class VimKeymapProvider(ABC):
    """Abstract base class for vim keymap providers."""

    @abstractmethod
    def get_config(self) -> VimKeymapConfig:
        """Get the keymap configuration."""
        pass

    def lookup(self, key: str, mode: str = "normal") -> VimBinding | None:
        """Look up any binding for a key in the given mode."""
        config = self.get_config()

        if mode == "insert":
            categories = [config.global_actions, config.insert_keys]
        else:
            categories = [
                config.global_actions,
                config.motions,
                config.operators,
                config.actions,
                config.mode_switches,
            ]
        for bindings in categories:
            binding = bindings.get(key)
            if binding is not None and (mode in binding.modes or not binding.modes):
                return binding

        return None

    def is_sequence_prefix(self, key: str) -> bool:
        """True if ``key`` starts a multi-key binding such as gg."""
        if len(key) != 1:
            return False
        config = self.get_config()
        return any(
            is_sequence(seq) and seq.startswith(key)
            for bindings in (config.motions, config.operators, config.actions)
            for seq in bindings
        )

    def get_sequence(self, sequence: str, mode: str = "normal") -> VimBinding | None:
        config = self.get_config()
        for bindings in (config.motions, config.operators, config.actions):
            binding = bindings.get(sequence)
            if binding is not None and mode in binding.modes:
                return binding
        return None

    def describe(self) -> list[tuple[str, str]]:
        """(key, description) pairs for the help line."""
        config = self.get_config()
        pairs: list[tuple[str, str]] = []
        for bindings in (config.motions, config.operators, config.actions, config.global_actions, config.mode_switches):
            pairs.extend((b.key, b.description) for b in bindings.values())
        return pairs


class DefaultVimKeymapProvider(VimKeymapProvider):
    """Default vim keymap with standard bindings."""

    def __init__(self) -> None:
        self._config = VimKeymapConfig()

    def get_config(self) -> VimKeymapConfig:
        return self._config


# Global vim keymap instance
_vim_keymap_provider: VimKeymapProvider | None = None


def get_vim_keymap() -> VimKeymapProvider:
    """Get the current vim keymap provider."""
    global _vim_keymap_provider
    if _vim_keymap_provider is None:
        _vim_keymap_provider = DefaultVimKeymapProvider()
    return _vim_keymap_provider


def set_vim_keymap(provider: VimKeymapProvider) -> None:
    """Set the vim keymap provider (for testing or custom keymaps)."""
    global _vim_keymap_provider
    _vim_keymap_provider = provider


def reset_vim_keymap() -> None:
    """Reset to default vim keymap provider."""
    global _vim_keymap_provider
    _vim_keymap_provider = None
