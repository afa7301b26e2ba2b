"""Vim state management.

Tracks the current mode, pending key prefix, count prefix, visual anchor,
command line and register.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

Position = tuple[int, int]


class VimMode(Enum):
    """Vim editing modes."""

    NORMAL = "NORMAL"
    INSERT = "INSERT"
    VISUAL = "VISUAL"
    COMMAND = "COMMAND"


@dataclass
class VimState:
    """Tracks all vim editing state.

    This is the central state object that the VimEngine uses to track:
    - Current mode (NORMAL, INSERT, VISUAL, COMMAND)
    - Pending multi-key prefix (the first g of gg)
    - Count prefix (e.g., 3 in 3j)
    - Visual selection anchor
    - Command line text and whether it is a search
    - Register holding the last yank
    """

    mode: VimMode = VimMode.NORMAL

    # Buffer for multi-char sequences (gg)
    pending_prefix: str = ""

    # Input accumulator for building counts
    input_buffer: str = ""

    # Visual mode anchor (row, col)
    visual_anchor: Position | None = None

    # Command line state; prefix is ":" for commands and "/" for search
    command_buffer: str = ""
    command_prefix: str = ":"

    register: str = ""
    last_search: str = ""

    def reset_counts(self) -> None:
        """Reset count accumulators."""
        self.input_buffer = ""

    def reset_pending(self) -> None:
        """Drop any half-typed sequence and count."""
        self.pending_prefix = ""
        self.reset_counts()

    def enter_mode(self, mode: VimMode) -> None:
        """Transition to a new mode with proper cleanup."""
        old_mode = self.mode
        self.mode = mode

        # Clear visual anchor when leaving visual mode
        if old_mode == VimMode.VISUAL and mode != VimMode.VISUAL:
            self.visual_anchor = None

        if old_mode == VimMode.COMMAND and mode != VimMode.COMMAND:
            self.command_buffer = ""

        self.reset_pending()

    def reset(self) -> None:
        """Back to a clean Normal mode, keeping the register and last search."""
        self.enter_mode(VimMode.NORMAL)
        self.visual_anchor = None
        self.command_buffer = ""

    def start_visual(self, anchor: Position) -> None:
        """Enter visual mode with anchor at given position."""
        self.enter_mode(VimMode.VISUAL)
        self.visual_anchor = anchor

    def is_visual_mode(self) -> bool:
        return self.mode == VimMode.VISUAL

    def selection(self, cursor: Position) -> tuple[Position, Position] | None:
        """Inclusive (start, end) between the anchor and ``cursor``, ordered."""
        if self.visual_anchor is None:
            return None
        return (min(self.visual_anchor, cursor), max(self.visual_anchor, cursor))

    def accumulate_digit(self, digit: str) -> bool:
        """Accumulate a digit for count prefix. Returns True if consumed."""
        if digit == "0" and not self.input_buffer:
            # 0 at start is a motion (go to line start), not a count
            return False

        if len(digit) == 1 and digit in "0123456789":
            self.input_buffer += digit
            return True
        return False

    def consume_count(self) -> int:
        """Consume accumulated count from input buffer."""
        if self.input_buffer:
            count = int(self.input_buffer)
            self.input_buffer = ""
            return max(1, count)
        return 1

    @property
    def has_count(self) -> bool:
        return bool(self.input_buffer)
