"""Clipboard sink for yanked text."""

from __future__ import annotations

import logging
from collections.abc import Callable

LOG = logging.getLogger(__name__)


class ClipboardSink:
    """Hands yanked text to the terminal or the system clipboard.

    Copy failures are reported through the return value only. The last text
    is always kept internally so ``p`` works without a system clipboard.
    """

    def __init__(self, terminal_copy: Callable[[str], None] | None = None) -> None:
        self._terminal_copy = terminal_copy
        self.internal: str = ""

    def copy(self, text: str) -> bool:
        self.internal = text

        # Prefer Textual's clipboard support (OSC52 where available).
        if self._terminal_copy is not None:
            try:
                self._terminal_copy(text)
                return True
            except Exception as e:
                LOG.debug("Terminal clipboard failed: %s", e)

        # Fallback to system clipboard via pyperclip (requires platform support).
        try:
            import pyperclip

            pyperclip.copy(text)
            return True
        except Exception as e:
            LOG.debug("System clipboard failed: %s", e)
            return False


class MemoryClipboard(ClipboardSink):
    """Clipboard that never leaves the process."""

    def __init__(self) -> None:
        super().__init__()
        self.copies: list[str] = []

    def copy(self, text: str) -> bool:
        self.internal = text
        self.copies.append(text)
        return True
