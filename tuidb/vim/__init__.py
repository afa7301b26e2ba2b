"""Modal key handling.

This package provides:
- VimState: mode, prefix, count, anchor, command line and register
- VimEngine: turns keys into semantic commands
- VimKeymapConfig: the key bindings as data
- parse_command_line: the ``:`` command grammar
"""

from .command_line import CommandAction, CommandResult, parse_command_line
from .commands import Command, CommandKind
from .engine import KeyResult, VimEngine
from .keymap import (
    BindingType,
    DefaultVimKeymapProvider,
    VimBinding,
    VimKeymapConfig,
    VimKeymapProvider,
    get_vim_keymap,
    reset_vim_keymap,
    set_vim_keymap,
)
from .state import VimMode, VimState

__all__ = [
    "BindingType",
    "Command",
    "CommandAction",
    "CommandKind",
    "CommandResult",
    "DefaultVimKeymapProvider",
    "KeyResult",
    "VimBinding",
    "VimEngine",
    "VimKeymapConfig",
    "VimKeymapProvider",
    "VimMode",
    "VimState",
    "get_vim_keymap",
    "parse_command_line",
    "reset_vim_keymap",
    "set_vim_keymap",
]
