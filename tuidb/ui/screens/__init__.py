"""Modal screens for tuidb."""

from .confirm import ConfirmScreen
from .connection import ConnectionScreen
from .message import MessageScreen

__all__ = [
    "ConfirmScreen",
    "ConnectionScreen",
    "MessageScreen",
]
