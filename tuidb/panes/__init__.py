from .browser import BrowserLevel, BrowserPane
from .coordinator import ExecutionReport, PaneCoordinator
from .editor import EditorPane
from .effects import (
    PaneEffect,
    PaneFocus,
    ScreenRequest,
    Severity,
    Snapshot,
    StatusMessage,
)
from .viewer import ViewerPane

__all__ = [
    "BrowserLevel",
    "BrowserPane",
    "EditorPane",
    "ExecutionReport",
    "PaneCoordinator",
    "PaneEffect",
    "PaneFocus",
    "ScreenRequest",
    "Severity",
    "Snapshot",
    "StatusMessage",
    "ViewerPane",
]
