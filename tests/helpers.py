"""Key-feeding helpers shared by the pane tests."""

from __future__ import annotations

from tuidb.panes.coordinator import PaneCoordinator
from tuidb.panes.effects import PaneEffect


def press(coordinator: PaneCoordinator, *keys: str) -> PaneEffect | None:
    """Feed key names one at a time."""
    effect = None
    for key in keys:
        effect = coordinator.handle_key(key)
    return effect


def type_text(coordinator: PaneCoordinator, text: str) -> PaneEffect | None:
    """Feed every character of ``text`` as its own key."""
    effect = None
    for ch in text:
        effect = coordinator.handle_key(ch)
    return effect


def command(coordinator: PaneCoordinator, line: str) -> PaneEffect | None:
    """Type ``:line`` and submit it."""
    press(coordinator, ":")
    type_text(coordinator, line)
    return press(coordinator, "enter")
