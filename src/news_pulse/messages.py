from __future__ import annotations

from enum import Enum

from textual.message import Message

from .errors import NewsPulseError


class Tab(Enum):
    NEWS = "news-tab"
    ALERTS = "alerts-tab"
    PREFERENCES = "prefs-tab"


class ViewChanged(Message):
    """A store behind one tab changed and the tab must re-render."""
    def __init__(self, tab: Tab) -> None:
        self.tab = tab
        super().__init__()


class CoreError(Message):
    """A failure reported by the client, shown as a toast."""
    def __init__(self, error: NewsPulseError) -> None:
        self.error = error
        super().__init__()


class PreferencesSaved(Message):
    pass
