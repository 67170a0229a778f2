from __future__ import annotations

from typing import Optional

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.widgets import Button, Label, ListItem, RadioButton, RadioSet, SelectionList, Static

from .datamodels import CATEGORIES, DELIVERY_METHODS, FREQUENCIES, AlertRecord, Article, Preferences

FREQUENCY_LABELS = {
    "immediate": "Instant alerts, as soon as news breaks",
    "hourly": "Hourly digest",
    "daily": "Daily digest",
}
METHOD_LABELS = {
    "email": "Email",
    "push": "Push notifications",
    "both": "Both",
}


def _published(value) -> str:
    return value.strftime("%b %d, %Y %H:%M") if value else ""


# --- UI Widgets ---
class HeadlineItem(ListItem):
    def __init__(self, article: Article):
        super().__init__()
        self.article = article

    def compose(self) -> ComposeResult:
        with Horizontal(classes="headline-container"):
            yield Static("★" if self.article.bookmarked else " ", classes="headline-flag")
            yield Static(self.article.category, classes="headline-section")
            yield Static(self.article.title, classes="headline-title")
            yield Static(self.article.source, classes="headline-source")


class AlertItem(ListItem):
    def __init__(self, record: AlertRecord, show_detail: bool):
        super().__init__()
        self.record = record
        self.show_detail = show_detail

    def compose(self) -> ComposeResult:
        with Vertical(classes="alert-container"):
            with Horizontal(classes="alert-header"):
                yield Static("★" if self.record.bookmarked else " ", classes="headline-flag")
                yield Static(self.record.category, classes="headline-section")
                yield Static(self.record.title, classes="headline-title")
                yield Static(_published(self.record.published_at), classes="alert-date")
            if self.show_detail:
                if self.record.description:
                    yield Static(self.record.description, classes="alert-description")
                yield Static(
                    f"{self.record.source}  [u]{self.record.url}[/u]", classes="alert-source"
                )


class PreferencesForm(Vertical):
    """Category picker plus frequency and delivery radios, seeded from a Preferences."""

    def compose(self) -> ComposeResult:
        yield Label("News categories", classes="settings-label")
        yield SelectionList[str](
            *[(c.capitalize(), c) for c in CATEGORIES], id="prefs-categories"
        )
        yield Label("Alert frequency", classes="settings-label")
        with RadioSet(id="prefs-frequency"):
            for value in FREQUENCIES:
                yield RadioButton(FREQUENCY_LABELS[value], name=value)
        yield Label("Notification method", classes="settings-label")
        with RadioSet(id="prefs-method"):
            for value in DELIVERY_METHODS:
                yield RadioButton(METHOD_LABELS[value], name=value)
        yield Button("Save Preferences", id="save-preferences", classes="settings-button")

    def show(self, preferences: Optional[Preferences]) -> None:
        preferences = preferences or Preferences()
        selection = self.query_one("#prefs-categories", SelectionList)
        selection.deselect_all()
        for category in preferences.categories:
            if category in CATEGORIES:
                selection.select(category)
        for radio_set_id, value in (
            ("#prefs-frequency", preferences.frequency),
            ("#prefs-method", preferences.method),
        ):
            for button in self.query_one(radio_set_id, RadioSet).query(RadioButton):
                button.value = button.name == value

    def draft(self) -> Preferences:
        selected = set(self.query_one("#prefs-categories", SelectionList).selected)
        frequency = self.query_one("#prefs-frequency", RadioSet).pressed_button
        method = self.query_one("#prefs-method", RadioSet).pressed_button
        return Preferences(
            categories=tuple(c for c in CATEGORIES if c in selected),
            frequency=frequency.name if frequency else "",
            method=method.name if method else "",
        )


class StatusBar(Static):
    loading_status = reactive("")
    identity = reactive("")
    keybinding_hint = reactive("")

    def on_mount(self) -> None:
        self.update_display()

    def set_keybindings(self, hint: str) -> None:
        """Set the keybinding hint text."""
        self.keybinding_hint = hint

    def update_display(self) -> None:
        """Update the status bar display."""
        status_items = [self.identity or "Not signed in"]
        if self.loading_status:
            status_items.append(self.loading_status)
        if self.keybinding_hint:
            status_items.append(self.keybinding_hint)
        self.update(" | ".join(status_items))

    def watch_loading_status(self, loading_status: str) -> None:
        self.update_display()

    def watch_identity(self, identity: str) -> None:
        self.update_display()

    def watch_keybinding_hint(self, keybinding_hint: str) -> None:
        self.update_display()


class ErrorMessage(Static):
    def __init__(self, message: str):
        super().__init__(Text(message, style="bold red"))
