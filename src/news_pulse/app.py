from __future__ import annotations

import logging
import webbrowser
from typing import Any, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import (
    Button,
    Header,
    Input,
    Label,
    ListItem,
    ListView,
    Select,
    Static,
    TabbedContent,
    TabPane,
)

from .client import NewsClient
from .datamodels import ALL_CATEGORIES, CATEGORIES, FilterState, LoadState
from .errors import ValidationError
from .messages import CoreError, PreferencesSaved, Tab, ViewChanged
from .preferences import PreferenceState
from .screens import SignInScreen
from .widgets import AlertItem, ErrorMessage, HeadlineItem, PreferencesForm, StatusBar

logger = logging.getLogger("news_pulse")

CATEGORY_OPTIONS = [("All Categories", ALL_CATEGORIES)] + [
    (c.capitalize(), c) for c in CATEGORIES
]
KEYBINDINGS_HINT = "[b]i[/] sign in, [b]b[/] bookmark, [b]r[/] refresh, [b]/[/] search"


class NewsPulseApp(App):
    TITLE = "News Pulse"
    SUB_TITLE = "Personalized news alerts"

    CSS = """
    Screen { background: $surface; color: $text; }
    #tabs { height: 1fr; }
    .filters { height: auto; padding: 0 1; }
    .filters Input { width: 2fr; }
    .filters Select { width: 1fr; }
    .headline-container, .alert-header { height: auto; }
    .headline-flag { width: 2; color: $warning; }
    .headline-section { width: 15; color: $accent; }
    .headline-title { width: 1fr; }
    .headline-source, .alert-date { width: 22; color: $text-muted; }
    .alert-container { height: auto; }
    .alert-description { padding: 1 2 0 17; }
    .alert-source { padding: 0 2 1 17; color: $text-muted; }
    ListView { border: none; }
    ListItem { padding: 0 1; }
    .settings-label { text-style: bold; padding-top: 1; }
    .pane-title { text-style: bold; padding-bottom: 1; }
    #sign-in-dialog { width: 60; height: auto; padding: 1 2; border: thick $primary; background: $panel; }
    SignInScreen { align: center middle; }
    .error-title { color: $error; }
    StatusBar { dock: bottom; height: 1; background: $primary; padding: 0 1; }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("b", "bookmark", "Bookmark"),
        Binding("o", "open_in_browser", "Open in browser"),
        Binding("c", "share_link", "Copy link"),
        Binding("i", "sign_in", "Sign in"),
        Binding("x", "sign_out", "Sign out"),
        Binding("/", "focus_filter", "Search"),
        Binding("1", "show_tab('news-tab')", "News", show=False),
        Binding("2", "show_tab('alerts-tab')", "Alerts", show=False),
        Binding("3", "show_tab('prefs-tab')", "Preferences", show=False),
    ]

    def __init__(
        self,
        client: NewsClient,
        theme: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.client = client
        self._theme_name = theme
        self.news_filter = FilterState()
        self.alerts_filter = FilterState()
        self._shown_preferences: Optional[object] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with TabbedContent(id="tabs"):
            with TabPane("News", id=Tab.NEWS.value):
                with Horizontal(classes="filters"):
                    yield Input(placeholder="Search headlines...", id="news-filter")
                    yield Select(
                        CATEGORY_OPTIONS,
                        value=self.client.articles.category or ALL_CATEGORIES,
                        allow_blank=False,
                        id="news-category",
                    )
                yield ListView(id="headlines-list")
            with TabPane("Alerts", id=Tab.ALERTS.value):
                with Horizontal(classes="filters"):
                    yield Input(placeholder="Search alerts...", id="alerts-filter")
                    yield Select(
                        CATEGORY_OPTIONS,
                        value=ALL_CATEGORIES,
                        allow_blank=False,
                        id="alerts-category",
                    )
                yield ListView(id="alerts-list")
            with TabPane("Preferences", id=Tab.PREFERENCES.value):
                yield Label("", id="prefs-status")
                yield PreferencesForm(id="prefs-form")
        yield StatusBar()

    def on_mount(self) -> None:
        # Core events can arrive while a modal is on top; always render into the main screen.
        self.main_screen = self.screen
        if self._theme_name:
            try:
                self.theme = self._theme_name
            except Exception as e:
                logger.warning("Unknown theme %s: %s", self._theme_name, e)

        client = self.client
        client.articles.changed.connect(lambda: self.post_message(ViewChanged(Tab.NEWS)))
        client.bookmarks.changed.connect(lambda: self.post_message(ViewChanged(Tab.NEWS)))
        client.alerts.changed.connect(lambda: self.post_message(ViewChanged(Tab.ALERTS)))
        client.preferences.changed.connect(
            lambda: self.post_message(ViewChanged(Tab.PREFERENCES))
        )
        client.preferences.updated.connect(lambda _: self.post_message(PreferencesSaved()))
        client.errors.connect(lambda error: self.post_message(CoreError(error)))
        client.session.changed.connect(lambda *_: self._update_status())

        self.main_screen.query_one(StatusBar).set_keybindings(KEYBINDINGS_HINT)
        self._update_status()
        for tab in Tab:
            self._render(tab)
        self.run_worker(client.start(), name="startup")

    # --- Rendering, one renderer per tab ---
    def _render(self, tab: Tab) -> None:
        renderers = {
            Tab.NEWS: self._render_news,
            Tab.ALERTS: self._render_alerts,
            Tab.PREFERENCES: self._render_preferences,
        }
        renderers[tab]()
        self._update_status()

    def _render_news(self) -> None:
        store = self.client.articles
        view = self.main_screen.query_one("#headlines-list", ListView)
        index = view.index
        view.clear()
        articles = store.visible(self.news_filter)
        if not articles:
            if store.load_state is LoadState.FAILED:
                view.append(ListItem(ErrorMessage("Failed to load news. Please try again later.")))
            elif store.load_state is LoadState.LOADING:
                view.append(ListItem(Static("[i]Loading headlines...[/i]")))
            else:
                view.append(ListItem(Static("[i]No news articles found.[/i]")))
            return
        for article in articles:
            view.append(HeadlineItem(article))
        if index is not None:
            view.index = min(index, len(articles) - 1)

    def _render_alerts(self) -> None:
        archive = self.client.alerts
        view = self.main_screen.query_one("#alerts-list", ListView)
        index = view.index
        view.clear()
        if not self.client.session.signed_in:
            view.append(ListItem(Static("[i]Sign in with your email to view alert history.[/i]")))
            return
        records = archive.visible(self.alerts_filter)
        if not records:
            if archive.load_state is LoadState.FAILED:
                view.append(ListItem(ErrorMessage("Failed to load alerts. Please try again later.")))
            elif archive.load_state is LoadState.LOADING:
                view.append(ListItem(Static("[i]Loading alerts...[/i]")))
            else:
                view.append(ListItem(Static("[i]No alerts found matching your criteria.[/i]")))
            return
        for record in records:
            view.append(AlertItem(record, archive.shows_detail(record)))
        if index is not None:
            view.index = min(index, len(records) - 1)

    def _render_preferences(self) -> None:
        controller = self.client.preferences
        status = self.main_screen.query_one("#prefs-status", Label)
        save = self.main_screen.query_one("#save-preferences", Button)
        save.disabled = controller.is_busy or not self.client.session.signed_in

        if not self.client.session.signed_in:
            status.update("Please enter your email to manage alert preferences.")
        elif controller.state is PreferenceState.LOADING:
            status.update("Loading your preferences...")
        elif controller.state is PreferenceState.SAVING:
            status.update("Saving...")
        elif controller.state is PreferenceState.LOAD_FAILED:
            status.update("Failed to load preferences. Press r to retry.")
        else:
            selected = len(controller.preferences.categories) if controller.preferences else 0
            status.update(f"{selected} categories selected")

        # Re-seed the form only when a new authoritative value arrives, not mid-edit.
        if controller.preferences is not self._shown_preferences:
            self._shown_preferences = controller.preferences
            self.main_screen.query_one(PreferencesForm).show(controller.preferences)

    def _update_status(self) -> None:
        bar = self.main_screen.query_one(StatusBar)
        bar.identity = self.client.session.identity or ""
        loading = [
            name
            for name, busy in (
                ("news", self.client.articles.load_state is LoadState.LOADING),
                ("alerts", self.client.alerts.load_state is LoadState.LOADING),
                ("preferences", self.client.preferences.is_busy),
            )
            if busy
        ]
        bar.loading_status = f"Loading {', '.join(loading)}..." if loading else ""

    # --- Messages from the core ---
    def on_view_changed(self, message: ViewChanged) -> None:
        self._render(message.tab)

    def on_core_error(self, message: CoreError) -> None:
        severity = "warning" if isinstance(message.error, ValidationError) else "error"
        self.notify(message.error.message, severity=severity)

    def on_preferences_saved(self, message: PreferencesSaved) -> None:
        self.notify("Preferences saved successfully!")
        self.action_show_tab(Tab.NEWS.value)

    # --- Intents ---
    def _active_tab(self) -> Tab:
        return Tab(self.main_screen.query_one("#tabs", TabbedContent).active)

    def _highlighted(self, list_id: str) -> Optional[ListItem]:
        return self.main_screen.query_one(list_id, ListView).highlighted_child

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "news-filter":
            self.news_filter = FilterState(event.value, self.news_filter.category)
            self._render(Tab.NEWS)
        elif event.input.id == "alerts-filter":
            self.alerts_filter = FilterState(event.value, self.alerts_filter.category)
            self._render(Tab.ALERTS)

    def on_select_changed(self, event: Select.Changed) -> None:
        value = str(event.value)
        if event.select.id == "news-category":
            # The feed itself is fetched per category; the filter only narrows locally.
            self.news_filter = FilterState(self.news_filter.query, value)
            self.run_worker(self.client.select_category(value), name="feed_loader")
        elif event.select.id == "alerts-category":
            self.alerts_filter = FilterState(self.alerts_filter.query, value)
            self._render(Tab.ALERTS)

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, AlertItem):
            self.client.alerts.toggle_expanded(event.item.record.id)
        elif isinstance(event.item, HeadlineItem):
            webbrowser.open(event.item.article.url)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-preferences":
            draft = self.main_screen.query_one(PreferencesForm).draft()
            self.run_worker(self.client.save_preferences(draft), name="preferences_saver")

    def action_refresh(self) -> None:
        tab = self._active_tab()
        if tab is Tab.NEWS:
            self.run_worker(self.client.refresh_feed(), name="feed_loader")
        elif tab is Tab.ALERTS:
            self.run_worker(self.client.refresh_alerts(), name="alerts_loader")
        else:
            self.run_worker(self.client.reload_preferences(), name="preferences_loader")

    def action_bookmark(self) -> None:
        tab = self._active_tab()
        if tab is Tab.NEWS:
            item = self._highlighted("#headlines-list")
            if isinstance(item, HeadlineItem):
                self.run_worker(self.client.toggle_bookmark(item.article.id))
        elif tab is Tab.ALERTS:
            item = self._highlighted("#alerts-list")
            if isinstance(item, AlertItem):
                self.run_worker(self.client.toggle_alert_bookmark(item.record.id))

    def _highlighted_url(self) -> Optional[str]:
        if self._active_tab() is Tab.ALERTS:
            item = self._highlighted("#alerts-list")
        else:
            item = self._highlighted("#headlines-list")
        if isinstance(item, HeadlineItem):
            return item.article.url
        if isinstance(item, AlertItem):
            return item.record.url
        return None

    def action_open_in_browser(self) -> None:
        url = self._highlighted_url()
        if url:
            webbrowser.open(url)

    def action_share_link(self) -> None:
        url = self._highlighted_url()
        if not url:
            return
        try:
            self.copy_to_clipboard(url)
        except Exception as e:
            logger.warning("Copying %s to the clipboard failed: %s", url, e)
            self.notify("Failed to copy link", severity="error")
            return
        self.notify("Link copied to clipboard!")

    def action_sign_in(self) -> None:
        def on_dismiss(email: Optional[str]) -> None:
            if email:
                self.run_worker(self.client.sign_in(email), name="sign_in")

        self.push_screen(SignInScreen(self.client.session.identity or ""), on_dismiss)

    def action_sign_out(self) -> None:
        if not self.client.session.signed_in:
            return
        self.client.sign_out()
        self.action_show_tab(Tab.NEWS.value)
        self.notify("Signed out successfully")

    def action_show_tab(self, tab_id: str) -> None:
        self.main_screen.query_one("#tabs", TabbedContent).active = tab_id

    def action_focus_filter(self) -> None:
        tab = self._active_tab()
        if tab is Tab.NEWS:
            self.main_screen.query_one("#news-filter", Input).focus()
        elif tab is Tab.ALERTS:
            self.main_screen.query_one("#alerts-filter", Input).focus()
