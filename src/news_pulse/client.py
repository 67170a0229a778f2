from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, Optional

from .alerts import AlertArchive
from .articles import ArticleStore
from .bookmarks import BookmarkTracker
from .config import DEFAULT_API_BASE_URL, HTTP_TIMEOUT
from .datamodels import Preferences
from .errors import NewsPulseError
from .events import Signal
from .gateway import RemoteGateway
from .preferences import PreferenceController
from .session import SessionContext

logger = logging.getLogger("news_pulse")


class NewsClient:
    """Wires the stores to one gateway and one session.

    This is what the UI talks to. Intents never raise NewsPulseError: failures
    are published on `errors` (for a toast) after the affected store has
    fallen back to its last known good state.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        session: Optional[SessionContext] = None,
        category: Optional[str] = None,
    ):
        self.gateway = gateway
        self.session = session or SessionContext()
        self.bookmarks = BookmarkTracker(gateway, self.session)
        self.articles = ArticleStore(gateway, self.bookmarks, category)
        self.alerts = AlertArchive(gateway, self.session)
        self.preferences = PreferenceController(gateway, self.session)
        self.errors = Signal("client.errors")
        self.session.changed.connect(self._on_identity_changed)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> NewsClient:
        gateway = RemoteGateway(
            base_url=config.get("api_base_url") or DEFAULT_API_BASE_URL,
            timeout=config.get("http_timeout", HTTP_TIMEOUT),
        )
        return cls(gateway, category=config.get("default_category"))

    def report(self, error: NewsPulseError) -> None:
        logger.warning("%s: %s", error.__class__.__name__, error.message)
        self.errors.emit(error)

    async def _guard(self, operation: Awaitable[Any]) -> bool:
        try:
            await operation
        except NewsPulseError as e:
            self.report(e)
            return False
        return True

    def _on_identity_changed(self, previous: Optional[str], current: Optional[str]) -> None:
        # The feed is not identity-scoped and survives.
        self.bookmarks.reset()
        self.alerts.reset()
        self.preferences.reset()

    async def sync_identity(self) -> None:
        """Load every identity-scoped collection for the current user."""
        if not self.session.signed_in:
            return
        await asyncio.gather(
            self._guard(self.bookmarks.load()),
            self._guard(self.alerts.load()),
            self._guard(self.preferences.load()),
        )

    async def start(self) -> None:
        await asyncio.gather(self._guard(self.articles.refresh()), self.sync_identity())

    # --- Identity ---
    async def sign_in(self, email: str) -> bool:
        previous = self.session.identity
        try:
            identity = self.session.sign_in(email)
        except NewsPulseError as e:
            self.report(e)
            return False
        if identity != previous:
            await self.sync_identity()
        return True

    def sign_out(self) -> None:
        self.session.sign_out()

    # --- Feed ---
    async def refresh_feed(self) -> bool:
        return await self._guard(self.articles.refresh())

    async def select_category(self, category: Optional[str]) -> bool:
        return await self._guard(self.articles.set_category(category))

    async def toggle_bookmark(self, article_id: str) -> Optional[bool]:
        try:
            task = self.bookmarks.toggle(article_id)
            return await task
        except NewsPulseError as e:
            self.report(e)
            return None

    # --- Alerts ---
    async def refresh_alerts(self) -> bool:
        return await self._guard(self.alerts.load())

    async def toggle_alert_bookmark(self, alert_id: str) -> Optional[bool]:
        try:
            task = self.alerts.toggle_bookmark(alert_id)
            return await task
        except NewsPulseError as e:
            self.report(e)
            return None

    # --- Preferences ---
    async def reload_preferences(self) -> bool:
        return await self._guard(self.preferences.load())

    async def save_preferences(self, draft: Preferences) -> bool:
        return await self._guard(self.preferences.save(draft))
