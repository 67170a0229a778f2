from __future__ import annotations

import dataclasses
import logging
from typing import Any, List, Optional, Tuple

from .bookmarks import BookmarkTracker
from .datamodels import ALL_CATEGORIES, CATEGORIES, Article, FilterState, LoadState
from .errors import NewsPulseError, ValidationError
from .events import Signal
from .filtering import apply_filter
from .gateway import RemoteGateway
from .pending import Generation

logger = logging.getLogger("news_pulse")


class ArticleStore:
    """Live feed for one category.

    A failed fetch keeps the previous items: stale headlines beat an empty
    list. Changing category supersedes any fetch still in flight.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        bookmarks: Optional[BookmarkTracker] = None,
        category: Optional[str] = None,
    ):
        self.gateway = gateway
        self.bookmarks = bookmarks
        self.category = category
        self.items: Tuple[Article, ...] = ()
        self.load_state = LoadState.IDLE
        self.last_error: Optional[NewsPulseError] = None
        self.changed = Signal("articles.changed")
        self._revision = 0
        self._generation = Generation()
        self._projection: Optional[Tuple[Any, List[Article]]] = None

    def _touch(self) -> None:
        self.changed.emit()

    async def set_category(self, category: Optional[str]) -> None:
        if category in (None, "", ALL_CATEGORIES):
            category = None
        elif category not in CATEGORIES:
            raise ValidationError(f"Unknown category '{category}'.")
        self.category = category
        await self.refresh()

    async def refresh(self) -> None:
        token = self._generation.advance()
        category = self.category
        self.load_state = LoadState.LOADING
        self._touch()
        logger.debug("Loading feed for %s", category or "all categories")
        try:
            items = await self.gateway.fetch_feed(category)
        except NewsPulseError as e:
            if not self._generation.is_current(token):
                return
            self.load_state = LoadState.FAILED
            self.last_error = e
            logger.warning("Feed fetch for %s failed, keeping %d stale items", category, len(self.items))
            self._touch()
            raise
        if not self._generation.is_current(token):
            logger.debug("Discarding superseded feed for %s", category)
            return
        self.items = tuple(items)
        self._revision += 1
        self.load_state = LoadState.LOADED
        self.last_error = None
        self._touch()

    def visible(self, filter_state: Optional[FilterState] = None) -> List[Article]:
        """Filtered copy of the feed with bookmark flags stamped from the tracker."""
        filter_state = filter_state or FilterState()
        bookmark_revision = self.bookmarks.revision if self.bookmarks else None
        key = (self._revision, filter_state, bookmark_revision)
        if self._projection is not None and self._projection[0] == key:
            return list(self._projection[1])

        matched = apply_filter(self.items, filter_state)
        if self.bookmarks is not None:
            matched = [
                dataclasses.replace(a, bookmarked=self.bookmarks.is_bookmarked(a.id))
                for a in matched
            ]
        self._projection = (key, matched)
        return list(matched)
