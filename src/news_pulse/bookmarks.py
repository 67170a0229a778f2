from __future__ import annotations

import asyncio
import logging
from typing import FrozenSet, Optional, Set

from .datamodels import LoadState
from .errors import InvalidIdentity, NewsPulseError
from .events import Signal
from .gateway import RemoteGateway
from .pending import Generation, PendingOperations
from .session import SessionContext

logger = logging.getLogger("news_pulse")


class BookmarkTracker:
    """The signed-in user's bookmarked article ids, with optimistic toggling."""

    def __init__(self, gateway: RemoteGateway, session: SessionContext):
        self.gateway = gateway
        self.session = session
        self.load_state = LoadState.IDLE
        self.revision = 0
        self.changed = Signal("bookmarks.changed")
        self._confirmed: Set[str] = set()
        self._pending = PendingOperations()
        self._generation = Generation()

    def _touch(self) -> None:
        self.revision += 1
        self.changed.emit()

    def is_bookmarked(self, article_id: str) -> bool:
        op = self._pending.latest(article_id)
        if op is not None:
            return op.desired
        return article_id in self._confirmed

    def is_syncing(self, article_id: str) -> bool:
        return self._pending.is_pending(article_id)

    @property
    def ids(self) -> FrozenSet[str]:
        """Observable membership, optimistic changes included."""
        candidates = self._confirmed | self._pending.keys()
        return frozenset(key for key in candidates if self.is_bookmarked(key))

    async def load(self) -> None:
        identity = self.session.identity
        if identity is None:
            self.reset()
            return
        token = self._generation.advance()
        mark = self._pending.mark()
        self.load_state = LoadState.LOADING
        self._touch()
        try:
            ids = await self.gateway.fetch_bookmarks(identity)
        except NewsPulseError:
            if self._generation.is_current(token):
                self.load_state = LoadState.FAILED
                self._touch()
            raise
        if not self._generation.is_current(token):
            logger.debug("Discarding stale bookmark set for %s", identity)
            return
        confirmed = set(ids)
        # Toggles confirmed while the request was out are newer than its answer.
        for article_id in self._pending.settled_since(mark):
            if article_id in self._confirmed:
                confirmed.add(article_id)
            else:
                confirmed.discard(article_id)
        self._confirmed = confirmed
        self.load_state = LoadState.LOADED
        logger.debug("Loaded %d bookmarks for %s", len(ids), identity)
        self._touch()

    def toggle(self, article_id: str) -> "asyncio.Task[Optional[bool]]":
        """Flip membership now and return a task confirming it with the server.

        The task resolves to the confirmed membership, to None if the session
        was torn down first, or raises BookmarkSyncError after rolling back.
        """
        identity = self.session.identity
        if identity is None:
            raise InvalidIdentity("Please sign in to bookmark articles.")
        desired = not self.is_bookmarked(article_id)
        op = self._pending.push(article_id, desired)
        self._touch()

        async def send(current: bool) -> bool:
            return await self.gateway.toggle_bookmark(identity, article_id, current)

        def apply(value: bool) -> None:
            if value:
                self._confirmed.add(article_id)
            else:
                self._confirmed.discard(article_id)

        async def settle() -> Optional[bool]:
            try:
                return await self._pending.run(
                    op, lambda: article_id in self._confirmed, send, apply
                )
            finally:
                if not self._pending.is_stale(op):
                    self._touch()

        return asyncio.ensure_future(settle())

    def reset(self) -> None:
        """Back to the unloaded state; in-flight work resolves into nothing."""
        self._generation.advance()
        self._pending.clear()
        self._confirmed = set()
        self.load_state = LoadState.IDLE
        self._touch()
