from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Dict, List, Optional, Tuple

from .datamodels import AlertRecord, FilterState, LoadState
from .errors import InvalidIdentity, NewsPulseError
from .events import Signal
from .filtering import apply_filter
from .gateway import RemoteGateway
from .pending import Generation, PendingOperations
from .session import SessionContext

logger = logging.getLogger("news_pulse")


class AlertArchive:
    """History of alerts delivered to the signed-in user.

    Records are only read and have their own bookmark flag toggled; that flag
    is independent of BookmarkTracker and only converges with it on the next
    fetch of either collection.
    """

    def __init__(self, gateway: RemoteGateway, session: SessionContext):
        self.gateway = gateway
        self.session = session
        self.items: Tuple[AlertRecord, ...] = ()
        self.load_state = LoadState.IDLE
        self.expanded: Optional[str] = None
        self.changed = Signal("alerts.changed")
        self._confirmed: Dict[str, bool] = {}
        self._pending = PendingOperations()
        self._generation = Generation()

    def _touch(self) -> None:
        self.changed.emit()

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
            records = await self.gateway.fetch_alerts(identity)
        except NewsPulseError:
            if self._generation.is_current(token):
                self.load_state = LoadState.FAILED
                self._touch()
            raise
        if not self._generation.is_current(token):
            logger.debug("Discarding stale alert history for %s", identity)
            return
        self.items = tuple(records)
        confirmed = {r.id: r.bookmarked for r in records}
        for alert_id in self._pending.settled_since(mark):
            if alert_id in confirmed:
                confirmed[alert_id] = self._confirmed.get(alert_id, False)
        self._confirmed = confirmed
        if self.expanded is not None and self.expanded not in self._confirmed:
            self.expanded = None
        self.load_state = LoadState.LOADED
        logger.debug("Loaded %d alerts for %s", len(records), identity)
        self._touch()

    refresh = load

    def get(self, alert_id: str) -> Optional[AlertRecord]:
        for record in self.items:
            if record.id == alert_id:
                return record
        return None

    def is_bookmarked(self, alert_id: str) -> bool:
        op = self._pending.latest(alert_id)
        if op is not None:
            return op.desired
        return self._confirmed.get(alert_id, False)

    def visible(self, filter_state: Optional[FilterState] = None) -> List[AlertRecord]:
        matched = apply_filter(self.items, filter_state or FilterState())
        return [dataclasses.replace(r, bookmarked=self.is_bookmarked(r.id)) for r in matched]

    # --- Detail view ---
    def expand(self, alert_id: str) -> None:
        self.expanded = alert_id
        self._touch()

    def collapse(self) -> None:
        self.expanded = None
        self._touch()

    def toggle_expanded(self, alert_id: str) -> None:
        if self.expanded == alert_id:
            self.collapse()
        else:
            self.expand(alert_id)

    def shows_detail(self, record: AlertRecord) -> bool:
        """Records without a description have nothing to hide, so always show detail."""
        return self.expanded == record.id or not record.description

    # --- Bookmarks ---
    def set_bookmark(self, alert_id: str, value: bool) -> "asyncio.Task[Optional[bool]]":
        """Set the alert's bookmark flag optimistically; see BookmarkTracker.toggle."""
        identity = self.session.identity
        if identity is None:
            raise InvalidIdentity("Please sign in to bookmark alerts.")
        op = self._pending.push(alert_id, value)
        self._touch()

        async def send(current: bool) -> bool:
            return await self.gateway.toggle_alert_bookmark(identity, alert_id, current)

        def apply(confirmed: bool) -> None:
            self._confirmed[alert_id] = confirmed

        async def settle() -> Optional[bool]:
            try:
                return await self._pending.run(
                    op, lambda: self._confirmed.get(alert_id, False), send, apply
                )
            finally:
                if not self._pending.is_stale(op):
                    self._touch()

        return asyncio.ensure_future(settle())

    def toggle_bookmark(self, alert_id: str) -> "asyncio.Task[Optional[bool]]":
        return self.set_bookmark(alert_id, not self.is_bookmarked(alert_id))

    def reset(self) -> None:
        self._generation.advance()
        self._pending.clear()
        self.items = ()
        self._confirmed = {}
        self.expanded = None
        self.load_state = LoadState.IDLE
        self._touch()
