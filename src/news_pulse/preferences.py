from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from .datamodels import CATEGORIES, DELIVERY_METHODS, FREQUENCIES, Preferences
from .errors import InvalidIdentity, NewsPulseError, ValidationError
from .events import Signal
from .gateway import RemoteGateway
from .pending import Generation
from .session import SessionContext

logger = logging.getLogger("news_pulse")


class PreferenceState(Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"
    SAVING = "saving"
    SAVE_FAILED = "save_failed"


def validate_preferences(draft: Preferences) -> None:
    """Reject a draft locally. Nothing invalid ever reaches the gateway."""
    if not draft.categories:
        raise ValidationError("Please select at least one news category.")
    unknown = [c for c in draft.categories if c not in CATEGORIES]
    if unknown:
        raise ValidationError(f"Unknown categories: {', '.join(unknown)}.")
    if len(set(draft.categories)) != len(draft.categories):
        raise ValidationError("Each category can only be selected once.")
    if draft.frequency not in FREQUENCIES:
        raise ValidationError(f"Unknown frequency '{draft.frequency}'.")
    if draft.method not in DELIVERY_METHODS:
        raise ValidationError(f"Unknown notification method '{draft.method}'.")


class PreferenceController:
    """Load, validate and submit the signed-in user's alert subscription.

    `preferences` is always the last authoritative value: the server copy
    after a load, the draft after a successful save. A failed save leaves it
    untouched. `updated` fires with the saved preferences so the
    presentation can leave the edit view.
    """

    def __init__(self, gateway: RemoteGateway, session: SessionContext):
        self.gateway = gateway
        self.session = session
        self.state = PreferenceState.UNLOADED
        self.preferences: Optional[Preferences] = None
        self.changed = Signal("preferences.changed")
        self.updated = Signal("preferences.updated")
        self._generation = Generation()
        self._save_lock = asyncio.Lock()

    def _set_state(self, state: PreferenceState) -> None:
        logger.debug("Preferences %s -> %s", self.state.value, state.value)
        self.state = state
        self.changed.emit()

    @property
    def is_busy(self) -> bool:
        return self.state in (PreferenceState.LOADING, PreferenceState.SAVING)

    async def load(self) -> None:
        """Fetch the stored preferences, after any save already in flight."""
        async with self._save_lock:
            identity = self.session.identity
            if identity is None:
                self.reset()
                return
            token = self._generation.advance()
            self._set_state(PreferenceState.LOADING)
            try:
                stored = await self.gateway.fetch_preferences(identity)
            except NewsPulseError:
                if self._generation.is_current(token):
                    self._set_state(PreferenceState.LOAD_FAILED)
                raise
            if not self._generation.is_current(token):
                logger.debug("Discarding stale preferences for %s", identity)
                return
            if stored is None:
                logger.info("No stored preferences for %s, using defaults", identity)
                stored = Preferences()
            self.preferences = stored
            self._set_state(PreferenceState.LOADED)

    async def save(self, draft: Preferences) -> Preferences:
        validate_preferences(draft)
        identity = self.session.identity
        if identity is None:
            raise InvalidIdentity("Please sign in to save preferences.")

        # Saves are queued FIFO; each one overwrites the previous.
        async with self._save_lock:
            if self.state in (PreferenceState.UNLOADED, PreferenceState.LOADING):
                raise ValidationError("Preferences are still loading.")
            if identity != self.session.identity:
                logger.debug("Dropping save queued for %s after identity change", identity)
                raise InvalidIdentity("Signed-in user changed before saving.")
            token = self._generation.value
            prior_state = self.state
            self._set_state(PreferenceState.SAVING)
            try:
                await self.gateway.save_preferences(identity, draft)
            except NewsPulseError as e:
                if self._generation.is_current(token):
                    logger.warning("Saving preferences failed: %s", e.message)
                    self._set_state(PreferenceState.SAVE_FAILED)
                    self._set_state(prior_state)
                raise
            if not self._generation.is_current(token):
                logger.debug("Discarding save result for %s after teardown", identity)
                return draft
            self.preferences = draft
            self._set_state(PreferenceState.LOADED)
        logger.info("Saved preferences for %s", identity)
        self.updated.emit(draft)
        return draft

    def reset(self) -> None:
        self._generation.advance()
        self.preferences = None
        self._set_state(PreferenceState.UNLOADED)
