from __future__ import annotations

import logging
from typing import Optional

from .errors import InvalidIdentity
from .events import Signal

logger = logging.getLogger("news_pulse")


def validate_email(email: str) -> str:
    """Return the trimmed address, or raise InvalidIdentity.

    Format check only: one `@` with something on both sides.
    """
    candidate = (email or "").strip()
    local, sep, domain = candidate.rpartition("@")
    if not sep or not local or not domain or " " in candidate:
        raise InvalidIdentity(f"'{candidate}' is not a valid email address.")
    return candidate


class SessionContext:
    """Current user identity. `None` means signed out, which is not an error.

    `changed` fires with `(previous, current)` whenever the identity changes.
    """

    def __init__(self, identity: Optional[str] = None):
        self._identity: Optional[str] = None
        self.changed = Signal("session.changed")
        if identity:
            self._identity = validate_email(identity)

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def signed_in(self) -> bool:
        return self._identity is not None

    def sign_in(self, email: str) -> str:
        identity = validate_email(email)
        if identity == self._identity:
            return identity
        previous, self._identity = self._identity, identity
        logger.info("Signed in as %s", identity)
        self.changed.emit(previous, identity)
        return identity

    def sign_out(self) -> None:
        if self._identity is None:
            return
        previous, self._identity = self._identity, None
        logger.info("Signed out %s", previous)
        self.changed.emit(previous, None)
