from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Set

from .errors import BookmarkSyncError, NewsPulseError

logger = logging.getLogger("news_pulse")


class Generation:
    """Monotonic token. Bumping it invalidates every resolution started earlier."""

    def __init__(self) -> None:
        self.value = 0

    def advance(self) -> int:
        self.value += 1
        return self.value

    def is_current(self, token: int) -> bool:
        return token == self.value


@dataclass(eq=False)
class PendingOp:
    key: str
    desired: bool
    epoch: int
    lock: asyncio.Lock = field(repr=False)


class PendingOperations:
    """Arena of in-flight optimistic flag changes, keyed by item id.

    Operations on the same key run one after another in arrival order;
    different keys never wait on each other. The observable value of a key
    is the desired value of its newest pending operation, so an older
    response can never overwrite a newer optimistic state.

    Every confirmed change is stamped with a sequence number. A bulk load
    takes a `mark()` before its request and, when merging, keeps the local
    value of every key in `settled_since(mark)`.
    """

    def __init__(self) -> None:
        self._queues: Dict[str, List[PendingOp]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._epoch = Generation()
        self._sequence = 0
        self._settled: Dict[str, int] = {}

    def push(self, key: str, desired: bool) -> PendingOp:
        lock = self._locks.setdefault(key, asyncio.Lock())
        op = PendingOp(key=key, desired=desired, epoch=self._epoch.value, lock=lock)
        self._queues.setdefault(key, []).append(op)
        return op

    def latest(self, key: str) -> Optional[PendingOp]:
        queue = self._queues.get(key)
        return queue[-1] if queue else None

    def keys(self) -> Set[str]:
        return set(self._queues)

    def is_pending(self, key: str) -> bool:
        return bool(self._queues.get(key))

    def mark(self) -> int:
        return self._sequence

    def settled_since(self, mark: int) -> Set[str]:
        """Keys whose confirmed value changed after `mark` was taken."""
        return {key for key, seq in self._settled.items() if seq > mark}

    def is_stale(self, op: PendingOp) -> bool:
        return not self._epoch.is_current(op.epoch)

    def clear(self) -> None:
        """Forget every pending operation; their resolutions will be dropped."""
        self._epoch.advance()
        self._queues = {}
        self._locks = {}
        self._settled = {}

    def _discard(self, op: PendingOp) -> None:
        queue = self._queues.get(op.key)
        if not queue or op not in queue:
            return
        queue.remove(op)
        if not queue:
            del self._queues[op.key]
            self._locks.pop(op.key, None)

    async def run(
        self,
        op: PendingOp,
        confirmed: Callable[[], bool],
        send: Callable[[bool], Awaitable[bool]],
        apply: Callable[[bool], None],
    ) -> Optional[bool]:
        """Confirm `op` with the server once every earlier op on its key settled.

        `send` receives the confirmed value and returns the server's new value.
        Returns the confirmed value, or None when the arena was cleared while
        the op was waiting or in flight.
        """
        try:
            async with op.lock:
                if self.is_stale(op):
                    return None
                current = confirmed()
                if current == op.desired:
                    logger.debug("%s already %s server-side, nothing to send", op.key, current)
                    return current
                try:
                    result = await send(current)
                except NewsPulseError as e:
                    if self.is_stale(op):
                        logger.debug("Dropping failure for %s after teardown", op.key)
                        return None
                    logger.warning("Rolling back %s: %s", op.key, e.message)
                    raise BookmarkSyncError(op.key, e) from e
                if self.is_stale(op):
                    logger.debug("Dropping response for %s after teardown", op.key)
                    return None
                apply(result)
                self._sequence += 1
                self._settled[op.key] = self._sequence
                return result
        finally:
            self._discard(op)
