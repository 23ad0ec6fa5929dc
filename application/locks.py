from __future__ import annotations

from contextlib import ExitStack, contextmanager
from threading import Lock, RLock
from typing import Dict, Iterator, Optional, Tuple

# Global acquisition order: every item lock before any player lock.
ITEM_SCOPE = 0
PLAYER_SCOPE = 1

LockKey = Tuple[int, str]


class KeyedLockRegistry:
    """
    One re-entrant lock per (scope, key), created lazily.

    - Trades hold item then player, in that fixed order, so two trades
      can never wait on each other in a cycle
    - Balance-only flows (building payouts, heist rewards) hold just the
      player lock and still serialize with trades for that player
    - Locks are never evicted; key space is bounded by catalog + players
    """

    def __init__(self):
        self._guard = Lock()
        self._locks: Dict[LockKey, RLock] = {}

    def _lock_for(self, key: LockKey) -> RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *, item_id: Optional[str] = None, player_id: Optional[str] = None) -> Iterator[None]:
        keys = []
        if item_id is not None:
            keys.append((ITEM_SCOPE, item_id))
        if player_id is not None:
            keys.append((PLAYER_SCOPE, player_id))

        with ExitStack() as stack:
            for key in sorted(keys):
                stack.enter_context(self._lock_for(key))
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
