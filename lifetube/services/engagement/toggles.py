"""
Toggle-state transition tables for likes and subscriptions.

A relation row per (actor, target) is either absent or present (for likes,
present with a kind). A request is resolved by looking up the current state
in a table; no other branching decides the outcome.
"""
from __future__ import annotations

import asyncio
import enum
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Optional, Tuple

from lifetube.models.models import LikeKind


class ToggleOutcome(str, enum.Enum):
    ADDED = "added"
    REMOVED = "removed"
    UPDATED = "updated"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"


# (current mark, requested kind) -> (next mark, outcome); None means no row.
LIKE_TRANSITIONS: Dict[Tuple[Optional[LikeKind], LikeKind], Tuple[Optional[LikeKind], ToggleOutcome]] = {
    (None, LikeKind.LIKE): (LikeKind.LIKE, ToggleOutcome.ADDED),
    (None, LikeKind.DISLIKE): (LikeKind.DISLIKE, ToggleOutcome.ADDED),
    (LikeKind.LIKE, LikeKind.LIKE): (None, ToggleOutcome.REMOVED),
    (LikeKind.LIKE, LikeKind.DISLIKE): (LikeKind.DISLIKE, ToggleOutcome.UPDATED),
    (LikeKind.DISLIKE, LikeKind.DISLIKE): (None, ToggleOutcome.REMOVED),
    (LikeKind.DISLIKE, LikeKind.LIKE): (LikeKind.LIKE, ToggleOutcome.UPDATED),
}

# currently subscribed -> (subscribed afterwards, outcome)
SUBSCRIPTION_TRANSITIONS: Dict[bool, Tuple[bool, ToggleOutcome]] = {
    False: (True, ToggleOutcome.SUBSCRIBED),
    True: (False, ToggleOutcome.UNSUBSCRIBED),
}


def next_like_state(
    current: Optional[LikeKind], requested: LikeKind
) -> Tuple[Optional[LikeKind], ToggleOutcome]:
    return LIKE_TRANSITIONS[(current, requested)]


def next_subscription_state(subscribed: bool) -> Tuple[bool, ToggleOutcome]:
    return SUBSCRIPTION_TRANSITIONS[subscribed]


class KeyedLock:
    """Per-key asyncio locks so toggles on one (actor, target) pair run one at a time."""

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._waiters: Dict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        self._waiters[key] += 1
        lock = self._locks[key]
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)
