"""Optimistic mutation tracking.

Each mutation is keyed by ``<operation>:<entity id>`` and moves through
``idle -> pending -> confirmed | rolled_back``. A second submission for a key
that is still pending is refused, which is what keeps a double click from
issuing the same revoke or subscribe twice.
"""

from collections import OrderedDict
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional
import logging

from integrations_console.core.config import get_settings
from integrations_console.core.exceptions import DuplicateSubmission

logger = logging.getLogger(__name__)
settings = get_settings()


class MutationState(str, Enum):
    """Lifecycle of one optimistic mutation."""
    IDLE = "idle"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


class Mutation:
    """A single tracked mutation and its optimistic overlay."""

    def __init__(self, key: str, overlay: Optional[Dict[str, Any]] = None):
        self.key = key
        self.overlay = overlay or {}
        self.state = MutationState.PENDING
        self.error: Optional[str] = None
        self.started_at = datetime.utcnow()
        self.finished_at: Optional[datetime] = None


def merge_deep(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``source`` into a copy of ``target``, recursing into dicts."""
    result = dict(target)
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_deep(result[key], value)
        else:
            result[key] = value
    return result


class MutationTracker:
    """Registry of in-flight and recently finished mutations.

    Finished mutations are kept for ``history_size`` entries so their state
    can be inspected; older ones are dropped. A confirmed overlay stays
    visible for ``overlay_ttl`` seconds, long enough to mask a stale cached
    read of the entity it changed.
    """

    def __init__(
        self,
        prefix: str = "",
        overlay_ttl: Optional[float] = None,
        history_size: Optional[int] = None,
        mutations: Optional["OrderedDict[str, Mutation]"] = None,
    ):
        self.prefix = prefix
        self.overlay_ttl = overlay_ttl if overlay_ttl is not None else settings.mutation_overlay_ttl
        self.history_size = history_size if history_size is not None else settings.mutation_history_size
        self._mutations: "OrderedDict[str, Mutation]" = mutations if mutations is not None else OrderedDict()

    def scoped(self, owner: str) -> "MutationTracker":
        """A view of this tracker whose keys are private to ``owner``."""
        return MutationTracker(
            prefix=f"{self.prefix}{owner}:",
            overlay_ttl=self.overlay_ttl,
            history_size=self.history_size,
            mutations=self._mutations,
        )

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def __len__(self) -> int:
        return len(self._mutations)

    def state(self, key: str) -> MutationState:
        mutation = self._mutations.get(self._key(key))
        return mutation.state if mutation else MutationState.IDLE

    def get(self, key: str) -> Optional[Mutation]:
        return self._mutations.get(self._key(key))

    def begin(self, key: str, overlay: Optional[Dict[str, Any]] = None) -> Mutation:
        """Start a mutation, refusing duplicates of one still pending."""
        if self.state(key) == MutationState.PENDING:
            raise DuplicateSubmission(f"{key} is already in progress")
        mutation = Mutation(key, overlay)
        self._mutations[self._key(key)] = mutation
        self._mutations.move_to_end(self._key(key))
        return mutation

    def _finish(self, key: str, state: MutationState) -> Mutation:
        full_key = self._key(key)
        mutation = self._mutations[full_key]
        mutation.state = state
        mutation.finished_at = datetime.utcnow()
        self._mutations.move_to_end(full_key)

        finished = [k for k, m in self._mutations.items() if m.state != MutationState.PENDING]
        for stale in finished[:max(len(finished) - self.history_size, 0)]:
            del self._mutations[stale]
        return mutation

    def confirm(self, key: str) -> None:
        self._finish(key, MutationState.CONFIRMED)

    def rollback(self, key: str, error: Optional[str] = None) -> None:
        mutation = self._finish(key, MutationState.ROLLED_BACK)
        mutation.error = error
        mutation.overlay = {}
        logger.info(f"Rolled back {key}: {error}")

    def reset(self, key: str) -> None:
        self._mutations.pop(self._key(key), None)

    def view(self, key: str, base: Dict[str, Any]) -> Dict[str, Any]:
        """``base`` with the optimistic overlay applied.

        The overlay applies while pending and, once confirmed, until
        ``overlay_ttl`` has passed. A rolled back mutation has none.
        """
        mutation = self._mutations.get(self._key(key))
        if mutation is None or not mutation.overlay:
            return base
        if mutation.state == MutationState.PENDING:
            return merge_deep(base, mutation.overlay)
        if mutation.state == MutationState.CONFIRMED:
            age = (datetime.utcnow() - mutation.finished_at).total_seconds()
            if age < self.overlay_ttl:
                return merge_deep(base, mutation.overlay)
        return base

    @asynccontextmanager
    async def track(self, key: str, overlay: Optional[Dict[str, Any]] = None) -> AsyncIterator[Mutation]:
        """Run the body as a tracked mutation."""
        mutation = self.begin(key, overlay)
        try:
            yield mutation
        except BaseException as e:
            # Cancellation included, or the key would stay pending for good
            self.rollback(key, str(e) or type(e).__name__)
            raise
        self.confirm(key)


# Singleton instance; request handlers use a per-user view of it
mutation_tracker = MutationTracker()
