"""Optimistic mutation tracker tests."""

from datetime import timedelta
import asyncio

import pytest

from integrations_console.core.exceptions import BackendError, DuplicateSubmission
from integrations_console.services.mutations import MutationState, MutationTracker, merge_deep


class TestTracker:

    def test_lifecycle(self, tracker):
        assert tracker.state("revoke-key:k1") == MutationState.IDLE

        tracker.begin("revoke-key:k1")
        assert tracker.state("revoke-key:k1") == MutationState.PENDING

        tracker.confirm("revoke-key:k1")
        assert tracker.state("revoke-key:k1") == MutationState.CONFIRMED

    def test_duplicate_while_pending(self, tracker):
        tracker.begin("revoke-key:k1")

        with pytest.raises(DuplicateSubmission):
            tracker.begin("revoke-key:k1")

    def test_resubmit_after_finish(self, tracker):
        tracker.begin("revoke-key:k1")
        tracker.rollback("revoke-key:k1", "network down")

        tracker.begin("revoke-key:k1")
        assert tracker.state("revoke-key:k1") == MutationState.PENDING

    def test_overlay_lifecycle(self, tracker):
        base = {"connection_status": "active", "configuration": {"a": 1}}

        tracker.begin("configure:c1", {"configuration": {"b": 2}})
        assert tracker.view("configure:c1", base)["configuration"] == {"a": 1, "b": 2}

        tracker.rollback("configure:c1")
        assert tracker.view("configure:c1", base) == base
        assert tracker.get("configure:c1").overlay == {}

    @pytest.mark.asyncio
    async def test_track_confirms(self, tracker):
        async with tracker.track("sync:c1") as mutation:
            assert mutation.state == MutationState.PENDING

        assert tracker.state("sync:c1") == MutationState.CONFIRMED
        assert tracker.get("sync:c1").finished_at is not None

    @pytest.mark.asyncio
    async def test_track_rolls_back(self, tracker):
        with pytest.raises(BackendError):
            async with tracker.track("sync:c1"):
                raise BackendError("Sync failed")

        mutation = tracker.get("sync:c1")
        assert mutation.state == MutationState.ROLLED_BACK
        assert mutation.error == "Sync failed"

    def test_reset(self, tracker):
        tracker.begin("sync:c1")
        tracker.reset("sync:c1")
        assert tracker.state("sync:c1") == MutationState.IDLE

    def test_confirmed_overlay_expires(self):
        tracker = MutationTracker(overlay_ttl=30)
        base = {"connection_status": "active"}

        tracker.begin("disconnect:c1", {"connection_status": "inactive"})
        tracker.confirm("disconnect:c1")
        assert tracker.view("disconnect:c1", base)["connection_status"] == "inactive"

        tracker.get("disconnect:c1").finished_at -= timedelta(seconds=31)
        assert tracker.view("disconnect:c1", base) == base

    def test_history_is_bounded(self):
        tracker = MutationTracker(history_size=2)
        tracker.begin("sync:pending")
        for n in range(5):
            tracker.begin(f"sync:c{n}")
            tracker.confirm(f"sync:c{n}")

        assert len(tracker) == 3
        assert tracker.state("sync:c0") == MutationState.IDLE
        assert tracker.state("sync:c4") == MutationState.CONFIRMED
        assert tracker.state("sync:pending") == MutationState.PENDING

    @pytest.mark.asyncio
    async def test_cancellation_rolls_back(self, tracker):
        with pytest.raises(asyncio.CancelledError):
            async with tracker.track("sync:c1"):
                raise asyncio.CancelledError()

        assert tracker.state("sync:c1") == MutationState.ROLLED_BACK


class TestScopedTracker:
    """Duplicate guards are per user."""

    def test_same_key_for_two_users(self, tracker):
        alice = tracker.scoped("alice")
        bob = tracker.scoped("bob")

        alice.begin("generate-key:Zapier")
        bob.begin("generate-key:Zapier")

        with pytest.raises(DuplicateSubmission):
            alice.begin("generate-key:Zapier")
        assert tracker.state("generate-key:Zapier") == MutationState.IDLE

    def test_views_share_history(self):
        tracker = MutationTracker(history_size=1)
        tracker.scoped("alice").begin("sync:c1")
        tracker.scoped("alice").confirm("sync:c1")
        tracker.scoped("bob").begin("sync:c2")
        tracker.scoped("bob").confirm("sync:c2")

        assert len(tracker) == 1
        assert tracker.scoped("bob").state("sync:c2") == MutationState.CONFIRMED


def test_merge_deep():
    target = {"sync": {"recordings": True, "transcripts": False}, "name": "Zoom"}

    merged = merge_deep(target, {"sync": {"transcripts": True}, "region": "eu"})

    assert merged == {"sync": {"recordings": True, "transcripts": True}, "name": "Zoom", "region": "eu"}
    assert target["sync"]["transcripts"] is False
