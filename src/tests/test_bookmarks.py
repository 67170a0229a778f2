from __future__ import annotations

import asyncio

import pytest

from news_pulse.bookmarks import BookmarkTracker
from news_pulse.datamodels import LoadState
from news_pulse.errors import BookmarkSyncError, InvalidIdentity, ServerError


@pytest.fixture
def tracker(gateway, signed_in):
    return BookmarkTracker(gateway, signed_in)


def test_load_fetches_identity_bookmarks(gateway, tracker):
    gateway.bookmarks["a@x.com"] = {"1", "2"}
    asyncio.run(tracker.load())
    assert tracker.ids == frozenset({"1", "2"})
    assert tracker.load_state is LoadState.LOADED


def test_toggle_is_visible_before_the_server_answers(gateway, tracker):
    async def scenario():
        release = gateway.hold("toggle_bookmark")
        task = tracker.toggle("7")
        optimistic = tracker.is_bookmarked("7")
        syncing = tracker.is_syncing("7")
        release.set()
        confirmed = await task
        return optimistic, syncing, confirmed

    optimistic, syncing, confirmed = asyncio.run(scenario())
    assert optimistic is True
    assert syncing is True
    assert confirmed is True
    assert tracker.is_bookmarked("7")
    assert not tracker.is_syncing("7")
    assert gateway.bookmarks["a@x.com"] == {"7"}


def test_toggling_twice_restores_membership(gateway, tracker):
    gateway.bookmarks["a@x.com"] = {"5"}

    async def scenario():
        await tracker.load()
        await tracker.toggle("5")
        await tracker.toggle("5")

    asyncio.run(scenario())
    assert tracker.is_bookmarked("5")
    assert gateway.bookmarks["a@x.com"] == {"5"}


def test_failed_toggle_rolls_back(gateway, tracker):
    gateway.fail["toggle_bookmark"] = ServerError("boom", 500)

    async def scenario():
        task = tracker.toggle("9")
        assert tracker.is_bookmarked("9")
        with pytest.raises(BookmarkSyncError) as excinfo:
            await task
        return excinfo.value

    error = asyncio.run(scenario())
    assert not tracker.is_bookmarked("9")
    assert error.item_id == "9"
    assert isinstance(error.cause, ServerError)


def test_same_id_toggles_are_serialized(gateway, tracker):
    async def scenario():
        release = gateway.hold("toggle_bookmark")
        first = tracker.toggle("3")
        second = tracker.toggle("3")
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        in_flight = len(gateway.calls_to("toggle_bookmark"))
        observed = tracker.is_bookmarked("3")
        release.set()
        await asyncio.gather(first, second)
        return in_flight, observed

    in_flight, observed = asyncio.run(scenario())
    assert in_flight == 1
    assert observed is False
    assert gateway.calls_to("toggle_bookmark") == [
        ("toggle_bookmark", "a@x.com", "3", False),
        ("toggle_bookmark", "a@x.com", "3", True),
    ]
    assert not tracker.is_bookmarked("3")


def test_older_response_does_not_overwrite_newer_optimistic_state(gateway, tracker):
    async def scenario():
        release = gateway.hold("toggle_bookmark")
        first = tracker.toggle("3")
        tracker.toggle("3")
        tracker.toggle("3")
        release.set()
        await first
        # Three flips: the newest intent wins over whatever the first response said.
        return tracker.is_bookmarked("3")

    assert asyncio.run(scenario()) is True


def test_distinct_ids_proceed_independently(gateway, tracker):
    async def scenario():
        gateway.hold("toggle_bookmark")  # blocks the first call forever
        blocked = tracker.toggle("slow")
        await asyncio.sleep(0)
        result = await tracker.toggle("fast")
        pending = not blocked.done()
        blocked.cancel()
        return result, pending

    result, pending = asyncio.run(scenario())
    assert result is True
    assert pending
    assert tracker.is_bookmarked("fast")


def test_failure_of_earlier_toggle_keeps_later_intent(gateway, tracker):
    async def scenario():
        release = gateway.hold("toggle_bookmark")
        gateway.fail["toggle_bookmark"] = ServerError("boom", 503)
        first = tracker.toggle("4")
        second = tracker.toggle("4")
        release.set()
        results = await asyncio.gather(first, second, return_exceptions=True)
        return results

    first, second = asyncio.run(scenario())
    assert isinstance(first, BookmarkSyncError)
    # The second intent (not bookmarked) already matches the server.
    assert second is False
    assert not tracker.is_bookmarked("4")
    assert len(gateway.calls_to("toggle_bookmark")) == 1


def test_toggle_requires_identity(gateway, session):
    tracker = BookmarkTracker(gateway, session)
    with pytest.raises(InvalidIdentity):
        tracker.toggle("1")
    assert gateway.calls == []


def test_reset_drops_in_flight_resolution(gateway, tracker):
    async def scenario():
        release = gateway.hold("toggle_bookmark")
        task = tracker.toggle("id42")
        await asyncio.sleep(0)
        tracker.reset()
        release.set()
        return await task

    assert asyncio.run(scenario()) is None
    assert tracker.ids == frozenset()
    assert tracker.load_state is LoadState.IDLE


def test_load_answer_does_not_undo_toggle_confirmed_meanwhile(gateway, tracker):
    async def scenario():
        release = gateway.hold("fetch_bookmarks")
        loading = asyncio.ensure_future(tracker.load())
        await asyncio.sleep(0)
        confirmed = await tracker.toggle("7")
        release.set()
        await loading
        return confirmed

    assert asyncio.run(scenario()) is True
    assert gateway.bookmarks["a@x.com"] == {"7"}
    assert tracker.is_bookmarked("7")
    assert tracker.ids == frozenset({"7"})
