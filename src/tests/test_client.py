from __future__ import annotations

import asyncio

import pytest

from fakes import make_alert, make_article
from news_pulse.client import NewsClient
from news_pulse.datamodels import LoadState, Preferences
from news_pulse.errors import BookmarkSyncError, InvalidIdentity, NetworkError, ValidationError
from news_pulse.preferences import PreferenceState


@pytest.fixture
def client(gateway):
    gateway.feed[None] = [make_article("n1", "Headline one"), make_article("n2", "Headline two")]
    gateway.alerts["a@x.com"] = [make_alert("a1", "Alert for a")]
    gateway.bookmarks["a@x.com"] = {"n1"}
    gateway.preferences["a@x.com"] = Preferences(("technology",), "daily", "email")
    return NewsClient(gateway)


@pytest.fixture
def errors(client):
    seen = []
    client.errors.connect(seen.append)
    return seen


def test_start_loads_feed_only_when_signed_out(gateway, client):
    asyncio.run(client.start())
    assert client.articles.load_state is LoadState.LOADED
    assert client.bookmarks.load_state is LoadState.IDLE
    assert client.preferences.state is PreferenceState.UNLOADED
    assert gateway.calls_to("fetch_alerts") == []


def test_sign_in_synchronizes_identity_scoped_stores(client):
    assert asyncio.run(client.sign_in("a@x.com")) is True
    assert client.bookmarks.ids == frozenset({"n1"})
    assert [r.id for r in client.alerts.items] == ["a1"]
    assert client.preferences.preferences.categories == ("technology",)


def test_first_sign_in_without_preferences_uses_defaults(client):
    asyncio.run(client.sign_in("new@x.com"))
    assert client.preferences.state is PreferenceState.LOADED
    assert client.preferences.preferences == Preferences((), "immediate", "email")


def test_invalid_email_is_reported_not_raised(client, errors):
    assert asyncio.run(client.sign_in("not-an-email")) is False
    assert len(errors) == 1
    assert isinstance(errors[0], InvalidIdentity)
    assert client.session.identity is None


def test_sign_out_tears_down_identity_state_but_keeps_feed(client):
    async def scenario():
        await client.start()
        await client.sign_in("a@x.com")
        client.alerts.expand("a1")
        client.sign_out()

    asyncio.run(scenario())
    assert client.bookmarks.ids == frozenset()
    assert client.bookmarks.load_state is LoadState.IDLE
    assert client.alerts.items == ()
    assert client.alerts.expanded is None
    assert client.preferences.state is PreferenceState.UNLOADED
    assert client.preferences.preferences is None
    assert len(client.articles.items) == 2


def test_sign_out_during_in_flight_toggle_applies_nothing(gateway, client, errors):
    async def scenario():
        await client.sign_in("a@x.com")
        release = gateway.hold("toggle_bookmark")
        toggle = asyncio.ensure_future(client.toggle_bookmark("id42"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert client.bookmarks.is_bookmarked("id42")
        client.sign_out()
        release.set()
        return await toggle

    assert asyncio.run(scenario()) is None
    assert not client.bookmarks.is_bookmarked("id42")
    assert client.bookmarks.ids == frozenset()
    assert all(not a.bookmarked for a in client.articles.visible())
    assert errors == []


def test_switching_identity_never_shows_previous_users_data(gateway, client):
    async def scenario():
        await client.sign_in("a@x.com")
        release = gateway.hold("fetch_bookmarks")
        switching = asyncio.ensure_future(client.sign_in("b@x.com"))
        await asyncio.sleep(0)
        during = client.bookmarks.ids, client.alerts.items
        release.set()
        await switching
        return during

    during = asyncio.run(scenario())
    assert during == (frozenset(), ())
    assert client.bookmarks.ids == frozenset()
    assert client.alerts.items == ()


def test_feed_failure_is_reported_and_stale_items_kept(gateway, client, errors):
    async def scenario():
        await client.refresh_feed()
        gateway.fail["fetch_feed"] = NetworkError("offline")
        return await client.refresh_feed()

    assert asyncio.run(scenario()) is False
    assert client.articles.load_state is LoadState.FAILED
    assert len(client.articles.items) == 2
    assert [type(e) for e in errors] == [NetworkError]


def test_bookmark_without_identity_asks_to_sign_in(gateway, client, errors):
    assert asyncio.run(client.toggle_bookmark("n1")) is None
    assert isinstance(errors[0], InvalidIdentity)
    assert gateway.calls_to("toggle_bookmark") == []


def test_failed_bookmark_is_reported_as_sync_error(gateway, client, errors):
    async def scenario():
        await client.sign_in("a@x.com")
        gateway.fail["toggle_bookmark"] = NetworkError("offline")
        return await client.toggle_bookmark("n2")

    assert asyncio.run(scenario()) is None
    assert not client.bookmarks.is_bookmarked("n2")
    assert isinstance(errors[0], BookmarkSyncError)


def test_alert_bookmark_goes_through_archive(gateway, client):
    async def scenario():
        await client.sign_in("a@x.com")
        return await client.toggle_alert_bookmark("a1")

    assert asyncio.run(scenario()) is True
    assert client.alerts.is_bookmarked("a1")
    assert gateway.calls_to("toggle_bookmark") == []


def test_save_preferences_notifies_and_validates(gateway, client, errors):
    saved = []
    client.preferences.updated.connect(saved.append)

    async def scenario():
        await client.sign_in("a@x.com")
        rejected = await client.save_preferences(Preferences((), "daily", "email"))
        accepted = await client.save_preferences(Preferences(("sports",), "hourly", "push"))
        return rejected, accepted

    assert asyncio.run(scenario()) == (False, True)
    assert isinstance(errors[0], ValidationError)
    assert saved == [Preferences(("sports",), "hourly", "push")]
    assert len(gateway.calls_to("save_preferences")) == 1


def test_from_config_uses_single_endpoint():
    client = NewsClient.from_config(
        {"api_base_url": "https://alerts.example/api/", "http_timeout": 5, "default_category": "health"}
    )
    assert client.gateway.base_url == "https://alerts.example/api"
    assert client.gateway.timeout == 5
    assert client.articles.category == "health"
