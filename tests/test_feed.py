from __future__ import annotations

from datetime import date

import store
from conftest import make_contribution, make_member
from feed import DashboardFeed
from models import Collections, DashboardStats


def test_stale_refresh_is_discarded():
    old = Collections(members=[make_member(1, "Old")])
    new = Collections(members=[make_member(1, "Old"), make_member(2, "New")])
    calls = []

    def loader():
        calls.append(1)
        if len(calls) == 1:
            # A newer trigger lands while this fetch is still in flight
            assert feed.refresh() is True
            return old
        return new

    feed = DashboardFeed(loader=loader)
    assert feed.refresh() is False
    assert feed.collections is new
    assert feed.data.stats.total_members == 2
    assert feed.generation == 2


def test_loader_failure_publishes_empty_dashboard():
    def loader():
        raise ConnectionError("backend unavailable")

    feed = DashboardFeed(loader=loader)
    assert feed.refresh() is True
    assert feed.data.stats == DashboardStats()
    assert feed.data.attendance_trends == []
    assert feed.collections == Collections()


def test_feed_follows_store_writes(temp_db):
    feed = DashboardFeed()
    feed.start()
    try:
        assert feed.data.stats.total_members == 0
        mid = store.add_member(make_member(None, "Joseph"))
        assert feed.data.stats.total_members == 1
        store.add_contribution(make_contribution(None, "1,500", member_id=mid))
        assert feed.data.stats.total_contributions == 1500
    finally:
        feed.stop()

    store.add_member(make_member(None, "Brian"))
    assert feed.data.stats.total_members == 1


def test_window_applies_to_stats():
    collections = Collections(
        contributions=[
            make_contribution(1, 100, date="2024-01-10"),
            make_contribution(2, 200, date="2024-02-10"),
        ]
    )
    feed = DashboardFeed(loader=lambda: collections)
    feed.refresh()
    assert feed.data.stats.total_contributions == 300
    feed.set_window(date(2024, 2, 1), date(2024, 2, 29))
    assert feed.data.stats.total_contributions == 200


def test_refresh_uses_the_window_it_started_with(monkeypatch):
    import feed as feed_module

    windows = []
    real_build = feed_module.build_dashboard

    def recording_build(collections, start=None, end=None, **kwargs):
        windows.append((start, end))
        return real_build(collections, start=start, end=end, **kwargs)

    monkeypatch.setattr(feed_module, "build_dashboard", recording_build)
    calls = []

    def loader():
        calls.append(1)
        if len(calls) == 1:
            # The window moves while the first fetch is in flight
            feed.set_window(date(2024, 6, 1), date(2024, 6, 30))
        return Collections()

    feed = DashboardFeed(loader=loader)
    assert feed.refresh() is False
    assert windows == [(date(2024, 6, 1), date(2024, 6, 30)), (None, None)]
    assert feed.generation == 2
