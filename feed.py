"""
feed.py
Keeps the latest dashboard aggregate current as the store pushes changes.

Each refresh takes a generation number before fetching. Only the refresh that
still holds the newest generation when it finishes may publish, so a slow,
older refresh can never overwrite a newer result.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Callable

import store
from aggregation import build_dashboard
from models import Collections, DashboardData

logger = logging.getLogger(__name__)


class DashboardFeed:
    def __init__(
        self,
        loader: Callable[[], Collections] = store.load_collections,
        start: date | None = None,
        end: date | None = None,
    ):
        self._loader = loader
        self._start = start
        self._end = end
        self._lock = threading.Lock()
        self._generation = 0
        self._published_generation = 0
        self._data = DashboardData.empty()
        self._collections = Collections()
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def data(self) -> DashboardData:
        with self._lock:
            return self._data

    @property
    def collections(self) -> Collections:
        with self._lock:
            return self._collections

    @property
    def generation(self) -> int:
        with self._lock:
            return self._published_generation

    def start(self) -> None:
        """Subscribe to every collection and run the first refresh."""
        if self._unsubscribers:
            return
        for name in store.COLLECTION_NAMES:
            self._unsubscribers.append(store.subscribe(name, self._on_change))
        self.refresh()

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def set_window(self, start: date | None, end: date | None) -> None:
        with self._lock:
            self._start, self._end = start, end
        self.refresh()

    def _on_change(self, _snapshot) -> None:
        self.refresh()

    def refresh(self) -> bool:
        """
        Fetch and aggregate. Returns False when a newer refresh superseded this one.
        A failed fetch publishes the empty dashboard.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            start, end = self._start, self._end

        try:
            collections = self._loader()
        except Exception:
            logger.exception("Failed to load dashboard data")
            collections = Collections()
        data = build_dashboard(collections, start=start, end=end)

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding stale dashboard refresh %d (latest %d)", generation, self._generation)
                return False
            self._data = data
            self._collections = collections
            self._published_generation = generation
        return True
