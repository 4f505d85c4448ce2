"""
Suggestion Fetcher

Debounced search-as-you-type for the location picker.

    IDLE -> SEARCHING -> SHOWING_RESULTS | SHOWING_EMPTY -> IDLE

Each keystroke restarts a single debounce timer. Fetches already in flight
are left to finish, but every fetch is numbered and only the most recently
issued one may replace the list - a slow earlier response is discarded.
"""

import asyncio
import enum
import logging
from typing import Optional

from .geocoding import GeocodingAdapter
from .results import LocationSuggestion

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.3
MIN_QUERY_LENGTH = 2

# Popular southern Indian places offered on focus with an empty query
POPULAR_LOCATIONS = [
    ("Kochi, Kerala", 9.9312, 76.2673),
    ("Trivandrum, Kerala", 8.5241, 76.9366),
    ("Kozhikode, Kerala", 11.2588, 75.7804),
    ("Thrissur, Kerala", 10.5276, 76.2144),
    ("Chennai, Tamil Nadu", 13.0827, 80.2707),
    ("Bangalore, Karnataka", 12.9716, 77.5946),
    ("Coimbatore, Tamil Nadu", 11.0168, 76.9558),
    ("Hyderabad, Telangana", 17.3850, 78.4867),
    ("Mysore, Karnataka", 12.2958, 76.6394),
    ("Mangalore, Karnataka", 12.9141, 74.8560),
]


def seed_suggestions() -> list[LocationSuggestion]:
    return [
        LocationSuggestion(display_name=name, latitude=lat, longitude=lng, kind="city")
        for name, lat, lng in POPULAR_LOCATIONS
    ]


class FetchState(enum.Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    SHOWING_RESULTS = "showing_results"
    SHOWING_EMPTY = "showing_empty"


class SuggestionFetcher:
    """Owns the dropdown list, its visibility and the highlighted row."""

    def __init__(
        self,
        geocoder: GeocodingAdapter,
        debounce: float = DEBOUNCE_SECONDS,
        min_length: int = MIN_QUERY_LENGTH,
    ):
        self.geocoder = geocoder
        self.debounce = debounce
        self.min_length = min_length

        self.suggestions: list[LocationSuggestion] = []
        self.visible = False
        self.selected_index = -1
        self.state = FetchState.IDLE

        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: set[asyncio.Task] = set()
        self._issued = 0
        self._closed = False

    # -------------------------------------------------------------------------
    # List state
    # -------------------------------------------------------------------------

    @property
    def is_searching(self) -> bool:
        return self.state is FetchState.SEARCHING

    @property
    def highlighted(self) -> Optional[LocationSuggestion]:
        if 0 <= self.selected_index < len(self.suggestions):
            return self.suggestions[self.selected_index]
        return None

    def clear(self) -> None:
        """Empty and hide the list. Fetches still in flight become stale."""
        self.invalidate()
        self.suggestions = []
        self.visible = False
        self.selected_index = -1
        self.state = FetchState.IDLE

    def hide(self) -> None:
        """Close the dropdown but keep the list for the next focus."""
        self.visible = False
        self.selected_index = -1
        if self.state is not FetchState.SEARCHING:
            self.state = FetchState.IDLE

    def reopen(self) -> bool:
        if not self.suggestions:
            return False
        self.visible = True
        self.state = FetchState.SHOWING_RESULTS
        return True

    def show_seed(self) -> None:
        self._apply(seed_suggestions())

    def move_highlight(self, step: int) -> None:
        """Arrow-key navigation, wrapping at both ends."""
        count = len(self.suggestions)
        if not count:
            return
        if step > 0:
            self.selected_index = self.selected_index + 1 if self.selected_index < count - 1 else 0
        else:
            self.selected_index = self.selected_index - 1 if self.selected_index > 0 else count - 1

    def _apply(self, suggestions: list[LocationSuggestion]) -> None:
        self.suggestions = list(suggestions)
        self.visible = bool(self.suggestions)
        self.selected_index = -1
        self.state = FetchState.SHOWING_RESULTS if self.suggestions else FetchState.SHOWING_EMPTY

    # -------------------------------------------------------------------------
    # Debounce
    # -------------------------------------------------------------------------

    def cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def schedule(self, query: str) -> None:
        """Restart the debounce timer for query. Short queries clear at once."""
        self.cancel_pending()
        if self._closed:
            return
        if len(query) < self.min_length:
            self.clear()
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce, self._fire, query)

    def _fire(self, query: str) -> None:
        self._timer = None
        if self._closed:
            return
        task = asyncio.ensure_future(self.fetch(query))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def fetch(self, query: str) -> list[LocationSuggestion]:
        """Look up suggestions now, applying them only if still the latest fetch."""
        if len(query) < self.min_length:
            self.clear()
            return []

        self._issued += 1
        seq = self._issued
        self.state = FetchState.SEARCHING

        try:
            results = await self.geocoder.forward_search(query)
        except Exception as e:
            # Adapter already absorbs provider errors; this is a last guard for the UI
            logger.error(f"Suggestion fetch failed for '{query}': {e}")
            results = []

        if seq != self._issued or self._closed:
            logger.debug(f"Discarding stale suggestions for '{query}'")
            return results

        self._apply(results)
        return results

    async def drain(self) -> None:
        """Wait for fetches already started (tests, shutdown)."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def invalidate(self) -> None:
        """Make any in-flight fetch stale so it cannot reopen the list."""
        self._issued += 1

    def close(self) -> None:
        """Unmount: no timer may fire into a removed picker."""
        self._closed = True
        self.cancel_pending()
        self.invalidate()
