"""
Location Picker

Keeps the free-text location, the highlighted suggestion and the manual
latitude/longitude fields in step, and reports every change to the
incident form through a single on_change callback.

Usage:
    picker = LocationPicker(build_adapter(), on_change=form.set_location)
    picker.set_manual_mode(False)
    picker.change_text("Kochi")          # debounced suggestion fetch
    await picker.select(picker.suggestions[0])

Every commit carries the full (location, latitude, longitude) tuple;
coordinates are empty strings when unknown. Nothing here raises to the
form: provider problems end as an empty list, a coordinate label or a
"not found" message.
"""

import asyncio
import logging
from typing import Callable, Optional

from .controller import Mode, ModeController
from .geocoding import GeocodingAdapter
from .geolocation import (
    DEFAULT_ERROR_MESSAGE, GeolocationError, PositionErrorCode, PositionOptions, PositionSource,
    UNSUPPORTED_MESSAGE,
)
from .results import LocationSuggestion, ResolvedLocation, format_coordinate, parse_coordinate
from .suggestions import DEBOUNCE_SECONDS, MIN_QUERY_LENGTH, SuggestionFetcher

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Location not found. Please try a different search term."

COORDINATE_FIELDS = ("latitude", "longitude")


class LocationPicker:

    def __init__(
        self,
        geocoder: GeocodingAdapter,
        on_change: Callable[[ResolvedLocation], None],
        value: Optional[ResolvedLocation] = None,
        notify: Optional[Callable[[str], None]] = None,
        position_source: Optional[PositionSource] = None,
        connectivity: Optional[Callable[[], bool]] = None,
        debounce: float = DEBOUNCE_SECONDS,
    ):
        self.geocoder = geocoder
        self.on_change = on_change
        self.notify = notify or (lambda message: logger.warning(f"Location picker: {message}"))
        self.position_source = position_source

        self.query = ""
        self.latitude = ""
        self.longitude = ""
        self.is_loading = False

        self.fetcher = SuggestionFetcher(geocoder, debounce=debounce)
        self.modes = ModeController(connectivity)
        self.modes.subscribe(self._on_modes_changed)

        if value is not None:
            self.set_value(value)

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def value(self) -> ResolvedLocation:
        return ResolvedLocation(self.query, self.latitude, self.longitude)

    @property
    def suggestions(self) -> list[LocationSuggestion]:
        return self.fetcher.suggestions

    @property
    def dropdown_visible(self) -> bool:
        return self.fetcher.visible and bool(self.fetcher.suggestions)

    @property
    def manual_mode(self) -> bool:
        return self.modes.manual_mode

    @property
    def is_offline(self) -> bool:
        return self.modes.is_offline

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    def _emit(self, location: str, latitude: str, longitude: str) -> ResolvedLocation:
        self.query, self.latitude, self.longitude = location, latitude, longitude
        committed = ResolvedLocation(location, latitude, longitude)
        self.on_change(committed)
        return committed

    def set_value(self, value: ResolvedLocation) -> None:
        """Value pushed down from the form - updates fields without emitting."""
        if value.location:
            self.query = value.location
        if value.latitude and value.longitude:
            self.latitude = value.latitude
            self.longitude = value.longitude

    # -------------------------------------------------------------------------
    # Mode / network
    # -------------------------------------------------------------------------

    def _on_modes_changed(self, modes: ModeController) -> None:
        if not modes.autocomplete_enabled:
            self.fetcher.cancel_pending()
            self.fetcher.clear()

    def set_manual_mode(self, manual: bool) -> None:
        self.modes.set_mode(Mode.MANUAL if manual else Mode.AUTOCOMPLETE)

    def toggle_mode(self) -> Mode:
        return self.modes.toggle()

    def handle_online(self) -> None:
        self.modes.handle_online()

    def handle_offline(self) -> None:
        self.modes.handle_offline()

    # -------------------------------------------------------------------------
    # Text input
    # -------------------------------------------------------------------------

    def focus(self) -> None:
        if not self.modes.autocomplete_enabled:
            return
        if self.fetcher.suggestions:
            self.fetcher.reopen()
        elif not self.query:
            self.fetcher.show_seed()

    def blur(self) -> None:
        """Click outside the input and dropdown."""
        self.fetcher.hide()

    def change_text(self, text: str) -> ResolvedLocation:
        self.fetcher.cancel_pending()
        if self.modes.autocomplete_enabled and len(text) >= MIN_QUERY_LENGTH:
            self.fetcher.schedule(text)
        else:
            self.fetcher.clear()
        return self._emit(text, self.latitude, self.longitude)

    async def handle_key(self, key: str) -> None:
        if not self.dropdown_visible or self.manual_mode:
            if key == "Enter" and not self.manual_mode:
                await self.search()
            return

        if key == "ArrowDown":
            self.fetcher.move_highlight(1)
        elif key == "ArrowUp":
            self.fetcher.move_highlight(-1)
        elif key == "Enter":
            highlighted = self.fetcher.highlighted
            if highlighted is not None:
                await self.select(highlighted)
            else:
                await self.search()
        elif key == "Escape":
            self.fetcher.hide()

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    async def select(self, suggestion: LocationSuggestion) -> ResolvedLocation:
        self.fetcher.cancel_pending()
        label = suggestion.display_name

        if suggestion.provider_ref and self.geocoder.primary_configured:
            coords = await self.geocoder.place_details(suggestion.provider_ref)
            if coords is not None:
                lat, lon = coords
                self.fetcher.clear()
                return self._emit(label, format_coordinate(lat), format_coordinate(lon))
            logger.warning(f"No coordinates for '{label}', committing text only")

        if suggestion.has_coordinates:
            try:
                latitude = format_coordinate(float(suggestion.latitude))
                longitude = format_coordinate(float(suggestion.longitude))
            except (TypeError, ValueError) as e:
                logger.error(f"Failed to parse coordinates for '{label}': {e}")
                latitude = longitude = ""
        else:
            latitude = longitude = ""

        self.fetcher.clear()
        return self._emit(label, latitude, longitude)

    # -------------------------------------------------------------------------
    # Forward search (Enter / search button)
    # -------------------------------------------------------------------------

    async def search(self, query: Optional[str] = None) -> Optional[ResolvedLocation]:
        text = self.query if query is None else query
        if not text.strip():
            return None
        if not self.modes.search_enabled:
            logger.info("Location search skipped - manual mode or offline")
            return None

        self.is_loading = True
        try:
            result = await self.geocoder.forward_geocode(text)
        finally:
            self.is_loading = False

        if result is None:
            self.notify(NOT_FOUND_MESSAGE)
            return None

        self.fetcher.cancel_pending()
        self.fetcher.clear()
        return self._emit(result.location, result.latitude, result.longitude)

    # -------------------------------------------------------------------------
    # Manual coordinates
    # -------------------------------------------------------------------------

    async def change_coordinate(self, field: str, value: str) -> ResolvedLocation:
        if field not in COORDINATE_FIELDS:
            raise ValueError(f"Unknown coordinate field: {field}")
        setattr(self, field, value)
        latitude, longitude = self.latitude, self.longitude

        lat = parse_coordinate(latitude)
        lon = parse_coordinate(longitude)
        if lat is None or lon is None or self.is_offline:
            return self._emit(self.query, latitude, longitude)

        label = await self.geocoder.reverse_geocode(lat, lon)
        return self._emit(label, latitude, longitude)

    # -------------------------------------------------------------------------
    # Device position
    # -------------------------------------------------------------------------

    async def use_current_location(self) -> Optional[ResolvedLocation]:
        if self.position_source is None:
            self.notify(UNSUPPORTED_MESSAGE)
            return None

        options = PositionOptions()
        self.is_loading = True
        try:
            try:
                position = await asyncio.wait_for(
                    self.position_source.get_current_position(options),
                    timeout=options.timeout,
                )
            except asyncio.TimeoutError:
                position = None
                message = GeolocationError(PositionErrorCode.TIMEOUT).user_message
            except GeolocationError as e:
                position = None
                message = e.user_message
            except Exception as e:
                # Position sources are host code; nothing they raise reaches the form
                logger.error(f"Position source failed: {e}")
                position = None
                message = DEFAULT_ERROR_MESSAGE
            else:
                message = DEFAULT_ERROR_MESSAGE

            if position is None:
                logger.warning(f"Error getting location: {message}")
                self.notify(message)
                return None

            latitude = format_coordinate(position.latitude)
            longitude = format_coordinate(position.longitude)
            label = await self.geocoder.reverse_geocode(position.latitude, position.longitude)
        finally:
            self.is_loading = False

        self.fetcher.clear()
        return self._emit(label, latitude, longitude)

    def close(self) -> None:
        """Form unmounted - stop the debounce timer."""
        self.fetcher.close()
