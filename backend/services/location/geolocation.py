"""
Device geolocation contract for "use current location".

The host (browser bridge, mobile client, test double) implements
PositionSource; the picker only ever asks for one position.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Protocol


class PositionErrorCode(enum.IntEnum):
    # Same numbering as the W3C GeolocationPositionError codes
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


ERROR_MESSAGES = {
    PositionErrorCode.PERMISSION_DENIED: "Location access denied. Please enable location permissions.",
    PositionErrorCode.POSITION_UNAVAILABLE: "Location information is unavailable.",
    PositionErrorCode.TIMEOUT: "Location request timed out.",
}
DEFAULT_ERROR_MESSAGE = "Unable to get your location."
UNSUPPORTED_MESSAGE = "Geolocation is not supported by this device."


class GeolocationError(Exception):
    def __init__(self, code: int, message: str = ""):
        super().__init__(message or f"geolocation error {code}")
        self.code = code

    @property
    def user_message(self) -> str:
        try:
            return ERROR_MESSAGES[PositionErrorCode(self.code)]
        except ValueError:
            return DEFAULT_ERROR_MESSAGE


@dataclass(frozen=True)
class PositionOptions:
    enable_high_accuracy: bool = True
    timeout: float = 10.0        # seconds
    maximum_age: float = 300.0   # accept cached fixes up to 5 minutes old


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None


class PositionSource(Protocol):
    async def get_current_position(self, options: PositionOptions) -> Position:
        """One-shot fix. Raises GeolocationError."""
        ...
