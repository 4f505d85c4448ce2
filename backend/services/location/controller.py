"""
Mode / network state for the location picker.

Manual mode means typed text never reaches a provider: no suggestions and
no forward search. Offline disables both in either mode. Manual text and
coordinate entry stay available.
"""

import enum
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Mode(enum.Enum):
    MANUAL = "manual"
    AUTOCOMPLETE = "autocomplete"


class NetworkStatus(enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class ModeController:
    """
    Two independent flags: mode (default MANUAL) and network status.

    Network status is only ever written by connectivity events
    (handle_online / handle_offline); the picker reads it.
    """

    def __init__(
        self,
        connectivity: Optional[Callable[[], bool]] = None,
        mode: Mode = Mode.MANUAL,
    ):
        self.mode = mode
        # Initial snapshot; no probe means assume online
        online = connectivity() if connectivity is not None else True
        self.network = NetworkStatus.ONLINE if online else NetworkStatus.OFFLINE
        self._listeners: list[Callable[["ModeController"], None]] = []

    @property
    def manual_mode(self) -> bool:
        return self.mode is Mode.MANUAL

    @property
    def is_offline(self) -> bool:
        return self.network is NetworkStatus.OFFLINE

    @property
    def autocomplete_enabled(self) -> bool:
        return not self.manual_mode and not self.is_offline

    @property
    def search_enabled(self) -> bool:
        return not self.manual_mode and not self.is_offline

    def subscribe(self, listener: Callable[["ModeController"], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    def set_mode(self, mode: Mode) -> None:
        if mode is self.mode:
            return
        self.mode = mode
        logger.debug(f"Location picker mode -> {mode.value}")
        self._notify()

    def toggle(self) -> Mode:
        self.set_mode(Mode.AUTOCOMPLETE if self.manual_mode else Mode.MANUAL)
        return self.mode

    def handle_online(self) -> None:
        self.network = NetworkStatus.ONLINE
        self._notify()

    def handle_offline(self) -> None:
        self.network = NetworkStatus.OFFLINE
        self._notify()
