"""Defines the collaborator interfaces the settings synchronizer talks to."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Callable, List

from ..note_types import Settings

# Receives (event kind, payload) from a backend; payload is None for resets
EventSink = Callable[[Any, Any], None]


class BackendError(Exception):
    """A detection backend operation failed; str(err) is the reason."""


class SettingsStoreError(Exception):
    """The persisted settings could not be read or written."""


class IDetectionBackend(ABC):
    """Interface for the pitch detection engine."""

    @abstractmethod
    async def list_devices(self) -> List[str]:
        """Names of the available input devices."""
        pass

    @abstractmethod
    async def start_listening(self, device_name: str) -> None:
        """Start detection on a device; raises BackendError on failure."""
        pass

    @abstractmethod
    async def set_threshold(self, ratio: float) -> None:
        pass

    @abstractmethod
    async def set_channel_mode(self, mode: int) -> None:
        pass

    @abstractmethod
    async def set_pitch_mode(self, mode: int) -> None:
        pass

    @abstractmethod
    async def set_custom_pitch(self, hz: float) -> None:
        pass

    @abstractmethod
    async def set_tuning_shift(self, semitones: int) -> None:
        pass

    @abstractmethod
    async def set_drop_tuning(self, enabled: bool, note: int) -> None:
        pass

    @abstractmethod
    async def set_tray_icon_mode(self, mode: int) -> None:
        pass

    @abstractmethod
    def subscribe(self, sink: EventSink) -> None:
        """Deliver frequency, raw frequency, input level and reset events to sink.

        Implementations call sink on the event loop thread.
        """
        pass


class ISettingsStore(ABC):
    """Interface for the persisted settings aggregate."""

    @abstractmethod
    async def get_settings(self) -> Settings:
        """Read the whole aggregate; empty Settings on first run."""
        pass

    @abstractmethod
    async def set_settings(self, settings: Settings) -> None:
        """Replace the whole aggregate."""
        pass
