"""Core components for the Fret Tuner application."""

# Import interfaces for easier access
from .interfaces import (
    BackendError,
    IDetectionBackend,
    ISettingsStore,
    SettingsStoreError,
)

__all__ = ["BackendError", "IDetectionBackend", "ISettingsStore", "SettingsStoreError"]
