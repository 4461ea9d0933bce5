"""Configuration management for Fret Tuner components."""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..logging_config import get_logger
from ..note_types import Settings
from .interfaces import ISettingsStore, SettingsStoreError

logger = get_logger(__name__)

SETTINGS_FILE = "settings.json"


class JsonSettingsStore(ISettingsStore):
    """Settings aggregate stored as a JSON file."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the settings store.

        Args:
            config_dir: Directory to store the settings file, or None to use default
        """
        if config_dir is None:
            # Use ~/.config/fret_tuner by default
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "fret_tuner")

        self.config_dir = Path(config_dir)
        self.settings_file = self.config_dir / SETTINGS_FILE

    def load(self) -> Settings:
        """Read settings from file.

        Returns:
            The stored settings, or empty Settings if the file doesn't exist

        Raises:
            SettingsStoreError: If the file exists but cannot be read or parsed
        """
        if not self.settings_file.exists():
            logger.debug(f"No settings file at {self.settings_file}")
            return Settings()

        try:
            with open(self.settings_file, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise SettingsStoreError(
                f"Error loading settings from {self.settings_file}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise SettingsStoreError(f"Settings in {self.settings_file} are not an object")

        logger.debug(f"Loaded settings from {self.settings_file}")
        return Settings.from_dict(data)

    def save(self, settings: Settings) -> None:
        """Write settings to file, replacing what was there.

        Raises:
            SettingsStoreError: If the file cannot be written
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, "w") as f:
                json.dump(settings.to_dict(), f, indent=2)
        except OSError as e:
            raise SettingsStoreError(
                f"Error saving settings to {self.settings_file}: {e}"
            ) from e
        logger.debug(f"Saved settings to {self.settings_file}")

    async def get_settings(self) -> Settings:
        return await asyncio.to_thread(self.load)

    async def set_settings(self, settings: Settings) -> None:
        await asyncio.to_thread(self.save, settings)


class SettingsWriter:
    """Serializes read-merge-write updates of the persisted settings.

    A single worker task owns all writes. Each submitted change is merged on top
    of a fresh read of the store and written back before the next change is
    read, so concurrent mutations cannot overwrite each other's fields.
    """

    def __init__(self, store: ISettingsStore):
        self._store = store
        self._queue: "asyncio.Queue[Optional[Tuple[Dict[str, Any], asyncio.Future]]]" = (
            asyncio.Queue()
        )
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def update(self, **changes: Any) -> bool:
        """Persist the given fields on top of the stored aggregate.

        Args:
            **changes: Settings field names and their new values

        Returns:
            True if the merged aggregate was written, False otherwise
        """
        unknown = set(changes) - set(Settings.field_names())
        if unknown:
            raise ValueError(f"Unknown settings fields: {sorted(unknown)}")

        self.start()
        done = asyncio.get_running_loop().create_future()
        await self._queue.put((changes, done))
        return await done

    async def close(self) -> None:
        """Finish pending writes and stop the worker."""
        if not self.running:
            return
        await self._queue.put(None)
        await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            if item is None:
                return
            changes, done = item
            ok = await self._merge_and_write(changes)
            if not done.done():
                done.set_result(ok)

    async def _merge_and_write(self, changes: Dict[str, Any]) -> bool:
        try:
            current = await self._store.get_settings()
        except Exception as e:
            logger.warning(f"Could not read settings, merging onto empty: {e}")
            current = Settings()

        merged = current.merged(Settings.from_dict(_raw(changes)))
        try:
            await self._store.set_settings(merged)
        except Exception as e:
            logger.error(f"Could not write settings: {e}")
            return False

        logger.debug(f"Persisted {sorted(changes)}")
        return True


def _raw(changes: Dict[str, Any]) -> Dict[str, Any]:
    return Settings(**changes).to_dict()
