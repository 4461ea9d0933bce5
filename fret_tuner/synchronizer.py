"""Keeps tuner settings in agreement between the UI, the settings store and the backend."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from .core.config import SettingsWriter
from .core.events import BackendEvents, BackendEventType, ContextEventType, EventEmitter
from .core.interfaces import IDetectionBackend, ISettingsStore
from .logging_config import get_logger
from .note_types import (
    ChannelMode,
    DropTuningNote,
    GuitarNote,
    NoteInfo,
    PitchMode,
    Settings,
    ThemeMode,
    TrayIconMode,
    TuningStatus,
    parse_enum,
)
from .note_utils import format_cent, judge_tuning, map_frequency
from .pitch import STANDARD_A4, guitar_strings, is_valid_custom_pitch, resolve_a4

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 2.0
DEFAULT_BACKEND_TIMEOUT = 2.0


class SyncState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@dataclass
class TunerContext:
    """Live tuner state shared with the UI layer."""

    devices: List[str] = field(default_factory=list)
    selected_device: str = ""
    loading: bool = True
    error: str = ""
    listen_status: str = ""

    # Pushed by the backend
    frequency: Optional[float] = None
    raw_frequency: Optional[float] = None
    input_level: float = 0.0

    # Configuration, persisted
    threshold: float = DEFAULT_THRESHOLD
    channel_mode: ChannelMode = ChannelMode.RIGHT
    tray_icon_mode: TrayIconMode = TrayIconMode.NOTE
    pitch_mode: PitchMode = PitchMode.STANDARD
    custom_pitch: float = STANDARD_A4
    tuning_shift: int = 0
    drop_tuning_enabled: bool = False
    drop_tuning_note: DropTuningNote = DropTuningNote.D
    theme_mode: ThemeMode = ThemeMode.SYSTEM

    @property
    def effective_a4(self) -> float:
        return resolve_a4(self.pitch_mode, self.custom_pitch, self.tuning_shift)

    @property
    def note_info(self) -> NoteInfo:
        return map_frequency(self.frequency, self.effective_a4)

    @property
    def tuning_status(self) -> TuningStatus:
        return judge_tuning(self.note_info.cent)

    @property
    def cent_display(self) -> str:
        return format_cent(self.note_info.cent)

    @property
    def guitar_strings(self) -> List[GuitarNote]:
        return guitar_strings(
            self.pitch_mode,
            self.custom_pitch,
            self.tuning_shift,
            self.drop_tuning_enabled,
            self.drop_tuning_note,
        )


class SettingsSynchronizer:
    """Owns a TunerContext and mediates every change to it.

    Mutations follow one protocol: update the context, push the value to the
    detection backend, then persist it through the single settings writer. A
    failed push restores the previous value and skips persistence, so the
    context, the backend and the store keep agreeing. Backend and store
    failures never propagate; they become status strings or log records.
    """

    def __init__(
        self,
        backend: IDetectionBackend,
        store: ISettingsStore,
        context: Optional[TunerContext] = None,
        backend_timeout: float = DEFAULT_BACKEND_TIMEOUT,
        event_queue_size: int = 16,
    ):
        self.backend = backend
        self.store = store
        self.context = context or TunerContext()
        self.backend_timeout = backend_timeout
        self.state = SyncState.UNINITIALIZED

        self._writer = SettingsWriter(store)
        self._events = BackendEvents(queue_size=event_queue_size)
        self._emitter = EventEmitter()

        self._events.on(BackendEventType.FREQUENCY, self._on_frequency)
        self._events.on(BackendEventType.RAW_FREQUENCY, self._on_raw_frequency)
        self._events.on(BackendEventType.INPUT_LEVEL, self._on_input_level)
        self._events.on(BackendEventType.RESET, self._on_reset)

    @property
    def events(self) -> BackendEvents:
        return self._events

    def on_change(self, callback: Callable[[str, Any], None]) -> None:
        """Register callback(field_name, new_value) for context changes."""
        self._emitter.on(ContextEventType.CHANGED, callback)

    # Lifecycle

    async def load(self) -> None:
        """Restore persisted settings, sync the backend and start listening."""
        if self.state is not SyncState.UNINITIALIZED:
            logger.warning(f"load() called in state {self.state.value}, ignoring")
            return

        self.state = SyncState.LOADING
        self._set("loading", True)
        self._writer.start()
        try:
            devices = await self._fetch_devices()
            self._set("devices", devices)

            settings = await self._read_settings()
            self._apply_settings(settings)
            await self._push_all()

            self.backend.subscribe(self._events.publish)
            self._events.start()

            device = self._restore_device(settings.device_name, devices)
            if device:
                await self.select_device(device)
            else:
                logger.info("No input devices available")
        finally:
            self._set("loading", False)
            self.state = SyncState.READY
            logger.info("Settings synchronizer ready")

    async def close(self) -> None:
        """Stop event delivery and wait for pending settings writes."""
        await self._events.stop()
        await self._writer.close()

    # Device selection

    async def select_device(self, name: str) -> bool:
        """Switch to a device and start listening on it.

        Returns:
            True if listening started and the choice was persisted
        """
        if not name or name == self.context.selected_device:
            return False

        self._set("selected_device", name)
        self._set("listen_status", "Starting...")
        ok, reason = await self._call("start_listening", self.backend.start_listening(name))
        if not ok:
            # The selection stays; only the status reports the failure
            self._set("listen_status", f"Failed: {reason}")
            return False

        self._set("listen_status", f"Listening: {name}")
        return await self._writer.update(device_name=name)

    # Mutations

    async def update_threshold(self, ratio: float) -> bool:
        return await self._mutate(
            "set_threshold", lambda: self.backend.set_threshold(ratio), threshold=ratio
        )

    async def update_channel_mode(self, mode) -> bool:
        channel_mode = parse_enum(ChannelMode, mode)
        if channel_mode is None:
            logger.warning(f"Ignoring unknown channel mode: {mode!r}")
            return False
        return await self._mutate(
            "set_channel_mode",
            lambda: self.backend.set_channel_mode(int(channel_mode)),
            channel_mode=channel_mode,
        )

    async def update_tray_icon_mode(self, mode) -> bool:
        tray_icon_mode = parse_enum(TrayIconMode, mode)
        if tray_icon_mode is None:
            logger.warning(f"Ignoring unknown tray icon mode: {mode!r}")
            return False
        return await self._mutate(
            "set_tray_icon_mode",
            lambda: self.backend.set_tray_icon_mode(int(tray_icon_mode)),
            tray_icon_mode=tray_icon_mode,
        )

    async def update_pitch_mode(self, mode) -> bool:
        pitch_mode = parse_enum(PitchMode, mode)
        if pitch_mode is None:
            logger.warning(f"Ignoring unknown pitch mode: {mode!r}")
            return False
        return await self._mutate(
            "set_pitch_mode",
            lambda: self.backend.set_pitch_mode(pitch_mode.backend_index),
            pitch_mode=pitch_mode,
        )

    async def update_custom_pitch(self, hz: float) -> bool:
        """Set the custom reference pitch.

        Values outside 438-445 Hz are rejected without touching the backend or
        the store; the rejection is only logged.
        """
        if not is_valid_custom_pitch(hz):
            logger.warning(f"Rejected custom pitch {hz!r}: outside 438-445 Hz")
            return False
        return await self._mutate(
            "set_custom_pitch",
            lambda: self.backend.set_custom_pitch(float(hz)),
            custom_pitch=float(hz),
        )

    async def update_tuning_shift(self, semitones: int) -> bool:
        if not _is_whole(semitones):
            logger.warning(f"Rejected tuning shift {semitones!r}: not whole semitones")
            return False
        shift = int(semitones)
        return await self._mutate(
            "set_tuning_shift",
            lambda: self.backend.set_tuning_shift(shift),
            tuning_shift=shift,
        )

    async def update_drop_tuning(
        self, enabled: Optional[bool] = None, note=None
    ) -> bool:
        """Enable/disable drop tuning and/or change its note.

        Either argument may be omitted to keep its current value.
        """
        drop_note = self.context.drop_tuning_note
        if note is not None:
            drop_note = parse_enum(DropTuningNote, note)
            if drop_note is None:
                logger.warning(f"Ignoring unknown drop tuning note: {note!r}")
                return False
        drop_enabled = self.context.drop_tuning_enabled if enabled is None else bool(enabled)

        return await self._mutate(
            "set_drop_tuning",
            lambda: self.backend.set_drop_tuning(drop_enabled, drop_note.backend_index),
            drop_tuning_enabled=drop_enabled,
            drop_tuning_note=drop_note,
        )

    async def update_theme_mode(self, mode) -> bool:
        theme_mode = parse_enum(ThemeMode, mode)
        if theme_mode is None:
            logger.warning(f"Ignoring unknown theme mode: {mode!r}")
            return False
        # Presentation only, nothing to push
        return await self._mutate("theme_mode", None, theme_mode=theme_mode)

    # Internals

    async def _mutate(
        self,
        operation: str,
        push: Optional[Callable[[], Awaitable[None]]],
        **changes: Any,
    ) -> bool:
        previous = {name: getattr(self.context, name) for name in changes}
        for name, value in changes.items():
            self._set(name, value)

        if push is not None:
            ok, reason = await self._call(operation, push())
            if not ok:
                for name, value in previous.items():
                    # A later mutation may already own this field
                    if getattr(self.context, name) == changes[name]:
                        self._set(name, value)
                self._set("error", f"Failed: {reason}")
                return False

        return await self._writer.update(**changes)

    async def _call(self, operation: str, call: Awaitable[None]):
        """Await a backend call with the timeout; returns (ok, failure reason)."""
        try:
            await asyncio.wait_for(call, self.backend_timeout)
        except asyncio.TimeoutError:
            reason = "timed out"
        except Exception as e:
            reason = str(e) or type(e).__name__
        else:
            return True, ""

        logger.warning(f"Backend {operation} failed: {reason}")
        return False, reason

    async def _fetch_devices(self) -> List[str]:
        try:
            devices = await asyncio.wait_for(
                self.backend.list_devices(), self.backend_timeout
            )
        except asyncio.TimeoutError:
            reason = "timed out"
        except Exception as e:
            reason = str(e) or type(e).__name__
        else:
            logger.info(f"Found {len(devices)} input device(s)")
            return list(devices)

        logger.warning(f"Could not list devices: {reason}")
        self._set("error", f"Failed: {reason}")
        return []

    async def _read_settings(self) -> Settings:
        try:
            return await self.store.get_settings()
        except Exception as e:
            logger.warning(f"Could not read settings, using defaults: {e}")
            return Settings()

    def _apply_settings(self, settings: Settings) -> None:
        threshold = settings.threshold
        if threshold is None or threshold <= 0:
            threshold = DEFAULT_THRESHOLD
        custom_pitch = settings.custom_pitch
        if not is_valid_custom_pitch(custom_pitch):
            custom_pitch = STANDARD_A4

        self._set("threshold", threshold)
        self._set("channel_mode", _or_default(settings.channel_mode, ChannelMode.RIGHT))
        self._set("tray_icon_mode", _or_default(settings.tray_icon_mode, TrayIconMode.NOTE))
        self._set("pitch_mode", settings.pitch_mode or PitchMode.STANDARD)
        self._set("custom_pitch", custom_pitch)
        self._set("tuning_shift", settings.tuning_shift or 0)
        self._set("drop_tuning_enabled", bool(settings.drop_tuning_enabled))
        self._set("drop_tuning_note", settings.drop_tuning_note or DropTuningNote.D)
        self._set("theme_mode", settings.theme_mode or ThemeMode.SYSTEM)

    async def _push_all(self) -> None:
        """Bring the backend in line with the freshly restored context."""
        ctx = self.context
        pushes = [
            ("set_threshold", self.backend.set_threshold(ctx.threshold)),
            ("set_channel_mode", self.backend.set_channel_mode(int(ctx.channel_mode))),
            ("set_tray_icon_mode", self.backend.set_tray_icon_mode(int(ctx.tray_icon_mode))),
            ("set_pitch_mode", self.backend.set_pitch_mode(ctx.pitch_mode.backend_index)),
            ("set_custom_pitch", self.backend.set_custom_pitch(ctx.custom_pitch)),
            ("set_tuning_shift", self.backend.set_tuning_shift(ctx.tuning_shift)),
            (
                "set_drop_tuning",
                self.backend.set_drop_tuning(
                    ctx.drop_tuning_enabled, ctx.drop_tuning_note.backend_index
                ),
            ),
        ]
        for operation, call in pushes:
            ok, reason = await self._call(operation, call)
            if not ok:
                self._set("error", f"Failed: {reason}")

    @staticmethod
    def _restore_device(saved: Optional[str], devices: List[str]) -> Optional[str]:
        if saved and saved in devices:
            return saved
        if devices:
            if saved:
                logger.info(f"Saved device {saved!r} not found, using {devices[0]!r}")
            return devices[0]
        return None

    def _set(self, name: str, value: Any) -> None:
        if getattr(self.context, name) == value:
            return
        setattr(self.context, name, value)
        self._emitter.emit(ContextEventType.CHANGED, name, value)

    def _on_frequency(self, value: float) -> None:
        self._set("frequency", float(value))

    def _on_raw_frequency(self, value: float) -> None:
        self._set("raw_frequency", float(value))

    def _on_input_level(self, value: float) -> None:
        self._set("input_level", float(value))

    def _on_reset(self) -> None:
        self._set("frequency", None)
        self._set("raw_frequency", None)


def _is_whole(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return float(value).is_integer()


def _or_default(value, default):
    return default if value is None else value
