"""Live detection backend built on sounddevice and aubio."""

import asyncio
import threading
from collections import deque
from typing import Deque, List, Optional

import aubio
import numpy as np
import sounddevice as sd

from ..core.events import BackendEventType
from ..core.interfaces import BackendError, EventSink, IDetectionBackend
from ..logging_config import get_logger
from ..note_types import ChannelMode, DropTuningNote, GuitarNote, PitchMode, TrayIconMode
from ..pitch import CUSTOM_PITCH_RANGE, STANDARD_A4, guitar_strings

logger = get_logger(__name__)

MIN_THRESHOLD = 1.1
MAX_THRESHOLD = 10.0

# Guitar range the detector reports, Hz; the lower bound follows the 6th string
MIN_FREQUENCY = 60.0
LOW_STRING_MARGIN = 0.9
MAX_FREQUENCY = 350.0

# Blocks quieter than this RMS are treated as silence
RMS_THRESHOLD = 0.001

_PITCH_MODES = {mode.backend_index: mode for mode in PitchMode}
_DROP_NOTES = {note.backend_index: note for note in DropTuningNote}


class SoundDeviceBackend(IDetectionBackend):
    """Detects pitch from a sounddevice input stream with aubio's yin.

    Audio callbacks run on the PortAudio thread; events are handed to the
    subscriber on the event loop through ``call_soon_threadsafe``.
    """

    SAMPLE_RATE = 44100
    HOP_SIZE = 1024
    SMOOTHING_WINDOW = 5

    def __init__(
        self,
        sample_rate: Optional[int] = None,
        hop_size: Optional[int] = None,
        tolerance: float = 0.8,
    ):
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._hop_size = hop_size or self.HOP_SIZE
        self._tolerance = tolerance

        self._lock = threading.Lock()
        self._threshold = 2.0
        self._channel_mode = ChannelMode.RIGHT
        self._pitch_mode = PitchMode.STANDARD
        self._custom_pitch = STANDARD_A4
        self._tuning_shift = 0
        self._drop_enabled = False
        self._drop_note = DropTuningNote.D
        self._tray_icon_mode = TrayIconMode.NOTE
        self._min_frequency = MIN_FREQUENCY

        self._stream: Optional[sd.InputStream] = None
        self._pitch_detector = None
        self._recent: Deque[float] = deque(maxlen=self.SMOOTHING_WINDOW)
        self._sink: Optional[EventSink] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def channel_mode(self) -> ChannelMode:
        return self._channel_mode

    @property
    def pitch_mode(self) -> PitchMode:
        return self._pitch_mode

    @property
    def tray_icon_mode(self) -> TrayIconMode:
        return self._tray_icon_mode

    @property
    def min_frequency(self) -> float:
        return self._min_frequency

    def string_targets(self) -> List[GuitarNote]:
        """Targets for the tuning the backend was last configured with."""
        return guitar_strings(
            self._pitch_mode,
            self._custom_pitch,
            self._tuning_shift,
            self._drop_enabled,
            self._drop_note,
        )

    def subscribe(self, sink: EventSink) -> None:
        self._sink = sink
        self._loop = asyncio.get_running_loop()

    async def list_devices(self) -> List[str]:
        try:
            devices = await asyncio.to_thread(sd.query_devices)
        except Exception as e:
            raise BackendError(f"Could not query audio devices: {e}") from e
        return [d["name"] for d in devices if d["max_input_channels"] > 0]

    async def start_listening(self, device_name: str) -> None:
        await asyncio.to_thread(self._open_stream, device_name)

    def _open_stream(self, device_name: str) -> None:
        self.stop()

        device_id, channels = self._find_device(device_name)
        try:
            stream = sd.InputStream(
                device=device_id,
                channels=channels,
                samplerate=self._sample_rate,
                blocksize=self._hop_size,
                callback=self._audio_callback,
                dtype="float32",
            )
            self._pitch_detector = aubio.pitch(
                "yin", self._hop_size * 2, self._hop_size, self._sample_rate
            )
            self._pitch_detector.set_unit("Hz")
            self._pitch_detector.set_tolerance(self._tolerance)
            self._recent.clear()
            stream.start()
        except Exception as e:
            raise BackendError(f"Could not open {device_name}: {e}") from e

        self._stream = stream
        self._publish(BackendEventType.RESET)
        logger.info(f"Listening on {device_name} ({channels} channel(s))")

    def _find_device(self, device_name: str):
        for device_id, device in enumerate(sd.query_devices()):
            if device["name"] == device_name and device["max_input_channels"] > 0:
                return device_id, min(int(device["max_input_channels"]), 2)
        raise BackendError(f"Device not found: {device_name}")

    def stop(self) -> None:
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            logger.debug("Input stream closed")

    async def set_threshold(self, ratio: float) -> None:
        with self._lock:
            self._threshold = min(max(float(ratio), MIN_THRESHOLD), MAX_THRESHOLD)
        logger.debug(f"Threshold set to {self._threshold:.2f}")

    async def set_channel_mode(self, mode: int) -> None:
        with self._lock:
            self._channel_mode = ChannelMode(min(int(mode), int(ChannelMode.AVERAGE)))
        logger.debug(f"Channel mode set to {self._channel_mode.name}")

    async def set_pitch_mode(self, mode: int) -> None:
        if mode not in _PITCH_MODES:
            raise BackendError(f"Unknown pitch mode: {mode}")
        self._pitch_mode = _PITCH_MODES[mode]
        self._update_range()

    async def set_custom_pitch(self, hz: float) -> None:
        low, high = CUSTOM_PITCH_RANGE
        if not low <= hz <= high:
            raise BackendError(f"Pitch must be between {low:g} and {high:g} Hz")
        self._custom_pitch = float(hz)
        self._update_range()

    async def set_tuning_shift(self, semitones: int) -> None:
        self._tuning_shift = int(semitones)
        self._update_range()

    async def set_drop_tuning(self, enabled: bool, note: int) -> None:
        if note not in _DROP_NOTES:
            raise BackendError(f"Unknown drop tuning note: {note}")
        self._drop_enabled = bool(enabled)
        self._drop_note = _DROP_NOTES[note]
        self._update_range()

    async def set_tray_icon_mode(self, mode: int) -> None:
        self._tray_icon_mode = TrayIconMode(min(int(mode), int(TrayIconMode.NOTE)))

    def _update_range(self) -> None:
        lowest = self.string_targets()[0].freq
        with self._lock:
            self._min_frequency = min(MIN_FREQUENCY, lowest * LOW_STRING_MARGIN)
        logger.debug(f"Detecting from {self._min_frequency:.2f} Hz (6th string {lowest:.2f} Hz)")

    def _audio_callback(self, indata: np.ndarray, _frames: int, _time_info, status) -> None:
        if status:
            logger.debug(f"Input stream status: {status}")

        samples = self._select_channel(indata)
        rms = float(np.sqrt(np.mean(samples**2))) if samples.size else 0.0
        self._publish(BackendEventType.INPUT_LEVEL, min(rms * 10.0, 1.0))
        if rms < RMS_THRESHOLD * self._threshold:
            return

        pitch = float(self._pitch_detector(samples.astype(np.float32))[0])
        confidence = float(self._pitch_detector.get_confidence())
        if not self._min_frequency <= pitch <= MAX_FREQUENCY or confidence < 0.5:
            return

        self._recent.append(pitch)
        self._publish(BackendEventType.RAW_FREQUENCY, pitch)
        self._publish(BackendEventType.FREQUENCY, float(np.median(self._recent)))

    def _select_channel(self, indata: np.ndarray) -> np.ndarray:
        if indata.ndim == 1 or indata.shape[1] == 1:
            return indata.reshape(-1)
        with self._lock:
            mode = self._channel_mode
        if mode is ChannelMode.AVERAGE:
            return indata.mean(axis=1)
        return indata[:, int(mode)]

    def _publish(self, kind: BackendEventType, payload=None) -> None:
        if self._sink is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._sink, kind, payload)
