"""Type definitions for the Fret Tuner project."""

from dataclasses import dataclass, fields
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Type, TypeVar

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class GuitarNote:
    """The target pitch of one guitar string."""

    name: str  # Note name with octave (e.g., 'E2')
    freq: float  # Target frequency in Hz


@dataclass(frozen=True)
class NoteInfo:
    """A detected frequency interpreted against the active reference pitch."""

    name: str  # Note name with octave, or NO_SIGNAL
    cent: float  # Deviation from the nearest semitone
    target_freq: float  # Frequency of the nearest semitone in Hz

    NO_SIGNAL = "-"

    @classmethod
    def silent(cls) -> "NoteInfo":
        return cls(name=cls.NO_SIGNAL, cent=0.0, target_freq=0.0)

    @property
    def has_signal(self) -> bool:
        return self.name != self.NO_SIGNAL


class TuningStatus(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    OFF = "off"


class TrayColor(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class PitchMode(str, Enum):
    """How the reference pitch is derived."""

    STANDARD = "standard"
    CUSTOM = "custom"
    SHIFT = "shift"

    @property
    def backend_index(self) -> int:
        return _PITCH_MODE_INDEX[self]


_PITCH_MODE_INDEX = {PitchMode.STANDARD: 0, PitchMode.CUSTOM: 1, PitchMode.SHIFT: 2}


class DropTuningNote(str, Enum):
    """Target note for the 6th string when drop tuning is enabled."""

    D_SHARP = "D#"
    D = "D"
    C_SHARP = "C#"
    C = "C"
    B = "B"

    @property
    def backend_index(self) -> int:
        # D#, added after the others, is appended so existing indices keep their meaning
        return _DROP_NOTE_INDEX[self]


_DROP_NOTE_INDEX = {
    DropTuningNote.D: 0,
    DropTuningNote.C_SHARP: 1,
    DropTuningNote.C: 2,
    DropTuningNote.B: 3,
    DropTuningNote.D_SHARP: 4,
}


class ChannelMode(IntEnum):
    """Which input channel(s) the backend analyzes."""

    LEFT = 0
    RIGHT = 1
    AVERAGE = 2


class TrayIconMode(IntEnum):
    INDICATOR = 0  # Indicator only
    NOTE = 1  # Indicator plus note name


class ThemeMode(str, Enum):
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"


def parse_enum(enum_cls: Type[E], value: Any) -> Optional[E]:
    """Convert a raw persisted value to enum_cls, or None if it is not a member."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


@dataclass
class Settings:
    """The persisted settings aggregate.

    Every field is optional so a partial aggregate can be merged on top of
    another one; ``None`` means "use the default / keep the previous value".
    """

    device_name: Optional[str] = None
    threshold: Optional[float] = None
    channel_mode: Optional[ChannelMode] = None
    tray_icon_mode: Optional[TrayIconMode] = None
    pitch_mode: Optional[PitchMode] = None
    custom_pitch: Optional[float] = None
    tuning_shift: Optional[int] = None
    drop_tuning_enabled: Optional[bool] = None
    drop_tuning_note: Optional[DropTuningNote] = None
    theme_mode: Optional[ThemeMode] = None

    @classmethod
    def field_names(cls) -> list:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """Build settings from a raw mapping, ignoring unknown keys and bad values."""
        settings = cls()
        if not data:
            return settings

        for name in cls.field_names():
            value = data.get(name)
            if value is None:
                continue
            if name in _ENUM_FIELDS:
                value = parse_enum(_ENUM_FIELDS[name], value)
            elif name == "device_name":
                value = value if isinstance(value, str) else None
            elif name == "drop_tuning_enabled":
                value = value if isinstance(value, bool) else None
            elif name == "tuning_shift":
                value = int(value) if _is_number(value) and float(value).is_integer() else None
            elif name in ("threshold", "custom_pitch"):
                value = float(value) if _is_number(value) else None
            setattr(settings, name, value)
        return settings

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the fields that are set; absent fields are omitted."""
        result: Dict[str, Any] = {}
        for name in self.field_names():
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, IntEnum):
                value = int(value)
            elif isinstance(value, Enum):
                value = value.value
            result[name] = value
        return result

    def merged(self, changes: "Settings") -> "Settings":
        """Return a copy with every field set in ``changes`` laid on top."""
        data = self.to_dict()
        data.update(changes.to_dict())
        return Settings.from_dict(data)


_ENUM_FIELDS: Dict[str, Type[Enum]] = {
    "channel_mode": ChannelMode,
    "tray_icon_mode": TrayIconMode,
    "pitch_mode": PitchMode,
    "drop_tuning_note": DropTuningNote,
    "theme_mode": ThemeMode,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
