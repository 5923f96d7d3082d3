from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping, Optional

from .events import Event


WEIGHT_MINIMUM = 0
WEIGHT_MAXIMUM = 255


class SelectMethod(IntEnum):
    ORDERED = 0
    ORDERED_FROM_RANDOM = 1
    RANDOM = 2
    RANDOM_NO_REPEATS = 3
    SHUFFLE = 4
    PARAMETER = 5


class Mode3D(IntEnum):
    NORMAL = 0
    HEAD_RELATIVE = 1
    DISABLED = 2


def select_method_from_raw(value: int) -> SelectMethod | int:
    try:
        return SelectMethod(value)
    except ValueError:
        return value


def mode_3d_from_raw(value: int) -> Mode3D | int:
    try:
        return Mode3D(value)
    except ValueError:
        return value


def clamp_weights(weight_min: int, weight_max: int) -> tuple[int, int]:
    weight_min = min(max(weight_min, WEIGHT_MINIMUM), WEIGHT_MAXIMUM)
    weight_max = min(max(weight_max, WEIGHT_MINIMUM), WEIGHT_MAXIMUM)
    if weight_min > weight_max:
        weight_min, weight_max = weight_max, weight_min
    return weight_min, weight_max


@dataclass(frozen=True)
class WaveBank:
    name: str


@dataclass(frozen=True)
class CueVariation:
    sound_index: int
    weight_min: int = WEIGHT_MINIMUM
    weight_max: int = WEIGHT_MAXIMUM


@dataclass(frozen=True)
class Cue:
    name: str = ""
    variations: tuple[CueVariation, ...] = ()
    select_method: SelectMethod | int = SelectMethod.ORDERED


@dataclass(frozen=True)
class WaveVariation:
    index: int
    bank: Optional[str] = None
    weight_min: int = WEIGHT_MINIMUM
    weight_max: int = WEIGHT_MAXIMUM


@dataclass(frozen=True)
class Track:
    select_method: SelectMethod | int = SelectMethod.ORDERED
    waves: tuple[WaveVariation, ...] = ()
    events: tuple[Event, ...] = ()


@dataclass(frozen=True)
class Sound3DParams:
    volume_lfe: float = 0.0
    volume_i3dl2: float = 0.0
    cone_inside_angle: int = 360
    cone_outside_angle: int = 360
    cone_outside_volume: float = 0.0
    distance_min: float = 0.0
    distance_max: float = 0.0
    distance_factor: float = 1.0
    rolloff_factor: float = 1.0
    doppler_factor: float = 1.0
    mode: Mode3D | int = Mode3D.NORMAL
    rolloff_curve: tuple[float, ...] = ()


@dataclass(frozen=True)
class Sound:
    volume: float = 0.0
    pitch: float = 0.0
    layer: int = 0
    category_index: int = 0
    priority: int = 0
    parametric_eq: bool = False
    parametric_eq_gain: float = 0.0
    parametric_eq_q: float = 1.0
    parametric_eq_freq: int = 30
    gain_boost: bool = False
    is_3d: bool = False
    params_3d: Optional[Sound3DParams] = None
    tracks: tuple[Track, ...] = ()


@dataclass(frozen=True)
class SoundBank:
    name: str
    wave_banks: tuple[WaveBank, ...] = ()
    cues: tuple[Cue, ...] = ()
    sounds: tuple[Sound, ...] = ()
    wave_bank_map: Mapping[str, WaveBank] = field(default_factory=lambda: MappingProxyType({}), compare=False)
    cue_map: Mapping[str, Cue] = field(default_factory=lambda: MappingProxyType({}), compare=False)

    def get_cue(self, name: str) -> Cue | None:
        return self.cue_map.get(name)

    def get_wave_bank(self, name: str) -> WaveBank | None:
        return self.wave_bank_map.get(name)
