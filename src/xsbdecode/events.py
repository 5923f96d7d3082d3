from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional

from .reader import BinaryReader


logger = logging.getLogger(__name__)


class EventType(IntEnum):
    PLAY = 0x00
    PLAY_COMPLEX = 0x01
    STOP = 0x03
    PITCH = 0x04
    VOLUME = 0x05
    LOW_PASS = 0x06
    LFO_PITCH = 0x07
    LFO_MULTI = 0x08
    ENVELOPE_AMPLITUDE = 0x09
    ENVELOPE_PITCH = 0x0A
    LOOP = 0x0B
    MARKER = 0x0C
    DISABLE = 0x0D
    MIX_BINS = 0x0E
    ENVIRONMENT_REVERB = 0x0F
    MIX_BINS_PAN = 0x10


PLAY_MULTIPLE_VARIATIONS = 0x04

FADE_VARIATION = 0x04
FADE_RELATIVE = 0x10
FADE_ENABLED = 0x20

LOW_PASS_RANDOM = 0x04
LOW_PASS_RELATIVE = 0x10
LOW_PASS_SWEEP = 0x20

MARKER_REPEAT = 0x20

PITCH_LIMIT = 24.0
VOLUME_LIMIT = 64.0
CUTOFF_MAXIMUM = 8192
RESONANCE_MAXIMUM = 32.0


def clip(value, low, high):
    return min(max(value, low), high)


def scale_pitch(raw: int) -> float:
    return clip(raw * 12 / 4096.0, -PITCH_LIMIT, PITCH_LIMIT)


def scale_volume(raw: int) -> float:
    return clip(raw / 100.0, -VOLUME_LIMIT, VOLUME_LIMIT)


@dataclass(frozen=True)
class Event:
    type: EventType | int
    timestamp: int = 0


@dataclass(frozen=True)
class PlayEvent(Event):
    multiple_variations: bool = False
    pitch_variation_min: float = 0.0
    pitch_variation_max: float = 0.0
    volume_variation_min: float = 0.0
    volume_variation_max: float = 0.0
    delay: int = 0


@dataclass(frozen=True)
class PitchEvent(Event):
    fade_step_count: int = 0
    is_relative: bool = False
    enable_fade: bool = False
    enable_variation: bool = False
    pitch_start: float = 0.0
    pitch_end: float = 0.0
    fade_duration: int = 0


@dataclass(frozen=True)
class VolumeEvent(Event):
    fade_step_count: int = 0
    is_relative: bool = False
    enable_fade: bool = False
    enable_variation: bool = False
    volume_start: float = 0.0
    volume_end: float = 0.0
    fade_duration: int = 0


@dataclass(frozen=True)
class LowPassEvent(Event):
    is_relative: bool = False
    random: bool = False
    sweep_cutoff: bool = False
    sweep_step_count: int = 0
    cutoff_start: int = 0
    cutoff_end: int = 0
    sweep_duration: int = 0
    resonance_start: float = 0.0
    resonance_end: float = 0.0


@dataclass(frozen=True)
class LFOMultiEvent(Event):
    delta: float = 0.0
    pitch: float = 0.0
    filter: float = 0.0
    amplitude: float = 0.0


@dataclass(frozen=True)
class LoopEvent(Event):
    count: int = 0


@dataclass(frozen=True)
class MarkerEvent(Event):
    repeat: bool = False
    repeat_count: int = 0
    value: int = 0
    repeat_duration: int = 0


@dataclass(frozen=True)
class UnknownEvent(Event):
    pass


# A payload decoder reads everything after the flag byte that belongs to its
# event type and returns (event, unread declared bytes, wave indices-or-offset).
_PayloadResult = tuple[Event, int, Optional[int]]
_PayloadDecoder = Callable[[BinaryReader, EventType, int, int, int], _PayloadResult]


def _decode_play(reader: BinaryReader, event_type: EventType, timestamp: int, flags: int, size: int) -> _PayloadResult:
    reader.skip(2)
    if size < 4:
        return PlayEvent(type=event_type, timestamp=timestamp), size, None

    indices_or_offset = reader.read_u32()
    size -= 4
    values: dict = {}
    if size >= 12:
        values["pitch_variation_min"] = scale_pitch(reader.read_s16())
        values["pitch_variation_max"] = scale_pitch(reader.read_s16())
        values["volume_variation_min"] = scale_volume(reader.read_s16())
        values["volume_variation_max"] = scale_volume(reader.read_s16())
        values["delay"] = reader.read_u16()
        reader.skip(2)
        size -= 12
    event = PlayEvent(
        type=event_type,
        timestamp=timestamp,
        multiple_variations=bool(flags & PLAY_MULTIPLE_VARIATIONS),
        **values,
    )
    return event, size, indices_or_offset


def _decode_fade(reader: BinaryReader, event_type: EventType, timestamp: int, flags: int, size: int) -> _PayloadResult:
    cls, start_key, end_key, scale = (
        (PitchEvent, "pitch_start", "pitch_end", scale_pitch)
        if event_type == EventType.PITCH
        else (VolumeEvent, "volume_start", "volume_end", scale_volume)
    )
    values = {
        "fade_step_count": reader.read_u16(),
        "is_relative": bool(flags & FADE_RELATIVE),
        "enable_fade": bool(flags & FADE_ENABLED),
        "enable_variation": bool(flags & FADE_VARIATION),
    }
    if size >= 8:
        values[start_key] = scale(reader.read_s16())
        values[end_key] = scale(reader.read_s16())
        reader.skip(1)
        values["fade_duration"] = reader.read_u24()
        size -= 8
    return cls(type=event_type, timestamp=timestamp, **values), size, None


def _decode_low_pass(reader: BinaryReader, event_type: EventType, timestamp: int, flags: int, size: int) -> _PayloadResult:
    values = {
        "is_relative": bool(flags & LOW_PASS_RELATIVE),
        "random": bool(flags & LOW_PASS_RANDOM),
        "sweep_cutoff": bool(flags & LOW_PASS_SWEEP),
        "sweep_step_count": reader.read_u16(),
    }
    if size >= 12:
        values["cutoff_start"] = clip(reader.read_u16(), 0, CUTOFF_MAXIMUM)
        values["cutoff_end"] = clip(reader.read_u16(), 0, CUTOFF_MAXIMUM)
        reader.skip(1)
        values["sweep_duration"] = reader.read_u24()
        values["resonance_start"] = clip(reader.read_s16() / 100.0, 0.0, RESONANCE_MAXIMUM)
        values["resonance_end"] = clip(reader.read_s16() / 100.0, 0.0, RESONANCE_MAXIMUM)
        size -= 12
    return LowPassEvent(type=event_type, timestamp=timestamp, **values), size, None


def _decode_lfo_multi(reader: BinaryReader, event_type: EventType, timestamp: int, flags: int, size: int) -> _PayloadResult:
    reader.skip(2)
    values: dict = {}
    if size >= 6:
        reader.skip(2)
        values["delta"] = reader.read_u8() * 23.4 / 255.0
        values["pitch"] = reader.read_s8() * 12.0 / 128.0
        values["filter"] = reader.read_s8() * 96.0 / 128.0
        values["amplitude"] = reader.read_s8() * 16.0 / 128.0
        size -= 6
    return LFOMultiEvent(type=event_type, timestamp=timestamp, **values), size, None


def _decode_loop(reader: BinaryReader, event_type: EventType, timestamp: int, flags: int, size: int) -> _PayloadResult:
    return LoopEvent(type=event_type, timestamp=timestamp, count=reader.read_u16()), size, None


def _decode_marker(reader: BinaryReader, event_type: EventType, timestamp: int, flags: int, size: int) -> _PayloadResult:
    values = {
        "repeat": bool(flags & MARKER_REPEAT),
        "repeat_count": reader.read_u16(),
    }
    if size >= 8:
        values["value"] = reader.read_u32()
        reader.skip(1)
        values["repeat_duration"] = reader.read_u24()
        size -= 8
    return MarkerEvent(type=event_type, timestamp=timestamp, **values), size, None


_EVENT_DECODERS: dict[EventType, _PayloadDecoder] = {
    EventType.PLAY: _decode_play,
    EventType.PLAY_COMPLEX: _decode_play,
    EventType.PITCH: _decode_fade,
    EventType.VOLUME: _decode_fade,
    EventType.LOW_PASS: _decode_low_pass,
    EventType.LFO_MULTI: _decode_lfo_multi,
    EventType.LOOP: _decode_loop,
    EventType.MARKER: _decode_marker,
}


def decode_event(reader: BinaryReader) -> tuple[Event, Optional[int]]:
    """Decode one event record at the current position.

    The record is an 8 byte head (type, 24-bit timestamp, declared size,
    flags, one 16-bit leading field) followed by the declared parameter
    bytes. The reader always ends up past the declared size, whatever the
    payload decoder consumed. The second element is the Play/PlayComplex
    wave reference, or None.
    """
    start = reader.tell()
    type_code = reader.read_u8()
    timestamp = reader.read_u24()
    size = reader.read_u8()
    flags = reader.read_u8()

    try:
        event_type = EventType(type_code)
    except ValueError:
        event_type = None
    decoder = _EVENT_DECODERS.get(event_type) if event_type is not None else None

    if decoder is None:
        logger.debug("Unhandled event type 0x%02X at 0x%X", type_code, start)
        reader.skip(2)
        event: Event = UnknownEvent(type=event_type if event_type is not None else type_code, timestamp=timestamp)
        reader.skip(size)
        return event, None

    event, unread, indices_or_offset = decoder(reader, event_type, timestamp, flags, size)
    reader.skip(unread)
    return event, indices_or_offset
