from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import NamedTuple, Optional

from .events import Event, PlayEvent, EventType, clip, decode_event, scale_pitch
from .model import (
    WEIGHT_MAXIMUM,
    WEIGHT_MINIMUM,
    Cue,
    CueVariation,
    SelectMethod,
    Sound,
    Sound3DParams,
    SoundBank,
    Track,
    WaveBank,
    WaveVariation,
    clamp_weights,
    mode_3d_from_raw,
    select_method_from_raw,
)
from .reader import BinaryReader, XsbFormatError


logger = logging.getLogger(__name__)

MAGIC = b"SDBK"
VERSION = 11

CUE_RECORD_SIZE = 20
SOUND_RECORD_SIZE = 20
PARAMS_3D_RECORD_SIZE = 40
TRACK_RECORD_SIZE = 4
WAVE_BANK_NAME_SIZE = 16
BANK_NAME_SIZE = 16

NO_OFFSET = 0xFFFFFFFF
NO_SOUND_INDEX = 0xFFFF

XSB_NO_CUE_NAMES = 0x01

SOUND_3D = 0x01
SOUND_GAIN_BOOST = 0x02
SOUND_EQ = 0x04
SOUND_TRIVIAL = 0x08
SOUND_SIMPLE = 0x10

ROLLOFF_CURVE_MAXIMUM = 10


@dataclass(frozen=True)
class BinaryInfo:
    path: str
    size: int
    header: bytes


@dataclass(frozen=True)
class XsbHeader:
    version: int
    crc: int
    wave_banks_offset: int
    params_3d_offset: int
    flags: int
    sound_count: int
    cue_count: int
    wave_bank_count: int
    name: str
    cues_offset: int
    sounds_offset: int


class VariationDescriptor(NamedTuple):
    count: int
    current: int
    select_method: SelectMethod | int
    flags: int


def _read_binary(path: str, header_len: int = 16) -> tuple[bytes, BinaryInfo]:
    with open(path, "rb") as fp:
        data = fp.read()
    return data, BinaryInfo(path=path, size=len(data), header=data[:header_len])


def read_xsb(path: str) -> tuple[bytes, BinaryInfo]:
    if not path.lower().endswith(".xsb"):
        raise ValueError("Not a .xsb file")
    return _read_binary(path)


def read_header(reader: BinaryReader) -> XsbHeader:
    reader.seek(0)
    tag = reader.read_tag()
    if tag != MAGIC:
        raise XsbFormatError(f"Not a XSB file ({tag!r})", 0)
    version = reader.read_u16()
    if version != VERSION:
        raise XsbFormatError(f"Unsupported XSB file version {version}", 4)
    crc = reader.read_u16()

    wave_banks_offset = reader.read_u32()
    reader.read_u32()
    params_3d_offset = reader.read_u32()
    reader.read_u32()

    flags = reader.read_u16()

    reader.read_u16()
    sound_count = reader.read_u16()
    cue_count = reader.read_u16()
    reader.read_u16()
    wave_bank_count = reader.read_u16()

    reader.skip(4)
    name = reader.read_string_fixed(BANK_NAME_SIZE)

    cues_offset = reader.tell()
    sounds_offset = cues_offset + cue_count * CUE_RECORD_SIZE

    header = XsbHeader(
        version=version,
        crc=crc,
        wave_banks_offset=wave_banks_offset,
        params_3d_offset=params_3d_offset,
        flags=flags,
        sound_count=sound_count,
        cue_count=cue_count,
        wave_bank_count=wave_bank_count,
        name=name,
        cues_offset=cues_offset,
        sounds_offset=sounds_offset,
    )
    logger.debug("XSB header: %s", header)
    return header


def read_variation_descriptor(word: int) -> VariationDescriptor:
    return VariationDescriptor(
        count=word & 0x1FFF,
        current=(word >> 17) & 0x1FFF,
        select_method=select_method_from_raw((word >> 13) & 0x0F),
        flags=(word >> 30) & 0x03,
    )


class _SoundBankDecoder:
    def __init__(self, data: bytes) -> None:
        self._reader = BinaryReader(data)
        self._wave_banks: list[WaveBank] = []

    def decode(self) -> SoundBank:
        header = read_header(self._reader)

        wave_banks = self._read_wave_banks(header.wave_banks_offset, header.wave_bank_count)
        self._wave_banks = wave_banks
        wave_bank_map = {bank.name: bank for bank in wave_banks}

        cues, cue_map = self._read_cues(header.flags, header.cues_offset, header.cue_count)
        sounds = self._read_sounds(header.sounds_offset, header.sound_count, header.params_3d_offset)

        logger.debug(
            "Decoded XSB %r: %s wave banks, %s cues, %s sounds",
            header.name,
            len(wave_banks),
            len(cues),
            len(sounds),
        )
        return SoundBank(
            name=header.name,
            wave_banks=tuple(wave_banks),
            cues=tuple(cues),
            sounds=tuple(sounds),
            wave_bank_map=MappingProxyType(wave_bank_map),
            cue_map=MappingProxyType(cue_map),
        )

    def _read_wave_banks(self, offset: int, count: int) -> list[WaveBank]:
        reader = self._reader
        reader.seek(offset)
        return [WaveBank(name=reader.read_string_fixed(WAVE_BANK_NAME_SIZE)) for _ in range(count)]

    def _read_cues(self, xsb_flags: int, offset: int, count: int) -> tuple[list[Cue], dict[str, Cue]]:
        reader = self._reader
        cues: list[Cue] = []
        cue_map: dict[str, Cue] = {}
        for i in range(count):
            reader.seek(offset + i * CUE_RECORD_SIZE)
            reader.skip(2)
            sound_index = reader.read_u16()
            name_offset = reader.read_u32()
            entry_offset = reader.read_u32()
            reader.skip(8)

            name = ""
            has_name = not (xsb_flags & XSB_NO_CUE_NAMES) and name_offset != NO_OFFSET
            if has_name:
                reader.seek(name_offset)
                name = reader.read_string()

            variations: tuple[CueVariation, ...] = ()
            select_method: SelectMethod | int = SelectMethod.ORDERED
            if entry_offset != NO_OFFSET:
                select_method, variations = self._read_cue_variations(entry_offset)
            elif sound_index != NO_SOUND_INDEX:
                variations = (CueVariation(sound_index=sound_index),)

            cue = Cue(name=name, variations=variations, select_method=select_method)
            cues.append(cue)
            if has_name:
                cue_map[name] = cue
        return cues, cue_map

    def _read_cue_variations(self, offset: int) -> tuple[SelectMethod | int, tuple[CueVariation, ...]]:
        reader = self._reader
        reader.seek(offset)
        descriptor = read_variation_descriptor(reader.read_u32())

        variations: list[CueVariation] = []
        for _ in range(descriptor.count):
            sound_index = reader.read_u16()
            reader.skip(2)
            weight_min, weight_max = clamp_weights(reader.read_u16(), reader.read_u16())
            variations.append(CueVariation(sound_index=sound_index, weight_min=weight_min, weight_max=weight_max))
        return descriptor.select_method, tuple(variations)

    def _read_sounds(self, offset: int, count: int, params_3d_offset: int) -> list[Sound]:
        reader = self._reader
        sounds: list[Sound] = []
        for i in range(count):
            reader.seek(offset + i * SOUND_RECORD_SIZE)

            indices_or_offset = reader.read_u32()
            volume = reader.read_u16()
            pitch = scale_pitch(reader.read_s16())
            track_count = reader.read_u8()
            layer = reader.read_u8()
            category_index = reader.read_u8()
            sound_flags = reader.read_u8()
            index_3d = reader.read_u16()
            priority = reader.read_u8()
            volume_3d = reader.read_u8()
            eq_gain = clip(reader.read_s16() / 8192.0, -1.0, 4.0)
            eq = reader.read_u16()

            params_3d = None
            is_3d = bool(sound_flags & SOUND_3D)
            if is_3d:
                params_3d = self._read_3d_params(
                    params_3d_offset + index_3d * PARAMS_3D_RECORD_SIZE,
                    volume_lfe=-((volume >> 9) & 0x7F) * 0.50,
                    volume_i3dl2=clip(-volume_3d * 2.56, -64.0, 0.0),
                )

            tracks = self._read_tracks(indices_or_offset, track_count, sound_flags)

            sounds.append(
                Sound(
                    volume=-(volume & 0x1FF) * 0.16,
                    pitch=pitch,
                    layer=layer,
                    category_index=category_index,
                    priority=priority,
                    parametric_eq=bool(sound_flags & SOUND_EQ),
                    parametric_eq_gain=eq_gain,
                    parametric_eq_q=1.0 / (1 << (eq & 7)),
                    parametric_eq_freq=clip((eq >> 3) & 0x1FFF, 30, 8000),
                    gain_boost=bool(sound_flags & SOUND_GAIN_BOOST),
                    is_3d=is_3d,
                    params_3d=params_3d,
                    tracks=tuple(tracks),
                )
            )
        return sounds

    def _read_3d_params(self, offset: int, volume_lfe: float, volume_i3dl2: float) -> Sound3DParams:
        reader = self._reader
        reader.seek(offset)

        cone_inside_angle = clip(reader.read_u16(), 0, 360)
        cone_outside_angle = clip(reader.read_u16(), 0, 360)
        cone_outside_volume = clip(reader.read_s16() / 100.0, -64.0, 0.0)
        reader.skip(2)

        distance_min = reader.read_f32()
        distance_max = reader.read_f32()
        distance_factor = reader.read_f32()
        rolloff_factor = reader.read_f32()
        doppler_factor = reader.read_f32()

        mode = mode_3d_from_raw(reader.read_u8())
        curve_size = min(reader.read_u8(), ROLLOFF_CURVE_MAXIMUM)
        rolloff_curve = tuple(reader.read_u8() / 255.0 for _ in range(curve_size))

        return Sound3DParams(
            volume_lfe=volume_lfe,
            volume_i3dl2=volume_i3dl2,
            cone_inside_angle=cone_inside_angle,
            cone_outside_angle=cone_outside_angle,
            cone_outside_volume=cone_outside_volume,
            distance_min=distance_min,
            distance_max=distance_max,
            distance_factor=distance_factor,
            rolloff_factor=rolloff_factor,
            doppler_factor=doppler_factor,
            mode=mode,
            rolloff_curve=rolloff_curve,
        )

    def _read_tracks(self, indices_or_offset: int, count: int, sound_flags: int) -> list[Track]:
        if sound_flags & (SOUND_TRIVIAL | SOUND_SIMPLE) and count != 1:
            raise XsbFormatError(f"Trivial/simple sound, but track count == {count}")

        if sound_flags & SOUND_TRIVIAL:
            # One track, one event, one wave variation
            return [
                Track(
                    select_method=SelectMethod.ORDERED,
                    waves=(self._make_wave_variation(indices_or_offset),),
                    events=(PlayEvent(type=EventType.PLAY),),
                )
            ]

        if sound_flags & SOUND_SIMPLE:
            # One track, one event, multiple wave variations
            select_method, waves = self._read_wave_variations(indices_or_offset)
            return [
                Track(
                    select_method=select_method,
                    waves=waves,
                    events=(PlayEvent(type=EventType.PLAY),),
                )
            ]

        tracks: list[Track] = []
        for i in range(count):
            self._reader.seek(indices_or_offset + i * TRACK_RECORD_SIZE)
            tracks.append(self._read_complex_track())
        return tracks

    def _read_complex_track(self) -> Track:
        reader = self._reader
        track_data = reader.read_u32()
        event_count = track_data & 0xFF
        events_offset = track_data >> 8

        select_method: SelectMethod | int = SelectMethod.ORDERED
        waves: list[WaveVariation] = []
        events: list[Event] = []
        waves_offset: Optional[int] = None

        reader.seek(events_offset)
        for _ in range(event_count):
            event, indices_or_offset = decode_event(reader)
            events.append(event)
            if indices_or_offset is None:
                continue
            if isinstance(event, PlayEvent) and event.multiple_variations:
                waves_offset = indices_or_offset
            else:
                select_method = SelectMethod.ORDERED
                waves.append(self._make_wave_variation(indices_or_offset))

        if waves_offset is not None:
            select_method, table_waves = self._read_wave_variations(waves_offset)
            waves.extend(table_waves)

        return Track(select_method=select_method, waves=tuple(waves), events=tuple(events))

    def _read_wave_variations(self, offset: int) -> tuple[SelectMethod | int, tuple[WaveVariation, ...]]:
        reader = self._reader
        reader.seek(offset)
        descriptor = read_variation_descriptor(reader.read_u32())

        waves: list[WaveVariation] = []
        for _ in range(descriptor.count):
            indices = reader.read_u32()
            weight_min = reader.read_u16()
            weight_max = reader.read_u16()
            waves.append(self._make_wave_variation(indices, weight_min, weight_max))
        return descriptor.select_method, tuple(waves)

    def _make_wave_variation(
        self,
        indices: int,
        weight_min: int = WEIGHT_MINIMUM,
        weight_max: int = WEIGHT_MAXIMUM,
    ) -> WaveVariation:
        bank_index = indices >> 16
        bank = self._wave_banks[bank_index].name if bank_index < len(self._wave_banks) else None
        weight_min, weight_max = clamp_weights(weight_min, weight_max)
        return WaveVariation(index=indices & 0xFFFF, bank=bank, weight_min=weight_min, weight_max=weight_max)


def decode_soundbank(data: bytes) -> SoundBank:
    """Decode a binary XACT sound bank (XSB).

    Raises XsbFormatError on the first structural problem; no partially
    decoded bank is ever returned.
    """
    return _SoundBankDecoder(data).decode()


def load_soundbank(path: str) -> SoundBank:
    return decode_soundbank(read_xsb(path)[0])
