from __future__ import annotations

import dataclasses
import os
import re
from enum import Enum

import lxml.etree as ET

from .events import Event, EventType
from .model import Cue, Sound, SoundBank, Track


def _plain(value):
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, tuple):
        return [_plain(item) for item in value]
    return value


def _event_kind(event: Event) -> str:
    if isinstance(event.type, EventType):
        return event.type.name
    return f"UNKNOWN_0x{event.type:02X}"


def event_to_dict(event: Event) -> dict:
    result = {"kind": _event_kind(event)}
    for item in dataclasses.fields(event):
        if item.name == "type":
            continue
        result[item.name] = _plain(getattr(event, item.name))
    return result


def _track_to_dict(track: Track) -> dict:
    return {
        "select_method": _plain(track.select_method),
        "waves": [dataclasses.asdict(wave) for wave in track.waves],
        "events": [event_to_dict(event) for event in track.events],
    }


def _sound_to_dict(sound: Sound) -> dict:
    result = {}
    for item in dataclasses.fields(sound):
        if item.name in ("params_3d", "tracks"):
            continue
        result[item.name] = getattr(sound, item.name)
    if sound.params_3d is not None:
        result["params_3d"] = {
            item.name: _plain(getattr(sound.params_3d, item.name)) for item in dataclasses.fields(sound.params_3d)
        }
    else:
        result["params_3d"] = None
    result["tracks"] = [_track_to_dict(track) for track in sound.tracks]
    return result


def _cue_to_dict(cue: Cue) -> dict:
    return {
        "name": cue.name,
        "select_method": _plain(cue.select_method),
        "variations": [dataclasses.asdict(variation) for variation in cue.variations],
    }


def soundbank_to_dict(bank: SoundBank) -> dict:
    return {
        "name": bank.name,
        "wave_banks": [wave_bank.name for wave_bank in bank.wave_banks],
        "cues": [_cue_to_dict(cue) for cue in bank.cues],
        "sounds": [_sound_to_dict(sound) for sound in bank.sounds],
    }


# Characters lxml refuses in attribute values.
_XML_INVALID = re.compile("[\x00-\x08\x0B\x0C\x0E-\x1F\uFFFE\uFFFF]")


def _xml_text(value) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    return _XML_INVALID.sub(lambda match: f"\\x{ord(match.group()):02X}", str(value))


def _set_attrs(elem: ET._Element, values: dict) -> None:
    for key, value in values.items():
        if value is None or isinstance(value, (list, dict)):
            continue
        elem.set(key, _xml_text(value))


def soundbank_to_xml(bank: SoundBank) -> ET._Element:
    data = soundbank_to_dict(bank)
    root = ET.Element("soundbank", name=_xml_text(bank.name))

    banks_elem = ET.SubElement(root, "wavebanks")
    for index, name in enumerate(data["wave_banks"]):
        ET.SubElement(banks_elem, "wavebank", index=str(index), name=_xml_text(name))

    cues_elem = ET.SubElement(root, "cues")
    for index, cue in enumerate(data["cues"]):
        cue_elem = ET.SubElement(cues_elem, "cue", index=str(index))
        _set_attrs(cue_elem, cue)
        for variation in cue["variations"]:
            _set_attrs(ET.SubElement(cue_elem, "variation"), variation)

    sounds_elem = ET.SubElement(root, "sounds")
    for index, sound in enumerate(data["sounds"]):
        sound_elem = ET.SubElement(sounds_elem, "sound", index=str(index))
        _set_attrs(sound_elem, sound)
        if sound["params_3d"] is not None:
            params_elem = ET.SubElement(sound_elem, "params3d")
            _set_attrs(params_elem, sound["params_3d"])
            params_elem.set("rolloff_curve", " ".join(f"{value:.4f}" for value in sound["params_3d"]["rolloff_curve"]))
        for track in sound["tracks"]:
            track_elem = ET.SubElement(sound_elem, "track")
            _set_attrs(track_elem, track)
            for wave in track["waves"]:
                _set_attrs(ET.SubElement(track_elem, "wave"), wave)
            for event in track["events"]:
                _set_attrs(ET.SubElement(track_elem, "event"), event)
    return root


def write_xml(bank: SoundBank, output_path: str) -> str:
    if os.path.dirname(output_path):
        os.makedirs(os.path.dirname(output_path), exist_ok=True)
    tree = ET.ElementTree(soundbank_to_xml(bank))
    tree.write(output_path, encoding="utf-8", xml_declaration=True, pretty_print=True)
    return output_path
