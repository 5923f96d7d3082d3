"""Tests for JSON and XML export."""

import json
import struct

import lxml.etree as ET

from xsb_builder import event, pack_indices
from xsbdecode.events import EventType, MarkerEvent, UnknownEvent
from xsbdecode.export import event_to_dict, soundbank_to_dict, soundbank_to_xml, write_xml
from xsbdecode.parser import decode_soundbank


class TestDictExport:
    """Plain dict conversion."""

    def test_music_bank(self, music_bank_data):
        data = soundbank_to_dict(decode_soundbank(music_bank_data))
        assert data["name"] == "MUSIC"
        assert data["wave_banks"] == ["MUSIC_BANK"]
        assert data["cues"][0]["select_method"] == "ORDERED"
        assert data["cues"][0]["variations"] == [{"sound_index": 0, "weight_min": 0, "weight_max": 255}]

        track = data["sounds"][0]["tracks"][0]
        assert track["waves"] == [{"index": 7, "bank": "MUSIC_BANK", "weight_min": 0, "weight_max": 255}]
        assert track["events"][0]["kind"] == "PLAY"
        assert data["sounds"][0]["params_3d"] is None
        json.dumps(data)

    def test_event_kinds(self):
        marker = event_to_dict(MarkerEvent(type=EventType.MARKER, timestamp=4, repeat=True, value=9))
        assert marker["kind"] == "MARKER"
        assert marker["timestamp"] == 4
        assert marker["repeat"] is True
        assert "type" not in marker
        assert event_to_dict(UnknownEvent(type=0x42, timestamp=1))["kind"] == "UNKNOWN_0x42"

    def test_3d_sound(self, builder):
        builder.add_params_3d(mode=2, curve=bytes([255]))
        builder.add_sound(pack_indices(0, 1), flags=0x08 | 0x01)
        data = soundbank_to_dict(decode_soundbank(builder.build()))
        params = data["sounds"][0]["params_3d"]
        assert params["mode"] == "DISABLED"
        assert params["rolloff_curve"] == [1.0]
        json.dumps(data)


class TestXmlExport:
    """lxml tree export."""

    def test_tree_layout(self, builder):
        builder.add_wave_bank("SFX")
        builder.add_cue(sound_index=0, name=builder.add_string("boom"))
        builder.add_cue(sound_index=0)
        events = builder.add_blob(
            event(EventType.PLAY, params=struct.pack("<I", pack_indices(0, 2)))
            + event(EventType.LOOP, timestamp=10, lead=struct.pack("<H", 2))
        )
        tracks = builder.add_blob(lambda resolve: struct.pack("<I", (resolve(events) << 8) | 2))
        builder.add_sound(tracks, track_count=1)
        builder.add_sound(pack_indices(0, 3), flags=0x08)
        root = soundbank_to_xml(decode_soundbank(builder.build()))

        assert root.tag == "soundbank"
        assert root.get("name") == "TEST_BANK"
        assert [elem.get("name") for elem in root.iter("wavebank")] == ["SFX"]
        cues = root.findall("cues/cue")
        assert len(cues) == 2
        assert cues[0].get("name") == "boom"
        assert cues[0].find("variation").get("sound_index") == "0"
        sounds = root.findall("sounds/sound")
        assert len(sounds) == 2
        assert sounds[1].get("is_3d") == "false"
        wave = sounds[1].find("track/wave")
        assert wave.get("index") == "3"
        assert wave.get("bank") == "SFX"
        assert sounds[1].find("track/event").get("kind") == "PLAY"
        assert [elem.get("kind") for elem in sounds[0].iter("event")] == ["PLAY", "LOOP"]
        assert sounds[0].find("track/wave").get("index") == "2"

    def test_write_xml(self, tmp_path, music_bank_data):
        path = write_xml(decode_soundbank(music_bank_data), str(tmp_path / "out" / "music.xml"))
        content = (tmp_path / "out" / "music.xml").read_bytes()
        assert path.endswith("music.xml")
        assert content.startswith(b"<?xml")
        root = ET.fromstring(content)
        assert root.find("sounds/sound/track/wave").get("bank") == "MUSIC_BANK"

    def test_control_characters_in_names(self, builder):
        builder.add_cue(sound_index=0, name=builder.add_blob(b"boom\x01\0"))
        builder.add_sound(flags=0x08)
        bank = decode_soundbank(builder.build())
        assert bank.cues[0].name == "boom\x01"
        root = soundbank_to_xml(bank)
        assert root.find("cues/cue").get("name") == "boom\\x01"
        ET.tostring(root)
