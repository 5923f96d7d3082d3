"""Pytest configuration and fixtures."""

import pytest

from xsb_builder import XsbBuilder, pack_indices


@pytest.fixture
def builder():
    """Create an empty sound bank builder."""
    return XsbBuilder()


@pytest.fixture
def music_bank_data():
    """One wave bank, one direct cue and one trivial sound playing wave 7."""
    xsb = XsbBuilder(name="MUSIC")
    xsb.add_wave_bank("MUSIC_BANK")
    xsb.add_cue(sound_index=0, name=None, entry=None)
    xsb.add_sound(pack_indices(0, 7), flags=0x08, track_count=1)
    return xsb.build()


@pytest.fixture
def music_bank_file(tmp_path, music_bank_data):
    """Write the music bank to a .xsb file."""
    path = tmp_path / "music.xsb"
    path.write_bytes(music_bank_data)
    return str(path)
