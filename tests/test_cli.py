"""Tests for the command line front end."""

import json

import pytest

from xsbdecode import cli


@pytest.fixture
def log_dir(tmp_path):
    return str(tmp_path / "log")


class TestCommands:
    """Sub-command behaviour and exit codes."""

    def test_info(self, capsys, log_dir, music_bank_file):
        assert cli.main(["--log-dir", log_dir, "info", "--input", music_bank_file]) == 0
        out = capsys.readouterr().out
        assert "name\tMUSIC" in out
        assert "MUSIC_BANK" in out
        assert "sounds\t1" in out
        assert "tracks\t1" in out

    def test_cues(self, capsys, log_dir, music_bank_file):
        assert cli.main(["--log-dir", log_dir, "cues", "--input", music_bank_file]) == 0
        assert capsys.readouterr().out.strip() == "0\t-\t0"

    def test_dump_json(self, tmp_path, log_dir, music_bank_file):
        output = tmp_path / "build" / "music.json"
        assert cli.main(["--log-dir", log_dir, "dump", "--input", music_bank_file, "--output", str(output)]) == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["wave_banks"] == ["MUSIC_BANK"]
        assert data["sounds"][0]["tracks"][0]["waves"][0]["index"] == 7

    def test_dump_xml(self, tmp_path, log_dir, music_bank_file):
        output = tmp_path / "music.xml"
        args = ["--log-dir", log_dir, "dump", "--input", music_bank_file, "--output", str(output), "--format", "xml"]
        assert cli.main(args) == 0
        assert output.read_bytes().startswith(b"<?xml")

    def test_bad_file(self, tmp_path, capsys, log_dir):
        path = tmp_path / "broken.xsb"
        path.write_bytes(b"RIFF" + b"\0" * 60)
        assert cli.main(["--log-dir", log_dir, "info", "--input", str(path)]) == 1
        assert "Not a XSB file" in capsys.readouterr().err

    def test_writes_log_file(self, tmp_path, music_bank_file):
        log_dir = tmp_path / "logs"
        assert cli.main(["--log-dir", str(log_dir), "dump", "--input", music_bank_file,
                         "--output", str(tmp_path / "out.json")]) == 0
        assert any(path.name.startswith("dump_") for path in log_dir.iterdir())
