import io
import os
import sys

import numpy as np
import pytest

from blipmachine.cli import build_parser, main as cli_main, resolve_config


def _program(tmp_path, text: str):
    path = tmp_path / "song.blip"
    path.write_text(text)
    return path


def test_cli_writes_raw_u8_file(tmp_path):
    program = _program(tmp_path, "sin 440 0.01\n")
    output = tmp_path / "out.raw"
    assert cli_main([str(program), "--output", str(output)]) == 0
    data = np.frombuffer(output.read_bytes(), dtype=np.uint8)
    assert data.shape == (80,)
    assert data[0] == 128


def test_cli_s16_format_doubles_byte_count(tmp_path):
    program = _program(tmp_path, "sin 440 0.01\n")
    output = tmp_path / "out.raw"
    assert cli_main([str(program), "--output", str(output), "--format", "s16"]) == 0
    assert len(output.read_bytes()) == 160


def test_cli_sample_rate_override(tmp_path):
    program = _program(tmp_path, "sin 440 0.01\n")
    output = tmp_path / "out.raw"
    assert cli_main([str(program), "--output", str(output), "--sample-rate", "16000"]) == 0
    assert len(output.read_bytes()) == 160


def test_cli_duration_caps_looping_program(tmp_path):
    program = _program(tmp_path, "lbl a\nsin 100 0.01\npjump a 1\n")
    output = tmp_path / "out.raw"
    assert cli_main([str(program), "--output", str(output), "--duration", "0.05"]) == 0
    assert len(output.read_bytes()) == 400


def test_cli_reports_every_error_and_writes_nothing(tmp_path, capsys):
    program = _program(tmp_path, "lbl a\nsin 440 loud\npjump b 0.5\nwobble\n")
    output = tmp_path / "out.raw"
    assert cli_main([str(program), "--output", str(output)]) == 1
    err = capsys.readouterr().err
    assert "blip-machine:2 error: expected a number" in err
    assert "blip-machine:3 error: unknown label 'b'" in err
    assert "blip-machine:4 error: bad syntax" in err
    assert "error: aborting due to 3 previous errors." in err
    assert not output.exists()


def test_cli_reads_stdin_and_writes_stdout(monkeypatch, capsysbinary):
    monkeypatch.setattr(sys, "stdin", io.StringIO("sin 1000 0.001\n"))
    assert cli_main([]) == 0
    out = capsysbinary.readouterr().out
    assert len(out) == 8


def test_cli_check_prints_summary(tmp_path, capsys):
    program = _program(tmp_path, "lbl a\nsin 440 1\n")
    assert cli_main([str(program), "--check"]) == 0
    out = capsys.readouterr().out
    assert "Program: 2 instructions, 1 labels" in out


def test_cli_missing_program_file(tmp_path, capsys):
    assert cli_main([str(tmp_path / "nope.blip")]) == 1
    assert "blip-machine: error:" in capsys.readouterr().err


def test_cli_rejects_negative_duration(tmp_path):
    program = _program(tmp_path, "sin 440 0.01\n")
    assert cli_main([str(program), "--duration", "-1"]) == 1


def test_cli_info_logging_goes_to_stderr(tmp_path, capsys):
    program = _program(tmp_path, "sin 440 0.01\n")
    output = tmp_path / "out.raw"
    assert cli_main([str(program), "--output", str(output), "--log-level", "info"]) == 0
    captured = capsys.readouterr()
    assert "Render halted after 80 samples" in captured.err
    assert captured.out == ""


def test_cli_bad_log_level(tmp_path, capsys):
    program = _program(tmp_path, "sin 440 0.01\n")
    assert cli_main([str(program), "--log-level", "chatty"]) == 1
    assert "log_level" in capsys.readouterr().err


def test_cli_invalid_format_is_usage_error():
    with pytest.raises(SystemExit) as info:
        cli_main(["--format", "mp3"])
    assert info.value.code == 2


def test_resolve_config_applies_overrides(tmp_path):
    args = build_parser().parse_args(
        ["--seed", "9", "--format", "f32", "--output", str(tmp_path / "o.raw"), "--sample-rate", "22050"]
    )
    config = resolve_config(args)
    assert config.seed == 9
    assert config.sample_rate == 22050
    assert config.output.sample_format == "f32"
    assert config.output.sink == "file"
    assert config.output.path == str(tmp_path / "o.raw")


def test_resolve_config_play_selects_device():
    config = resolve_config(build_parser().parse_args(["--play"]))
    assert config.output.sink == "device"
    assert config.output.path is None


@pytest.mark.skipif(not os.path.exists("/dev/full"), reason="needs /dev/full")
def test_cli_full_device_ends_looping_render(tmp_path, capsys):
    program = _program(tmp_path, "lbl a\nsin 100 0.01\npjump a 1\n")
    assert cli_main([str(program), "--output", "/dev/full"]) == 0
    assert "Traceback" not in capsys.readouterr().err
