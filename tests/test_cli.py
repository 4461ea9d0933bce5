import pytest
from click.testing import CliRunner

from fret_tuner import cli
from fret_tuner.cli import main


@pytest.fixture(autouse=True)
def no_log_handlers(monkeypatch):
    # The shared console handler would bind to the runner's temporary stdout
    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)


def run(*args):
    result = CliRunner().invoke(main, list(args))
    assert result.exit_code == 0, result.output
    return result.output


def test_note_command():
    output = run("note", "440")
    assert "A4 0 cents" in output
    assert "target 440.00 Hz" in output
    assert "perfect" in output


def test_note_command_with_custom_reference():
    output = run("note", "440", "--a4", "445")
    assert "A4 -20 cents" in output
    assert "good" not in output


def test_note_command_without_signal():
    assert run("note", "0").strip() == "-"


def test_strings_standard():
    lines = run("strings").splitlines()
    assert lines[0].split()[:3] == ["6:", "E2", "82.41"]
    assert lines[-1].split()[:3] == ["1:", "E4", "329.63"]


def test_strings_drop_and_shift():
    lines = run("strings", "--pitch-mode", "shift", "--shift=-2", "--drop", "D").splitlines()
    assert lines[0].split()[:3] == ["6:", "C2", "65.41"]
    assert lines[1].split()[1] == "G2"


def test_strings_rejects_unknown_pitch_mode():
    result = CliRunner().invoke(main, ["strings", "--pitch-mode", "just"])
    assert result.exit_code != 0
