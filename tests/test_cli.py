"""CLI tests for mdfreeze.

Covers every command with:
- One happy path per command
- Error cases with and without --json-errors
- Bulk parametrized tests for --help
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from mdfreeze import __version__ as MDFREEZE_VERSION
from mdfreeze.cli import cli

ALL_COMMANDS = ["freeze", "embeds", "config"]


def _last_json(output: str) -> dict:
    return json.loads(output.strip().splitlines()[-1])


# ─────────────────────────────────────────────────────────────────────────────
# Bulk Tests (Parametrized)
# ─────────────────────────────────────────────────────────────────────────────


@pytest.mark.parametrize("cmd", ALL_COMMANDS)
def test_command_help(runner: CliRunner, cmd: str):
    result = runner.invoke(cli, [cmd, "--help"])
    assert result.exit_code == 0, f"{cmd} --help failed: {result.output}"
    assert "Usage:" in result.output


def test_main_help(runner: CliRunner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for cmd in ALL_COMMANDS:
        assert cmd in result.output


def test_version(runner: CliRunner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert MDFREEZE_VERSION in result.output


def test_typo_suggestion(runner: CliRunner):
    result = runner.invoke(cli, ["freez"])
    assert result.exit_code != 0
    assert "Did you mean 'freeze'?" in result.output


# ─────────────────────────────────────────────────────────────────────────────
# freeze
# ─────────────────────────────────────────────────────────────────────────────


class TestFreezeCommand:
    def test_freeze_saves_next_to_note(self, runner, vault_root: Path, write_note):
        note = write_note("notes/a.md", "# A\n\n![[b]]\n")
        write_note("notes/b.md", "Body with [[Other Note]] and #project/alpha\n")

        result = runner.invoke(cli, ["freeze", str(note), "--no-open"])

        assert result.exit_code == 0, result.output
        assert "Freezing file..." in result.output
        assert "File frozen and saved as: a_freeze.md" in result.output
        frozen = (vault_root / "notes" / "a_freeze.md").read_text(encoding="utf-8")
        assert frozen == "# A\n\nBody with [[Other Note]] and #project/alpha\n"

    def test_freeze_custom_directory(self, runner, vault_root: Path, write_note):
        note = write_note("notes/a.md", "text\n")

        result = runner.invoke(
            cli,
            [
                "freeze",
                str(note),
                "--save-location",
                "custom-directory",
                "--custom-directory",
                "archive",
                "--no-open",
            ],
        )

        assert result.exit_code == 0, result.output
        assert (vault_root / "archive" / "a_freeze.md").read_text(encoding="utf-8") == "text\n"

    def test_freeze_uses_config_file(self, runner, vault_root: Path, write_note):
        (vault_root / ".freezeconfig").write_text(
            "saveLocation: custom-directory\ncustomDirectory: out\nopenFreezeFile: false\n"
        )
        note = write_note("notes/a.md", "text\n")

        result = runner.invoke(cli, ["freeze", str(note)])

        assert result.exit_code == 0, result.output
        assert (vault_root / "out" / "a_freeze.md").exists()

    def test_freeze_opens_result(self, runner, vault_root: Path, write_note, monkeypatch):
        note = write_note("a.md", "text\n")
        opened = []
        monkeypatch.setattr("mdfreeze.cli.click.launch", lambda target, **kw: opened.append(target))

        result = runner.invoke(cli, ["freeze", str(note)])

        assert result.exit_code == 0, result.output
        assert opened == [str(vault_root.resolve() / "a_freeze.md")]

    def test_freeze_stdout(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "Intro\n\n![[b]]\n")
        write_note("b.md", "B body\n")

        result = runner.invoke(cli, ["freeze", str(note), "--stdout"])

        assert result.exit_code == 0, result.output
        assert "Intro\n\nB body\n" in result.output
        assert not (vault_root / "a_freeze.md").exists()

    def test_cycle_fails_without_output(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "![[b]]\n")
        write_note("b.md", "![[a]]\n")

        result = runner.invoke(cli, ["freeze", str(note), "--no-open"])

        assert result.exit_code == 1
        assert "Error: Circular embed detected: a.md -> b.md -> a.md" in result.output
        assert not (vault_root / "a_freeze.md").exists()

    def test_missing_target_fails_without_output(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "![[nowhere]]\n")

        result = runner.invoke(cli, ["freeze", str(note), "--no-open"])

        assert result.exit_code == 1
        assert "File not found: nowhere" in result.output
        assert not (vault_root / "a_freeze.md").exists()

    def test_existing_output_not_overwritten(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "new\n")
        write_note("a_freeze.md", "old\n")

        result = runner.invoke(cli, ["freeze", str(note), "--no-open"])

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert (vault_root / "a_freeze.md").read_text(encoding="utf-8") == "old\n"

    def test_json_errors(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "![[nowhere]]\n")

        result = runner.invoke(cli, ["--json-errors", "freeze", str(note), "--no-open"])

        assert result.exit_code == 1
        error = _last_json(result.output)["error"]
        assert error["code"] == "UNRESOLVED_EMBED"
        assert error["details"] == {"target": "nowhere", "source": "a.md"}

    def test_json_errors_flag_after_command(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "![[a]]\n")

        result = runner.invoke(cli, ["freeze", str(note), "--no-open", "--json-errors"])

        assert result.exit_code == 1
        assert _last_json(result.output)["error"]["code"] == "CYCLIC_EMBED"

    def test_invalid_config(self, runner, vault_root: Path, write_note):
        (vault_root / ".freezeconfig").write_text("save_location: elsewhere\n")
        note = write_note("a.md", "text\n")

        result = runner.invoke(cli, ["freeze", str(note), "--no-open"])

        assert result.exit_code == 1
        assert "Invalid settings" in result.output

    def test_missing_note(self, runner, vault_root: Path):
        result = runner.invoke(cli, ["freeze", str(vault_root / "nope.md")])
        assert result.exit_code == 2

    def test_quiet(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "text\n")
        result = runner.invoke(cli, ["--quiet", "freeze", str(note), "--no-open"])
        assert result.exit_code == 0, result.output


# ─────────────────────────────────────────────────────────────────────────────
# embeds
# ─────────────────────────────────────────────────────────────────────────────


class TestEmbedsCommand:
    def test_lists_embeds(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "![[b#Part]]\n\n![[pic.png]]\n\n![[nowhere]]\n")
        write_note("notes/b.md", "")

        result = runner.invoke(cli, ["embeds", str(note)])

        assert result.exit_code == 0, result.output
        assert "b#Part -> notes/b.md" in result.output
        assert "pic.png -> (missing asset) [asset, kept]" in result.output
        assert "nowhere -> (not found)" in result.output

    def test_json(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "![[b]]\n")
        write_note("b.md", "")

        result = runner.invoke(cli, ["embeds", str(note), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data == [
            {"raw": "b", "target": "b", "subpath": "", "resolved": "b.md", "kind": "note"}
        ]

    def test_no_embeds(self, runner, vault_root: Path, write_note):
        note = write_note("a.md", "just text\n")
        result = runner.invoke(cli, ["embeds", str(note)])
        assert result.exit_code == 0
        assert "No embeds found." in result.output


# ─────────────────────────────────────────────────────────────────────────────
# config
# ─────────────────────────────────────────────────────────────────────────────


class TestConfigCommand:
    def test_yaml_output(self, runner, vault_root: Path):
        (vault_root / ".freezeconfig").write_text("custom_directory: archive\n")

        result = runner.invoke(cli, ["config", "--vault", str(vault_root)])

        assert result.exit_code == 0, result.output
        assert "save_location: same-directory" in result.output
        assert "custom_directory: archive" in result.output

    def test_json_output(self, runner, vault_root: Path, monkeypatch):
        monkeypatch.setenv("MDFREEZE_OPEN_FREEZE_FILE", "false")

        result = runner.invoke(cli, ["config", "--vault", str(vault_root), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["vault"] == str(vault_root.resolve())
        assert data["open_freeze_file"] is False

    def test_discovers_vault_from_working_directory(self, runner, vault_root: Path, monkeypatch):
        (vault_root / "notes").mkdir()
        monkeypatch.chdir(vault_root / "notes")

        result = runner.invoke(cli, ["config", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["vault"] == str(vault_root.resolve())

    def test_invalid_config(self, runner, vault_root: Path):
        (vault_root / ".freezeconfig").write_text("open_freeze_file: maybe\n")

        result = runner.invoke(cli, ["--json-errors", "config", "--vault", str(vault_root)])

        assert result.exit_code == 1
        assert _last_json(result.output)["error"]["code"] == "CONFIGURATION_ERROR"
