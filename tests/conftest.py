"""Shared test fixtures for mdfreeze test suite.

Design:
- vault_root: Creates an isolated vault (with .obsidian/) in a temp directory
- write_note: Writes notes into that vault
- runner: CliRunner with proper isolation
- RecordingNotifier / CountingVault: observe the orchestrator and the loader
"""

import logging
from collections import Counter
from pathlib import Path

import pytest
from click.testing import CliRunner

from mdfreeze.vault import MemoryVault

ENV_VARS = (
    "MDFREEZE_VAULT_ROOT",
    "MDFREEZE_SAVE_LOCATION",
    "MDFREEZE_CUSTOM_DIRECTORY",
    "MDFREEZE_OPEN_FREEZE_FILE",
    "MDFREEZE_QUIET",
    "MDFREEZE_LOG_LEVEL",
)


# ─────────────────────────────────────────────────────────────────────────────
# Test Doubles
# ─────────────────────────────────────────────────────────────────────────────


class RecordingNotifier:
    """Notifier that records every message and reported error."""

    def __init__(self):
        self.messages: list[str] = []
        self.errors: list[Exception] = []

    def __call__(self, message, *, error=None):
        self.messages.append(message)
        if error is not None:
            self.errors.append(error)


class CountingVault(MemoryVault):
    """MemoryVault that counts how often each file is read."""

    def __init__(self, files=None):
        super().__init__(files)
        self.reads: Counter[str] = Counter()

    async def read(self, path):
        self.reads[path] += 1
        return await super().read(path)


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's MDFREEZE_* settings out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo --quiet, which raises the package log level for the process."""
    logger = logging.getLogger("mdfreeze")
    level = logger.level
    yield
    logger.setLevel(level)


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    """Create an isolated vault directory marked with .obsidian/."""
    root = tmp_path / "vault"
    root.mkdir()
    (root / ".obsidian").mkdir()
    return root


@pytest.fixture
def write_note(vault_root: Path):
    """Helper for writing notes into the test vault.

    Usage:
        def test_something(write_note):
            note = write_note("notes/a.md", "![[b]]")
    """

    def _write(path: str, content: str) -> Path:
        file = vault_root / path
        file.parent.mkdir(parents=True, exist_ok=True)
        file.write_text(content, encoding="utf-8")
        return file

    return _write


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
