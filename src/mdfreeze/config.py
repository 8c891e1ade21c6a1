"""Configuration management for mdfreeze.

This module contains the configurable constants for freezing plus the
loading of per-vault settings. Magic numbers are documented here rather than
scattered throughout the codebase.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import FreezeSettings


class ConfigurationError(Exception):
    """Raised when settings or the vault location are invalid."""

    pass


# =============================================================================
# Output naming
# =============================================================================

# Appended to the base name of a frozen note: notes/a.md -> notes/a_freeze.md
FREEZE_SUFFIX = "_freeze"

# Suffix used by the render-to-HTML freeze variant: a.md -> a_freeze_html.md
HTML_FREEZE_SUFFIX = "_freeze_html"


# =============================================================================
# Embed resolution
# =============================================================================

# Maximum nesting of embeds (A embeds B embeds C ... counts one per level).
# Cycles are caught separately; this bounds very deep but acyclic chains.
# 32 levels is far beyond any hand-written note hierarchy.
MAX_EMBED_DEPTH = 32

# Extensions treated as notes. Any other extension is an asset (image, PDF,
# canvas...) whose embed is left untouched.
MARKDOWN_EXTENSIONS = (".md", ".markdown")

# File types the host embeds as media or documents rather than as notes.
# An embed of one of these that cannot be found is left as it is: missing
# assets are not the freeze's concern.
ASSET_EXTENSIONS = frozenset(
    {
        # images
        ".avif", ".bmp", ".gif", ".jpeg", ".jpg", ".png", ".svg", ".webp",
        # audio
        ".3gp", ".flac", ".m4a", ".mp3", ".ogg", ".wav",
        # video
        ".mkv", ".mov", ".mp4", ".ogv", ".webm",
        # documents
        ".base", ".canvas", ".pdf",
    }
)


# =============================================================================
# Vault discovery and settings file
# =============================================================================

# Per-vault settings file, YAML, placed in the vault root
CONFIG_FILENAME = ".freezeconfig"

# Any of these in a directory marks it as a vault root
VAULT_MARKERS = (".obsidian", CONFIG_FILENAME)

# Maximum directories to walk up from the note when looking for a vault root
MAX_VAULT_SEARCH_DEPTH = 20

# Environment variables overriding the settings file
ENV_OVERRIDES = {
    "save_location": "MDFREEZE_SAVE_LOCATION",
    "custom_directory": "MDFREEZE_CUSTOM_DIRECTORY",
    "open_freeze_file": "MDFREEZE_OPEN_FREEZE_FILE",
}

# camelCase keys as written by the Obsidian plugin's data.json
_FILE_KEY_ALIASES = {
    "saveLocation": "save_location",
    "customDirectory": "custom_directory",
    "openFreezeFile": "open_freeze_file",
}


def discover_vault_root(start_dir: Path, max_depth: int = MAX_VAULT_SEARCH_DEPTH) -> Path | None:
    """Walk up from start_dir looking for a vault marker.

    Args:
        start_dir: Directory to start from.
        max_depth: Maximum directories to traverse up.

    Returns:
        The first directory containing one of VAULT_MARKERS, or None.
    """
    current = start_dir.resolve()

    for _ in range(max_depth):
        if any((current / marker).exists() for marker in VAULT_MARKERS):
            return current

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    return None


def get_vault_root(note: Path, explicit: Path | None = None) -> Path:
    """Get the vault root for a note.

    Discovery order:
    1. explicit path (the CLI's --vault option)
    2. MDFREEZE_VAULT_ROOT environment variable
    3. Walk up from the note looking for .obsidian/ or .freezeconfig
    4. The note's own directory

    Raises:
        ConfigurationError: If the note lies outside the chosen vault.
    """
    if explicit is not None:
        root = explicit.resolve()
    elif os.environ.get("MDFREEZE_VAULT_ROOT"):
        root = Path(os.environ["MDFREEZE_VAULT_ROOT"]).resolve()
    else:
        root = discover_vault_root(note.parent) or note.parent.resolve()

    if not note.resolve().is_relative_to(root):
        raise ConfigurationError(f"{note} is not inside the vault {root}")
    return root


def load_settings(vault_root: Path, **overrides: Any) -> FreezeSettings:
    """Load freeze settings for a vault.

    Sources, later wins: model defaults, the vault's .freezeconfig,
    MDFREEZE_* environment variables, then explicit overrides (None values
    are ignored so unset CLI flags fall through).

    Args:
        vault_root: Root directory of the vault.
        **overrides: Field values that take precedence over everything else.

    Returns:
        Validated FreezeSettings.

    Raises:
        ConfigurationError: If the settings file is unreadable or invalid.
    """
    data: dict[str, Any] = {}

    config_file = vault_root / CONFIG_FILENAME
    if config_file.is_file():
        try:
            loaded = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read {config_file}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"{config_file} must contain a YAML mapping")
        for key, value in loaded.items():
            data[_FILE_KEY_ALIASES.get(key, key)] = value

    for field_name, env_var in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[field_name] = value

    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return FreezeSettings.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")
        raise ConfigurationError("Invalid settings:\n" + "\n".join(errors)) from e
