"""Core freeze operations used by the CLI.

Pipeline: load the note -> parse -> resolve embeds -> render markdown.

Design principles:
- All operations that touch the vault are async
- Errors propagate unrecovered up to freeze_file/save_frozen_file, which
  report them and return None; callers treat None as "no output produced"
"""

from __future__ import annotations

import logging
import posixpath
from typing import Protocol

from .config import FREEZE_SUFFIX, MAX_EMBED_DEPTH
from .errors import FreezeError, WriteError
from .models import EmbedInfo, FreezeResult, FreezeSettings
from .parser.links import is_markdown_path, looks_like_asset
from .parser.markdown import find_embeds, parse_document, parse_tree
from .renderer import render_tokens
from .resolver import resolve_embeds
from .vault import Vault

log = logging.getLogger(__name__)


class Notifier(Protocol):
    """User-facing message channel (the CLI prints, the library logs)."""

    def __call__(self, message: str, *, error: FreezeError | None = None) -> None: ...


def log_notifier(message: str, *, error: FreezeError | None = None) -> None:
    if error is not None:
        log.error(message)
    else:
        log.info(message)


# ─────────────────────────────────────────────────────────────────────────────
# Freezing
# ─────────────────────────────────────────────────────────────────────────────


async def freeze_document(vault: Vault, path: str, *, max_depth: int = MAX_EMBED_DEPTH) -> str:
    """Freeze a note: inline every embedded note, recursively.

    Args:
        vault: Vault holding the note and everything it embeds.
        path: Vault path of the note.
        max_depth: Deepest allowed embed nesting.

    Returns:
        The self-contained markdown text.

    Raises:
        FreezeError: If any embed cannot be resolved or read.
    """
    text = await vault.read(path)
    tree = parse_tree(text)
    resolved = await resolve_embeds(tree, path, frozenset({path}), vault, max_depth=max_depth)
    return render_tokens(resolved.to_tokens())


async def freeze_file(vault: Vault, path: str, notify: Notifier = log_notifier) -> str | None:
    """Freeze a note, reporting failure instead of raising.

    Returns:
        The frozen text, or None if the freeze failed (already reported).
    """
    try:
        return await freeze_document(vault, path)
    except FreezeError as e:
        notify(f"Error freezing file: {e.message}", error=e)
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Saving
# ─────────────────────────────────────────────────────────────────────────────


def normalize_directory(directory: str) -> str:
    """Strip empty segments: "/archive//2024/" -> "archive/2024".

    Raises:
        WriteError: If a segment is "." or "..", which could leave the vault.
    """
    parts = [part for part in directory.split("/") if part]
    if any(part in (".", "..") for part in parts):
        raise WriteError(directory, "Custom directory must be a plain vault path without '.' or '..'.")
    return "/".join(parts)


def frozen_file_name(name: str, suffix: str = FREEZE_SUFFIX) -> str:
    """Name of the frozen copy of a file.

    Examples:
        "a.md" -> "a_freeze.md"
        "v1.2.md" -> "v1.2_freeze.md"
        "README" -> "README_freeze"
    """
    base, dot, extension = name.rpartition(".")
    if not dot:
        return f"{name}{suffix}"
    if not extension:
        return f"{base}{suffix}"
    return f"{base}{suffix}.{extension}"


def frozen_file_path(source_path: str, settings: FreezeSettings, suffix: str = FREEZE_SUFFIX) -> str:
    """Vault path where the frozen copy of source_path is written.

    Raises:
        WriteError: If the custom directory would leave the vault.
    """
    source_directory, _, name = source_path.rpartition("/")

    if settings.uses_custom_directory:
        directory = normalize_directory(settings.custom_directory)
    else:
        directory = source_directory

    new_name = frozen_file_name(name, suffix)
    return f"{directory}/{new_name}" if directory else new_name


async def save_frozen_file(
    vault: Vault,
    source_path: str,
    content: str,
    settings: FreezeSettings,
    notify: Notifier = log_notifier,
) -> str | None:
    """Create the frozen copy next to the source or in the custom directory.

    Existing files are never overwritten.

    Returns:
        Vault path of the created file, or None if creation failed (already
        reported).
    """
    try:
        new_path = frozen_file_path(source_path, settings)
        directory = posixpath.dirname(new_path)
        if settings.uses_custom_directory and directory and not vault.exists(directory):
            await vault.create_folder(directory)
        return await vault.create(new_path, content)
    except FreezeError as e:
        notify(f"Error saving frozen file: {e.message}", error=e)
        return None


async def freeze_and_save(
    vault: Vault,
    path: str,
    settings: FreezeSettings,
    notify: Notifier = log_notifier,
) -> FreezeResult | None:
    """Freeze a note and save the result as a new file.

    Nothing is written when the freeze fails.

    Returns:
        FreezeResult for the created file, or None on any failure.
    """
    notify("Freezing file...")

    content = await freeze_file(vault, path, notify)
    if content is None:
        return None

    new_path = await save_frozen_file(vault, path, content, settings, notify)
    if new_path is None:
        return None

    name = posixpath.basename(new_path)
    notify(f"File frozen and saved as: {name}")
    return FreezeResult(source=path, path=new_path, name=name)


# ─────────────────────────────────────────────────────────────────────────────
# Inspection
# ─────────────────────────────────────────────────────────────────────────────


async def list_embeds(vault: Vault, path: str) -> list[EmbedInfo]:
    """Describe the direct embeds of a note without resolving them."""
    text = await vault.read(path)

    infos = []
    for token in find_embeds(parse_document(text)):
        target = token.meta["target"]
        resolved = vault.resolve(target.path, path) if target.path else path
        if resolved is None:
            kind = "asset" if looks_like_asset(target.path) else "missing"
        else:
            kind = "note" if is_markdown_path(resolved) else "asset"
        infos.append(
            EmbedInfo(
                raw=token.content,
                target=target.path,
                subpath=target.subpath,
                resolved=resolved,
                kind=kind,
            )
        )
    return infos
