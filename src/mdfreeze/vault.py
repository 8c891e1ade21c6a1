"""Vault storage: link resolution, reading notes and creating files.

The freeze core only needs four things from storage: resolve a link path to
a file, read a file, check/create a folder, and create a new file. ``Vault``
is that contract; ``FileVault`` implements it over a directory and
``MemoryVault`` over a mapping of path to text.

Paths are vault-relative POSIX strings (``notes/a.md``).
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol

from .config import MARKDOWN_EXTENSIONS
from .errors import ReadError, WriteError
from .parser.links import normalize_link

log = logging.getLogger(__name__)

# Directories the host keeps for itself; never part of link resolution
IGNORED_DIRECTORIES = frozenset({".obsidian", ".trash", ".git"})


class Vault(Protocol):
    def resolve(self, target: str, source_path: str) -> str | None: ...

    async def read(self, path: str) -> str: ...

    def exists(self, path: str) -> bool: ...

    async def create_folder(self, path: str) -> None: ...

    async def create(self, path: str, content: str) -> str: ...


def _candidates(target: str) -> list[str]:
    # [[note]] means note.md; [[image.png]] also gets a chance as image.png.md
    if target.lower().endswith(MARKDOWN_EXTENSIONS):
        return [target]
    return [target, f"{target}.md"]


def _join_relative(source_dir: str, target: str) -> str | None:
    """Resolve ./ and ../ against the source directory, never above the root."""
    parts = source_dir.split("/") if source_dir else []
    for part in target.split("/"):
        if part == "..":
            if not parts:
                return None
            parts.pop()
        elif part in ("", "."):
            continue
        else:
            parts.append(part)
    return "/".join(parts)


def _identity(value: str) -> str:
    return value


def _best_match(matches: list[str], source_dir: str) -> str | None:
    """Prefer the source's own folder, then the shortest path, then alphabetical."""
    if not matches:
        return None
    return min(matches, key=lambda p: (posixpath.dirname(p) != source_dir, len(p), p))


def resolve_linkpath(target: str, source_path: str, paths: Iterable[str]) -> str | None:
    """Resolve a link path to a vault file the way the host does.

    Attempts resolution in order:
    1. ./ and ../ paths relative to the source note's folder
    2. Exact vault path (if target contains a separator)
    3. Any vault path ending with /target (partial paths)
    4. File name anywhere in the vault (for [[name]] without a folder)

    Each step tries an exact-case match before a case-insensitive one.

    Args:
        target: Link path without sub-path or alias.
        source_path: Vault path of the note containing the link.
        paths: Every file path in the vault.

    Returns:
        The resolved vault path, or None if nothing matches.
    """
    normalized = normalize_link(target)
    if not normalized:
        return None

    all_paths = list(paths)
    source_dir = posixpath.dirname(source_path)

    for fold in (_identity, str.casefold):
        by_key: dict[str, str] = {}
        for path in sorted(all_paths):
            by_key.setdefault(fold(path), path)

        if normalized.startswith(("./", "../")):
            joined = _join_relative(source_dir, normalized)
            if joined is None:
                return None
            for candidate in _candidates(joined):
                if fold(candidate) in by_key:
                    return by_key[fold(candidate)]
            continue

        candidates = [fold(c) for c in _candidates(normalized)]

        if "/" in normalized:
            for candidate in candidates:
                if candidate in by_key:
                    return by_key[candidate]
            matches = [
                path
                for path in all_paths
                if any(fold(path).endswith(f"/{candidate}") for candidate in candidates)
            ]
        else:
            matches = [path for path in all_paths if fold(posixpath.basename(path)) in candidates]

        resolved = _best_match(matches, source_dir)
        if resolved is not None:
            return resolved

    return None


class FileVault:
    """A vault backed by a directory on disk."""

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()
        self._path_cache: list[str] | None = None

    def _paths(self) -> list[str]:
        # Scanned once per vault; a FileVault lives for one freeze
        if self._path_cache is None:
            self._path_cache = self._scan()
        return self._path_cache

    def _scan(self) -> list[str]:
        paths = []
        for file in self.root.rglob("*"):
            rel = file.relative_to(self.root)
            if any(part in IGNORED_DIRECTORIES for part in rel.parts[:-1]):
                continue
            if file.is_file():
                paths.append(rel.as_posix())
        return paths

    def absolute(self, path: str) -> Path:
        return self.root / path

    def _writable(self, path: str) -> Path:
        """Absolute path for a write, refusing anything outside the vault."""
        target = self.absolute(path).resolve()
        if not target.is_relative_to(self.root):
            raise WriteError(path, "Path is outside the vault.")
        return target

    def relative_path(self, file: Path) -> str:
        """Vault path of a filesystem path inside the vault."""
        try:
            return file.resolve().relative_to(self.root).as_posix()
        except ValueError:
            raise ValueError(f"{file} is not inside the vault {self.root}") from None

    def resolve(self, target: str, source_path: str) -> str | None:
        resolved = resolve_linkpath(target, source_path, self._paths())
        log.debug("Resolved %r from %s -> %s", target, source_path, resolved)
        return resolved

    async def read(self, path: str) -> str:
        try:
            return await asyncio.to_thread(self.absolute(path).read_text, encoding="utf-8")
        except FileNotFoundError:
            raise ReadError(path, "file no longer exists") from None
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(path, str(e)) from e

    def exists(self, path: str) -> bool:
        return self.absolute(path).exists()

    async def create_folder(self, path: str) -> None:
        target = self._writable(path)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteError(path, str(e)) from e

    async def create(self, path: str, content: str) -> str:
        target = self._writable(path)
        try:
            # "x" refuses to overwrite an existing file
            with open(target, "x", encoding="utf-8") as f:
                f.write(content)
        except FileExistsError:
            raise WriteError(path, "File already exists.") from None
        except OSError as e:
            raise WriteError(path, str(e)) from e
        if self._path_cache is not None:
            self._path_cache.append(path)
        return path


class MemoryVault:
    """A vault held in memory as a mapping of vault path to text."""

    def __init__(self, files: Mapping[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.folders: set[str] = set()

    def _all_folders(self) -> set[str]:
        folders = set(self.folders)
        for path in self.files:
            parent = posixpath.dirname(path)
            while parent:
                folders.add(parent)
                parent = posixpath.dirname(parent)
        return folders

    def resolve(self, target: str, source_path: str) -> str | None:
        return resolve_linkpath(target, source_path, self.files)

    async def read(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise ReadError(path, "file no longer exists") from None

    def exists(self, path: str) -> bool:
        return path in self.files or path in self._all_folders()

    async def create_folder(self, path: str) -> None:
        if path in self.files:
            raise WriteError(path, "A file with this name already exists.")
        self.folders.add(path)

    async def create(self, path: str, content: str) -> str:
        if self.exists(path):
            raise WriteError(path, "File already exists.")
        folder = posixpath.dirname(path)
        if folder and folder not in self._all_folders():
            raise WriteError(path, f"Folder {folder} does not exist.")
        self.files[path] = content
        return path
