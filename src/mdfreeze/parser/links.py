"""Wikilink and embed target parsing."""

from pathlib import PurePosixPath
from typing import NamedTuple

from ..config import ASSET_EXTENSIONS, MARKDOWN_EXTENSIONS


class LinkTarget(NamedTuple):
    """The parts of a [[path#subpath|alias]] reference."""

    path: str
    subpath: str = ""
    alias: str | None = None

    @property
    def is_heading(self) -> bool:
        return bool(self.subpath) and not self.subpath.startswith("^")


def split_link_target(raw: str) -> LinkTarget:
    """Split the inner text of a wikilink or embed into its parts.

    ``\\|`` (the escaped pipe used inside tables) separates the alias just
    like a bare ``|``.

    Examples:
        "note" -> LinkTarget("note", "", None)
        "dir/note#Setup|the setup" -> LinkTarget("dir/note", "Setup", "the setup")
        "note#^block-id" -> LinkTarget("note", "^block-id", None)
        "#Heading" -> LinkTarget("", "Heading", None)
    """
    text = raw.replace("\\|", "|").strip()

    alias = None
    if "|" in text:
        text, alias = text.split("|", 1)
        alias = alias.strip()

    subpath = ""
    if "#" in text:
        text, subpath = text.split("#", 1)

    return LinkTarget(path=text.strip(), subpath=subpath.strip(), alias=alias)


def normalize_link(link: str) -> str:
    """Normalize a link path for lookup in the vault.

    - Strips whitespace
    - Normalizes path separators (use forward slashes)
    - Removes a leading slash (vault paths are relative to the root)

    Relative prefixes (``./``, ``../``) are kept for the resolver.
    """
    link = link.strip().replace("\\", "/")
    if link.startswith("/"):
        link = link.lstrip("/")
    return link


def is_markdown_path(path: str) -> bool:
    """Whether a vault path names a note rather than an asset."""
    return path.lower().endswith(MARKDOWN_EXTENSIONS)


def looks_like_asset(path: str) -> bool:
    """Whether a link path names a media or document file by its extension."""
    return PurePosixPath(path).suffix.lower() in ASSET_EXTENSIONS
