"""Markdown parsing for the vault dialect and wikilink target handling."""

from .links import LinkTarget, is_markdown_path, looks_like_asset, normalize_link, split_link_target
from .markdown import (
    SyntaxExtension,
    apply_syntax_extensions,
    build_markdown,
    extract_wikilinks,
    find_embeds,
    parse_document,
    parse_tree,
)

__all__ = [
    "LinkTarget",
    "split_link_target",
    "normalize_link",
    "is_markdown_path",
    "looks_like_asset",
    "SyntaxExtension",
    "apply_syntax_extensions",
    "build_markdown",
    "parse_document",
    "parse_tree",
    "find_embeds",
    "extract_wikilinks",
]
