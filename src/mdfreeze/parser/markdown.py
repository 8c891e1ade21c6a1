"""Markdown parsing for the vault dialect.

Builds a markdown-it-py parser from a closed set of syntax extensions:
front matter, GFM tables and strikethrough, dollar math, wikilinks/embeds
and tags. The same set drives the renderer, so every construct the parser
recognises can be written back out.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Sequence
from enum import Enum

from markdown_it import MarkdownIt
from markdown_it.renderer import RendererHTML
from markdown_it.rules_core import StateCore
from markdown_it.rules_inline import StateInline
from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.front_matter import front_matter_plugin

from .links import split_link_target

# Obsidian tag: '#' then letters, digits, '_', '-' or '/', not glued to a
# preceding word, URL path or entity. All-digit names (#123) are not tags.
TAG_PATTERN = re.compile(r"(?<![\w#&/\\])#([\w/-]+)")


class SyntaxExtension(str, Enum):
    """Syntax extensions layered over CommonMark, in application order."""

    FRONT_MATTER = "front_matter"
    TABLE = "table"
    STRIKETHROUGH = "strikethrough"
    MATH = "math"
    WIKILINK = "wikilink"
    TAG = "tag"


def _wikilink_rule(state: StateInline, silent: bool) -> bool:
    """Parse [[target]] into a wikilink token and ![[target]] into an embed token."""
    src = state.src
    pos = state.pos

    if src.startswith("![[", pos):
        token_type, markup = "embed", "![["
    elif src.startswith("[[", pos):
        token_type, markup = "wikilink", "[["
    else:
        return False

    start = pos + len(markup)
    end = src.find("]]", start)
    if end == -1:
        return False

    raw = src[start:end]
    if not raw.strip() or "\n" in raw or "[[" in raw:
        return False

    if not silent:
        token = state.push(token_type, "", 0)
        token.content = raw
        token.markup = markup
        token.meta = {"target": split_link_target(raw)}

    state.pos = end + 2
    return True


def _split_tags(children: Sequence[Token]) -> Iterator[Token]:
    link_depth = 0
    for token in children:
        if token.type == "link_open":
            link_depth += 1
        elif token.type == "link_close":
            link_depth -= 1

        if token.type != "text" or link_depth or "#" not in token.content:
            yield token
            continue

        content = token.content
        last = 0
        for match in TAG_PATTERN.finditer(content):
            name = match.group(1)
            if name.isdigit():
                continue
            if match.start() > last:
                yield Token("text", "", 0, content=content[last : match.start()], level=token.level)
            yield Token("tag", "", 0, content=name, markup="#", level=token.level)
            last = match.end()

        if last == 0:
            yield token
        elif last < len(content):
            yield Token("text", "", 0, content=content[last:], level=token.level)


def _tag_rule(state: StateCore) -> None:
    """Split #tags out of text tokens into their own tag tokens."""
    for block_token in state.tokens:
        if block_token.type == "inline" and block_token.children:
            block_token.children = list(_split_tags(block_token.children))


def _use_table(md: MarkdownIt) -> None:
    md.enable("table")


def _use_strikethrough(md: MarkdownIt) -> None:
    md.enable("strikethrough")


def _use_wikilinks(md: MarkdownIt) -> None:
    # Before "link" so "[[" is never tried as a bracket link and before
    # "image" so "![[" is never tried as an image.
    md.inline.ruler.before("link", "wikilink", _wikilink_rule)


def _use_tags(md: MarkdownIt) -> None:
    md.core.ruler.after("inline", "tag", _tag_rule)


_EXTENSION_PLUGINS: dict[SyntaxExtension, Callable[[MarkdownIt], None]] = {
    SyntaxExtension.FRONT_MATTER: front_matter_plugin,
    SyntaxExtension.TABLE: _use_table,
    SyntaxExtension.STRIKETHROUGH: _use_strikethrough,
    SyntaxExtension.MATH: dollarmath_plugin,
    SyntaxExtension.WIKILINK: _use_wikilinks,
    SyntaxExtension.TAG: _use_tags,
}


def apply_syntax_extensions(md: MarkdownIt) -> None:
    """Layer every dialect extension onto a CommonMark parser."""
    for extension in SyntaxExtension:
        md.use(_EXTENSION_PLUGINS[extension])

    # Keep backslash escapes and entities as text_special tokens so the
    # renderer can write their original markup back.
    md.disable("text_join")


def build_markdown(renderer_cls: type = RendererHTML) -> MarkdownIt:
    """Create a parser for the vault dialect.

    Args:
        renderer_cls: Renderer class for the instance (the freeze pipeline
            passes mdformat's markdown renderer).

    Returns:
        Configured MarkdownIt instance.
    """
    md = MarkdownIt("commonmark", renderer_cls=renderer_cls)
    apply_syntax_extensions(md)
    return md


# Cached parser instance, built on first use
_parser: MarkdownIt | None = None


def _get_parser() -> MarkdownIt:
    global _parser
    if _parser is None:
        _parser = build_markdown()
    return _parser


def parse_document(text: str) -> list[Token]:
    """Parse markdown text into a token stream."""
    return _get_parser().parse(text)


def parse_tree(text: str) -> SyntaxTreeNode:
    """Parse markdown text into a syntax tree."""
    return SyntaxTreeNode(parse_document(text))


def find_embeds(tokens: Sequence[Token]) -> list[Token]:
    """Return every embed token in document order.

    Embeds inside code spans and fenced code are code, not embeds, so they
    never appear here.
    """
    embeds = []
    for token in tokens:
        if token.type == "inline" and token.children:
            embeds.extend(child for child in token.children if child.type == "embed")
    return embeds


def extract_wikilinks(text: str) -> list[str]:
    """Extract the link paths of every [[wikilink]] in markdown text.

    Embeds are not wikilinks and are skipped, as are links in code.

    Returns:
        Link paths without sub-path or alias, in document order, deduplicated.
    """
    links: list[str] = []
    for token in parse_document(text):
        if token.type != "inline" or not token.children:
            continue
        for child in token.children:
            if child.type != "wikilink":
                continue
            path = child.meta["target"].path
            if path and path not in links:
                links.append(path)
    return links
