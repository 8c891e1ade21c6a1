"""Embed resolution: replace every embed of a note with that note's content.

Resolution is a tree-to-tree transformation. The input tree is only read;
every token of the output is a copy, and parents are rebuilt after their
children are resolved, so two embeds of the same note (a diamond) never
share mutable state.

An embed flattens one level: ``![[note]]`` is replaced by the top-level
block sequence of ``note``, not by a wrapper around it. A paragraph holding
an embed is split around it. Inline-only containers (headings, table
cells) and embeds nested inside emphasis or links receive the embedded
blocks' inline content instead.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode

from .config import MAX_EMBED_DEPTH
from .errors import CyclicEmbedError, EmbedDepthError, UnresolvedEmbedError
from .parser.links import LinkTarget, is_markdown_path, looks_like_asset, split_link_target
from .parser.markdown import parse_document
from .sections import select_section
from .vault import Vault

log = logging.getLogger(__name__)

_BREAKS = frozenset({"softbreak", "hardbreak"})

# Leaf block type -> inline token type it becomes inside an inline container
_LEAF_INLINE = {
    "fence": "code_inline",
    "code_block": "code_inline",
    "math_block": "math_inline",
    "math_block_label": "math_inline",
    "html_block": "html_inline",
}
_LEAF_MARKUP = {
    "code_inline": ("code", "`"),
    "math_inline": ("math", "$"),
    "html_inline": ("", ""),
}


@dataclass(frozen=True)
class ResolutionContext:
    """The document being resolved and the chain of embeds that led to it.

    ``visited`` is immutable and extended by copy for each embed, so sibling
    branches each see only their own ancestors: a note embedded twice from
    different places is fine, a note embedded by its own descendant is a
    cycle.
    """

    path: str
    visited: frozenset[str]
    chain: tuple[str, ...]

    @classmethod
    def root(cls, path: str) -> ResolutionContext:
        return cls(path=path, visited=frozenset({path}), chain=(path,))

    @property
    def depth(self) -> int:
        return len(self.chain) - 1

    def descend(self, path: str) -> ResolutionContext:
        return ResolutionContext(
            path=path,
            visited=self.visited | {path},
            chain=(*self.chain, path),
        )


def _is_blank(token: Token) -> bool:
    return token.type in _BREAKS or (token.type == "text" and not token.content.strip())


def _trim(children: Sequence[Token]) -> list[Token]:
    """Drop blank runs and seam whitespace at both ends of split inline content."""
    start, end = 0, len(children)
    while start < end and _is_blank(children[start]):
        start += 1
    while end > start and _is_blank(children[end - 1]):
        end -= 1

    trimmed = list(children[start:end])
    if trimmed and trimmed[0].type == "text":
        trimmed[0] = trimmed[0].copy(content=trimmed[0].content.lstrip())
    if trimmed and trimmed[-1].type == "text":
        trimmed[-1] = trimmed[-1].copy(content=trimmed[-1].content.rstrip())
    return trimmed


def _paragraph(opening: Token, inline: Token, closing: Token, children: Sequence[Token]) -> list[Token]:
    trimmed = _trim(children)
    if not trimmed:
        return []
    content = "".join(child.content for child in trimmed)
    return [opening.copy(), inline.copy(children=trimmed, content=content), closing.copy()]


def _top_level(tokens: Sequence[Token]) -> list[tuple[int, Token]]:
    """Pair each token with its nesting depth within the sequence."""
    depth = 0
    paired = []
    for token in tokens:
        if token.nesting == -1:
            depth -= 1
        paired.append((depth, token))
        if token.nesting == 1:
            depth += 1
    return paired


def _with_paragraph_visibility(tokens: Sequence[Token], hidden: bool) -> list[Token]:
    """Set the tight-list flag on the top-level paragraphs of a spliced sequence."""
    result = []
    for depth, token in _top_level(tokens):
        if depth == 0 and token.type in ("paragraph_open", "paragraph_close"):
            token = token.copy(hidden=hidden)
        result.append(token)
    return result


def _count_blocks(tokens: Sequence[Token]) -> int:
    return sum(1 for depth, token in _top_level(tokens) if depth == 0 and token.nesting != -1)


def _leaf_inline(token: Token) -> Token | None:
    """Inline form of a code, math or HTML block: its lines joined by spaces."""
    kind = _LEAF_INLINE.get(token.type)
    if kind is None:
        return None
    text = " ".join(line.strip() for line in token.content.splitlines() if line.strip())
    if not text:
        return None
    tag, markup = _LEAF_MARKUP[kind]
    return Token(kind, tag, 0, content=text, markup=markup)


def _inline_content(blocks: Sequence[Token]) -> list[Token]:
    """Flatten embedded blocks to inline tokens, one space between blocks.

    Leaf blocks with text become their inline counterparts (see
    _LEAF_INLINE), so nothing of the embedded note is lost in a heading
    or cell.
    """
    content: list[Token] = []
    for token in blocks:
        if token.type == "inline" and token.children:
            children = list(token.children)
        else:
            leaf = _leaf_inline(token)
            if leaf is None:
                continue
            children = [leaf]
        if content:
            content.append(Token("text", "", 0, content=" "))
        for child in children:
            if child.type in _BREAKS:
                child = Token("text", "", 0, content=" ", level=child.level)
            content.append(child)
    return content


class EmbedResolver:
    """Resolves the embeds of one document, recursively.

    One resolver serves one freeze invocation; it holds no state between
    calls besides its vault and depth limit.
    """

    def __init__(self, vault: Vault, *, max_depth: int = MAX_EMBED_DEPTH) -> None:
        self.vault = vault
        self.max_depth = max_depth

    async def resolve(self, tokens: Sequence[Token], context: ResolutionContext) -> list[Token]:
        """Resolve a token stream, returning a new token stream."""
        return await self.resolve_tree(SyntaxTreeNode(tokens), context)

    async def resolve_tree(self, tree: SyntaxTreeNode, context: ResolutionContext) -> list[Token]:
        """Resolve every block of a tree, depth-first and in document order."""
        resolved: list[Token] = []
        for child in tree.children:
            resolved.extend(await self._resolve_block(child, context))
        return resolved

    async def _resolve_block(self, node: SyntaxTreeNode, context: ResolutionContext) -> list[Token]:
        if node.type == "paragraph":
            return await self._resolve_paragraph(node, context)

        if node.type == "inline":
            return [await self._resolve_inline(node.token, context)]

        if node.nester_tokens is None:
            # Leaf blocks: fences, code, html, rules, math, front matter
            return [node.token.copy()]

        opening, closing = node.nester_tokens
        tokens = [opening.copy()]
        for child in node.children:
            tokens.extend(await self._resolve_block(child, context))
        tokens.append(closing.copy())
        return tokens

    async def _resolve_paragraph(self, node: SyntaxTreeNode, context: ResolutionContext) -> list[Token]:
        opening, closing = node.nester_tokens
        inline = node.children[0].token

        result: list[Token] = []
        pending: list[Token] = []
        spliced = False
        for child in inline.children or []:
            if child.type == "embed" and child.level == 0:
                blocks = await self._embed_blocks(child, context)
                if blocks is not None:
                    result.extend(_paragraph(opening, inline, closing, pending))
                    result.extend(blocks)
                    pending = []
                    spliced = True
                else:
                    pending.append(child.copy())
                continue
            pending.extend(await self._resolve_inline_child(child, context))

        if not spliced:
            return [opening.copy(), inline.copy(children=pending), closing.copy()]

        result.extend(_paragraph(opening, inline, closing, pending))
        # More than one block in a tight list item would run together, so
        # the list turns loose instead.
        hidden = opening.hidden and _count_blocks(result) == 1
        return _with_paragraph_visibility(result, hidden)

    async def _resolve_inline(self, inline: Token, context: ResolutionContext) -> Token:
        children: list[Token] = []
        embedded = False
        for child in inline.children or []:
            embedded = embedded or child.type == "embed"
            children.extend(await self._resolve_inline_child(child, context))
        if embedded:
            # An embed with no inline content leaves its seam space behind
            children = _trim(children)
        return inline.copy(children=children)

    async def _resolve_inline_child(self, token: Token, context: ResolutionContext) -> list[Token]:
        if token.type != "embed":
            return [token.copy()]
        blocks = await self._embed_blocks(token, context)
        if blocks is None:
            return [token.copy()]
        return _inline_content(blocks)

    def _resolve_target(self, target: LinkTarget, context: ResolutionContext) -> str | None:
        if not target.path:
            # ![[#Heading]] points into the current document
            return context.path
        return self.vault.resolve(target.path, context.path)

    async def _embed_blocks(self, token: Token, context: ResolutionContext) -> list[Token] | None:
        """Load, parse and resolve the note an embed points at.

        Returns:
            The embedded note's resolved top-level blocks, or None when the
            embed is an asset that stays as it is.

        Raises:
            UnresolvedEmbedError: If a note target matches no file.
            CyclicEmbedError: If the target is already being resolved.
            EmbedDepthError: If nesting exceeds the depth limit.
            ReadError: If the target cannot be read.
        """
        target: LinkTarget = token.meta.get("target") or split_link_target(token.content)

        resolved = self._resolve_target(target, context)
        if resolved is None:
            if looks_like_asset(target.path):
                log.debug("Leaving embed of missing asset %s in %s", target.path, context.path)
                return None
            raise UnresolvedEmbedError(target.path or token.content, context.path)

        if not is_markdown_path(resolved):
            log.debug("Leaving embed of asset %s in %s", resolved, context.path)
            return None

        if resolved in context.visited:
            raise CyclicEmbedError((*context.chain, resolved))

        child_context = context.descend(resolved)
        if child_context.depth > self.max_depth:
            raise EmbedDepthError(child_context.chain, self.max_depth)

        text = await self.vault.read(resolved)
        # An embedded note's front matter is metadata of that note, not content
        tokens = [t for t in parse_document(text) if t.type != "front_matter"]

        if target.subpath:
            section = select_section(tokens, target.subpath)
            if section is None:
                log.warning(
                    "Cannot select #%s in %s (embedded from %s); inlining the whole file",
                    target.subpath,
                    resolved,
                    context.path,
                )
            else:
                tokens = section

        log.debug("Embedding %s into %s", resolved, context.path)
        return await self.resolve(tokens, child_context)


async def resolve_embeds(
    tree: SyntaxTreeNode,
    document_path: str,
    visited: frozenset[str],
    vault: Vault,
    *,
    max_depth: int = MAX_EMBED_DEPTH,
) -> SyntaxTreeNode:
    """Resolve every embed in a tree.

    Args:
        tree: Parsed document; it is not modified.
        document_path: Vault path of the document the tree came from.
        visited: Documents already being resolved above this one.
        vault: Link resolution and file access.
        max_depth: Deepest allowed embed nesting.

    Returns:
        A new tree without embeds of resolvable notes.

    Raises:
        FreezeError: On the first embed that cannot be resolved.
    """
    context = ResolutionContext(
        path=document_path,
        visited=visited | {document_path},
        chain=(document_path,),
    )
    resolver = EmbedResolver(vault, max_depth=max_depth)
    return SyntaxTreeNode(await resolver.resolve_tree(tree, context))
