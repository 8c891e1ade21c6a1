"""Markdown serialization that keeps the vault dialect intact.

Uses mdformat's markdown renderer with one parser extension covering the
same syntax extensions as the parser. The generic text handler escapes
characters such as ``[``, ``]`` and ``#``, which would turn live wikilinks
and tags into literal text, so text runs are written verbatim instead.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdformat.renderer import MDRenderer, RenderContext, RenderTreeNode

from .parser.markdown import apply_syntax_extensions, build_markdown, parse_document

_DELIMITERS = {"left": ":---", "center": ":---:", "right": "---:"}


def _text(node: RenderTreeNode, context: RenderContext) -> str:
    return node.content


def _text_special(node: RenderTreeNode, context: RenderContext) -> str:
    # Backslash escapes and entities, written as they appeared in the source
    return node.markup or node.content


def _front_matter(node: RenderTreeNode, context: RenderContext) -> str:
    markup = node.markup or "---"
    content = node.content.strip("\n")
    if not content:
        return f"{markup}\n{markup}"
    return f"{markup}\n{content}\n{markup}"


def _reference(node: RenderTreeNode, context: RenderContext) -> str:
    # wikilinks and embeds: markup is "[[" or "![["
    return f"{node.markup}{node.content}]]"


def _tag(node: RenderTreeNode, context: RenderContext) -> str:
    return f"#{node.content}"


def _strikethrough(node: RenderTreeNode, context: RenderContext) -> str:
    text = "".join(child.render(context) for child in node.children)
    return f"{node.markup}{text}{node.markup}"


def _math_inline(node: RenderTreeNode, context: RenderContext) -> str:
    return f"${node.content}$"


def _math_inline_double(node: RenderTreeNode, context: RenderContext) -> str:
    return f"$${node.content}$$"


def _math_block(node: RenderTreeNode, context: RenderContext) -> str:
    content = node.content.strip("\n")
    return f"$$\n{content}\n$$"


def _math_block_label(node: RenderTreeNode, context: RenderContext) -> str:
    return f"{_math_block(node, context)} ({node.info})"


def _cell_alignment(cell: RenderTreeNode) -> str:
    style = str(cell.attrs.get("style", ""))
    return style.partition("text-align:")[2].strip()


def _table_row(cells: Sequence[str]) -> str:
    return "| " + " | ".join(cells) + " |"


def _table(node: RenderTreeNode, context: RenderContext) -> str:
    rows: list[list[str]] = []
    alignments: list[str] = []

    for section in node.children:  # thead, tbody
        for row in section.children:
            cells = []
            for cell in row.children:
                if section.type == "thead":
                    alignments.append(_cell_alignment(cell))
                text = "".join(child.render(context) for child in cell.children)
                # The table parser unescapes \| inside cells, wikilink aliases included
                cells.append(text.replace("\n", " ").replace("|", "\\|").strip())
            rows.append(cells)

    if not rows:
        return ""

    width = len(rows[0])
    delimiter = [_DELIMITERS.get(alignment, "---") for alignment in alignments]
    lines = [_table_row(rows[0]), _table_row(delimiter)]
    for cells in rows[1:]:
        padded = (cells + [""] * width)[:width]
        lines.append(_table_row(padded))
    return "\n".join(lines)


class FreezeSyntax:
    """mdformat parser extension for the vault dialect.

    ``text`` replaces mdformat's escaping text handler for every text run;
    the other entries render the syntax mdformat does not know about.
    """

    CHANGES_AST = False

    RENDERERS: Mapping = {
        "text": _text,
        "text_special": _text_special,
        "front_matter": _front_matter,
        "table": _table,
        "s": _strikethrough,
        "math_inline": _math_inline,
        "math_inline_double": _math_inline_double,
        "math_block": _math_block,
        "math_block_label": _math_block_label,
        "wikilink": _reference,
        "embed": _reference,
        "tag": _tag,
    }

    POSTPROCESSORS: Mapping = {}

    @staticmethod
    def update_mdit(mdit: MarkdownIt) -> None:
        apply_syntax_extensions(mdit)


def build_renderer() -> MarkdownIt:
    """Create a MarkdownIt instance whose renderer writes markdown."""
    md = build_markdown(renderer_cls=MDRenderer)
    md.options["mdformat"] = {"number": True}
    md.options["parser_extension"] = [FreezeSyntax]
    md.options["codeformatters"] = {}
    return md


# Cached renderer instance, built on first use
_renderer_md: MarkdownIt | None = None


def _get_renderer_md() -> MarkdownIt:
    global _renderer_md
    if _renderer_md is None:
        _renderer_md = build_renderer()
    return _renderer_md


def render_tokens(tokens: Sequence[Token]) -> str:
    """Serialize a token stream back to markdown text."""
    md = _get_renderer_md()
    return md.renderer.render(tokens, md.options, {})


def render_markdown(text: str) -> str:
    """Parse and re-serialize markdown text (no embed resolution)."""
    return render_tokens(parse_document(text))
