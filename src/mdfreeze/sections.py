"""Sub-path selection for embeds such as ![[note#Heading]]."""

from __future__ import annotations

from collections.abc import Sequence

from markdown_it.token import Token


def _normalize_heading(text: str) -> str:
    return " ".join(text.split()).casefold()


def select_section(tokens: Sequence[Token], subpath: str) -> list[Token] | None:
    """Select the section under a heading.

    The section runs from the heading to the next heading of the same or a
    higher level. For nested selectors (``A#B``) only the last heading
    counts. Only top-level headings are considered.

    Args:
        tokens: Freshly parsed token stream of the embedded note.
        subpath: Selector without the leading '#'.

    Returns:
        The section's tokens, or None if the selector is a block anchor
        (``^id``) or no heading matches.
    """
    heading = subpath.split("#")[-1].strip()
    if not heading or heading.startswith("^"):
        return None

    wanted = _normalize_heading(heading)
    start: int | None = None
    start_level = 0

    for i, token in enumerate(tokens):
        if token.type != "heading_open" or token.level != 0:
            continue
        level = int(token.tag[1:])
        if start is None:
            if _normalize_heading(tokens[i + 1].content) == wanted:
                start, start_level = i, level
        elif level <= start_level:
            return list(tokens[start:i])

    if start is None:
        return None
    return list(tokens[start:])
