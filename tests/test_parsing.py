"""Tests for the vault-dialect parser and wikilink target handling."""

import pytest

from mdfreeze.parser import (
    LinkTarget,
    extract_wikilinks,
    find_embeds,
    is_markdown_path,
    looks_like_asset,
    normalize_link,
    parse_document,
    split_link_target,
)


def _inline_children(text: str):
    children = []
    for token in parse_document(text):
        if token.type == "inline":
            children.extend(token.children or [])
    return children


def _types(text: str) -> list[str]:
    return [child.type for child in _inline_children(text)]


# ─────────────────────────────────────────────────────────────────────────────
# Link Targets
# ─────────────────────────────────────────────────────────────────────────────


class TestSplitLinkTarget:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("note", LinkTarget("note", "", None)),
            ("dir/note#Setup|the setup", LinkTarget("dir/note", "Setup", "the setup")),
            ("note#^block-id", LinkTarget("note", "^block-id", None)),
            ("#Heading", LinkTarget("", "Heading", None)),
            ("note\\|alias", LinkTarget("note", "", "alias")),
            ("  spaced note  ", LinkTarget("spaced note", "", None)),
            ("note#A#B", LinkTarget("note", "A#B", None)),
        ],
    )
    def test_split(self, raw, expected):
        assert split_link_target(raw) == expected

    def test_heading_selector(self):
        assert split_link_target("note#Setup").is_heading
        assert not split_link_target("note#^abc").is_heading
        assert not split_link_target("note").is_heading


class TestNormalizeLink:
    def test_backslashes_become_slashes(self):
        assert normalize_link("dir\\note") == "dir/note"

    def test_leading_slash_removed(self):
        assert normalize_link("/dir/note") == "dir/note"

    def test_relative_prefix_kept(self):
        assert normalize_link(" ../note ") == "../note"


class TestPathKinds:
    def test_markdown_paths(self):
        assert is_markdown_path("a.md")
        assert is_markdown_path("A.MARKDOWN")
        assert not is_markdown_path("a.png")

    def test_assets(self):
        assert looks_like_asset("img/pic.PNG")
        assert looks_like_asset("paper.pdf")
        assert not looks_like_asset("note")
        assert not looks_like_asset("v1.2")


# ─────────────────────────────────────────────────────────────────────────────
# Wikilinks and Embeds
# ─────────────────────────────────────────────────────────────────────────────


class TestWikilinkTokens:
    def test_embed_token(self):
        children = _inline_children("![[Other Note#Intro]]")
        assert [c.type for c in children] == ["embed"]
        embed = children[0]
        assert embed.content == "Other Note#Intro"
        assert embed.markup == "![["
        assert embed.meta["target"] == LinkTarget("Other Note", "Intro", None)

    def test_wikilink_token(self):
        children = _inline_children("see [[Other Note|alias]] here")
        link = next(c for c in children if c.type == "wikilink")
        assert link.content == "Other Note|alias"
        assert link.markup == "[["
        assert link.meta["target"].alias == "alias"

    def test_wikilink_is_not_a_bracket_link(self):
        assert "link_open" not in _types("[[note]]")

    def test_embed_is_not_an_image(self):
        assert "image" not in _types("![[pic.png]]")

    def test_code_span_is_not_an_embed(self):
        assert "embed" not in _types("`![[note]]`")

    def test_fenced_code_is_not_an_embed(self):
        tokens = parse_document("```\n![[note]]\n```\n")
        assert find_embeds(tokens) == []

    def test_unclosed_brackets_stay_text(self):
        assert "embed" not in _types("![[note")
        assert "wikilink" not in _types("[[]]")

    def test_find_embeds_in_order(self):
        text = "# ![[a]]\n\n- ![[b]]\n\n| x |\n| --- |\n| ![[c]] |\n"
        assert [t.content for t in find_embeds(parse_document(text))] == ["a", "b", "c"]

    def test_extract_wikilinks(self):
        text = "[[a]] and [[b#Part|B]] and ![[c]] and `[[d]]` and [[a]]"
        assert extract_wikilinks(text) == ["a", "b"]


# ─────────────────────────────────────────────────────────────────────────────
# Tags
# ─────────────────────────────────────────────────────────────────────────────


class TestTags:
    def test_tag_token(self):
        children = _inline_children("status #project/alpha today")
        tags = [c for c in children if c.type == "tag"]
        assert [t.content for t in tags] == ["project/alpha"]

    def test_text_around_tag_kept(self):
        children = _inline_children("a #b c")
        assert [(c.type, c.content) for c in children] == [
            ("text", "a "),
            ("tag", "b"),
            ("text", " c"),
        ]

    @pytest.mark.parametrize(
        "text",
        [
            "issue #123",
            "word#notatag",
            "http://example.com/#anchor",
            "`#code`",
        ],
    )
    def test_not_tags(self, text):
        assert "tag" not in _types(text)

    def test_escaped_hash_is_not_a_tag(self):
        types = _types("\\#nottag")
        assert "tag" not in types
        assert "text_special" in types

    def test_heading_marker_is_not_a_tag(self):
        assert "tag" not in _types("# Heading")


# ─────────────────────────────────────────────────────────────────────────────
# Block Extensions
# ─────────────────────────────────────────────────────────────────────────────


class TestBlockExtensions:
    def test_front_matter(self):
        tokens = parse_document("---\ntitle: A\n---\n\nBody\n")
        assert tokens[0].type == "front_matter"
        assert "title: A" in tokens[0].content

    def test_table(self):
        types = [t.type for t in parse_document("| a | b |\n| --- | --- |\n| 1 | 2 |\n")]
        assert "table_open" in types

    def test_strikethrough(self):
        assert "s_open" in _types("~~gone~~")

    def test_math(self):
        assert "math_inline" in _types("$x^2$")
        types = [t.type for t in parse_document("$$\nx^2\n$$\n")]
        assert "math_block" in types
