"""
Tests for Text Utilities

Tests for storyreel/utils/text.py
"""

from storyreel.utils.text import (
    clean_asterisks,
    clean_markdown,
    clean_narration,
    ensure_art_style_prefix,
    get_clean_name,
    get_role,
    prompt_with_style,
    strip_html,
    strip_quotes,
)


class TestCleanAsterisks:

    def test_removes_emphasis_and_headings(self):
        assert clean_asterisks("## **Buzz** the *fly*") == "Buzz the fly"

    def test_collapses_double_prefix(self):
        assert clean_asterisks("Art Style: Art Style: watercolor") == "Art Style: watercolor"

    def test_empty(self):
        assert clean_asterisks(None) == ""
        assert clean_asterisks("") == ""


class TestCleanNarration:

    def test_dashes_become_pauses(self):
        assert clean_narration("The sun rose — slowly") == "The sun rose , slowly"

    def test_whitespace_collapsed(self):
        assert clean_narration("One\n\n  two   three") == "One two three"


class TestArtStylePrefix:

    def test_adds_prefix(self):
        assert ensure_art_style_prefix("soft watercolor") == "Art Style: soft watercolor"

    def test_keeps_existing_prefix(self):
        assert ensure_art_style_prefix("art style: ink") == "art style: ink"

    def test_empty_stays_empty(self):
        assert ensure_art_style_prefix("") == ""

    def test_prompt_with_style(self):
        result = prompt_with_style("<b>A fly</b> on a pear", "Watercolor")

        assert result == "A fly on a pear\n\nArt Style: Watercolor"


class TestCleanMarkdown:

    def test_strips_markdown(self):
        text = "# Title\n**Bold** and _soft_\n- first\n1. numbered"

        assert clean_markdown(text) == "Title\nBold and soft\n• first\nnumbered"


class TestNames:

    def test_clean_name_drops_role(self):
        assert get_clean_name("**Buzz** [PROTAGONIST]") == "Buzz"

    def test_role(self):
        assert get_role("Zip [secondary]") == "SECONDARY"
        assert get_role("Zip") is None

    def test_strip_quotes(self):
        assert strip_quotes('"Hello there"') == "Hello there"

    def test_strip_html(self):
        assert strip_html("<i>hi</i>") == "hi"
