"""
Storyreel Text Utilities

Cleanup applied to model output before it is stored or copied.
"""

import re
from typing import Optional

from storyreel.core.constants import ROLE_PATTERN

_ROLE_TAG = re.compile(r"\s*" + ROLE_PATTERN + r"\s*", re.IGNORECASE)
_ROLE_MATCH = re.compile(ROLE_PATTERN, re.IGNORECASE)
_DOUBLED_PREFIX = re.compile(r"^Art Style:\s*Art Style:", re.IGNORECASE)
_HEADING = re.compile(r"#{1,6}\s*")


def clean_asterisks(text: Optional[str]) -> str:
    """Remove markdown emphasis and headings left in model output."""
    if not text:
        return ""
    text = str(text).replace("**", "").replace("*", "")
    text = _HEADING.sub("", text).replace("#", "")
    text = text.replace("--", "—")
    text = _DOUBLED_PREFIX.sub("Art Style:", text)
    return text.strip()


def clean_narration(text: Optional[str]) -> str:
    """Flatten narration to one spoken line with commas for pauses."""
    if not text:
        return ""
    text = str(text).replace("**", "").replace("*", "")
    text = _HEADING.sub("", text).replace("#", "")
    for dash in ("—", "–", "--", " - "):
        text = text.replace(dash, ", ")
    text = re.sub(r"^-\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"-$", "", text, flags=re.MULTILINE)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def ensure_art_style_prefix(text: Optional[str]) -> str:
    cleaned = clean_asterisks(text)
    if not cleaned:
        return ""
    if cleaned.lower().startswith("art style:"):
        return cleaned
    return "Art Style: " + cleaned


def clean_markdown(text: Optional[str]) -> str:
    """
    Strip markdown from a chat reply so it can serve as the story script.

    Bullets become "• " and list numbering is dropped.
    """
    if not text:
        return ""
    text = _HEADING.sub("", text)
    text = re.sub(r"\*\*([^*]+)\*\*", r"\1", text)
    text = re.sub(r"\*([^*]+)\*", r"\1", text)
    text = re.sub(r"__([^_]+)__", r"\1", text)
    text = re.sub(r"_([^_]+)_", r"\1", text)
    text = re.sub(r"`([^`]+)`", r"\1", text)
    text = re.sub(r"```[\s\S]*?```", "", text)
    text = re.sub(r"^\s*[-*+]\s+", "• ", text, flags=re.MULTILINE)
    text = re.sub(r"^\s*\d+\.\s+", "", text, flags=re.MULTILINE)
    return text.strip()


def strip_quotes(text: Optional[str]) -> str:
    """Remove one leading and one trailing quote character."""
    if not text:
        return ""
    return re.sub(r"^[\"']|[\"']$", "", text)


def strip_html(text: Optional[str]) -> str:
    if not text:
        return ""
    return re.sub(r"<[^>]*>", "", str(text))


def get_clean_name(name: Optional[str]) -> str:
    """Display name without markdown or the bracketed role tag."""
    return _ROLE_TAG.sub("", clean_asterisks(name)).strip()


def get_role(name: Optional[str]) -> Optional[str]:
    """Upper-cased role tag embedded in a character name, if any."""
    match = _ROLE_MATCH.search(name or "")
    return match.group(1).upper() if match else None


def prompt_with_style(prompt: str, art_style: str) -> str:
    """Prompt text followed by the project's art-style prompt."""
    return clean_asterisks(strip_html(prompt)) + "\n\n" + ensure_art_style_prefix(art_style)
