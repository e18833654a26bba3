"""
Storyreel Utilities

Text cleanup, name matching and file helpers.
"""

from .text import (
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

__all__ = [
    'clean_asterisks',
    'clean_markdown',
    'clean_narration',
    'ensure_art_style_prefix',
    'get_clean_name',
    'get_role',
    'prompt_with_style',
    'strip_html',
    'strip_quotes',
]
