"""Utility functions for SubMiner."""

from .file_utils import ensure_directory
from .text_utils import (
    edit_distance,
    generate_furigana,
    highlight_sentence,
    katakana_to_hiragana,
    normalize_subtitle_display,
    normalize_subtitle_key,
    normalize_whitespace,
    similarity,
    strip_html,
    truncate_sentence,
)

__all__ = [
    "ensure_directory",
    "edit_distance",
    "generate_furigana",
    "highlight_sentence",
    "katakana_to_hiragana",
    "normalize_subtitle_display",
    "normalize_subtitle_key",
    "normalize_whitespace",
    "similarity",
    "strip_html",
    "truncate_sentence",
]
