"""Utility helpers for lightweight text normalization and report vocabulary."""

from .text import (
    Vocabulary,
    comparison_tokens,
    get_vocabulary,
    load_vocabulary,
    normalize_query,
    normalize_text_for_compare,
    parse_decimal,
    replace_number_words,
    split_sentences,
    strip_bullets,
)

__all__ = [
    "Vocabulary",
    "comparison_tokens",
    "get_vocabulary",
    "load_vocabulary",
    "normalize_query",
    "normalize_text_for_compare",
    "parse_decimal",
    "replace_number_words",
    "split_sentences",
    "strip_bullets",
]
