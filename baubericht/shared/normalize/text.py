from __future__ import annotations

"""Normalization primitives shared by the splitter, classifier and reconciliation."""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import re
from typing import Dict, FrozenSet, List, Optional

import yaml

VOCABULARY_PATH = Path(__file__).resolve().parent / "vocabulary.yaml"

_RE_WHITESPACE = re.compile(r"\s+")
_RE_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_RE_COMPARE_PUNCT = re.compile(r"[.,;:()]")
_RE_BULLET = re.compile(r"^[\s•·▪◦*>\-–—]+")
_RE_DIGIT_ALPHA = re.compile(r"(?<=\d)(?=[^\W\d_])|(?<=[^\W\d_])(?=\d)")
# Sentence ends; a dot between two digits is a decimal separator.
_RE_SENTENCE_END = re.compile(r"[.!?]+(?!\d)|(?<!\d)[.!?]+")
_HOUR_TOKENS = {"h", "std", "stdn", "stunde", "stunden"}


@dataclass(frozen=True)
class Vocabulary:
    sections: Dict[str, str]
    prefix_markers: FrozenSet[str]
    roles: Dict[str, str]
    generic_roles: FrozenSet[str]
    generic_role_label: str
    number_words: Dict[str, int]
    non_name_words: FrozenSet[str] = frozenset()


def normalize_query(text: str) -> str:
    """Return a deterministic, ASCII-friendly representation of *text* for matching.

    The procedure lowercases, replaces German umlauts/ß with their ASCII variants,
    strips non alpha-numeric characters (converted to spaces) and collapses
    duplicate whitespace. Empty or whitespace-only inputs yield an empty string.
    """

    if not text:
        return ""

    normalized = text.strip().lower()
    replacements = {
        "ä": "ae",
        "ö": "oe",
        "ü": "ue",
        "ß": "ss",
    }
    for char, repl in replacements.items():
        normalized = normalized.replace(char, repl)

    normalized = _RE_NON_ALNUM.sub(" ", normalized)
    normalized = _RE_WHITESPACE.sub(" ", normalized).strip()
    return normalized


def normalize_text_for_compare(text: str) -> str:
    """Dedup key: lower-case, ``.,;:()`` become spaces, whitespace collapsed.

    Lossy: two lines differing only in punctuation compare equal.
    """

    if not text:
        return ""
    normalized = str(text).lower()
    normalized = _RE_COMPARE_PUNCT.sub(" ", normalized)
    return _RE_WHITESPACE.sub(" ", normalized).strip()


def strip_bullets(text: str) -> str:
    """Remove leading list glyphs (``-``, ``•``, ``*``, ...) and surrounding whitespace."""

    if not text:
        return ""
    return _RE_BULLET.sub("", str(text)).strip()


def split_sentences(text: str) -> List[str]:
    """Collapse newlines and split on ``. ! ?`` (decimal points are kept)."""

    if not text:
        return []
    flattened = re.sub(r"\r?\n", ". ", str(text))
    return [part.strip() for part in _RE_SENTENCE_END.split(flattened) if part and part.strip()]


def replace_number_words(text: str) -> str:
    """Replace spelled-out numbers (``ein`` .. ``zwölf``) with digits."""

    if not text:
        return ""
    numbers = get_vocabulary().number_words
    return _number_word_pattern().sub(lambda m: str(numbers[m.group(0).lower()]), str(text))


def parse_decimal(value) -> Optional[float]:
    """Parse ``"4"``, ``"4,5"`` or ``4.5`` into a non-negative float, else ``None``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if number != number or number < 0:
        return None
    return number


def comparison_tokens(text: str) -> List[str]:
    """Tokens used to check whether a line can be derived from raw input.

    ``10m`` and ``10 m`` yield the same tokens, number words become digits and
    all hour spellings fold to ``h``.
    """

    normalized = normalize_text_for_compare(replace_number_words(text))
    if not normalized:
        return []
    normalized = _RE_DIGIT_ALPHA.sub(" ", normalized)
    tokens: List[str] = []
    for token in _RE_WHITESPACE.split(normalized):
        token = token.strip("'\"!?-/")
        if not token:
            continue
        tokens.append("h" if token in _HOUR_TOKENS else token)
    return tokens


def load_vocabulary(path: str | Path) -> Vocabulary:
    """Load the report vocabulary YAML from *path*.

    Section synonyms and prefix markers are keyed by :func:`normalize_query`;
    role forms and number words by their lower-case spelling.
    """

    content = Path(path).read_text(encoding="utf-8")
    loaded = yaml.safe_load(content) or {}
    if not isinstance(loaded, dict):
        raise ValueError("vocabulary YAML must define a mapping")

    sections: Dict[str, str] = {}
    for section, synonyms in (loaded.get("sections") or {}).items():
        for synonym in synonyms or []:
            key = normalize_query(str(synonym))
            if key:
                sections[key] = str(section)

    roles: Dict[str, str] = {}
    for label, forms in (loaded.get("roles") or {}).items():
        for form in forms or []:
            roles[str(form).lower()] = str(label)

    return Vocabulary(
        sections=sections,
        prefix_markers=frozenset(normalize_query(str(m)) for m in loaded.get("prefix_markers") or []),
        roles=roles,
        generic_roles=frozenset(str(r).lower() for r in loaded.get("generic_roles") or []),
        generic_role_label=str(loaded.get("generic_role_label") or "Mitarbeiter"),
        number_words={str(k).lower(): int(v) for k, v in (loaded.get("number_words") or {}).items()},
        non_name_words=frozenset(str(w).lower() for w in loaded.get("non_name_words") or []),
    )


@lru_cache(maxsize=1)
def get_vocabulary() -> Vocabulary:
    return load_vocabulary(VOCABULARY_PATH)


@lru_cache(maxsize=1)
def _number_word_pattern() -> re.Pattern[str]:
    words = sorted(get_vocabulary().number_words, key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b", re.IGNORECASE)
