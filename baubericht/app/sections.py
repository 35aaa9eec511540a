"""Line splitting and section header detection for report chat lines.

Operators mark sections with prefixes such as ``AK:``, ``MAT:`` or
``Leistung:``; several of them are often typed into a single chat message.
:func:`split_report_line` breaks such a message into one fragment per marker
and the ``detect_*``/``split_*`` helpers resolve a marker to its
:class:`~baubericht.app.models.SectionKind`.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from baubericht.app.models import SectionKind
from baubericht.shared.normalize.text import get_vocabulary, normalize_query, strip_bullets

_MARKER_WITH_COLON_RE = re.compile(
    r"\b(?:AK|MAT|MATERIAL|LEI|LEISTUNGEN?|ERGEBNISSE?|ARBEITSKR(?:Ä|AE)FTE)\s*:",
    re.IGNORECASE,
)
_BARE_MARKERS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bAK\b(?!\s*:)", re.IGNORECASE), "AK:"),
    (re.compile(r"\bMAT(?:ERIAL)?\b(?!\s*:)", re.IGNORECASE), "MAT:"),
    (re.compile(r"\bLEISTUNG(?:EN)?\b(?!\s*:)", re.IGNORECASE), "Leistung:"),
    (re.compile(r"\bERGEBNIS(?:SE)?\b(?!\s*:)", re.IGNORECASE), "Ergebnis:"),
)
_HEADER_CONTENT_RE = re.compile(r"^(?P<marker>[^\W\d_][^:\n]{0,40}?)\s*:\s*(?P<rest>.*)$", re.DOTALL)
_HEADER_PREFIX_RE = re.compile(r"^(?P<marker>[^\W\d_]+)\.?\s+(?P<rest>\S.*)$", re.DOTALL)
_TRAILING_PUNCT_RE = re.compile(r"[\s:;,.!?\-–]+$")
_LEADING_PUNCT_RE = re.compile(r"^[\s:;,.\-–]+")


def split_report_line(raw: str) -> List[str]:
    """Split *raw* into one fragment per section marker.

    Markers with a colon get a line break in front of them; bare markers
    (``AK Müller 8h``) are additionally canonicalised to their colon form.
    A line without markers comes back as ``[raw.strip()]``.
    """

    line = str(raw or "")
    if not line.strip():
        return []

    line = _MARKER_WITH_COLON_RE.sub(lambda m: "\n" + m.group(0), line)
    for pattern, replacement in _BARE_MARKERS:
        line = pattern.sub("\n" + replacement, line)

    return [part.strip() for part in re.split(r"\r?\n", line) if part.strip()]


def header_key(fragment: str) -> str:
    cleaned = _TRAILING_PUNCT_RE.sub("", strip_bullets(fragment))
    return normalize_query(cleaned)


def detect_section_header(fragment: str) -> Optional[SectionKind]:
    """Return the section a bare header fragment (``"Material:"``, ``"- AK"``) names."""

    key = header_key(fragment)
    if not key:
        return None
    section = get_vocabulary().sections.get(key)
    return SectionKind(section) if section else None


def is_header_token(fragment: str) -> bool:
    return detect_section_header(fragment) is not None


def split_header_content(fragment: str) -> Optional[Tuple[SectionKind, str]]:
    """Resolve ``<marker>: <rest>`` into ``(kind, rest)``; ``rest`` may be empty."""

    match = _HEADER_CONTENT_RE.match(strip_bullets(fragment))
    if not match:
        return None
    kind = detect_section_header(match.group("marker"))
    if kind is None:
        return None
    return kind, _clean_content(match.group("rest"))


def split_header_prefix(fragment: str) -> Optional[Tuple[SectionKind, str]]:
    """Resolve colon-less short markers such as ``AK Müller 8h``."""

    match = _HEADER_PREFIX_RE.match(strip_bullets(fragment))
    if not match:
        return None
    vocabulary = get_vocabulary()
    key = normalize_query(match.group("marker"))
    if key not in vocabulary.prefix_markers or key not in vocabulary.sections:
        return None
    return SectionKind(vocabulary.sections[key]), _clean_content(match.group("rest"))


def _clean_content(text: str) -> str:
    return _LEADING_PUNCT_RE.sub("", strip_bullets(text)).strip()
