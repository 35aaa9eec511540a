"""Merge the heuristic classification with an optional external one.

:func:`normalize_report_sections` is the single entry point. It never raises
for malformed input; an unusable external classification is treated as absent.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Sequence, Set

from baubericht.app.classifier import is_material_line, is_workforce_line, parse_report_lines
from baubericht.app.material import expand_material_line
from baubericht.app.models import ClassifiedFragment, NormalizedSections, SectionKind
from baubericht.app.sections import is_header_token, split_header_content, split_header_prefix
from baubericht.app.utils import parse_sections_payload
from baubericht.app.workforce import worker_names
from baubericht.shared.normalize.text import (
    comparison_tokens,
    normalize_text_for_compare,
    split_sentences,
    strip_bullets,
)

logger = logging.getLogger("baubericht.reconcile")

_SERVICE_PREFIX_RE = re.compile(
    r"^\s*(?:zusatzleistung(?:en)?|leistung(?:en)?|ergebnis(?:se)?|lei)\s*:\s*",
    re.IGNORECASE,
)
# A comma between two digits is a decimal separator.
_SERVICE_COMMA_RE = re.compile(r"(?<!\d),|,(?!\d)")


class _RawIndex:
    """Lookup of the raw lines used to reject items that are not in the input."""

    def __init__(self, lines: Sequence[str]):
        self._normalized = [normalize_text_for_compare(line) for line in lines]
        self._tokens = [set(comparison_tokens(line)) for line in lines]

    def derivable(self, item: str) -> bool:
        key = normalize_text_for_compare(item)
        if not key:
            return False
        if any(key in line for line in self._normalized):
            return True
        tokens = set(comparison_tokens(item))
        return bool(tokens) and any(tokens <= line for line in self._tokens)


def _sanitize(items: Iterable[ClassifiedFragment], index: _RawIndex, source: str) -> List[ClassifiedFragment]:
    kept: List[ClassifiedFragment] = []
    for item in items:
        text = strip_bullets(item.text)
        if not text or is_header_token(text):
            continue
        if not index.derivable(text):
            logger.debug("Dropping %s item not found in report lines: %r", source, text)
            continue
        kept.append(ClassifiedFragment(kind=item.kind, text=text, explicit=item.explicit))
    return kept


def _external_fragments(sections: Any) -> List[ClassifiedFragment]:
    payload = parse_sections_payload(sections)
    if payload is None:
        if sections is not None:
            logger.warning("Ignoring malformed external classification of type %s", type(sections).__name__)
        return []
    return [
        ClassifiedFragment(kind=kind, text=text)
        for kind in SectionKind
        for text in getattr(payload, kind.value)
    ]


def _strip_marker(sentence: str) -> str:
    resolved = split_header_content(sentence) or split_header_prefix(sentence)
    return resolved[1] if resolved else strip_bullets(sentence)


def _sentence_fallback(lines: Sequence[str], kind: SectionKind, claimed: Set[str]) -> List[ClassifiedFragment]:
    predicate = is_workforce_line if kind is SectionKind.WORKFORCE else is_material_line
    found: List[ClassifiedFragment] = []
    for sentence in split_sentences("\n".join(lines)):
        text = _strip_marker(sentence)
        key = normalize_text_for_compare(text)
        if not key or key in claimed or is_header_token(text) or not predicate(text):
            continue
        claimed.add(key)
        found.append(ClassifiedFragment(kind=kind, text=text))
    if found:
        logger.debug("Recovered %d %s sentence(s) from raw text", len(found), kind.value)
    return found


def split_service_item(text: str) -> List[str]:
    """Strip ``Leistung:``-style remnants and split on non-decimal commas."""

    cleaned = str(text or "").strip()
    while True:
        stripped = _SERVICE_PREFIX_RE.sub("", cleaned, count=1).strip()
        if stripped == cleaned:
            break
        cleaned = stripped
    return [part.strip() for part in _SERVICE_COMMA_RE.split(cleaned) if part.strip()]


def _is_worker_item(item: ClassifiedFragment) -> bool:
    if item.kind is SectionKind.WORKFORCE:
        return True
    return not item.explicit and is_workforce_line(item.text)


def _claim(key: str, claimed: Set[str]) -> bool:
    if not key or key in claimed:
        return False
    claimed.add(key)
    return True


def normalize_report_sections(lines: Sequence[str], sections: Any = None) -> NormalizedSections:
    """Classify *lines* into ``leistungen``, ``arbeitskraefte`` and ``material``.

    *sections* is an optional external classification of the same lines
    (mapping, :class:`~baubericht.app.utils.SectionsPayload` or JSON text).
    """

    raw_lines = [str(line) for line in (lines or []) if line is not None and str(line).strip()]
    index = _RawIndex(raw_lines)

    buckets: Dict[SectionKind, List[ClassifiedFragment]] = {kind: [] for kind in SectionKind}
    for item in _sanitize(parse_report_lines(raw_lines), index, "heuristic"):
        buckets[item.kind].append(item)

    baseline_keys = {normalize_text_for_compare(item.text) for bucket in buckets.values() for item in bucket}
    baseline_workers: Set[str] = set()
    for bucket in buckets.values():
        for item in bucket:
            if _is_worker_item(item):
                baseline_workers |= worker_names(item.text)
    added = 0
    for item in _sanitize(_external_fragments(sections), index, "external"):
        key = normalize_text_for_compare(item.text)
        if key in baseline_keys:
            continue
        if _is_worker_item(item):
            names = worker_names(item.text)
            if names and names <= baseline_workers:
                logger.debug("Skipping external workforce item for workers already reported: %r", item.text)
                continue
            baseline_workers |= names
        baseline_keys.add(key)
        buckets[item.kind].append(item)
        added += 1
    if added:
        logger.debug("Merged %d item(s) from external classification", added)

    services: List[ClassifiedFragment] = []
    for item in buckets[SectionKind.SERVICES]:
        if item.explicit:
            services.append(item)
        elif is_workforce_line(item.text):
            logger.debug("Re-filing service item as workforce: %r", item.text)
            buckets[SectionKind.WORKFORCE].append(ClassifiedFragment(SectionKind.WORKFORCE, item.text))
        elif is_material_line(item.text):
            logger.debug("Re-filing service item as material: %r", item.text)
            buckets[SectionKind.MATERIAL].append(ClassifiedFragment(SectionKind.MATERIAL, item.text))
        else:
            services.append(item)
    buckets[SectionKind.SERVICES] = services

    for kind in (SectionKind.WORKFORCE, SectionKind.MATERIAL):
        if not buckets[kind]:
            claimed_keys = {normalize_text_for_compare(item.text) for bucket in buckets.values() for item in bucket}
            buckets[kind].extend(_sentence_fallback(raw_lines, kind, claimed_keys))

    result = NormalizedSections()
    claimed: Set[str] = set()

    for item in buckets[SectionKind.WORKFORCE]:
        if _claim(normalize_text_for_compare(item.text), claimed):
            result.arbeitskraefte.append(item.text)

    for item in buckets[SectionKind.MATERIAL]:
        source_key = normalize_text_for_compare(item.text)
        if not _claim(source_key, claimed):
            continue
        for display in expand_material_line(item.text):
            key = normalize_text_for_compare(display)
            if key == source_key and display not in result.material:
                result.material.append(display)
            elif _claim(key, claimed):
                result.material.append(display)

    for item in buckets[SectionKind.SERVICES]:
        if normalize_text_for_compare(item.text) in claimed:
            continue
        for part in split_service_item(item.text):
            if is_header_token(part):
                continue
            if _claim(normalize_text_for_compare(part), claimed):
                result.leistungen.append(part)

    return result


def reconstruct_lines(sections: NormalizedSections) -> List[str]:
    """Header-prefixed lines that classify back into *sections*."""

    return (
        [f"Leistung: {item}" for item in sections.leistungen]
        + [f"AK: {item}" for item in sections.arbeitskraefte]
        + [f"MAT: {item}" for item in sections.material]
    )
