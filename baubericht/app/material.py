"""Material extraction: quantity + unit + description from report fragments.

Strategies run in order and the first one producing entries wins:

1. strict ``qty; unit; description`` triple,
2. ``<number> <unit> <description>`` matches with a known unit,
3. ``N x thing`` counts (unit ``Stk``),
4. the whole fragment as an unstructured entry.

Quantities stay literal strings so ``1,5`` is not rewritten to ``1.5``.
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Tuple

from baubericht.app.models import MaterialEntry
from baubericht.app.uom_convert import normalize_uom, resolve_uom

_QTY_RE = re.compile(r"^\d+(?:[.,]\d+)?$")
_UNIT_MATCH_RE = re.compile(
    r"(?<![\w.,])(?P<qty>\d+(?:[.,]\d+)?)\s*(?P<unit>[^\W\d_]+[23²³]?\.?)\s+(?P<desc>[^,;]+)"
)
_TIMES_RE = re.compile(r"(?<![\w.,])(?P<qty>\d+)\s*(?:x|×)\s+(?P<desc>[^,;]+)", re.IGNORECASE)
_DISPLAY_RE = re.compile(r"^(?P<qty>\d+(?:[.,]\d+)?)\s*(?P<unit>[^\W\d_]+[23²³]?\.?)\s+(?P<desc>.+)$")
_DELIVERY_PREFIX_RE = re.compile(
    r"^\s*(?:material(?:ien)?\s+geliefert|geliefert|lieferung(?:en)?|material(?:ien)?|mat)\.?\s*:\s*",
    re.IGNORECASE,
)
_DESC_TRAILING_RE = re.compile(r"[\s.!?]+$")


def strip_delivery_prefix(text: str) -> str:
    cleaned = str(text or "").strip()
    while True:
        stripped = _DELIVERY_PREFIX_RE.sub("", cleaned, count=1)
        if stripped == cleaned:
            return cleaned.strip()
        cleaned = stripped


def _clean_desc(desc: str) -> str:
    return _DESC_TRAILING_RE.sub("", desc or "").strip()


def _strict_triple(text: str) -> Optional[List[MaterialEntry]]:
    parts = [part.strip() for part in text.split(";")]
    if len(parts) != 3 or not all(parts) or not _QTY_RE.match(parts[0]):
        return None
    return [MaterialEntry(qty=parts[0], unit=normalize_uom(parts[1]), desc=_clean_desc(parts[2]))]


def _unit_matches(text: str) -> Optional[List[MaterialEntry]]:
    entries: List[MaterialEntry] = []
    pos = 0
    while True:
        match = _UNIT_MATCH_RE.search(text, pos)
        if not match:
            break
        unit = resolve_uom(match.group("unit"))
        if unit is None:
            # unknown word or an hour unit; retry right after the rejected token
            pos = match.end("unit")
            continue
        desc = _clean_desc(match.group("desc"))
        if desc:
            entries.append(MaterialEntry(qty=match.group("qty"), unit=unit, desc=desc))
        pos = match.end()
    return entries or None


def _times_matches(text: str) -> Optional[List[MaterialEntry]]:
    entries = [
        MaterialEntry(qty=m.group("qty"), unit="Stk", desc=_clean_desc(m.group("desc")))
        for m in _TIMES_RE.finditer(text)
        if _clean_desc(m.group("desc"))
    ]
    return entries or None


_STRUCTURED_STRATEGIES: Tuple[Tuple[str, Callable[[str], Optional[List[MaterialEntry]]]], ...] = (
    ("strict_triple", _strict_triple),
    ("unit_match", _unit_matches),
    ("times", _times_matches),
)


def parse_structured_materials(text: str) -> List[MaterialEntry]:
    """Entries from the structured strategies only; empty if none applies."""

    cleaned = strip_delivery_prefix(text)
    if not cleaned:
        return []
    for _name, strategy in _STRUCTURED_STRATEGIES:
        entries = strategy(cleaned)
        if entries:
            return entries
    return []


def parse_material_entries(text: str) -> List[MaterialEntry]:
    """Parse a material fragment; unmatched text becomes one unstructured entry."""

    entries = parse_structured_materials(text)
    if entries:
        return entries
    raw = str(text or "").strip()
    if not raw:
        return []
    desc = strip_delivery_prefix(raw) or raw
    return [MaterialEntry(qty="", unit="", desc=desc)]


def format_material_entry(entry: MaterialEntry) -> str:
    if not entry.qty and not entry.unit:
        return entry.desc
    return f"{entry.qty}; {entry.unit}; {entry.desc}"


def expand_material_line(text: str) -> List[str]:
    return [format_material_entry(entry) for entry in parse_material_entries(text)]


def parse_material_line(line: str) -> MaterialEntry:
    """Parse one display line (``"10; m; Rohr"``) back into a :class:`MaterialEntry`."""

    text = str(line or "").strip()
    parts = [part.strip() for part in text.split(";") if part.strip()]
    if len(parts) >= 3:
        return MaterialEntry(qty=parts[0], unit=parts[1], desc=" ".join(parts[2:]))
    match = _DISPLAY_RE.match(text)
    if match and resolve_uom(match.group("unit")):
        return MaterialEntry(
            qty=match.group("qty"),
            unit=resolve_uom(match.group("unit")) or "",
            desc=_clean_desc(match.group("desc")),
        )
    return MaterialEntry(qty="", unit="", desc=text)
