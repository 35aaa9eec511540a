"""Section classification of report fragments.

The router is a fold over fragments: each step receives the current
:class:`ClassifierState` and returns the next state plus the fragment it
emitted (if any). Rules are evaluated in table order:

1. ``marker: content`` switches the section and emits the content,
2. bare header tokens (``Material:``) or prefix markers (``AK Müller 8h``),
3. workforce, then material content heuristics,
4. sticky continuation of the active section (``leistungen`` at start).
"""

from __future__ import annotations

import re
from functools import reduce
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from baubericht.app.material import parse_structured_materials
from baubericht.app.models import ClassifiedFragment, ClassifierState, SectionKind
from baubericht.app.sections import (
    detect_section_header,
    split_header_content,
    split_header_prefix,
    split_report_line,
)
from baubericht.app.workforce import (
    CLOCK_TIME_RE,
    COUNT_ROLE_HOURS_RE,
    COUNT_ROLE_JE_RE,
    HOURS_RE,
    NAME_HOURS_RE,
    VOR_ORT_RE,
    contains_role_word,
    is_non_name_word,
)
from baubericht.shared.normalize.text import replace_number_words, strip_bullets

RouteResult = Tuple[ClassifierState, Optional[ClassifiedFragment]]

_ARBEITSZEIT_RE = re.compile(r"\barbeitszeit(?:en)?\b", re.IGNORECASE)
_MATERIAL_KEYWORD_RE = re.compile(
    r"\b(?:material\w*|geliefert|lieferung\w*|anlieferung\w*|mat)\b",
    re.IGNORECASE,
)


def _arbeitszeit(text: str) -> bool:
    return bool(_ARBEITSZEIT_RE.search(text))


def _role_with_time(text: str) -> bool:
    if not contains_role_word(text):
        return False
    return bool(HOURS_RE.search(text) or CLOCK_TIME_RE.search(text) or VOR_ORT_RE.search(text))


def _count_role_je(text: str) -> bool:
    return any(contains_role_word(m.group("role")) for m in COUNT_ROLE_JE_RE.finditer(text))


def _name_hours_pair(text: str) -> bool:
    for match in NAME_HOURS_RE.finditer(text):
        name = re.match(r"[^\W\d_]+", match.group(0))
        if name and not is_non_name_word(name.group(0)):
            return True
    return False


def _on_site_count_role_hours(text: str) -> bool:
    if not VOR_ORT_RE.search(text):
        return False
    return any(contains_role_word(m.group("role")) for m in COUNT_ROLE_HOURS_RE.finditer(text))


_WORKFORCE_SIGNALS: Tuple[Tuple[str, Callable[[str], bool]], ...] = (
    ("arbeitszeit", _arbeitszeit),
    ("role_with_time", _role_with_time),
    ("count_role_je", _count_role_je),
    ("name_hours_pair", _name_hours_pair),
    ("on_site_count_role_hours", _on_site_count_role_hours),
)


def workforce_signal(text: str) -> Optional[str]:
    """Name of the first workforce rule *text* satisfies, for auditing."""

    if not text or not str(text).strip():
        return None
    subject = replace_number_words(str(text))
    for name, predicate in _WORKFORCE_SIGNALS:
        if predicate(subject):
            return name
    return None


def is_workforce_line(text: str) -> bool:
    return workforce_signal(text) is not None


def is_material_line(text: str) -> bool:
    """Material keyword or a parseable quantity, unless the line is workforce-like."""

    if not text or not str(text).strip() or is_workforce_line(text):
        return False
    if _MATERIAL_KEYWORD_RE.search(text):
        return True
    return bool(parse_structured_materials(text))


def is_service_line(text: str) -> bool:
    return bool(text and str(text).strip()) and not is_workforce_line(text) and not is_material_line(text)


def _explicit_marker(state: ClassifierState, fragment: str) -> Optional[RouteResult]:
    resolved = split_header_content(fragment)
    if resolved is None:
        return None
    kind, rest = resolved
    emitted = ClassifiedFragment(kind=kind, text=rest, explicit=True) if rest else None
    return ClassifierState(active=kind), emitted


def _header_token(state: ClassifierState, fragment: str) -> Optional[RouteResult]:
    kind = detect_section_header(fragment)
    if kind is not None:
        return ClassifierState(active=kind), None
    resolved = split_header_prefix(fragment)
    if resolved is None:
        return None
    kind, rest = resolved
    emitted = ClassifiedFragment(kind=kind, text=rest, explicit=True) if rest else None
    return ClassifierState(active=kind), emitted


def _workforce_content(state: ClassifierState, fragment: str) -> Optional[RouteResult]:
    if not is_workforce_line(fragment):
        return None
    kind = SectionKind.WORKFORCE
    return ClassifierState(active=kind), ClassifiedFragment(kind=kind, text=strip_bullets(fragment))


def _material_content(state: ClassifierState, fragment: str) -> Optional[RouteResult]:
    if not is_material_line(fragment):
        return None
    kind = SectionKind.MATERIAL
    return ClassifierState(active=kind), ClassifiedFragment(kind=kind, text=strip_bullets(fragment))


def _sticky(state: ClassifierState, fragment: str) -> Optional[RouteResult]:
    kind = state.active or SectionKind.SERVICES
    text = strip_bullets(fragment)
    return ClassifierState(active=kind), (ClassifiedFragment(kind=kind, text=text) if text else None)


_ROUTING_RULES: Tuple[Tuple[str, Callable[[ClassifierState, str], Optional[RouteResult]]], ...] = (
    ("explicit_marker", _explicit_marker),
    ("header_token", _header_token),
    ("workforce", _workforce_content),
    ("material", _material_content),
    ("sticky", _sticky),
)


def route_fragment(state: ClassifierState, fragment: str) -> RouteResult:
    """Classify one fragment given the active section; returns the next state too."""

    for _name, rule in _ROUTING_RULES:
        result = rule(state, fragment)
        if result is not None:
            return result
    return state, None


def classify_fragments(
    fragments: Iterable[str],
    state: ClassifierState = ClassifierState(),
) -> Tuple[ClassifierState, Tuple[ClassifiedFragment, ...]]:
    def _step(acc, fragment):
        current, emitted = acc
        next_state, item = route_fragment(current, fragment)
        return next_state, (emitted + (item,) if item is not None else emitted)

    return reduce(_step, (f for f in fragments if f and f.strip()), (state, ()))


def parse_report_lines(lines: Sequence[str]) -> List[ClassifiedFragment]:
    """Split and classify every line of a report session in one linear pass."""

    fragments = [fragment for raw in lines or [] for fragment in split_report_line(raw)]
    _, classified = classify_fragments(fragments)
    return list(classified)


def group_by_section(classified: Iterable[ClassifiedFragment]) -> Dict[SectionKind, List[str]]:
    buckets: Dict[SectionKind, List[str]] = {kind: [] for kind in SectionKind}
    for item in classified:
        buckets[item.kind].append(item.text)
    return buckets
