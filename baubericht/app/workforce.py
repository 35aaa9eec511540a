"""Workforce extraction and aggregation.

A workforce fragment ("Team A; Müller 8h", "2 Monteure je 8h",
"Müller und Schmidt jeweils 6 Stunden") is turned into :class:`WorkerEntry`
records by a prioritized table of strategies; the first strategy returning
entries wins. Hours are only attached where the text is unambiguous: a single
name, an explicit name/hours pair or a per-person marker (``jeweils``,
``pro Person``, ``je 8``). Several names followed by one hours value keep
``hours=None``.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from baubericht.app.models import AggregatedWorker, WorkerEntry
from baubericht.shared.normalize.text import get_vocabulary, parse_decimal, replace_number_words

NUMBER = r"\d+(?:[.,]\d+)?"
HOUR_UNIT = r"(?i:h|std|stdn|stunden?)\b\.?"
HOURS_RE = re.compile(rf"(?<![\w.,])(?P<hours>{NUMBER})\s*{HOUR_UNIT}")
JE_HOURS_RE = re.compile(rf"\b(?:je|jeweils)\s*(?P<hours>{NUMBER})(?:\s*(?i:h|std|stdn|stunden?))?\b", re.IGNORECASE)
PER_PERSON_RE = re.compile(
    r"\bjeweils\b|\bje\s*weils\b|\bpro\s+(?:person|kopf|mann|mitarbeiter)\b|\bje\s+\d",
    re.IGNORECASE,
)
CLOCK_TIME_RE = re.compile(
    r"\b\d{1,2}(?:[:.]\d{2})?\s*(?:-|–|bis)\s*\d{1,2}(?:[:.]\d{2})?\s*(?:uhr)?\b"
    r"|\b\d{1,2}(?:[:.]\d{2})?\s*uhr\b"
    r"|\b\d{1,2}:\d{2}\b",
    re.IGNORECASE,
)
VOR_ORT_RE = re.compile(r"\bvor\s+ort\b", re.IGNORECASE)
NAME_TOKEN = r"[A-ZÄÖÜ][A-Za-zÄÖÜäöüß'\-]+"
NAME_HOURS_RE = re.compile(rf"(?<![\w.,]){NAME_TOKEN}\s*[(:,]?\s*{NUMBER}\s*(?i:h|std|stdn|stunden?)\b")
COUNT_ROLE_JE_RE = re.compile(
    rf"(?<![\w.,])(?P<count>\d+)\s+(?P<role>[^\W\d_]+(?:[\s\-][^\W\d_]+)?)\s+(?:je|jeweils|à)\s+"
    rf"(?P<hours>{NUMBER})\s*(?:h|std|stdn|stunden?)?\b",
    re.IGNORECASE,
)
COUNT_ROLE_HOURS_RE = re.compile(
    rf"(?<![\w.,])(?P<count>\d+)\s+(?P<role>[^\W\d_]+)\s+(?:je\s+|jeweils\s+)?(?P<hours>{NUMBER})\b",
    re.IGNORECASE,
)

_PAIR_RE = re.compile(
    rf"(?P<run>{NAME_TOKEN}(?:[ \t]+{NAME_TOKEN})*)[ \t]*(?P<sep>[(:,])?\s*(?P<hours>{NUMBER})\s*{HOUR_UNIT}\)?"
)
_NAME_TOKEN_RE = re.compile(NAME_TOKEN)
_NAME_CUT_RE = re.compile(r"\bjeweils\b|\bje\b|\bpro\s+person\b|\bstunden\b|\bstd\b|\bh\b|\d|\(", re.IGNORECASE)
_NAME_JOIN_RE = re.compile(r"\bund\b|\bsowie\b|[/&+]", re.IGNORECASE)
_TRAILING_HOURS_RES = (
    re.compile(rf"\b(?:je|jeweils)\s*{NUMBER}\s*(?:(?i:h|std|stdn|stunden?)\b\.?)?\s*\)?\s*$", re.IGNORECASE),
    re.compile(rf"(?<![\w.,]){NUMBER}\s*{HOUR_UNIT}\s*\)?\s*$"),
)
_TRAILING_SEPARATORS_RE = re.compile(r"[\s,;:(\-–]+$")
_BLOCKED_NAME_WORDS = {"je", "jeweils"}
_TRAILING_CLAUSE_WORDS = {"ab", "bis", "von", "am", "um", "seit", "heute", "da", "vor", "ort", "waren", "war"}


def is_role_word(word: str) -> bool:
    vocabulary = get_vocabulary()
    key = (word or "").strip(".,;:()").lower()
    return key in vocabulary.roles or key in vocabulary.generic_roles


def contains_role_word(text: str) -> bool:
    return any(is_role_word(token) for token in re.findall(r"[^\W\d_]+", text or ""))


def is_non_name_word(word: str) -> bool:
    return (word or "").strip(".,;:()").lower() in get_vocabulary().non_name_words


def _is_filler(word: str) -> bool:
    return is_role_word(word) or is_non_name_word(word)


def normalize_role_label(role: str) -> str:
    """``"Installateure"`` -> ``"Installateur"``, ``"Mann"``/``"Helfer"`` -> ``"Mitarbeiter"``."""

    vocabulary = get_vocabulary()
    tokens = [token for token in re.split(r"[\s\-]+", role or "") if token]
    if not tokens:
        return vocabulary.generic_role_label
    if any(token.lower() in vocabulary.generic_roles for token in tokens):
        return vocabulary.generic_role_label
    head = [token[:1].upper() + token[1:] for token in tokens[:-1]]
    last = tokens[-1]
    label = vocabulary.roles.get(last.lower(), last[:1].upper() + last[1:])
    return " ".join(head + [label])


def sanitize_worker_name(name: str) -> str:
    """Strip hour fragments accidentally captured in a name (``"Müller 8h"`` -> ``"Müller"``)."""

    cleaned = str(name or "").strip()
    while True:
        previous = cleaned
        for pattern in _TRAILING_HOURS_RES:
            cleaned = pattern.sub("", cleaned).strip()
        cleaned = _TRAILING_SEPARATORS_RE.sub("", cleaned).strip()
        if cleaned.endswith(")") and "(" not in cleaned:
            cleaned = cleaned[:-1].strip()
        if cleaned == previous:
            return cleaned


def split_group(line: str) -> Tuple[str, str]:
    """Split ``"<group>; <rest>"``; without a semicolon the group is empty."""

    parts = [part.strip() for part in str(line or "").split(";") if part.strip()]
    if len(parts) >= 2:
        return parts[0], " ".join(parts[1:])
    return "", str(line or "").strip()


def extract_hours_info(text: str) -> Tuple[Optional[float], bool]:
    """First hours value in *text* and whether it applies to every person named."""

    subject = replace_number_words(text or "")
    match = HOURS_RE.search(subject) or JE_HOURS_RE.search(subject)
    hours = parse_decimal(match.group("hours")) if match else None
    return hours, bool(PER_PERSON_RE.search(subject))


def extract_names(text: str) -> List[str]:
    """Capitalized person names listed in *text*, before any hours information.

    With several ``,``/``und`` separated clauses every clause is one name
    (``"Hans Müller und Peter Schmidt"``); a single clause is read as a
    space separated list (``"Müller Schmidt"``).
    """

    subject = str(text or "")
    if ":" in subject:
        subject = subject.split(":", 1)[1]
    vor_ort = VOR_ORT_RE.search(subject)
    if vor_ort:
        subject = subject[vor_ort.end():]
    cut = _NAME_CUT_RE.search(subject)
    if cut:
        subject = subject[: cut.start()]
    subject = _NAME_JOIN_RE.sub(",", subject)

    clauses: List[List[str]] = []
    for clause in subject.split(","):
        words = clause.split()
        while words and words[0][:1].islower():
            words.pop(0)
        while words and words[-1].lower() in _TRAILING_CLAUSE_WORDS:
            words.pop()
        words = [word for word in words if not _is_filler(word)]
        if words and all(_NAME_TOKEN_RE.fullmatch(word) for word in words):
            clauses.append(words)

    if len(clauses) > 1:
        candidates = [" ".join(words) for words in clauses]
    else:
        candidates = [word for words in clauses for word in words]
    names: List[str] = []
    for name in candidates:
        if name not in names:
            names.append(name)
    return names


def _name_hour_pairs(group: str, text: str) -> Optional[List[WorkerEntry]]:
    if len(HOURS_RE.findall(text)) == 1 and len(extract_names(text)) > 1:
        return None
    per_person = bool(PER_PERSON_RE.search(text))
    matches = list(_PAIR_RE.finditer(text))
    # every run carrying its own hours value is one full name
    own_hours = len(matches) > 1
    entries: List[WorkerEntry] = []
    for match in matches:
        words = match.group("run").split()
        if any(word.lower() in _BLOCKED_NAME_WORDS for word in words):
            return None
        words = [word for word in words if not _is_filler(word)]
        if not words:
            return None
        hours = parse_decimal(match.group("hours"))
        if len(words) == 1 or own_hours or match.group("sep") in ("(", ":"):
            entries.append(WorkerEntry(group=group, name=" ".join(words), hours=hours))
            continue
        for word in words:
            entries.append(WorkerEntry(group=group, name=word, hours=hours if per_person else None))
    return entries or None


def _name_list(group: str, text: str) -> Optional[List[WorkerEntry]]:
    names = extract_names(text)
    if not names:
        return None
    hours, apply_to_all = extract_hours_info(text)
    should_apply = apply_to_all or len(names) == 1
    return [WorkerEntry(group=group, name=name, hours=hours if should_apply else None) for name in names]


def _counted_group(group: str, text: str) -> Optional[List[WorkerEntry]]:
    match = COUNT_ROLE_JE_RE.search(replace_number_words(text))
    if not match or not contains_role_word(match.group("role")):
        return None
    count = int(match.group("count"))
    hours = parse_decimal(match.group("hours"))
    if count <= 0 or hours is None:
        return None
    label = normalize_role_label(match.group("role"))
    return [
        WorkerEntry(group=group, name=f"{label} {idx}", hours=hours, no_aggregate=True)
        for idx in range(1, count + 1)
    ]


def _whole_line(group: str, text: str) -> Optional[List[WorkerEntry]]:
    raw = text.strip()
    if not raw:
        return None
    hours, _ = extract_hours_info(raw)
    return [WorkerEntry(group=group, name=sanitize_worker_name(raw) or raw, hours=hours)]


_STRATEGIES: Tuple[Tuple[str, Callable[[str, str], Optional[List[WorkerEntry]]]], ...] = (
    ("name_hour_pairs", _name_hour_pairs),
    ("name_list", _name_list),
    ("counted_group", _counted_group),
    ("whole_line", _whole_line),
)


def parse_worker_entries(line: str) -> List[WorkerEntry]:
    """Turn one workforce fragment into zero or more worker entries."""

    if not line or not str(line).strip():
        return []
    group, text = split_group(line)
    for _name, strategy in _STRATEGIES:
        entries = strategy(group, text)
        if entries:
            return entries
    return []


def aggregate_workers(entries: List[WorkerEntry]) -> List[AggregatedWorker]:
    """Merge entries by case-insensitive name, summing hours.

    ``no_aggregate`` entries (synthesized "Monteur 1", "Monteur 2" ...) are
    keyed by position and never merged.
    """

    merged: Dict[str, AggregatedWorker] = {}
    for idx, entry in enumerate(entries or []):
        name = sanitize_worker_name(entry.name)
        if not name:
            continue
        key = f"#{idx}" if entry.no_aggregate else name.lower()
        group = str(entry.group or "").strip()
        existing = merged.get(key)
        if existing is None:
            existing = AggregatedWorker(name=name, group=group)
            merged[key] = existing
        hours = parse_decimal(entry.hours)
        if hours is not None:
            existing.hours += hours
            existing.has_hours = True
        if not existing.group and group:
            existing.group = group
    return list(merged.values())


def worker_names(line: str) -> FrozenSet[str]:
    """Lower-cased names of the workers a workforce line reports, group ignored.

    ``"Müller 8 Stunden"`` and ``"Müller 8h"`` name the same worker, as do
    ``"zwei Installateure je vier Stunden"`` and ``"2 Installateure je 4h"``.
    """

    names = (sanitize_worker_name(entry.name).lower() for entry in parse_worker_entries(line))
    return frozenset(name for name in names if name)
