"""User-facing German messages for report normalization and layout.

Same plain-text style as the chat replies: a short title line, a blank line,
then a dash list.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from baubericht.app.models import NormalizedSections

_SECTION_LABELS = {
    "leistungen": "Leistungen",
    "arbeitskraefte": "Arbeitskräfte",
    "material": "Material",
}


def _bullet_list(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def empty_report_message() -> str:
    return (
        "Bericht enthält noch keine Angaben\n\n"
        "- Es konnten keine Leistungen, Arbeitskräfte oder Materialien erkannt werden.\n"
        "Bitte ergänze den Bericht, z. B. mit \"Leistung: Rohre verlegt\", \"AK: Müller 8h\" oder \"MAT: 10m Rohr\"."
    )


def report_summary_message(sections: NormalizedSections) -> str:
    """Short overview of what was recognized; falls back to the empty-report text."""
    if sections.is_empty():
        return empty_report_message()
    counts = sections.to_dict()
    lines = [f"{_SECTION_LABELS[key]}: {len(values)}" for key, values in counts.items()]
    return "Bericht erkannt\n\n" + _bullet_list(lines)


def overflow_message(overflow: Dict[str, List[str]]) -> str:
    """Hint listing entries that did not fit into the template."""
    blocks: List[str] = []
    for key, items in overflow.items():
        cleaned = [item.strip() for item in items if item and item.strip()]
        if cleaned:
            blocks.append(f"{_SECTION_LABELS.get(key, key)}:\n{_bullet_list(cleaned)}")
    if not blocks:
        return ""
    return (
        "Nicht alle Einträge passen in die Vorlage\n\n"
        + "\n\n".join(blocks)
        + "\n\nBitte trage diese Einträge manuell nach oder teile den Bericht auf."
    )
