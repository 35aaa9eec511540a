"""Cell maps for the Regiebericht (RB) and Bautagesbericht (BTB) templates.

Only the cell values are computed here; writing the workbook is left to the
caller. Every cell of a block is present in the map (``""`` for blanks) so a
template can be overwritten without leftovers, and items that do not fit are
returned as overflow instead of being dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from baubericht.app.material import format_material_entry, parse_material_line
from baubericht.app.models import AggregatedWorker, MaterialEntry, NormalizedSections
from baubericht.app.workforce import aggregate_workers, parse_worker_entries

REPORT_TYPES = ("RB", "BTB")

RB_SERVICE_ROWS = (12, 19)
RB_SERVICE_COLUMNS = ("A", "G")
RB_WORKER_ROWS = (23, 28)
RB_WORKER_CLEAR_COLUMNS = ("D", "E", "F", "G", "H", "I")
RB_MATERIAL_ROWS = (32, 38)
BTB_SERVICE_ROWS = (19, 25)
BTB_SERVICE_COLUMN = "A"


@dataclass
class ReportLayout:
    report_type: str
    cells: Dict[str, Any] = field(default_factory=dict)
    overflow: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def has_overflow(self) -> bool:
        return any(self.overflow.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_type": self.report_type,
            "cells": dict(self.cells),
            "overflow": {key: list(values) for key, values in self.overflow.items()},
        }


def _row_range(rows: tuple[int, int]) -> range:
    return range(rows[0], rows[1] + 1)


def _fill_column(cells: Dict[str, Any], column: str, rows: tuple[int, int], values: Sequence[Any]) -> List[Any]:
    """Write *values* top-down into *column*; returns what did not fit."""
    row_range = _row_range(rows)
    for idx, row in enumerate(row_range):
        cells[f"{column}{row}"] = values[idx] if idx < len(values) else ""
    return list(values[len(row_range):])


def _hours_value(worker: AggregatedWorker) -> Any:
    if not worker.has_hours:
        return ""
    return int(worker.hours) if float(worker.hours).is_integer() else worker.hours


def _worker_label(worker: AggregatedWorker) -> str:
    parts = [worker.group, worker.name]
    label = "; ".join(part for part in parts if part)
    if worker.has_hours:
        label = f"{label} {_hours_value(worker)}h"
    return label


def workers_from_sections(sections: NormalizedSections) -> List[AggregatedWorker]:
    entries = [entry for line in sections.arbeitskraefte for entry in parse_worker_entries(line)]
    return aggregate_workers(entries)


def materials_from_sections(sections: NormalizedSections) -> List[MaterialEntry]:
    return [parse_material_line(line) for line in sections.material]


def layout_regiebericht(sections: NormalizedSections) -> ReportLayout:
    layout = ReportLayout(report_type="RB")
    cells = layout.cells

    services = list(sections.leistungen)
    per_column = len(_row_range(RB_SERVICE_ROWS))
    left, right = RB_SERVICE_COLUMNS
    _fill_column(cells, left, RB_SERVICE_ROWS, services[:per_column])
    layout.overflow["leistungen"] = _fill_column(cells, right, RB_SERVICE_ROWS, services[per_column:])

    workers = workers_from_sections(sections)
    worker_rows = _row_range(RB_WORKER_ROWS)
    for idx, row in enumerate(worker_rows):
        worker = workers[idx] if idx < len(workers) else None
        cells[f"A{row}"] = _hours_value(worker) if worker else ""
        cells[f"B{row}"] = worker.group if worker else ""
        cells[f"C{row}"] = worker.name if worker else ""
        for column in RB_WORKER_CLEAR_COLUMNS:
            cells[f"{column}{row}"] = ""
    layout.overflow["arbeitskraefte"] = [_worker_label(w) for w in workers[len(worker_rows):]]

    materials = materials_from_sections(sections)
    material_rows = _row_range(RB_MATERIAL_ROWS)
    for idx, row in enumerate(material_rows):
        item = materials[idx] if idx < len(materials) else None
        cells[f"A{row}"] = item.qty if item else ""
        cells[f"B{row}"] = item.unit if item else ""
        cells[f"C{row}"] = item.desc if item else ""
    layout.overflow["material"] = [format_material_entry(m) for m in materials[len(material_rows):]]
    return layout


def layout_bautagesbericht(sections: NormalizedSections) -> ReportLayout:
    layout = ReportLayout(report_type="BTB")
    layout.overflow["leistungen"] = _fill_column(
        layout.cells, BTB_SERVICE_COLUMN, BTB_SERVICE_ROWS, list(sections.leistungen)
    )
    return layout


def build_report_layout(report_type: str, sections: NormalizedSections) -> ReportLayout:
    kind = (report_type or "").strip().upper()
    if kind == "RB":
        return layout_regiebericht(sections)
    if kind == "BTB":
        return layout_bautagesbericht(sections)
    raise ValueError(f"Unbekannter Berichtstyp: {report_type!r} (erlaubt: {', '.join(REPORT_TYPES)})")
