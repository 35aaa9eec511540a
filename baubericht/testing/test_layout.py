import pytest

from baubericht.app.layout import (
    build_report_layout,
    layout_bautagesbericht,
    layout_regiebericht,
    workers_from_sections,
)
from baubericht.app.models import NormalizedSections


@pytest.fixture()
def sections() -> NormalizedSections:
    return NormalizedSections(
        leistungen=[f"Leistung {chr(65 + i)}" for i in range(20)],
        arbeitskraefte=["Team A; Müller 8h", "Schmidt"],
        material=["10; m; Rohr", "Kies"],
    )


def test_regiebericht_services_fill_two_columns(sections):
    layout = layout_regiebericht(sections)
    cells = layout.cells
    assert cells["A12"] == "Leistung A"
    assert cells["A19"] == "Leistung H"
    assert cells["G12"] == "Leistung I"
    assert cells["G19"] == "Leistung P"
    assert layout.overflow["leistungen"] == ["Leistung Q", "Leistung R", "Leistung S", "Leistung T"]
    assert layout.has_overflow


def test_regiebericht_worker_rows(sections):
    cells = layout_regiebericht(sections).cells
    assert (cells["A23"], cells["B23"], cells["C23"]) == (8, "Team A", "Müller")
    assert (cells["A24"], cells["B24"], cells["C24"]) == ("", "", "Schmidt")
    assert (cells["A25"], cells["B25"], cells["C25"]) == ("", "", "")
    assert cells["D23"] == "" and cells["I28"] == ""


def test_regiebericht_material_rows(sections):
    layout = layout_regiebericht(sections)
    cells = layout.cells
    assert (cells["A32"], cells["B32"], cells["C32"]) == ("10", "m", "Rohr")
    assert (cells["A33"], cells["B33"], cells["C33"]) == ("", "", "Kies")
    assert cells["C38"] == ""
    assert layout.overflow["material"] == []


def test_worker_overflow_is_reported():
    names = ["Anna", "Bernd", "Carla", "Dieter", "Emil", "Frieda", "Gustav 4h"]
    layout = layout_regiebericht(NormalizedSections(arbeitskraefte=names))
    assert layout.cells["C28"] == "Frieda"
    assert layout.overflow["arbeitskraefte"] == ["Gustav 4h"]


def test_counted_workers_are_not_merged():
    workers = workers_from_sections(NormalizedSections(arbeitskraefte=["2 Installateure je 4h"]))
    assert [w.name for w in workers] == ["Installateur 1", "Installateur 2"]


def test_bautagesbericht_uses_single_column(sections):
    layout = layout_bautagesbericht(sections)
    assert layout.cells["A19"] == "Leistung A"
    assert layout.cells["A25"] == "Leistung G"
    assert "G19" not in layout.cells
    assert len(layout.overflow["leistungen"]) == 13


def test_build_report_layout_dispatch(sections):
    assert build_report_layout("rb", sections).report_type == "RB"
    assert build_report_layout("BTB", sections).to_dict()["report_type"] == "BTB"
    with pytest.raises(ValueError):
        build_report_layout("XY", sections)
