import itertools
import logging

import pytest

from baubericht.app.layout import workers_from_sections
from baubericht.app.models import NormalizedSections
from baubericht.app.reconcile import (
    normalize_report_sections,
    reconstruct_lines,
    split_service_item,
)
from baubericht.shared.normalize.text import normalize_text_for_compare

REPORT = [
    "Leistung: Heizkörper montiert, Leitungen gespült",
    "AK: Team A; Müller 8h",
    "MAT: 10m Rohr, 3 Stk Dübel",
]

LINE_SETS = [
    REPORT,
    ["Wand gestrichen", "2 Installateure je 4h", "Kies geliefert"],
    ["Heizung montiert und 10m Rohr verlegt"],
    ["Material:", "10m Rohr", "Kies", "Leistungen", "Estrich geprüft, Fenster eingesetzt"],
    ["Leistung: Fassade gestrichen. Müller 8h", "Müller 8h"],
    ["Rohre verlegt MAT 2,5 m Rohr", "AK Müller Schmidt 4h"],
]


def _assert_disjoint(sections: NormalizedSections) -> None:
    keyed = {name: {normalize_text_for_compare(item) for item in items} for name, items in sections.to_dict().items()}
    for first, second in itertools.combinations(keyed, 2):
        assert not keyed[first] & keyed[second], (first, second)


def test_full_report():
    result = normalize_report_sections(REPORT)
    assert result.leistungen == ["Heizkörper montiert", "Leitungen gespült"]
    assert result.arbeitskraefte == ["Team A; Müller 8h"]
    assert result.material == ["10; m; Rohr", "3; Stk; Dübel"]


@pytest.mark.parametrize("lines", LINE_SETS)
def test_buckets_are_disjoint(lines):
    _assert_disjoint(normalize_report_sections(lines))


@pytest.mark.parametrize("lines", LINE_SETS)
def test_second_pass_is_stable(lines):
    first = normalize_report_sections(lines)
    second = normalize_report_sections(reconstruct_lines(first))
    assert second == first


def test_mixed_sentence_lands_in_material_only():
    result = normalize_report_sections(["Heizung montiert und 10m Rohr verlegt"])
    assert result.leistungen == []
    assert result.material == ["10; m; Rohr verlegt"]


def test_explicit_service_prefix_is_not_reclassified():
    result = normalize_report_sections(["Leistung: 10m Rohr verlegt"])
    assert result.leistungen == ["10m Rohr verlegt"]
    assert result.material == []


def test_headers_never_become_content():
    result = normalize_report_sections(["Material:", "Leistungen", "AK"], {"leistungen": ["Material"]})
    assert result.is_empty()


def test_empty_input():
    assert normalize_report_sections([]).is_empty()
    assert normalize_report_sections(None).is_empty()


def test_workforce_sentence_fallback():
    result = normalize_report_sections(["Leistung: Fassade gestrichen. Müller 8h"])
    assert result.arbeitskraefte == ["Müller 8h"]


def test_material_sentence_fallback():
    result = normalize_report_sections(["Leistung: Schacht gesetzt. 2 Sack Zement"])
    assert result.material == ["2; Sack; Zement"]


def test_external_items_are_merged_and_hallucinations_dropped(caplog):
    external = {
        "leistungen": ["Rohre verlegt"],
        "arbeitskraefte": [],
        "material": ["Kies geliefert", "5 Sack Zement"],
    }
    with caplog.at_level(logging.DEBUG, logger="baubericht.reconcile"):
        result = normalize_report_sections(["Rohre verlegt und Kies geliefert"], external)
    assert result.leistungen == ["Rohre verlegt"]
    assert "Kies geliefert" in result.material
    assert not any("Zement" in item for item in result.material)
    assert "5 Sack Zement" in caplog.text


def test_external_service_item_is_refiled():
    result = normalize_report_sections(
        ["Leistung: Fassade gestrichen und Müller 8h"],
        {"leistungen": ["Müller 8h"]},
    )
    assert result.leistungen == ["Fassade gestrichen und Müller 8h"]
    assert result.arbeitskraefte == ["Müller 8h"]


def test_external_copy_of_heuristic_worker_is_skipped():
    result = normalize_report_sections(
        ["Fassade gestrichen und Müller 8h"],
        {"leistungen": ["Müller 8h"]},
    )
    assert result.arbeitskraefte == ["Fassade gestrichen und Müller 8h"]


def test_external_rewrite_of_workforce_line_does_not_double_hours(caplog):
    with caplog.at_level(logging.DEBUG, logger="baubericht.reconcile"):
        result = normalize_report_sections(["Müller 8 Stunden"], {"arbeitskraefte": ["Müller 8h"]})
    assert result.arbeitskraefte == ["Müller 8 Stunden"]
    workers = workers_from_sections(result)
    assert [(w.name, w.hours) for w in workers] == [("Müller", 8.0)]
    assert "already reported" in caplog.text


def test_external_rewrite_of_counted_group_is_skipped():
    result = normalize_report_sections(
        ["zwei Installateure je vier Stunden"],
        {"arbeitskraefte": ["2 Installateure je 4h"]},
    )
    assert result.arbeitskraefte == ["zwei Installateure je vier Stunden"]
    assert [w.name for w in workers_from_sections(result)] == ["Installateur 1", "Installateur 2"]


def test_external_cannot_assign_hours_to_ambiguous_names():
    result = normalize_report_sections(["Müller Schmidt 4h"], {"arbeitskraefte": ["Müller 4h", "Schmidt 4h"]})
    assert result.arbeitskraefte == ["Müller Schmidt 4h"]
    assert all(not w.has_hours for w in workers_from_sections(result))


def test_external_worker_not_in_baseline_is_merged():
    result = normalize_report_sections(
        ["Leistung: Wand gestrichen, Meier 6h"],
        {"arbeitskraefte": ["Meier 6h"]},
    )
    assert result.arbeitskraefte == ["Meier 6h"]


def test_repeat_count_stays_a_service():
    result = normalize_report_sections(["Wand 2 mal gestrichen"])
    assert result.leistungen == ["Wand 2 mal gestrichen"]
    assert result.material == []


def test_external_classification_as_json_text():
    raw = '```json\n{"leistungen": ["Rohre verlegt"], "material": "kaputt"}\n```'
    result = normalize_report_sections(["Rohre verlegt und Kies geliefert"], raw)
    assert result.leistungen == ["Rohre verlegt"]


def test_malformed_external_classification_is_ignored():
    lines = ["Wand gestrichen"]
    assert normalize_report_sections(lines, "keine Antwort") == normalize_report_sections(lines)
    assert normalize_report_sections(lines, ["x"]) == normalize_report_sections(lines)


def test_split_service_item():
    assert split_service_item("Leistung: Fenster eingesetzt, Fugen 2,5 cm gefüllt") == [
        "Fenster eingesetzt",
        "Fugen 2,5 cm gefüllt",
    ]
    assert split_service_item("Ergebnisse: ") == []
