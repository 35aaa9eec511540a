from baubericht.app.utils import (
    SectionsPayload,
    clean_json_string,
    extract_json_object,
    parse_sections_payload,
)


def test_clean_json_string_strips_fences():
    assert clean_json_string('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert clean_json_string("```\n[]\n```") == "[]"


def test_extract_json_object():
    assert extract_json_object('Antwort: {"a": 1} fertig') == '{"a": 1}'
    assert extract_json_object("kein json") is None


def test_payload_coerces_malformed_fields():
    payload = parse_sections_payload(
        '```json\n{"leistungen": ["A", 1, null, " B "], "material": "x"}\n```'
    )
    assert payload == SectionsPayload(leistungen=["A", "1", "B"], arbeitskraefte=[], material=[])


def test_payload_from_dict_and_passthrough():
    payload = parse_sections_payload({"arbeitskraefte": ["Müller 8h"], "unbekannt": ["x"]})
    assert payload is not None
    assert payload.arbeitskraefte == ["Müller 8h"]
    assert payload.leistungen == []
    assert parse_sections_payload(payload) is payload


def test_payload_rejects_non_objects():
    assert parse_sections_payload(None) is None
    assert parse_sections_payload("keine Antwort") is None
    assert parse_sections_payload('{"leistungen": [}') is None
    assert parse_sections_payload(["a"]) is None
