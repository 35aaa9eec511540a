import io
import json

from baubericht.cli import report_cli

REPORT = "Leistung: Rohre verlegt\nAK: Team A; Müller 8h\nMAT: 10m Rohr\n"


def _run(argv, stdin_text=""):
    stdout = io.StringIO()
    code = report_cli.main(argv, stdin=io.StringIO(stdin_text), stdout=stdout)
    return code, stdout.getvalue()


def test_normalize_from_file(tmp_path):
    path = tmp_path / "bericht.txt"
    path.write_text(REPORT, encoding="utf-8")

    code, out = _run(["normalize", str(path)])
    assert code == 0
    result = json.loads(out)
    assert result["sections"] == {
        "leistungen": ["Rohre verlegt"],
        "arbeitskraefte": ["Team A; Müller 8h"],
        "material": ["10; m; Rohr"],
    }


def test_normalize_from_stdin_as_text():
    code, out = _run(["normalize", "-", "--format", "text"], stdin_text=REPORT)
    assert code == 0
    assert "Leistungen:\n- Rohre verlegt" in out
    assert "Arbeitskräfte:\n- Team A; Müller 8h" in out
    assert "Material:\n- 10; m; Rohr" in out


def test_normalize_with_sections_json(tmp_path):
    path = tmp_path / "bericht.txt"
    path.write_text("Rohre verlegt und Kies geliefert\n", encoding="utf-8")
    sections = json.dumps({"leistungen": ["Rohre verlegt"]})

    code, out = _run(["normalize", str(path), "--sections", sections])
    assert code == 0
    result = json.loads(out)
    assert result["external_classification"] is True
    assert result["sections"]["leistungen"] == ["Rohre verlegt"]


def test_layout_btb_lowercase_type(tmp_path):
    path = tmp_path / "bericht.txt"
    path.write_text("\n".join(f"Leistung: Position {i}" for i in range(9)), encoding="utf-8")

    code, out = _run(["layout", "--type", "btb", str(path)])
    assert code == 0
    result = json.loads(out)
    assert result["report_type"] == "BTB"
    assert result["cells"]["A19"] == "Position 0"
    assert result["overflow"]["leistungen"] == ["Position 7", "Position 8"]


def test_layout_text_output():
    code, out = _run(["layout", "--type", "RB", "-", "--format", "text"], stdin_text=REPORT)
    assert code == 0
    assert out.startswith("Berichtstyp: RB")
    assert "A12: Rohre verlegt" in out
    assert "C23: Müller" in out


def test_missing_file_returns_error(tmp_path, capsys):
    code, out = _run(["normalize", str(tmp_path / "fehlt.txt")])
    assert code == 2
    assert out == ""
    assert "File not found" in capsys.readouterr().err


def test_invalid_sections_returns_error(tmp_path, capsys):
    path = tmp_path / "bericht.txt"
    path.write_text(REPORT, encoding="utf-8")

    code, _ = _run(["normalize", str(path), "--sections", "{kaputt"])
    assert code == 2
    assert "--sections" in capsys.readouterr().err

    code, _ = _run(["normalize", str(path), "--sections", "[1, 2]"])
    assert code == 2
