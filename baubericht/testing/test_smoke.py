import os

import importlib

import pytest
from fastapi.testclient import TestClient


def _load_app() -> TestClient:
    """
    Import the FastAPI app with lightweight settings so LLM backends are skipped.
    Reloading ensures env overrides are respected for every test run.
    """
    os.environ["SKIP_LLM_SETUP"] = "1"
    os.environ.setdefault("FRONTEND_ORIGINS", "http://test.local")
    module = importlib.import_module("baubericht.main")
    module = importlib.reload(module)
    return TestClient(module.app)


@pytest.fixture(scope="session")
def client() -> TestClient:
    return _load_app()


def test_health_endpoint(client: TestClient):
    res = client.get("/api/health")
    assert res.status_code == 200
    data = res.json()
    assert data["ok"] is True
    assert data["llm"] is False
    assert "time" in data


def test_normalize_endpoint(client: TestClient):
    res = client.post(
        "/api/report/normalize",
        json={"lines": ["Leistung: Rohre verlegt", "AK: Team A; Müller 8h", "MAT: 10m Rohr"]},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["sections"]["leistungen"] == ["Rohre verlegt"]
    assert body["sections"]["material"] == ["10; m; Rohr"]
    assert body["workers"][0] == {"name": "Müller", "group": "Team A", "hours": 8.0, "has_hours": True}
    assert body["external_classification"] is False


def test_normalize_with_external_sections(client: TestClient):
    res = client.post(
        "/api/report/normalize",
        json={
            "lines": ["Rohre verlegt und Kies geliefert"],
            "sections": {"leistungen": ["Rohre verlegt"], "material": ["Kies geliefert", "Beton erfunden"]},
        },
    )
    assert res.status_code == 200
    body = res.json()
    assert body["external_classification"] is True
    assert "Beton erfunden" not in body["sections"]["material"]


def test_layout_endpoint(client: TestClient):
    res = client.post(
        "/api/report/layout",
        json={"report_type": "RB", "lines": ["AK: Team A; Müller 8h"]},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["report_type"] == "RB"
    assert body["cells"]["A23"] == 8
    assert body["cells"]["C23"] == "Müller"


def test_layout_rejects_unknown_type(client: TestClient):
    res = client.post("/api/report/layout", json={"report_type": "XY", "lines": ["Rohre verlegt"]})
    assert res.status_code == 400
    assert "Unbekannter Berichtstyp" in res.json()["detail"]


def test_cors_preflight(client: TestClient):
    res = client.options(
        "/api/health",
        headers={
            "Origin": "http://test.local",
            "Access-Control-Request-Method": "GET",
        },
    )
    # Starlette returns 204 for successful preflight responses.
    assert res.status_code in (200, 204)
    assert res.headers.get("access-control-allow-origin") == "http://test.local"


def test_report_api_uses_app_context(client: TestClient):
    from baubericht.app import report_api

    ctx = report_api.get_report_context()
    assert ctx.skip_llm_setup is True
    assert ctx.classifier_chain is None
