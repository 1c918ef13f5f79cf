import json

import pytest
from sqlmodel import Session

from voter_analytics.config import settings
from voter_analytics.database import build_engine, get_db
from voter_analytics.errors import NaturalLanguageQueryError

HEADERS = {"X-User-Id": "user-1", "X-User-Email": "ann@example.com"}


def _upload(client, content, name="contacts.csv", mime="text/csv", headers=HEADERS):
    return client.post("/uploads/csv", files={"file": (name, content, mime)}, headers=headers)


def test_health_and_version(client):
    assert client.get("/health").json()["ok"] is True
    assert client.get("/version").json()["version"] == settings.app_version


def test_identity_header_required(client):
    assert client.get("/metrics").status_code == 401


def test_upload_csv(client, sample_csv):
    r = _upload(client, sample_csv)
    assert r.status_code == 200
    body = r.json()
    assert body["stats"]["valid"] == 1
    assert body["stats"]["invalid"] == 1
    assert body["label"] == "voter contact - ann@example.com"
    assert body["progress"][-1] == 100

    latest = client.get("/uploads/latest", headers=HEADERS)
    assert latest.status_code == 200
    assert latest.json()["dataset_name"] == "voter contact - ann@example.com"


def test_latest_upload_missing(client):
    assert client.get("/uploads/latest", headers=HEADERS).status_code == 404


def test_upload_rejects_non_csv(client):
    r = _upload(client, "a,b\n1,2\n", name="contacts.xlsx", mime="application/vnd.ms-excel")
    assert r.status_code == 400
    assert r.json()["title"] == "Invalid file type"


def test_upload_rejects_malformed_csv(client):
    r = _upload(client, "first_name\n")
    assert r.status_code == 400
    assert r.json()["title"] == "Error parsing CSV"


def test_upload_without_valid_rows(client):
    r = _upload(client, "first_name,last_name\n,Lee\n")
    assert r.status_code == 422


def test_upload_without_tables_is_service_unavailable(client, sample_csv):
    from voter_analytics.main import app

    bare = build_engine("sqlite://")

    def _bare_db():
        with Session(bare) as s:
            yield s

    app.dependency_overrides[get_db] = _bare_db
    r = _upload(client, sample_csv)
    bare.dispose()

    assert r.status_code == 503
    assert r.json()["title"] == "Upload failed"
    assert "Database setup issue" in r.json()["detail"]


def test_preview_upload(client):
    content = "Volunteer First,Last Name,Date,Tactic\nAnn,Lee,2024-04-01,Phone\n"
    r = client.post("/uploads/preview", files={"file": ("c.csv", content, "text/csv")}, headers=HEADERS)
    assert r.status_code == 200
    body = r.json()
    assert body["headers"] == ["Volunteer First", "Last Name", "Date", "Tactic"]
    assert body["suggested"]["Volunteer First"] is None
    assert body["suggested"]["Tactic"] == "tactic"
    assert body["missing_required"] == ["first_name"]
    assert body["rows"] == [["Ann", "Lee", "2024-04-01", "Phone"]]
    assert body["total_rows"] == 1

    # preview writes nothing
    assert client.get("/uploads/latest", headers=HEADERS).status_code == 404


def test_upload_with_reviewed_mapping(client):
    content = "Volunteer First,Last Name,Date,Tactic,Calls\nAnn,Lee,2024-04-01,Phone,6\n"
    r = client.post(
        "/uploads/csv",
        files={"file": ("c.csv", content, "text/csv")},
        data={"mapping": json.dumps({"Volunteer First": "first_name", "Calls": "attempts"})},
        headers=HEADERS,
    )
    assert r.status_code == 200
    assert r.json()["stats"]["valid"] == 1
    assert r.json()["unmapped_headers"] == []

    q = client.post("/query/result", json={"person": "Ann Lee"}, headers=HEADERS)
    assert q.json()["result"] == 6


@pytest.mark.parametrize("mapping", ["not json", "[1, 2]", '{"Team": "squad"}'])
def test_upload_rejects_invalid_mapping(client, sample_csv, mapping):
    r = client.post(
        "/uploads/csv",
        files={"file": ("c.csv", sample_csv, "text/csv")},
        data={"mapping": mapping},
        headers=HEADERS,
    )
    assert r.status_code == 400
    assert r.json()["title"] == "Invalid field mapping"


def test_metrics_and_charts(client, sample_csv):
    _upload(client, sample_csv)

    m = client.get("/metrics", headers=HEADERS).json()
    assert m["has_data"] is True
    assert m["stale"] is False
    assert m["metrics"]["tactics"]["phone"] == 10
    assert m["totals"] == {"attempts": 10, "contacts": 4, "not_reached": 6}

    charts = client.get("/metrics/charts?theme=dark&cumulative=true", headers=HEADERS).json()
    assert [s["name"] for s in charts["tactics"]] == ["Phone"]
    assert charts["line"][0]["cumulative_attempts"] == 10
    assert charts["max_cumulative"] == 10


def test_metrics_are_scoped_to_user(client, sample_csv):
    _upload(client, sample_csv)
    other = {"X-User-Id": "someone-else"}
    assert client.get("/metrics", headers=other).json()["has_data"] is False


def test_query_result(client, sample_csv):
    _upload(client, sample_csv)

    r = client.post("/query/result", json={"tactic": "Phone"}, headers=HEADERS)
    assert r.json() == {"result": 10, "error": None, "stale": False}

    r = client.post("/query/result", json={"tactic": "SMS"}, headers=HEADERS)
    assert r.json()["result"] == 0

    r = client.post("/query/result", json={}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["result"] is None
    assert r.json()["error"]


def test_natural_query_keyword_fallback(client, sample_csv):
    _upload(client, sample_csv)
    r = client.post("/query/natural", json={"text": "How many phone attempts?"}, headers=HEADERS)
    assert r.status_code == 200
    body = r.json()
    assert body["source"] == "keywords"
    assert body["params"]["tactic"] == "Phone"
    assert body["result"] == 10


def test_natural_query_llm_failure(client, monkeypatch):
    async def _fail(text):
        raise NaturalLanguageQueryError("bad reply")

    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr("voter_analytics.api.query.extract_query_params", _fail)

    r = client.post("/query/natural", json={"text": "anything"}, headers=HEADERS)
    assert r.status_code == 502


def test_contacts_lookups(client, sample_csv):
    _upload(client, sample_csv)
    assert client.get("/contacts/tactics", headers=HEADERS).json() == ["Phone"]
    assert client.get("/contacts/teams", headers=HEADERS).json() == ["Team Tony"]
    assert client.get("/contacts/people?team=All", headers=HEADERS).json() == ["Ann Lee"]
    assert client.get("/contacts/people?team=Local Party", headers=HEADERS).json() == []

    hits = client.get("/contacts/search?q=ann", headers=HEADERS).json()
    assert [h["first_name"] for h in hits] == ["Ann"]
    assert client.get("/contacts/search?q=", headers=HEADERS).json() == []
