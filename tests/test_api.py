import json

import pytest
from fastapi.testclient import TestClient

from mongo_browser.main import app
from mongo_browser.routers import export as export_router
from mongo_browser.services.mongo import conn_mgr

CONN = "test-conn"


@pytest.fixture
def client(session, monkeypatch):
    monkeypatch.setitem(conn_mgr._sessions, CONN, session)
    return TestClient(app)


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_unknown_connection(client):
    resp = client.get("/api/browser/state", params={"connectionId": "nope"})
    assert resp.status_code == 404


def test_collections_and_selection(client):
    resp = client.get("/api/collections", params={"connectionId": CONN})
    assert resp.status_code == 200
    assert resp.json()[0] == {"name": "Accounts", "documentCount": 3}

    resp = client.post("/api/collections/select", params={"connectionId": CONN}, json={"name": "users"})
    assert resp.json()["selectedCollection"] == "users"
    resp = client.post("/api/collections/select", params={"connectionId": CONN}, json={"name": "ghost"})
    assert resp.status_code == 404


def test_query_and_paging(client, data_source):
    resp = client.post("/api/documents/query", params={"connectionId": CONN}, json={"query": "", "sort": '{"age": -1}'})
    body = resp.json()
    assert resp.status_code == 200
    assert body["totalDocuments"] == 47
    assert body["totalPages"] == 2
    assert body["queryParams"] == {"sort": {"age": -1}, "readPreference": "primary"}

    body = client.post("/api/documents/page", params={"connectionId": CONN}, json={"page": 5}).json()
    assert body["currentPage"] == 2
    assert data_source.fetch_calls[-1]["skip"] == 25

    body = client.post("/api/documents/page-size", params={"connectionId": CONN}, json={"pageSize": 50}).json()
    assert body["pageSize"] == 50 and body["currentPage"] == 1
    resp = client.post("/api/documents/page-size", params={"connectionId": CONN}, json={"pageSize": 30})
    assert resp.status_code == 400


def test_query_field_errors(client, data_source):
    resp = client.post("/api/documents/query", params={"connectionId": CONN}, json={"projection": "{x"})
    assert resp.status_code == 422
    assert list(resp.json()["detail"]["fields"]) == ["projection"]
    assert data_source.fetch_calls == []


def test_document_views(client):
    client.post("/api/documents/query", params={"connectionId": CONN}, json={})
    table = client.get("/api/documents/view", params={"connectionId": CONN}).json()
    assert table["columns"] == ["#", "_id", "age", "name"]
    assert table["rows"][0]["#"] == 1
    assert table["rows"][0]["name"] == {"kind": "scalar", "text": "person-1"}

    view = client.get("/api/documents/view", params={"connectionId": CONN, "mode": "json"}).json()
    assert json.loads(view["json"])[0]["_id"] == "1"


def test_generate(client):
    resp = client.post("/api/nl/generate", params={"connectionId": CONN}, json={"prompt": "older than 30"})
    body = resp.json()
    assert body["kind"] == "success"
    assert body["params"]["query"] == {"age": {"$gt": 30}}
    assert body["state"]["queryExecuted"]


def test_export_to_directory(client, tmp_path, monkeypatch):
    monkeypatch.setenv("MONGO_BROWSER_EXPORT_DIR", str(tmp_path))
    client.post("/api/documents/query", params={"connectionId": CONN}, json={})
    body = client.post("/api/export", params={"connectionId": CONN}).json()
    assert body["success"]
    saved = tmp_path / body["filePath"].split("/")[-1]
    assert saved.read_text(encoding="utf-8").startswith('{"_id": "1"}')


def test_export_current_page(client):
    client.post("/api/documents/query", params={"connectionId": CONN}, json={})
    resp = client.get("/api/export/page", params={"connectionId": CONN, "format": "csv"})
    assert resp.status_code == 200
    assert resp.text.splitlines()[0] == '"_id","age","name"'
    assert client.get("/api/export/page", params={"connectionId": CONN, "format": "pdf"}).status_code == 400


def test_excel_download_removes_temp_dir(client, tmp_path, monkeypatch):
    work_dir = tmp_path / "xlsx"

    def mkdtemp(prefix=None):
        work_dir.mkdir()
        return str(work_dir)

    monkeypatch.setattr(export_router.tempfile, "mkdtemp", mkdtemp)
    client.post("/api/documents/query", params={"connectionId": CONN}, json={})
    resp = client.get("/api/export/page", params={"connectionId": CONN, "format": "excel"})
    assert resp.status_code == 200
    assert resp.content[:2] == b"PK"
    assert not work_dir.exists()
