import pytest
from fastapi.testclient import TestClient

from app import app as studio_app
from tests.conftest import make_node, make_task


@pytest.fixture
def client():
    with TestClient(studio_app) as test_client:
        yield test_client


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_task_types(client):
    response = client.get("/api/task-types", params={"category": "worker"})
    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == ["SIMPLE"]


def test_new_task_name(client):
    name = client.get("/api/names/task/http").json()["name"]
    assert name.startswith("HTTP_Task_")


def test_normalize_nodes(client):
    response = client.post("/api/workflows/normalize", json={
        "nodes": [make_node("a", "SIMPLE", "A", config={"http_request": {"uri": "https://x"}})],
        "workflow": {"name": "orders"},
    })
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "orders"
    assert body["tasks"][0]["inputParameters"] == {"uri": "https://x"}
    assert "position" not in body["tasks"][0]


def test_normalize_missing_type_is_bad_request(client):
    response = client.post("/api/workflows/normalize", json={"nodes": [make_node("n1", label="Mystery")]})
    assert response.status_code == 400
    assert "Mystery" in response.json()["detail"]


def test_convert_local_workflow(client):
    response = client.post("/api/workflows/convert", json={
        "name": "wf",
        "settings": {"timeoutSeconds": 120},
        "nodes": [make_node("a", "SIMPLE", "A")],
    })
    assert response.status_code == 200
    assert response.json()["timeoutSeconds"] == 120


def test_publish_payload_is_wrapped(client):
    response = client.post("/api/workflows/publish-payload", json={"name": "wf", "tasks": []})
    body = response.json()
    assert isinstance(body, list)
    assert body[0]["schemaVersion"] == 2


def test_validate_reports_duplicates(client):
    response = client.post("/api/workflows/validate", json={"tasks": [make_task("a"), make_task("a")]})
    assert response.json() == {"valid": False, "errors": ["taskReferenceName 'a' is used more than once"]}


def test_diagram(client):
    response = client.post("/api/workflows/diagram", json={"tasks": [make_task("a", name="A")], "direction": "LR"})
    assert response.status_code == 200
    mermaid = response.json()["mermaid"]
    assert mermaid.startswith("flowchart LR")
    assert "    start_0 --> a_1" in mermaid


def test_diagram_with_execution_status(client):
    response = client.post("/api/workflows/diagram", json={
        "tasks": [make_task("a")],
        "showStatus": True,
        "execution": {"workflowId": "wf-1", "tasks": [{"referenceTaskName": "a", "status": "FAILED"}]},
    })
    assert "    class a_1 failed" in response.json()["mermaid"]


def test_diagram_requires_source(client):
    assert client.post("/api/workflows/diagram", json={}).status_code == 400


def test_json_validate(client):
    body = client.post("/api/json/validate", json={"text": "{oops"}).json()
    assert body["is_valid"] is False
    assert body["error_line"] == 1
