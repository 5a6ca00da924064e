from schemas.workflow_definition import WorkflowDefinition
from services.publish_payload import (
    normalize_workflow_for_publish, wrap_workflow_for_publish, prepare_workflow_for_publish
)
from services.workflow_normalizer import normalize
from tests.conftest import make_node


def test_defaults_filled_for_bare_definition(monkeypatch):
    monkeypatch.delenv("DEFAULT_OWNER_EMAIL", raising=False)
    payload = normalize_workflow_for_publish(WorkflowDefinition(name="orders"))

    assert payload["name"] == "orders"
    assert payload["version"] == 1
    assert payload["description"] == ""
    assert payload["tasks"] == []
    assert payload["inputParameters"] == []
    assert payload["outputParameters"] == {}
    assert payload["restartable"] is True
    assert payload["workflowStatusListenerEnabled"] is False
    assert payload["schemaVersion"] == 2
    assert payload["timeoutSeconds"] == 3600
    assert payload["timeoutPolicy"] == "TIME_OUT_WF"
    assert payload["ownerEmail"] == "studio@example.com"


def test_owner_email_from_environment(monkeypatch):
    monkeypatch.setenv("DEFAULT_OWNER_EMAIL", "ops@example.com")
    assert normalize_workflow_for_publish({"name": "wf"})["ownerEmail"] == "ops@example.com"


def test_authored_values_kept():
    payload = normalize_workflow_for_publish({
        "name": "wf",
        "version": 0,
        "restartable": False,
        "ownerEmail": "me@example.com",
        "failureWorkflow": "cleanup",
    })
    assert payload["version"] == 0
    assert payload["restartable"] is False
    assert payload["ownerEmail"] == "me@example.com"
    assert payload["failureWorkflow"] == "cleanup"


def test_non_list_tasks_replaced():
    assert normalize_workflow_for_publish({"name": "wf", "tasks": "nope"})["tasks"] == []


def test_wrap_is_idempotent():
    wrapped = wrap_workflow_for_publish({"name": "wf"})
    assert wrapped == [{"name": "wf"}]
    assert wrap_workflow_for_publish(wrapped) is wrapped


def test_prepare_normalized_definition():
    definition = normalize([make_node("a", "SIMPLE", "A")], name="orders")
    body = prepare_workflow_for_publish(definition)

    assert isinstance(body, list) and len(body) == 1
    task = body[0]["tasks"][0]
    assert task["taskReferenceName"] == "a"
    assert task["description"] is None
    assert "status" not in task
