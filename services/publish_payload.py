"""
Publish Payload Preparation

The engine's metadata endpoints (POST/PUT /api/metadata/workflow) take an
array of workflow definitions with every workflow-level field filled in.
"""

from typing import List, Dict, Any, Union
import os

from schemas.workflow_definition import WorkflowDefinition, to_payload

DEFAULT_OWNER_EMAIL = "studio@example.com"

def default_owner_email() -> str:
    return os.getenv("DEFAULT_OWNER_EMAIL", DEFAULT_OWNER_EMAIL)

def normalize_workflow_for_publish(workflow: Union[WorkflowDefinition, Dict[str, Any]]) -> Dict[str, Any]:
    """Fill workflow-level fields the engine needs to deserialize the definition."""
    data = to_payload(workflow) if isinstance(workflow, WorkflowDefinition) else dict(workflow)

    tasks = data.get("tasks")
    input_parameters = data.get("inputParameters")
    restartable = data.get("restartable")
    listener = data.get("workflowStatusListenerEnabled")
    version = data.get("version")

    normalized = dict(data)
    normalized.update({
        "name": data.get("name") or "Unnamed Workflow",
        "version": version if version is not None else 1,
        "description": data.get("description") or "",
        "tasks": tasks if isinstance(tasks, list) else [],
        "inputParameters": input_parameters if isinstance(input_parameters, list) else [],
        "outputParameters": data.get("outputParameters") or {},
        "restartable": restartable if restartable is not None else True,
        "workflowStatusListenerEnabled": listener if listener is not None else False,
        "schemaVersion": data.get("schemaVersion") or 2,
        "timeoutSeconds": data.get("timeoutSeconds") or 3600,
        "timeoutPolicy": data.get("timeoutPolicy") or "TIME_OUT_WF",
        "ownerEmail": data.get("ownerEmail") or default_owner_email(),
    })
    return normalized

def wrap_workflow_for_publish(workflow: Union[Dict[str, Any], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    return workflow if isinstance(workflow, list) else [workflow]

def prepare_workflow_for_publish(workflow: Union[WorkflowDefinition, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Normalize and wrap a definition, ready to be sent as the request body."""
    return wrap_workflow_for_publish(normalize_workflow_for_publish(workflow))
