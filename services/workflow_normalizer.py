"""
Deterministic Workflow Normalizer

Compiles the designer's canvas nodes into the nested, ordered task tree the
orchestration engine accepts. Editor-only fields are stripped, task-specific
request objects are folded into inputParameters, nested loop bodies, fork
branches and decision cases are cleaned to any depth, and every task gets
the required-field defaults of its type.
"""

from typing import List, Dict, Any, Iterable, Optional, Union
import copy
import logging

from pydantic import ValidationError

from schemas.workflow_definition import (
    EditorNode, LocalWorkflow, WorkflowDefinition, find_duplicate_reference_names
)
from services.task_catalog import (
    VALID_TASK_FIELDS, EXCLUDED_FIELDS, REQUEST_FIELDS,
    NULLABLE_FIELDS, BASE_DEFAULTS, type_defaults
)

logger = logging.getLogger(__name__)

NodeLike = Union[EditorNode, Dict[str, Any]]

class NormalizationError(Exception):
    """Raised when editor nodes cannot be compiled into a publishable task tree"""
    pass

class WorkflowNormalizer:
    """
    Pure transformation from editor nodes to a WorkflowDefinition.
    Inputs are never mutated; output order always equals input order.
    """

    def __init__(self, valid_fields: Optional[Iterable[str]] = None, check_references: bool = True):
        self.valid_fields = frozenset(valid_fields) if valid_fields is not None else VALID_TASK_FIELDS
        self.excluded_fields = EXCLUDED_FIELDS
        self.check_references = check_references

    def normalize(self, nodes: Iterable[NodeLike], **metadata: Any) -> WorkflowDefinition:
        """
        Convert editor nodes to a workflow definition.

        Args:
            nodes: Editor nodes in execution order
            **metadata: Workflow-level fields passed through to the definition

        Returns:
            WorkflowDefinition ready for publishing

        Raises:
            NormalizationError: a task has no resolvable type, is malformed,
                or (with check_references) reuses a taskReferenceName
        """
        tasks = [self._node_to_task(self._coerce_node(node)) for node in nodes]

        try:
            definition = WorkflowDefinition.model_validate({**copy.deepcopy(metadata), "tasks": tasks})
        except ValidationError as e:
            raise NormalizationError(f"Normalized workflow is not a valid definition: {e}") from e

        if self.check_references:
            duplicates = find_duplicate_reference_names(definition.tasks)
            if duplicates:
                raise NormalizationError(
                    f"taskReferenceName values must be unique across the workflow; duplicated: {', '.join(duplicates)}"
                )

        logger.info(f"Normalized {len(tasks)} top-level tasks for workflow '{definition.name}'")
        return definition

    def convert_local_workflow(self, workflow: Union[LocalWorkflow, Dict[str, Any]]) -> WorkflowDefinition:
        """Convert a designer workflow, merging its settings block over its own metadata."""
        if not isinstance(workflow, LocalWorkflow):
            workflow = LocalWorkflow.model_validate(workflow)
        settings = workflow.settings

        metadata: Dict[str, Any] = {
            "name": workflow.name or "Unnamed Workflow",
            "description": _first(workflow.description, settings.description, default=""),
            "version": _first(settings.version, workflow.version, default=1),
            "inputParameters": _first(settings.inputParameters, workflow.inputParameters, default=[]),
            "outputParameters": _first(settings.outputParameters, workflow.outputParameters, default={}),
            "timeoutSeconds": _first(settings.timeoutSeconds, workflow.timeoutSeconds, default=3600),
            "restartable": _first_set(settings.restartable, workflow.restartable, default=True),
            "schemaVersion": _first(settings.schemaVersion, workflow.schemaVersion, default=2),
            "timeoutPolicy": _first(settings.timeoutPolicy, workflow.timeoutPolicy, default="TIME_OUT_WF"),
            "workflowStatusListenerEnabled": _first(
                settings.workflowStatusListenerEnabled, workflow.workflowStatusListenerEnabled, default=False
            ),
        }

        # Only carried when authored somewhere
        for field in ("createdBy", "updatedBy", "ownerEmail", "ownerApp",
                      "inputTemplate", "accessPolicy", "failureWorkflow", "variables"):
            value = _first(getattr(workflow, field), getattr(settings, field))
            if value:
                metadata[field] = value

        return self.normalize(workflow.nodes, **metadata)

    # ---------- Node level ----------

    def _coerce_node(self, node: NodeLike) -> EditorNode:
        if isinstance(node, EditorNode):
            return node
        try:
            return EditorNode.model_validate(node)
        except ValidationError as e:
            raise NormalizationError(f"Invalid editor node: {e}") from e

    def _node_to_task(self, node: EditorNode) -> Dict[str, Any]:
        descriptor = copy.deepcopy(node.descriptor())
        label = descriptor.get("label") if isinstance(descriptor.get("label"), str) else node.id

        config = descriptor.get("config") or {}
        if not isinstance(config, dict):
            raise NormalizationError(f"Task \"{label}\" has a config that is not an object")

        clean_config = self._clean_task_fields(config, label)

        task_type = descriptor.get("taskType") or descriptor.get("type") or clean_config.get("type")
        if not task_type:
            raise NormalizationError(
                f"Task \"{label}\" is missing a required 'type' field. "
                f"All tasks must have a valid type (e.g., HTTP, SIMPLE, EVENT, WAIT, etc.)"
            )

        task: Dict[str, Any] = {
            "description": descriptor.get("description"),
            "inputParameters": clean_config.get("inputParameters") or descriptor.get("inputParameters") or {},
        }
        task.update(clean_config)
        task["name"] = task.get("name") or descriptor.get("taskName") or descriptor.get("label") or "Unnamed Task"
        task["taskReferenceName"] = clean_config.get("taskReferenceName") or node.id
        task["type"] = task_type

        return self._apply_defaults(task)

    # ---------- Field level ----------

    def _clean_task_fields(self, obj: Dict[str, Any], label: str) -> Dict[str, Any]:
        """Keep catalog fields, fold request objects into inputParameters, recurse into children."""
        clean: Dict[str, Any] = {}
        request_params: Dict[str, Any] = {}

        for key, value in obj.items():
            if key in self.excluded_fields:
                continue
            if key in self.valid_fields:
                clean[key] = copy.deepcopy(value)
            elif key in REQUEST_FIELDS:
                if isinstance(value, dict):
                    request_params.update(copy.deepcopy(value))
            else:
                logger.debug(f"Dropping unknown field '{key}' from task \"{label}\"")

        if request_params:
            existing = clean.get("inputParameters")
            clean["inputParameters"] = {**(existing if isinstance(existing, dict) else {}), **request_params}

        return self._clean_operator_fields(clean, label)

    def _clean_operator_fields(self, clean: Dict[str, Any], label: str) -> Dict[str, Any]:
        loop_over = clean.get("loopOver")
        if loop_over is not None:
            if isinstance(loop_over, list):
                clean["loopOver"] = [self._nested_task(t, label) for t in loop_over]
            else:
                clean["loopOver"] = []

        fork_tasks = clean.get("forkTasks")
        if fork_tasks is not None:
            if isinstance(fork_tasks, list):
                clean["forkTasks"] = [
                    [self._nested_task(t, label) for t in branch] if isinstance(branch, list) else []
                    for branch in fork_tasks
                ]
            else:
                clean["forkTasks"] = None

        default_case = clean.get("defaultCase")
        if default_case is not None:
            entries = default_case if isinstance(default_case, list) else [default_case]
            clean["defaultCase"] = [self._nested_task(t, label) for t in entries]

        decision_cases = clean.get("decisionCases")
        if decision_cases is not None:
            if isinstance(decision_cases, dict):
                clean["decisionCases"] = {
                    str(case): [
                        self._nested_task(t, label)
                        for t in (case_tasks if isinstance(case_tasks, list) else [case_tasks])
                    ]
                    for case, case_tasks in decision_cases.items()
                }
            else:
                clean["decisionCases"] = None

        return clean

    def _nested_task(self, entry: Any, parent_label: str) -> Dict[str, Any]:
        if not isinstance(entry, dict):
            raise NormalizationError(f"Task \"{parent_label}\" contains a nested task that is not an object")

        # Editor-shaped entries carry their task under config/data, or are
        # bare descriptors keyed by canvas id
        if "config" in entry or "data" in entry or (
            "taskReferenceName" not in entry and ("id" in entry or "taskType" in entry)
        ):
            return self._node_to_task(self._coerce_node(entry))

        name = entry.get("name") or entry.get("taskReferenceName") or entry.get("label") or parent_label
        clean = self._clean_task_fields(entry, name)

        if not clean.get("type"):
            raise NormalizationError(
                f"Task \"{name}\" (inside \"{parent_label}\") is missing a required 'type' field."
            )
        if not clean.get("taskReferenceName"):
            raise NormalizationError(
                f"Task \"{name}\" (inside \"{parent_label}\") is missing a taskReferenceName."
            )
        if not clean.get("name"):
            clean["name"] = name
        return self._apply_defaults(clean)

    def _apply_defaults(self, task: Dict[str, Any]) -> Dict[str, Any]:
        result = dict(task)

        # The engine only reads 'type'
        result.pop("workflowTaskType", None)

        for field, default in BASE_DEFAULTS.items():
            if result.get(field) is None:
                result[field] = copy.deepcopy(default)
        if not result["inputParameters"]:
            result["inputParameters"] = {}

        for field in NULLABLE_FIELDS:
            result.setdefault(field, None)

        for field, default in type_defaults(str(result["type"]).upper()).items():
            if result.get(field) is None:
                result[field] = default

        return result

def _first(*values: Any, default: Any = None) -> Any:
    """First truthy value."""
    for value in values:
        if value:
            return value
    return default

def _first_set(*values: Any, default: Any = None) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return default

def normalize(nodes: Iterable[NodeLike], field_catalog: Optional[Iterable[str]] = None,
              **metadata: Any) -> WorkflowDefinition:
    """Normalize editor nodes with the given (or default) task field catalog."""
    return WorkflowNormalizer(valid_fields=field_catalog).normalize(nodes, **metadata)

def convert_local_workflow(workflow: Union[LocalWorkflow, Dict[str, Any]]) -> WorkflowDefinition:
    return WorkflowNormalizer().convert_local_workflow(workflow)
