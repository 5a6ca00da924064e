# schemas/workflow_definition.py
from __future__ import annotations
from typing import List, Optional, Dict, Any, Iterator, Iterable, Union
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------- Core Enums ----------

class TaskType(str, Enum):
    SIMPLE = "SIMPLE"
    HTTP = "HTTP"
    DECISION = "DECISION"
    SWITCH = "SWITCH"
    FORK_JOIN = "FORK_JOIN"
    FORK_JOIN_DYNAMIC = "FORK_JOIN_DYNAMIC"
    JOIN = "JOIN"
    EXCLUSIVE_JOIN = "EXCLUSIVE_JOIN"
    DO_WHILE = "DO_WHILE"
    DYNAMIC = "DYNAMIC"
    TERMINATE = "TERMINATE"
    SUB_WORKFLOW = "SUB_WORKFLOW"
    START_WORKFLOW = "START_WORKFLOW"
    SET_VARIABLE = "SET_VARIABLE"
    WAIT = "WAIT"
    EVENT = "EVENT"
    INLINE = "INLINE"
    HUMAN = "HUMAN"
    NOOP = "NOOP"
    JSON_JQ_TRANSFORM = "JSON_JQ_TRANSFORM"
    KAFKA_PUBLISH = "KAFKA_PUBLISH"

class TaskStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    FAILED_WITH_TERMINAL_ERROR = "FAILED_WITH_TERMINAL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    SKIPPED = "SKIPPED"
    CANCELED = "CANCELED"

# ---------- Task Tree Models ----------

class WorkflowTask(BaseModel):
    """One step of a workflow definition, in the engine's wire format."""
    model_config = ConfigDict(extra="allow")

    name: str = "Unnamed Task"
    taskReferenceName: str
    type: str
    description: Optional[str] = None
    inputParameters: Dict[str, Any] = Field(default_factory=dict)
    outputParameters: Optional[Dict[str, Any]] = None
    optional: bool = False
    asyncComplete: bool = False
    startDelay: int = 0
    retryCount: Optional[int] = None
    rateLimited: Optional[bool] = None

    # SWITCH / DECISION
    evaluatorType: Optional[str] = None
    expression: Optional[str] = None
    scriptExpression: Optional[str] = None
    decisionCases: Optional[Dict[str, List[WorkflowTask]]] = None
    defaultCase: Optional[List[WorkflowTask]] = None

    # FORK_JOIN / JOIN
    forkTasks: Optional[List[List[WorkflowTask]]] = None
    joinOn: Optional[List[str]] = None
    defaultExclusiveJoinTask: Optional[List[str]] = None

    # DO_WHILE
    loopCondition: Optional[str] = None
    loopOver: Optional[List[WorkflowTask]] = None

    # DYNAMIC / FORK_JOIN_DYNAMIC
    dynamicTaskNameParam: Optional[str] = None
    dynamicForkTasksParam: Optional[str] = None
    dynamicForkTasksInputParamName: Optional[str] = None

    sink: Optional[str] = None
    subWorkflowParam: Optional[Dict[str, Any]] = None
    taskDefinition: Optional[Dict[str, Any]] = None

    # Execution overlay, never authored
    status: Optional[str] = None

    @field_validator("type")
    @classmethod
    def type_must_be_present(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("task type must be a non-empty string")
        return value

    @property
    def label(self) -> str:
        return self.name or self.taskReferenceName

    def child_lists(self) -> List[List[WorkflowTask]]:
        """All nested task lists in author order: cases, default, branches, loop body."""
        lists: List[List[WorkflowTask]] = []
        if self.decisionCases:
            lists.extend(self.decisionCases.values())
        if self.defaultCase:
            lists.append(self.defaultCase)
        if self.forkTasks:
            lists.extend(self.forkTasks)
        if self.loopOver:
            lists.append(self.loopOver)
        return lists

class WorkflowDefinition(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = "Unnamed Workflow"
    description: Optional[str] = None
    version: int = 1
    tasks: List[WorkflowTask] = Field(default_factory=list)
    inputParameters: List[str] = Field(default_factory=list)
    outputParameters: Dict[str, Any] = Field(default_factory=dict)
    schemaVersion: int = 2
    restartable: bool = True
    workflowStatusListenerEnabled: bool = False
    ownerEmail: Optional[str] = None
    ownerApp: Optional[str] = None
    timeoutPolicy: str = "TIME_OUT_WF"
    timeoutSeconds: int = 3600
    createdBy: Optional[str] = None
    updatedBy: Optional[str] = None
    inputTemplate: Optional[Dict[str, Any]] = None
    accessPolicy: Optional[Dict[str, Any]] = None
    failureWorkflow: Optional[str] = None
    variables: Optional[Dict[str, Any]] = None

# ---------- Editor-side Models ----------

class EditorNode(BaseModel):
    """
    A node as stored by the designer canvas.

    Either flat (``taskType``/``label``/``config`` on the node itself) or a
    React Flow node whose ``data`` envelope carries those keys. When ``data``
    is present, the node-level ``type`` names the canvas component and is
    not a task type.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    type: Optional[str] = None
    position: Optional[Dict[str, float]] = None
    data: Optional[Dict[str, Any]] = None

    taskType: Optional[str] = None
    label: Optional[str] = None
    taskName: Optional[str] = None
    description: Optional[str] = None
    inputParameters: Optional[Dict[str, Any]] = None
    config: Optional[Dict[str, Any]] = None

    def descriptor(self) -> Dict[str, Any]:
        """Task-bearing fields of the node, resolved from the envelope if any."""
        if self.data is not None:
            return dict(self.data)
        return {
            key: value
            for key, value in {
                "type": self.type,
                "taskType": self.taskType,
                "label": self.label,
                "taskName": self.taskName,
                "description": self.description,
                "inputParameters": self.inputParameters,
                "config": self.config,
            }.items()
            if value is not None
        }

class WorkflowSettings(BaseModel):
    model_config = ConfigDict(extra="allow")

    description: Optional[str] = None
    version: Optional[int] = None
    timeoutSeconds: Optional[int] = None
    timeoutPolicy: Optional[str] = None
    restartable: Optional[bool] = None
    schemaVersion: Optional[int] = None
    workflowStatusListenerEnabled: Optional[bool] = None
    inputParameters: Optional[List[str]] = None
    outputParameters: Optional[Dict[str, Any]] = None
    createdBy: Optional[str] = None
    updatedBy: Optional[str] = None
    ownerEmail: Optional[str] = None
    ownerApp: Optional[str] = None
    inputTemplate: Optional[Dict[str, Any]] = None
    accessPolicy: Optional[Dict[str, Any]] = None
    failureWorkflow: Optional[str] = None
    variables: Optional[Dict[str, Any]] = None

class LocalWorkflow(WorkflowSettings):
    """Designer-side workflow: canvas nodes plus metadata, settings block wins."""
    name: Optional[str] = None
    nodes: List[EditorNode] = Field(default_factory=list)
    settings: WorkflowSettings = Field(default_factory=WorkflowSettings)

# ---------- Execution Models ----------

class ExecutionTask(BaseModel):
    model_config = ConfigDict(extra="allow")

    taskId: Optional[str] = None
    referenceTaskName: str
    taskType: Optional[str] = None
    status: Optional[str] = None
    startTime: Optional[int] = None
    endTime: Optional[int] = None

class WorkflowExecution(BaseModel):
    model_config = ConfigDict(extra="allow")

    workflowId: str
    workflowName: Optional[str] = None
    status: Optional[str] = None
    tasks: List[ExecutionTask] = Field(default_factory=list)
    startTime: Optional[int] = None
    endTime: Optional[int] = None

# ---------- Serialization ----------

def to_payload(model: BaseModel) -> Dict[str, Any]:
    """
    Serialize for the engine. Fields that were set, including those set to
    an explicit null, are kept; fields never set stay omitted.
    """
    return model.model_dump(exclude_unset=True)

# ---------- Validation Helpers ----------

def iter_tasks(tasks: Iterable[WorkflowTask]) -> Iterator[WorkflowTask]:
    """Depth-first walk over a task tree in author order."""
    for task in tasks:
        yield task
        for child_list in task.child_lists():
            yield from iter_tasks(child_list)

def find_duplicate_reference_names(tasks: Iterable[WorkflowTask]) -> List[str]:
    seen: Dict[str, int] = {}
    duplicates: List[str] = []
    for task in iter_tasks(tasks):
        ref = task.taskReferenceName
        seen[ref] = seen.get(ref, 0) + 1
        if seen[ref] == 2:
            duplicates.append(ref)
    return duplicates

def validate_task_tree(tasks: Union[WorkflowDefinition, List[WorkflowTask]]) -> List[str]:
    """
    Structural checks on a task tree:
    - taskReferenceName unique across the whole nested tree
    - every JOIN joinOn entry names a task somewhere in the tree
    """
    if isinstance(tasks, WorkflowDefinition):
        tasks = tasks.tasks

    errs: List[str] = []
    for ref in find_duplicate_reference_names(tasks):
        errs.append(f"taskReferenceName '{ref}' is used more than once")

    known_refs = {t.taskReferenceName for t in iter_tasks(tasks)}
    for task in iter_tasks(tasks):
        if task.type.upper() == TaskType.JOIN.value and task.joinOn:
            for ref in task.joinOn:
                if ref not in known_refs:
                    errs.append(
                        f"JOIN task '{task.taskReferenceName}' waits on unknown task '{ref}'"
                    )
    return errs
