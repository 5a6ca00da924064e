"""
Task Catalog

The studio's library of task types (worker tasks, operators, system tasks)
and the field catalogs the normalizer works from: which task fields the
engine accepts, which keys are editor-only, and which defaults each task
type must carry before it can be published.
"""

from typing import Dict, List, Any, Optional, FrozenSet
from dataclasses import dataclass
from enum import Enum
import copy

class TaskCategory(str, Enum):
    WORKER = "worker"
    OPERATOR = "operator"
    SYSTEM = "system"

@dataclass(frozen=True)
class TaskTypeInfo:
    id: str
    name: str
    description: str
    type: str
    category: TaskCategory
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "category": self.category.value,
            "color": self.color,
        }

WORKER_COLOR = "#00bcd4"
OPERATOR_COLOR = "#9c27b0"
SYSTEM_COLOR = "#ff9800"

TASK_LIBRARY: List[TaskTypeInfo] = [
    # Worker tasks
    TaskTypeInfo("SIMPLE", "Simple Task", "Execute a simple task with custom business logic",
                 "SIMPLE", TaskCategory.WORKER, WORKER_COLOR),

    # Operators
    TaskTypeInfo("DO_WHILE", "Do While", "Loop until condition is met",
                 "DO_WHILE", TaskCategory.OPERATOR, OPERATOR_COLOR),
    TaskTypeInfo("DYNAMIC", "Dynamic", "Execute a task determined dynamically at runtime",
                 "DYNAMIC", TaskCategory.OPERATOR, OPERATOR_COLOR),
    TaskTypeInfo("FORK_JOIN", "Fork/Join", "Execute tasks in parallel and wait for completion",
                 "FORK_JOIN", TaskCategory.OPERATOR, OPERATOR_COLOR),
    TaskTypeInfo("FORK_JOIN_DYNAMIC", "Dynamic Fork/Join", "Execute dynamic number of parallel tasks",
                 "FORK_JOIN_DYNAMIC", TaskCategory.OPERATOR, OPERATOR_COLOR),
    TaskTypeInfo("JOIN", "Join", "Wait for multiple tasks to complete",
                 "JOIN", TaskCategory.OPERATOR, OPERATOR_COLOR),
    TaskTypeInfo("SET_VARIABLE", "Set Variable", "Set workflow variables",
                 "SET_VARIABLE", TaskCategory.OPERATOR, OPERATOR_COLOR),
    TaskTypeInfo("START_WORKFLOW", "Start Workflow", "Start another workflow asynchronously",
                 "START_WORKFLOW", TaskCategory.OPERATOR, OPERATOR_COLOR),
    TaskTypeInfo("SUB_WORKFLOW", "Sub Workflow", "Execute a sub-workflow",
                 "SUB_WORKFLOW", TaskCategory.OPERATOR, OPERATOR_COLOR),
    TaskTypeInfo("SWITCH", "Switch", "Conditional branching logic",
                 "SWITCH", TaskCategory.OPERATOR, OPERATOR_COLOR),
    TaskTypeInfo("TERMINATE", "Terminate", "Terminate the workflow execution",
                 "TERMINATE", TaskCategory.OPERATOR, "#f44336"),

    # System tasks
    TaskTypeInfo("EVENT", "Event", "Wait for an external event",
                 "EVENT", TaskCategory.SYSTEM, SYSTEM_COLOR),
    TaskTypeInfo("HTTP", "HTTP", "Make HTTP API calls",
                 "HTTP", TaskCategory.SYSTEM, SYSTEM_COLOR),
    TaskTypeInfo("HUMAN", "Human", "Pause workflow and wait for external signal",
                 "HUMAN", TaskCategory.SYSTEM, SYSTEM_COLOR),
    TaskTypeInfo("INLINE", "Inline", "Execute inline code",
                 "INLINE", TaskCategory.SYSTEM, SYSTEM_COLOR),
    TaskTypeInfo("JSON_JQ_TRANSFORM", "JSON JQ Transform", "Transform JSON using JQ expressions",
                 "JSON_JQ_TRANSFORM", TaskCategory.SYSTEM, SYSTEM_COLOR),
    TaskTypeInfo("KAFKA_PUBLISH", "Kafka Publish", "Publish messages to Kafka",
                 "KAFKA_PUBLISH", TaskCategory.SYSTEM, SYSTEM_COLOR),
    TaskTypeInfo("NOOP", "No-Op", "No operation - placeholder task",
                 "NOOP", TaskCategory.SYSTEM, SYSTEM_COLOR),
    TaskTypeInfo("WAIT", "Wait", "Wait for a specified duration",
                 "WAIT", TaskCategory.SYSTEM, SYSTEM_COLOR),
]

# Fields accepted by the engine's WorkflowTaskInput
VALID_TASK_FIELDS: FrozenSet[str] = frozenset({
    "name",
    "taskReferenceName",
    "type",
    "workflowTaskType",
    "description",
    "inputParameters",
    "outputParameters",
    "optional",
    "asyncComplete",
    "retryCount",
    "startDelay",
    "rateLimited",
    "evaluatorType",
    "expression",
    "scriptExpression",
    "decisionCases",
    "defaultCase",
    "forkTasks",
    "joinOn",
    "defaultExclusiveJoinTask",
    "loopCondition",
    "loopOver",
    "dynamicForkTasksParam",
    "dynamicForkTasksInputParamName",
    "dynamicTaskNameParam",
    "sink",
    "subWorkflowParam",
    "taskDefinition",
})

# Canvas/graph bookkeeping, never published
EXCLUDED_FIELDS: FrozenSet[str] = frozenset({
    "taskRefId",
    "nodeId",
    "id",
    "label",
    "taskName",
    "taskType",
    "x",
    "y",
    "position",
    "data",
    "config",
    "__typename",
})

# Task-specific request objects whose keys belong in inputParameters
REQUEST_FIELDS: FrozenSet[str] = frozenset({"http_request", "kafka_request"})

# Slots the engine expects to see as explicit null rather than omitted
NULLABLE_FIELDS: List[str] = [
    "description",
    "retryCount",
    "rateLimited",
    "evaluatorType",
    "expression",
    "scriptExpression",
    "decisionCases",
    "defaultCase",
    "forkTasks",
    "joinOn",
    "loopCondition",
    "loopOver",
    "dynamicTaskNameParam",
    "sink",
    "subWorkflowParam",
    "outputParameters",
    "defaultExclusiveJoinTask",
    "dynamicForkTasksParam",
    "dynamicForkTasksInputParamName",
]

BASE_DEFAULTS: Dict[str, Any] = {
    "optional": False,
    "asyncComplete": False,
    "inputParameters": {},
    "startDelay": 0,
}

TYPE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "DO_WHILE": {
        "loopCondition": "True",
        "loopOver": [],
    },
    "FORK_JOIN": {
        "forkTasks": [[]],
    },
    # DECISION (legacy form of SWITCH) is published as authored, no defaults
    "SWITCH": {
        "expression": "${workflow.input}",
        "evaluatorType": "value-param",
        "decisionCases": {},
    },
    "DYNAMIC": {
        "dynamicTaskNameParam": "taskName",
    },
}

def type_defaults(task_type: str) -> Dict[str, Any]:
    """Fresh copy of the per-type defaults (empty for types without any)."""
    return copy.deepcopy(TYPE_DEFAULTS.get(task_type, {}))

def required_fields_for(task_type: str) -> List[str]:
    """Fields that carry a non-null value on every published task of this type."""
    return ["name", "taskReferenceName", "type"] + list(BASE_DEFAULTS) + list(TYPE_DEFAULTS.get(task_type, {}))

def get_task_type_info(type_or_id: str) -> Optional[TaskTypeInfo]:
    for info in TASK_LIBRARY:
        if info.id == type_or_id or info.type == type_or_id:
            return info
    return None

def list_task_types(category: Optional[TaskCategory] = None) -> List[TaskTypeInfo]:
    if category is None:
        return list(TASK_LIBRARY)
    return [info for info in TASK_LIBRARY if info.category == category]
