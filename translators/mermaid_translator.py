"""
Mermaid Flowchart Translator

Converts a nested workflow task tree into Mermaid flowchart text.
Branch convergence, fork/join and loop wiring are handled here
deterministically: the same tree always yields the same node ids and lines.

Precondition: the input is a tree. Nesting deeper than ``max_depth`` is
rejected rather than followed.
"""

from typing import Dict, List, Any, Tuple, Optional, Union, Sequence, Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging
import re

from pydantic import ValidationError

from schemas.workflow_definition import (
    WorkflowTask, WorkflowDefinition, WorkflowExecution, TaskStatus, iter_tasks
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

TaskSource = Union[WorkflowDefinition, Sequence[Union[WorkflowTask, Mapping[str, Any]]]]

# (source node id, edge label)
Incoming = List[Tuple[str, Optional[str]]]

class DiagramRenderError(Exception):
    """Raised when a task tree cannot be rendered"""
    pass

class DiagramDirection(str, Enum):
    TD = "TD"
    LR = "LR"

@dataclass
class RenderContext:
    """Per-render state, passed explicitly through the recursion."""
    lines: List[str] = field(default_factory=list)
    next_index: int = 0
    depth: int = 0
    show_status: bool = False

    def new_id(self, base: str) -> str:
        node_id = f"{_sanitize_id(base)}_{self.next_index}"
        self.next_index += 1
        return node_id

@dataclass
class BranchResult:
    # Points the caller continues chaining from
    ends: List[str] = field(default_factory=list)
    # TERMINATE nodes; wired to End only
    terminals: List[str] = field(default_factory=list)

def _sanitize_id(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", value or "") or "task"

def coerce_tasks(source: TaskSource) -> List[WorkflowTask]:
    """Accept a definition, a mapping with "tasks", or a list of task models/mappings."""
    if isinstance(source, WorkflowDefinition):
        return list(source.tasks)
    if isinstance(source, Mapping):
        source = source.get("tasks") or []
    try:
        return [t if isinstance(t, WorkflowTask) else WorkflowTask.model_validate(t) for t in source]
    except ValidationError as e:
        raise DiagramRenderError(f"Invalid task tree: {e}") from e

class MermaidTranslator:
    """
    Deterministic translator from a workflow task tree to Mermaid flowchart text.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth

        # Shape delimiters per task type
        self.node_shapes: Dict[str, Tuple[str, str]] = {
            "DECISION": ("{", "}"),
            "SWITCH": ("{", "}"),
            "FORK_JOIN": ("[/", "/]"),
            "FORK": ("[/", "/]"),
            "JOIN": ("((", "))"),
            "EXCLUSIVE_JOIN": ("((", "))"),
            "CONVERGE": ("((", "))"),
            "LOOP_EXIT": ("((", "))"),
            "DO_WHILE": ("{{", "}}"),
            "TERMINATE": ("[", "]:::terminate"),
            "WAIT": ("[(", ")]"),
            "WAIT_FOR_SIGNAL": ("[(", ")]"),
            "WAIT_UNTIL": ("[(", ")]"),
            "EVENT": (">", "]"),
            "SIGNAL": (">", "]"),
            "SUB_WORKFLOW": ("[[", "]]"),
            "DYNAMIC": ("[\\", "/]"),
            "DYNAMIC_FORK": ("[\\", "/]"),
            "FORK_JOIN_DYNAMIC": ("[\\", "/]"),
        }
        self.default_shape = ("[", "]")

        self.status_classes: Dict[str, str] = {
            TaskStatus.COMPLETED.value: "completed",
            TaskStatus.FAILED.value: "failed",
            TaskStatus.FAILED_WITH_TERMINAL_ERROR.value: "failed",
            TaskStatus.IN_PROGRESS.value: "running",
            TaskStatus.SCHEDULED.value: "running",
            TaskStatus.TIMED_OUT.value: "timeout",
            TaskStatus.SKIPPED.value: "skipped",
            TaskStatus.CANCELED.value: "canceled",
        }

        self.class_defs = [
            "classDef default fill:#e1f5ff,stroke:#01579b,stroke-width:2px,color:#000",
            "classDef completed fill:#c8e6c9,stroke:#2e7d32,stroke-width:2px,color:#000",
            "classDef failed fill:#ffcdd2,stroke:#c62828,stroke-width:2px,color:#000",
            "classDef running fill:#fff9c4,stroke:#f57f17,stroke-width:2px,color:#000",
            "classDef timeout fill:#ffe0b2,stroke:#e65100,stroke-width:2px,color:#000",
            "classDef skipped fill:#f3e5f5,stroke:#6a1b9a,stroke-width:2px,color:#000",
            "classDef canceled fill:#eceff1,stroke:#455a64,stroke-width:2px,color:#000",
            "classDef terminate fill:#ffcdd2,stroke:#b71c1c,stroke-width:3px,color:#000",
        ]

    def translate(self, source: TaskSource, direction: Union[DiagramDirection, str] = DiagramDirection.TD,
                  show_status: bool = False) -> str:
        """
        Convert a task tree to Mermaid flowchart text.

        Args:
            source: A WorkflowDefinition, or a list of tasks (models or mappings)
            direction: "TD" (top-down) or "LR" (left-right)
            show_status: Emit status classes for tasks carrying a status

        Returns:
            Mermaid flowchart source
        """
        try:
            direction = DiagramDirection(direction)
        except ValueError:
            raise DiagramRenderError(f"Unsupported diagram direction: {direction!r}")

        tasks = coerce_tasks(source)
        ctx = RenderContext(show_status=show_status)
        ctx.lines.append(f"flowchart {direction.value}")

        if not tasks:
            ctx.lines.extend(["    Start([Start])", "    End([End])", "    Start --> End"])
            return "\n".join(ctx.lines)

        start_id = f"start_{ctx.next_index}"
        ctx.next_index += 1
        ctx.lines.append(f"    {start_id}([Start])")

        result = self._process_task_list(tasks, ctx, [(start_id, None)])

        end_id = f"end_{ctx.next_index}"
        ctx.next_index += 1
        ctx.lines.append(f"    {end_id}([End])")
        for node_id in result.ends + result.terminals:
            self._add_edge(ctx, node_id, end_id)

        ctx.lines.append("")
        ctx.lines.extend(f"    {class_def}" for class_def in self.class_defs)

        logger.debug(f"Rendered {ctx.next_index} diagram nodes from {len(tasks)} top-level tasks")
        return "\n".join(ctx.lines)

    # ---------- Recursion ----------

    def _process_task_list(self, tasks: Sequence[WorkflowTask], ctx: RenderContext,
                           incoming: Incoming) -> BranchResult:
        """Render an ordered task list; the first task is wired from `incoming`."""
        ctx.depth += 1
        if ctx.depth > self.max_depth:
            raise DiagramRenderError(
                f"Task tree is nested deeper than {self.max_depth} levels; is the input a tree?"
            )

        terminals: List[str] = []
        for task in tasks:
            node_id = ctx.new_id(task.taskReferenceName)
            self._add_node(ctx, node_id, task.type, task.label)
            for source_id, label in incoming:
                self._add_edge(ctx, source_id, node_id, label)

            if ctx.show_status and task.status:
                ctx.lines.append(f"    class {node_id} {self._get_status_class(task.status)}")

            result = self._process_task_node(task, node_id, ctx)
            terminals.extend(result.terminals)
            incoming = [(end_id, None) for end_id in result.ends]

        ctx.depth -= 1
        return BranchResult(ends=[source_id for source_id, _ in incoming], terminals=terminals)

    def _process_task_node(self, task: WorkflowTask, node_id: str, ctx: RenderContext) -> BranchResult:
        task_type = task.type.upper()

        if task_type in ("DECISION", "SWITCH"):
            return self._process_decision(task, node_id, ctx)
        if task_type == "FORK_JOIN":
            return self._process_fork_join(task, node_id, ctx)
        if task_type == "DO_WHILE":
            return self._process_do_while(task, node_id, ctx)
        if task_type == "TERMINATE":
            return BranchResult(ends=[], terminals=[node_id])
        return BranchResult(ends=[node_id])

    def _process_decision(self, task: WorkflowTask, node_id: str, ctx: RenderContext) -> BranchResult:
        branches: List[Tuple[str, List[WorkflowTask]]] = list((task.decisionCases or {}).items())
        if task.defaultCase:
            branches.append(("default", task.defaultCase))

        branch_ends: List[str] = []
        terminals: List[str] = []
        rendered = 0
        for case_value, case_tasks in branches:
            if not case_tasks:
                continue
            rendered += 1
            result = self._process_task_list(case_tasks, ctx, [(node_id, case_value)])
            branch_ends.extend(result.ends)
            terminals.extend(result.terminals)

        if rendered == 0:
            return BranchResult(ends=[node_id], terminals=terminals)

        # Two or more loose ends must converge into one continuation point
        if len(branch_ends) > 1:
            converge_id = f"{node_id}_converge"
            self._add_node(ctx, converge_id, "CONVERGE", "Join")
            for end_id in branch_ends:
                self._add_edge(ctx, end_id, converge_id)
            return BranchResult(ends=[converge_id], terminals=terminals)

        return BranchResult(ends=branch_ends, terminals=terminals)

    def _process_fork_join(self, task: WorkflowTask, node_id: str, ctx: RenderContext) -> BranchResult:
        join_id = f"{node_id}_join"
        join_label = f"Join: {', '.join(task.joinOn)}" if task.joinOn else "Join"
        self._add_node(ctx, join_id, "JOIN", join_label)

        terminals: List[str] = []
        rendered = 0
        for branch_index, branch in enumerate(task.forkTasks or []):
            if not branch:
                continue
            rendered += 1
            result = self._process_task_list(branch, ctx, [(node_id, f"branch {branch_index + 1}")])
            for end_id in result.ends:
                self._add_edge(ctx, end_id, join_id)
            terminals.extend(result.terminals)

        if rendered == 0:
            self._add_edge(ctx, node_id, join_id)

        return BranchResult(ends=[join_id], terminals=terminals)

    def _process_do_while(self, task: WorkflowTask, node_id: str, ctx: RenderContext) -> BranchResult:
        terminals: List[str] = []
        if task.loopOver:
            result = self._process_task_list(task.loopOver, ctx, [(node_id, None)])
            for end_id in result.ends:
                self._add_edge(ctx, end_id, node_id, "loop")
            terminals.extend(result.terminals)
        else:
            self._add_edge(ctx, node_id, node_id, "loop")

        exit_id = f"{node_id}_exit"
        self._add_node(ctx, exit_id, "LOOP_EXIT", "Exit")
        self._add_edge(ctx, node_id, exit_id, "exit")
        return BranchResult(ends=[exit_id], terminals=terminals)

    # ---------- Line emitters ----------

    def _add_node(self, ctx: RenderContext, node_id: str, task_type: str, label: str) -> None:
        ctx.lines.append(f"    {node_id}{self._get_node_shape(task_type, label)}")

    def _add_edge(self, ctx: RenderContext, source_id: str, target_id: str, label: Optional[str] = None) -> None:
        if label:
            ctx.lines.append(f"    {source_id} -->|{self._quote(label)}| {target_id}")
        else:
            ctx.lines.append(f"    {source_id} --> {target_id}")

    def _get_node_shape(self, task_type: str, label: str) -> str:
        opening, closing = self.node_shapes.get(task_type.upper(), self.default_shape)
        return f"{opening}{self._quote(label)}{closing}"

    def _get_status_class(self, status: str) -> str:
        return self.status_classes.get(status.upper(), "default")

    def _quote(self, text: str) -> str:
        return '"' + str(text).replace('"', "#quot;") + '"'

def apply_execution_status(source: TaskSource,
                           execution: Union[WorkflowExecution, Mapping[str, str]]) -> List[WorkflowTask]:
    """
    Copy a task tree with each task's status taken from an execution snapshot,
    matched by reference name. Unknown statuses are dropped.
    """
    if isinstance(execution, WorkflowExecution):
        statuses = {t.referenceTaskName: t.status for t in execution.tasks if t.status}
    else:
        statuses = dict(execution)

    valid = {status.value for status in TaskStatus}
    tasks = [t.model_copy(deep=True) for t in coerce_tasks(source)]
    for task in iter_tasks(tasks):
        status = statuses.get(task.taskReferenceName)
        if status is not None:
            task.status = status.upper() if status.upper() in valid else None
    return tasks

def render(source: TaskSource, direction: Union[DiagramDirection, str] = DiagramDirection.TD,
           show_status: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    return MermaidTranslator(max_depth=max_depth).translate(source, direction, show_status)
