"""Shared builders for task trees and editor nodes."""
import pytest


def make_task(ref, task_type="SIMPLE", name=None, **extra):
    task = {"name": name or ref.title(), "taskReferenceName": ref, "type": task_type}
    task.update(extra)
    return task


def make_node(node_id, task_type=None, label=None, config=None, **extra):
    node = {"id": node_id, "position": {"x": 10, "y": 20}}
    if task_type is not None:
        node["taskType"] = task_type
    if label is not None:
        node["label"] = label
    if config is not None:
        node["config"] = config
    node.update(extra)
    return node


@pytest.fixture
def nested_nodes():
    """A loop containing a fork containing a switch containing a loop."""
    inner_loop = make_task(
        "inner_loop", "DO_WHILE",
        loopCondition="$.inner_loop['iteration'] < 2",
        loopOver=[make_task("deep", position={"x": 1, "y": 1}, label="Deep")],
    )
    switch = make_task(
        "route", "SWITCH",
        expression="$.kind",
        evaluatorType="javascript",
        decisionCases={"a": [inner_loop], "b": [make_task("b_task")]},
        defaultCase=[make_task("fallback")],
    )
    fork = make_task("fan_out", "FORK_JOIN", forkTasks=[[switch], [make_task("side")]])
    return [
        make_node("prepare", "SIMPLE", "Prepare", config={"inputParameters": {"x": 1}}),
        make_node("outer_loop", "DO_WHILE", "Outer Loop", config={
            "loopCondition": "$.outer_loop['iteration'] < 3",
            "loopOver": [fork],
        }),
        make_node("join_all", "JOIN", "Join All", config={"joinOn": ["side"]}),
    ]
