from services.task_catalog import (
    TaskCategory, get_task_type_info, list_task_types, required_fields_for, type_defaults
)


def test_catalog_lookup():
    assert get_task_type_info("SWITCH").category == TaskCategory.OPERATOR
    assert get_task_type_info("UNKNOWN") is None
    assert [t.id for t in list_task_types(TaskCategory.WORKER)] == ["SIMPLE"]


def test_decision_has_no_type_defaults():
    assert type_defaults("DECISION") == {}
    assert "decisionCases" not in required_fields_for("DECISION")
    assert "decisionCases" in required_fields_for("SWITCH")


def test_type_defaults_are_fresh_copies():
    defaults = type_defaults("FORK_JOIN")
    defaults["forkTasks"][0].append("x")
    assert type_defaults("FORK_JOIN") == {"forkTasks": [[]]}
