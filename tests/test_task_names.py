from datetime import datetime
import random
import re

from services.task_names import (
    generate_unique_name, generate_unique_task_name, generate_unique_workflow_name,
    next_reference_name, sanitize_reference_name
)

NOW = datetime(2025, 11, 19, 14, 30, 45)


def test_unique_name_format():
    name = generate_unique_name("NewWorkflow", now=NOW, rng=random.Random(7))
    assert re.fullmatch(r"NewWorkflow_19112025143045_\d{3}", name)


def test_workflow_and_task_prefixes():
    assert generate_unique_workflow_name(now=NOW).startswith("NewWorkflow_19112025143045_")
    assert generate_unique_task_name("HTTP", now=NOW).startswith("HTTP_Task_19112025143045_")


def test_sanitize_reference_name():
    assert sanitize_reference_name("  Fetch Data! ") == "fetch_data"
    assert sanitize_reference_name("***") == "task"


def test_next_reference_name():
    assert next_reference_name("fetch", []) == "fetch"
    assert next_reference_name("Fetch Data", ["fetch_data", "fetch_data_2"]) == "fetch_data_3"
