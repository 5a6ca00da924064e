"""
Task and Workflow Name Service

Generates names for newly created workflows and tasks in the format
<prefix>_ddMMyyyyHHMMss_<3 random digits>, and derives collision-free
task reference names.
"""

from typing import Iterable, Optional
from datetime import datetime
import random
import re


def generate_unique_name(prefix: str, now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    """
    Generate a unique name with timestamp and random digits.

    Args:
        prefix: Name prefix, e.g. "NewWorkflow" or "HTTP_Task"
        now: Timestamp to use (defaults to the current local time)
        rng: Random source for the 3-digit suffix

    Returns:
        str: e.g. "NewWorkflow_19112025143045_742"
    """
    now = now or datetime.now()
    rng = rng or random
    return f"{prefix}_{now.strftime('%d%m%Y%H%M%S')}_{rng.randint(0, 999):03d}"


def generate_unique_workflow_name(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    return generate_unique_name("NewWorkflow", now, rng)


def generate_unique_task_name(task_type: str, now: Optional[datetime] = None,
                              rng: Optional[random.Random] = None) -> str:
    return generate_unique_name(f"{task_type}_Task", now, rng)


def sanitize_reference_name(name: str) -> str:
    """Reduce a display name to a reference-name friendly slug."""
    slug = re.sub(r"[^a-zA-Z0-9_]+", "_", name.strip()).strip("_").lower()
    return slug or "task"


def next_reference_name(base: str, existing: Iterable[str]) -> str:
    """
    Get the first free reference name for a base name: base, base_2, base_3, ...

    Args:
        base: Desired reference name (sanitized first)
        existing: Reference names already used in the workflow

    Returns:
        str: A reference name not present in existing
    """
    base = sanitize_reference_name(base)
    taken = set(existing)
    if base not in taken:
        return base

    suffix = 2
    while f"{base}_{suffix}" in taken:
        suffix += 1
    return f"{base}_{suffix}"
