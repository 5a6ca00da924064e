"""
JSON payload validation for the task form editors.

Reports the line (and column, where the decoder knows it) of the first
syntax error so the editor can highlight it.
"""

from typing import Optional
from dataclasses import dataclass, asdict
import json


@dataclass
class JsonValidationResult:
    is_valid: bool
    error_message: str = ""
    error_line: Optional[int] = None
    error_column: Optional[int] = None

    def to_dict(self):
        return asdict(self)


def validate_json_string(value: str) -> JsonValidationResult:
    """Validate JSON text; an empty or whitespace-only string counts as valid."""
    if value.strip() == "":
        return JsonValidationResult(is_valid=True)

    try:
        json.loads(value)
    except json.JSONDecodeError as e:
        return JsonValidationResult(
            is_valid=False,
            error_message=f"Line {e.lineno}, column {e.colno}: {e.msg}",
            error_line=e.lineno,
            error_column=e.colno,
        )

    return JsonValidationResult(is_valid=True)
