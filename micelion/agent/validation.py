"""Cleanup and structural validation of model output.

Models sometimes wrap their JSON in a markdown code fence despite being told
not to. ``strip_code_fences`` removes one optional opening fence line and one
optional closing fence line; fences inside the content are left alone.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import ValidationError

from micelion.exceptions import PlanValidationError
from micelion.schemas import Plan


_OPENING_FENCE = re.compile(r"\A\s*```[\w+-]*[ \t]*\r?\n?")
_CLOSING_FENCE = re.compile(r"\r?\n?[ \t]*```\s*\Z")


def strip_code_fences(text: str) -> str:
    """Remove a leading and a trailing markdown fence line, if present."""
    text = _OPENING_FENCE.sub("", text, count=1)
    text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def _format_loc(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


def validate_plan(value: Any) -> Plan:
    """Validate a decoded JSON value against the Plan structure.

    Raises:
        PlanValidationError: listing every failing path
    """
    try:
        return Plan.model_validate(value)
    except ValidationError as e:
        issues = [(_format_loc(err["loc"]), err["msg"]) for err in e.errors()]
        raise PlanValidationError(issues) from e
