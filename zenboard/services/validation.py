# Rev 0.3.0
"""Input checks run before any resolver or store call."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, Optional

from ..models.errors import ValidationError
from ..models.types import ENTITY_TYPES, PROJECT_TYPES, TRACKING_STATES

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def check_kind(kind: str) -> str:
    if kind not in ENTITY_TYPES:
        raise ValidationError(f"unknown entity kind {kind!r}")
    return kind


def check_project_type(value: str) -> str:
    if value not in PROJECT_TYPES:
        raise ValidationError(f"project type must be one of {PROJECT_TYPES}, got {value!r}")
    return value


def check_color(value: str) -> str:
    if not _HEX_COLOR.match(value or ""):
        raise ValidationError(f"color must look like #rrggbb, got {value!r}")
    return value


def check_duration(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"duration_minutes must be an integer, got {value!r}")
    if value <= 0:
        raise ValidationError(f"duration_minutes must be > 0, got {value}")
    return value


def check_flag(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false, got {value!r}")
    return value


def check_tracking_state(value: str) -> str:
    if value not in TRACKING_STATES:
        raise ValidationError(f"tracking state must be one of {TRACKING_STATES}, got {value!r}")
    return value


def check_start(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and not isinstance(value, datetime):
        raise ValidationError(f"start_date must be a datetime or None, got {type(value).__name__}")
    return value


def check_week_start(value: date) -> date:
    if isinstance(value, datetime) or not isinstance(value, date):
        raise ValidationError("week start must be a calendar date")
    if value.weekday() != 0:
        raise ValidationError(f"week start {value.isoformat()} is not a Monday")
    return value


def clean_task_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the user-editable task fields of a partial update."""
    out = dict(fields)
    if "title" in out:
        out["title"] = require_text(out["title"], "title")
    if "duration_minutes" in out:
        out["duration_minutes"] = check_duration(out["duration_minutes"])
    if "start_date" in out:
        out["start_date"] = check_start(out["start_date"])
    return out


def clean_project_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(fields)
    if "name" in out:
        out["name"] = require_text(out["name"], "name")
    if "type" in out:
        out["type"] = check_project_type(out["type"])
    if "color" in out:
        out["color"] = check_color(out["color"])
    return out
