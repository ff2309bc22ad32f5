#!/usr/bin/env python3
"""Field access for raw battle logs (one JSON object per battle)."""

import json
import math
from typing import Any, Optional

from errors import MalformedLog

# Battle log files, and anonymized output files, end with this
LOG_SUFFIX = ".log.json"


def parse_log(raw_text: str) -> dict[str, Any]:
    """Parse a raw log into a JSON object or raise MalformedLog."""
    try:
        parsed = json.loads(raw_text)
    except ValueError as e:
        raise MalformedLog(f"invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise MalformedLog(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def require_string(battle: dict[str, Any], field: str) -> str:
    value = battle.get(field)
    if not isinstance(value, str):
        raise MalformedLog(f"bad JSON for {field}: {value!r}")
    return value


def optional_string(battle: dict[str, Any], field: str) -> str:
    value = battle.get(field)
    return value if isinstance(value, str) else ""


def rating_value(value: Any) -> Optional[float]:
    """Numeric value of a rating field (numbers or numeric strings)."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
