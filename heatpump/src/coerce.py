"""
Value coercion for raw heat-pump field strings.

The controller reports every reading as display text, usually with a unit
suffix (``"45.3°C"``, ``"1.2 bar"``, ``"38,0 °C"``) and sometimes as a
sentinel word (``"Ein"``, ``"Aus"``, ``"---"``).  ``coerce`` extracts the
leading decimal number and returns it as a float, or ``None`` when there is
no number to extract.  It never raises.

Comma decimal separators are accepted: ``"38,0"`` coerces to ``38.0``.

CHANGELOG:
- 2026-10-12: Accept comma decimal separator (open question resolved)
- 2026-10-10: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import math
import re

_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+(?:[.,]\d*)?|[.,]\d+))")
"""Leading decimal number, with either ``.`` or ``,`` as separator."""


def coerce(raw: str | None) -> float | None:
    """Convert a raw field value into an optional float.

    Args:
        raw: Raw text as received from the controller, or ``None``.

    Returns:
        The parsed float, or ``None`` for empty, missing, or non-numeric
        input.
    """
    if not raw or not isinstance(raw, str):
        return None

    match = _LEADING_NUMBER.match(raw)
    if match is None:
        return None

    try:
        value = float(match.group(1).replace(",", "."))
    except ValueError:
        return None

    if not math.isfinite(value):
        return None
    return value
