"""Display helpers for estimated and actual task effort."""

from __future__ import annotations

import math
from typing import Optional


def format_minutes(minutes: Optional[int]) -> str:
    """Render minutes as ``"2h 30m"``, ``"45m"`` or ``"3h"``; missing or zero is ``"0m"``."""

    if not minutes:
        return "0m"
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def time_progress(estimated: Optional[int], actual: Optional[int]) -> int:
    """Actual effort as a whole percentage of the estimate, capped at 100."""

    if not estimated or not actual:
        return 0
    # Halves round up.
    return min(math.floor(actual * 100 / estimated + 0.5), 100)
