"""Utility functions."""
import re
from datetime import datetime
from typing import Optional

_NON_ID_CHARS_RE = re.compile(r"[^a-z0-9_]")
_SEARCH_STRIP_RE = re.compile(r"[\s\-_.,'()/]+")


def camel_case_id(name: str) -> str:
    """Derive a stable exercise/routine id from a display name ('Bench Press' -> 'bench_press')."""
    return _NON_ID_CHARS_RE.sub("", name.lower().replace(" ", "_"))


def normalize_for_search(text: Optional[str]) -> str:
    """Lowercase and strip whitespace and punctuation so 'Pull-Up' matches 'pullup'."""
    if not text:
        return ""
    return _SEARCH_STRIP_RE.sub("", text.lower())


def date_string(moment: datetime) -> str:
    """Local calendar date of ``moment`` as 'yyyy-mm-dd'."""
    return moment.strftime("%Y-%m-%d")


def format_duration(seconds: float) -> str:
    """Format elapsed seconds as '1h 2m 3s', '2m 3s' or '3s'."""
    total = max(0, int(seconds))
    if total >= 3600:
        return f"{total // 3600}h {(total % 3600) // 60}m {total % 60}s"
    if total >= 60:
        return f"{total // 60}m {total % 60}s"
    return f"{total}s"


def format_set_time(seconds: int) -> str:
    """Format a timed set as 'm:ss', or 's s' under a minute."""
    minutes, remaining = divmod(max(0, seconds), 60)
    if minutes > 0:
        return f"{minutes}:{remaining:02d}"
    return f"{remaining} s"
