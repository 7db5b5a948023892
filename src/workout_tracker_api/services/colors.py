"""Routine colour palette and assignment."""
from typing import Iterable, List, Optional, Sequence, Tuple

# (hex, name) in assignment order
ROUTINE_COLORS: List[Tuple[str, str]] = [
    ("#6B9CD6", "Blue"),
    ("#D67676", "Red"),
    ("#76D6A8", "Green"),
    ("#B576D6", "Purple"),
    ("#D6CF76", "Yellow"),
    ("#D676B5", "Pink"),
    ("#76C6D6", "Cyan"),
    ("#D6A876", "Orange"),
    ("#8FD676", "Lime"),
    ("#D69976", "Coral"),
    ("#76D6D6", "Teal"),
]

PALETTE: List[str] = [hex_value for hex_value, _ in ROUTINE_COLORS]


def color_by_index(index: int, palette: Sequence[str] = PALETTE) -> str:
    return palette[index % len(palette)]


def color_name(hex_value: str) -> Optional[str]:
    for value, name in ROUTINE_COLORS:
        if value.lower() == hex_value.lower():
            return name
    return None


def next_color(used_colors: Iterable[str], palette: Sequence[str] = PALETTE) -> str:
    """First palette colour not already used; once exhausted, cycle by usage count.

    Comparison is case-insensitive. The result depends only on the palette
    order and the set of used colours.
    """
    used = [c.upper() for c in used_colors if c]
    used_set = set(used)
    for color in palette:
        if color.upper() not in used_set:
            return color
    return color_by_index(len(used), palette)
