"""
Weekday codec.
Maps human weekday labels ("Mon") to recurrence rule day codes ("MO") and
to week ordinals (Sunday = 0).

Unknown labels map to None and are dropped by callers rather than raising,
so one malformed day label does not sink an otherwise valid course.
"""

from enum import Enum
from typing import Iterable, List, Optional


class Weekday(Enum):
    """The seven canonical weekday labels, in ordinal order (Sunday first)."""

    SUN = "Sun"
    MON = "Mon"
    TUE = "Tue"
    WED = "Wed"
    THU = "Thu"
    FRI = "Fri"
    SAT = "Sat"

    @property
    def code(self) -> str:
        return _CODES[self]

    @property
    def ordinal(self) -> int:
        return _ORDER.index(self)


_ORDER = list(Weekday)

_CODES = {
    Weekday.SUN: "SU",
    Weekday.MON: "MO",
    Weekday.TUE: "TU",
    Weekday.WED: "WE",
    Weekday.THU: "TH",
    Weekday.FRI: "FR",
    Weekday.SAT: "SA",
}

_BY_LABEL = {day.value: day for day in Weekday}
_BY_CODE = {code: day for day, code in _CODES.items()}

# Spellings seen in model output, keyed by lowercase
_ALIASES = {
    "sunday": Weekday.SUN, "sun": Weekday.SUN, "su": Weekday.SUN,
    "monday": Weekday.MON, "mon": Weekday.MON, "mo": Weekday.MON,
    "tuesday": Weekday.TUE, "tue": Weekday.TUE, "tues": Weekday.TUE, "tu": Weekday.TUE,
    "wednesday": Weekday.WED, "wed": Weekday.WED, "we": Weekday.WED,
    "thursday": Weekday.THU, "thu": Weekday.THU, "thur": Weekday.THU, "thurs": Weekday.THU, "th": Weekday.THU,
    "friday": Weekday.FRI, "fri": Weekday.FRI, "fr": Weekday.FRI,
    "saturday": Weekday.SAT, "sat": Weekday.SAT, "sa": Weekday.SAT,
}


def encode(label: str) -> Optional[str]:
    """Canonical label -> 2-letter rule code, or None if the label is unknown."""
    day = _BY_LABEL.get(label)
    return day.code if day else None


def decode(code: str) -> Optional[str]:
    """Rule code -> canonical label, or None if the code is unknown."""
    day = _BY_CODE.get(code)
    return day.value if day else None


def ordinal(label: str) -> Optional[int]:
    """Canonical label -> 0..6 with Sunday = 0, or None if the label is unknown."""
    day = _BY_LABEL.get(label)
    return day.ordinal if day else None


def canonical_label(raw) -> Optional[str]:
    """
    Recognize a loosely spelled weekday ("monday", "MON", "Mo").

    Args:
        raw: Value from extraction output or user edits

    Returns:
        Canonical label like "Mon", or None if unrecognized
    """
    if not isinstance(raw, str):
        return None
    text = raw.strip().rstrip(".")
    if text in _BY_LABEL:
        return text
    day = _ALIASES.get(text.lower())
    return day.value if day else None


def parse_days(labels: Iterable[str]) -> List[Weekday]:
    """
    Map canonical labels to Weekday members.
    Unknown labels and repeats are dropped; first-seen order is kept.
    """
    days: List[Weekday] = []
    for label in labels:
        day = _BY_LABEL.get(label)
        if day is not None and day not in days:
            days.append(day)
    return days
