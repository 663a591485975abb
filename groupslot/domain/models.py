"""
Domain models for availability blocks, computed slots and parsed shifts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional

from pendulum import Date

from .exceptions import InvalidFormat
from .time_utils import MINUTES_PER_DAY, day_of_week, to_clock, to_date


class BlockKind(str, Enum):
    """What a member's block says about their time."""
    WORK = "WORK"
    UNAVAILABLE = "UNAVAILABLE"
    PREFERRED = "PREFERRED"

    @property
    def is_busy(self) -> bool:
        return self in (BlockKind.WORK, BlockKind.UNAVAILABLE)


class SlotColor(str, Enum):
    """Three-tier availability grade of a computed slot."""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @property
    def rank(self) -> int:
        return {SlotColor.GREEN: 3, SlotColor.YELLOW: 2, SlotColor.RED: 1}[self]


@dataclass(frozen=True)
class TimeBlock:
    """
    A dated interval in minutes from midnight.

    Invariant: both bounds lie in [0, 1440]. A block with
    ``start_min >= end_min`` crosses midnight and has to be split before it
    takes part in any interval computation.
    """
    date: Optional[Date]
    start_min: int
    end_min: int

    def __post_init__(self):
        for name in ("start_min", "end_min"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= MINUTES_PER_DAY:
                raise InvalidFormat(
                    f"{name} must be between 0 and {MINUTES_PER_DAY}, got {value!r}"
                )
        if self.date is not None:
            object.__setattr__(self, "date", to_date(self.date))

    @property
    def crosses_midnight(self) -> bool:
        return self.start_min >= self.end_min

    def duration_minutes(self) -> int:
        """Return the duration in minutes, counting past midnight if needed."""
        if self.crosses_midnight:
            return MINUTES_PER_DAY - self.start_min + self.end_min
        return self.end_min - self.start_min

    def __str__(self) -> str:
        day = self.date.to_date_string() if self.date is not None else "daily"
        return f"{day} {to_clock(self.start_min)}-{to_clock(self.end_min)}"


@dataclass(frozen=True)
class AvailabilityBlock(TimeBlock):
    """A block owned by exactly one group member."""
    group_id: str = ""
    user_id: str = ""
    kind: BlockKind = BlockKind.WORK
    source: str = "MANUAL"

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "kind", BlockKind(self.kind))


@dataclass(frozen=True)
class BlockedWindow(TimeBlock):
    """
    A group-wide exclusion interval.

    ``day_of_week`` uses 0 = Sunday; ``None`` applies to every day. Windows
    are normally recurring and carry no date; a dated window applies to that
    single date only.
    """
    group_id: str = ""
    day_of_week: Optional[int] = None

    def __post_init__(self):
        super().__post_init__()
        if self.day_of_week is not None and self.day_of_week not in range(7):
            raise InvalidFormat(f"day_of_week must be between 0 and 6, got {self.day_of_week}")

    def applies_on(self, day: Date) -> bool:
        """Check if the window is in force on a given date."""
        if self.date is not None and self.date != day:
            return False
        return self.day_of_week is None or self.day_of_week == day_of_week(day)


@dataclass(frozen=True)
class GroupMember:
    """Membership fact; every listed member is a required participant."""
    group_id: str
    user_id: str
    role: str = "member"
    display_name: str = ""

    def label(self) -> str:
        return self.display_name or self.user_id


@dataclass(frozen=True)
class ComputedSlot(TimeBlock):
    """
    Group availability for one slot. Derived on every query, never stored.
    """
    pct_available: float = 0.0
    preferred_count: int = 0
    color: SlotColor = SlotColor.RED
    available_members: FrozenSet[str] = frozenset()

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, DD/MM/YYYY | HH:MM - HH:MM (NN%)
        """
        weekday = self.date.format("dddd", locale="en")
        date_str = self.date.format("DD/MM/YYYY")
        time_str = f"{to_clock(self.start_min)} - {to_clock(self.end_min)}"
        return f"{weekday}, {date_str} | {time_str} ({self.pct_available:.0%})"


@dataclass(frozen=True)
class DetectedShift:
    """
    A shift read from schedule text, not yet checked against business rules.

    ``end_min`` is 1440 when the shift runs until midnight.
    """
    date: Date
    start_min: int
    end_min: int
    crosses_midnight: bool = False
    confidence: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "date", to_date(self.date))

    def to_block(self, group_id: str, user_id: str, source: str = "OCR") -> AvailabilityBlock:
        """Turn the shift into a WORK block owned by ``user_id``."""
        return AvailabilityBlock(
            date=self.date,
            start_min=self.start_min,
            end_min=self.end_min,
            group_id=group_id,
            user_id=user_id,
            kind=BlockKind.WORK,
            source=source,
        )


@dataclass(frozen=True)
class ParseIssue:
    """A line or token of schedule text that could not become a shift."""
    line: str
    reason: str


@dataclass
class ParseResult:
    """Outcome of parsing one recognized text."""
    shifts: List[DetectedShift] = field(default_factory=list)
    issues: List[ParseIssue] = field(default_factory=list)
