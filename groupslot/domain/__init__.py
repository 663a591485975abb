"""
Domain layer - Pure business logic without external dependencies.
"""

from .blocks import apply_work_buffer, merge_overlapping, split_midnight
from .exceptions import DataFileError, GroupSlotError, InvalidFormat
from .models import (
    AvailabilityBlock,
    BlockedWindow,
    BlockKind,
    ComputedSlot,
    DetectedShift,
    GroupMember,
    ParseIssue,
    ParseResult,
    SlotColor,
    TimeBlock,
)
from .schedule_parser import ScheduleTextParser, parse_schedule_text
from .slot_calculator import SlotCalculator, compute_slots, merge_contiguous_slots, rank_slots
from .time_utils import clamp, overlaps, to_clock, to_minutes

__all__ = [
    "AvailabilityBlock",
    "BlockedWindow",
    "BlockKind",
    "ComputedSlot",
    "DataFileError",
    "DetectedShift",
    "GroupMember",
    "GroupSlotError",
    "InvalidFormat",
    "ParseIssue",
    "ParseResult",
    "ScheduleTextParser",
    "SlotCalculator",
    "SlotColor",
    "TimeBlock",
    "apply_work_buffer",
    "clamp",
    "compute_slots",
    "merge_contiguous_slots",
    "merge_overlapping",
    "overlaps",
    "parse_schedule_text",
    "rank_slots",
    "split_midnight",
    "to_clock",
    "to_minutes",
]
