"""
Core business logic for grading group availability slot by slot.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import logging
from collections import defaultdict
from dataclasses import replace
from enum import Enum
from typing import Dict, Iterable, List, Sequence, Tuple

from pendulum import Date

from .blocks import apply_work_buffer, split_midnight
from .models import (
    AvailabilityBlock,
    BlockedWindow,
    ComputedSlot,
    GroupMember,
    SlotColor,
)
from .time_utils import (
    MINUTES_PER_DAY,
    clamp,
    iter_days,
    overlaps,
    previous_day,
    to_date,
)

logger = logging.getLogger(__name__)


class MemberState(Enum):
    """Resolved state of one member for one slot."""
    AVAILABLE = 1
    PREFERRED = 2
    UNAVAILABLE = 3


class SlotCalculator:
    """
    Calculates graded meeting slots from member blocks and blocked windows.

    Algorithm:
    1. Split every block at midnight and widen WORK pieces by the buffer
    2. Walk each day of the planning range in fixed-size slots
    3. Drop slots that hit a blocked window
    4. Resolve every member's state for each remaining slot
    5. Grade the slot by the share of available members
    """

    def __init__(
        self,
        buffer_before_work_min: int = 20,
        slot_size_min: int = 30,
        yellow_threshold: float = 0.75
    ):
        self.buffer_before_work_min = clamp(buffer_before_work_min, 0, MINUTES_PER_DAY)
        self.slot_size_min = clamp(slot_size_min, 1, MINUTES_PER_DAY)
        self.yellow_threshold = yellow_threshold

    def compute_slots(
        self,
        members: Sequence[GroupMember],
        availability_blocks: Iterable[AvailabilityBlock],
        blocked_windows: Iterable[BlockedWindow],
        planning_start,
        planning_end
    ) -> List[ComputedSlot]:
        """
        Compute one graded slot per unblocked slot of every day in range.

        Args:
            members: Required participants; duplicates are ignored
            availability_blocks: Blocks of any member, in any order
            blocked_windows: Group-wide exclusion windows
            planning_start: First date of the closed planning range
            planning_end: Last date of the closed planning range

        Returns:
            List of ComputedSlot objects in date and time order
        """
        member_ids = self._unique_member_ids(members)

        if not member_ids:
            return []

        start = to_date(planning_start)
        end = to_date(planning_end)
        windows = list(blocked_windows)
        pieces = self._index_block_pieces(availability_blocks, start, end)

        slots: List[ComputedSlot] = []

        for day in iter_days(start, end):
            blocked = self._blocked_intervals(day, windows)
            day_pieces = {
                user_id: pieces.get((day, user_id), [])
                for user_id in member_ids
            }

            for slot_start in range(0, MINUTES_PER_DAY, self.slot_size_min):
                slot_end = min(slot_start + self.slot_size_min, MINUTES_PER_DAY)

                if any(overlaps(slot_start, slot_end, s, e) for s, e in blocked):
                    continue

                slots.append(
                    self._grade_slot(day, slot_start, slot_end, member_ids, day_pieces)
                )

        logger.debug(
            "Computed %d slots for %d members between %s and %s",
            len(slots), len(member_ids), start, end
        )

        return slots

    @staticmethod
    def rank_slots(slots: Iterable[ComputedSlot], top_n: int = 10) -> List[ComputedSlot]:
        """
        Return the ``top_n`` best slots.

        Priority: green > yellow > red, then preferred_count, then
        pct_available. Ties keep their original order.
        """
        ranked = sorted(
            slots,
            key=lambda s: (s.color.rank, s.preferred_count, s.pct_available),
            reverse=True
        )
        return ranked[:max(0, top_n)]

    @staticmethod
    def merge_contiguous_slots(
        slots: Iterable[ComputedSlot],
        min_duration_min: int = 0
    ) -> List[ComputedSlot]:
        """
        Merge touching slots of one day that share the same available members.

        Slots nobody can attend are never merged. Windows shorter than
        ``min_duration_min`` are dropped.

        Example: [10:00-10:30 {a, b}, 10:30-11:00 {a, b}] -> [10:00-11:00 {a, b}]
        """
        windows: List[ComputedSlot] = []

        ordered = sorted(
            (s for s in slots if s.available_members),
            key=lambda s: (s.date, s.start_min)
        )

        for slot in ordered:
            last = windows[-1] if windows else None

            if (
                last is not None
                and last.date == slot.date
                and last.end_min == slot.start_min
                and last.available_members == slot.available_members
            ):
                windows[-1] = replace(
                    last,
                    end_min=slot.end_min,
                    preferred_count=min(last.preferred_count, slot.preferred_count)
                )
            else:
                windows.append(slot)

        return [w for w in windows if w.end_min - w.start_min >= min_duration_min]

    def _unique_member_ids(self, members: Sequence[GroupMember]) -> List[str]:
        """Member ids in listed order without duplicates."""
        seen: Dict[str, None] = {}
        for member in members:
            seen.setdefault(member.user_id, None)
        return list(seen)

    def _index_block_pieces(
        self,
        blocks: Iterable[AvailabilityBlock],
        start: Date,
        end: Date
    ) -> Dict[Tuple[Date, str], List[AvailabilityBlock]]:
        """
        Split and buffer all blocks, keyed by (date, user_id).

        Splitting happens before the range filter so that the tail of a shift
        starting the day before the range still counts.
        """
        index: Dict[Tuple[Date, str], List[AvailabilityBlock]] = defaultdict(list)

        for block in blocks:
            for piece in split_midnight(block):
                if not start <= piece.date <= end:
                    continue
                widened = apply_work_buffer(piece, self.buffer_before_work_min)
                index[(piece.date, piece.user_id)].append(widened)

        return index

    def _blocked_intervals(
        self,
        day: Date,
        windows: List[BlockedWindow]
    ) -> List[Tuple[int, int]]:
        """
        Blocked minute intervals in force on ``day``.

        A window crossing midnight blocks [start, 24:00) on the days it
        applies to and [00:00, end) on the day after.
        """
        intervals: List[Tuple[int, int]] = []
        day_before = previous_day(day)

        for window in windows:
            if window.start_min < window.end_min:
                if window.applies_on(day):
                    intervals.append((window.start_min, window.end_min))
                continue

            if window.applies_on(day):
                intervals.append((window.start_min, MINUTES_PER_DAY))
            if window.applies_on(day_before):
                intervals.append((0, window.end_min))

        return intervals

    def _grade_slot(
        self,
        day: Date,
        slot_start: int,
        slot_end: int,
        member_ids: List[str],
        day_pieces: Dict[str, List[AvailabilityBlock]]
    ) -> ComputedSlot:
        """Resolve every member for one slot and build the graded result."""
        available: List[str] = []
        preferred_count = 0

        for user_id in member_ids:
            state = self._member_state(day_pieces[user_id], slot_start, slot_end)

            if state is MemberState.UNAVAILABLE:
                continue

            available.append(user_id)
            if state is MemberState.PREFERRED:
                preferred_count += 1

        pct_available = len(available) / len(member_ids)

        return ComputedSlot(
            date=day,
            start_min=slot_start,
            end_min=slot_end,
            pct_available=pct_available,
            preferred_count=preferred_count,
            color=self._slot_color(pct_available),
            available_members=frozenset(available)
        )

    @staticmethod
    def _member_state(
        pieces: List[AvailabilityBlock],
        slot_start: int,
        slot_end: int
    ) -> MemberState:
        """
        Resolve a member's state for one slot.

        Priority: WORK/UNAVAILABLE > PREFERRED > available, whatever the
        order of the blocks.
        """
        state = MemberState.AVAILABLE

        for piece in pieces:
            if not overlaps(slot_start, slot_end, piece.start_min, piece.end_min):
                continue
            if piece.kind.is_busy:
                return MemberState.UNAVAILABLE
            state = MemberState.PREFERRED

        return state

    def _slot_color(self, pct_available: float) -> SlotColor:
        if pct_available == 1.0:
            return SlotColor.GREEN
        if pct_available >= self.yellow_threshold:
            return SlotColor.YELLOW
        return SlotColor.RED


def compute_slots(
    members: Sequence[GroupMember],
    availability_blocks: Iterable[AvailabilityBlock],
    blocked_windows: Iterable[BlockedWindow],
    planning_start,
    planning_end,
    buffer_before_work_min: int = 20,
    slot_size_min: int = 30,
    yellow_threshold: float = 0.75
) -> List[ComputedSlot]:
    """Functional shortcut for ``SlotCalculator(...).compute_slots(...)``."""
    calculator = SlotCalculator(
        buffer_before_work_min=buffer_before_work_min,
        slot_size_min=slot_size_min,
        yellow_threshold=yellow_threshold
    )
    return calculator.compute_slots(
        members, availability_blocks, blocked_windows, planning_start, planning_end
    )


def rank_slots(slots: Iterable[ComputedSlot], top_n: int = 10) -> List[ComputedSlot]:
    """Functional shortcut for ``SlotCalculator.rank_slots``."""
    return SlotCalculator.rank_slots(slots, top_n)


def merge_contiguous_slots(
    slots: Iterable[ComputedSlot],
    min_duration_min: int = 0
) -> List[ComputedSlot]:
    """Functional shortcut for ``SlotCalculator.merge_contiguous_slots``."""
    return SlotCalculator.merge_contiguous_slots(slots, min_duration_min)
