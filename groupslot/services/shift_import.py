"""
Bulk import of shifts read from schedule text.

Parsed shifts are only candidates. Before they become WORK blocks they are
checked against the business rules: not in the past and not overlapping
anything the member already recorded. The parser itself only yields dates
inside the planning range.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from ..domain.blocks import split_midnight
from ..domain.models import AvailabilityBlock, DetectedShift, ParseIssue
from ..domain.schedule_parser import ScheduleTextParser
from ..domain.time_utils import overlaps, to_date

logger = logging.getLogger(__name__)

IMPORT_SOURCE = "OCR"

REASON_PAST = "date is in the past"
REASON_OVERLAP = "overlaps an existing block"


@dataclass
class ShiftImport:
    """Outcome of preparing an import: what to insert and what was refused."""
    blocks: List[AvailabilityBlock] = field(default_factory=list)
    rejected: List[Tuple[DetectedShift, str]] = field(default_factory=list)
    issues: List[ParseIssue] = field(default_factory=list)


class ShiftImportService:
    """
    Turns recognized schedule text into WORK blocks ready to be stored.

    The work buffer is not applied here; it only exists inside slot
    computation.
    """

    def __init__(self, parser: ScheduleTextParser) -> None:
        self._parser = parser

    def build_import(
        self,
        *,
        text,
        group_id: str,
        user_id: str,
        planning_start,
        planning_end,
        existing_blocks: Iterable[AvailabilityBlock],
        today,
    ) -> ShiftImport:
        """
        Parse ``text`` and validate every detected shift for ``user_id``.

        Args:
            text: Recognized schedule text
            group_id: Group the blocks belong to
            user_id: Member the shifts belong to
            planning_start: First date of the planning range
            planning_end: Last date of the planning range
            existing_blocks: Blocks already stored (any member)
            today: Reference date for the "not in the past" rule

        Returns:
            ShiftImport with accepted blocks, rejected shifts and parse issues
        """
        start = to_date(planning_start)
        end = to_date(planning_end)
        today = to_date(today)

        parsed = self._parser.parse(text, start, end)
        outcome = ShiftImport(issues=list(parsed.issues))

        taken = [
            piece
            for block in existing_blocks
            if block.user_id == user_id
            for piece in split_midnight(block)
        ]

        for shift in parsed.shifts:
            block = shift.to_block(group_id=group_id, user_id=user_id, source=IMPORT_SOURCE)
            pieces = split_midnight(block)

            if shift.date < today:
                reason = REASON_PAST
            elif self._collides(pieces, taken):
                reason = REASON_OVERLAP
            else:
                outcome.blocks.append(block)
                taken.extend(pieces)
                continue

            logger.warning("Rejected shift %s %s: %s", shift.date, shift.start_min, reason)
            outcome.rejected.append((shift, reason))

        logger.debug(
            "Import for %s: %d accepted, %d rejected, %d issues",
            user_id, len(outcome.blocks), len(outcome.rejected), len(outcome.issues)
        )

        return outcome

    @staticmethod
    def _collides(pieces: List[AvailabilityBlock], taken: List[AvailabilityBlock]) -> bool:
        return any(
            piece.date == other.date
            and overlaps(piece.start_min, piece.end_min, other.start_min, other.end_min)
            for piece in pieces
            for other in taken
        )
