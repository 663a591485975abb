"""
Normalization of availability blocks before interval computations.
"""

from dataclasses import replace
from typing import Dict, Iterable, List, Tuple, TypeVar

from .models import AvailabilityBlock, BlockKind, TimeBlock
from .time_utils import MINUTES_PER_DAY, next_day, overlaps

BlockT = TypeVar("BlockT", bound=TimeBlock)


def split_midnight(block: BlockT) -> List[BlockT]:
    """
    Split a block that crosses midnight into same-day pieces.

    Example:
    2024-01-15 22:00 - 06:00
    Result: [2024-01-15 22:00 - 24:00, 2024-01-16 00:00 - 06:00]
    """
    if block.start_min < block.end_min:
        return [block]

    return [
        replace(block, end_min=MINUTES_PER_DAY),
        replace(block, date=next_day(block.date), start_min=0),
    ]


def apply_work_buffer(block: AvailabilityBlock, buffer_minutes: int) -> AvailabilityBlock:
    """
    Widen a WORK block backwards by ``buffer_minutes``.

    The widened copy models "busy before the shift starts" for aggregation
    only; it must not replace the stored block.
    """
    if block.kind is not BlockKind.WORK:
        return block

    return replace(block, start_min=max(0, block.start_min - max(0, buffer_minutes)))


def merge_overlapping(blocks: Iterable[AvailabilityBlock]) -> List[AvailabilityBlock]:
    """
    Merge overlapping blocks of the same user and kind.

    Blocks that merely touch (``end == start``) stay separate. Blocks that
    cross midnight are split first, so the result only holds same-day pieces.
    """
    grouped: Dict[Tuple[str, BlockKind], List[AvailabilityBlock]] = {}
    for block in blocks:
        for piece in split_midnight(block):
            grouped.setdefault((piece.user_id, piece.kind), []).append(piece)

    merged: List[AvailabilityBlock] = []

    for group_blocks in grouped.values():
        sorted_blocks = sorted(group_blocks, key=lambda b: (b.date, b.start_min))
        current = sorted_blocks[0]

        for candidate in sorted_blocks[1:]:
            if candidate.date == current.date and overlaps(
                current.start_min, current.end_min,
                candidate.start_min, candidate.end_min
            ):
                current = replace(current, end_min=max(current.end_min, candidate.end_min))
            else:
                merged.append(current)
                current = candidate

        merged.append(current)

    return merged
