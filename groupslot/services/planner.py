"""
Application service for planning group meetings.

The service pulls members, blocks and blocked windows from a group data
source and delegates the availability grading to the domain-level
``SlotCalculator``. Depending on a protocol rather than a concrete store
keeps the CLI thin and lets tests plug in a simple stub.
"""

from __future__ import annotations

import logging
from typing import List, Protocol

from ..domain.models import AvailabilityBlock, BlockedWindow, ComputedSlot, GroupMember
from ..domain.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)


class GroupDataSource(Protocol):
    """Protocol describing the group data the planner needs."""

    def get_members(self, group_id: str) -> List[GroupMember]:
        """Return the members of a group."""

    def get_blocks(self, group_id: str) -> List[AvailabilityBlock]:
        """Return all availability blocks recorded in a group."""

    def get_blocked_windows(self, group_id: str) -> List[BlockedWindow]:
        """Return the group's blocked windows."""


class PlannerService:
    """
    Orchestrates group data retrieval and slot computation.
    """

    def __init__(
        self,
        data_source: GroupDataSource,
        calculator: SlotCalculator,
    ) -> None:
        self._data_source = data_source
        self._calculator = calculator

    def compute_group_slots(
        self,
        *,
        group_id: str,
        planning_start,
        planning_end,
    ) -> List[ComputedSlot]:
        """Compute every graded slot of the planning range for a group."""
        members = self._data_source.get_members(group_id)
        blocks = self._data_source.get_blocks(group_id)
        windows = self._data_source.get_blocked_windows(group_id)

        logger.debug(
            "Group %s: %d members, %d blocks, %d blocked windows",
            group_id, len(members), len(blocks), len(windows)
        )

        return self._calculator.compute_slots(
            members=members,
            availability_blocks=blocks,
            blocked_windows=windows,
            planning_start=planning_start,
            planning_end=planning_end,
        )

    def get_top_slots(
        self,
        *,
        group_id: str,
        planning_start,
        planning_end,
        top_n: int = 10,
    ) -> List[ComputedSlot]:
        """Return the best ``top_n`` slots of the planning range."""
        slots = self.compute_group_slots(
            group_id=group_id,
            planning_start=planning_start,
            planning_end=planning_end,
        )
        return self._calculator.rank_slots(slots, top_n)

    def get_meeting_windows(
        self,
        *,
        group_id: str,
        planning_start,
        planning_end,
        min_duration_min: int,
    ) -> List[ComputedSlot]:
        """Return contiguous windows at least ``min_duration_min`` long, best first."""
        slots = self.compute_group_slots(
            group_id=group_id,
            planning_start=planning_start,
            planning_end=planning_end,
        )
        windows = self._calculator.merge_contiguous_slots(slots, min_duration_min)
        return self._calculator.rank_slots(windows, len(windows))
