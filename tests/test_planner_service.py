"""
Tests for the PlannerService orchestration layer.
"""

from typing import Dict, List

from groupslot.domain.models import (
    AvailabilityBlock,
    BlockedWindow,
    BlockKind,
    GroupMember,
    SlotColor,
)
from groupslot.domain.slot_calculator import SlotCalculator
from groupslot.services.planner import PlannerService


class StubGroupDataSource:
    """Minimal stub matching GroupDataSource."""

    def __init__(self, members, blocks=(), windows=()):
        self._members = list(members)
        self._blocks = list(blocks)
        self._windows = list(windows)
        self.calls: List[Dict[str, str]] = []

    def get_members(self, group_id):
        self.calls.append({"method": "members", "group_id": group_id})
        return self._members

    def get_blocks(self, group_id):
        self.calls.append({"method": "blocks", "group_id": group_id})
        return self._blocks

    def get_blocked_windows(self, group_id):
        self.calls.append({"method": "windows", "group_id": group_id})
        return self._windows


def _build_service(source: StubGroupDataSource) -> PlannerService:
    calculator = SlotCalculator(buffer_before_work_min=0, slot_size_min=60)
    return PlannerService(data_source=source, calculator=calculator)


def _source() -> StubGroupDataSource:
    return StubGroupDataSource(
        members=[
            GroupMember(group_id="crew", user_id="ana", role="host"),
            GroupMember(group_id="crew", user_id="ben"),
        ],
        blocks=[
            AvailabilityBlock(
                date="2024-01-15", start_min=540, end_min=1020,
                group_id="crew", user_id="ana", kind=BlockKind.WORK
            ),
            AvailabilityBlock(
                date="2024-01-15", start_min=1080, end_min=1200,
                group_id="crew", user_id="ben", kind=BlockKind.PREFERRED
            ),
        ],
        windows=[BlockedWindow(date=None, start_min=0, end_min=480, group_id="crew")],
    )


def test_compute_group_slots_reads_group_data():
    """The service should fetch all three collections for the requested group."""
    source = _source()
    service = _build_service(source)

    slots = service.compute_group_slots(
        group_id="crew",
        planning_start="2024-01-15",
        planning_end="2024-01-15",
    )

    assert len(slots) == 16
    assert slots[0].start_min == 480
    assert {call["method"] for call in source.calls} == {"members", "blocks", "windows"}
    assert all(call["group_id"] == "crew" for call in source.calls)


def test_get_top_slots_prefers_green_with_preferences():
    """Green slots where someone prefers to meet should come first."""
    service = _build_service(_source())

    top = service.get_top_slots(
        group_id="crew",
        planning_start="2024-01-15",
        planning_end="2024-01-15",
        top_n=3,
    )

    assert len(top) == 3
    assert [s.start_min for s in top[:2]] == [1080, 1140]
    assert all(s.color is SlotColor.GREEN for s in top)
    assert top[0].preferred_count == 1


def test_get_meeting_windows_merges_and_ranks():
    """Contiguous slots with the same members should form ranked windows."""
    service = _build_service(_source())

    windows = service.get_meeting_windows(
        group_id="crew",
        planning_start="2024-01-15",
        planning_end="2024-01-15",
        min_duration_min=60,
    )

    spans = [(w.start_min, w.end_min) for w in windows]
    assert spans == [(480, 540), (1020, 1440), (540, 1020)]
    assert windows[-1].color is SlotColor.RED


def test_unknown_group_yields_no_slots():
    """A data source without members for the group should give no slots."""
    source = StubGroupDataSource(members=[])
    service = _build_service(source)

    assert service.get_top_slots(
        group_id="nobody",
        planning_start="2024-01-15",
        planning_end="2024-01-21",
    ) == []
