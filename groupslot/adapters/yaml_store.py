"""
File-backed group data source.

A group file is a YAML mapping with the group id, its members, its blocked
windows and every member's availability blocks. It stands in for the hosted
backend so the engines can be driven from the command line.

Example:

    group_id: team-a
    members:
      - user_id: ana
        role: host
    blocked_windows:
      - start: "00:00"
        end: "08:00"
    blocks:
      - user_id: ana
        kind: WORK
        date: 2024-01-15
        start: "09:00"
        end: "17:00"
"""

from __future__ import annotations

import datetime
import logging
from pathlib import Path
from typing import Iterable, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..domain.exceptions import DataFileError
from ..domain.models import AvailabilityBlock, BlockedWindow, BlockKind, GroupMember
from ..domain.time_utils import MINUTES_PER_DAY, to_clock, to_minutes

logger = logging.getLogger(__name__)


class MemberRecord(BaseModel):
    """Stored group membership."""
    user_id: str
    role: str = "member"
    display_name: str = ""

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        """Only hosts and plain members exist."""
        if value not in ("host", "member"):
            raise ValueError(f"role must be 'host' or 'member', got {value!r}")
        return value


class IntervalRecord(BaseModel):
    """
    Start and end of a stored interval.

    Times are written as "HH:MM"; the end may be "24:00". PyYAML reads an
    unquoted 17:00 as the base-60 integer 1020, which already is the minute
    count, so integers are accepted as minutes.
    """
    start: int
    end: int

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_clock(cls, value):
        """Convert clock strings to minutes from midnight."""
        if isinstance(value, str):
            if value.strip() == "24:00":
                return MINUTES_PER_DAY
            return to_minutes(value)
        return value

    @field_validator("start", "end")
    @classmethod
    def validate_minutes(cls, value: int) -> int:
        """Keep minutes inside one day."""
        if not 0 <= value <= MINUTES_PER_DAY:
            raise ValueError(f"minutes must be between 0 and {MINUTES_PER_DAY}, got {value}")
        return value


class BlockRecord(IntervalRecord):
    """Stored availability block."""
    user_id: str
    kind: BlockKind
    date: datetime.date
    source: str = "MANUAL"


class WindowRecord(IntervalRecord):
    """Stored blocked window; day_of_week uses 0 = Sunday."""
    day_of_week: Optional[int] = None
    date: Optional[datetime.date] = None

    @field_validator("day_of_week")
    @classmethod
    def validate_day_of_week(cls, value: Optional[int]) -> Optional[int]:
        """Ensure the weekday is in range."""
        if value is not None and value not in range(7):
            raise ValueError(f"day_of_week must be between 0 and 6, got {value}")
        return value


class GroupFile(BaseModel):
    """Root of a group file."""
    group_id: str
    members: List[MemberRecord] = Field(default_factory=list)
    blocked_windows: List[WindowRecord] = Field(default_factory=list)
    blocks: List[BlockRecord] = Field(default_factory=list)


class YamlGroupStore:
    """
    Group data source reading from and writing to a YAML group file.

    Implements ``GroupDataSource``; requests for another group id return
    empty lists.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data = self._load()

    @property
    def group_id(self) -> str:
        return self._data.group_id

    def _load(self) -> GroupFile:
        """Read and validate the group file."""
        if not self.path.exists():
            raise DataFileError(f"Group data file not found: {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise DataFileError(f"Invalid YAML in {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise DataFileError(f"Group data file {self.path} must contain a mapping at the root level.")

        try:
            group = GroupFile(**data)
        except ValidationError as exc:
            raise DataFileError(f"Invalid group data in {self.path}: {exc}") from exc

        logger.debug(
            "Loaded group %s from %s: %d members, %d blocks",
            group.group_id, self.path, len(group.members), len(group.blocks)
        )
        return group

    def get_members(self, group_id: str) -> List[GroupMember]:
        if group_id != self.group_id:
            return []
        return [
            GroupMember(
                group_id=self.group_id,
                user_id=record.user_id,
                role=record.role,
                display_name=record.display_name
            )
            for record in self._data.members
        ]

    def get_blocks(self, group_id: str) -> List[AvailabilityBlock]:
        if group_id != self.group_id:
            return []
        return [
            AvailabilityBlock(
                date=record.date,
                start_min=record.start,
                end_min=record.end,
                group_id=self.group_id,
                user_id=record.user_id,
                kind=record.kind,
                source=record.source
            )
            for record in self._data.blocks
        ]

    def get_blocked_windows(self, group_id: str) -> List[BlockedWindow]:
        if group_id != self.group_id:
            return []
        return [
            BlockedWindow(
                date=record.date,
                start_min=record.start,
                end_min=record.end,
                group_id=self.group_id,
                day_of_week=record.day_of_week
            )
            for record in self._data.blocked_windows
        ]

    def add_blocks(self, blocks: Iterable[AvailabilityBlock]) -> int:
        """Append blocks in memory; call ``save`` to write them out."""
        added = 0
        for block in blocks:
            self._data.blocks.append(BlockRecord(
                user_id=block.user_id,
                kind=block.kind,
                date=block.date,
                start=block.start_min,
                end=block.end_min,
                source=block.source
            ))
            added += 1
        return added

    def save(self) -> None:
        """Write the group back to its file with times as "HH:MM"."""
        data = self._data.model_dump(mode="json")

        for section in ("blocked_windows", "blocks"):
            for record in data[section]:
                record["start"] = to_clock(record["start"])
                record["end"] = to_clock(record["end"])

        try:
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        except OSError as exc:
            raise DataFileError(f"Could not write group data to {self.path}: {exc}") from exc

        logger.info("Saved group %s to %s", self.group_id, self.path)
