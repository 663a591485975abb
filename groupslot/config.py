"""
Configuration management using Pydantic models loaded from YAML.
"""

import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.schedule_parser import (
    DEFAULT_FREE_DAY_KEYWORDS,
    DEFAULT_LOOKAHEAD_LINES,
    DEFAULT_RANGE_CONNECTORS,
    ScheduleTextParser,
)
from .domain.slot_calculator import SlotCalculator
from .domain.time_utils import MINUTES_PER_DAY, to_date


class DefaultsConfig(BaseModel):
    """Default settings for slot computation."""
    buffer_before_work_min: int = 20
    slot_size_min: int = 30
    yellow_threshold: float = 0.75
    top_n: int = 10
    min_meeting_duration_min: int = 60

    @field_validator("buffer_before_work_min")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        """Keep the pre-shift buffer between 0 and 120 minutes."""
        if not 0 <= value <= 120:
            raise ValueError(f"buffer_before_work_min must be between 0 and 120, got {value}")
        return value

    @field_validator("slot_size_min")
    @classmethod
    def validate_slot_size(cls, value: int) -> int:
        """Ensure slots fit in one day."""
        if not 1 <= value <= MINUTES_PER_DAY:
            raise ValueError(f"slot_size_min must be between 1 and {MINUTES_PER_DAY}, got {value}")
        return value

    @field_validator("yellow_threshold")
    @classmethod
    def validate_threshold(cls, value: float) -> float:
        """Validate threshold is a share between 0 and 1."""
        if not 0 <= value <= 1:
            raise ValueError(f"yellow_threshold must be between 0 and 1, got {value}")
        return value

    @field_validator("top_n")
    @classmethod
    def validate_top_n(cls, value: int) -> int:
        """Ensure at least one slot is requested."""
        if value <= 0:
            raise ValueError("top_n must be greater than zero")
        return value

    @field_validator("min_meeting_duration_min")
    @classmethod
    def validate_min_duration(cls, value: int) -> int:
        """Keep meetings between 15 minutes and 8 hours."""
        if not 15 <= value <= 480:
            raise ValueError(f"min_meeting_duration_min must be between 15 and 480, got {value}")
        return value


class ParserConfig(BaseModel):
    """Vocabulary of the schedule-text parser."""
    free_day_keywords: List[str] = Field(default_factory=lambda: list(DEFAULT_FREE_DAY_KEYWORDS))
    range_connectors: List[str] = Field(default_factory=lambda: list(DEFAULT_RANGE_CONNECTORS))
    lookahead_lines: int = DEFAULT_LOOKAHEAD_LINES

    @field_validator("lookahead_lines")
    @classmethod
    def validate_lookahead(cls, value: int) -> int:
        """At least the next line has to be reachable."""
        if value < 1:
            raise ValueError("lookahead_lines must be at least 1")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    data_file: Path = Path("group.yaml")
    planning_start: Optional[datetime.date] = None
    planning_end: Optional[datetime.date] = None
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    parser: ParserConfig = Field(default_factory=ParserConfig)

    @model_validator(mode="after")
    def validate_planning_range(self) -> "AppConfig":
        """Ensure the planning range is complete and ordered."""
        if (self.planning_start is None) != (self.planning_end is None):
            raise ValueError("planning_start and planning_end must be set together")
        if self.planning_start and self.planning_end and self.planning_end < self.planning_start:
            raise ValueError("planning_end must not be before planning_start")
        return self

    def build_calculator(self) -> SlotCalculator:
        """Create a slot calculator from the defaults."""
        return SlotCalculator(
            buffer_before_work_min=self.defaults.buffer_before_work_min,
            slot_size_min=self.defaults.slot_size_min,
            yellow_threshold=self.defaults.yellow_threshold
        )

    def build_parser(self) -> ScheduleTextParser:
        """Create a schedule-text parser from the parser vocabulary."""
        return ScheduleTextParser(
            free_day_keywords=self.parser.free_day_keywords,
            range_connectors=self.parser.range_connectors,
            lookahead_lines=self.parser.lookahead_lines
        )

    def resolve_planning_range(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None
    ) -> Tuple[pendulum.Date, pendulum.Date]:
        """
        Resolve the planning range from explicit values or the configuration.

        Explicit values win; without either, the range runs from today for
        two weeks.

        Raises:
            InvalidFormat: If an explicit date cannot be parsed
        """
        if start is not None:
            range_start = to_date(start)
        elif self.planning_start is not None:
            range_start = to_date(self.planning_start)
        else:
            range_start = pendulum.today().date()

        if end is not None:
            range_end = to_date(end)
        elif self.planning_end is not None and start is None:
            range_end = to_date(self.planning_end)
        else:
            range_end = range_start.add(days=13)

        return range_start, range_end

    def resolve_data_file(self, config_path: Path) -> Path:
        """Relative data files are looked up next to the config file."""
        if self.data_file.is_absolute():
            return self.data_file
        return config_path.parent / self.data_file

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of groupslot/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
