"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .planner import GroupDataSource, PlannerService
from .shift_import import ShiftImport, ShiftImportService

__all__ = ["GroupDataSource", "PlannerService", "ShiftImport", "ShiftImportService"]
