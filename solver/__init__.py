"""Planungs-Engine: Projektions-Generator und Fehlerklassen.

Umverteilung, Quartalsabschluss und Einzelbearbeitung liegen in
``solver.redistributor``, ``solver.quarter_close`` und ``solver.pace_edits``.
"""

from .errors import (
    ConstraintViolationError,
    OrderViolationError,
    PlacementOverflowError,
    SchedulingError,
    ValidationError,
)
from .generator import ProjectionGenerator, generate

__all__ = [
    "ProjectionGenerator",
    "generate",
    "SchedulingError",
    "ValidationError",
    "ConstraintViolationError",
    "PlacementOverflowError",
    "OrderViolationError",
]
