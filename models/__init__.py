from models.pace_set import PaceSetRequest, ProjectionRequest
from models.generated_pace import (
    GeneratedPace,
    GenerationMode,
    GenerationResult,
    PairingRelaxation,
    UnplacedPace,
)
from models.projection_pace import (
    PaceCatalogEntry,
    PaceStatus,
    Projection,
    ProjectionPace,
    ProjectionStatus,
)
from models.quarter import Quarter, SchoolYear
from models.week_slot import PlacedPace, WeekSlot

__all__ = [
    "PaceSetRequest",
    "ProjectionRequest",
    "GeneratedPace",
    "GenerationMode",
    "GenerationResult",
    "PairingRelaxation",
    "UnplacedPace",
    "PaceCatalogEntry",
    "PaceStatus",
    "Projection",
    "ProjectionPace",
    "ProjectionStatus",
    "Quarter",
    "SchoolYear",
    "PlacedPace",
    "WeekSlot",
]
