"""Fehlerklassen der Planungs-Engine."""


class SchedulingError(Exception):
    """Basisklasse aller Fehler der Pace-Planung."""


class ValidationError(SchedulingError):
    """Anfrage ist ungültig (z.B. weniger als 72 Paces)."""


class ConstraintViolationError(SchedulingError):
    """Harte Paarungsregel in Modus A verletzt."""


class PlacementOverflowError(SchedulingError):
    """Pace in Modus B nicht platzierbar (nur bei overflow_policy=raise)."""


class OrderViolationError(SchedulingError):
    """Platzierung würde die Pace-Reihenfolge einer Kategorie verletzen."""


class QuarterNotFoundError(SchedulingError):
    """Quartal existiert nicht (oder gehört nicht zur Schule)."""


class QuarterNotClosedError(SchedulingError):
    """Umverteilung für ein noch offenes Quartal angefordert."""


class QuarterCloseError(SchedulingError):
    """Quartal kann (noch / nicht mehr) abgeschlossen werden."""


class CatalogLookupError(SchedulingError):
    """(Kategorie, Pace-Code) ist im Katalog nicht vorhanden."""


class ProjectionNotEditableError(SchedulingError):
    """Projektion ist geschlossen oder existiert nicht."""


class PaceNotFoundError(SchedulingError):
    """Pace ist nicht (mehr) Teil der Projektion."""


class DuplicatePaceError(SchedulingError):
    """Pace ist bereits Teil der Projektion."""


class InvalidPositionError(SchedulingError):
    """Quartal oder Woche liegt außerhalb des Schuljahr-Rasters."""
