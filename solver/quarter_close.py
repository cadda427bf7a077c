"""Quartalsabschluss: manuell (mit Kulanzfrist) oder automatisch.

Nach dem Schließen läuft die Umverteilung der unfertigen Paces. Ein Fehler
dort wird protokolliert, der Abschluss selbst bleibt bestehen.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from config.schema import ProjectionConfig
from data.store import InMemoryProjectionStore
from solver.errors import QuarterCloseError, QuarterNotFoundError, SchedulingError
from solver.redistributor import QuarterRedistributor, RedistributionResult

logger = logging.getLogger(__name__)


class QuarterCloser:
    def __init__(
        self,
        store: InMemoryProjectionStore,
        config: Optional[ProjectionConfig] = None,
    ) -> None:
        if config is None:
            from config.defaults import default_projection_config
            config = default_projection_config()
        self.store = store
        self.config = config

    @property
    def grace_period(self) -> timedelta:
        return timedelta(days=self.config.redistribution.grace_period_days)

    def close_quarter(
        self,
        quarter_id: str,
        school_id: str,
        closed_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[RedistributionResult]:
        """Quartal schließen und unfertige Paces umverteilen.

        Args:
            closed_by: Benutzer bei manuellem Abschluss, None = automatisch.
            now: Zeitpunkt des Abschlusses (Standard: jetzt, UTC).

        Returns:
            Ergebnis der Umverteilung, None wenn diese fehlgeschlagen ist.
        """
        now = now or datetime.now(timezone.utc)
        today = now.date()

        quarter = self.store.get_quarter(quarter_id)
        if quarter is None:
            raise QuarterNotFoundError(f"Quartal {quarter_id} nicht gefunden")
        school_year = self.store.get_school_year(quarter.school_year_id)
        if school_year is None or school_year.school_id != school_id:
            raise QuarterNotFoundError(
                f"Quartal {quarter_id} gehört nicht zur Schule {school_id}"
            )
        if quarter.is_closed:
            raise QuarterCloseError(f"Quartal {quarter.name} ist bereits geschlossen")
        if today <= quarter.end_date:
            raise QuarterCloseError(
                f"Quartal {quarter.name} endet erst am {quarter.end_date.isoformat()}"
            )
        if closed_by is not None and today > quarter.end_date + self.grace_period:
            raise QuarterCloseError(
                f"Kulanzfrist für {quarter.name} abgelaufen "
                f"({self.config.redistribution.grace_period_days} Tage nach Quartalsende)"
            )

        with self.store.transaction():
            self.store.save_quarter(quarter.model_copy(update={
                "is_closed": True,
                "closed_at": now,
                "closed_by": closed_by,
            }))
        logger.info(
            f"Quartal {quarter.name} ({school_year.name}) geschlossen"
            + (f" von {closed_by}" if closed_by else " (automatisch)")
        )

        try:
            return QuarterRedistributor(self.store, self.store, self.config).redistribute(
                quarter_id, school_id,
            )
        except Exception:
            logger.exception(f"Umverteilung nach Abschluss von {quarter.name} fehlgeschlagen")
            return None

    def auto_close_due_quarters(self, now: Optional[datetime] = None) -> list[str]:
        """Alle offenen Quartale schließen, deren Kulanzfrist abgelaufen ist."""
        now = now or datetime.now(timezone.utc)
        today = now.date()
        closed: list[str] = []

        for quarter in self.store.all_quarters():
            if quarter.is_closed or quarter.end_date + self.grace_period >= today:
                continue
            school_year = self.store.get_school_year(quarter.school_year_id)
            if school_year is None:
                logger.error(f"Quartal {quarter.id}: Schuljahr {quarter.school_year_id} fehlt")
                continue
            try:
                self.close_quarter(quarter.id, school_year.school_id, closed_by=None, now=now)
            except SchedulingError as e:
                logger.error(f"Automatischer Abschluss von {quarter.id} fehlgeschlagen: {e}")
                continue
            closed.append(quarter.id)

        logger.info(f"Automatischer Abschluss: {len(closed)} Quartale geschlossen")
        return closed
