"""Trajet use cases: CRUD, date-windowed search and a driver's upcoming trips."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from trajet_api.core.config import Settings, get_settings
from trajet_api.core.logger import get_logger
from trajet_api.core.utils import utcnow
from trajet_api.db.models import Driver, Trajet
from trajet_api.domain.dates import parse_datetime, parse_range_days, start_of_today, symmetric_window
from trajet_api.repositories.sql_repository import SQLRepository
from trajet_api.services.errors import NotFoundError, ValidationError

logger = get_logger(__name__)

REQUIRED_TEXT_FIELDS = ("point_ramassage", "point_livraison", "mode_transport")
COLUMNS = frozenset(REQUIRED_TEXT_FIELDS + ("date_traject", "driver_id"))
# never taken from client payloads
READ_ONLY = frozenset({"id", "created_at", "updated_at"})


@dataclass
class TrajetService:
    """Trajet persistence rules and the search engine."""

    repository: SQLRepository = field(default_factory=SQLRepository)

    @property
    def settings(self) -> Settings:
        return get_settings()

    def _now(self) -> datetime:
        return utcnow()

    # -------------------------------------- helpers --------------------------------------
    def _split(self, values: Mapping[str, Any] | None) -> tuple[dict, dict]:
        """Separate known columns from the opaque attributes kept in ``details``."""
        data = {k: v for k, v in dict(values or {}).items() if k not in READ_ONLY}
        details = data.pop("details", None) or {}
        if not isinstance(details, Mapping):
            raise ValidationError("details must be an object")
        row = {key: data.pop(key) for key in list(data) if key in COLUMNS}
        extra = dict(details)
        extra.update(data)
        return row, extra

    def _clean_row(self, row: dict) -> dict:
        cleaned = dict(row)
        for name in REQUIRED_TEXT_FIELDS:
            if name in cleaned:
                value = str(cleaned[name] or "").strip()
                if not value:
                    raise ValidationError(f"{name} is required")
                cleaned[name] = value
        if "date_traject" in cleaned:
            moment = parse_datetime(cleaned["date_traject"])
            if moment is None:
                raise ValidationError("Invalid date format")
            cleaned["date_traject"] = moment
        if "driver_id" in cleaned:
            driver_id = str(cleaned["driver_id"] or "").strip() or None
            if driver_id and not self.repository.find_by_id(Driver, driver_id):
                raise ValidationError(f"Driver {driver_id} does not exist")
            cleaned["driver_id"] = driver_id
        return cleaned

    # -------------------------------------- CRUD --------------------------------------
    def list_all(self) -> list[Trajet]:
        return self.repository.find(Trajet)

    def list_recent(self) -> list[Trajet]:
        return self.repository.find(Trajet, order_by="date_traject")

    def get(self, trajet_id: str) -> Trajet:
        trajet = self.repository.find_by_id(Trajet, trajet_id)
        if not trajet:
            raise NotFoundError("Trajet not found")
        return trajet

    def create(self, values: Mapping[str, Any]) -> Trajet:
        row, extra = self._split(values)
        missing = [name for name in REQUIRED_TEXT_FIELDS + ("date_traject",) if row.get(name) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        row = self._clean_row(row)
        row["details"] = extra
        trajet = self.repository.insert(Trajet, row)
        logger.info("Trajet %s created (%s -> %s)", trajet.id, trajet.point_ramassage, trajet.point_livraison)
        return trajet

    def update(self, trajet_id: str, patch: Mapping[str, Any]) -> Trajet:
        current = self.get(trajet_id)
        row, extra = self._split(patch)
        row = self._clean_row(row)
        if extra:
            merged = dict(current.details or {})
            merged.update(extra)
            row["details"] = merged
        if not row:
            return current
        updated = self.repository.update_by_id(Trajet, trajet_id, row)
        if not updated:
            raise NotFoundError("Trajet not found")
        return updated

    def delete(self, trajet_id: str) -> None:
        if not self.repository.delete_by_id(Trajet, trajet_id):
            raise NotFoundError("Trajet not found")
        logger.info("Trajet %s deleted", trajet_id)

    # -------------------------------------- queries --------------------------------------
    def search(
        self,
        from_: Optional[str],
        to: Optional[str],
        date: Optional[str | datetime],
        type_: Optional[str],
        range_days: Optional[int | str] = None,
    ) -> list[Trajet]:
        """
        Trajets from ``from_`` to ``to`` by ``type_`` whose date falls within
        ``range_days`` days either side of ``date`` (bounds included), earliest first.
        """
        origin = (from_ or "").strip()
        destination = (to or "").strip()
        mode = (type_ or "").strip()
        if not origin or not destination or not mode or date in (None, ""):
            raise ValidationError("Missing required parameters. Please provide from, to, date, and type.")
        center = parse_datetime(date)
        if center is None:
            raise ValidationError("Invalid date format")
        days = parse_range_days(range_days, self.settings.trajet_search_range_days)
        if days is None:
            raise ValidationError("range must be a non-negative whole number of days")
        window = symmetric_window(center, days)
        return self.repository.find(
            Trajet,
            {
                "point_ramassage": origin,
                "point_livraison": destination,
                "mode_transport": mode,
                "date_traject__gte": window.start,
                "date_traject__lte": window.end,
            },
            order_by="date_traject",
        )

    def list_upcoming_for_driver(self, driver_id: Optional[str]) -> list[Trajet]:
        driver_id = (driver_id or "").strip()
        if not driver_id:
            raise ValidationError("Driver ID is required")
        return self.repository.find(
            Trajet,
            {"driver_id": driver_id, "date_traject__gte": start_of_today(self._now())},
            order_by="date_traject",
        )
