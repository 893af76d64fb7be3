from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .errors import ContentGenerationError

PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"
TERMINAL_STATUSES = frozenset({COMPLETED, FAILED})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(raw: str) -> datetime:
    # fromisoformat() only accepts a trailing "Z" from 3.11 on
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _require_str(data: dict[str, Any], key: str, where: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ContentGenerationError(f"{where}: '{key}' must be a string")
    return value


@dataclass
class Activity:
    time: str
    description: str
    location: str

    @classmethod
    def from_dict(cls, data: Any, where: str = "activity") -> Activity:
        if not isinstance(data, dict):
            raise ContentGenerationError(f"{where}: expected an object")
        return cls(
            time=_require_str(data, "time", where),
            description=_require_str(data, "description", where),
            location=_require_str(data, "location", where),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"time": self.time, "description": self.description, "location": self.location}


@dataclass
class ItineraryDay:
    day: int
    theme: str
    activities: list[Activity] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any, where: str = "day") -> ItineraryDay:
        if not isinstance(data, dict):
            raise ContentGenerationError(f"{where}: expected an object")
        day = data.get("day")
        if isinstance(day, bool) or not isinstance(day, int):
            raise ContentGenerationError(f"{where}: 'day' must be an integer")
        activities = data.get("activities")
        if not isinstance(activities, list):
            raise ContentGenerationError(f"{where}: 'activities' must be a list")
        return cls(
            day=day,
            theme=_require_str(data, "theme", where),
            activities=[Activity.from_dict(item, f"{where}.activities[{i}]") for i, item in enumerate(activities)],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "theme": self.theme,
            "activities": [activity.to_dict() for activity in self.activities],
        }


def parse_itinerary(payload: Any) -> list[ItineraryDay]:
    if not isinstance(payload, list):
        raise ContentGenerationError("Itinerary must be a list of day entries")
    return [ItineraryDay.from_dict(item, f"itinerary[{i}]") for i, item in enumerate(payload)]


@dataclass
class JobRecord:
    id: str
    destination: str
    duration_days: int
    created_at: datetime
    status: str = PROCESSING  # processing | completed | failed
    completed_at: datetime | None = None
    itinerary: list[ItineraryDay] = field(default_factory=list)
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_document(self) -> dict[str, Any]:
        """Every stored field, always; the store merges only what it is sent."""
        return {
            "status": self.status,
            "destination": self.destination,
            "durationDays": self.duration_days,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "itinerary": [day.to_dict() for day in self.itinerary],
            "error": self.error,
        }

    def to_dict(self) -> dict[str, Any]:
        return {"jobId": self.id, **self.to_document()}

    @classmethod
    def from_document(cls, job_id: str, data: dict[str, Any]) -> JobRecord:
        completed_raw = data.get("completedAt")
        itinerary_raw = data.get("itinerary") or []
        return cls(
            id=job_id,
            destination=str(data.get("destination", "")),
            duration_days=int(data.get("durationDays", 0)),
            created_at=parse_datetime(data["createdAt"]) if data.get("createdAt") else utcnow(),
            status=str(data.get("status", PROCESSING)).strip().lower(),
            completed_at=parse_datetime(completed_raw) if completed_raw else None,
            itinerary=[ItineraryDay.from_dict(item) for item in itinerary_raw],
            error=data.get("error"),
        )
