"""
Domain models for the run board.

Pets and runs are read-only references owned by their collaborators (the
checked-in roster and the facility backend). Assignments bind one pet to one
run for one day with a wall-clock HH:MM window.
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_MAX_CAPACITY = 10

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def is_valid_time(value: Any) -> bool:
    """True if value is a 24-hour HH:MM string."""
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


class CapacityType(Enum):
    TOTAL = "total"  # max_capacity pets over the whole day
    CONCURRENT = "concurrent"  # max_capacity pets per time window


class CapacityStatus(Enum):
    NOMINAL = "nominal"
    WARNING = "warning"
    CRITICAL = "critical"


class PersistenceState(Enum):
    SAVED = "saved"
    DIRTY = "dirty"
    FAILED = "failed"


class PersistenceStatus(BaseModel):
    """Persistence state of a single pet's assignment."""

    model_config = ConfigDict(frozen=True)

    state: PersistenceState
    reason: str | None = None

    @classmethod
    def saved(cls) -> PersistenceStatus:
        return cls(state=PersistenceState.SAVED)

    @classmethod
    def dirty(cls) -> PersistenceStatus:
        return cls(state=PersistenceState.DIRTY)

    @classmethod
    def failed(cls, reason: str) -> PersistenceStatus:
        return cls(state=PersistenceState.FAILED, reason=reason)


class Owner(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str | None = None
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    email: str | None = None

    @property
    def full_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or "Unknown Owner"


class BookingInfo(BaseModel):
    """Stay details for a pet sourced from an active booking."""

    model_config = ConfigDict(frozen=True)

    booking_id: str | None = None
    check_in: datetime | None = None
    check_out: datetime | None = None
    service_name: str = "Boarding"


class Pet(BaseModel):
    """A checked-in animal eligible for placement."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    species: str | None = None
    breed: str | None = None
    photo_url: str | None = None
    owners: list[Owner] = Field(default_factory=list)
    behavior_flags: list[str] = Field(default_factory=list)
    medical_notes: str | None = None
    dietary_notes: str | None = None
    booking_info: BookingInfo | None = None

    @field_validator("behavior_flags", mode="before")
    @classmethod
    def parse_behavior_flags(cls, v: Any) -> list[str]:
        """Accept a list, a {flag: bool} mapping, or that mapping as a JSON string."""
        if v is None:
            return []
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError:
                return []
        if isinstance(v, dict):
            return [str(key) for key, enabled in v.items() if enabled is True]
        if isinstance(v, (list, tuple)):
            return [str(flag) for flag in v if flag]
        return []

    @property
    def has_medical_or_dietary_notes(self) -> bool:
        return bool(self.medical_notes or self.dietary_notes)

    @property
    def has_warnings(self) -> bool:
        return bool(self.behavior_flags) or self.has_medical_or_dietary_notes

    @property
    def primary_owner(self) -> Owner | None:
        return self.owners[0] if self.owners else None


class Run(BaseModel):
    """A capacity-bounded physical placement resource for one day."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    code: str | None = None
    size: str | None = None
    species: str | None = None
    run_type: str | None = None
    template_name: str | None = None
    sort_order: int = 0
    max_capacity: int = Field(default=DEFAULT_MAX_CAPACITY, ge=1)
    time_period_minutes: int | None = Field(default=None, ge=1)
    capacity_type: CapacityType = CapacityType.TOTAL

    @field_validator("max_capacity", mode="before")
    @classmethod
    def default_capacity(cls, v: Any) -> Any:
        # Backends report 0 or null for "not configured"
        if v is None or v == 0:
            return DEFAULT_MAX_CAPACITY
        return v

    @field_validator("sort_order", mode="before")
    @classmethod
    def default_sort_order(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("capacity_type", mode="before")
    @classmethod
    def default_capacity_type(cls, v: Any) -> Any:
        return CapacityType.TOTAL if v in (None, "") else v


class AssignmentRecord(BaseModel):
    """Flat wire form of an assignment, as sent to ``save_all``."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    run_id: str
    pet_id: str
    start_time: str
    end_time: str
    booking_id: str | None = None
    notes: str | None = None


class Assignment(BaseModel):
    """A pet-to-run binding with a time window."""

    model_config = ConfigDict(frozen=True)

    pet: Pet
    start_time: str
    end_time: str
    booking_id: str | None = None
    notes: str | None = None
    id: str | None = None  # server id, absent for local placements
    status: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not is_valid_time(v):
            raise ValueError(f"'{v}' is not a HH:MM time")
        return v

    def to_record(self, run_id: str) -> AssignmentRecord:
        return AssignmentRecord(
            run_id=run_id,
            pet_id=self.pet.id,
            start_time=self.start_time,
            end_time=self.end_time,
            booking_id=self.booking_id,
            notes=self.notes,
        )


class SlotWindow(BaseModel):
    """An advisory time window for a run; ``available`` never blocks a choice."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    start_time: str
    end_time: str
    available: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not is_valid_time(v):
            raise ValueError(f"'{v}' is not a HH:MM time")
        return v


class BoardDay(BaseModel):
    """Server state for one date, already transformed to run -> assignments."""

    board_date: date
    runs: list[Run]
    assignments: dict[str, list[Assignment]] = Field(default_factory=dict)
    epoch: str | None = None

    def sorted_runs(self) -> list[Run]:
        return sorted(self.runs, key=lambda r: (r.sort_order, r.name))
