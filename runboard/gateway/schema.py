"""
Wire schema for the facility backend.

This module is the one decode boundary for backend payloads. Every response
is validated against a strict camelCase model; a payload that is missing a
required list or carries the wrong types raises ``SchemaMismatchError``
instead of silently decoding to an empty board.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..errors import SchemaMismatchError
from ..logging_config import get_logger
from ..models import (
    Assignment,
    AssignmentRecord,
    BoardDay,
    BookingInfo,
    CapacityType,
    Owner,
    Pet,
    Run,
    SlotWindow,
    is_valid_time,
)

logger = get_logger(__name__)

UNKNOWN_RUN_NAME = "Unknown Run"
UNKNOWN_PET_NAME = "Unknown Pet"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _clock_time(value: str | None) -> str | None:
    """HH:MM wall-clock part of an ISO timestamp, without timezone conversion."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).strftime("%H:%M")
    except ValueError:
        return None


class RunWire(WireModel):
    id: str
    name: str
    code: str | None = None
    size: str | None = None
    species: str | None = None
    type: str | None = None
    template_name: str | None = None
    sort_order: int | None = None
    max_capacity: int | None = None
    time_period_minutes: int | None = None
    capacity_type: str | None = None

    def to_run(self) -> Run:
        return Run(
            id=self.id,
            name=self.name,
            code=self.code,
            size=self.size,
            species=self.species,
            run_type=self.type,
            template_name=self.template_name,
            sort_order=self.sort_order,
            max_capacity=self.max_capacity,
            time_period_minutes=self.time_period_minutes or None,
            capacity_type=CapacityType(self.capacity_type.lower()) if self.capacity_type else None,
        )


class AssignmentWire(WireModel):
    """One flat assignment row with denormalised run and pet fields."""

    id: str | None = None
    run_id: str
    run_name: str | None = None
    run_code: str | None = None
    run_size: str | None = None
    run_species: str | None = None
    run_sort_order: int | None = None
    max_capacity: int | None = None
    template_name: str | None = None
    booking_id: str | None = None
    pet_id: str
    pet_name: str | None = None
    pet_species: str | None = None
    pet_breed: str | None = None
    pet_photo_url: str | None = None
    start_time: str
    end_time: str
    status: str | None = None
    notes: str | None = None

    @model_validator(mode="before")
    @classmethod
    def derive_clock_times(cls, data: Any) -> Any:
        # Rows written by the scheduler carry only startAt/endAt timestamps
        if isinstance(data, dict):
            data = dict(data)
            for clock, field, stamp in (("startTime", "start_time", "startAt"), ("endTime", "end_time", "endAt")):
                if not data.get(clock) and not data.get(field):
                    derived = _clock_time(data.get(stamp))
                    if derived is not None:
                        data[clock] = derived
        return data

    def placeholder_run(self) -> Run:
        return Run(
            id=self.run_id,
            name=self.run_name or UNKNOWN_RUN_NAME,
            code=self.run_code,
            size=self.run_size,
            species=self.run_species,
            template_name=self.template_name,
            sort_order=self.run_sort_order,
            max_capacity=self.max_capacity,
        )

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not is_valid_time(v):
            raise ValueError(f"'{v}' is not a HH:MM time")
        return v

    def to_assignment(self) -> Assignment:
        return Assignment(
            id=self.id,
            pet=Pet(
                id=self.pet_id,
                name=self.pet_name or UNKNOWN_PET_NAME,
                species=self.pet_species,
                breed=self.pet_breed,
                photo_url=self.pet_photo_url,
            ),
            start_time=self.start_time,
            end_time=self.end_time,
            booking_id=self.booking_id,
            notes=self.notes,
            status=self.status,
        )


class AssignmentsPayload(WireModel):
    runs: list[RunWire]
    assignments: list[AssignmentWire]
    epoch: str | None = None


class SlotsPayload(WireModel):
    slots: list[SlotWindow]


class OwnerWire(WireModel):
    id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    email: str | None = None


class PetWire(WireModel):
    id: str
    name: str | None = None
    species: str | None = None
    breed: str | None = None
    photo_url: str | None = None
    behavior_flags: Any = None
    medical_notes: str | None = None
    dietary_notes: str | None = None


class ServiceWire(WireModel):
    name: str | None = None


class BookingWire(WireModel):
    id: str | None = None
    status: str
    check_in: datetime | None = None
    check_out: datetime | None = None
    pet: PetWire | None = None
    owner: OwnerWire | None = None
    service: ServiceWire | None = None

    def to_pet(self) -> Pet | None:
        if self.pet is None:
            return None
        owners = []
        if self.owner is not None:
            owners.append(
                Owner(
                    id=self.owner.id,
                    first_name=self.owner.first_name or "",
                    last_name=self.owner.last_name or "",
                    phone=self.owner.phone,
                    email=self.owner.email,
                )
            )
        return Pet(
            id=self.pet.id,
            name=self.pet.name or UNKNOWN_PET_NAME,
            species=self.pet.species,
            breed=self.pet.breed,
            photo_url=self.pet.photo_url,
            owners=owners,
            behavior_flags=self.pet.behavior_flags,
            medical_notes=self.pet.medical_notes,
            dietary_notes=self.pet.dietary_notes,
            booking_info=BookingInfo(
                booking_id=self.id,
                check_in=self.check_in,
                check_out=self.check_out,
                service_name=(self.service.name if self.service and self.service.name else "Boarding"),
            ),
        )


class RosterPayload(WireModel):
    data: list[BookingWire]


class SavePayload(WireModel):
    assignments: list[AssignmentRecord]


def _decode(model: type[WireModel], payload: Any, what: str) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Backend {what} payload did not match schema: {e.error_count()} error(s)")
        raise SchemaMismatchError(f"Unexpected {what} payload: {e}") from e


def to_board_day(board_date: date, payload: AssignmentsPayload) -> BoardDay:
    """Flat assignment rows -> run id -> ordered assignments.

    Rows whose run is absent from the run list get a placeholder run built
    from the row's denormalised run fields.
    """
    runs: dict[str, Run] = {wire.id: wire.to_run() for wire in payload.runs}
    nested: dict[str, list[Assignment]] = {run_id: [] for run_id in runs}

    for row in payload.assignments:
        if row.run_id not in runs:
            runs[row.run_id] = row.placeholder_run()
            nested[row.run_id] = []
        nested[row.run_id].append(row.to_assignment())

    return BoardDay(board_date=board_date, runs=list(runs.values()), assignments=nested, epoch=payload.epoch)


def decode_assignments(board_date: date, payload: Any) -> BoardDay:
    decoded = _decode(AssignmentsPayload, payload, "assignments")
    try:
        return to_board_day(board_date, decoded)
    except ValueError as e:
        raise SchemaMismatchError(f"Unexpected assignments payload: {e}") from e


def decode_slots(payload: Any) -> list[SlotWindow]:
    return _decode(SlotsPayload, payload, "available slots").slots


def decode_roster(payload: Any) -> list[Pet]:
    """Checked-in pets from a bookings listing; bookings without a pet are skipped."""
    roster = _decode(RosterPayload, payload, "bookings")
    pets = []
    for booking in roster.data:
        if booking.status != "CHECKED_IN":
            continue
        pet = booking.to_pet()
        if pet is not None:
            pets.append(pet)
    return pets


def decode_saved(payload: Any) -> list[AssignmentRecord]:
    return _decode(SavePayload, payload, "save").assignments
