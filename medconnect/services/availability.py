"""Doctor availability resolution.

Combines each doctor's recurring weekly rules with dated unavailability
exceptions into concrete per-day slot lists. Dates are plain calendar dates;
no timezone conversion happens anywhere in this module.
"""

import logging
import re
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Iterator, Sequence

import pydantic
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.orm import Session

from medconnect import doctor_store
from medconnect.core import config
from medconnect.core.exceptions import InvalidRangeError, ValidationError
from medconnect.models.doctor import Doctor

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')


class Weekday(str, Enum):
    MONDAY = 'monday'
    TUESDAY = 'tuesday'
    WEDNESDAY = 'wednesday'
    THURSDAY = 'thursday'
    FRIDAY = 'friday'
    SATURDAY = 'saturday'
    SUNDAY = 'sunday'


WEEKDAYS = list(Weekday)


class TimeSlot(BaseModel):
    start_time: str
    end_time: str

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        normalized = value.strip()
        if not TIME_PATTERN.match(normalized):
            raise ValueError('Times must use the 24-hour HH:MM format.')
        return normalized

    @model_validator(mode='after')
    def validate_order(self) -> 'TimeSlot':
        if self.end_time <= self.start_time:
            raise ValueError('end_time must be later than start_time.')
        return self

    def overlaps(self, other: 'TimeSlot') -> bool:
        # Touching boundaries do not count as overlap.
        return self.start_time < other.end_time and self.end_time > other.start_time


class WeeklyAvailabilityRule(BaseModel):
    day: Weekday
    slots: list[TimeSlot] = []

    @field_validator('day', mode='before')
    @classmethod
    def normalize_day(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class UnavailabilityException(BaseModel):
    date: date
    slots: list[TimeSlot]
    reason: str | None = None

    class Config:
        from_attributes = True


class DoctorSchedule(BaseModel):
    """Everything the resolver needs to know about one doctor."""

    doctor_id: int
    doctor_name: str = ''
    availability: list[WeeklyAvailabilityRule] = []
    unavailability: list[UnavailabilityException] = []


class DayAvailability(BaseModel):
    date: str
    slots: list[TimeSlot]
    doctor_id: int | None = None
    doctor_name: str | None = None


def build_schedule(doctor: Doctor) -> DoctorSchedule:
    return DoctorSchedule(
        doctor_id=doctor.id,
        doctor_name=doctor.user.display_name if doctor.user else '',
        availability=doctor.availability or [],
        unavailability=[UnavailabilityException.model_validate(row) for row in doctor.unavailability],
    )


def parse_calendar_date(value: Any) -> date | None:
    """Return the calendar date for ``value``, or None if it cannot be read.

    Accepts ``date``/``datetime`` objects and ISO strings, either a bare
    ``YYYY-MM-DD`` or a full timestamp whose time part is discarded.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace('Z', '+00:00')).date()
    except ValueError:
        return None


def parse_date_range(start_date: Any, end_date: Any) -> tuple[date, date]:
    start = parse_calendar_date(start_date)
    end = parse_calendar_date(end_date)

    if start is None or end is None:
        raise InvalidRangeError('start_date and end_date must be valid YYYY-MM-DD dates.')
    if start > end:
        raise InvalidRangeError('start_date must not be after end_date.')
    if (end - start).days + 1 > config.AVAILABILITY_MAX_RANGE_DAYS:
        raise InvalidRangeError(
            f'Date range cannot exceed {config.AVAILABILITY_MAX_RANGE_DAYS} days.'
        )

    return start, end


def iterate_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def weekday_name(day: date) -> Weekday:
    return WEEKDAYS[day.weekday()]


def find_weekly_rule(rules: Iterable[WeeklyAvailabilityRule], weekday: Weekday) -> WeeklyAvailabilityRule | None:
    for rule in rules:
        if rule.day == weekday:
            return rule
    return None


def find_exception(
    exceptions: Iterable[UnavailabilityException],
    day: date,
) -> UnavailabilityException | None:
    for exception in exceptions:
        if exception.date == day:
            return exception
    return None


def subtract_unavailable_slots(base_slots: Sequence[TimeSlot], blocked_slots: Sequence[TimeSlot]) -> list[TimeSlot]:
    """Drop every base slot that overlaps any blocked slot.

    Overlapping slots are removed whole rather than clipped to the
    remaining portion. Survivors keep their original order.
    """
    return [
        slot for slot in base_slots
        if not any(slot.overlaps(blocked) for blocked in blocked_slots)
    ]


def resolve_doctor_availability(
    schedule: DoctorSchedule,
    start: date,
    end: date,
    include_doctor_meta: bool,
) -> list[DayAvailability]:
    days: list[DayAvailability] = []

    for current_day in iterate_days(start, end):
        rule = find_weekly_rule(schedule.availability, weekday_name(current_day))
        slots = list(rule.slots) if rule else []

        exception = find_exception(schedule.unavailability, current_day)
        if exception and slots:
            slots = subtract_unavailable_slots(slots, exception.slots)

        entry = DayAvailability(date=current_day.isoformat(), slots=slots)
        if include_doctor_meta:
            entry.doctor_id = schedule.doctor_id
            entry.doctor_name = schedule.doctor_name
        days.append(entry)

    return days


def resolve_availability(
    doctors: Sequence[DoctorSchedule],
    start_date: Any,
    end_date: Any,
    include_doctor_meta: bool,
) -> list[DayAvailability]:
    """Resolve bookable slots per day for every doctor in ``doctors``.

    Results are doctor-major, date-ascending within each doctor.
    """
    start, end = parse_date_range(start_date, end_date)

    resolved: list[DayAvailability] = []
    for schedule in doctors:
        resolved.extend(resolve_doctor_availability(schedule, start, end, include_doctor_meta))

    return resolved


def _validation_message(exc: pydantic.ValidationError) -> str:
    first_error = exc.errors()[0]
    location = '.'.join(str(part) for part in first_error.get('loc', ()))
    message = first_error.get('msg', 'Invalid value')
    return f'{location}: {message}' if location else message


def parse_weekly_rules(rules: Iterable[Any]) -> list[WeeklyAvailabilityRule]:
    if rules is None:
        raise ValidationError('availability is required.')

    parsed: list[WeeklyAvailabilityRule] = []
    for rule in rules:
        if isinstance(rule, WeeklyAvailabilityRule):
            parsed.append(rule)
            continue
        try:
            parsed.append(WeeklyAvailabilityRule.model_validate(rule))
        except pydantic.ValidationError as exc:
            raise ValidationError(_validation_message(exc)) from exc
    return parsed


def parse_slots(slots: Any) -> list[TimeSlot]:
    if not slots or isinstance(slots, (str, bytes)):
        raise ValidationError('slots must be a non-empty list.')

    parsed: list[TimeSlot] = []
    for slot in slots:
        if isinstance(slot, TimeSlot):
            parsed.append(slot)
            continue
        try:
            parsed.append(TimeSlot.model_validate(slot))
        except pydantic.ValidationError as exc:
            raise ValidationError(_validation_message(exc)) from exc
    return parsed


def replace_weekly_availability(db: Session, doctor: Doctor, rules: Iterable[Any]) -> Doctor:
    """Replace the doctor's weekly rules wholesale."""
    parsed_rules = parse_weekly_rules(rules)

    doctor.availability = [rule.model_dump(mode='json') for rule in parsed_rules]
    doctor = doctor_store.save_doctor(db, doctor)

    logger.info('Weekly availability replaced for doctor %s (%d rules)', doctor.id, len(parsed_rules))
    return doctor


def upsert_unavailability(db: Session, doctor: Doctor, day: Any, slots: Any, reason: str | None = None) -> Doctor:
    """Add or replace the exception for one calendar date."""
    if day is None or day == '':
        raise ValidationError('date is required.')
    normalized_day = parse_calendar_date(day)
    if normalized_day is None:
        raise ValidationError('date must be a valid YYYY-MM-DD date.')
    parsed_slots = parse_slots(slots)

    doctor_store.upsert_unavailability_row(
        db,
        doctor_id=doctor.id,
        day=normalized_day,
        slots=[slot.model_dump() for slot in parsed_slots],
        reason=reason,
    )
    db.refresh(doctor)

    logger.info('Unavailability saved for doctor %s on %s', doctor.id, normalized_day.isoformat())
    return doctor


def remove_unavailability(db: Session, doctor: Doctor, day: Any) -> Doctor:
    """Remove the exception for one calendar date; no-op when there is none."""
    if day is None or day == '':
        raise ValidationError('date is required.')
    normalized_day = parse_calendar_date(day)
    if normalized_day is None:
        raise ValidationError('date must be a valid YYYY-MM-DD date.')

    removed = doctor_store.delete_unavailability_row(db, doctor_id=doctor.id, day=normalized_day)
    db.refresh(doctor)

    if removed:
        logger.info('Unavailability removed for doctor %s on %s', doctor.id, normalized_day.isoformat())
    return doctor


def list_unavailability(db: Session, doctor_id: int) -> list[UnavailabilityException]:
    doctor = doctor_store.find_doctor_by_id(db, doctor_id)
    return [UnavailabilityException.model_validate(row) for row in doctor.unavailability]
