import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from medconnect import doctor_store
from medconnect.auth.dependencies import get_current_doctor
from medconnect.core.exceptions import AvailabilityError, InvalidRangeError, NotFoundError, ValidationError
from medconnect.database import ensure_doctor_schema, get_db
from medconnect.models.doctor import Doctor
from medconnect.services import availability as availability_service
from medconnect.services.availability import (
    DayAvailability,
    TimeSlot,
    UnavailabilityException,
    WeeklyAvailabilityRule,
)

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    InvalidRangeError: status.HTTP_400_BAD_REQUEST,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
}
MAX_REASON_LENGTH = 500


class UpdateWeeklyAvailabilityRequest(BaseModel):
    availability: list[WeeklyAvailabilityRule]


class UpsertUnavailabilityRequest(BaseModel):
    date: str | None = None
    slots: list[TimeSlot] = []
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_REASON_LENGTH} characters or fewer.')

        return normalized


def ensure_database_ready() -> None:
    try:
        ensure_doctor_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


def to_http_exception(exc: AvailabilityError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=exc.message)


def database_unavailable(db: Session, exc: SQLAlchemyError) -> HTTPException:
    db.rollback()
    logger.exception('Database error while handling availability request: %s', exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Database unavailable. Verify DATABASE_URL and database credentials.',
    )


def split_languages(language: str | None) -> list[str]:
    if not language:
        return []
    return [item.strip() for item in language.split(',') if item.strip()]


@router.get('', response_model=list[DayAvailability], response_model_exclude_none=True)
def get_availability(
    start_date: str | None = None,
    end_date: str | None = None,
    doctor_id: int | None = None,
    specialization: str | None = None,
    gender: str | None = None,
    language: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    rating: float | None = None,
    db: Session = Depends(get_db),
):
    try:
        start, end = availability_service.parse_date_range(start_date, end_date)
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc

    ensure_database_ready()

    try:
        if doctor_id is not None:
            doctors = [doctor_store.find_doctor_by_id(db, doctor_id)]
        else:
            doctors = doctor_store.find_doctors(
                db,
                doctor_store.DoctorFilter(
                    specialization=specialization,
                    gender=gender,
                    languages=split_languages(language),
                    min_price=min_price,
                    max_price=max_price,
                    min_rating=rating,
                ),
            )

        schedules = [availability_service.build_schedule(doctor) for doctor in doctors]
        return availability_service.resolve_availability(
            schedules,
            start,
            end,
            include_doctor_meta=doctor_id is None,
        )
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.put('/weekly', response_model=list[WeeklyAvailabilityRule])
def update_weekly_availability(
    data: UpdateWeeklyAvailabilityRequest,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        doctor = availability_service.replace_weekly_availability(db, doctor, data.availability)
        return doctor.availability
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.get('/unavailability', response_model=list[UnavailabilityException])
def get_unavailability(doctor_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return availability_service.list_unavailability(db, doctor_id)
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.post('/unavailability', response_model=list[UnavailabilityException])
def add_unavailability(
    data: UpsertUnavailabilityRequest,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        doctor = availability_service.upsert_unavailability(db, doctor, data.date, data.slots, data.reason)
        return availability_service.list_unavailability(db, doctor.id)
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc


@router.delete('/unavailability', response_model=list[UnavailabilityException])
def delete_unavailability(
    date: str | None = None,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        doctor = availability_service.remove_unavailability(db, doctor, date)
        return availability_service.list_unavailability(db, doctor.id)
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(db, exc) from exc
