"""Persistence helpers for doctor records and their schedules."""

from datetime import date

from pydantic import BaseModel
from sqlalchemy import delete, func
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from medconnect.core.exceptions import NotFoundError
from medconnect.models.doctor import VERIFIED_STATUS, Doctor
from medconnect.models.unavailability import DoctorUnavailability

_UPSERT_DIALECTS = {
    'postgresql': postgresql_insert,
    'sqlite': sqlite_insert,
}


class DoctorFilter(BaseModel):
    specialization: str | None = None
    gender: str | None = None
    languages: list[str] = []
    min_price: float | None = None
    max_price: float | None = None
    min_rating: float | None = None
    verified_only: bool = True


def find_doctor_by_id(db: Session, doctor_id: int) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
    if doctor is None:
        raise NotFoundError('Doctor not found.')
    return doctor


def find_doctor_by_user_id(db: Session, user_id: int) -> Doctor | None:
    return db.query(Doctor).filter(Doctor.user_id == user_id).first()


def _matches_list_filters(doctor: Doctor, filters: DoctorFilter) -> bool:
    if filters.specialization:
        wanted = filters.specialization.strip().lower()
        specializations = [item.lower() for item in (doctor.specializations or [])]
        if wanted not in specializations:
            return False

    if filters.languages:
        wanted_languages = {item.strip().lower() for item in filters.languages}
        spoken = {item.lower() for item in (doctor.languages or [])}
        if not wanted_languages & spoken:
            return False

    return True


def find_doctors(db: Session, filters: DoctorFilter) -> list[Doctor]:
    query = db.query(Doctor)

    if filters.verified_only:
        query = query.filter(Doctor.status == VERIFIED_STATUS)
    if filters.gender:
        query = query.filter(func.lower(Doctor.gender) == filters.gender.strip().lower())
    if filters.min_price is not None:
        query = query.filter(Doctor.consultation_fee >= filters.min_price)
    if filters.max_price is not None:
        query = query.filter(Doctor.consultation_fee <= filters.max_price)
    if filters.min_rating is not None:
        query = query.filter(Doctor.rating >= filters.min_rating)

    # specializations and languages are JSON lists, matched after the query.
    doctors = query.order_by(Doctor.id.asc()).all()
    return [doctor for doctor in doctors if _matches_list_filters(doctor, filters)]


def save_doctor(db: Session, doctor: Doctor) -> Doctor:
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


def upsert_unavailability_row(
    db: Session,
    doctor_id: int,
    day: date,
    slots: list[dict],
    reason: str | None,
) -> None:
    """Insert or replace the exception for (doctor_id, day) in one statement."""
    values = {'doctor_id': doctor_id, 'date': day, 'slots': slots, 'reason': reason}
    dialect_insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)

    if dialect_insert is not None:
        statement = dialect_insert(DoctorUnavailability).values(**values)
        statement = statement.on_conflict_do_update(
            index_elements=['doctor_id', 'date'],
            set_={'slots': statement.excluded.slots, 'reason': statement.excluded.reason},
        )
        db.execute(statement)
    else:
        db.execute(
            delete(DoctorUnavailability).where(
                DoctorUnavailability.doctor_id == doctor_id,
                DoctorUnavailability.date == day,
            )
        )
        db.add(DoctorUnavailability(**values))

    db.commit()


def delete_unavailability_row(db: Session, doctor_id: int, day: date) -> bool:
    result = db.execute(
        delete(DoctorUnavailability).where(
            DoctorUnavailability.doctor_id == doctor_id,
            DoctorUnavailability.date == day,
        )
    )
    db.commit()
    return bool(result.rowcount)
