import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from medconnect.database import Base  # noqa: E402
from medconnect.models.doctor import Doctor  # noqa: E402
from medconnect.models.unavailability import DoctorUnavailability  # noqa: E402
from medconnect.models.user import User  # noqa: E402

TABLES = [User.__table__, Doctor.__table__, DoctorUnavailability.__table__]


@pytest.fixture
def doctor_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def make_doctor(doctor_db):
    created = 0

    def _make_doctor(**overrides) -> Doctor:
        nonlocal created
        created += 1

        user = User(
            email=overrides.pop('email', f'doctor{created}@example.com'),
            first_name=overrides.pop('first_name', 'Anna'),
            last_name=overrides.pop('last_name', f'de Vries {created}'),
            hashed_password='',
            role=overrides.pop('role', 'doctor'),
        )
        doctor_db.add(user)
        doctor_db.flush()

        values = {
            'user_id': user.id,
            'registration_number': f'REG-{created:05d}',
            'status': 'VERIFIED',
            'specializations': ['general practice'],
            'gender': 'female',
            'languages': ['dutch', 'english'],
            'consultation_fee': 50.0,
            'rating': 4.5,
            'availability': [],
        }
        values.update(overrides)

        doctor = Doctor(**values)
        doctor_db.add(doctor)
        doctor_db.commit()
        doctor_db.refresh(doctor)
        return doctor

    return _make_doctor
