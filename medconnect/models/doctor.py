"""Doctor model definitions."""

from sqlalchemy import JSON, Column, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from medconnect.database import Base
from medconnect.models.unavailability import DoctorUnavailability
from medconnect.models.user import User

VERIFIED_STATUS = "VERIFIED"


class Doctor(Base):
    """Represents a doctor profile and its weekly schedule."""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    registration_number = Column(String, unique=True)
    status = Column(String, default="DETAILS_REQUIRED")
    specializations = Column(JSON, default=list)
    gender = Column(String)  # male/female/other
    languages = Column(JSON, default=list)
    consultation_fee = Column(Float, default=0)
    currency = Column(String, default="EUR")
    rating = Column(Float, default=0)
    total_reviews = Column(Integer, default=0)
    slot_duration_minutes = Column(Integer, default=15)
    availability = Column(JSON, default=list)

    user = relationship(User, lazy="joined")
    unavailability = relationship(
        DoctorUnavailability,
        back_populates="doctor",
        cascade="all, delete-orphan",
        order_by=DoctorUnavailability.date,
    )
