"""Doctor unavailability model definitions."""

from sqlalchemy import JSON, Column, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from medconnect.database import Base


class DoctorUnavailability(Base):
    """A dated exception removing slots from a doctor's weekly schedule.

    One row per doctor per calendar date; writes for a date replace the row.
    """
    __tablename__ = "doctor_unavailability"
    __table_args__ = (
        UniqueConstraint("doctor_id", "date", name="uq_doctor_unavailability_date"),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    slots = Column(JSON, nullable=False, default=list)
    reason = Column(String)

    doctor = relationship("Doctor", back_populates="unavailability")
