"""User model definitions."""

from sqlalchemy import Column, Integer, String
from medconnect.database import Base


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    first_name = Column(String, default="")
    last_name = Column(String, default="")
    hashed_password = Column(String)
    role = Column(String)  # patient/doctor/admin

    @property
    def display_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return ""
