"""User model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, func
from clinic_backend.database import Base


class User(Base):
    """Represents a patient or clinic administrator."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    mobile = Column(String, unique=True, index=True)
    email = Column(String, unique=True, index=True)
    role = Column(String, default="user")  # user/admin
    created_at = Column(DateTime, server_default=func.now())
