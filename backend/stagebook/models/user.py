# backend/stagebook/models/user.py

from sqlalchemy import Boolean, Column, Integer, String, Enum
from .base import BaseModel
import enum


class UserRole(str, enum.Enum):
    """Enumeration of all supported user roles."""

    ARTIST = "artist"
    VENUE = "venue"
    ADMIN = "admin"


class User(BaseModel):
    __tablename__ = "users"

    id           = Column(Integer, primary_key=True, index=True)
    email        = Column(String, unique=True, index=True, nullable=False)
    password     = Column(String, nullable=False)
    first_name   = Column(String, nullable=False)
    last_name    = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    # Display name for venues / stage name for artists
    organization_name = Column(String, nullable=True)
    role         = Column(Enum(UserRole), nullable=False)
    is_active    = Column(Boolean, default=True)

    @property
    def display_name(self) -> str:
        if self.organization_name:
            return self.organization_name
        return f"{self.first_name} {self.last_name}".strip()
