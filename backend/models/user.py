"""User model definitions."""

from sqlalchemy import Column, Integer, String
from backend.database import Base

ROLE_CANDIDATE = "candidate"
ROLE_INTERVIEWER = "interviewer"
ROLE_ADMIN = "admin"
USER_ROLES = (ROLE_CANDIDATE, ROLE_INTERVIEWER, ROLE_ADMIN)


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    role = Column(String, default=ROLE_CANDIDATE)  # candidate/interviewer/admin
    first_name = Column(String, default="")
    last_name = Column(String, default="")
    timezone = Column(String, default="UTC")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
