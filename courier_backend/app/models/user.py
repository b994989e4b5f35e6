"""
User database model.

Users are created on first sign-in and keyed by their (lower-case) email.
"""

from sqlalchemy import Column, String, DateTime, Enum
from courier_backend.app.db.session import Base, new_id, utcnow
from courier_backend.app.models.enums import UserRole


class User(Base):
    """
    User model for the courier platform.

    The unique index on ``email`` is what keeps concurrent first logins
    from creating duplicate users.
    """
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    photo_url = Column(String(1024), nullable=True)

    # Role-based authorization; None reads as UserRole.USER
    role = Column(Enum(UserRole), default=UserRole.USER, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    last_log_in = Column(DateTime(timezone=True), nullable=True)

    @property
    def effective_role(self) -> UserRole:
        return self.role or UserRole.USER

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.effective_role.value}')>"
