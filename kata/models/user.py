"""User model definitions."""

import enum

from sqlalchemy import Column, DateTime, Enum, Integer, String

from kata.database import Base, utcnow


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class User(Base):
    """Represents a registered shop account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # stored lower-cased
    hashed_password = Column(String(60), nullable=False)
    role = Column(
        Enum(UserRole, values_callable=lambda roles: [role.value for role in roles], native_enum=False),
        nullable=False,
        default=UserRole.USER,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
