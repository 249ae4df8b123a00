"""
User model: auth (email + password hash), lockout bookkeeping, optional exercise affiliation.
Roles come from user_roles (see UserRole); soft-deleted users keep their row with deleted_at set.
"""
import uuid
from datetime import datetime
from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from cyberx_api.database import Base
from cyberx_api.models.types import UtcDateTime, UuidType, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    exercise_id: Mapped[uuid.UUID | None] = mapped_column(
        UuidType(), ForeignKey("exercises.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked_until: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime(), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True, index=True)

    __table_args__ = (
        CheckConstraint("failed_login_attempts >= 0", name="users_failed_attempts_check"),
    )

    exercise = relationship("Exercise", back_populates="users")
    role_assignments = relationship(
        "UserRole",
        back_populates="user",
        foreign_keys="UserRole.user_id",
        cascade="all, delete-orphan",
    )

    def is_locked(self, now: datetime | None = None) -> bool:
        """True while locked_until is in the future."""
        if self.locked_until is None:
            return False
        return self.locked_until > (now or utcnow())

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
