"""
Role: named group of permissions. Names are stored lower-cased and unique.
admin and super_admin are protected (seeded at startup, cannot be deactivated or deleted).
"""
import uuid
from datetime import datetime
from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from cyberx_api.database import Base
from cyberx_api.models.types import UtcDateTime, UuidType


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime(), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True, index=True)

    user_assignments = relationship("UserRole", back_populates="role", cascade="all, delete-orphan")
    tasks = relationship("Task", secondary="role_tasks", back_populates="roles")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
