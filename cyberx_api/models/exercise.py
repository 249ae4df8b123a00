"""
Exercise: time-boxed engagement (start/end date, active | closed). Users may belong to one exercise.
"""
import uuid
from datetime import datetime
from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from cyberx_api.database import Base
from cyberx_api.models.types import UtcDateTime, UuidType

EXERCISE_STATUSES = ("active", "closed")


class Exercise(Base):
    __tablename__ = "exercises"

    id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)
    end_date: Mapped[datetime] = mapped_column(UtcDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    created_at: Mapped[datetime] = mapped_column(UtcDateTime(), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(UtcDateTime(), server_default=func.now(), onupdate=func.now())
    deleted_at: Mapped[datetime | None] = mapped_column(UtcDateTime(), nullable=True, index=True)

    __table_args__ = (
        CheckConstraint("status IN ('active', 'closed')", name="exercises_status_check"),
    )

    users = relationship("User", back_populates="exercise")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
