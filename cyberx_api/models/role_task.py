"""
RoleTask: junction row linking a Role to a Task. No extra columns.
"""
import uuid
from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from cyberx_api.database import Base
from cyberx_api.models.types import UuidType


class RoleTask(Base):
    __tablename__ = "role_tasks"

    role_id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        UuidType(), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True, index=True
    )
