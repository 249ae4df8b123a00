"""
Role assignment (user_roles) persistence. Rows are keyed by (user_id, role_id) and are never
duplicated: revoking flips is_active, re-assigning flips it back.
"""
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from cyberx_api.models.role import Role
from cyberx_api.models.types import utcnow
from cyberx_api.models.user import User
from cyberx_api.models.user_role import UserRole
from cyberx_api.schemas.common import PaginationQuery


class AssignmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise

    def get(self, user_id: UUID, role_id: UUID) -> UserRole | None:
        return (
            self.db.query(UserRole)
            .filter(UserRole.user_id == user_id, UserRole.role_id == role_id)
            .first()
        )

    def create(self, **values: Any) -> UserRole:
        """Insert a new assignment. IntegrityError propagates (concurrent duplicate)."""
        assignment = UserRole(**values)
        self.db.add(assignment)
        self.commit()
        self.db.refresh(assignment)
        return assignment

    def update(self, assignment: UserRole, values: dict[str, Any]) -> UserRole:
        for key, value in values.items():
            setattr(assignment, key, value)
        self.commit()
        self.db.refresh(assignment)
        return assignment

    def deactivate(self, user_id: UUID, role_id: UUID) -> bool:
        """Revoke an active assignment. False if there was none to revoke."""
        result = self.db.execute(
            update(UserRole)
            .where(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id,
                UserRole.is_active.is_(True),
            )
            .values(is_active=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self.commit()
        return result.rowcount > 0

    def for_user(self, user_id: UUID, *, include_inactive: bool = False, now: datetime | None = None) -> list[UserRole]:
        q = (
            self.db.query(UserRole)
            .options(joinedload(UserRole.role))
            .join(Role, UserRole.role_id == Role.id)
            .filter(UserRole.user_id == user_id)
        )
        if not include_inactive:
            q = self._effective(q, now or utcnow())
        return q.order_by(Role.name).all()

    def for_role(self, role_id: UUID, *, include_inactive: bool = False, now: datetime | None = None) -> list[UserRole]:
        q = (
            self.db.query(UserRole)
            .options(joinedload(UserRole.user))
            .join(User, UserRole.user_id == User.id)
            .filter(UserRole.role_id == role_id, User.deleted_at.is_(None))
        )
        if not include_inactive:
            now = now or utcnow()
            q = q.filter(
                UserRole.is_active.is_(True),
                or_(UserRole.expires_at.is_(None), UserRole.expires_at > now),
            )
        return q.order_by(User.email).all()

    def find_page(
        self,
        page: PaginationQuery,
        *,
        user_id: UUID | None = None,
        role_id: UUID | None = None,
        is_active: bool | None = None,
        include_expired: bool = False,
        now: datetime | None = None,
    ) -> tuple[list[UserRole], int]:
        q = self.db.query(UserRole).options(joinedload(UserRole.role), joinedload(UserRole.user))
        if not include_expired:
            q = q.filter(or_(UserRole.expires_at.is_(None), UserRole.expires_at > (now or utcnow())))
        if user_id is not None:
            q = q.filter(UserRole.user_id == user_id)
        if role_id is not None:
            q = q.filter(UserRole.role_id == role_id)
        if is_active is not None:
            q = q.filter(UserRole.is_active.is_(is_active))
        total = q.order_by(None).count()
        items = q.order_by(UserRole.assigned_at.desc()).offset(page.offset).limit(page.limit).all()
        return items, total

    @staticmethod
    def _effective(q, now: datetime):
        return q.filter(
            UserRole.is_active.is_(True),
            or_(UserRole.expires_at.is_(None), UserRole.expires_at > now),
            Role.is_active.is_(True),
            Role.deleted_at.is_(None),
        )
