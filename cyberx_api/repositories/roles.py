"""
Role persistence.
"""
from uuid import UUID

from sqlalchemy import func

from cyberx_api.models.role import Role
from cyberx_api.models.user_role import UserRole
from cyberx_api.repositories.base import SoftDeleteRepository


def normalize_role_name(name: str) -> str:
    return (name or "").strip().lower()


class RoleRepository(SoftDeleteRepository[Role]):
    model = Role

    def find_by_name(self, name: str, include_deleted: bool = False) -> Role | None:
        return self.query(include_deleted).filter(Role.name == normalize_role_name(name)).first()

    def name_taken(self, name: str, exclude_id: UUID | None = None) -> bool:
        q = self.db.query(Role.id).filter(Role.name == normalize_role_name(name))
        if exclude_id is not None:
            q = q.filter(Role.id != exclude_id)
        return q.first() is not None

    def find_all(self, *, include_inactive: bool = False, include_deleted: bool = False) -> list[Role]:
        q = self.query(include_deleted)
        if not include_inactive:
            q = q.filter(Role.is_active.is_(True))
        return q.order_by(Role.name).all()

    def count_active_assignments(self, role_id: UUID) -> int:
        return (
            self.db.query(func.count())
            .select_from(UserRole)
            .filter(UserRole.role_id == role_id, UserRole.is_active.is_(True))
            .scalar()
            or 0
        )

    def statistics(self) -> dict[str, int]:
        live = self.db.query(func.count(Role.id)).filter(Role.deleted_at.is_(None))
        return {
            "total": live.scalar() or 0,
            "active": live.filter(Role.is_active.is_(True)).scalar() or 0,
            "inactive": live.filter(Role.is_active.is_(False)).scalar() or 0,
            "deleted": self.db.query(func.count(Role.id)).filter(Role.deleted_at.is_not(None)).scalar() or 0,
        }
