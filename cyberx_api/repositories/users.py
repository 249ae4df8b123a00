"""
User persistence: lookups by id/email, filtered listing, lockout bookkeeping and statistics.
"""
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import and_, case, func, literal, null, or_, update

from cyberx_api.models.role import Role
from cyberx_api.models.types import UtcDateTime, utcnow
from cyberx_api.models.user import User
from cyberx_api.models.user_role import UserRole
from cyberx_api.repositories.base import SoftDeleteRepository
from cyberx_api.schemas.common import PaginationQuery


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserRepository(SoftDeleteRepository[User]):
    model = User

    def find_by_email(self, email: str, include_deleted: bool = False) -> User | None:
        return self.query(include_deleted).filter(User.email == normalize_email(email)).first()

    def email_taken(self, email: str, exclude_id: UUID | None = None) -> bool:
        """Unique index covers soft-deleted rows too, so they count."""
        q = self.db.query(User.id).filter(User.email == normalize_email(email))
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        return q.first() is not None

    def find_page(
        self,
        page: PaginationQuery,
        *,
        is_active: bool | None = None,
        exercise_id: UUID | None = None,
        role_id: UUID | None = None,
    ) -> tuple[list[User], int]:
        q = self.query(page.include_deleted)
        if page.search:
            pattern = f"%{page.search}%"
            q = q.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        if is_active is not None:
            q = q.filter(User.is_active.is_(is_active))
        if exercise_id is not None:
            q = q.filter(User.exercise_id == exercise_id)
        if role_id is not None:
            q = q.filter(
                User.id.in_(
                    self.db.query(UserRole.user_id).filter(
                        UserRole.role_id == role_id,
                        UserRole.is_active.is_(True),
                        or_(UserRole.expires_at.is_(None), UserRole.expires_at > utcnow()),
                    )
                )
            )
        return self.paginate(q, page, User.created_at.desc(), User.email)

    def register_failed_login(
        self, user_id: UUID, *, now: datetime, max_attempts: int, lockout: timedelta
    ) -> User | None:
        """Count one failed password check and lock once the threshold is reached.

        Single UPDATE: no lost increments under concurrency, and rows that are currently locked are not
        touched, so a lock is never extended. A lock that has already run out starts a fresh count.
        """
        lock_expired = and_(User.locked_until.is_not(None), User.locked_until <= now)
        attempts = case((lock_expired, 0), else_=User.failed_login_attempts) + 1
        stmt = (
            update(User)
            .where(User.id == user_id)
            .where(or_(User.locked_until.is_(None), User.locked_until <= now))
            .values(
                failed_login_attempts=attempts,
                locked_until=case(
                    (attempts >= max_attempts, literal(now + lockout, UtcDateTime())),
                    (lock_expired, null()),
                    else_=User.locked_until,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)
        self.db.commit()
        return self.find_by_id(user_id)

    def record_successful_login(self, user: User, now: datetime) -> User:
        return self.update(user, {"failed_login_attempts": 0, "locked_until": None, "last_login_at": now})

    def clear_lockout(self, user: User) -> User:
        return self.update(user, {"failed_login_attempts": 0, "locked_until": None})

    def effective_role_names(self, user_id: UUID, now: datetime | None = None) -> list[str]:
        """Names of roles whose assignment is active and unexpired, and whose role is active and not deleted."""
        now = now or utcnow()
        rows = (
            self.db.query(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .filter(
                UserRole.user_id == user_id,
                UserRole.is_active.is_(True),
                or_(UserRole.expires_at.is_(None), UserRole.expires_at > now),
                Role.is_active.is_(True),
                Role.deleted_at.is_(None),
            )
            .order_by(Role.name)
            .all()
        )
        return [name for (name,) in rows]

    def statistics(self, now: datetime | None = None) -> dict[str, int]:
        now = now or utcnow()
        live = self.db.query(func.count(User.id)).filter(User.deleted_at.is_(None))
        return {
            "total": live.scalar() or 0,
            "active": live.filter(User.is_active.is_(True)).scalar() or 0,
            "inactive": live.filter(User.is_active.is_(False)).scalar() or 0,
            "locked": live.filter(User.locked_until.is_not(None), User.locked_until > now).scalar() or 0,
            "deleted": self.db.query(func.count(User.id)).filter(User.deleted_at.is_not(None)).scalar() or 0,
        }
