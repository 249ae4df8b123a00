"""
Role assignments: grant, bulk grant, revoke, update and list user <-> role links.
"""
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cyberx_api.errors import ApiError, ConflictError, NotFoundError, ValidationError
from cyberx_api.models.role import Role
from cyberx_api.models.types import as_utc, utcnow
from cyberx_api.models.user import User
from cyberx_api.models.user_role import UserRole
from cyberx_api.repositories.assignments import AssignmentRepository
from cyberx_api.repositories.roles import RoleRepository
from cyberx_api.repositories.users import UserRepository
from cyberx_api.schemas.common import PaginationQuery
from cyberx_api.schemas.user import AssignmentUpdateRequest

logger = logging.getLogger(__name__)


def _is_effective(assignment: UserRole, now: datetime) -> bool:
    return assignment.is_active and (assignment.expires_at is None or assignment.expires_at > now)


class AssignmentService:
    def __init__(self, db: Session):
        self.assignments = AssignmentRepository(db)
        self.users = UserRepository(db)
        self.roles = RoleRepository(db)

    def _active_user(self, user_id: UUID) -> User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise ValidationError("Cannot assign roles to an inactive user")
        return user

    def _active_role(self, role_id: UUID) -> Role:
        role = self.roles.find_by_id(role_id)
        if role is None:
            raise NotFoundError("Role not found")
        if not role.is_active:
            raise ValidationError("Cannot assign an inactive role")
        return role

    @staticmethod
    def _check_expiry(expires_at: datetime | None) -> datetime | None:
        expires_at = as_utc(expires_at)
        if expires_at is not None and expires_at <= utcnow():
            raise ValidationError("expires_at must be in the future", extra={"field": "expires_at"})
        return expires_at

    def assign_role(
        self,
        user_id: UUID,
        role_id: UUID,
        *,
        assigned_by: UUID | None = None,
        expires_at: datetime | None = None,
        notes: str | None = None,
    ) -> UserRole:
        """Grant role to user. A revoked or expired pair is reactivated; an effective pair is a conflict."""
        self._active_user(user_id)
        role = self._active_role(role_id)
        expires_at = self._check_expiry(expires_at)
        values = {
            "assigned_at": utcnow(),
            "assigned_by": assigned_by,
            "is_active": True,
            "expires_at": expires_at,
            "notes": notes,
        }
        existing = self.assignments.get(user_id, role_id)
        if existing is not None:
            if _is_effective(existing, values["assigned_at"]):
                raise ConflictError("User already has this role")
            # Revoked or expired: grant again on the same row
            assignment = self.assignments.update(existing, values)
            logger.info("Role %s reactivated for user %s", role.name, user_id)
            return assignment
        try:
            assignment = self.assignments.create(user_id=user_id, role_id=role_id, **values)
        except IntegrityError as e:
            raise ConflictError("User already has this role") from e
        logger.info("Role %s assigned to user %s by %s", role.name, user_id, assigned_by)
        return assignment

    def assign_role_to_users(
        self,
        role_id: UUID,
        user_ids: list[UUID],
        *,
        assigned_by: UUID | None = None,
        expires_at: datetime | None = None,
        notes: str | None = None,
    ) -> tuple[list[UUID], list[dict]]:
        """Grant role to each user independently. Returns (assigned ids, failures with reasons)."""
        self._active_role(role_id)
        assigned: list[UUID] = []
        failed: list[dict] = []
        for user_id in dict.fromkeys(user_ids):
            try:
                self.assign_role(user_id, role_id, assigned_by=assigned_by, expires_at=expires_at, notes=notes)
            except ApiError as e:
                failed.append({"user_id": str(user_id), "reason": e.message})
                continue
            assigned.append(user_id)
        if not assigned and failed:
            raise ConflictError("No users were assigned this role", extra={"failed": failed})
        return assigned, failed

    def revoke_role(self, user_id: UUID, role_id: UUID) -> None:
        if not self.assignments.deactivate(user_id, role_id):
            raise NotFoundError("Assignment not found or already revoked")
        logger.info("Role %s revoked from user %s", role_id, user_id)

    def update_assignment(self, user_id: UUID, role_id: UUID, data: AssignmentUpdateRequest) -> UserRole:
        assignment = self.assignments.get(user_id, role_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        values = data.model_dump(exclude_unset=True)
        if "is_active" in values and values["is_active"] is None:
            values.pop("is_active")
        if "expires_at" in values:
            values["expires_at"] = self._check_expiry(values["expires_at"])
        if not values:
            return assignment
        return self.assignments.update(assignment, values)

    def list_user_roles(self, user_id: UUID, *, include_inactive: bool = False) -> list[UserRole]:
        if self.users.find_by_id(user_id) is None:
            raise NotFoundError("User not found")
        return self.assignments.for_user(user_id, include_inactive=include_inactive)

    def list_role_users(self, role_id: UUID, *, include_inactive: bool = False) -> list[UserRole]:
        if self.roles.find_by_id(role_id) is None:
            raise NotFoundError("Role not found")
        return self.assignments.for_role(role_id, include_inactive=include_inactive)

    def list_role_users_by_name(self, role_name: str, *, include_inactive: bool = False) -> list[UserRole]:
        role = self.roles.find_by_name(role_name)
        if role is None:
            raise NotFoundError("Role not found")
        return self.assignments.for_role(role.id, include_inactive=include_inactive)

    def has_role(self, user_id: UUID, role_name: str) -> bool:
        return role_name.strip().lower() in self.users.effective_role_names(user_id)

    def list_assignments(
        self,
        page: PaginationQuery,
        *,
        user_id: UUID | None = None,
        role_id: UUID | None = None,
        is_active: bool | None = None,
        include_expired: bool = False,
    ) -> tuple[list[UserRole], int]:
        return self.assignments.find_page(
            page, user_id=user_id, role_id=role_id, is_active=is_active, include_expired=include_expired
        )
