"""
Role management. Reserved names cannot be created or renamed to; protected roles cannot be
renamed, deactivated or deleted.
"""
import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cyberx_api.errors import ConflictError, NotFoundError, ValidationError
from cyberx_api.models.role import Role
from cyberx_api.repositories.roles import RoleRepository, normalize_role_name
from cyberx_api.schemas.role import RoleCreateRequest, RoleUpdateRequest

logger = logging.getLogger(__name__)

RESERVED_ROLE_NAMES = frozenset({"admin", "super_admin", "system", "root"})
PROTECTED_ROLE_NAMES = frozenset({"admin", "super_admin"})


def is_protected(role: Role) -> bool:
    return role.name.lower() in PROTECTED_ROLE_NAMES


class RoleService:
    def __init__(self, db: Session):
        self.roles = RoleRepository(db)

    def _require(self, role_id: UUID, include_deleted: bool = False) -> Role:
        role = self.roles.find_by_id(role_id, include_deleted)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    def _check_new_name(self, name: str, exclude_id: UUID | None = None) -> str:
        normalized = normalize_role_name(name)
        if normalized in RESERVED_ROLE_NAMES:
            logger.warning("Attempt to use reserved role name: %s", normalized)
            raise ValidationError(f'Role name "{normalized}" is reserved and cannot be used', extra={"field": "name"})
        if self.roles.name_taken(normalized, exclude_id=exclude_id):
            raise ConflictError(f'A role with name "{normalized}" already exists')
        return normalized

    def list_roles(self, *, include_inactive: bool = False, include_deleted: bool = False) -> list[Role]:
        return self.roles.find_all(include_inactive=include_inactive, include_deleted=include_deleted)

    def create_role(self, data: RoleCreateRequest) -> Role:
        name = self._check_new_name(data.name)
        try:
            role = self.roles.create(name=name, description=data.description, is_active=data.is_active)
        except IntegrityError as e:
            raise ConflictError(f'A role with name "{name}" already exists') from e
        logger.info("Role created: %s (%s)", role.name, role.id)
        return role

    def get_role(self, role_id: UUID, include_deleted: bool = False) -> Role:
        return self._require(role_id, include_deleted)

    def get_role_by_name(self, name: str) -> Role:
        role = self.roles.find_by_name(name)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    def update_role(self, role_id: UUID, data: RoleUpdateRequest) -> Role:
        role = self._require(role_id)
        values = data.model_dump(exclude_unset=True)
        for key in ("name", "is_active"):
            if key in values and values[key] is None:
                values.pop(key)
        if "name" in values:
            if normalize_role_name(values["name"]) == role.name:
                values.pop("name")
            else:
                if is_protected(role):
                    raise ValidationError(f"Cannot rename protected system role: {role.name}")
                values["name"] = self._check_new_name(values["name"], exclude_id=role.id)
        if values.get("is_active") is False and is_protected(role):
            raise ValidationError(f"Cannot deactivate protected system role: {role.name}")
        if not values:
            return role
        try:
            role = self.roles.update(role, values)
        except IntegrityError as e:
            raise ConflictError("Role update conflicts with an existing role") from e
        logger.info("Role updated: %s fields=%s", role.id, sorted(values))
        return role

    def activate_role(self, role_id: UUID) -> tuple[Role, bool]:
        role = self._require(role_id)
        if role.is_active:
            return role, False
        return self.roles.update(role, {"is_active": True}), True

    def deactivate_role(self, role_id: UUID) -> tuple[Role, bool]:
        role = self._require(role_id)
        if not role.is_active:
            return role, False
        if is_protected(role):
            raise ValidationError(f"Cannot deactivate protected system role: {role.name}")
        role = self.roles.update(role, {"is_active": False})
        logger.info("Role deactivated: %s", role.name)
        return role, True

    def delete_role(self, role_id: UUID, *, permanent: bool = False) -> None:
        role = self._require(role_id, include_deleted=permanent)
        if is_protected(role):
            raise ValidationError(f"Cannot delete protected system role: {role.name}")
        if permanent:
            if self.roles.count_active_assignments(role.id):
                raise ValidationError(
                    "Cannot permanently delete role with assigned users. Remove users first or use soft delete."
                )
            # Revoked user_roles rows and role_tasks links are removed with the role.
            self.roles.delete_permanently(role)
            logger.info("Role permanently deleted: %s", role_id)
            return
        self.roles.soft_delete(role)
        logger.info("Role soft-deleted: %s", role.name)

    def restore_role(self, role_id: UUID) -> Role:
        role = self._require(role_id, include_deleted=True)
        if not role.is_deleted:
            raise ValidationError("Role is not deleted")
        return self.roles.restore(role)

    def get_statistics(self) -> dict[str, int]:
        return self.roles.statistics()
