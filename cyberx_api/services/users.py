"""
User management: create, read, list, update, activate/deactivate, password change,
soft/permanent delete, restore, manual lock/unlock and statistics.
"""
import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cyberx_api.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from cyberx_api.models.types import utcnow
from cyberx_api.models.user import User
from cyberx_api.repositories.exercises import ExerciseRepository
from cyberx_api.repositories.users import UserRepository
from cyberx_api.schemas.common import PaginationQuery
from cyberx_api.schemas.user import PasswordChangeRequest, UserCreateRequest, UserUpdateRequest
from cyberx_api.services.passwords import hash_password, verify_password
from cyberx_api.services.rbac import restricted_fields_in

logger = logging.getLogger(__name__)

# Columns that cannot be cleared with an explicit null in an update body.
NON_NULLABLE_UPDATE_FIELDS = ("email", "name", "password", "is_active", "failed_login_attempts")


class UserService:
    def __init__(self, db: Session):
        self.users = UserRepository(db)
        self.exercises = ExerciseRepository(db)

    def _require(self, user_id: UUID, include_deleted: bool = False) -> User:
        user = self.users.find_by_id(user_id, include_deleted)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _check_exercise(self, exercise_id: UUID | None) -> None:
        if exercise_id is not None and not self.exercises.exists(exercise_id):
            raise ValidationError("Exercise not found", extra={"field": "exercise_id"})

    def create_user(self, data: UserCreateRequest) -> User:
        if self.users.email_taken(data.email):
            raise ConflictError(f'A user with email "{data.email}" already exists')
        self._check_exercise(data.exercise_id)
        try:
            user = self.users.create(
                email=data.email,
                password_hash=hash_password(data.password),
                name=data.name,
                exercise_id=data.exercise_id,
                is_active=data.is_active,
            )
        except IntegrityError as e:
            raise ConflictError(f'A user with email "{data.email}" already exists') from e
        logger.info("User created: %s", user.id)
        return user

    def get_user(self, user_id: UUID, include_deleted: bool = False) -> User:
        return self._require(user_id, include_deleted)

    def get_user_by_email(self, email: str, include_deleted: bool = False) -> User:
        user = self.users.find_by_email(email, include_deleted)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def list_users(
        self,
        page: PaginationQuery,
        *,
        is_active: bool | None = None,
        exercise_id: UUID | None = None,
        role_id: UUID | None = None,
    ) -> tuple[list[User], int]:
        return self.users.find_page(page, is_active=is_active, exercise_id=exercise_id, role_id=role_id)

    def roles_of(self, user: User) -> list[str]:
        return self.users.effective_role_names(user.id)

    def update_user(self, user_id: UUID, data: UserUpdateRequest, *, actor_is_admin: bool) -> User:
        """Apply the fields present in data. Non-admins cannot set restricted fields; those are dropped."""
        user = self._require(user_id)
        values = data.model_dump(exclude_unset=True)
        if not actor_is_admin:
            dropped = restricted_fields_in(values)
            if dropped:
                logger.warning("Dropping restricted fields %s from non-admin update of user %s", dropped, user_id)
                for key in dropped:
                    values.pop(key)
        for key in NON_NULLABLE_UPDATE_FIELDS:
            if key in values and values[key] is None:
                raise ValidationError(f"{key} cannot be null", extra={"field": key})

        if "email" in values and values["email"] != user.email:
            if self.users.email_taken(values["email"], exclude_id=user.id):
                raise ConflictError(f'A user with email "{values["email"]}" already exists')
        if "exercise_id" in values:
            self._check_exercise(values["exercise_id"])
        if "password" in values:
            values["password_hash"] = hash_password(values.pop("password"))
        if not values:
            return user
        try:
            user = self.users.update(user, values)
        except IntegrityError as e:
            raise ConflictError("User update conflicts with an existing record") from e
        logger.info("User updated: %s fields=%s", user.id, sorted(values))
        return user

    def activate_user(self, user_id: UUID) -> tuple[User, bool]:
        """Returns (user, changed). Activation also clears any lockout."""
        user = self._require(user_id)
        if user.is_active and not user.locked_until and not user.failed_login_attempts:
            return user, False
        user = self.users.update(user, {"is_active": True, "failed_login_attempts": 0, "locked_until": None})
        logger.info("User activated: %s", user.id)
        return user, True

    def deactivate_user(self, user_id: UUID, *, actor_id: UUID | None = None) -> tuple[User, bool]:
        if actor_id is not None and actor_id == user_id:
            raise ValidationError("You cannot deactivate your own account")
        user = self._require(user_id)
        if not user.is_active:
            return user, False
        user = self.users.update(user, {"is_active": False})
        logger.info("User deactivated: %s", user.id)
        return user, True

    def change_password(self, user_id: UUID, data: PasswordChangeRequest, *, require_current: bool) -> User:
        """Re-hash and clear lockout. Owners changing their own password must prove the current one."""
        user = self._require(user_id)
        if require_current:
            if not data.current_password or not verify_password(data.current_password, user.password_hash):
                raise AuthenticationError("Current password is incorrect")
        user = self.users.update(
            user,
            {"password_hash": hash_password(data.new_password), "failed_login_attempts": 0, "locked_until": None},
        )
        logger.info("Password changed for user %s", user.id)
        return user

    def delete_user(self, user_id: UUID, *, permanent: bool = False, actor_id: UUID | None = None) -> None:
        if actor_id is not None and actor_id == user_id:
            raise ValidationError("You cannot delete your own account")
        if permanent:
            user = self._require(user_id, include_deleted=True)
            # user_roles rows go with the user (ORM cascade); assigned_by references are nulled by the FK.
            self.users.delete_permanently(user)
            logger.info("User permanently deleted: %s", user_id)
            return
        user = self._require(user_id)
        self.users.soft_delete(user)
        logger.info("User soft-deleted: %s", user_id)

    def restore_user(self, user_id: UUID) -> User:
        user = self._require(user_id, include_deleted=True)
        if not user.is_deleted:
            raise ValidationError("User is not deleted")
        user = self.users.restore(user)
        logger.info("User restored: %s", user.id)
        return user

    def lock_user(self, user_id: UUID, minutes: int, *, now: datetime | None = None) -> User:
        user = self._require(user_id)
        until = (now or utcnow()) + timedelta(minutes=minutes)
        user = self.users.update(user, {"locked_until": until})
        logger.info("User %s locked until %s", user.id, until.isoformat())
        return user

    def unlock_user(self, user_id: UUID) -> User:
        user = self._require(user_id)
        user = self.users.clear_lockout(user)
        logger.info("User unlocked: %s", user.id)
        return user

    def get_statistics(self) -> dict[str, int]:
        return self.users.statistics()
