"""
User and role-assignment schemas.
"""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from cyberx_api.schemas.auth import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH


class UserCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    name: str = Field(min_length=2, max_length=100)
    exercise_id: UUID | None = None
    is_active: bool = True

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class UserUpdateRequest(BaseModel):
    """Partial update. Only fields present in the body are applied (model_fields_set)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr | None = None
    name: str | None = Field(None, min_length=2, max_length=100)
    password: str | None = Field(None, min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    # Admin-only when updating your own account.
    is_active: bool | None = None
    exercise_id: UUID | None = None
    failed_login_attempts: int | None = Field(None, ge=0)
    locked_until: datetime | None = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class PasswordChangeRequest(BaseModel):
    current_password: str | None = None
    new_password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)


class LockUserRequest(BaseModel):
    minutes: int = Field(30, ge=1, le=60 * 24 * 7)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    is_active: bool
    exercise_id: UUID | None = None
    failed_login_attempts: int
    locked_until: datetime | None = None
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    roles: list[str] = []


class UserStatistics(BaseModel):
    total: int
    active: int
    inactive: int
    locked: int
    deleted: int


class RoleAssignRequest(BaseModel):
    role_id: UUID
    expires_at: datetime | None = None
    notes: str | None = Field(None, max_length=500)


class AssignmentUpdateRequest(BaseModel):
    is_active: bool | None = None
    expires_at: datetime | None = None
    notes: str | None = Field(None, max_length=500)


class AssignmentResponse(BaseModel):
    user_id: UUID
    role_id: UUID
    role_name: str | None = None
    user_email: str | None = None
    assigned_at: datetime
    assigned_by: UUID | None = None
    is_active: bool
    expires_at: datetime | None = None
    notes: str | None = None

    @classmethod
    def from_assignment(cls, a) -> "AssignmentResponse":
        return cls(
            user_id=a.user_id,
            role_id=a.role_id,
            role_name=a.role.name if a.role is not None else None,
            user_email=a.user.email if a.user is not None else None,
            assigned_at=a.assigned_at,
            assigned_by=a.assigned_by,
            is_active=a.is_active,
            expires_at=a.expires_at,
            notes=a.notes,
        )
