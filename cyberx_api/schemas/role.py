"""
Role schemas. Name shape is checked here; reserved names and uniqueness in RoleService.
"""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

ROLE_NAME_PATTERN = r"^[A-Za-z0-9_-]+$"


class RoleCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=50, pattern=ROLE_NAME_PATTERN)
    description: str | None = Field(None, max_length=500)
    is_active: bool = True


class RoleUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=2, max_length=50, pattern=ROLE_NAME_PATTERN)
    description: str | None = Field(None, max_length=500)
    is_active: bool | None = None


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class BulkAssignRequest(BaseModel):
    user_ids: list[UUID] = Field(min_length=1, max_length=100)
    expires_at: datetime | None = None
    notes: str | None = Field(None, max_length=500)


class BulkAssignResult(BaseModel):
    assigned: list[UUID]
    failed: list[dict]


class RoleStatistics(BaseModel):
    total: int
    active: int
    inactive: int
    deleted: int
