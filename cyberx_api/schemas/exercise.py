"""
Exercise schemas. Date ordering on partial updates is re-checked against stored values in ExerciseService.
"""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cyberx_api.models.types import as_utc

ExerciseStatus = Literal["active", "closed"]


class ExerciseCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=255)
    start_date: datetime
    end_date: datetime
    status: ExerciseStatus = "active"

    @field_validator("start_date", "end_date")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class ExerciseUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=2, max_length=255)
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: ExerciseStatus | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def to_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


class ExerciseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    start_date: datetime
    end_date: datetime
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
