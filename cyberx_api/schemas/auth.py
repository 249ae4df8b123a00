"""
Auth request/response schemas. Login and documentation-token bodies use camelCase on the wire.
"""
from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class LoginUser(BaseModel):
    id: UUID
    email: str
    name: str
    roles: list[str]
    last_login_at: datetime | None = Field(None, serialization_alias="lastLoginAt")


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    token: str
    expires_in: str = Field(serialization_alias="expiresIn")
    user: LoginUser


class PrincipalResponse(BaseModel):
    id: UUID
    email: str
    name: str
    roles: list[str]
    is_active: bool
    exercise_id: UUID | None = None


class MeResponse(BaseModel):
    success: bool = True
    user: PrincipalResponse


class DocsTokenRequest(BaseModel):
    # Optional so a missing secret is reported as 401, not as a validation error.
    swagger_secret: str | None = Field(
        None, validation_alias=AliasChoices("swaggerSecret", "swagger_secret")
    )


class DocsTokenResponse(BaseModel):
    success: bool = True
    message: str = "Swagger access token generated successfully"
    token: str
    expires_in: str = Field(serialization_alias="expiresIn")
    token_type: str = Field("Bearer", serialization_alias="tokenType")
