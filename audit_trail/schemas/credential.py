"""Service credential schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CredentialCreate(BaseModel):
    service_name: str = Field(min_length=1)
    description: str | None = None
    can_write: bool = True
    can_read: bool = False
    allowed_modules: list[str] | None = None
    expires_at: datetime | None = None


class CredentialRead(BaseModel):
    """Credential metadata; the key hash never leaves the service."""

    id: int
    service_name: str
    description: str | None
    can_write: bool
    can_read: bool
    allowed_modules: list[str] | None
    is_active: bool
    expires_at: datetime | None
    created_by: str | None
    created_at: datetime
    last_used_at: datetime | None
    revoked_at: datetime | None
    revoked_by: str | None

    model_config = ConfigDict(from_attributes=True)


class CredentialCreated(BaseModel):
    id: int
    service_name: str
    raw_key: str
    warning: str = "Save this key securely. It will not be shown again."


class CredentialValidateRequest(BaseModel):
    api_key: str


class CredentialValidation(BaseModel):
    is_valid: bool
    service_name: str | None = None
    can_write: bool | None = None
    can_read: bool | None = None
    error: str | None = None
