"""Audit record request and response schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditRecordCreate(BaseModel):
    """Payload submitted by an upstream service."""

    entity_type: str = Field(min_length=1, max_length=100)
    entity_id: str = Field(min_length=1, max_length=100)
    action_type_code: str = Field(min_length=1, max_length=32)
    action_by: str | None = Field(default=None, max_length=100)
    previous_data: dict[str, Any] | None = None
    new_data: dict[str, Any] | None = None
    ip_address: str | None = Field(default=None, max_length=64)
    module_name: str | None = Field(default=None, max_length=100)
    processing_time_ms: float | None = Field(default=None, ge=0)
    event_id: str | None = Field(default=None, max_length=128)


class ActionTypeRead(BaseModel):
    id: int
    code: str
    description: str | None

    model_config = ConfigDict(from_attributes=True)


class AuditRecordRead(BaseModel):
    """Full audit record."""

    id: int
    entity_type: str
    entity_id: str
    action_type: ActionTypeRead
    action_by: str | None
    action_at: datetime
    previous_data: dict[str, Any] | None
    new_data: dict[str, Any] | None
    version: int
    ip_address: str | None
    source_service: str
    module_name: str
    processing_time_ms: float | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditRecordBrief(BaseModel):
    """List row without the data snapshots."""

    id: int
    entity_type: str
    entity_id: str
    action_type_id: int
    action_type_code: str
    action_by: str | None
    action_at: datetime
    version: int
    ip_address: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditRecordPage(BaseModel):
    items: list[AuditRecordBrief]
    total: int
    page: int
    limit: int
    total_pages: int


class AuditRecordSearchPage(BaseModel):
    items: list[AuditRecordRead]
    total: int
    page: int
    limit: int
    total_pages: int


class ActionBreakdown(BaseModel):
    action_type: str
    description: str | None = None
    count: int


class EntityBreakdown(BaseModel):
    entity_type: str
    count: int


class AuditRecordStats(BaseModel):
    total_logs: int
    recent_activity: int
    action_breakdown: list[ActionBreakdown]
    entity_breakdown: list[EntityBreakdown]


class AuditRecordDeleted(BaseModel):
    message: str
    tombstone_id: int | None = None
