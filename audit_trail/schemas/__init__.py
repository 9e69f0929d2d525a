"""Schema exports."""

from audit_trail.schemas.audit_record import (
    ActionTypeRead,
    AuditRecordBrief,
    AuditRecordCreate,
    AuditRecordDeleted,
    AuditRecordPage,
    AuditRecordRead,
    AuditRecordSearchPage,
    AuditRecordStats,
)
from audit_trail.schemas.credential import (
    CredentialCreate,
    CredentialCreated,
    CredentialRead,
    CredentialValidateRequest,
    CredentialValidation,
)
from audit_trail.schemas.summary import AggregateRequest, AggregateResponse, SummaryRead, SummaryStats

__all__ = [
    "ActionTypeRead",
    "AuditRecordBrief",
    "AuditRecordCreate",
    "AuditRecordDeleted",
    "AuditRecordPage",
    "AuditRecordRead",
    "AuditRecordSearchPage",
    "AuditRecordStats",
    "CredentialCreate",
    "CredentialCreated",
    "CredentialRead",
    "CredentialValidateRequest",
    "CredentialValidation",
    "AggregateRequest",
    "AggregateResponse",
    "SummaryRead",
    "SummaryStats",
]
