"""Application models package."""

from audit_trail.models.action_type import ActionType
from audit_trail.models.audit_record import AuditRecord
from audit_trail.models.event_dedup import EventDedup
from audit_trail.models.service_credential import ServiceCredential
from audit_trail.models.summary import Summary

__all__ = ["ActionType", "AuditRecord", "EventDedup", "ServiceCredential", "Summary"]
