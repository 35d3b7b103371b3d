"""
Services layer for business logic.

This package contains service modules that encapsulate business logic
separate from the API routes.
"""

from .identity_service import IdentityService, Principal
from .access_policy import AccessPolicy
from .audit_service import AuditAction, AuditService
from .attachment_service import AttachmentService
from .complaint_service import ComplaintService
from .status_history_service import StatusHistoryService

__all__ = [
    "IdentityService",
    "Principal",
    "AccessPolicy",
    "AuditAction",
    "AuditService",
    "AttachmentService",
    "ComplaintService",
    "StatusHistoryService",
]
