"""Audit logging for complaint lifecycle and access events."""

import json
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger


class AuditAction:
    """Audit action types."""

    PROFILE_PROVISIONED = "profile_provisioned"
    COMPLAINT_CREATED = "complaint_created"
    COMPLAINT_STATUS_CHANGED = "complaint_status_changed"
    COMPLAINT_NOTE_UPDATED = "complaint_note_updated"
    ATTACHMENT_UPLOADED = "attachment_uploaded"
    ATTACHMENT_DOWNLOADED = "attachment_downloaded"
    ACCESS_DENIED = "access_denied"


class AuditService:
    """Service for audit logging."""

    @staticmethod
    def log(
        user_id: str,
        action: str,
        target_type: Optional[str] = None,
        target_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Write one audit line.

        The status history table is the authoritative record of transitions;
        these lines add reads (downloads, denied access) that the table does
        not capture.

        Args:
            user_id: ID of the principal performing the action.
            action: One of the AuditAction values.
            target_type: Type of entity being acted upon.
            target_id: ID of the entity being acted upon.
            details: Additional details about the action.
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "user_id": user_id,
            "action": action,
            "target_type": target_type,
            "target_id": target_id,
            "details": details,
        }

        logger.bind(audit=True).info("AUDIT: {}", json.dumps(log_entry, default=str))
