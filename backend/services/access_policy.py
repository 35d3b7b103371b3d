"""
Authorization policy for complaints, history, attachments and profiles.

Every read or write in the service layer calls into this module before data is
returned. Ordering is the same everywhere: authorize first, and only an
authorized caller (the owner or an admin) can learn that a record does not
exist. A student asking for someone else's complaint and a student asking for
a missing complaint get the same ComplaintAccessDeniedException.
"""

from typing import Optional

import repositories.db_models as db_models
from models.exceptions import (
    AdminRequiredException,
    AttachmentAccessDeniedException,
    AttachmentNotFoundException,
    ComplaintAccessDeniedException,
    ComplaintNotFoundException,
    PermissionDeniedException,
    StudentRequiredException,
)
from services.audit_service import AuditAction, AuditService
from services.identity_service import Principal


class AccessPolicy:
    """Row-level authorization checks."""

    @staticmethod
    def require_admin(principal: Principal) -> None:
        if not principal.is_admin:
            raise AdminRequiredException()

    @staticmethod
    def require_student(principal: Principal) -> None:
        if not principal.is_student:
            raise StudentRequiredException()

    @staticmethod
    def can_view_complaint(principal: Principal, complaint: db_models.Complaint) -> bool:
        return principal.is_admin or complaint.student_id == principal.id

    @staticmethod
    def can_view_attachment(
        principal: Principal, attachment: db_models.Attachment
    ) -> bool:
        return principal.is_admin or attachment.owner_user_id == principal.id

    @staticmethod
    def ensure_complaint_visible(
        principal: Principal,
        complaint: Optional[db_models.Complaint],
        complaint_id: str,
    ) -> db_models.Complaint:
        """
        Check a complaint lookup result against the policy.

        Args:
            principal: Requesting principal
            complaint: Result of a row-scoped lookup (None if missing or hidden)
            complaint_id: Requested ID, for the error message

        Returns:
            The complaint

        Raises:
            ComplaintAccessDeniedException: Non-admin without ownership
                (including when the complaint does not exist)
            ComplaintNotFoundException: Admin asked for a missing complaint
        """
        if complaint is not None and AccessPolicy.can_view_complaint(
            principal, complaint
        ):
            return complaint
        if not principal.is_admin:
            AuditService.log(
                principal.id, AuditAction.ACCESS_DENIED, "complaint", complaint_id
            )
            raise ComplaintAccessDeniedException()
        raise ComplaintNotFoundException(complaint_id)

    @staticmethod
    def ensure_attachment_visible(
        principal: Principal,
        attachment: Optional[db_models.Attachment],
        attachment_id: str,
    ) -> db_models.Attachment:
        """
        Same rule as complaints: owner or admin, authorization before existence.

        Raises:
            AttachmentAccessDeniedException: Non-admin without ownership
            AttachmentNotFoundException: Admin asked for a missing attachment
        """
        if attachment is not None and AccessPolicy.can_view_attachment(
            principal, attachment
        ):
            return attachment
        if not principal.is_admin:
            AuditService.log(
                principal.id, AuditAction.ACCESS_DENIED, "attachment", attachment_id
            )
            raise AttachmentAccessDeniedException()
        raise AttachmentNotFoundException(attachment_id)

    @staticmethod
    def ensure_profile_visible(principal: Principal, profile_id: str) -> None:
        """
        Raises:
            PermissionDeniedException: Requester is neither the owner nor admin
        """
        if principal.id != profile_id and not principal.is_admin:
            raise PermissionDeniedException("You can only view your own profile")
