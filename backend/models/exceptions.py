"""
Domain exceptions for the complaint desk.

Services raise these and never touch HTTP. main.py converts them into
responses with centralized exception handlers, which keeps the service layer
usable from the CLI scripts and init_db.py as well.

Every exception carries a correlation id so a user-visible error can be
matched to the log line and the Sentry event that produced it.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Prefer the request's correlation ID so logs and responses line up
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    pass


class PermissionDeniedException(DomainException):
    """Raised when the principal lacks the required role or ownership."""

    pass


class ValidationException(DomainException):
    """Raised when a field constraint is violated."""

    pass


class AuthenticationException(DomainException):
    """Raised when the bearer token is missing or invalid."""

    pass


class AlreadyExistsException(DomainException):
    """Raised when trying to create a resource that already exists."""

    pass


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    pass


# Identity


class ProfileNotFoundException(NotFoundException):
    """No profile exists for the principal."""

    def __init__(self, principal_id: str) -> None:
        super().__init__(f"Profile {principal_id} not found")
        self.principal_id = principal_id


class ProfileAlreadyExistsException(AlreadyExistsException):
    """Profile was already provisioned for the principal."""

    def __init__(self, principal_id: str) -> None:
        super().__init__(f"Profile {principal_id} is already provisioned")
        self.principal_id = principal_id


class EmailAlreadyInUseException(AlreadyExistsException):
    """Another profile already uses this e-mail address."""

    def __init__(self) -> None:
        super().__init__("Email is already in use")


class InactiveProfileException(PermissionDeniedException):
    """Profile has been soft-disabled."""

    def __init__(self) -> None:
        super().__init__("Account has been deactivated")


class AdminRequiredException(PermissionDeniedException):
    """Operation requires the admin role."""

    def __init__(self) -> None:
        super().__init__("Admin role required")


class StudentRequiredException(PermissionDeniedException):
    """Operation requires the student role."""

    def __init__(self) -> None:
        super().__init__("Student role required")


# Complaints


class ComplaintNotFoundException(NotFoundException):
    """Complaint not found."""

    def __init__(self, complaint_id: str) -> None:
        super().__init__(f"Complaint {complaint_id} not found")
        self.complaint_id = complaint_id


class ComplaintAccessDeniedException(PermissionDeniedException):
    """
    Requester is neither the owning student nor an admin.

    The message is identical whether or not the complaint exists.
    """

    def __init__(self) -> None:
        super().__init__("You do not have access to this complaint")


class InvalidStatusTransitionException(BusinessRuleException):
    """Requested status change is not allowed by the complaint lifecycle."""

    def __init__(
        self, from_status: str, to_status: str, message: str | None = None
    ) -> None:
        super().__init__(
            message
            or f"Cannot change complaint status from '{from_status}' to '{to_status}'"
        )
        self.from_status = from_status
        self.to_status = to_status


class ResolvedComplaintFrozenException(InvalidStatusTransitionException):
    """Raised by the persistence layer when a resolved complaint is modified."""

    def __init__(self, complaint_id: str) -> None:
        super().__init__(
            "resolved",
            "resolved",
            f"Complaint {complaint_id} is resolved and can no longer change",
        )
        self.complaint_id = complaint_id


class LedgerWriteException(DomainException):
    """
    Status history could not be written together with the status change.

    The surrounding transaction has been rolled back when this is raised.
    """

    pass


class HistoryImmutableException(DomainException):
    """Status history rows are append-only."""

    def __init__(self) -> None:
        super().__init__("Status history entries cannot be modified or deleted")


# Attachments


class AttachmentNotFoundException(NotFoundException):
    """Attachment not found."""

    def __init__(self, attachment_id: str) -> None:
        super().__init__(f"Attachment {attachment_id} not found")
        self.attachment_id = attachment_id


class AttachmentAccessDeniedException(PermissionDeniedException):
    """Requester is neither the uploader nor an admin."""

    def __init__(self) -> None:
        super().__init__("You do not have access to this attachment")


class AttachmentRejectedException(ValidationException):
    """Uploaded file failed type or size checks."""

    pass


class BlobPathException(PermissionDeniedException):
    """Blob path is outside the writer's namespace or escapes the store root."""

    pass


class BlobMissingException(NotFoundException):
    """Attachment record exists but the stored blob is gone."""

    def __init__(self, stored_path: str) -> None:
        super().__init__("Attachment content is no longer available")
        self.stored_path = stored_path
