"""
Repository pattern implementation for data access layer.
"""

from .attachment_repository import AttachmentRepository
from .base import BaseRepository
from .blob_store import LocalBlobStore
from .complaint_repository import ComplaintRepository
from .profile_repository import ProfileRepository, RoleRepository
from .status_history_repository import StatusHistoryRepository

__all__ = [
    "AttachmentRepository",
    "BaseRepository",
    "ComplaintRepository",
    "LocalBlobStore",
    "ProfileRepository",
    "RoleRepository",
    "StatusHistoryRepository",
]
