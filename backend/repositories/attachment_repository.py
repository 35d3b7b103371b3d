"""
Attachment metadata repository.
"""

from typing import Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from .base import BaseRepository


class AttachmentRepository(BaseRepository[db_models.Attachment]):
    """Repository for Attachment records. Records are insert-only."""

    def __init__(self, db: Session):
        """
        Initialize attachment repository.

        Args:
            db: Database session
        """
        super().__init__(db_models.Attachment, db)

    def get_visible(
        self, attachment_id: str, principal_id: str, is_admin: bool
    ) -> Optional[db_models.Attachment]:
        """
        Get an attachment if the principal may see it.

        Args:
            attachment_id: Attachment ID
            principal_id: Requesting principal
            is_admin: Whether the principal holds the admin role

        Returns:
            The attachment, or None if it is missing or not visible
        """
        query = self.db.query(db_models.Attachment).filter(
            db_models.Attachment.id == attachment_id
        )
        if not is_admin:
            query = query.filter(db_models.Attachment.owner_user_id == principal_id)
        return query.first()
