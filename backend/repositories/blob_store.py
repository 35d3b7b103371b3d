"""
Owner-namespaced blob storage on the local filesystem.

Every object lives under ``<root>/<owner_id>/...``. The first path segment is
the authorization key: only that principal may write there, and reads are
allowed to the owner or to an admin.
"""

import secrets
import time
from pathlib import Path, PurePosixPath

from models.exceptions import BlobMissingException, BlobPathException


class LocalBlobStore:
    """Filesystem-backed blob store rooted at a single directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    @staticmethod
    def build_path(owner_id: str, extension: str) -> str:
        """
        Build a unique, owner-namespaced object path.

        Args:
            owner_id: Principal that will own the object
            extension: File extension including the dot (e.g. ".pdf")

        Returns:
            Relative path like ``"<owner_id>/1730000000000-3f9a1c2b.pdf"``
        """
        millis = int(time.time() * 1000)
        return f"{owner_id}/{millis}-{secrets.token_hex(4)}{extension}"

    @staticmethod
    def owner_of(path: str) -> str:
        """First segment of an object path."""
        return PurePosixPath(path).parts[0] if path else ""

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise BlobPathException(f"Invalid blob path '{path}'")
        full = (self.root / Path(*relative.parts)).resolve()
        if self.root not in full.parents:
            raise BlobPathException(f"Invalid blob path '{path}'")
        return full

    def write(self, writer_id: str, path: str, data: bytes) -> None:
        """
        Store bytes at ``path``.

        Args:
            writer_id: Principal performing the write
            path: Relative object path; first segment must equal writer_id
            data: Object content

        Raises:
            BlobPathException: If the path is outside the writer's namespace
        """
        if self.owner_of(path) != writer_id:
            raise BlobPathException("Blob path must start with the uploader's id")
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        with open(full, "wb") as buffer:
            buffer.write(data)

    def read(self, requester_id: str, path: str, is_admin: bool) -> bytes:
        """
        Load the bytes stored at ``path``.

        Args:
            requester_id: Principal performing the read
            path: Relative object path
            is_admin: Whether the requester holds the admin role

        Raises:
            BlobPathException: If the requester may not read this path
            BlobMissingException: If nothing is stored at the path
        """
        if not is_admin and self.owner_of(path) != requester_id:
            raise BlobPathException("Not allowed to read this blob")
        full = self._resolve(path)
        if not full.is_file():
            raise BlobMissingException(path)
        return full.read_bytes()
