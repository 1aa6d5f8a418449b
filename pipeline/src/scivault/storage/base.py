"""
Abstract base class for storage-network uploaders and shared exceptions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

Tags = list[tuple[str, str]]


class StorageError(Exception):
    """Base exception for storage-network errors."""


class UploaderUnavailableError(StorageError):
    """Raised when an uploader cannot be initialised (missing tool or wallet)."""


@dataclass(frozen=True)
class Receipt:
    """Returned by a successful upload."""

    id: str


class StorageUploader(ABC):
    """Abstract interface for content-addressed storage backends."""

    @abstractmethod
    def upload(self, data: bytes, tags: Tags) -> Receipt:
        """Upload *data* with *tags* and return the network's receipt.

        Args:
            data: Payload bytes.
            tags: Ordered ``(name, value)`` pairs attached to the object.

        Raises:
            StorageError: If the network rejects or never confirms the upload.
        """

    def upload_file(self, path: Path, tags: Tags) -> Receipt:
        """Upload a file's contents. Backends that can stream from disk override this."""
        return self.upload(path.read_bytes(), tags)

    @abstractmethod
    def balance(self) -> str:
        """Return the funded balance available for uploads, human-readable."""

    @abstractmethod
    def fund(self, amount: str) -> str:
        """Fund the uploader with *amount* (atomic units); return the funding transaction id."""
