"""Disk-backed file store for notice documents.

Uploaded and generated notice files are written under a single uploads
root and referenced from the notices table by a path relative to that
root. The same directory is mounted at /uploads for direct serving.

Example:
    from soochna.services.storage import FileStore
    from soochna.core.settings import get_settings

    store = FileStore.from_settings(get_settings().storage)

    stored = store.save(data, original_name="deed.pdf", prefix="file")
    print(f"Stored at {stored.relative_path} ({stored.sha256_digest})")

    store.delete(stored.relative_path)
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from soochna.core.config import StorageSettings

logger = logging.getLogger(__name__)

# Extensions accepted alongside the MIME allow-list
ALLOWED_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".jpeg", ".jpg", ".png"})


@dataclass(frozen=True)
class StoredFile:
    """Result of a save operation.

    Attributes:
        relative_path: Path relative to the uploads root (POSIX separators).
        file_name: Generated file name on disk.
        sha256_digest: SHA-256 hex digest of the stored content.
        size_bytes: Size of the stored content in bytes.
    """

    relative_path: str
    file_name: str
    sha256_digest: str
    size_bytes: int


class StorageError(Exception):
    """Base exception for file store operations.

    Attributes:
        message: Human-readable error description.
        path: The relative path involved (if applicable).
        operation: The operation that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        operation: str | None = None,
    ) -> None:
        """Initialize storage error with context.

        Args:
            message: Error description.
            path: Relative path (if applicable).
            operation: Operation name (e.g., 'save', 'delete').
        """
        self.message = message
        self.path = path
        self.operation = operation
        super().__init__(message)


class StoredFileNotFoundError(StorageError):
    """Raised when a stored file does not exist."""


class UnsafePathError(StorageError):
    """Raised when a relative path would resolve outside the uploads root."""


class FileStore:
    """Stores notice files on the local filesystem.

    All paths handed in and out are relative to the root. Resolution
    refuses absolute paths and any path that escapes the root.
    """

    def __init__(self, root: str | Path) -> None:
        """Initialize the file store.

        Args:
            root: Uploads root directory. Created if missing.
        """
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        logger.debug("Initialized FileStore at root=%s", self._root)

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> FileStore:
        """Create a store from StorageSettings configuration."""
        return cls(settings.uploads_dir)

    @property
    def root(self) -> Path:
        """Absolute uploads root."""
        return self._root

    @staticmethod
    def generate_name(prefix: str, extension: str) -> str:
        """Generate a unique file name of the form prefix-timestamp-random.ext.

        Args:
            prefix: Leading name component (e.g., 'file', 'generated-notice').
            extension: Extension including the dot, or empty.

        Returns:
            File name unlikely to collide with existing uploads.
        """
        timestamp = int(time.time() * 1000)
        suffix = secrets.randbelow(10**9)
        return f"{prefix}-{timestamp}-{suffix}{extension.lower()}"

    def resolve(self, relative_path: str) -> Path:
        """Resolve a stored relative path to an absolute path under the root.

        Args:
            relative_path: Path as stored on a notice record.

        Returns:
            Absolute filesystem path.

        Raises:
            UnsafePathError: If the path is absolute or escapes the root.
        """
        pure = PurePosixPath(relative_path)
        if pure.is_absolute() or not relative_path.strip():
            raise UnsafePathError(
                f"Invalid stored path: {relative_path!r}",
                path=relative_path,
                operation="resolve",
            )

        candidate = (self._root / pure).resolve()
        if not candidate.is_relative_to(self._root):
            raise UnsafePathError(
                f"Path escapes uploads root: {relative_path!r}",
                path=relative_path,
                operation="resolve",
            )
        return candidate

    def save(self, data: bytes, *, original_name: str = "", prefix: str = "file") -> StoredFile:
        """Write bytes under a freshly generated name.

        Args:
            data: File content.
            original_name: Client-supplied name, used only for its extension.
            prefix: Leading component of the generated name.

        Returns:
            StoredFile describing what was written.

        Raises:
            StorageError: If the write fails.
        """
        extension = PurePosixPath(original_name).suffix if original_name else ""
        file_name = self.generate_name(prefix, extension)
        target = self._root / file_name

        try:
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(
                f"Save failed: {e}",
                path=file_name,
                operation="save",
            ) from e

        sha256_digest = hashlib.sha256(data).hexdigest()
        logger.debug(
            "Stored %s (%d bytes, sha256=%s)",
            file_name,
            len(data),
            sha256_digest[:16] + "...",
        )
        return StoredFile(
            relative_path=file_name,
            file_name=file_name,
            sha256_digest=sha256_digest,
            size_bytes=len(data),
        )

    def read(self, relative_path: str) -> bytes:
        """Read a stored file.

        Raises:
            StoredFileNotFoundError: If nothing is stored at the path.
            StorageError: If the read fails.
        """
        path = self.resolve(relative_path)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise StoredFileNotFoundError(
                f"File not found: {relative_path}",
                path=relative_path,
                operation="read",
            ) from e
        except OSError as e:
            raise StorageError(
                f"Read failed: {e}",
                path=relative_path,
                operation="read",
            ) from e

    def exists(self, relative_path: str) -> bool:
        """Check whether a regular file is stored at the path."""
        try:
            return self.resolve(relative_path).is_file()
        except UnsafePathError:
            return False

    def delete(self, relative_path: str) -> bool:
        """Delete a stored file.

        Deleting a missing file is not an error.

        Returns:
            True if a file was removed, False if none existed.

        Raises:
            StorageError: If the delete fails.
        """
        path = self.resolve(relative_path)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(
                f"Delete failed: {e}",
                path=relative_path,
                operation="delete",
            ) from e
        logger.debug("Deleted %s", relative_path)
        return True

    def delete_quietly(self, relative_path: str | None) -> bool:
        """Best-effort delete that logs failures instead of raising.

        Returns:
            True if a file was removed.
        """
        if not relative_path:
            return False
        try:
            return self.delete(relative_path)
        except StorageError as e:
            logger.warning(
                "Failed to remove stored file",
                extra={"path": relative_path, "error": e.message},
            )
            return False
