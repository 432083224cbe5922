"""
@file: blob_store.py
@description:
Durable byte storage for FileVault, keyed by file id.

Each blob is a flat file named ``<id>.dat`` inside a single directory. Writes go
to a temporary file in the same directory and are moved into place with
``os.replace``, so a blob either exists in full or not at all.

@dependencies:
- filevault.core.exceptions: StorageUnavailable / PayloadTooLarge
- filevault.core.logger: For component-specific logging

@notes:
- Payloads larger than max_bytes are rejected and the temporary file removed,
  so nothing is persisted for them.
- Temporary files start with a dot and never look like blobs to list_ids().
"""

import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

import pytz

from filevault.core.exceptions import PayloadTooLarge, StorageUnavailable
from filevault.core.logger import setup_logger

logger = setup_logger("filevault.storage.blob_store")

BLOB_SUFFIX = ".dat"
CHUNK_SIZE = 1024 * 1024
_BLOB_NAME = re.compile(r"^[A-Za-z0-9]+\.dat$")


class BlobNotFound(LookupError):
    """No blob is stored under the requested id."""

    def __init__(self, file_id: str):
        super().__init__(f"No blob stored for {file_id}")
        self.file_id = file_id


class LocalBlobStore:
    """
    Blob store backed by a local directory.

    Args:
        root: Directory holding the blobs; created if missing
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"Cannot create blob directory {self.root}: {e}") from e

    def path_for(self, file_id: str) -> Path:
        if not file_id.isalnum():
            # ids are alphanumeric; anything else could escape the directory
            raise BlobNotFound(file_id)
        return self.root / f"{file_id}{BLOB_SUFFIX}"

    def write(self, file_id: str, data: Union[bytes, BinaryIO],
              max_bytes: Optional[int] = None) -> int:
        """
        Store a blob, replacing any existing one atomically.

        Args:
            file_id: Id the blob is stored under
            data: The payload, as bytes or a readable binary stream
            max_bytes: Reject payloads larger than this

        Returns:
            int: Number of bytes written

        Raises:
            PayloadTooLarge: If the payload exceeds max_bytes
            StorageUnavailable: On any I/O failure
        """
        if isinstance(data, (bytes, bytearray)) and max_bytes is not None and len(data) > max_bytes:
            raise PayloadTooLarge()

        target = self.path_for(file_id)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{file_id}.", suffix=".tmp", dir=self.root)
        except OSError as e:
            raise StorageUnavailable(f"Cannot create temporary file for {file_id}: {e}") from e

        written = 0
        try:
            with os.fdopen(fd, "wb") as out:
                if isinstance(data, (bytes, bytearray)):
                    out.write(data)
                    written = len(data)
                else:
                    while True:
                        chunk = data.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        written += len(chunk)
                        if max_bytes is not None and written > max_bytes:
                            raise PayloadTooLarge()
                        out.write(chunk)
                out.flush()
                os.fsync(out.fileno())
            os.replace(tmp_name, target)
        except PayloadTooLarge:
            self._discard(tmp_name)
            raise
        except OSError as e:
            self._discard(tmp_name)
            raise StorageUnavailable(f"Error writing blob {target}: {e}") from e

        logger.debug(f"Stored blob {file_id} ({written} bytes)")
        return written

    def read(self, file_id: str) -> bytes:
        path = self.path_for(file_id)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise BlobNotFound(file_id)
        except OSError as e:
            raise StorageUnavailable(f"Error reading blob {path}: {e}") from e

    def delete(self, file_id: str) -> None:
        path = self.path_for(file_id)
        try:
            path.unlink()
        except FileNotFoundError:
            raise BlobNotFound(file_id)
        except OSError as e:
            raise StorageUnavailable(f"Error deleting blob {path}: {e}") from e

    def exists(self, file_id: str) -> bool:
        try:
            return self.path_for(file_id).is_file()
        except BlobNotFound:
            return False

    def list_ids(self) -> List[str]:
        """Ids of every complete blob in the directory."""
        try:
            names = os.listdir(self.root)
        except OSError as e:
            raise StorageUnavailable(f"Cannot list blob directory {self.root}: {e}") from e
        return sorted(name[:-len(BLOB_SUFFIX)] for name in names if _BLOB_NAME.match(name))

    def modified_at(self, file_id: str) -> datetime:
        path = self.path_for(file_id)
        try:
            return datetime.fromtimestamp(path.stat().st_mtime, tz=pytz.UTC)
        except FileNotFoundError:
            raise BlobNotFound(file_id)
        except OSError as e:
            raise StorageUnavailable(f"Cannot stat blob {path}: {e}") from e

    @staticmethod
    def _discard(tmp_name: str) -> None:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not remove temporary file {tmp_name}: {str(e)}")
