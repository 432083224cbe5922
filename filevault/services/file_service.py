"""
@file: file_service.py
@description:
Orchestrates the catalog, the blob store and the id allocator to implement
upload, download, list and delete.

Key features:
- Uploads write a pending catalog row, then the blob, then promote the row
- Deletes remove the catalog row first, then the blob
- Ownership scoping for callers below READ_WRITE_ALL

@dependencies:
- filevault.db.catalog: File records
- filevault.storage.blob_store: File bytes
- filevault.services.allocator: Fresh file ids
- filevault.core.logger: For component-specific logging

@notes:
- The two stores are not covered by one transaction. A failure between the
  two halves is logged at error severity and left to the reconciler:
  a pending row never becomes visible, and an orphan blob is unreachable.
- Once the catalog row is deleted the file counts as deleted, even if
  removing its blob fails afterwards.
"""

from typing import BinaryIO, List, Tuple, Union

from filevault.core.exceptions import (
    BadRequest,
    DuplicateFileId,
    FileNotFound,
    InconsistentState,
    PayloadTooLarge,
    StorageUnavailable,
    Unauthorized,
)
from filevault.core.logger import setup_logger
from filevault.schemas.files import FileRecord, Identity, Role
from filevault.services.allocator import IdAllocator, is_valid_id
from filevault.storage.blob_store import BlobNotFound, LocalBlobStore

# Create a component-specific logger
logger = setup_logger("filevault.services.file_service")


def can_access_all(identity: Identity) -> bool:
    return identity.role.satisfies(Role.READ_WRITE_ALL)


class FileService:
    """
    File operations with consistent catalog and blob state.

    Args:
        catalog: The catalog holding file records
        blob_store: The store holding file bytes
        allocator: Source of new file ids
        max_upload_bytes: Upper bound on a single payload
    """

    def __init__(self, catalog, blob_store: LocalBlobStore, allocator: IdAllocator,
                 max_upload_bytes: int):
        self.catalog = catalog
        self.blob_store = blob_store
        self.allocator = allocator
        self.max_upload_bytes = max_upload_bytes

    def upload(self, identity: Identity, filename: str,
               payload: Union[bytes, BinaryIO]) -> FileRecord:
        """
        Store a new file owned by the caller.

        Args:
            identity: The authenticated caller
            filename: Original filename, kept for downloads
            payload: File content as bytes or a readable binary stream

        Returns:
            FileRecord: The committed record

        Raises:
            BadRequest: If the filename or payload is missing
            PayloadTooLarge: If the payload exceeds the upload cap
            AllocationError / StorageUnavailable: On storage failure
        """
        if not filename or payload is None:
            raise BadRequest("Missing file in request")
        if isinstance(payload, (bytes, bytearray)) and len(payload) > self.max_upload_bytes:
            raise PayloadTooLarge()

        record = self._insert_pending(filename, identity.username)

        try:
            size = self.blob_store.write(record.id, payload, max_bytes=self.max_upload_bytes)
        except Exception:
            self._abandon_upload(record.id)
            raise

        try:
            committed = self.catalog.commit_file(record.id)
        except StorageUnavailable:
            logger.error(
                f"Blob {record.id} written but its catalog row could not be committed; "
                "leaving it for the reconciler"
            )
            raise
        if not committed:
            # the pending row vanished under us (reconciler or manual cleanup)
            self._discard_blob(record.id)
            raise InconsistentState(f"Pending row for {record.id} disappeared during upload")

        logger.info(f"File {record.id} ({size} bytes) uploaded by {identity.username}")
        return record

    def _insert_pending(self, filename: str, creator: str) -> FileRecord:
        attempts = self.allocator.max_attempts
        for attempt in range(1, attempts + 1):
            file_id = self.allocator.allocate()
            try:
                return self.catalog.insert_file(file_id, filename, creator)
            except DuplicateFileId:
                # another upload took the id between the check and the insert
                logger.warning(f"File id {file_id} taken concurrently (attempt {attempt}/{attempts})")
        raise DuplicateFileId(f"Could not insert a file row after {attempts} attempts")

    def _abandon_upload(self, file_id: str) -> None:
        """Best-effort removal of the pending row after a failed blob write."""
        try:
            self.catalog.delete_file_by_id(file_id)
        except StorageUnavailable as e:
            logger.error(
                f"Upload of {file_id} failed and its pending row could not be removed: "
                f"{e.detail}; leaving it for the reconciler"
            )
            return
        logger.warning(f"Upload of {file_id} abandoned; pending row removed")

    def _discard_blob(self, file_id: str) -> None:
        try:
            self.blob_store.delete(file_id)
        except BlobNotFound:
            pass
        except StorageUnavailable as e:
            logger.error(f"Orphan blob {file_id} could not be removed: {e.detail}")

    def download(self, file_id: str) -> Tuple[FileRecord, bytes]:
        """
        Fetch a file's record and bytes. No authentication: the id is the capability.

        Raises:
            FileNotFound: If no committed record exists for the id
            InconsistentState: If the record exists but its blob does not
        """
        if not is_valid_id(file_id):
            raise FileNotFound()

        record = self.catalog.find_file_by_id(file_id)
        if record is None:
            raise FileNotFound()

        try:
            data = self.blob_store.read(file_id)
        except BlobNotFound:
            logger.error(f"Catalog lists file {file_id} but its blob is missing")
            raise InconsistentState(f"Blob missing for catalogued file {file_id}")
        return record, data

    def list_files(self, identity: Identity) -> List[FileRecord]:
        """
        Records visible to the caller: all of them from READ_WRITE_ALL up,
        otherwise only the caller's own.
        """
        if can_access_all(identity):
            return self.catalog.list_all_files()
        return self.catalog.list_files_by_creator(identity.username)

    def delete(self, identity: Identity, file_id: str) -> None:
        """
        Delete a file's record and blob.

        Raises:
            FileNotFound: If no committed record exists (or it was deleted concurrently)
            Unauthorized: If the caller neither owns the file nor has READ_WRITE_ALL
        """
        if not is_valid_id(file_id):
            raise FileNotFound()

        record = self.catalog.find_file_by_id(file_id)
        if record is None:
            raise FileNotFound()

        if not can_access_all(identity) and record.creator != identity.username:
            logger.warning(f"{identity.username} tried to delete {file_id} owned by {record.creator}")
            raise Unauthorized()

        if not self.catalog.delete_file_by_id(file_id):
            raise FileNotFound()

        try:
            self.blob_store.delete(file_id)
        except BlobNotFound:
            logger.error(f"File {file_id} deleted from the catalog but had no blob")
        except StorageUnavailable as e:
            logger.error(f"File {file_id} deleted from the catalog but its blob was left behind: {e.detail}")

        logger.info(f"File {file_id} deleted by {identity.username}")
