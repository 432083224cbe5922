"""
Storage Package for FileVault.

This package handles the byte content of uploaded files. The catalog records
which files exist; the blob store holds their bytes under the same id.
"""

from filevault.storage.blob_store import BlobNotFound, LocalBlobStore

__all__ = ["BlobNotFound", "LocalBlobStore"]
