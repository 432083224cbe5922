"""
@file: models.py
@description:
This file defines the SQLAlchemy ORM models backing the FileVault catalog:
- StoredFile: one row per uploaded file (metadata only, the bytes live in the blob store)
- ApiUser: one row per API key, mapping it to a username and a permission level

@notes:
- The file id is the primary key, so the database itself rejects a second row
  with an id that is already live, whatever the allocator believed.
- A row is inserted with status "pending" before its blob is written and
  switched to "committed" afterwards. Only committed rows are visible to readers.

@dependencies:
- SQLAlchemy: for defining ORM models.
- filevault.db.base: provides the Base class (declarative_base).
"""

from sqlalchemy import Column, DateTime, Index, Integer, String

from filevault.db.base import Base

STATUS_PENDING = "pending"
STATUS_COMMITTED = "committed"


class StoredFile(Base):
    """
    @class StoredFile
    @description
    Catalog row for an uploaded file.

    @attributes:
        id (String): 8-character opaque identifier, primary key.
        file_name (String): Original filename as supplied by the uploader.
        uploaded_at (DateTime): Creation timestamp (UTC).
        creator (String): Username of the uploader.
        status (String): "pending" until the blob is durable, then "committed".
    """
    __tablename__ = "files"

    id = Column(
        String(8),
        primary_key=True,
        doc="Opaque file identifier drawn from a 62-character alphabet."
    )
    file_name = Column(
        String,
        nullable=False,
        doc="Filename supplied by the uploader."
    )
    uploaded_at = Column(
        DateTime(timezone=True),
        nullable=False,
        doc="Timestamp of when the upload was accepted."
    )
    creator = Column(
        String,
        nullable=False,
        index=True,
        doc="Username of the uploader; used for ownership checks."
    )
    status = Column(
        String(16),
        nullable=False,
        default=STATUS_PENDING,
        doc="Write-ahead marker: 'pending' or 'committed'."
    )

    __table_args__ = (
        Index("ix_files_status_uploaded_at", "status", "uploaded_at"),
    )


class ApiUser(Base):
    """
    @class ApiUser
    @description
    Identity table: an API key resolves to exactly one (username, permissions) pair.
    """
    __tablename__ = "users"

    api_key = Column(String, primary_key=True)
    username = Column(String, unique=True, nullable=False)
    permissions = Column(Integer, nullable=False, default=0)
