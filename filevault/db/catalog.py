"""
@file: catalog.py
@description:
The catalog is the durable record store behind FileVault. It is the source of
truth for "does this file exist" and "who owns it", and it holds the identity
table used to resolve API keys.

Key features:
- Point lookups and simple scans only, one short session per operation
- File rows follow a pending -> committed lifecycle (see db.models)
- Database errors surface as StorageUnavailable, id collisions as DuplicateFileId

@dependencies:
- SQLAlchemy: ORM queries against the models in filevault.db.models
- pytz: Normalizing timestamps read back from SQLite to UTC
- filevault.schemas.files: Domain records returned to callers
- filevault.core.logger: For component-specific logging

@notes:
- Nothing is retried here; callers decide what a StorageUnavailable means.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

import pytz
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from filevault.core.exceptions import DuplicateFileId, StorageUnavailable
from filevault.core.logger import setup_logger
from filevault.db.base import Base
from filevault.db.models import STATUS_COMMITTED, STATUS_PENDING, ApiUser, StoredFile
from filevault.db.session import create_db_engine, create_session_factory
from filevault.schemas.files import FileRecord, Identity, Role

# Create a component-specific logger
logger = setup_logger("filevault.db.catalog")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=pytz.UTC)
    return value.astimezone(pytz.UTC)


def _to_record(row: StoredFile) -> FileRecord:
    return FileRecord(
        id=row.id,
        name=row.file_name,
        uploaded_at=_as_utc(row.uploaded_at),
        creator=row.creator,
    )


class Catalog:
    """
    Queryable store of file records and identities.

    Args:
        engine: SQLAlchemy engine for the catalog database
        session_factory: Optional sessionmaker; built from the engine if omitted
    """

    def __init__(self, engine: Engine, session_factory: Optional[sessionmaker] = None):
        self.engine = engine
        self._session_factory = session_factory or create_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "Catalog":
        """Open a catalog on the given database URL and make sure its tables exist."""
        try:
            catalog = cls(create_db_engine(database_url, echo=echo))
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Cannot open catalog database: {e}") from e
        catalog.create_tables()
        return catalog

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Catalog operation '{operation}' failed: {str(e)}")
            raise StorageUnavailable(f"Catalog operation '{operation}' failed: {e}") from e
        finally:
            session.close()

    def create_tables(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Cannot create catalog tables: {e}") from e
        logger.debug("Catalog tables ready")

    def close(self) -> None:
        self.engine.dispose()
        logger.debug("Catalog engine disposed")

    # Files

    def insert_file(self, file_id: str, name: str, creator: str,
                    uploaded_at: Optional[datetime] = None,
                    status: str = STATUS_PENDING) -> FileRecord:
        """
        Insert a file row.

        Args:
            file_id: Freshly allocated file id
            name: Original filename
            creator: Username of the uploader
            uploaded_at: Defaults to now (UTC)
            status: "pending" for the upload path, "committed" to publish immediately

        Returns:
            FileRecord: The inserted record

        Raises:
            DuplicateFileId: If a row with this id already exists
            StorageUnavailable: On any other database failure
        """
        row = StoredFile(
            id=file_id,
            file_name=name,
            creator=creator,
            uploaded_at=uploaded_at or datetime.now(pytz.UTC),
            status=status,
        )
        try:
            with self._session("insert_file") as session:
                session.add(row)
        except IntegrityError as e:
            raise DuplicateFileId(f"File id {file_id} is already taken") from e
        return _to_record(row)

    def commit_file(self, file_id: str) -> bool:
        """Mark a pending row as committed. Returns False if no pending row matched."""
        with self._session("commit_file") as session:
            result = session.execute(
                update(StoredFile)
                .where(StoredFile.id == file_id, StoredFile.status == STATUS_PENDING)
                .values(status=STATUS_COMMITTED)
            )
            return result.rowcount > 0

    def find_file_by_id(self, file_id: str) -> Optional[FileRecord]:
        with self._session("find_file_by_id") as session:
            row = session.execute(
                select(StoredFile).where(
                    StoredFile.id == file_id,
                    StoredFile.status == STATUS_COMMITTED,
                )
            ).scalar_one_or_none()
            return _to_record(row) if row is not None else None

    def list_files_by_creator(self, creator: str) -> List[FileRecord]:
        with self._session("list_files_by_creator") as session:
            rows = session.execute(
                select(StoredFile)
                .where(StoredFile.creator == creator, StoredFile.status == STATUS_COMMITTED)
                .order_by(StoredFile.uploaded_at, StoredFile.id)
            ).scalars().all()
            return [_to_record(row) for row in rows]

    def list_all_files(self) -> List[FileRecord]:
        with self._session("list_all_files") as session:
            rows = session.execute(
                select(StoredFile)
                .where(StoredFile.status == STATUS_COMMITTED)
                .order_by(StoredFile.uploaded_at, StoredFile.id)
            ).scalars().all()
            return [_to_record(row) for row in rows]

    def delete_file_by_id(self, file_id: str) -> bool:
        """
        Delete a file row whatever its status.

        Returns:
            bool: True if a row was removed, False if there was none
        """
        with self._session("delete_file_by_id") as session:
            result = session.execute(delete(StoredFile).where(StoredFile.id == file_id))
            return result.rowcount > 0

    def count_by_creator_or_id(self, creator: Optional[str] = None,
                               file_id: Optional[str] = None) -> int:
        """
        Count live rows (pending included) matching a creator or an id.

        With both arguments a row matching either one is counted.
        With neither, every row is counted.
        """
        conditions = []
        if creator is not None:
            conditions.append(StoredFile.creator == creator)
        if file_id is not None:
            conditions.append(StoredFile.id == file_id)

        query = select(func.count()).select_from(StoredFile)
        if conditions:
            query = query.where(or_(*conditions))

        with self._session("count_by_creator_or_id") as session:
            return session.execute(query).scalar_one()

    def list_stale_pending_files(self, older_than: datetime) -> List[FileRecord]:
        """Pending rows created before the given moment."""
        with self._session("list_stale_pending_files") as session:
            rows = session.execute(
                select(StoredFile).where(
                    StoredFile.status == STATUS_PENDING,
                    StoredFile.uploaded_at < older_than,
                )
            ).scalars().all()
            return [_to_record(row) for row in rows]

    def list_all_file_ids(self) -> List[str]:
        """Ids of every row, pending or committed."""
        with self._session("list_all_file_ids") as session:
            return list(session.execute(select(StoredFile.id)).scalars().all())

    # Identities

    def find_identity_by_token(self, token: str) -> Optional[Identity]:
        with self._session("find_identity_by_token") as session:
            row = session.execute(
                select(ApiUser).where(ApiUser.api_key == token)
            ).scalar_one_or_none()
            if row is None:
                return None
            return Identity(username=row.username, role=Role(row.permissions))

    def upsert_identity(self, token: str, username: str, role: Role) -> Identity:
        """
        Bind a token to a username, replacing whatever that username had before.
        """
        try:
            with self._session("upsert_identity") as session:
                session.execute(delete(ApiUser).where(ApiUser.username == username))
                session.execute(delete(ApiUser).where(ApiUser.api_key == token))
                session.add(ApiUser(api_key=token, username=username, permissions=int(role)))
        except IntegrityError as e:
            raise StorageUnavailable(f"Cannot store identity {username}: {e}") from e
        return Identity(username=username, role=role)

    def delete_identity(self, username: str) -> bool:
        with self._session("delete_identity") as session:
            result = session.execute(delete(ApiUser).where(ApiUser.username == username))
            return result.rowcount > 0

    def list_identities(self) -> List[Identity]:
        with self._session("list_identities") as session:
            rows = session.execute(select(ApiUser).order_by(ApiUser.username)).scalars().all()
            return [Identity(username=row.username, role=Role(row.permissions)) for row in rows]
