"""Collaborator interfaces for the backing stores, plus their SQL implementations.

Services receive these through their constructors; routes wire the SQL
implementations in via `proposal_files.deps`, and tests substitute fakes.
Each SQL operation opens its own session, so concurrent callers never share one.
"""
import uuid
from typing import Optional, Protocol, Sequence

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from proposal_files.database import async_session
from proposal_files.models.activity import Activity
from proposal_files.models.file_record import FileRecord
from proposal_files.models.proposal import Proposal


class BlobNotFoundError(Exception):
    """Raised by a blob store when the key does not exist."""


class MetadataIndex(Protocol):
    async def get(self, file_id: str) -> Optional[FileRecord]: ...

    async def query(
        self, *, proposal_ids: Optional[Sequence[str]] = None, limit: int
    ) -> list[FileRecord]: ...

    async def add(self, record: FileRecord) -> None: ...

    async def write_batch(
        self, records: Sequence[FileRecord], activities: Sequence[Activity]
    ) -> None: ...

    async def delete(self, file_id: str) -> bool: ...


class BlobStore(Protocol):
    async def save(self, key: str, data: bytes, content_type: Optional[str]) -> None: ...

    async def delete(self, key: str) -> None: ...

    def public_url(self, key: str) -> str: ...


class ParentEntityStore(Protocol):
    async def get(self, proposal_id: str) -> Optional[Proposal]: ...

    async def ids_created_by(self, uid: str) -> list[str]: ...


class AuditSink(Protocol):
    async def add(self, activity: Activity) -> None: ...


def _parse_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class SqlMetadataIndex:
    """`files` table access."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session):
        self._session_factory = session_factory

    async def get(self, file_id: str) -> Optional[FileRecord]:
        pk = _parse_uuid(file_id)
        if pk is None:
            return None
        async with self._session_factory() as db:
            return await db.get(FileRecord, pk)

    async def query(
        self, *, proposal_ids: Optional[Sequence[str]] = None, limit: int
    ) -> list[FileRecord]:
        """Newest first. `proposal_ids=None` means every record."""
        stmt = select(FileRecord).order_by(desc(FileRecord.uploaded_at)).limit(limit)
        if proposal_ids is not None:
            if not proposal_ids:
                return []
            stmt = stmt.where(FileRecord.proposal_id.in_(list(proposal_ids)))
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def add(self, record: FileRecord) -> None:
        async with self._session_factory() as db:
            db.add(record)
            await db.commit()

    async def write_batch(
        self, records: Sequence[FileRecord], activities: Sequence[Activity]
    ) -> None:
        """Insert records and their audit rows in a single transaction."""
        async with self._session_factory() as db:
            async with db.begin():
                db.add_all(list(records))
                db.add_all(list(activities))

    async def delete(self, file_id: str) -> bool:
        pk = _parse_uuid(file_id)
        if pk is None:
            return False
        async with self._session_factory() as db:
            result = await db.execute(delete(FileRecord).where(FileRecord.id == pk))
            await db.commit()
            return result.rowcount > 0


class SqlProposalStore:
    """Read-only access to `proposals`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session):
        self._session_factory = session_factory

    async def get(self, proposal_id: str) -> Optional[Proposal]:
        async with self._session_factory() as db:
            return await db.get(Proposal, proposal_id)

    async def ids_created_by(self, uid: str) -> list[str]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Proposal.id).where(Proposal.created_by_uid == uid)
            )
            return list(result.scalars().all())


class SqlAuditSink:
    """Appends rows to `activities`."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session):
        self._session_factory = session_factory

    async def add(self, activity: Activity) -> None:
        async with self._session_factory() as db:
            db.add(activity)
            await db.commit()
