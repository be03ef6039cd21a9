"""Multi-file upload.

Request-level validation and permission checks all run before the first blob
write. After that each file goes through its own pipeline (read → blob write →
public URL → metadata row → audit event) concurrently with the others. There
is no cross-file transaction: files whose pipeline succeeded stay stored even
when a sibling fails, and the caller sees only the records that were created.
"""
import asyncio
import logging
import re
import secrets
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from proposal_files.config import settings
from proposal_files.errors import (
    FileTooLarge,
    InternalStorageError,
    InvalidFileType,
    InvalidRequestBody,
    MissingFiles,
    TooManyFiles,
)
from proposal_files.models.base import utc_now
from proposal_files.models.file_record import FileRecord
from proposal_files.services.access_policy import require_proposal_owner, resolve_upload_category
from proposal_files.services.actors import Actor, Role
from proposal_files.services.audit_log import FILE_UPLOADED, AuditLog, for_proposal
from proposal_files.services.parent_lookup import ParentLookupContext
from proposal_files.services.stores import BlobStore, MetadataIndex, ParentEntityStore

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({
    ".pdf", ".docx", ".xlsx", ".xls", ".dwg", ".jpg", ".jpeg", ".png", ".gif",
})

ALLOWED_MIME_TYPES = frozenset({
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "application/acad",
    "application/x-acad",
    "image/vnd.dwg",
})

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.\-_]")


@dataclass
class IncomingFile:
    """One submitted file. `size` is known up front; the bytes are only read
    by the pipeline, after request validation has passed."""
    filename: str
    content_type: Optional[str]
    size: int
    read: Callable[[], Awaitable[bytes]]

    @classmethod
    def from_bytes(cls, filename: str, content_type: Optional[str], data: bytes) -> "IncomingFile":
        async def read() -> bytes:
            return data

        return cls(filename=filename, content_type=content_type, size=len(data), read=read)


@dataclass
class UploadFailure:
    original_name: str
    error: str


@dataclass
class UploadResult:
    records: list[FileRecord] = field(default_factory=list)
    failures: list[UploadFailure] = field(default_factory=list)

    @property
    def submitted(self) -> int:
        return len(self.records) + len(self.failures)


def is_allowed_file(filename: str, content_type: Optional[str]) -> bool:
    """Extension or MIME type must be on the allow-list; either one is enough."""
    ext = Path(filename or "").suffix.lower()
    mime = (content_type or "").split(";")[0].strip().lower()
    return ext in ALLOWED_EXTENSIONS or mime in ALLOWED_MIME_TYPES


def sanitize_file_name(name: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", name)


def build_storage_key(proposal_id: Optional[str], original_name: str) -> str:
    """`<proposal-or-general>/<epoch-ms>-<random>-<sanitized name>`."""
    stamp = time.time_ns() // 1_000_000
    suffix = secrets.randbelow(1_000_000)
    prefix = sanitize_file_name(proposal_id) if proposal_id else "general"
    return f"{prefix}/{stamp}-{suffix}-{sanitize_file_name(original_name)}"


class UploadCoordinator:
    def __init__(
        self,
        index: MetadataIndex,
        blobs: BlobStore,
        parents: ParentEntityStore,
        audit: AuditLog,
        *,
        max_files: Optional[int] = None,
        max_file_size: Optional[int] = None,
    ):
        self._index = index
        self._blobs = blobs
        self._parents = parents
        self._audit = audit
        self.max_files = max_files or settings.MAX_FILES_PER_UPLOAD
        self.max_file_size = max_file_size or settings.max_file_size_bytes

    def validate(self, files: Sequence[IncomingFile], proposal_id: Optional[str] = None) -> None:
        if not files:
            raise MissingFiles("No files were uploaded.")
        if len(files) > self.max_files:
            raise TooManyFiles(f"Too many files. Max {self.max_files} files allowed at once.")
        for f in files:
            if not is_allowed_file(f.filename, f.content_type):
                raise InvalidFileType(
                    "Invalid file type. Only PDF, DOCX, XLSX, DWG, and images are allowed.",
                    message=f.filename,
                )
            if f.size > self.max_file_size:
                raise FileTooLarge(
                    f"File too large. Max size is {self.max_file_size // (1024 * 1024)}MB.",
                    message=f.filename,
                )
        if proposal_id and not sanitize_file_name(proposal_id).strip("."):
            raise InvalidRequestBody("Invalid proposal id.", message=proposal_id)

    async def upload(
        self,
        files: Sequence[IncomingFile],
        actor: Actor,
        *,
        proposal_id: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> UploadResult:
        self.validate(files, proposal_id)

        if proposal_id and actor.role is Role.BDM:
            await require_proposal_owner(
                actor, proposal_id, ParentLookupContext(self._parents),
                "You can only add files to your own proposals.",
            )
        category = resolve_upload_category(file_type, actor, proposal_id)

        outcomes = await asyncio.gather(
            *(self._store_one(f, actor, proposal_id, category) for f in files),
            return_exceptions=True,
        )

        result = UploadResult()
        for f, outcome in zip(files, outcomes):
            if isinstance(outcome, FileRecord):
                result.records.append(outcome)
            elif isinstance(outcome, Exception):
                logger.error(
                    "Upload of %s failed (proposal=%s): %s",
                    f.filename, proposal_id, outcome, exc_info=outcome,
                )
                result.failures.append(UploadFailure(f.filename, str(outcome)))
            else:
                raise outcome

        if not result.records:
            raise InternalStorageError(
                "Internal Server Error during file upload.",
                message=result.failures[0].error if result.failures else None,
            )
        logger.info(
            "Uploaded %d of %d file(s) by %s (proposal=%s, type=%s)",
            len(result.records), len(files), actor.uid, proposal_id, category,
        )
        return result

    async def _store_one(
        self, f: IncomingFile, actor: Actor, proposal_id: Optional[str], category: str
    ) -> FileRecord:
        data = await f.read()
        if len(data) > self.max_file_size:
            raise FileTooLarge(f"File too large: {f.filename}")
        key = build_storage_key(proposal_id, f.filename)
        await self._blobs.save(key, data, f.content_type)

        record = FileRecord(
            id=uuid.uuid4(),
            file_name=key,
            original_name=f.filename,
            url=self._blobs.public_url(key),
            mime_type=f.content_type,
            file_size=len(data),
            proposal_id=proposal_id,
            file_type=category,
            uploaded_at=utc_now(),
            uploaded_by_uid=actor.uid,
            uploaded_by_name=actor.name,
            uploaded_by_role=actor.role.value,
        )
        try:
            await self._index.add(record)
        except Exception:
            await self._discard_blob(key)
            raise

        await self._audit.append(
            FILE_UPLOADED,
            actor,
            f"File uploaded: {f.filename}{for_proposal(proposal_id)} ({category})",
            proposal_id=proposal_id,
            file_id=str(record.id),
        )
        return record

    async def _discard_blob(self, key: str) -> None:
        try:
            await self._blobs.delete(key)
        except Exception:
            logger.warning("Could not remove blob %s after metadata write failed", key, exc_info=True)
