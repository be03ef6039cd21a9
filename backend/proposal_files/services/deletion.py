"""Deletion of a file or link record.

The blob delete is best-effort and the metadata delete is authoritative:
once the row is gone no listing can surface the record, whatever happened to
the blob. A crash in between can orphan a blob. Retrying a delete whose blob
is already gone still removes the row, since a missing blob is a no-op.
"""
import logging

from proposal_files.errors import ForbiddenError, NotFoundError, ValidationError
from proposal_files.models.file_record import FileRecord
from proposal_files.services.access_policy import can_delete
from proposal_files.services.actors import Actor
from proposal_files.services.audit_log import FILE_DELETED, LINK_DELETED, AuditLog
from proposal_files.services.stores import BlobNotFoundError, BlobStore, MetadataIndex

logger = logging.getLogger(__name__)


class DeletionCoordinator:
    def __init__(self, index: MetadataIndex, blobs: BlobStore, audit: AuditLog):
        self._index = index
        self._blobs = blobs
        self._audit = audit

    async def delete(self, file_id: str, actor: Actor) -> FileRecord:
        """Delete one record (and its blob). Returns the deleted record."""
        if not file_id:
            raise ValidationError("File ID required in query parameters.")

        record = await self._index.get(file_id)
        if record is None:
            raise NotFoundError("File metadata not found in database.")

        if not can_delete(record, actor):
            raise ForbiddenError(
                "Permission denied. You can only delete files you uploaded, "
                "or you must be a director."
            )

        if not record.is_link and record.file_name:
            await self._delete_blob(record.file_name)

        if not await self._index.delete(file_id):
            # Someone else removed the row between our read and delete
            raise NotFoundError("File metadata not found in database.")
        logger.info("Deleted %s record %s by %s", record.file_type, file_id, actor.uid)

        label = "Link" if record.is_link else "File"
        await self._audit.append(
            LINK_DELETED if record.is_link else FILE_DELETED,
            actor,
            f"{label} deleted: {record.original_name}",
            proposal_id=record.proposal_id,
        )
        return record

    async def _delete_blob(self, key: str) -> None:
        try:
            await self._blobs.delete(key)
        except BlobNotFoundError:
            logger.warning(
                "File not found in storage during deletion: %s. Proceeding to delete metadata.", key
            )
        except Exception:
            logger.exception("Storage deletion error for %s; deleting metadata anyway", key)
