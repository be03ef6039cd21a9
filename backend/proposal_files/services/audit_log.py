"""Audit trail for file and link mutations.

`append()` is best-effort: a failed write is logged and swallowed so it never
fails or reverses the operation that triggered it. `build()` returns an
unsaved row for callers that commit audit events inside their own batch.
"""
import logging
import uuid
from typing import Optional

from proposal_files.models.activity import Activity
from proposal_files.models.base import utc_now
from proposal_files.services.actors import Actor
from proposal_files.services.stores import AuditSink

logger = logging.getLogger(__name__)

FILE_UPLOADED = "file_uploaded"
LINK_ADDED = "link_added"
FILE_DELETED = "file_deleted"
LINK_DELETED = "link_deleted"


class AuditLog:
    def __init__(self, sink: AuditSink):
        self._sink = sink

    @staticmethod
    def build(
        event_type: str,
        actor: Actor,
        details: str,
        proposal_id: Optional[str] = None,
        file_id: Optional[str] = None,
    ) -> Activity:
        return Activity(
            id=uuid.uuid4(),
            type=event_type,
            details=details,
            performed_by_uid=actor.uid,
            performed_by_name=actor.name,
            performed_by_role=actor.role.value,
            proposal_id=proposal_id,
            file_id=str(file_id) if file_id else None,
            timestamp=utc_now(),
        )

    async def append(
        self,
        event_type: str,
        actor: Actor,
        details: str,
        proposal_id: Optional[str] = None,
        file_id: Optional[str] = None,
    ) -> Optional[Activity]:
        """Record an event. Returns None when the write failed."""
        activity = self.build(event_type, actor, details, proposal_id, file_id)
        try:
            await self._sink.add(activity)
        except Exception:
            logger.exception(
                "Failed to record %s activity (proposal=%s, file=%s)",
                event_type, proposal_id, file_id,
            )
            return None
        return activity


def for_proposal(proposal_id: Optional[str]) -> str:
    """Suffix used in activity details."""
    return f" for proposal {proposal_id}" if proposal_id else ""
