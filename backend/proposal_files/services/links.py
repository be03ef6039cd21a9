"""Batch creation of external-link records.

Unlike uploads there is no blob step, so every accepted link and its audit
row commit in one transaction: either the whole batch is visible or none of it.
"""
import logging
import uuid
from typing import Optional, Sequence

from proposal_files.errors import InternalError, NoLinksProvided
from proposal_files.models.base import utc_now
from proposal_files.models.file_record import LINK_MIME_TYPE, FileRecord
from proposal_files.schemas.file import LinkEntry, normalize_proposal_id
from proposal_files.services.access_policy import require_proposal_owner
from proposal_files.services.actors import Actor, Role
from proposal_files.services.audit_log import LINK_ADDED, AuditLog, for_proposal
from proposal_files.services.parent_lookup import ParentLookupContext
from proposal_files.services.stores import MetadataIndex, ParentEntityStore

logger = logging.getLogger(__name__)


class LinkBatchWriter:
    def __init__(self, index: MetadataIndex, parents: ParentEntityStore):
        self._index = index
        self._parents = parents

    async def add_links(
        self,
        links: Optional[Sequence[LinkEntry]],
        actor: Actor,
        *,
        proposal_id: Optional[str] = None,
    ) -> list[FileRecord]:
        """Persist every link that has a URL. Entries without one are skipped."""
        if not links:
            raise NoLinksProvided("No links provided in the request body.")
        proposal_id = normalize_proposal_id(proposal_id)

        if proposal_id and actor.role is Role.BDM:
            await require_proposal_owner(
                actor, proposal_id, ParentLookupContext(self._parents),
                "You can only add links to your own proposals.",
            )

        records = []
        activities = []
        for link in links:
            url = (link.url or "").strip()
            if not url:
                continue
            title = link.title or url
            record = FileRecord(
                id=uuid.uuid4(),
                file_name=None,
                original_name=title,
                url=url,
                mime_type=LINK_MIME_TYPE,
                file_size=0,
                proposal_id=proposal_id,
                file_type="link",
                link_description=link.description or "",
                uploaded_at=utc_now(),
                uploaded_by_uid=actor.uid,
                uploaded_by_name=actor.name,
                uploaded_by_role=actor.role.value,
            )
            records.append(record)
            activities.append(AuditLog.build(
                LINK_ADDED,
                actor,
                f"Link added: {title}{for_proposal(proposal_id)}",
                proposal_id=proposal_id,
                file_id=str(record.id),
            ))

        if not records:
            return []

        try:
            await self._index.write_batch(records, activities)
        except Exception as e:
            logger.exception("Link batch of %d failed (proposal=%s)", len(records), proposal_id)
            raise InternalError("Failed to save links.", message=str(e)) from e

        logger.info("Added %d link(s) by %s (proposal=%s)", len(records), actor.uid, proposal_id)
        return records
