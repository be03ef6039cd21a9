"""Read paths: single fetch, per-proposal list and the role-appropriate list.

Every path ends in the access policy, so the source queries only need to be
supersets of what the actor may see.
"""
import heapq
import logging
from typing import Optional

from proposal_files.config import settings
from proposal_files.errors import ForbiddenError, NotFoundError
from proposal_files.models.file_record import FileRecord
from proposal_files.services.access_policy import access_flags, evaluate, require_proposal_owner
from proposal_files.services.actors import Actor, Role
from proposal_files.services.listing_filter import VisibleFile, filter_files_for_actor
from proposal_files.services.parent_lookup import ParentLookupContext
from proposal_files.services.stores import MetadataIndex, ParentEntityStore

logger = logging.getLogger(__name__)


class FileQueries:
    def __init__(
        self,
        index: MetadataIndex,
        parents: ParentEntityStore,
        *,
        limit: Optional[int] = None,
        parent_batch_size: Optional[int] = None,
    ):
        self._index = index
        self._parents = parents
        self.limit = limit or settings.LIST_QUERY_LIMIT
        self.parent_batch_size = parent_batch_size or settings.PARENT_ID_BATCH_SIZE

    async def get_file(self, file_id: str, actor: Actor) -> VisibleFile:
        record = await self._index.get(file_id)
        if record is None:
            raise NotFoundError("File not found")
        if not await evaluate(record, actor, ParentLookupContext(self._parents)):
            raise ForbiddenError("Access denied. You do not have permission to view this file.")
        return VisibleFile(record=record, access=access_flags(record, actor))

    async def list_for_proposal(self, proposal_id: str, actor: Actor) -> list[VisibleFile]:
        parents = ParentLookupContext(self._parents)
        if actor.role is Role.BDM:
            await require_proposal_owner(
                actor, proposal_id, parents,
                "Access denied. You can only view files from your own proposals.",
            )
        records = await self._index.query(proposal_ids=[proposal_id], limit=self.limit)
        return await filter_files_for_actor(records, actor, parents)

    async def list_accessible(self, actor: Actor) -> list[VisibleFile]:
        parents = ParentLookupContext(self._parents)
        if actor.role is Role.BDM:
            proposal_ids = await self._parents.ids_created_by(actor.uid)
            if not proposal_ids:
                return []
            records = await self._query_by_parents(proposal_ids)
        else:
            records = await self._index.query(limit=self.limit)
        return await filter_files_for_actor(records, actor, parents)

    async def _query_by_parents(self, proposal_ids: list[str]) -> list[FileRecord]:
        """Files for any of `proposal_ids`, newest first, capped at `limit`.

        The id set is queried in chunks and the chunks merged, so large
        proposal portfolios never fall back to an unfiltered query.
        """
        size = self.parent_batch_size
        chunks = [proposal_ids[i:i + size] for i in range(0, len(proposal_ids), size)]
        if len(chunks) > 1:
            logger.debug("Querying files for %d proposals in %d chunks", len(proposal_ids), len(chunks))

        batches = []
        for chunk in chunks:
            batches.append(await self._index.query(proposal_ids=chunk, limit=self.limit))
        if len(batches) == 1:
            return batches[0]

        merged = heapq.merge(*batches, key=lambda r: r.uploaded_at, reverse=True)
        return [record for _, record in zip(range(self.limit), merged)]
