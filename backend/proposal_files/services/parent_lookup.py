"""Request-scoped memoization of proposal lookups.

A `ParentLookupContext` is created per request and passed explicitly to the
policy and listing code. Each distinct proposal id is fetched at most once,
including ids whose lookup failed.
"""
import logging
from typing import Optional, Union

from proposal_files.models.proposal import Proposal
from proposal_files.services.stores import ParentEntityStore

logger = logging.getLogger(__name__)


class ParentLookupError(Exception):
    """The parent entity store could not answer for a proposal id."""

    def __init__(self, proposal_id: str):
        super().__init__(f"Lookup failed for proposal {proposal_id}")
        self.proposal_id = proposal_id


class ParentLookupContext:
    def __init__(self, store: ParentEntityStore):
        self._store = store
        self._cache: dict[str, Union[Proposal, None, ParentLookupError]] = {}
        self.fetch_count = 0

    async def get(self, proposal_id: str) -> Optional[Proposal]:
        """Return the proposal, None when it does not exist, or raise ParentLookupError."""
        if proposal_id in self._cache:
            cached = self._cache[proposal_id]
            if isinstance(cached, ParentLookupError):
                raise cached
            return cached

        self.fetch_count += 1
        try:
            proposal = await self._store.get(proposal_id)
        except Exception as e:
            logger.exception("Error fetching proposal %s for file access check", proposal_id)
            error = ParentLookupError(proposal_id)
            self._cache[proposal_id] = error
            raise error from e

        self._cache[proposal_id] = proposal
        return proposal
