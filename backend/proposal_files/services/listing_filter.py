"""Narrow a batch of file records to what one actor may see."""
from dataclasses import dataclass
from typing import Iterable

from proposal_files.models.file_record import FileRecord
from proposal_files.services.access_policy import AccessDecision, access_flags, evaluate
from proposal_files.services.actors import Actor
from proposal_files.services.parent_lookup import ParentLookupContext


@dataclass(frozen=True)
class VisibleFile:
    record: FileRecord
    access: AccessDecision


async def filter_files_for_actor(
    files: Iterable[FileRecord],
    actor: Actor,
    parents: ParentLookupContext,
) -> list[VisibleFile]:
    """Drop records the actor may not view and attach access flags to the rest.

    Order is preserved. Denied records are omitted entirely so their
    existence is not revealed. A failed parent lookup only excludes the
    records tied to that parent.
    """
    visible = []
    for record in files:
        if await evaluate(record, actor, parents):
            visible.append(VisibleFile(record=record, access=access_flags(record, actor)))
    return visible
