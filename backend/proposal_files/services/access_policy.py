"""Access policy for proposal files and links.

Three separately named policies live here:

- `decide()`: view permission. Fail-closed, default-deny.
- `can_delete()`: ownership-or-director, independent of `decide()`.
- `resolve_upload_category()`: picks the category for an upload and
  silently downgrades non-BDM `project` uploads without a proposal to
  `general` (fail-open, on purpose).

Everything here is pure except `evaluate()`, which performs the parent
lookup through a ParentLookupContext and denies when that lookup fails.
"""
from dataclasses import dataclass
from typing import Optional

from proposal_files.errors import ForbiddenError, InvalidRequestBody
from proposal_files.models.file_record import FILE_TYPES, FileRecord
from proposal_files.models.proposal import Proposal
from proposal_files.services.actors import Actor, Role
from proposal_files.services.parent_lookup import ParentLookupContext, ParentLookupError

# Estimation data is embargoed from the originating BDM until director approval
ESTIMATION_RELEASE_STATUSES = frozenset({"approved", "submitted_to_client", "won"})

# Categories readable by anyone who passes BDM isolation
OPEN_FILE_TYPES = frozenset({"project", "link"})


@dataclass(frozen=True)
class AccessDecision:
    can_view: bool
    can_download: bool
    can_delete: bool


def owns_proposal(proposal: Optional[Proposal], actor: Actor) -> bool:
    """BDM isolation predicate: the proposal exists and the actor created it."""
    return proposal is not None and proposal.created_by_uid == actor.uid


def decide(
    file: FileRecord,
    actor: Actor,
    parent: Optional[Proposal],
    *,
    context_proposal_id: Optional[str] = None,
) -> bool:
    """Whether `actor` may view `file`, given its already-resolved parent proposal."""
    parent_id = file.proposal_id or context_proposal_id

    if actor.role is Role.BDM and not owns_proposal(parent, actor):
        return False

    if not parent_id and actor.role is not Role.BDM:
        return True

    if not file.file_type or file.file_type in OPEN_FILE_TYPES:
        return True

    if file.file_type == "estimation":
        match actor.role:
            case Role.ESTIMATOR | Role.COO | Role.DIRECTOR:
                return True
            case Role.BDM:
                return parent is not None and parent.status in ESTIMATION_RELEASE_STATUSES

    return False


async def evaluate(
    file: FileRecord,
    actor: Actor,
    parents: ParentLookupContext,
    *,
    context_proposal_id: Optional[str] = None,
) -> bool:
    """`decide()` with the parent looked up first. Lookup failure denies."""
    parent_id = file.proposal_id or context_proposal_id
    parent = None
    if parent_id:
        try:
            parent = await parents.get(parent_id)
        except ParentLookupError:
            return False
    return decide(file, actor, parent, context_proposal_id=context_proposal_id)


def can_delete(file: FileRecord, actor: Actor) -> bool:
    return file.uploaded_by_uid == actor.uid or actor.role is Role.DIRECTOR


def access_flags(file: FileRecord, actor: Actor) -> AccessDecision:
    """Flags for a record the actor has already been allowed to view."""
    return AccessDecision(
        can_view=True,
        can_download=not file.is_link,
        can_delete=can_delete(file, actor),
    )


async def require_proposal_owner(
    actor: Actor, proposal_id: str, parents: ParentLookupContext, error: str
) -> None:
    """Raise ForbiddenError unless `actor` created `proposal_id`. Lookup failure denies."""
    try:
        proposal = await parents.get(proposal_id)
    except ParentLookupError:
        raise ForbiddenError(error) from None
    if not owns_proposal(proposal, actor):
        raise ForbiddenError(error)


def default_category(role: Role) -> str:
    match role:
        case Role.BDM:
            return "project"
        case Role.ESTIMATOR:
            return "estimation"
        case Role.COO | Role.DIRECTOR:
            return "general"


def resolve_upload_category(
    requested: Optional[str], actor: Actor, proposal_id: Optional[str]
) -> str:
    """Category an upload will be stored under, or ForbiddenError.

    Estimation uploads by non-estimators are rejected outright. Project
    uploads by non-BDMs are rejected when tied to a proposal and otherwise
    downgraded to `general`.
    """
    category = (requested or "").strip().lower() or default_category(actor.role)
    if category not in FILE_TYPES or category == "link":
        raise InvalidRequestBody(f"Invalid file type '{requested}'.")

    if category == "estimation" and actor.role is not Role.ESTIMATOR:
        raise ForbiddenError("Only Estimators can upload Estimation files.")

    if category == "project" and actor.role is not Role.BDM:
        if proposal_id:
            raise ForbiddenError("Only BDMs can upload Project files to proposals.")
        category = "general"

    return category
