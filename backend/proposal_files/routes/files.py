"""Files API routes.

One resource, `/api/files`, dispatched on method and parameters:

- GET ?fileId=      single record with access flags
- GET ?proposalId=  records for one proposal
- GET               every record the actor may see
- POST (JSON)       add external links
- POST (multipart)  upload files
- DELETE ?id=       delete one record
"""
import json
import os
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from proposal_files.auth import get_current_actor
from proposal_files.deps import (
    get_deletion_coordinator,
    get_file_queries,
    get_link_writer,
    get_upload_coordinator,
)
from proposal_files.errors import InvalidRequestBody
from proposal_files.models.file_record import FileRecord
from proposal_files.schemas.common import envelope
from proposal_files.schemas.file import AccessibleFileResponse, FileResponse, LinkBatchCreate
from proposal_files.services.actors import Actor
from proposal_files.services.deletion import DeletionCoordinator
from proposal_files.services.file_queries import FileQueries
from proposal_files.services.links import LinkBatchWriter
from proposal_files.services.listing_filter import VisibleFile
from proposal_files.services.uploads import IncomingFile, UploadCoordinator

router = APIRouter(prefix="/api/files", tags=["files"])


@router.get("")
async def get_files(
    file_id: Optional[str] = Query(None, alias="fileId"),
    proposal_id: Optional[str] = Query(None, alias="proposalId"),
    actor: Actor = Depends(get_current_actor),
    queries: FileQueries = Depends(get_file_queries),
):
    """Fetch one record, a proposal's records, or everything visible to the actor."""
    if file_id:
        visible = await queries.get_file(file_id, actor)
        return envelope(_visible_to_response(visible))

    if proposal_id:
        files = await queries.list_for_proposal(proposal_id, actor)
    else:
        files = await queries.list_accessible(actor)
    return envelope([_visible_to_response(v) for v in files])


@router.post("", status_code=201)
async def create_files(
    request: Request,
    actor: Actor = Depends(get_current_actor),
    uploads: UploadCoordinator = Depends(get_upload_coordinator),
    links: LinkBatchWriter = Depends(get_link_writer),
):
    """Add links (JSON body) or upload files (multipart form)."""
    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        body = await _parse_link_body(request)
        added = await links.add_links(body.links, actor, proposal_id=body.proposal_id)
        return envelope(
            [_to_response(r) for r in added],
            message=f"{len(added)} link(s) added successfully.",
        )

    if "multipart/form-data" in content_type:
        form = await request.form()
        try:
            incoming = [_incoming(f) for f in form.getlist("files") if isinstance(f, UploadFile)]
            proposal_id = _form_value(form.get("proposalId"))
            file_type = _form_value(form.get("fileType"))
            result = await uploads.upload(incoming, actor, proposal_id=proposal_id, file_type=file_type)
        finally:
            await form.close()

        if result.failures:
            failed = ", ".join(f.original_name for f in result.failures)
            message = f"{len(result.records)} of {result.submitted} file(s) uploaded. Failed: {failed}."
        else:
            message = f"{len(result.records)} file(s) uploaded successfully."
        return envelope([_to_response(r) for r in result.records], message=message)

    raise InvalidRequestBody("Expected a JSON body with links or a multipart form with files.")


@router.delete("")
async def delete_file(
    file_id: Optional[str] = Query(None, alias="id"),
    actor: Actor = Depends(get_current_actor),
    deletion: DeletionCoordinator = Depends(get_deletion_coordinator),
):
    """Delete a record and, for uploaded files, its stored bytes."""
    record = await deletion.delete(file_id, actor)
    label = "Link" if record.is_link else "File"
    return envelope(message=f"{label} deleted successfully.")


async def _parse_link_body(request: Request) -> LinkBatchCreate:
    try:
        raw = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequestBody("Invalid JSON format for adding links.") from None
    if not isinstance(raw, dict):
        raise InvalidRequestBody("Invalid JSON format for adding links.")
    try:
        return LinkBatchCreate.model_validate(raw)
    except PydanticValidationError as e:
        raise InvalidRequestBody("Invalid link payload.", message=str(e)) from None


def _incoming(upload: UploadFile) -> IncomingFile:
    """Wrap a spooled form part without reading it into memory."""
    size = upload.size
    if size is None:
        upload.file.seek(0, os.SEEK_END)
        size = upload.file.tell()
        upload.file.seek(0)
    return IncomingFile(
        filename=upload.filename or "unnamed",
        content_type=upload.content_type,
        size=size,
        read=upload.read,
    )


def _form_value(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _to_response(record: FileRecord) -> dict:
    """Convert SQLAlchemy model to camelCase response dict."""
    return FileResponse.model_validate(record).model_dump(by_alias=True, mode="json")


def _visible_to_response(visible: VisibleFile) -> dict:
    base = FileResponse.model_validate(visible.record).model_dump()
    return AccessibleFileResponse(
        **base,
        can_view=visible.access.can_view,
        can_download=visible.access.can_download,
        can_delete=visible.access.can_delete,
    ).model_dump(by_alias=True, mode="json")
