"""File and link request/response schemas."""
import uuid
from datetime import datetime
from typing import Optional

from pydantic import field_validator

from proposal_files.schemas.base import CamelModel, CamelORMModel


def normalize_proposal_id(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace; blank means no proposal."""
    if value is None:
        return None
    return value.strip() or None


class LinkEntry(CamelModel):
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None


class LinkBatchCreate(CamelModel):
    links: Optional[list[LinkEntry]] = None
    proposal_id: Optional[str] = None

    @field_validator("proposal_id")
    @classmethod
    def blank_proposal_id_is_none(cls, v: Optional[str]) -> Optional[str]:
        return normalize_proposal_id(v)


class FileResponse(CamelORMModel):
    id: uuid.UUID
    file_name: Optional[str] = None
    original_name: str
    url: str
    mime_type: Optional[str] = None
    file_size: int = 0
    proposal_id: Optional[str] = None
    file_type: str
    link_description: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    uploaded_by_uid: str
    uploaded_by_name: str = ""
    uploaded_by_role: str


class AccessibleFileResponse(FileResponse):
    """A record as seen by one actor, with the flags derived for that actor."""
    can_view: bool
    can_download: bool
    can_delete: bool
