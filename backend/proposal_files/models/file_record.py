"""FileRecord model - metadata for uploaded files and external links.

Bytes for uploaded files live in the blob store under `file_name`;
link records have no blob and carry the external URL only.
"""
import uuid
from datetime import datetime
from sqlalchemy import String, Text, BigInteger, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from proposal_files.models.base import Base, utc_now


FILE_TYPES = ("project", "estimation", "general", "link")
LINK_MIME_TYPE = "text/url"


class FileRecord(Base):
    __tablename__ = "files"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    file_name: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    original_name: Mapped[str] = mapped_column(String(1000), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size: Mapped[int] = mapped_column(BigInteger, default=0)
    # Plain column, not a foreign key: proposals are deleted independently
    proposal_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    file_type: Mapped[str] = mapped_column(String(20), nullable=False)
    link_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    uploaded_by_uid: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    uploaded_by_name: Mapped[str] = mapped_column(String(255), default="")
    uploaded_by_role: Mapped[str] = mapped_column(String(20), nullable=False)

    __table_args__ = (
        Index("idx_files_uploaded_at", "uploaded_at", postgresql_using="btree"),
    )

    @property
    def is_link(self) -> bool:
        return self.file_type == "link"
