"""Activity model - append-only audit trail of file and link mutations."""
import uuid
from datetime import datetime
from sqlalchemy import String, Text, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from proposal_files.models.base import Base, utc_now


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    details: Mapped[str] = mapped_column(Text, default="")
    performed_by_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    performed_by_name: Mapped[str] = mapped_column(String(255), default="")
    performed_by_role: Mapped[str] = mapped_column(String(20), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    proposal_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("idx_activities_timestamp", "timestamp", postgresql_using="btree"),
    )
