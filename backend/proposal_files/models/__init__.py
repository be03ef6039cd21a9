"""Import all models so SQLAlchemy metadata knows about them."""
from proposal_files.models.base import Base
from proposal_files.models.file_record import FileRecord
from proposal_files.models.proposal import Proposal
from proposal_files.models.activity import Activity

__all__ = ["Base", "FileRecord", "Proposal", "Activity"]
