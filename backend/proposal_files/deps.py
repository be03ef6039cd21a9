"""Dependency providers wiring services to their stores.

Routes depend on the service providers only. Tests replace the store
providers through `app.dependency_overrides`.
"""
from functools import lru_cache
from fastapi import Depends

from proposal_files.services.audit_log import AuditLog
from proposal_files.services.deletion import DeletionCoordinator
from proposal_files.services.file_queries import FileQueries
from proposal_files.services.file_storage import LocalBlobStore
from proposal_files.services.links import LinkBatchWriter
from proposal_files.services.stores import (
    AuditSink,
    BlobStore,
    MetadataIndex,
    ParentEntityStore,
    SqlAuditSink,
    SqlMetadataIndex,
    SqlProposalStore,
)
from proposal_files.services.uploads import UploadCoordinator


def get_metadata_index() -> MetadataIndex:
    return SqlMetadataIndex()


@lru_cache
def get_blob_store() -> BlobStore:
    return LocalBlobStore()


def get_parent_store() -> ParentEntityStore:
    return SqlProposalStore()


def get_audit_sink() -> AuditSink:
    return SqlAuditSink()


def get_audit_log(sink: AuditSink = Depends(get_audit_sink)) -> AuditLog:
    return AuditLog(sink)


def get_file_queries(
    index: MetadataIndex = Depends(get_metadata_index),
    parents: ParentEntityStore = Depends(get_parent_store),
) -> FileQueries:
    return FileQueries(index, parents)


def get_upload_coordinator(
    index: MetadataIndex = Depends(get_metadata_index),
    blobs: BlobStore = Depends(get_blob_store),
    parents: ParentEntityStore = Depends(get_parent_store),
    audit: AuditLog = Depends(get_audit_log),
) -> UploadCoordinator:
    return UploadCoordinator(index, blobs, parents, audit)


def get_link_writer(
    index: MetadataIndex = Depends(get_metadata_index),
    parents: ParentEntityStore = Depends(get_parent_store),
) -> LinkBatchWriter:
    return LinkBatchWriter(index, parents)


def get_deletion_coordinator(
    index: MetadataIndex = Depends(get_metadata_index),
    blobs: BlobStore = Depends(get_blob_store),
    audit: AuditLog = Depends(get_audit_log),
) -> DeletionCoordinator:
    return DeletionCoordinator(index, blobs, audit)
