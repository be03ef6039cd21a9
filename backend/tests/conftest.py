import pytest

from proposal_files.services.actors import Actor, Role
from proposal_files.services.audit_log import AuditLog
from tests.fakes import FakeAuditSink, FakeBlobStore, FakeMetadataIndex, FakeParentStore, make_proposal


@pytest.fixture
def bdm() -> Actor:
    return Actor(uid="u1", role=Role.BDM, name="Bea Bdm")


@pytest.fixture
def other_bdm() -> Actor:
    return Actor(uid="u9", role=Role.BDM, name="Other Bdm")


@pytest.fixture
def estimator() -> Actor:
    return Actor(uid="u-est", role=Role.ESTIMATOR, name="Eli Estimator")


@pytest.fixture
def coo() -> Actor:
    return Actor(uid="u-coo", role=Role.COO, name="Cal Coo")


@pytest.fixture
def director() -> Actor:
    return Actor(uid="u-dir", role=Role.DIRECTOR, name="Dee Director")


@pytest.fixture
def index() -> FakeMetadataIndex:
    return FakeMetadataIndex()


@pytest.fixture
def blobs() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def parents() -> FakeParentStore:
    # p1 belongs to the `bdm` fixture; p2 to someone else
    return FakeParentStore(
        make_proposal("p1", "u1", status="draft"),
        make_proposal("p2", "u9", status="won"),
    )


@pytest.fixture
def audit_sink() -> FakeAuditSink:
    return FakeAuditSink()


@pytest.fixture
def audit(audit_sink) -> AuditLog:
    return AuditLog(audit_sink)
