import uuid

import pytest

from proposal_files.errors import ForbiddenError, NotFoundError
from proposal_files.services.actors import Actor, Role
from proposal_files.services.file_queries import FileQueries
from tests.fakes import FakeMetadataIndex, FakeParentStore, make_file, make_proposal


def _add(index: FakeMetadataIndex, **kwargs):
    record = make_file(**kwargs)
    index.records[str(record.id)] = record
    return record


@pytest.fixture
def queries(index, parents) -> FileQueries:
    return FileQueries(index, parents, limit=500, parent_batch_size=30)


@pytest.mark.asyncio
async def test_get_file_not_found(queries, director):
    with pytest.raises(NotFoundError):
        await queries.get_file(str(uuid.uuid4()), director)


@pytest.mark.asyncio
async def test_get_file_forbidden_for_foreign_bdm(queries, index, bdm):
    record = _add(index, proposal_id="p2")
    with pytest.raises(ForbiddenError):
        await queries.get_file(str(record.id), bdm)


@pytest.mark.asyncio
async def test_get_file_with_flags(queries, index, bdm):
    record = _add(index, file_type="link", proposal_id="p1", uploaded_by_uid=bdm.uid)
    visible = await queries.get_file(str(record.id), bdm)
    assert visible.record is record
    assert (visible.access.can_download, visible.access.can_delete) == (False, True)


@pytest.mark.asyncio
async def test_list_for_proposal_gated_for_bdm(queries, index, bdm, other_bdm):
    _add(index, proposal_id="p1", name="mine.pdf")
    _add(index, proposal_id="p2", name="theirs.pdf")

    visible = await queries.list_for_proposal("p1", bdm)
    assert [v.record.original_name for v in visible] == ["mine.pdf"]

    with pytest.raises(ForbiddenError):
        await queries.list_for_proposal("p1", other_bdm)


@pytest.mark.asyncio
async def test_list_for_proposal_applies_embargo(queries, index, bdm, estimator):
    _add(index, proposal_id="p1", file_type="estimation", name="est.xlsx")
    assert await queries.list_for_proposal("p1", bdm) == []
    assert len(await queries.list_for_proposal("p1", estimator)) == 1


@pytest.mark.asyncio
async def test_list_accessible_for_bdm_without_proposals(index):
    store = FakeParentStore(make_proposal("p2", "u9"))
    _add(index, proposal_id="p2")
    queries = FileQueries(index, store)
    assert await queries.list_accessible(Actor(uid="lonely", role=Role.BDM)) == []
    assert index.queries == []


@pytest.mark.asyncio
async def test_list_accessible_newest_first_for_non_bdm(queries, index, coo):
    _add(index, file_type="general", name="old.pdf", age_minutes=10)
    _add(index, file_type="general", name="new.pdf", age_minutes=1)
    visible = await queries.list_accessible(coo)
    assert [v.record.original_name for v in visible] == ["new.pdf", "old.pdf"]
    assert index.queries == [None]


@pytest.mark.asyncio
async def test_source_cap_applies_before_filtering(index, parents, coo):
    for i in range(5):
        _add(index, file_type="general", name=f"{i}.pdf", age_minutes=i)
    queries = FileQueries(index, parents, limit=3)
    visible = await queries.list_accessible(coo)
    assert [v.record.original_name for v in visible] == ["0.pdf", "1.pdf", "2.pdf"]


@pytest.mark.asyncio
async def test_bdm_with_many_proposals_queries_in_chunks(index, bdm):
    proposals = [make_proposal(f"p{i}", bdm.uid) for i in range(65)]
    store = FakeParentStore(*proposals, make_proposal("foreign", "u9"))
    for i in range(65):
        _add(index, proposal_id=f"p{i}", name=f"{i}.pdf", age_minutes=i)
    _add(index, proposal_id="foreign", name="foreign.pdf", age_minutes=0)

    queries = FileQueries(index, store, limit=40, parent_batch_size=30)
    visible = await queries.list_accessible(bdm)

    assert [len(q) for q in index.queries] == [30, 30, 5]
    assert [v.record.original_name for v in visible] == [f"{i}.pdf" for i in range(40)]
