import pytest
from httpx import ASGITransport, AsyncClient
from starlette.datastructures import UploadFile

from proposal_files.deps import (
    get_audit_sink,
    get_blob_store,
    get_metadata_index,
    get_parent_store,
    get_upload_coordinator,
)
from proposal_files.main import app
from proposal_files.services.audit_log import AuditLog
from proposal_files.services.uploads import UploadCoordinator
from tests.fakes import make_file


def _headers(uid: str, role: str, name: str = "Tester") -> dict[str, str]:
    return {"X-User-Uid": uid, "X-User-Role": role, "X-User-Name": name}


BDM = _headers("u1", "bdm")
DIRECTOR = _headers("u-dir", "director")


@pytest.fixture
def client(index, blobs, parents, audit_sink):
    app.dependency_overrides[get_metadata_index] = lambda: index
    app.dependency_overrides[get_blob_store] = lambda: blobs
    app.dependency_overrides[get_parent_store] = lambda: parents
    app.dependency_overrides[get_audit_sink] = lambda: audit_sink
    yield AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    app.dependency_overrides.clear()


def _add(index, **kwargs):
    record = make_file(**kwargs)
    index.records[str(record.id)] = record
    return record


@pytest.mark.asyncio
async def test_requires_identity(client):
    resp = await client.get("/api/files")
    assert resp.status_code == 401
    assert resp.json()["success"] is False
    assert resp.json()["code"] == "UNAUTHORIZED"

    resp = await client.get("/api/files", headers=_headers("u1", "intern"))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_unsupported_method(client):
    resp = await client.put("/api/files", headers=DIRECTOR)
    assert resp.status_code == 405
    assert resp.json() == {"success": False, "error": "Method PUT not allowed.", "code": "METHOD_NOT_ALLOWED"}


@pytest.mark.asyncio
async def test_list_for_bdm_is_isolated_and_camel_cased(client, index):
    mine = _add(index, proposal_id="p1", uploaded_by_uid="u1")
    _add(index, proposal_id="p2")

    resp = await client.get("/api/files", headers=BDM)

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert [f["id"] for f in body["data"]] == [str(mine.id)]
    item = body["data"][0]
    assert item["proposalId"] == "p1"
    assert item["uploadedByUid"] == "u1"
    assert (item["canView"], item["canDownload"], item["canDelete"]) == (True, True, True)


@pytest.mark.asyncio
async def test_get_single_file(client, index):
    record = _add(index, proposal_id="p2", file_type="estimation")

    resp = await client.get("/api/files", params={"fileId": str(record.id)}, headers=BDM)
    assert resp.status_code == 403

    resp = await client.get("/api/files", params={"fileId": str(record.id)}, headers=DIRECTOR)
    assert resp.status_code == 200
    assert resp.json()["data"]["fileType"] == "estimation"

    resp = await client.get("/api/files", params={"fileId": "nope"}, headers=DIRECTOR)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_for_foreign_proposal_is_forbidden_for_bdm(client):
    resp = await client.get("/api/files", params={"proposalId": "p2"}, headers=BDM)
    assert resp.status_code == 403
    assert resp.json()["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_add_links(client, index):
    payload = {
        "proposalId": "p1",
        "links": [
            {"url": "https://drive.test/a", "title": "Survey"},
            {"title": "missing url"},
        ],
    }
    resp = await client.post("/api/files", json=payload, headers=BDM)

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "1 link(s) added successfully."
    assert body["data"][0]["fileType"] == "link"
    assert body["data"][0]["fileName"] is None
    assert len(index.records) == 1


@pytest.mark.asyncio
async def test_add_links_validation(client):
    resp = await client.post("/api/files", json={"links": []}, headers=BDM)
    assert resp.status_code == 400
    assert resp.json()["code"] == "NO_LINKS_PROVIDED"

    resp = await client.post(
        "/api/files", content=b"{not json", headers={**BDM, "Content-Type": "application/json"}
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_REQUEST_BODY"


@pytest.mark.asyncio
async def test_upload_files(client, index, blobs):
    files = [
        ("files", ("a.pdf", b"%PDF-a", "application/pdf")),
        ("files", ("b.png", b"\x89PNG", "image/png")),
    ]
    resp = await client.post("/api/files", files=files, data={"proposalId": "p1"}, headers=BDM)

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "2 file(s) uploaded successfully."
    assert {f["originalName"] for f in body["data"]} == {"a.pdf", "b.png"}
    assert all(f["fileType"] == "project" for f in body["data"])
    assert len(index.records) == 2
    assert len(blobs.blobs) == 2


@pytest.mark.asyncio
async def test_upload_partial_failure_reports_created_records(client, blobs):
    blobs.fail_save_for.add("b.pdf")
    files = [
        ("files", ("a.pdf", b"a", "application/pdf")),
        ("files", ("b.pdf", b"b", "application/pdf")),
    ]
    resp = await client.post("/api/files", files=files, headers=DIRECTOR)

    assert resp.status_code == 201
    body = resp.json()
    assert len(body["data"]) == 1
    assert body["message"] == "1 of 2 file(s) uploaded. Failed: b.pdf."


@pytest.mark.asyncio
async def test_upload_errors(client):
    too_many = [("files", (f"{i}.pdf", b"x", "application/pdf")) for i in range(11)]
    resp = await client.post("/api/files", files=too_many, headers=DIRECTOR)
    assert resp.status_code == 413

    bad_type = [("files", ("run.sh", b"#!", "text/x-shellscript"))]
    resp = await client.post("/api/files", files=bad_type, headers=DIRECTOR)
    assert resp.status_code == 415

    resp = await client.post(
        "/api/files", files=[("files", ("e.xlsx", b"x", "application/vnd.ms-excel"))],
        data={"fileType": "estimation"}, headers=DIRECTOR,
    )
    assert resp.status_code == 403

    resp = await client.post(
        "/api/files", files={"other": ("x.txt", b"x")}, data={"proposalId": "p1"}, headers=DIRECTOR,
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "MISSING_FILES"


@pytest.mark.asyncio
async def test_delete(client, index, blobs, audit_sink):
    record = _add(index, uploaded_by_uid="u2")
    blobs.blobs[record.file_name] = b"x"

    resp = await client.delete("/api/files", params={"id": str(record.id)}, headers=BDM)
    assert resp.status_code == 403

    resp = await client.delete("/api/files", params={"id": str(record.id)}, headers=DIRECTOR)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "File deleted successfully."}
    assert [a.type for a in audit_sink.activities] == ["file_deleted"]

    resp = await client.delete("/api/files", params={"id": str(record.id)}, headers=DIRECTOR)
    assert resp.status_code == 404

    resp = await client.delete("/api/files", headers=DIRECTOR)
    assert resp.status_code == 400


@pytest.fixture
def body_reads(monkeypatch):
    reads = []
    original = UploadFile.read

    async def counting_read(self, size: int = -1) -> bytes:
        data = await original(self, size)
        reads.append(len(data))
        return data

    monkeypatch.setattr(UploadFile, "read", counting_read)
    return reads


@pytest.mark.asyncio
async def test_too_many_files_rejected_without_reading_bodies(client, body_reads, index):
    files = [("files", (f"{i}.pdf", b"x" * 100_000, "application/pdf")) for i in range(11)]
    resp = await client.post("/api/files", files=files, headers=DIRECTOR)

    assert resp.status_code == 413
    assert resp.json()["code"] == "TOO_MANY_FILES"
    assert body_reads == []
    assert index.records == {}


@pytest.mark.asyncio
async def test_oversized_file_rejected_without_reading_bodies(
    client, body_reads, index, blobs, parents, audit_sink
):
    app.dependency_overrides[get_upload_coordinator] = lambda: UploadCoordinator(
        index, blobs, parents, AuditLog(audit_sink), max_file_size=1024,
    )
    files = [
        ("files", ("small.pdf", b"x" * 10, "application/pdf")),
        ("files", ("big.pdf", b"x" * 4096, "application/pdf")),
    ]
    resp = await client.post("/api/files", files=files, headers=DIRECTOR)

    assert resp.status_code == 413
    assert resp.json()["code"] == "FILE_TOO_LARGE"
    assert body_reads == []
    assert blobs.blobs == {}


@pytest.mark.asyncio
async def test_upload_with_dot_proposal_id_is_a_bad_request(client, blobs):
    files = [("files", ("a.pdf", b"x", "application/pdf"))]
    resp = await client.post("/api/files", files=files, data={"proposalId": ".."}, headers=DIRECTOR)

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_REQUEST_BODY"
    assert blobs.blobs == {}


@pytest.mark.asyncio
async def test_blank_link_proposal_id_is_stored_as_null(client, index):
    payload = {"proposalId": "", "links": [{"url": "https://drive.test/x"}]}
    resp = await client.post("/api/files", json=payload, headers=DIRECTOR)

    assert resp.status_code == 201
    assert resp.json()["data"][0]["proposalId"] is None
    (record,) = index.records.values()
    assert record.proposal_id is None
    assert index.activities[0].proposal_id is None
