"""HTTP scenarios for upload, polling and owner isolation."""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_application
from tests.fakes import FailingExtractor, InstantExtractor

TERMINAL = {"completed", "failed"}
PNG_2KB = b"\x89PNG\r\n\x1a\n" + b"\x00" * 2040


def _upload(client: TestClient, headers: Dict[str, str], name: str = "grant.png", mime: str = "image/png", content: bytes = PNG_2KB):
    return client.post("/documents", files={"document": (name, content, mime)}, headers=headers)


def _wait_terminal(client: TestClient, headers: Dict[str, str], expected: int, timeout: float = 5.0) -> List[Dict[str, Any]]:
    deadline = time.monotonic() + timeout
    while True:
        items = client.get("/documents", headers=headers).json()
        if len(items) == expected and all(i["status"] in TERMINAL for i in items):
            return items
        if time.monotonic() > deadline:
            raise AssertionError(f"records not terminal in time: {items}")
        time.sleep(0.02)


@pytest.fixture()
def slow_client(settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_application(settings, extractor=InstantExtractor(delay=0.3))) as client:
        yield client


@pytest.fixture()
def failing_client(settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_application(settings, extractor=FailingExtractor(delay=0.05))) as client:
        yield client


class TestUploadAndPoll:
    def test_png_upload_completes(self, slow_client: TestClient, token_for: Callable) -> None:
        u1 = token_for("u1")

        response = _upload(slow_client, u1)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "success"
        item = body["item"]
        assert item["originalName"] == "grant.png"
        assert item["mimeType"] == "image/png"
        assert item["byteSize"] == len(PNG_2KB)
        assert item["status"] == "pending"

        immediate = slow_client.get("/documents", headers=u1).json()
        assert len(immediate) == 1
        assert immediate[0]["status"] in ("pending", "processing")
        assert immediate[0]["extractedText"] == ""
        assert immediate[0]["isProcessed"] is False

        (final,) = _wait_terminal(slow_client, u1, expected=1)
        assert final["id"] == item["id"]
        assert final["status"] == "completed"
        assert final["isProcessed"] is True
        assert final["extractedText"]
        assert final["derivedFields"]["ownerName"] == "Tan Ah Kow"

    def test_get_single_record(self, slow_client: TestClient, token_for: Callable) -> None:
        u1 = token_for("u1")
        document_id = _upload(slow_client, u1).json()["item"]["id"]

        response = slow_client.get(f"/documents/{document_id}", headers=u1)

        assert response.status_code == 200
        assert response.json()["id"] == document_id
        assert "filePath" not in response.json()

    def test_response_never_waits_for_extraction(self, settings: Settings, token_for: Callable) -> None:
        with TestClient(create_application(settings, extractor=InstantExtractor(delay=1.5))) as client:
            started = time.monotonic()
            response = _upload(client, token_for("u1"))
            elapsed = time.monotonic() - started

        assert response.status_code == 201
        assert elapsed < 1.0


class TestRejectedUploads:
    def test_zip_rejected_without_record(self, slow_client: TestClient, token_for: Callable) -> None:
        u1 = token_for("u1")

        response = _upload(slow_client, u1, name="bundle.zip", mime="application/zip", content=b"PK\x03\x04")

        assert response.status_code == 415
        assert response.json()["status"] == "error"
        assert "Only JPEG, PNG, WEBP and PDF" in response.json()["message"]
        assert slow_client.get("/documents", headers=u1).json() == []

    def test_renamed_executable_rejected(self, slow_client: TestClient, token_for: Callable) -> None:
        response = _upload(slow_client, token_for("u1"), name="payload.exe", mime="image/png")
        assert response.status_code == 415

    def test_eleven_mib_rejected_without_record(self, slow_client: TestClient, token_for: Callable) -> None:
        u1 = token_for("u1")

        response = _upload(slow_client, u1, content=b"\x00" * (11 * 1024 * 1024))

        assert response.status_code == 413
        assert response.json() == {"status": "error", "message": "File size exceeds 10 MB"}
        assert slow_client.get("/documents", headers=u1).json() == []

    def test_oversized_bad_type_is_rejected_on_size(self, slow_client: TestClient, token_for: Callable) -> None:
        u1 = token_for("u1")

        response = _upload(slow_client, u1, name="bundle.zip", mime="application/zip", content=b"\x00" * (11 * 1024 * 1024))

        assert response.status_code == 413
        assert slow_client.get("/documents", headers=u1).json() == []

    def test_missing_file(self, slow_client: TestClient, token_for: Callable) -> None:
        u1 = token_for("u1")

        response = slow_client.post("/documents", data={"note": "forgot the file"}, headers=u1)

        assert response.status_code == 400
        assert response.json() == {"status": "error", "message": "No file uploaded"}
        assert slow_client.get("/documents", headers=u1).json() == []

    def test_requires_token(self, slow_client: TestClient) -> None:
        response = slow_client.post("/documents", files={"document": ("grant.png", PNG_2KB, "image/png")})
        assert response.status_code == 401
        assert response.json()["status"] == "error"

    def test_rejects_bad_token(self, slow_client: TestClient) -> None:
        response = slow_client.get("/documents", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json() == {"status": "error", "message": "Token is not valid."}


class TestOwnerIsolation:
    def test_other_owner_gets_not_found(self, slow_client: TestClient, token_for: Callable) -> None:
        document_id = _upload(slow_client, token_for("u1")).json()["item"]["id"]

        response = slow_client.get(f"/documents/{document_id}", headers=token_for("u2"))

        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Document not found"}

    def test_missing_and_foreign_ids_look_the_same(self, slow_client: TestClient, token_for: Callable) -> None:
        document_id = _upload(slow_client, token_for("u1")).json()["item"]["id"]
        u2 = token_for("u2")

        foreign = slow_client.get(f"/documents/{document_id}", headers=u2)
        missing = slow_client.get("/documents/does-not-exist", headers=u2)

        assert foreign.status_code == missing.status_code == 404
        assert foreign.json() == missing.json()

    def test_lists_are_scoped(self, slow_client: TestClient, token_for: Callable) -> None:
        u1, u2 = token_for("u1"), token_for("u2")
        for headers in (u1, u2, u1, u2, u1):
            assert _upload(slow_client, headers).status_code == 201

        assert len(slow_client.get("/documents", headers=u1).json()) == 3
        assert len(slow_client.get("/documents", headers=u2).json()) == 2
        assert slow_client.get("/documents", headers=token_for("u3")).json() == []


class TestFailureAndConcurrency:
    def test_failing_extraction_is_isolated(self, failing_client: TestClient, token_for: Callable) -> None:
        u1 = token_for("u1")

        assert _upload(failing_client, u1, name="bad.png").status_code == 201
        assert _upload(failing_client, u1, name="good.png").status_code == 201

        items = {i["originalName"]: i for i in _wait_terminal(failing_client, u1, expected=2)}
        assert items["bad.png"]["status"] == "failed"
        assert items["bad.png"]["isProcessed"] is False
        assert items["bad.png"]["extractedText"].startswith("OCR processing failed")
        assert items["bad.png"]["derivedFields"] is None
        assert items["good.png"]["status"] == "completed"

    def test_concurrent_uploads_same_owner(self, slow_client: TestClient, token_for: Callable) -> None:
        u1 = token_for("u1")

        with ThreadPoolExecutor(max_workers=2) as pool:
            responses = list(pool.map(lambda name: _upload(slow_client, u1, name=name), ["one.png", "two.png"]))

        assert [r.status_code for r in responses] == [201, 201]
        ids = {r.json()["item"]["id"] for r in responses}
        assert len(ids) == 2

        items = _wait_terminal(slow_client, u1, expected=2)
        assert {i["id"] for i in items} == ids
        assert all(i["status"] == "completed" for i in items)
        created = [i["createdAt"] for i in items]
        assert created == sorted(created, reverse=True)

    def test_each_upload_processed_once(self, settings: Settings, token_for: Callable) -> None:
        extractor = InstantExtractor(delay=0.01)
        u1 = token_for("u1")
        with TestClient(create_application(settings, extractor=extractor)) as client:
            for i in range(4):
                _upload(client, u1, name=f"doc{i}.png")
            _wait_terminal(client, u1, expected=4)

        assert sorted(extractor.calls) == [f"doc{i}.png" for i in range(4)]


def test_health(slow_client: TestClient) -> None:
    assert slow_client.get("/health").json() == {"status": "OK", "store": "memory"}
