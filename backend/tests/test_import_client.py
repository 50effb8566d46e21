"""Tests for the chunked guest import client.

The client talks to either a scripted httpx.MockTransport or, for the
end-to-end cases, the real app through the TestClient.
"""

import json

import httpx
import pytest

from wedding_rsvp.core.errors import ImportFormatError, ImportRequestError, ImportTimeoutError
from wedding_rsvp.services.import_client import GuestImportClient, chunk_records


def make_csv(rows: int) -> str:
    lines = ["Name,Household,Email"]
    lines += [f"Guest {i},Household {i // 4},guest{i}@example.com" for i in range(rows)]
    return "\n".join(lines) + "\n"


def ok_response(guests: int, households: int = 0, processing_time: str = "0.01 seconds") -> httpx.Response:
    return httpx.Response(200, json={
        "success": True,
        "processed": {"households": households, "guests": guests},
        "skipped": {"duplicates": 0, "invalid": 0},
        "results": [],
        "processingTime": processing_time,
    })


def batch_records(request: httpx.Request) -> list:
    """Decode the `data` part of a multipart batch request"""
    body = request.content.decode()
    start = body.index('{"records"')
    end = body.index("\r\n--", start)
    return json.loads(body[start:end])["records"]


@pytest.fixture
def app_transport(client):
    """Route client requests into the FastAPI app under test"""
    def forward(request: httpx.Request) -> httpx.Response:
        response = client.request(
            request.method,
            request.url.path,
            content=request.content,
            headers={"content-type": request.headers["content-type"]},
        )
        return httpx.Response(response.status_code, json=response.json())
    return httpx.MockTransport(forward)


class TestChunkRecords:
    def test_23_rows_make_three_chunks(self) -> None:
        chunks = chunk_records(list(range(23)), 10)

        assert [len(c) for c in chunks] == [10, 10, 3]
        assert [x for c in chunks for x in c] == list(range(23))

    def test_exact_multiple(self) -> None:
        assert [len(c) for c in chunk_records(list(range(20)), 10)] == [10, 10]

    def test_rejects_zero_size(self) -> None:
        with pytest.raises(ValueError):
            chunk_records([1], 0)


class TestUploadCsv:
    def test_submits_one_request_per_chunk_and_aggregates(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            records = batch_records(request)
            seen.append(len(records))
            return ok_response(guests=len(records), households=1, processing_time=f"0.{len(seen)}0 seconds")

        progress = []
        with GuestImportClient(base_url="http://test", transport=httpx.MockTransport(handler)) as importer:
            summary = importer.upload_csv(make_csv(23), on_progress=progress.append)

        assert seen == [10, 10, 3]
        assert summary.chunks_sent == 3
        assert summary.total_processed == 23
        assert summary.total_households == 3
        assert summary.processing_time == "0.30 seconds"
        assert progress == [0, 33, 66, 100]

    def test_posts_to_upload_batch_endpoint(self) -> None:
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            assert request.headers["content-type"].startswith("multipart/form-data")
            return ok_response(guests=1)

        with GuestImportClient(base_url="http://test", transport=httpx.MockTransport(handler)) as importer:
            importer.upload_csv(make_csv(1))

        assert paths == ["/api/admin/upload-batch"]

    def test_http_error_aborts_remaining_chunks(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 2:
                return httpx.Response(500, json={"error": "Failed to process batch", "message": "db down"})
            return ok_response(guests=10)

        with GuestImportClient(base_url="http://test", transport=httpx.MockTransport(handler)) as importer:
            with pytest.raises(ImportRequestError) as exc_info:
                importer.upload_csv(make_csv(30))

        assert len(calls) == 2
        assert exc_info.value.status_code == 500
        assert exc_info.value.chunk_index == 1
        assert "db down" in str(exc_info.value)

    def test_timeout_stops_submission(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 2:
                raise httpx.ReadTimeout("timed out", request=request)
            return ok_response(guests=10)

        with GuestImportClient(base_url="http://test", transport=httpx.MockTransport(handler), timeout=5) as importer:
            with pytest.raises(ImportTimeoutError) as exc_info:
                importer.upload_csv(make_csv(30))

        assert len(calls) == 2
        assert exc_info.value.chunks_sent == 1

    def test_exhausted_deadline_sends_nothing_more(self, monkeypatch) -> None:
        readings = [100.0, 100.0]
        monkeypatch.setattr(
            "wedding_rsvp.services.import_client.time.monotonic",
            lambda: readings.pop(0) if readings else 200.0,
        )
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return ok_response(guests=10)

        with GuestImportClient(base_url="http://test", transport=httpx.MockTransport(handler), timeout=60) as importer:
            with pytest.raises(ImportTimeoutError):
                importer.upload_csv(make_csv(20))

        assert len(calls) == 1

    def test_missing_required_header_fails_before_any_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with GuestImportClient(base_url="http://test", transport=httpx.MockTransport(handler)) as importer:
            with pytest.raises(ImportFormatError):
                importer.upload_csv("Name,Email\nAda,ada@example.com\n")

    def test_header_only_file_is_rejected(self) -> None:
        with GuestImportClient(base_url="http://test", transport=httpx.MockTransport(lambda r: ok_response(guests=0))) as importer:
            with pytest.raises(ImportFormatError):
                importer.upload_csv("Name,Household\n")


class TestAgainstApp:
    def test_chunk_totals_match_rows_created(self, app_transport, query) -> None:
        from wedding_rsvp.models.guest import Guest

        with GuestImportClient(base_url="http://test", transport=app_transport) as importer:
            summary = importer.upload_csv(make_csv(23))

        assert summary.chunks_sent == 3
        assert summary.total_processed == 23
        assert summary.total_households == 6
        assert query(lambda s: s.query(Guest).count()) == 23

    def test_reupload_creates_nothing(self, app_transport) -> None:
        with GuestImportClient(base_url="http://test", transport=app_transport) as importer:
            importer.upload_csv(make_csv(12))
            summary = importer.upload_csv(make_csv(12))

        assert summary.total_processed == 0
        assert summary.duplicates == 12
        assert len(summary.failed_rows) == 12

    def test_import_text_sends_one_batch(self, app_transport) -> None:
        text = "Name\tHousehold\tChild\nMia\tLopez\tC\nLeo\tLopez\t\n"

        with GuestImportClient(base_url="http://test", transport=app_transport) as importer:
            summary = importer.import_text(text)

        assert summary.chunks_sent == 1
        assert summary.total_processed == 2
        assert summary.total_households == 1
