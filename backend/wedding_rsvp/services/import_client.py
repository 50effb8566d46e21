"""
Client for pushing guest spreadsheets to the admin import API.

CSV uploads are split into small chunks (10 rows by default) and submitted
one request at a time so that no single request runs long. The whole upload
shares one deadline; when it runs out, or any chunk comes back with a non-2xx
status, remaining chunks are not sent. Chunks that were already accepted stay
saved on the server.
"""
import json
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import httpx

from wedding_rsvp.core.config import settings
from wedding_rsvp.core.errors import ImportFormatError, ImportRequestError, ImportTimeoutError
from wedding_rsvp.services.record_parser import parse_records

logger = logging.getLogger(__name__)

UPLOAD_BATCH_PATH = "/api/admin/upload-batch"
IMPORT_TEXT_PATH = "/api/admin/import-text"

ProgressCallback = Callable[[int], None]


def chunk_records(records: List[Dict[str, str]], size: int) -> List[List[Dict[str, str]]]:
    """Split records into ceil(len/size) consecutive chunks"""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [records[i:i + size] for i in range(0, len(records), size)]


@dataclass
class ImportSummary:
    total_processed: int = 0  # guests created
    total_households: int = 0  # households created
    duplicates: int = 0
    invalid: int = 0
    chunks_sent: int = 0
    errors: List[str] = field(default_factory=list)
    results: List[dict] = field(default_factory=list)
    processing_time: Optional[str] = None

    def add(self, payload: dict) -> None:
        processed = payload.get("processed") or {}
        skipped = payload.get("skipped") or {}
        self.total_processed += processed.get("guests", 0)
        self.total_households += processed.get("households", 0)
        self.duplicates += skipped.get("duplicates", 0)
        self.invalid += skipped.get("invalid", 0)
        self.errors.extend(payload.get("errors") or [])
        self.results.extend(payload.get("results") or [])
        self.processing_time = payload.get("processingTime", self.processing_time)

    @property
    def failed_rows(self) -> List[dict]:
        return [r for r in self.results if not r.get("success")]


class GuestImportClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        batch_size: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url or settings.API_BASE_URL
        self.batch_size = batch_size or settings.IMPORT_BATCH_SIZE
        self.timeout = timeout or settings.IMPORT_TIMEOUT_SECONDS
        self._client = httpx.Client(base_url=self.base_url, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _remaining(self, deadline: float, chunks_sent: int) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ImportTimeoutError(self.timeout, chunks_sent)
        return remaining

    def _post(self, path: str, deadline: float, chunks_sent: int, chunk_index: Optional[int] = None, **kwargs) -> dict:
        try:
            response = self._client.post(path, timeout=self._remaining(deadline, chunks_sent), **kwargs)
        except httpx.TimeoutException:
            raise ImportTimeoutError(self.timeout, chunks_sent)

        if response.is_error:
            try:
                body = response.json()
                message = body.get("message") or body.get("error") or body.get("detail") or response.text
            except ValueError:
                message = response.text
            raise ImportRequestError(response.status_code, str(message), chunk_index)

        return response.json()

    def upload_records(self, records: List[Dict[str, str]], on_progress: Optional[ProgressCallback] = None) -> ImportSummary:
        """Submit parsed records chunk by chunk to the batch endpoint"""
        if not records:
            raise ImportFormatError("No guest rows found below the header row", error="No valid records")

        chunks = chunk_records(records, self.batch_size)
        summary = ImportSummary()
        deadline = time.monotonic() + self.timeout

        logger.info(f"Uploading {len(records)} records in {len(chunks)} chunks of up to {self.batch_size}")
        if on_progress:
            on_progress(0)

        for index, chunk in enumerate(chunks):
            payload = json.dumps({"records": chunk})
            body = self._post(
                UPLOAD_BATCH_PATH,
                deadline,
                summary.chunks_sent,
                chunk_index=index,
                files={"data": ("batch.json", payload, "application/json")},
            )
            summary.add(body)
            summary.chunks_sent += 1
            logger.info(
                f"Chunk {index + 1}/{len(chunks)}: {body.get('processed', {}).get('guests', 0)} guests created"
            )
            if on_progress:
                on_progress(math.floor(summary.chunks_sent * 100 / len(chunks)))

        return summary

    def upload_csv(self, text: str, on_progress: Optional[ProgressCallback] = None) -> ImportSummary:
        """Parse CSV text locally and upload it in chunks"""
        return self.upload_records(parse_records(text), on_progress=on_progress)

    def import_text(self, text: str) -> ImportSummary:
        """Send pasted spreadsheet text as a single batch"""
        records = parse_records(text)
        deadline = time.monotonic() + self.timeout
        summary = ImportSummary()
        summary.add(self._post(IMPORT_TEXT_PATH, deadline, 0, json={"records": records}))
        summary.chunks_sent = 1
        return summary
