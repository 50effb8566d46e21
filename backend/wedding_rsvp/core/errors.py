"""Exceptions raised by the guest import pipeline.

Server-side errors (`ImportFormatError` and friends) are turned into 400
responses by the handlers registered in `wedding_rsvp.main`. Client-side
errors (`ImportClientError` and subclasses) are raised by the chunked
uploader and surfaced by the CLI.
"""
from typing import Optional


class ImportFormatError(ValueError):
    """Input could not be turned into guest records (bad header, encoding, empty batch)"""

    def __init__(self, message: str, error: str = "Invalid import data"):
        super().__init__(message)
        self.message = message
        self.error = error


class MissingHeaderError(ImportFormatError):
    def __init__(self, header: str, required: tuple):
        super().__init__(
            f'Required header "{header}" is missing. Headers must include: {", ".join(required)}',
            error="Missing required header",
        )
        self.header = header


class ImportProcessingError(Exception):
    """An import endpoint failed unexpectedly; wraps the underlying exception"""

    def __init__(self, error: str, cause: Exception):
        super().__init__(f"{error}: {cause}")
        self.error = error
        self.cause = cause

    @property
    def timed_out(self) -> bool:
        message = str(self.cause).lower()
        return isinstance(self.cause, TimeoutError) or "timed out" in message or "timeout" in message


class ImportClientError(Exception):
    """Base class for failures while submitting an import to the API"""


class ImportRequestError(ImportClientError):
    def __init__(self, status_code: int, message: str, chunk_index: Optional[int] = None):
        where = f" (chunk {chunk_index + 1})" if chunk_index is not None else ""
        super().__init__(f"Import request failed with HTTP {status_code}{where}: {message}")
        self.status_code = status_code
        self.message = message
        self.chunk_index = chunk_index


class ImportTimeoutError(ImportClientError):
    def __init__(self, timeout: float, chunks_sent: int = 0):
        super().__init__(
            f"Import timed out after {timeout:.0f} seconds "
            f"({chunks_sent} chunk(s) already saved). Please try again."
        )
        self.timeout = timeout
        self.chunks_sent = chunks_sent
