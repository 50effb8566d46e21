import csv
import logging
from typing import Dict, List, Optional

from wedding_rsvp.core.errors import ImportFormatError, MissingHeaderError

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ("Name", "Household")

def detect_delimiter(first_line: str) -> str:
    """Tab if the header row contains one (pasted from a spreadsheet), else comma"""
    return "\t" if "\t" in first_line else ","

def decode_upload(content: bytes) -> str:
    """Decode an uploaded CSV file, dropping a UTF-8 BOM if Excel added one"""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.error(f"CSV decode error: {e}")
        raise ImportFormatError("Could not read or decode CSV file. Please save it as UTF-8.",
                                error="Invalid file encoding")

def parse_records(text: str, delimiter: Optional[str] = None) -> List[Dict[str, str]]:
    """
    Turn CSV or pasted spreadsheet text into header-keyed records.

    Blank lines are ignored and the first non-blank line is the header row.
    Rows shorter than the header are padded with empty strings and longer
    rows are truncated, so a ragged row never fails the import.
    Raises MissingHeaderError when Name or Household is absent.
    """
    lines = [line for line in (text or "").splitlines() if line.strip()]
    if not lines:
        raise ImportFormatError("Input must have a header row and at least one data row",
                                error="No data provided")

    delimiter = delimiter or detect_delimiter(lines[0])
    rows = csv.reader(lines, delimiter=delimiter)

    headers = [h.strip() for h in next(rows)]
    for required in REQUIRED_HEADERS:
        if required not in headers:
            raise MissingHeaderError(required, REQUIRED_HEADERS)

    records = []
    width = len(headers)
    for values in rows:
        if len(values) < width:
            values = values + [""] * (width - len(values))
        records.append(dict(zip(headers, values[:width])))

    delimiter_name = "tab" if delimiter == "\t" else repr(delimiter)
    logger.info(f"Parsed {len(records)} records ({delimiter_name} delimited)")
    return records
