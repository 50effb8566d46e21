"""
Command line guest import.

    wedding-import guests.csv --url http://localhost:8000
    wedding-import pasted.txt --paste
"""
import argparse
import logging
import sys
from pathlib import Path

from wedding_rsvp.core.config import settings
from wedding_rsvp.core.errors import ImportClientError, ImportFormatError
from wedding_rsvp.core.logging import setup_logging
from wedding_rsvp.services.import_client import GuestImportClient, ImportSummary
from wedding_rsvp.services.record_parser import decode_upload

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import wedding guests from a CSV or pasted spreadsheet file")
    parser.add_argument("file", type=Path, help="CSV file (or tab-delimited text with --paste)")
    parser.add_argument("--url", default=settings.API_BASE_URL, help="API base URL")
    parser.add_argument("--paste", action="store_true", help="Send the file as one pasted-text import")
    parser.add_argument("--batch-size", type=int, default=settings.IMPORT_BATCH_SIZE, help="Rows per request")
    parser.add_argument("--timeout", type=float, default=settings.IMPORT_TIMEOUT_SECONDS,
                        help="Seconds allowed for the whole import")
    return parser


def print_summary(summary: ImportSummary) -> None:
    print(f"Created {summary.total_processed} guests across {summary.total_households} new households")
    if summary.duplicates:
        print(f"Skipped {summary.duplicates} duplicate guests")
    if summary.invalid:
        print(f"Skipped {summary.invalid} rows without a name or household")
    for row in summary.failed_rows:
        if row.get("error") != "Duplicate guest":
            print(f"  ! {row.get('name')} ({row.get('householdName')}): {row.get('error')}")
    for error in summary.errors:
        print(f"  ! {error}")
    if summary.processing_time:
        print(f"Last request took {summary.processing_time}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        text = decode_upload(args.file.read_bytes())
        with GuestImportClient(base_url=args.url, batch_size=args.batch_size, timeout=args.timeout) as client:
            if args.paste:
                summary = client.import_text(text)
            else:
                summary = client.upload_csv(text, on_progress=lambda pct: print(f"\rUploading... {pct}%", end=""))
                print()
    except OSError as e:
        print(f"Could not read {args.file}: {e}", file=sys.stderr)
        return 1
    except ImportFormatError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except ImportClientError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
