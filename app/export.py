"""
CSV export of form submissions.

Every field is quoted. Phone and date values carry a leading single quote
so spreadsheet applications keep them as literal text instead of
reformatting '+' prefixed numbers or re-localizing the date.
"""

import csv
import io
import logging
from datetime import date, datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.storage import get_submissions_between
from app.utils import render_in_zone

logger = logging.getLogger(__name__)

CSV_HEADER = "Name,Email,Phone,Company,Message,Created At"
TEXT_MARKER = "'"


def _as_text(value: Optional[str]) -> str:
    return f"{TEXT_MARKER}{value}" if value else ""


def render_row(row, zone: ZoneInfo) -> list:
    created = render_in_zone(row.created_at, zone) if row.created_at else None
    return [
        row.name or "",
        row.email or "",
        _as_text(row.phone),
        row.company or "",
        row.message or "",
        _as_text(created),
    ]


def render_csv(rows: Iterable, zone: ZoneInfo) -> str:
    """Render submissions as CSV text: header line, then one quoted line per row."""
    buffer = io.StringIO()
    buffer.write(CSV_HEADER + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow(render_row(row, zone))
    return buffer.getvalue()


def export_csv(
    db: Session,
    zone: ZoneInfo,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> str:
    """
    Export submissions created within [start, end] as CSV.

    Raises:
        PersistenceError: If the submissions could not be read
    """
    rows = get_submissions_between(db, start=start, end=end)
    logger.info(f"Exporting {len(rows)} submissions to CSV")
    return render_csv(rows, zone)


def export_filename(today: date) -> str:
    return f"form_submissions_{today.isoformat()}.csv"
