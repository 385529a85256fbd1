"""
Tests for CSV export: rendering rules and GET /api/export-csv.

Tests cover:
- Quoting and spreadsheet text markers
- Empty optional fields
- Date range filtering (inclusive, open-ended, date-only bounds)
- Invalid bounds (400)
- Attachment headers
"""

from datetime import date, datetime, timezone

import pytest

from app.export import CSV_HEADER, export_filename, render_csv
from app.models import Submission
from app.storage import SessionLocal, create_submission
from app.utils import get_zone, parse_date_bound

IST = get_zone("Asia/Kolkata")


def insert_at(name: str, created_at: datetime, **fields) -> int:
    """Store a submission and pin its created_at (naive UTC)."""
    with SessionLocal() as db:
        row = create_submission(db, name=name, phone=fields.pop("phone", "+15551234567"), **fields)
        row.created_at = created_at
        db.commit()
        return row.id


class TestRenderCsv:

    def test_jane_doe_line(self):
        row = Submission(
            id=1,
            name="Jane Doe",
            email=None,
            phone="+15551234567",
            company=None,
            message="Hi",
            created_at=datetime(2025, 1, 15, 10, 0, 0),
        )

        lines = render_csv([row], IST).splitlines()

        assert lines[0] == CSV_HEADER
        assert lines[1] == '"Jane Doe","","\'+15551234567","","Hi","\'2025-01-15 15:30:00"'

    def test_empty_export_has_header_only(self):
        assert render_csv([], IST) == CSV_HEADER + "\n"

    def test_embedded_quotes_and_newlines_stay_in_field(self):
        row = Submission(
            name='Jane "JD" Doe',
            phone="12345",
            message="line one\nline two",
            created_at=datetime(2025, 1, 15, 10, 0, 0),
        )

        body = render_csv([row], IST)

        assert '"Jane ""JD"" Doe"' in body
        assert '"line one\nline two"' in body

    def test_deterministic(self):
        rows = [
            Submission(name="A", phone="1", created_at=datetime(2025, 1, 1)),
            Submission(name="B", phone="2", created_at=datetime(2025, 1, 2)),
        ]
        assert render_csv(rows, IST) == render_csv(rows, IST)

    def test_export_filename(self):
        assert export_filename(date(2025, 1, 15)) == "form_submissions_2025-01-15.csv"


class TestParseDateBound:

    def test_absent(self):
        assert parse_date_bound(None, IST) is None
        assert parse_date_bound("  ", IST) is None

    def test_date_only_start_and_end(self):
        # Midnight IST is 18:30 UTC on the previous day
        assert parse_date_bound("2025-01-15", IST) == datetime(2025, 1, 14, 18, 30)
        assert parse_date_bound("2025-01-15", IST, end=True) == datetime(2025, 1, 15, 18, 29, 59, 999999)

    def test_aware_datetime(self):
        assert parse_date_bound("2025-01-15T10:00:00Z", IST) == datetime(2025, 1, 15, 10, 0)

    def test_naive_datetime_uses_zone(self):
        assert parse_date_bound("2025-01-15T15:30:00", IST) == datetime(2025, 1, 15, 10, 0)

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_date_bound("15/01/2025", IST)

    @pytest.mark.parametrize("value", ["0001-01-01", "0001-01-01T00:00:00+05:30"])
    def test_out_of_utc_range(self, value):
        with pytest.raises(OverflowError):
            parse_date_bound(value, IST)


class TestExportEndpoint:

    def test_headers(self, client):
        response = client.get("/api/export-csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        today = datetime.now(timezone.utc).date().isoformat()
        assert response.headers["content-disposition"] == (
            f'attachment; filename="form_submissions_{today}.csv"'
        )
        assert response.text == CSV_HEADER + "\n"

    def test_exports_all_rows_newest_first(self, client):
        insert_at("Old", datetime(2025, 1, 1, 8, 0))
        insert_at("New", datetime(2025, 1, 3, 8, 0))

        lines = client.get("/api/export-csv").text.splitlines()

        assert len(lines) == 3
        assert lines[1].startswith('"New"')
        assert lines[2].startswith('"Old"')

    def test_date_range_is_inclusive(self, client):
        insert_at("Before", datetime(2025, 1, 1, 9, 59, 59))
        insert_at("AtStart", datetime(2025, 1, 1, 10, 0, 0))
        insert_at("Middle", datetime(2025, 1, 2, 12, 0, 0))
        insert_at("AtEnd", datetime(2025, 1, 3, 10, 0, 0))
        insert_at("After", datetime(2025, 1, 3, 10, 0, 1))

        response = client.get(
            "/api/export-csv",
            params={"startDate": "2025-01-01T10:00:00Z", "endDate": "2025-01-03T10:00:00Z"},
        )

        assert response.status_code == 200
        names = [line.split(",")[0].strip('"') for line in response.text.splitlines()[1:]]
        assert names == ["AtEnd", "Middle", "AtStart"]

    def test_date_only_end_covers_whole_day(self, client):
        # 2025-01-15 23:00 IST
        insert_at("LateEvening", datetime(2025, 1, 15, 17, 30))
        # 2025-01-16 00:30 IST
        insert_at("NextDay", datetime(2025, 1, 15, 19, 0))

        response = client.get(
            "/api/export-csv",
            params={"startDate": "2025-01-15", "endDate": "2025-01-15"},
        )

        names = [line.split(",")[0].strip('"') for line in response.text.splitlines()[1:]]
        assert names == ["LateEvening"]

    def test_open_ended_ranges(self, client):
        insert_at("Jan", datetime(2025, 1, 10))
        insert_at("Feb", datetime(2025, 2, 10))

        since = client.get("/api/export-csv", params={"startDate": "2025-02-01"}).text
        until = client.get("/api/export-csv", params={"endDate": "2025-01-31"}).text

        assert '"Feb"' in since and '"Jan"' not in since
        assert '"Jan"' in until and '"Feb"' not in until

    def test_invalid_date_rejected(self, client):
        response = client.get("/api/export-csv", params={"startDate": "yesterday"})

        assert response.status_code == 400
        assert response.json()["errors"] == {"startDate": "Invalid ISO-8601 date"}

    @pytest.mark.parametrize("value", ["0001-01-01", "0001-01-01T00:00:00+05:30"])
    def test_out_of_range_date_rejected(self, client, value):
        response = client.get("/api/export-csv", params={"startDate": value})

        assert response.status_code == 400
        assert response.json()["errors"] == {"startDate": "Invalid ISO-8601 date"}

    def test_reversed_range_rejected(self, client):
        response = client.get(
            "/api/export-csv",
            params={"startDate": "2025-02-01", "endDate": "2025-01-01"},
        )

        assert response.status_code == 400
        assert "endDate" in response.json()["errors"]
