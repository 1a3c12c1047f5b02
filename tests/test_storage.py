"""
Persistence Tests

Test the on-disk submission copy and the SQLite audit log.
"""

import json
import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from osd_signoff.models import SubmissionStatus
from osd_signoff.services.database import DatabaseService
from osd_signoff.services.storage import SubmissionStorage


# ─── Submission storage ──────────────────────────────────────────────────────

def test_save_writes_payload_and_pdf(tmp_path):
    storage = SubmissionStorage(out_dir=str(tmp_path), enabled=True)
    payload = {"poNumber": "PO-1", "notes": "Dented — see photo"}

    folder = storage.save("abc-123", payload, b"%PDF-1.4")

    assert folder == tmp_path / "abc-123"
    assert json.loads((folder / "submission.json").read_text(encoding="utf-8")) == payload
    assert (folder / "osd-signoff.pdf").read_bytes() == b"%PDF-1.4"


def test_disabled_storage_writes_nothing(tmp_path):
    storage = SubmissionStorage(out_dir=str(tmp_path / "out"), enabled=False)

    assert storage.save("abc-123", {}, b"%PDF") is None
    assert not (tmp_path / "out").exists()


def test_save_failure_returns_none(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a folder")
    storage = SubmissionStorage(out_dir=str(blocker), enabled=True)

    assert storage.save("abc-123", {"poNumber": "PO-1"}, b"%PDF") is None


# ─── Audit log ───────────────────────────────────────────────────────────────

@pytest.fixture
def database(tmp_path):
    return DatabaseService(db_filename=str(tmp_path / "audit.db"))


def test_record_and_fetch(database):
    database.record_submission(
        "sub-1",
        po_number="PO-1",
        load_id="BOL-77",
        driver_name="Sam Rivera",
        recipients=["ops@co.com", "lead@co.com"],
        photo_count=3
    )

    record = database.get_submission("sub-1")
    assert record.status == SubmissionStatus.RECEIVED
    assert record.po_number == "PO-1"
    assert record.recipients == "ops@co.com, lead@co.com"
    assert record.photo_count == 3


def test_empty_fields_stored_as_null(database):
    database.record_submission("sub-2", po_number="", recipients=[])

    record = database.get_submission("sub-2")
    assert record.po_number is None
    assert record.recipients is None


def test_status_transitions(database):
    database.record_submission("sub-3", po_number="PO-3")

    assert database.update_status("sub-3", SubmissionStatus.RENDERED)
    assert database.update_status(
        "sub-3", SubmissionStatus.SENT, transport="smtp", message_ref="<id@co.com>"
    )

    record = database.get_submission("sub-3")
    assert record.status == SubmissionStatus.SENT
    assert record.transport == "smtp"
    assert record.message_ref == "<id@co.com>"
    assert record.error_message is None


def test_update_unknown_submission(database):
    assert database.update_status("missing", SubmissionStatus.FAILED) is False
    assert database.get_submission("missing") is None
