"""
OSD Sign-Off Data Models

SQLModel definitions for the submission audit log.
Uses SQLite with WAL mode for concurrent access.
"""

from datetime import datetime, timezone
from typing import Optional
from enum import Enum

from sqlmodel import SQLModel, Field


class SubmissionStatus(str, Enum):
    """Submission processing status."""
    RECEIVED = "RECEIVED"
    RENDERED = "RENDERED"
    SENT = "SENT"
    FAILED = "FAILED"


class SubmissionRecord(SQLModel, table=True):
    """
    One sign-off submission and what happened to it.
    
    Keyed by the id returned to the client, which is also the folder
    name of the on-disk copy.
    """
    __tablename__ = "submissions"
    
    id: str = Field(primary_key=True)
    po_number: Optional[str] = Field(default=None, index=True)
    load_id: Optional[str] = None
    driver_name: Optional[str] = None
    recipients: Optional[str] = None  # comma-separated To/CC/BCC
    photo_count: int = Field(default=0)
    status: SubmissionStatus = Field(default=SubmissionStatus.RECEIVED)
    transport: Optional[str] = None
    message_ref: Optional[str] = None  # Message-ID, Gmail id or .eml path
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
