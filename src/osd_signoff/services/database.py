"""
Database Service

Records each submission in SQLite (WAL mode) for auditing.
Uses context managers to prevent dangling locks.
"""

import logging
from typing import Optional, List
from datetime import datetime, timezone

from sqlmodel import SQLModel, Session, select, create_engine, text

from ..config_loader import config
from ..models import SubmissionRecord, SubmissionStatus

logger = logging.getLogger(__name__)


class DatabaseService:
    """
    SQLite audit log with WAL mode for concurrent access.
    
    All write operations use context managers to prevent lock issues.
    """
    
    def __init__(self, db_filename: Optional[str] = None):
        """
        Initialize database service with WAL mode enabled.
        
        Args:
            db_filename: SQLite file (defaults to database.filename)
        """
        db_filename = db_filename or config.get('database.filename', 'osd_signoff.db')
        echo_sql = config.get('database.echo_sql', False)
        
        self.engine = create_engine(
            f"sqlite:///{db_filename}",
            echo=echo_sql,
            connect_args={
                "check_same_thread": False,  # Flask serves requests from worker threads
                "timeout": 30
            }
        )
        
        logger.info(f"Database engine initialized: {db_filename}")
        
        self._create_tables()
        self._enable_wal_mode()
    
    def _enable_wal_mode(self) -> None:
        """
        Enable Write-Ahead Logging mode for concurrent access.
        
        WAL mode allows multiple readers and one writer simultaneously.
        """
        try:
            with self.engine.connect() as connection:
                connection.execute(text("PRAGMA journal_mode=WAL;"))
                connection.execute(text("PRAGMA synchronous=NORMAL;"))
                connection.commit()
            logger.info("WAL mode enabled successfully")
        except Exception as e:
            logger.error(f"Failed to enable WAL mode: {e}", exc_info=True)
            # Non-fatal - continue with default mode
    
    def _create_tables(self) -> None:
        """Create all database tables if they don't exist."""
        SQLModel.metadata.create_all(self.engine)
        logger.info("Database tables created/verified")
    
    def record_submission(
        self,
        submission_id: str,
        po_number: Optional[str] = None,
        load_id: Optional[str] = None,
        driver_name: Optional[str] = None,
        recipients: Optional[List[str]] = None,
        photo_count: int = 0
    ) -> str:
        """
        Create the audit row for a new submission.
        
        Returns:
            The submission id
        """
        with Session(self.engine) as session:
            record = SubmissionRecord(
                id=submission_id,
                po_number=po_number or None,
                load_id=load_id or None,
                driver_name=driver_name or None,
                recipients=", ".join(recipients) if recipients else None,
                photo_count=photo_count,
                status=SubmissionStatus.RECEIVED
            )
            session.add(record)
            session.commit()
        
        logger.debug(f"Recorded submission {submission_id}")
        return submission_id
    
    def update_status(
        self,
        submission_id: str,
        status: SubmissionStatus,
        transport: Optional[str] = None,
        message_ref: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> bool:
        """
        Move a submission to a new status.
        
        Returns:
            True if updated, False if the submission is unknown
        """
        with Session(self.engine) as session:
            statement = select(SubmissionRecord).where(SubmissionRecord.id == submission_id)
            record = session.exec(statement).first()
            
            if not record:
                logger.warning(f"Submission {submission_id} not found")
                return False
            
            record.status = status
            record.updated_at = datetime.now(timezone.utc)
            if transport:
                record.transport = transport
            if message_ref:
                record.message_ref = message_ref
            if error_message:
                record.error_message = error_message
            
            session.add(record)
            session.commit()
        
        logger.debug(f"Submission {submission_id} -> {status.value}")
        return True
    
    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        """Fetch one submission record."""
        with Session(self.engine) as session:
            statement = select(SubmissionRecord).where(SubmissionRecord.id == submission_id)
            return session.exec(statement).first()
    
