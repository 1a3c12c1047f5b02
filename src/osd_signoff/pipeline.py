"""
OSD Sign-Off Pipeline

Coordinates one submission end to end:
1. Normalize the payload
2. Check that there is somewhere to send it
3. Render the PDF
4. Save a copy on disk (optional)
5. E-mail the PDF

Audit-log and disk-copy failures never affect the outcome.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional

from .config_loader import config
from .docuflow.composer import DocumentComposer
from .docuflow.normalizer import normalize_submission
from .errors import DispatchFailure, MissingRecipient, RenderFailure
from .models import SubmissionStatus
from .services.database import DatabaseService
from .services.mailer import OutgoingMail, create_mailer
from .services.storage import SubmissionStorage

logger = logging.getLogger(__name__)


@dataclass
class SignoffResult:
    """Outcome of a successful submission."""
    id: str
    pdf_bytes: bytes
    message: str = "PDF generated and emailed."
    message_ref: Optional[str] = None


class SignoffPipeline:
    """
    Render-and-send orchestrator.

    Stateless between submissions; safe to share across request threads
    as long as the injected services are.
    """

    def __init__(
        self,
        mailer,
        composer: Optional[DocumentComposer] = None,
        storage: Optional[SubmissionStorage] = None,
        database: Optional[DatabaseService] = None,
        default_recipient: Optional[str] = None,
        from_address: Optional[str] = None
    ):
        """
        Initialize pipeline with services.

        Args:
            mailer: Transport with send(OutgoingMail) -> str
            composer: Document composer (defaults to a configured one)
            storage: Disk-copy service, or None to skip saving
            database: Audit log, or None to skip telemetry
            default_recipient: Used when a payload has no toEmail
            from_address: Sender address
        """
        self.mailer = mailer
        self.composer = composer or DocumentComposer()
        self.storage = storage
        self.database = database
        self.default_recipient = default_recipient
        self.from_address = from_address or ""
        self.attachment_name = config.get('mail.attachment_name', 'osd-signoff.pdf')

    def _safe_db_call(self, method_name: str, *args, **kwargs):
        """
        Fire-and-forget wrapper for audit-log calls.

        Prevents database errors from affecting the submission.
        """
        if self.database is None:
            return None

        try:
            return getattr(self.database, method_name)(*args, **kwargs)
        except Exception as e:
            logger.warning(f"DB telemetry failed [{method_name}]: {e}")
            return None

    def process(self, payload: Any) -> SignoffResult:
        """
        Render a submission and e-mail it.

        Args:
            payload: Decoded JSON request body

        Returns:
            SignoffResult with the generated id and PDF bytes

        Raises:
            MalformedPayload: If payload is not a JSON object
            MissingRecipient: If no To address remains after defaulting
            RenderFailure: If the PDF could not be built
            DispatchFailure: If the e-mail could not be sent
        """
        model = normalize_submission(payload, default_recipient=self.default_recipient)

        if not model.to:
            raise MissingRecipient("No recipient email (toEmail or TO_EMAIL env).")

        submission_id = str(uuid.uuid4())
        logger.info(
            f"Processing submission {submission_id}: PO={model.po_number or '-'}, "
            f"photos={len(model.photos)}, recipients={len(model.recipients)}"
        )

        self._safe_db_call(
            'record_submission',
            submission_id,
            po_number=model.po_number,
            load_id=model.load_id,
            driver_name=model.driver_name,
            recipients=model.recipients,
            photo_count=len(model.photos)
        )

        # Step 1: Render
        try:
            pdf_bytes = self.composer.compose(model)
        except Exception as e:
            logger.error(f"Rendering failed for {submission_id}: {e}", exc_info=True)
            self._safe_db_call('update_status', submission_id, SubmissionStatus.FAILED, error_message=str(e))
            raise RenderFailure(str(e)) from e

        self._safe_db_call('update_status', submission_id, SubmissionStatus.RENDERED)

        # Step 2: Optional copy on disk
        if self.storage is not None:
            self.storage.save(submission_id, payload, pdf_bytes)

        # Step 3: E-mail
        mail = OutgoingMail(
            from_address=self.from_address,
            to=list(model.to),
            cc=list(model.cc),
            bcc=list(model.bcc),
            subject=model.subject,
            body=model.message,
            attachment_name=self.attachment_name,
            attachment=pdf_bytes
        )

        transport = getattr(self.mailer, 'name', type(self.mailer).__name__)
        try:
            message_ref = self.mailer.send(mail)
        except DispatchFailure as e:
            self._safe_db_call(
                'update_status', submission_id, SubmissionStatus.FAILED,
                transport=transport, error_message=str(e)
            )
            raise
        except Exception as e:
            logger.error(f"Dispatch failed for {submission_id}: {e}", exc_info=True)
            self._safe_db_call(
                'update_status', submission_id, SubmissionStatus.FAILED,
                transport=transport, error_message=str(e)
            )
            raise DispatchFailure(str(e)) from e

        self._safe_db_call(
            'update_status', submission_id, SubmissionStatus.SENT,
            transport=transport, message_ref=message_ref
        )

        logger.info(f"Submission {submission_id} rendered and sent via {transport}")

        return SignoffResult(id=submission_id, pdf_bytes=pdf_bytes, message_ref=message_ref)


def create_pipeline(dry_run: bool = False) -> SignoffPipeline:
    """
    Build a pipeline from configuration and environment.

    Args:
        dry_run: Save e-mails as .eml files instead of sending

    Returns:
        Configured SignoffPipeline
    """
    mailer = create_mailer("dry_run" if dry_run else None)

    database = None
    if config.get('database.enabled', True):
        try:
            database = DatabaseService()
        except Exception as e:
            logger.warning(f"Audit log unavailable, continuing without it: {e}")
            # PASS - submissions still render and send

    pipeline = SignoffPipeline(
        mailer=mailer,
        storage=SubmissionStorage(),
        database=database,
        default_recipient=config.get_env('mail.default_recipient_env'),
        from_address=config.get_env('mail.from_env')
    )

    logger.info(
        f"Pipeline initialized (transport={getattr(mailer, 'name', '?')}, "
        f"storage={pipeline.storage.enabled}, audit_log={database is not None})"
    )
    return pipeline
