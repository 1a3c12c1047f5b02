"""
Submission Storage

Keeps an on-disk copy of every submission:

    <out_dir>/
    └── <submission id>/
        ├── submission.json    # raw request body
        └── osd-signoff.pdf    # rendered document

Saving is optional; failures are logged and never fail the request.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from ..config_loader import config

logger = logging.getLogger(__name__)


class SubmissionStorage:
    """Writes raw payloads and rendered PDFs keyed by submission id."""

    def __init__(self, out_dir: Optional[str] = None, enabled: Optional[bool] = None):
        """
        Initialize storage.

        Args:
            out_dir: Root folder (defaults to $OUT_DIR, then storage.out_dir)
            enabled: Turn saving on/off. If None, uses config value.
        """
        self.enabled = config.get('storage.enabled', True) if enabled is None else enabled
        self.out_dir = Path(
            out_dir
            or config.get_env('storage.out_dir_env')
            or config.get('storage.out_dir', './submissions')
        )
        self.payload_filename = config.get('storage.payload_filename', 'submission.json')
        self.pdf_filename = config.get('mail.attachment_name', 'osd-signoff.pdf')

        if self.enabled:
            try:
                self.out_dir.mkdir(parents=True, exist_ok=True)
                logger.info(f"Submission storage enabled: {self.out_dir}")
            except OSError as e:
                logger.warning(f"Cannot create storage folder {self.out_dir}: {e}")

    def save(self, submission_id: str, payload: Any, pdf_bytes: bytes) -> Optional[Path]:
        """
        Save a submission.

        Args:
            submission_id: Generated submission id (folder name)
            payload: Raw JSON request body
            pdf_bytes: Rendered document

        Returns:
            Folder path, or None when disabled or saving failed
        """
        if not self.enabled:
            return None

        folder = self.out_dir / submission_id
        try:
            folder.mkdir(parents=True, exist_ok=True)
            (folder / self.payload_filename).write_text(
                json.dumps(payload, indent=2, ensure_ascii=False, default=str),
                encoding="utf-8"
            )
            (folder / self.pdf_filename).write_bytes(pdf_bytes)
        except (OSError, TypeError, ValueError) as e:
            # Saving is optional; don't fail the request for this
            logger.warning(f"Save-to-disk warning for {submission_id}: {e}")
            return None

        logger.debug(f"Saved submission {submission_id} -> {folder}")
        return folder
