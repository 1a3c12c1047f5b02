"""
Mail Service Adapter

Sends the rendered sign-off PDF as an e-mail attachment.

Transports:
- smtp: any SMTP relay (STARTTLS on 587, implicit TLS on 465)
- gmail: Gmail API, see services.gmail
- dry_run: writes .eml files to a debug folder instead of sending
"""

import logging
import re
import smtplib
import time
from dataclasses import dataclass, field, replace
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from pathlib import Path
from typing import List, Optional

from ..config_loader import config
from ..errors import DispatchFailure

logger = logging.getLogger(__name__)


@dataclass
class OutgoingMail:
    """Data object for one outgoing sign-off e-mail."""
    from_address: str
    to: List[str]
    subject: str
    body: str
    attachment_name: str
    attachment: bytes
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)

    @property
    def all_recipients(self) -> List[str]:
        return list(self.to) + list(self.cc) + list(self.bcc)


def build_mime_message(mail: OutgoingMail) -> EmailMessage:
    """
    Build the MIME message with the PDF attached.

    The Bcc header is included; smtplib and the Gmail API both strip it
    before delivery and use it for the envelope.
    """
    msg = EmailMessage()
    if mail.from_address:
        msg["From"] = mail.from_address
    msg["To"] = ", ".join(mail.to)
    if mail.cc:
        msg["Cc"] = ", ".join(mail.cc)
    if mail.bcc:
        msg["Bcc"] = ", ".join(mail.bcc)
    msg["Subject"] = mail.subject
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid(domain=_sender_domain(mail.from_address))

    msg.set_content(mail.body)
    msg.add_attachment(
        mail.attachment,
        maintype="application",
        subtype="pdf",
        filename=mail.attachment_name
    )
    return msg


def _sender_domain(address: str) -> Optional[str]:
    match = re.search(r"@([\w.-]+)", address or "")
    return match.group(1) if match else None


class SMTPMailer:
    """
    SMTP transport configured from environment variables.

    Mirrors the usual relay setup: plain connection upgraded with STARTTLS,
    or implicit TLS when the port is 465.
    """

    name = "smtp"

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: Optional[bool] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize SMTP transport.

        Args:
            host: SMTP server (defaults to $SMTP_HOST)
            port: SMTP port (defaults to $SMTP_PORT or 587)
            username: Login user (defaults to $SMTP_USER)
            password: Login password (defaults to $SMTP_PASS)
            starttls: Upgrade plain connections with STARTTLS
            timeout: Socket timeout in seconds
        """
        smtp_config = config.get_section('mail').get('smtp', {}) or {}

        self.host = host or config.get_env('mail.smtp.host_env')
        self.port = int(port or config.get_env('mail.smtp.port_env') or smtp_config.get('port_default', 587))
        self.username = username or config.get_env('mail.smtp.user_env')
        self.password = password or config.get_env('mail.smtp.password_env')
        self.starttls = smtp_config.get('starttls', True) if starttls is None else starttls
        self.timeout = timeout or smtp_config.get('timeout', 30)

    def send(self, mail: OutgoingMail) -> str:
        """
        Deliver a message.

        Args:
            mail: OutgoingMail to send

        Returns:
            Message-ID of the sent message

        Raises:
            DispatchFailure: If the relay is not configured or rejects the message
        """
        if not self.host:
            raise DispatchFailure("SMTP host not configured")

        if not mail.from_address:
            mail = replace(mail, from_address=self.username or "")
        if not mail.from_address:
            raise DispatchFailure("No sender address configured")

        msg = build_mime_message(mail)

        logger.info(
            f"Sending via SMTP {self.host}:{self.port} to {len(mail.all_recipients)} recipient(s)"
        )

        try:
            if self.port == 465:
                client = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)

            with client:
                if self.port != 465 and self.starttls:
                    client.starttls()
                if self.username:
                    client.login(self.username, self.password or "")
                refused = client.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery failed: {e}")
            raise DispatchFailure(f"SMTP delivery failed: {e}") from e

        if refused:
            logger.warning(f"SMTP server refused some recipients: {sorted(refused)}")

        logger.info(f"SUCCESS: Sent {msg['Message-ID']}")
        return msg["Message-ID"]


class DryRunMailer:
    """
    Saves messages as .eml files instead of sending them.

    Useful for local development and for inspecting the rendered PDF.
    """

    name = "dry_run"

    def __init__(self, output_dir: Optional[str] = None):
        self.output_dir = Path(output_dir or config.get('mail.dry_run.output_dir', './logs/mail_debug'))
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Dry-run mail enabled. Messages will be saved to: {self.output_dir}")

    def send(self, mail: OutgoingMail) -> str:
        """
        Write the message to the debug folder.

        Returns:
            Path of the saved .eml file

        Raises:
            DispatchFailure: If the file cannot be written
        """
        msg = build_mime_message(mail)

        timestamp = time.strftime("%Y%m%d_%H%M%S")
        slug = re.sub(r"[^A-Za-z0-9_-]+", "-", mail.subject).strip("-")[:60] or "signoff"
        path = self.output_dir / f"{timestamp}_{slug}.eml"

        try:
            path.write_bytes(msg.as_bytes())
        except OSError as e:
            logger.error(f"[DRY-RUN] Failed to save message: {e}")
            raise DispatchFailure(f"Dry-run save failed: {e}") from e

        logger.info(f"[DRY-RUN] Saved message for {', '.join(mail.to)} -> {path}")
        return str(path)


def create_mailer(transport: Optional[str] = None):
    """
    Build the configured mail transport.

    Args:
        transport: 'smtp', 'gmail' or 'dry_run'. If None, uses config value.

    Returns:
        Object with a send(OutgoingMail) -> str method
    """
    transport = (transport or config.get('mail.transport', 'smtp')).lower()

    if transport == "smtp":
        return SMTPMailer()
    if transport == "dry_run":
        return DryRunMailer()
    if transport == "gmail":
        from .gmail import GmailMailer
        return GmailMailer()

    raise ValueError(f"Unknown mail transport: {transport}")
