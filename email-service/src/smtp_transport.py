"""
SMTP transport for the Email service.
Relays a single EmailRecord per session over STARTTLS with authentication.
"""

import logging
import smtplib
import ssl
import uuid
from dataclasses import dataclass, field
from email.errors import MessageError
from email.mime.text import MIMEText
from email.utils import formatdate
from typing import Callable, Optional, Tuple

from email_models import EmailRecord
from service_errors import TransportError


@dataclass(frozen=True)
class SmtpConfig:
    """SMTP endpoint and pre-resolved secret for the authenticated sender."""
    password: str = field(repr=False)
    host: str = 'smtp.gmail.com'
    port: int = 587
    use_tls: bool = True
    timeout: Optional[float] = None

    def credentials_for(self, sender: str) -> Tuple[str, str]:
        """Return the login pair for the given sender identity."""
        return sender, self.password


class SmtpTransport:
    """
    Sends email records through an SMTP server.

    A new session is opened for every record; nothing is pooled.
    """

    def __init__(self, config: SmtpConfig,
                 smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP):
        """
        Initialize the transport.

        Args:
            config: SMTP endpoint and credentials
            smtp_factory: Callable returning an SMTP client, ``smtplib.SMTP`` by default
        """
        self.logger = logging.getLogger(__name__)
        self.config = config
        self._smtp_factory = smtp_factory

    def _build_message(self, record: EmailRecord) -> MIMEText:
        msg = MIMEText(record.body, 'plain', 'utf-8')
        msg['Subject'] = record.subject
        msg['From'] = record.sender
        msg['To'] = record.recipient
        msg['Date'] = formatdate(localtime=True)
        msg['Message-ID'] = f"<{uuid.uuid4()}@{self.config.host}>"
        return msg

    def send(self, record: EmailRecord) -> None:
        """
        Send one record synchronously.

        Args:
            record: The decoded email record; its sender is the login identity

        Raises:
            TransportError: On any connection, TLS, authentication,
                header encoding or delivery failure
        """
        username, password = self.config.credentials_for(record.sender)

        smtp_kwargs = {}
        if self.config.timeout is not None:
            smtp_kwargs['timeout'] = self.config.timeout

        try:
            msg = self._build_message(record)
            with self._smtp_factory(self.config.host, self.config.port, **smtp_kwargs) as server:
                if self.config.use_tls:
                    server.starttls(context=ssl.create_default_context())
                server.login(username, password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError, MessageError) as e:
            raise TransportError(
                f"Failed to send email to {record.recipient} via "
                f"{self.config.host}:{self.config.port}: {e}",
                recipient=record.recipient
            ) from e

        self.logger.info(f"Email sent successfully to {record.recipient}")
