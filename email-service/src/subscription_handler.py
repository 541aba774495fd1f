"""
Subscription handler for the Email service.
Invoked once per delivered signup message: decode, then relay via SMTP.
"""

import logging
from typing import Union

from email_models import decode_email_record, Topics, ConsumerGroups
from smtp_transport import SmtpTransport


class SubscriptionHandler:
    """Message callback bound to one topic and one consumer group."""

    def __init__(self, transport: SmtpTransport, topic: str = Topics.SIGNUP,
                 group_id: str = ConsumerGroups.EMAIL_SERVICE):
        self.logger = logging.getLogger(__name__)
        self.transport = transport
        self.topic = topic
        self.group_id = group_id

    def handle(self, payload: Union[str, bytes]) -> None:
        """
        Relay one message payload as an email.

        Raises:
            DecodeError: Payload is malformed; the transport is not touched
            TransportError: The SMTP send failed
        """
        record = decode_email_record(payload)

        self.logger.info(f"Relaying email to {record.recipient}: {record.subject}")
        self.transport.send(record)
        self.logger.info(f"Relayed email to {record.recipient}")

    __call__ = handle
