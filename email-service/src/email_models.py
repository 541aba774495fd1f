"""
Email record model and schema for the Email service.
Decodes inbound signup messages into the fixed four-field shape.
"""

import json
from dataclasses import dataclass
from typing import Dict, Any, Union

from marshmallow import Schema, fields, validate, post_load, RAISE, ValidationError

from service_errors import DecodeError


@dataclass
class EmailRecord:
    """A single email to relay, decoded from one inbound message."""
    recipient: str
    sender: str
    subject: str
    body: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to a dictionary using the wire field names."""
        return EmailRecordSchema().dump(self)

    def to_json(self) -> str:
        """Convert record to JSON string."""
        return json.dumps(self.to_dict())


# Header values must not carry line breaks
SINGLE_LINE = validate.Regexp(r'\A[^\r\n]*\Z', error='Line breaks are not allowed in header fields.')


class EmailRecordSchema(Schema):
    """Marshmallow schema for the inbound email payload."""

    class Meta:
        unknown = RAISE

    recipient = fields.Str(required=True, data_key='to', validate=SINGLE_LINE)
    sender = fields.Str(required=True, data_key='from', validate=SINGLE_LINE)
    subject = fields.Str(required=True, validate=SINGLE_LINE)
    body = fields.Str(required=True)

    @post_load
    def make_record(self, data, **kwargs):
        return EmailRecord(**data)


class Topics:
    """Constants for subscribed topics."""
    SIGNUP = "signup"


class ConsumerGroups:
    """Constants for consumer group identifiers."""
    EMAIL_SERVICE = "emailService"


def decode_email_record(payload: Union[str, bytes]) -> EmailRecord:
    """
    Decode a raw message payload into an EmailRecord.

    Args:
        payload: UTF-8 text (or bytes) holding a JSON object with exactly
            the fields ``to``, ``from``, ``subject`` and ``body``

    Returns:
        EmailRecord: The decoded record, field values kept verbatim

    Raises:
        DecodeError: If the payload is not UTF-8, not JSON, or not the
            expected four-field shape
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = bytes(payload).decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecodeError(f"Payload is not valid UTF-8: {e}") from e

    if not isinstance(payload, str):
        raise DecodeError(f"Unsupported payload type: {type(payload).__name__}")

    try:
        raw = json.loads(payload)
    except ValueError as e:
        raise DecodeError(f"Payload is not valid JSON: {e}", payload=payload) from e

    try:
        return EmailRecordSchema().load(raw)
    except ValidationError as e:
        raise DecodeError(
            f"Payload does not match the email record shape: {e.messages}",
            payload=payload,
            messages=e.messages if isinstance(e.messages, dict) else {'_schema': e.messages}
        ) from e
