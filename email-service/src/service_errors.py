"""
Error types for the Email service.
Decode and transport failures are raised distinctly so the consumer loop
can skip malformed messages while still stopping on an SMTP outage.
"""

from typing import Any, Dict, Optional


class EmailServiceError(Exception):
    """Base class for all Email service errors."""


class ConfigurationError(EmailServiceError):
    """Raised when required configuration is missing or invalid."""


class DecodeError(EmailServiceError):
    """Raised when a payload does not match the email record shape."""

    def __init__(self, message: str, payload: Optional[str] = None,
                 messages: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.payload = payload
        self.messages = messages or {}


class TransportError(EmailServiceError):
    """Raised when the SMTP session cannot be established or the send fails."""

    def __init__(self, message: str, recipient: Optional[str] = None):
        super().__init__(message)
        self.recipient = recipient
