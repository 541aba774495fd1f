"""
Unit tests for the subscription handler in the Email service.
"""

import os
import sys
from unittest.mock import MagicMock, Mock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from email_models import EmailRecord
from service_errors import DecodeError, TransportError
from smtp_transport import SmtpConfig, SmtpTransport
from subscription_handler import SubscriptionHandler


WELCOME_PAYLOAD = '{"to":"a@x.com","from":"b@y.com","subject":"Welcome","body":"Hi there"}'


@pytest.fixture
def mock_transport():
    return Mock(spec=SmtpTransport)


class TestSubscriptionHandler:
    """Test per-message handling against a mocked transport."""

    def test_default_subscription(self, mock_transport):
        handler = SubscriptionHandler(mock_transport)

        assert handler.topic == 'signup'
        assert handler.group_id == 'emailService'

    def test_handle_forwards_record(self, mock_transport):
        """Test the decoded record is passed to the transport unchanged."""
        handler = SubscriptionHandler(mock_transport)

        result = handler.handle(WELCOME_PAYLOAD)

        assert result is None
        mock_transport.send.assert_called_once_with(
            EmailRecord(recipient='a@x.com', sender='b@y.com', subject='Welcome', body='Hi there')
        )

    def test_callable(self, mock_transport):
        """Test the handler can be invoked directly as a callback."""
        handler = SubscriptionHandler(mock_transport)

        handler(WELCOME_PAYLOAD.encode('utf-8'))

        mock_transport.send.assert_called_once()

    def test_missing_fields_never_reach_transport(self, mock_transport):
        """Test decode failure happens before any send."""
        handler = SubscriptionHandler(mock_transport)

        with pytest.raises(DecodeError):
            handler.handle('{"to":"a@x.com"}')

        mock_transport.send.assert_not_called()

    def test_malformed_json_never_reaches_transport(self, mock_transport):
        handler = SubscriptionHandler(mock_transport)

        with pytest.raises(DecodeError):
            handler.handle('this is not json')

        mock_transport.send.assert_not_called()

    def test_transport_error_propagates(self, mock_transport):
        """Test transport failures are not swallowed."""
        mock_transport.send.side_effect = TransportError('connection refused', recipient='a@x.com')
        handler = SubscriptionHandler(mock_transport)

        with pytest.raises(TransportError, match='connection refused'):
            handler.handle(WELCOME_PAYLOAD)


class TestSubscriptionHandlerWithSmtp:
    """Test the handler against a real transport and a mocked SMTP server."""

    @pytest.fixture
    def mock_smtp(self):
        factory = MagicMock()
        factory.server = factory.return_value.__enter__.return_value
        return factory

    def test_welcome_email(self, mock_smtp):
        """Test recipient, subject, body and login identity for the welcome payload."""
        transport = SmtpTransport(SmtpConfig(password='app-password'), smtp_factory=mock_smtp)
        handler = SubscriptionHandler(transport)

        handler.handle(WELCOME_PAYLOAD)

        server = mock_smtp.server
        server.login.assert_called_once_with('b@y.com', 'app-password')
        msg = server.send_message.call_args[0][0]
        assert msg['To'] == 'a@x.com'
        assert msg['Subject'] == 'Welcome'
        assert msg.get_payload(decode=True).decode('utf-8') == 'Hi there'

    def test_sender_is_always_login_identity(self, mock_smtp):
        transport = SmtpTransport(SmtpConfig(password='app-password'), smtp_factory=mock_smtp)
        handler = SubscriptionHandler(transport)

        handler.handle('{"to":"x@x.com","from":"first@y.com","subject":"s","body":"b"}')
        handler.handle('{"to":"x@x.com","from":"second@y.com","subject":"s","body":"b"}')

        logins = [c.args[0] for c in mock_smtp.server.login.call_args_list]
        assert logins == ['first@y.com', 'second@y.com']

    def test_connection_refused_propagates(self, mock_smtp):
        """Test a simulated connection refusal is observable from the handler."""
        mock_smtp.side_effect = ConnectionRefusedError(111, 'Connection refused')
        transport = SmtpTransport(SmtpConfig(password='app-password'), smtp_factory=mock_smtp)
        handler = SubscriptionHandler(transport)

        with pytest.raises(TransportError) as exc_info:
            handler.handle(WELCOME_PAYLOAD)

        assert exc_info.value.recipient == 'a@x.com'

    def test_decode_error_opens_no_connection(self, mock_smtp):
        transport = SmtpTransport(SmtpConfig(password='app-password'), smtp_factory=mock_smtp)
        handler = SubscriptionHandler(transport)

        with pytest.raises(DecodeError):
            handler.handle('{"to":"a@x.com"}')

        mock_smtp.assert_not_called()

    def test_header_injection_rejected_before_connect(self, mock_smtp):
        """Test a subject carrying an extra header is a decode failure, not a send."""
        transport = SmtpTransport(SmtpConfig(password='app-password'), smtp_factory=mock_smtp)
        handler = SubscriptionHandler(transport)

        with pytest.raises(DecodeError) as exc_info:
            handler.handle('{"to":"a@x.com","from":"b@y.com","subject":"Hi\\nBcc: evil@z.com","body":"b"}')

        assert 'subject' in exc_info.value.messages
        mock_smtp.assert_not_called()
