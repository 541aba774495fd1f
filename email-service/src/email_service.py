"""
Email Service for the signup flow.
Consumes signup messages from Kafka and relays each one as an email.
"""

import logging
import signal
import sys
import time
from typing import Callable, Optional

from kafka import KafkaConsumer

from service_config import ServiceConfig
from service_errors import ConfigurationError, DecodeError, TransportError
from smtp_transport import SmtpTransport
from subscription_handler import SubscriptionHandler
from shared.logging_config import setup_logging, log_with_correlation


SERVICE_NAME = 'email-service'
SERVICE_VERSION = '1.0.0'


class EmailService:
    """
    Consumer runtime that drives the subscription handler.
    """

    def __init__(self, config: ServiceConfig, handler: Optional[SubscriptionHandler] = None,
                 consumer_factory: Callable[..., KafkaConsumer] = KafkaConsumer,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the email service.

        Args:
            config: Resolved service configuration
            handler: Message handler; built from ``config`` when omitted
            consumer_factory: Callable creating the Kafka consumer
            sleep: Used between consumer connection attempts
        """
        self.logger = logging.getLogger(__name__)
        self.config = config
        if handler is None:
            handler = SubscriptionHandler(
                SmtpTransport(config.smtp),
                topic=config.kafka_topic,
                group_id=config.consumer_group
            )
        self.handler = handler
        self._consumer_factory = consumer_factory
        self._sleep = sleep

        self.consumer = None
        self.running = False

    def _initialize_consumer(self):
        """Initialize Kafka consumer with retry logic."""
        consumer_config = self.config.consumer_config()
        consumer_config['group_id'] = self.handler.group_id

        max_retries = 5
        retry_delay = 1

        for attempt in range(max_retries):
            try:
                self.consumer = self._consumer_factory(self.handler.topic, **consumer_config)
                self.logger.info(f"Kafka consumer initialized successfully on attempt {attempt + 1}")
                return
            except Exception as e:
                self.logger.warning(f"Failed to initialize Kafka consumer (attempt {attempt + 1}/{max_retries}): {e}")
                if attempt < max_retries - 1:
                    self._sleep(retry_delay)
                    retry_delay *= 2
                else:
                    self.logger.error("Failed to initialize Kafka consumer after all retries")
                    raise

    def _process_message(self, message):
        """
        Hand one consumed message to the subscription handler.

        Malformed payloads are logged and skipped when configured to; every
        other failure propagates and stops the consumer loop.
        """
        correlation_id = f"{message.topic}:{message.partition}:{message.offset}"

        try:
            self.handler.handle(message.value)
        except DecodeError as e:
            log_with_correlation(
                self.logger,
                logging.ERROR,
                f"Malformed message on {message.topic}: {e}",
                correlation_id=correlation_id,
                extra_fields={'field_errors': e.messages}
            )
            if not self.config.skip_malformed_messages:
                raise
        except TransportError as e:
            log_with_correlation(
                self.logger,
                logging.ERROR,
                f"SMTP transport failed for {e.recipient}: {e}",
                correlation_id=correlation_id,
                exc_info=True
            )
            raise

    def start(self):
        """Start the email service and block until it stops."""
        self.logger.info(f"Starting {SERVICE_NAME} v{SERVICE_VERSION}")

        try:
            self._initialize_consumer()

            self.running = True
            self.logger.info(
                f"Email service started, listening to topic: {self.handler.topic} "
                f"(group {self.handler.group_id})"
            )

            # The iterator ends after consumer_timeout_ms of idleness so a
            # stop request is noticed without a new message arriving.
            while self.running:
                for message in self.consumer:
                    self._process_message(message)
                    if not self.running:
                        break

        except KeyboardInterrupt:
            self.logger.info("Received interrupt signal, shutting down...")
        finally:
            self.stop()

    def request_stop(self, signum=None, frame=None):
        """Ask the consumer loop to exit after the current message."""
        if signum is not None:
            self.logger.info(f"Received signal {signum}")
        self.running = False

    def stop(self):
        """Stop the email service."""
        if self.consumer is None and not self.running:
            return

        self.logger.info("Stopping email service...")
        self.running = False

        if self.consumer:
            try:
                self.consumer.close()
            except Exception as e:
                self.logger.error(f"Error closing Kafka consumer: {e}")
            finally:
                self.consumer = None

        self.logger.info("Email service stopped")


def main(environ=None) -> int:
    """Main entry point for the email service."""
    try:
        config = ServiceConfig.from_env(environ)
    except ConfigurationError as e:
        setup_logging(SERVICE_NAME, SERVICE_VERSION, log_level='INFO', log_format='text')
        logging.getLogger(__name__).error(f"Invalid configuration: {e}")
        return 1

    setup_logging(SERVICE_NAME, SERVICE_VERSION, log_level=config.log_level, log_format=config.log_format)

    logger = logging.getLogger(__name__)
    logger.info("Initializing Email Service...")

    service = EmailService(config)
    signal.signal(signal.SIGINT, service.request_stop)
    signal.signal(signal.SIGTERM, service.request_stop)

    try:
        service.start()
    except Exception as e:
        logger.error(f"Email service failed: {e}", exc_info=True)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
