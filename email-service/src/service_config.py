"""
Configuration for the Email service.
Resolves broker, SMTP and secret settings from the environment once at startup.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from email_models import Topics, ConsumerGroups
from service_errors import ConfigurationError
from smtp_transport import SmtpConfig


def _get_bool(environ: Mapping[str, str], name: str, default: str) -> bool:
    return environ.get(name, default).lower() == 'true'


def _get_number(environ: Mapping[str, str], name: str, default: Optional[str], cast):
    value = environ.get(name) or default
    if value is None:
        return None
    try:
        return cast(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
LOG_FORMATS = ('json', 'text')


def _get_choice(environ: Mapping[str, str], name: str, default: str, choices, normalize) -> str:
    value = normalize(environ.get(name) or default)
    if value not in choices:
        raise ConfigurationError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


def _resolve_password(environ: Mapping[str, str]) -> str:
    """Read the SMTP secret from SMTP_PASSWORD or the file named by SMTP_PASSWORD_FILE."""
    password = environ.get('SMTP_PASSWORD')
    if password:
        return password

    password_file = environ.get('SMTP_PASSWORD_FILE')
    if password_file:
        try:
            password = Path(password_file).read_text(encoding='utf-8').strip()
        except OSError as e:
            raise ConfigurationError(f"Cannot read SMTP_PASSWORD_FILE {password_file}: {e}") from e
        if password:
            return password

    raise ConfigurationError("SMTP password is not configured; set SMTP_PASSWORD or SMTP_PASSWORD_FILE")


@dataclass(frozen=True)
class ServiceConfig:
    """Settings passed into the Email service at construction time."""
    smtp_password: str = field(repr=False)
    kafka_bootstrap_servers: str = 'localhost:9092'
    kafka_topic: str = Topics.SIGNUP
    consumer_group: str = ConsumerGroups.EMAIL_SERVICE
    auto_offset_reset: str = 'latest'
    smtp_host: str = 'smtp.gmail.com'
    smtp_port: int = 587
    smtp_use_tls: bool = True
    smtp_timeout: Optional[float] = None
    skip_malformed_messages: bool = True
    log_level: str = 'INFO'
    log_format: str = 'json'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ServiceConfig':
        """
        Build configuration from environment variables.

        Raises:
            ConfigurationError: If the secret is missing, a number is malformed
                or a logging setting is unknown
        """
        if environ is None:
            environ = os.environ

        return cls(
            smtp_password=_resolve_password(environ),
            kafka_bootstrap_servers=environ.get('KAFKA_BOOTSTRAP_SERVERS', 'localhost:9092'),
            kafka_topic=environ.get('KAFKA_TOPIC', Topics.SIGNUP),
            consumer_group=environ.get('KAFKA_CONSUMER_GROUP', ConsumerGroups.EMAIL_SERVICE),
            auto_offset_reset=environ.get('KAFKA_AUTO_OFFSET_RESET', 'latest'),
            smtp_host=environ.get('SMTP_HOST', 'smtp.gmail.com'),
            smtp_port=_get_number(environ, 'SMTP_PORT', '587', int),
            smtp_use_tls=_get_bool(environ, 'SMTP_USE_TLS', 'true'),
            smtp_timeout=_get_number(environ, 'SMTP_TIMEOUT_SECONDS', None, float),
            skip_malformed_messages=_get_bool(environ, 'SKIP_MALFORMED_MESSAGES', 'true'),
            log_level=_get_choice(environ, 'LOG_LEVEL', 'INFO', LOG_LEVELS, str.upper),
            log_format=_get_choice(environ, 'LOG_FORMAT', 'json', LOG_FORMATS, str.lower),
        )

    @property
    def bootstrap_servers(self) -> List[str]:
        return [server.strip() for server in self.kafka_bootstrap_servers.split(',') if server.strip()]

    @property
    def smtp(self) -> SmtpConfig:
        return SmtpConfig(
            password=self.smtp_password,
            host=self.smtp_host,
            port=self.smtp_port,
            use_tls=self.smtp_use_tls,
            timeout=self.smtp_timeout,
        )

    def consumer_config(self) -> Dict[str, Any]:
        """Keyword arguments for ``KafkaConsumer``; values are left as raw bytes."""
        return {
            'bootstrap_servers': self.bootstrap_servers,
            'group_id': self.consumer_group,
            'auto_offset_reset': self.auto_offset_reset,
            'enable_auto_commit': True,
            'auto_commit_interval_ms': 1000,
            'key_deserializer': lambda k: k.decode('utf-8') if k else None,
            'session_timeout_ms': 30000,
            'heartbeat_interval_ms': 10000,
            'max_poll_records': 10,
            'max_poll_interval_ms': 300000,
            'consumer_timeout_ms': 1000
        }
