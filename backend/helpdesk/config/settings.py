"""Environment-driven defaults for create_app.

Values come from the process environment (a local .env is loaded by the app
package via python-dotenv); create_app(config) overrides any of them.
"""
from __future__ import annotations
import os
from typing import Any, Dict

_TRUTHY = {'1', 'true', 'yes', 'on'}


def env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} must be an integer, got {raw!r}')


def load_settings() -> Dict[str, Any]:
    return {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'JWT_ACCESS_TOKEN_EXPIRES_HOURS': env_int('JWT_ACCESS_TOKEN_EXPIRES_HOURS', 24),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///helpdesk.db'),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO'),
        # Outgoing mail; without MAIL_HOST messages are only logged
        'MAIL_HOST': os.getenv('MAIL_HOST'),
        'MAIL_PORT': env_int('MAIL_PORT', 587),
        'MAIL_USERNAME': os.getenv('MAIL_USERNAME'),
        'MAIL_PASSWORD': os.getenv('MAIL_PASSWORD'),
        'MAIL_USE_TLS': env_bool('MAIL_USE_TLS', True),
        'MAIL_FROM': os.getenv('MAIL_FROM', 'IT Support <support@company.com>'),
        # Notification dispatcher
        'NOTIFY_SWEEP_ENABLED': env_bool('NOTIFY_SWEEP_ENABLED', True),
        'NOTIFY_SWEEP_INTERVAL_SECONDS': env_int('NOTIFY_SWEEP_INTERVAL_SECONDS', 30),
        'NOTIFY_SWEEP_BATCH': env_int('NOTIFY_SWEEP_BATCH', 10),
        'NOTIFY_RETRY_INTERVAL_SECONDS': env_int('NOTIFY_RETRY_INTERVAL_SECONDS', 300),
        'NOTIFY_MAX_ATTEMPTS': env_int('NOTIFY_MAX_ATTEMPTS', 5),
        # Ticket lifecycle
        'TICKETS_LOCK_CLOSED': env_bool('TICKETS_LOCK_CLOSED', False),
    }

__all__ = ['load_settings', 'env_bool', 'env_int']
