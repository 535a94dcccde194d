"""
Configuration for the coin toss experiment system.

Values come from the environment (a local .env file is loaded first), and
create_app() accepts a dict of overrides for tests.
"""

import os
from datetime import timedelta
from typing import Any, Dict, Optional

from dotenv import load_dotenv


def _setting(overrides: Dict[str, Any], key: str, default: Any = None) -> Any:
    """An explicit override wins even when falsy; otherwise COINTOSS_<key>."""
    if key in overrides:
        return overrides[key]
    return os.getenv(f'COINTOSS_{key}', default)


class Config:
    """Settings read from COINTOSS_* environment variables."""

    def __init__(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        load_dotenv()
        overrides = overrides or {}

        self.db_path = _setting(overrides, 'DB_PATH', os.path.join('data', 'cointoss.db'))
        self.secret_key = _setting(overrides, 'SECRET_KEY', 'cointoss-dev-secret-key')
        # Base URL for join links; None means "use the incoming request's host"
        self.public_url = _setting(overrides, 'PUBLIC_URL') or None
        self.default_lang = _setting(overrides, 'DEFAULT_LANG', 'en')
        # Socket.IO heartbeat towards host dashboards
        self.ping_interval = float(_setting(overrides, 'PING_INTERVAL', 20))
        self.ping_timeout = float(_setting(overrides, 'PING_TIMEOUT', 30))
        self.cors_origins = _setting(overrides, 'CORS_ORIGINS', '*')
        # How long a device remembers its flips and "already submitted" markers
        self.marker_days = int(_setting(overrides, 'MARKER_DAYS', 365))
        self.log_level = _setting(overrides, 'LOG_LEVEL', 'INFO')
        self.testing = bool(overrides.get('TESTING', False))

    def socketio_options(self) -> Dict[str, Any]:
        return {
            'async_mode': 'threading',
            'cors_allowed_origins': self.cors_origins,
            'ping_interval': self.ping_interval,
            'ping_timeout': self.ping_timeout,
        }

    def as_flask_config(self) -> Dict[str, Any]:
        return {
            'SECRET_KEY': self.secret_key,
            'TESTING': self.testing,
            'PERMANENT_SESSION_LIFETIME': timedelta(days=self.marker_days),
            'COINTOSS_DB_PATH': self.db_path,
            'COINTOSS_PUBLIC_URL': self.public_url,
            'COINTOSS_DEFAULT_LANG': self.default_lang,
        }
