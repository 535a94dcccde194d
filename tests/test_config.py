from datetime import timedelta

from cointoss.config import Config


def test_falsy_override_wins_over_environment(monkeypatch):
    monkeypatch.setenv('COINTOSS_PING_INTERVAL', '25')
    monkeypatch.setenv('COINTOSS_MARKER_DAYS', '7')
    monkeypatch.setenv('COINTOSS_PUBLIC_URL', 'http://env.test')

    config = Config({'PING_INTERVAL': 0, 'MARKER_DAYS': 0, 'PUBLIC_URL': ''})

    assert config.ping_interval == 0
    assert config.marker_days == 0
    assert config.public_url is None


def test_environment_fills_missing_overrides(monkeypatch):
    monkeypatch.setenv('COINTOSS_PING_INTERVAL', '25')
    monkeypatch.setenv('COINTOSS_MARKER_DAYS', '7')

    config = Config({'DB_PATH': 'x.db'})

    assert config.db_path == 'x.db'
    assert config.ping_interval == 25.0
    assert config.socketio_options()['ping_interval'] == 25.0
    assert config.as_flask_config()['PERMANENT_SESSION_LIFETIME'] == timedelta(days=7)
