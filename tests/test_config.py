"""
Tests for configuration and engine pool options.
"""
import importlib
import pytest

from cardlink import config
from cardlink.config import build_engine_options


@pytest.fixture
def reload_config(monkeypatch):
    """Reload cardlink.config under a patched environment, restoring it afterwards."""
    def _reload(**env):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        return importlib.reload(config)

    yield _reload
    monkeypatch.undo()
    importlib.reload(config)


class TestBuildEngineOptions:

    def test_postgres_gets_bounded_pool_and_tls(self, monkeypatch):
        monkeypatch.setenv('DB_POOL_TIMEOUT', '7')
        monkeypatch.delenv('DATABASE_SSLMODE', raising=False)

        options = build_engine_options('postgresql://user:pw@db.example.com:5432/cardlink')

        assert options['pool_timeout'] == 7
        assert options['pool_pre_ping'] is True
        assert options['connect_args']['sslmode'] == 'require'

    def test_localhost_disables_tls(self, monkeypatch):
        monkeypatch.delenv('DATABASE_SSLMODE', raising=False)

        options = build_engine_options('postgresql://user:pw@localhost/cardlink')

        assert options['connect_args']['sslmode'] == 'disable'

    def test_sqlite_and_empty_keep_driver_defaults(self):
        assert build_engine_options('sqlite:///:memory:') == {}
        assert build_engine_options('') == {}


class TestConfigClasses:

    def test_development_on_postgres_is_bounded(self, reload_config):
        cfg = reload_config(DATABASE_URL='postgres://user:pw@db.example.com/cardlink',
                            DATABASE_SSLMODE='verify-full')

        dev = cfg.DevelopmentConfig
        assert dev.SQLALCHEMY_DATABASE_URI.startswith('postgresql://')
        assert dev.SQLALCHEMY_ENGINE_OPTIONS['connect_args']['sslmode'] == 'verify-full'
        assert 'pool_timeout' in dev.SQLALCHEMY_ENGINE_OPTIONS

    def test_testing_ignores_environment_database(self, reload_config):
        cfg = reload_config(DATABASE_URL='postgres://user:pw@db.example.com/cardlink')

        assert cfg.TestingConfig.SQLALCHEMY_DATABASE_URI == 'sqlite:///:memory:'
        assert cfg.TestingConfig.SQLALCHEMY_ENGINE_OPTIONS == {}
