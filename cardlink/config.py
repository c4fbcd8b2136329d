"""
Configuration management for the CardLink service.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _database_url() -> str:
    url = os.getenv('DATABASE_URL', '')
    if url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


def _default_sslmode(url: str) -> str:
    """Local databases skip TLS; hosted ones encrypt without CA pinning."""
    if not url or 'localhost' in url or '127.0.0.1' in url:
        return 'disable'
    return 'require'


def build_engine_options(url: str) -> dict:
    """
    Engine options for the shared connection pool.

    The pool is bounded: once DB_POOL_SIZE + DB_MAX_OVERFLOW connections are
    checked out, callers wait at most DB_POOL_TIMEOUT seconds and then fail.
    SQLite (local development and tests) keeps the driver defaults.
    """
    if not url or url.startswith('sqlite'):
        return {}

    options = {
        'pool_size': int(os.getenv('DB_POOL_SIZE', '5')),
        'max_overflow': int(os.getenv('DB_MAX_OVERFLOW', '5')),
        'pool_timeout': int(os.getenv('DB_POOL_TIMEOUT', '10')),
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }
    if url.startswith('postgresql'):
        options['connect_args'] = {
            'sslmode': os.getenv('DATABASE_SSLMODE', _default_sslmode(url)),
            'connect_timeout': int(os.getenv('DB_CONNECT_TIMEOUT', '10')),
        }
    return options


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_ENGINE_OPTIONS = build_engine_options(SQLALCHEMY_DATABASE_URI)

    # Upper bound for any single store call, in milliseconds
    DB_STATEMENT_TIMEOUT_MS = int(os.getenv('DB_STATEMENT_TIMEOUT_MS', '5000'))

    # Link handshake
    SYNC_SESSION_TTL_MINUTES = int(os.getenv('SYNC_SESSION_TTL_MINUTES', '10'))
    LOYALTY_LOGIN_URL = os.getenv('LOYALTY_LOGIN_URL', 'https://prima789.com/login')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url() or 'sqlite:///cardlink_dev.db'


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing or too short
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )
        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!"
            )
        return cls._secret_key

    @classmethod
    def validate_database(cls) -> str:
        if not cls.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("CRITICAL: DATABASE_URL environment variable is not set!")
        return cls.SQLALCHEMY_DATABASE_URI

    SECRET_KEY = _secret_key  # Validated at app startup


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SYNC_SESSION_TTL_MINUTES = 10
    LOYALTY_LOGIN_URL = 'https://loyalty.test/login'


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
        ProductionConfig.validate_database()
