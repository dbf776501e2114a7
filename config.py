"""Configuration constants and runtime profiles for the app."""
import os
from types import MappingProxyType


def _normalized_database_url() -> str:
    url = os.environ.get('DATABASE_URL', 'sqlite:///rankings.db')
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


class BaseConfig:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-key-change-in-production')
    SQLALCHEMY_DATABASE_URI = _normalized_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024  # 5MB max upload
    STRUCTURED_LOGGING = os.environ.get('STRUCTURED_LOGGING', '1') == '1'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').strip()
    SENTRY_DSN = os.environ.get('SENTRY_DSN', '').strip()
    ADMIN_API_TOKEN = os.environ.get('ADMIN_API_TOKEN', '').strip()


class DevelopmentConfig(BaseConfig):
    ENV_NAME = 'development'


class ProductionConfig(BaseConfig):
    ENV_NAME = 'production'


class TestingConfig(BaseConfig):
    ENV_NAME = 'testing'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    STRUCTURED_LOGGING = False
    SENTRY_DSN = ''
    ADMIN_API_TOKEN = 'test-admin-token'


def get_config():
    env = os.environ.get('FLASK_ENV', '').strip().lower()
    if env == 'production' or os.environ.get('PRODUCTION', '').strip() == '1':
        return ProductionConfig
    return DevelopmentConfig


def validate_runtime(app_config: dict) -> None:
    """Fail fast for production misconfiguration."""
    env_name = app_config.get('ENV_NAME', 'development')
    if env_name != 'production':
        return

    secret = app_config.get('SECRET_KEY') or ''
    weak_values = {'dev-key-change-in-production', 'changeme', 'secret', 'default'}
    if len(secret) < 16 or secret.lower() in weak_values:
        raise RuntimeError('Invalid SECRET_KEY for production. Set a strong random secret.')

    token = app_config.get('ADMIN_API_TOKEN') or ''
    if len(token) < 16:
        raise RuntimeError('ADMIN_API_TOKEN must be set (16+ characters) in production.')


# The four scored disciplines, in display order
EVENTS = ('knockdowns', 'distance', 'speed', 'woods')

# Maximum points per event when a tournament does not say otherwise
DEFAULT_TOTAL_POINTS = 120.0

# Number of leading rows searched for the header row
HEADER_SCAN_ROWS = 5

# Accepted spreadsheet spellings per canonical field
COLUMN_ALIASES = MappingProxyType({
    'name': ('name', 'competitor', 'athlete', 'player', 'participant',
             'full name', 'fullname', 'full_name'),
    'knockdowns': ('knockdowns', 'knockdown', 'knock', 'kd', 'knock downs', 'knock-downs'),
    'distance': ('distance', 'dist', 'dst', 'distanc'),
    'speed': ('speed', 'spd', 'sp', 'velocity'),
    'woods': ('woods', 'wood', 'woods course', 'woods_course', 'woodscourse', 'forest', 'wc'),
    'email': ('email', 'e-mail', 'email address', 'mail'),
})

# Upload formats accepted by the preview endpoint
UPLOAD_EXTENSIONS = {'csv', 'xlsx', 'xls'}
