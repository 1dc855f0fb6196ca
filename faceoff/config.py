import os
from datetime import timedelta

basedir = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _normalize_database_url(raw_url):
    if not raw_url:
        return raw_url
    if raw_url.startswith('postgres://'):
        return raw_url.replace('postgres://', 'postgresql://', 1)
    return raw_url


class BaseConfig:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-prod')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = _env_bool('SESSION_COOKIE_SECURE', False)
    PERMANENT_SESSION_LIFETIME = timedelta(hours=_env_int('SESSION_LIFETIME_HOURS', 24))

    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE', 'threading')
    SOCKETIO_PATH = os.environ.get('SOCKETIO_PATH', 'ws')

    FACEPP_API_URL = os.environ.get(
        'FACEPP_API_URL', 'https://api-us.faceplusplus.com/facepp/v3'
    )
    FACEPP_API_KEY = os.environ.get('FACEPP_API_KEY', '')
    FACEPP_API_SECRET = os.environ.get('FACEPP_API_SECRET', '')
    FACE_SCORING_MAX_RETRIES = _env_int('FACE_SCORING_MAX_RETRIES', 3)
    FACE_SCORING_RETRY_DELAY_SECONDS = _env_float('FACE_SCORING_RETRY_DELAY_SECONDS', 1.0)
    FACE_SCORING_TIMEOUT_SECONDS = _env_float('FACE_SCORING_TIMEOUT_SECONDS', 15.0)
    COMPARE_DELAY_SECONDS = _env_float('COMPARE_DELAY_SECONDS', 0.5)

    MAX_PHOTO_BYTES = _env_int('MAX_PHOTO_BYTES', 5 * 1024 * 1024)
    # Whole multipart body; a little headroom over one photo.
    MAX_CONTENT_LENGTH = _env_int('MAX_CONTENT_LENGTH', 6 * 1024 * 1024)

    LEADERBOARD_SIZE = _env_int('LEADERBOARD_SIZE', 10)
    FEEDBACK_MAX_LENGTH = _env_int('FEEDBACK_MAX_LENGTH', 2000)


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(
        os.environ.get(
            'DATABASE_URL',
            'sqlite:///' + os.path.join(basedir, '..', 'faceoff_dev.db')
        )
    )


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    FACEPP_API_KEY = 'test-key'
    FACEPP_API_SECRET = 'test-secret'
    FACE_SCORING_RETRY_DELAY_SECONDS = 0.0
    COMPARE_DELAY_SECONDS = 0.0


class ProductionConfig(BaseConfig):
    DEBUG = False
    SESSION_COOKIE_SECURE = _env_bool('SESSION_COOKIE_SECURE', True)
    SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get('DATABASE_URL'))


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
