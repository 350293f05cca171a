import os
import re
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

DEFAULT_JWT_SECRET = 'supersecretkeytiva'

_DURATION_RE = re.compile(r'^\s*(\d+)\s*([dhms]?)\s*$')
_DURATION_UNITS = {
    'd': 'days',
    'h': 'hours',
    'm': 'minutes',
    's': 'seconds',
    '': 'seconds',
}


def parse_duration(value, default=timedelta(days=7)):
    """Parse '7d', '12h', '30m' or a bare number of seconds."""
    match = _DURATION_RE.match(str(value or ''))
    if not match:
        return default
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


def _split_origins(raw):
    return [o.strip() for o in (raw or '').split(',') if o.strip()]


class Config:
    ENV_NAME = os.environ.get('FLASK_ENV', 'development')
    SECRET_KEY = os.environ.get('SECRET_KEY') or (
        'dev-secret-key-change-in-production'
    )
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or (
        'sqlite:///tiva.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT: header for the API, cookie for the dashboard pages.
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET') or DEFAULT_JWT_SECRET
    JWT_ACCESS_TOKEN_EXPIRES = parse_duration(
        os.environ.get('JWT_EXPIRES_IN', '7d'))
    JWT_TOKEN_LOCATION = ['headers', 'cookies']
    JWT_COOKIE_SECURE = ENV_NAME == 'production'
    JWT_COOKIE_CSRF_PROTECT = True
    JWT_CSRF_CHECK_FORM = True
    JWT_ACCESS_COOKIE_PATH = '/'

    # Cloudinary image hosting
    CLOUDINARY_CLOUD_NAME = os.environ.get('CLOUDINARY_CLOUD_NAME', '')
    CLOUDINARY_API_KEY = os.environ.get('CLOUDINARY_API_KEY', '')
    CLOUDINARY_API_SECRET = os.environ.get('CLOUDINARY_API_SECRET', '')
    UPLOAD_FOLDER_PREFIX = 'tiva_uploads'
    UPLOAD_MAX_BYTES = 5 * 1024 * 1024
    UPLOAD_MAX_FILES = 10
    UPLOAD_ALLOWED_MIMETYPES = (
        'image/jpeg',
        'image/jpg',
        'image/png',
        'image/webp',
    )
    # Whole multipart body: ten full-size images plus form overhead.
    MAX_CONTENT_LENGTH = UPLOAD_MAX_FILES * UPLOAD_MAX_BYTES + 1024 * 1024

    # Outgoing mail. 'console' only logs the message.
    MAIL_TRANSPORT = os.environ.get('MAIL_TRANSPORT', 'console')
    MAIL_SMTP = os.environ.get('MAIL_SMTP', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', '587'))
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME') or os.environ.get(
        'EMAIL_USER', 'tiva.store.app@gmail.com')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD') or os.environ.get(
        'EMAIL_PASS', '')
    MAIL_SENDER = os.environ.get('MAIL_SENDER') or MAIL_USERNAME

    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:5000')
    CORS_ALLOWED_ORIGINS = _split_origins(
        os.environ.get('CORS_ALLOWED_ORIGINS')) or [
        'http://localhost:5173',
        'http://localhost:5174',
        'http://localhost:5175',
        'http://localhost:3000',
    ]

    # Password reset
    RESET_TOKEN_BYTES = 32
    RESET_TOKEN_TTL = timedelta(hours=1)
    MIN_PASSWORD_LENGTH = 6

    # Pagination defaults
    PRODUCTS_PER_PAGE = 10
    ORDERS_PER_PAGE = 10
    CATALOG_PER_PAGE = 20
    TOP_PRODUCTS_LIMIT = 10
    ORDERS_BY_DAY_DAYS = 30

    DEFAULT_CURRENCY = 'COP'
    DEFAULT_LANGUAGE = 'es'


class TestingConfig(Config):
    ENV_NAME = 'testing'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    JWT_SECRET_KEY = 'test-secret-key-with-enough-length-for-hs256'
    JWT_COOKIE_CSRF_PROTECT = False
    JWT_COOKIE_SECURE = False
    MAIL_TRANSPORT = 'console'
    FRONTEND_URL = 'http://frontend.test'
    CLOUDINARY_CLOUD_NAME = 'test-cloud'
    CLOUDINARY_API_KEY = 'test-key'
    CLOUDINARY_API_SECRET = 'test-secret'
