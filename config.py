import os
import secrets
import logging
from datetime import timedelta
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '.env'))
logger = logging.getLogger(__name__)


def _flag(name, default='false'):
    return os.environ.get(name, default).lower() in ['true', 'on', '1']


class Config:
    # Basic Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        if os.environ.get('FLASK_ENV') == 'production':
            raise ValueError("SECRET_KEY environment variable is REQUIRED in production!")
        else:
            # Only for development, generate random
            SECRET_KEY = secrets.token_hex(32)
            logger.warning('Using auto-generated SECRET_KEY for development. Set SECRET_KEY env var for production!')

    # Session Configuration
    SESSION_COOKIE_SECURE = _flag('SESSION_COOKIE_SECURE')
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = timedelta(hours=12)

    # Database Configuration (operators and the audit log only)
    if os.environ.get('DATABASE_URL'):
        db_url = os.environ.get('DATABASE_URL')
        if db_url.startswith('sqlite:///'):
            path_part = db_url[10:]
            if not os.path.isabs(path_part):
                path_part = os.path.abspath(os.path.join(basedir, path_part))
            os.makedirs(os.path.dirname(path_part), exist_ok=True)
            SQLALCHEMY_DATABASE_URI = 'sqlite:///' + path_part.replace('\\', '/')
        else:
            SQLALCHEMY_DATABASE_URI = db_url
    else:
        db_path = os.path.join(basedir, 'instance', 'canteen_admin.db')
        os.makedirs(os.path.dirname(db_path), exist_ok=True)
        SQLALCHEMY_DATABASE_URI = 'sqlite:///' + os.path.abspath(db_path).replace('\\', '/')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Canteen backend
    CANTEEN_API_URL = os.environ.get('CANTEEN_API_URL') or 'http://localhost:4000'
    CANTEEN_API_TOKEN = os.environ.get('CANTEEN_API_TOKEN')
    if not CANTEEN_API_TOKEN and os.environ.get('FLASK_ENV') == 'production':
        logger.warning('CANTEEN_API_TOKEN not set. Admin calls to the canteen backend will be rejected.')
    CANTEEN_API_TIMEOUT = float(os.environ.get('CANTEEN_API_TIMEOUT') or 30)

    # Background polls (seconds)
    NOTIFICATION_POLL_SECONDS = int(os.environ.get('NOTIFICATION_POLL_SECONDS') or 10)
    TOPUP_POLL_SECONDS = int(os.environ.get('TOPUP_POLL_SECONDS') or 30)
    SKIP_SCHEDULER = _flag('SKIP_SCHEDULER')

    # Locale
    TIMEZONE = os.environ.get('TIMEZONE') or 'Asia/Manila'
    PHONE_REGION = os.environ.get('PHONE_REGION') or 'PH'

    # Upload and form limits
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max request size
    MAX_IMAGE_SIZE_MB = int(os.environ.get('MAX_IMAGE_SIZE_MB') or 5)
    MAX_MENU_PRICE = 20000

    # Application Configuration
    PER_PAGE = 20

    # Flask-Limiter Configuration
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI') or os.environ.get('REDIS_URL') or 'memory://'

    # Security Configuration
    WTF_CSRF_ENABLED = True
    WTF_CSRF_SSL_STRICT = _flag('WTF_CSRF_SSL_STRICT')

    # Logging
    LOG_TO_STDOUT = os.environ.get('LOG_TO_STDOUT')


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False
    PREFERRED_URL_SCHEME = 'https'

    # Security settings for production
    SESSION_COOKIE_SECURE = _flag('SESSION_COOKIE_SECURE', 'true')
    WTF_CSRF_SSL_STRICT = _flag('WTF_CSRF_SSL_STRICT', 'true')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    SKIP_SCHEDULER = True
    LOG_TO_STDOUT = '1'
    CANTEEN_API_URL = 'http://canteen.test'
    CANTEEN_API_TOKEN = 'test-token'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
