from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFError, CSRFProtect
from logging.handlers import RotatingFileHandler
from config import Config
import os
import logging

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s [%(levelname)s] [%(name)s] - %(message)s'

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["2000 per day", "300 per hour"]
)


def configure_logging(app):
    """Attach one handler to the package logger: stdout or logs/canteen_admin.log"""
    package_logger = logging.getLogger('app')
    if getattr(package_logger, '_configured', False):
        return package_logger

    if app.config.get('LOG_TO_STDOUT'):
        handler = logging.StreamHandler()
    else:
        log_dir = os.path.join(os.path.dirname(app.root_path), 'logs')
        os.makedirs(log_dir, exist_ok=True)
        handler = RotatingFileHandler(
            os.path.join(log_dir, 'canteen_admin.log'),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding='utf-8',
        )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if app.debug else logging.INFO)
    package_logger._configured = True
    return package_logger


def create_app(config_class=Config, canteen_api=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    # Initialize extensions with app
    db.init_app(app)

    # Configure SQLite for better concurrency handling
    if app.config.get('SQLALCHEMY_DATABASE_URI', '').startswith('sqlite'):
        from sqlalchemy import event
        from sqlalchemy.engine import Engine

        @event.listens_for(Engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            """Set SQLite pragmas for better concurrency"""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=10000")  # 10 seconds
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'Please sign in to continue.'}), 401

    @app.errorhandler(401)
    def unauthenticated(error):
        return unauthorized()

    @app.errorhandler(CSRFError)
    def csrf_error(error):
        return jsonify({'success': False, 'error': error.description}), 400

    @app.errorhandler(403)
    def forbidden(error):
        return jsonify({'success': False, 'error': 'You do not have access to this action.'}), 403

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({'success': False, 'error': 'Too many requests. Please wait and try again.'}), 429

    # Canteen backend client and the in-memory services around it
    from app.services import init_services
    init_services(app, canteen_api)

    # Register blueprints
    from app.auth import bp as auth_bp
    from app.admin import bp as admin_bp
    from app.api import bp as api_bp

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(api_bp, url_prefix='/api')

    # Initialize background polls
    if app.config.get('SKIP_SCHEDULER') or app.config.get('TESTING'):
        logger.info('Background scheduler skipped')
    else:
        from app.tasks.scheduler import init_scheduler
        init_scheduler(app)
        logger.info('Scheduler initialized')

    return app


from app import models
