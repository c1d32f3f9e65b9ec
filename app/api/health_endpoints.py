"""
Health Check Endpoints
Provides system health monitoring
"""

from flask import jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from app import db
from app.services import get_services
from app.utils.datetime_utils import manila_now
import logging

logger = logging.getLogger(__name__)


def register_health_routes(bp):
    """Register health check routes"""

    @bp.route('/health', methods=['GET'])
    def health_check():
        """
        Health check endpoint for monitoring

        Checks:
        - Database connectivity
        - Canteen backend URL and admin token configured
        - Background scheduler running (when enabled)
        """
        checks = {
            'database': check_database(),
            'canteen_api': check_canteen_api(),
            'scheduler': check_scheduler()
        }

        all_healthy = all(checks.values())
        status_code = 200 if all_healthy else 503

        return jsonify({
            'status': 'healthy' if all_healthy else 'unhealthy',
            'checks': checks,
            'timestamp': manila_now().isoformat(),
        }), status_code

    @bp.route('/health/database', methods=['GET'])
    def health_database():
        """Check database health"""
        healthy = check_database()
        return jsonify({
            'database': healthy,
            'timestamp': manila_now().isoformat()
        }), 200 if healthy else 503


def check_database():
    """Check database connectivity"""
    try:
        db.session.execute(db.text('SELECT 1'))
        return True
    except SQLAlchemyError as e:
        logger.error(f'Database health check failed: {str(e)}')
        return False


def check_canteen_api():
    """Check the canteen backend client is configured"""
    if not get_services().api.is_configured:
        logger.warning('Canteen API URL or token not configured')
        return False
    return True


def check_scheduler():
    """A disabled scheduler counts as healthy"""
    if current_app.config.get('SKIP_SCHEDULER') or current_app.config.get('TESTING'):
        return True
    scheduler = getattr(current_app, 'scheduler', None)
    if scheduler is None or not scheduler.running:
        logger.warning('Background scheduler is not running')
        return False
    return True
