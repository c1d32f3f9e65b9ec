"""
JSON error responses for the admin blueprint
"""

from flask import jsonify
from app.admin import bp
from app.services.approvals import BusinessRuleError
from app.utils.canteen_api import ApiError
import logging

logger = logging.getLogger(__name__)


@bp.errorhandler(ApiError)
def handle_api_error(error):
    if error.is_network_error:
        status = 502
        message = 'Canteen backend is unreachable. Please try again.'
    elif 400 <= error.status < 500:
        status = error.status
        message = error.message
    else:
        status = 502
        message = f'Canteen backend error: {error.message}'
    logger.error(f'Backend call failed ({error.status}): {error.message}')
    return jsonify({'success': False, 'error': message, 'backend_status': error.status}), status


@bp.errorhandler(BusinessRuleError)
def handle_business_rule(error):
    logger.info(f'Action refused: {error.message}')
    return jsonify({'success': False, 'error': error.message, 'id': error.entity_id}), 409


@bp.errorhandler(ValueError)
def handle_value_error(error):
    return jsonify({'success': False, 'error': str(error)}), 400
