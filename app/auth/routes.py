from flask import jsonify, request
from flask_login import login_user, logout_user, current_user, login_required
from flask_wtf.csrf import generate_csrf
from app import db, limiter
from app.auth import bp
from app.auth.forms import LoginForm
from app.models import Operator, AuditLog
from app.utils.datetime_utils import manila_now_naive
import logging

logger = logging.getLogger(__name__)


@bp.route('/csrf', methods=['GET'])
def csrf_token():
    """CSRF token for the JSON front-end"""
    return jsonify({'csrf_token': generate_csrf()})


@bp.route('/login', methods=['POST'])
@limiter.limit("5 per minute")  # Max 5 login attempts per minute
def login():
    if current_user.is_authenticated:
        return jsonify({'success': True, 'operator': current_user.to_dict()})

    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify({'success': False, 'errors': form.errors}), 400

    operator = Operator.query.filter_by(email=form.email.data.strip().lower()).first()
    if operator is None or not operator.check_password(form.password.data):
        logger.warning(f'Failed console login for {form.email.data}')
        return jsonify({'success': False, 'error': 'Invalid email or password'}), 401

    if not operator.is_active:
        return jsonify({'success': False, 'error': 'This account is deactivated'}), 403

    login_user(operator, remember=form.remember_me.data)
    operator.last_login = manila_now_naive()
    db.session.commit()

    AuditLog.log_operator_action(
        operator_id=operator.id,
        action='LOGIN',
        ip_address=request.remote_addr,
        user_agent=request.headers.get('User-Agent'),
        details={'remember_me': form.remember_me.data}
    )
    logger.info(f'Operator {operator.email} logged in')
    return jsonify({'success': True, 'operator': operator.to_dict()})


@bp.route('/logout', methods=['POST'])
@login_required
def logout():
    AuditLog.log_operator_action(
        operator_id=current_user.id,
        action='LOGOUT',
        ip_address=request.remote_addr,
        user_agent=request.headers.get('User-Agent')
    )
    logout_user()
    return jsonify({'success': True})


@bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'success': True, 'operator': current_user.to_dict()})
