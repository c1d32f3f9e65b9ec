"""
Shared helpers for the admin JSON endpoints
"""

from dataclasses import asdict, is_dataclass
from decimal import Decimal
from flask import request
from flask_login import current_user
from app.models import AuditLog


def to_json(value):
    """Recursively convert Decimals to floats (and dataclasses to dicts)."""
    if isinstance(value, Decimal):
        return float(value)
    if is_dataclass(value) and not isinstance(value, type):
        return to_json(asdict(value))
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def log_action(action, resource_type, resource_id, details=None):
    """Record an admin action in the local audit log"""
    return AuditLog.log_admin_action(
        operator_id=current_user.id if current_user.is_authenticated else None,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id)[:50] if resource_id is not None else None,
        ip_address=request.remote_addr,
        user_agent=request.headers.get('User-Agent'),
        details=details
    )


def form_errors(form):
    return {'success': False, 'errors': form.errors}, 400


def page_args(default_per_page=20):
    page = request.args.get('page', 1, type=int) or 1
    per_page = request.args.get('per_page', default_per_page, type=int) or default_per_page
    return max(1, page), max(1, min(per_page, 100))
