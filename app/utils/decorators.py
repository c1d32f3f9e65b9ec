from functools import wraps
from flask import abort
from flask_login import current_user

def role_required(*roles):
    """Decorator to require specific operator roles"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return abort(401)
            if current_user.role not in roles:
                return abort(403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator

def admin_required(f):
    """Decorator to require admin role"""
    return role_required('ADMIN')(f)

def staff_required(f):
    """Decorator to require any console role (admin or staff)"""
    return role_required('ADMIN', 'STAFF')(f)
