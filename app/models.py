from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from app import db, login_manager


class Operator(UserMixin, db.Model):
    """Console operator account with role-based access control"""
    __tablename__ = 'operators'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256))
    full_name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.Enum('ADMIN', 'STAFF', name='operator_roles'),
                     nullable=False, default='STAFF')
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    audit_logs = db.relationship('AuditLog', backref='operator', lazy='dynamic')

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password hash"""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == 'ADMIN'

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'last_login': self.last_login.isoformat() if self.last_login else None,
        }

    def __repr__(self):
        return f'<Operator {self.email}>'


class AuditLog(db.Model):
    """Audit log of admin actions taken through the console"""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.Integer, db.ForeignKey('operators.id'), nullable=True)
    action = db.Column(db.String(100), nullable=False)
    resource_type = db.Column(db.String(50))
    resource_id = db.Column(db.String(50))
    details = db.Column(db.JSON)
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @staticmethod
    def create_log(operator_id=None, action=None, resource_type=None, resource_id=None,
                   details=None, ip_address=None, user_agent=None):
        """Create audit log entry"""
        log = AuditLog(
            operator_id=operator_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent
        )
        db.session.add(log)
        db.session.commit()
        return log

    @staticmethod
    def log_operator_action(operator_id, action, ip_address=None, user_agent=None, details=None):
        """Log login/logout and other session events"""
        return AuditLog.create_log(
            operator_id=operator_id,
            action=action,
            resource_type='operator',
            resource_id=str(operator_id),
            ip_address=ip_address,
            user_agent=user_agent,
            details=details
        )

    @staticmethod
    def log_admin_action(operator_id, action, resource_type, resource_id, ip_address=None,
                         user_agent=None, details=None):
        """Log admin action"""
        return AuditLog.create_log(
            operator_id=operator_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            ip_address=ip_address,
            user_agent=user_agent,
            details=details
        )

    def to_dict(self):
        return {
            'id': self.id,
            'operator_id': self.operator_id,
            'action': self.action,
            'resource_type': self.resource_type,
            'resource_id': self.resource_id,
            'details': self.details,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<AuditLog {self.action} {self.resource_type}:{self.resource_id}>'


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(Operator, int(user_id))
