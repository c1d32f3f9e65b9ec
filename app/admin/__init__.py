from flask import Blueprint

bp = Blueprint('admin', __name__)

from app.admin import routes, errors
from app.admin.reservation_endpoints import register_reservation_routes
from app.admin.order_endpoints import register_order_routes
from app.admin.topup_endpoints import register_topup_routes
from app.admin.menu_endpoints import register_menu_routes
from app.admin.notification_endpoints import register_notification_routes
from app.admin.audit import register_audit_routes

# Register reservation review and date restriction routes
register_reservation_routes(bp)

# Register kitchen order board routes
register_order_routes(bp)

# Register top-up verification routes
register_topup_routes(bp)

# Register menu item routes
register_menu_routes(bp)

# Register notification inbox routes
register_notification_routes(bp)

# Register audit log routes
register_audit_routes(bp)
