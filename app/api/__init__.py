from flask import Blueprint

bp = Blueprint('api', __name__)

from app.api.health_endpoints import register_health_routes

# Register health check routes
register_health_routes(bp)
