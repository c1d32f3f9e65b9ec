"""
Per-application service registry, stored on app.extensions['canteen'].
"""

from flask import current_app

from app.services.approvals import ReservationApprovals, TopUpApprovals, UserApprovals
from app.services.badges import BadgeCounter
from app.services.events import EventBus
from app.services.menu import MenuService
from app.services.notifications import NotificationInbox
from app.utils.canteen_api import CanteenAPI


class CanteenServices:
    def __init__(self, api, bus=None):
        self.api = api
        self.bus = bus or EventBus()
        self.reservations = ReservationApprovals(api, self.bus)
        self.topups = TopUpApprovals(api, self.bus)
        self.users = UserApprovals(api, self.bus)
        self.menu = MenuService(api, self.bus)
        self.inbox = NotificationInbox(api, self.bus)
        self.badges = BadgeCounter(self)


def init_services(app, api=None):
    api = api or CanteenAPI.from_config(app.config)
    services = CanteenServices(api)
    app.extensions['canteen'] = services
    return services


def get_services():
    return current_app.extensions['canteen']
