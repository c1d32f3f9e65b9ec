"""
Periodic refreshes behind the navigation badges
Notifications every NOTIFICATION_POLL_SECONDS, pending top-ups every TOPUP_POLL_SECONDS
"""

import logging

logger = logging.getLogger(__name__)


def poll_notifications_with_context(app):
    """Wrapper that creates app context for poll_notifications"""
    with app.app_context():
        return poll_notifications()


def poll_topups_with_context(app):
    """Wrapper that creates app context for poll_topups"""
    with app.app_context():
        return poll_topups()


def poll_notifications():
    from app.services import get_services
    unread = get_services().badges.poll_notifications()
    logger.debug(f'Notification poll: {unread} unread')
    return unread


def poll_topups():
    from app.services import get_services
    pending = get_services().badges.poll_topups()
    logger.debug(f'Top-up poll: {pending} pending')
    return pending
