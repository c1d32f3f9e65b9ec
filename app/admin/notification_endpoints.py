"""
Admin notification inbox
"""

from flask import jsonify, request
from flask_login import login_required
from app.admin.forms import BulkActionForm, MarkReadForm
from app.admin.helpers import log_action, form_errors, page_args
from app.services import get_services
from app.services.notifications import KINDS
from app.utils.decorators import admin_required


def register_notification_routes(bp):
    """Register notification inbox routes"""

    @bp.route('/notifications', methods=['GET'])
    @login_required
    @admin_required
    def notifications():
        """Paginated inbox. Filters: kind, unread=1"""
        inbox = get_services().inbox
        inbox.refresh()
        kind = request.args.get('kind') or None
        if kind is not None and kind not in KINDS:
            return jsonify({'success': False, 'error': f'Unknown notification kind: {kind}'}), 400
        unread_only = request.args.get('unread', '').lower() in ('1', 'true', 'yes')
        page, per_page = page_args()
        result = inbox.paginate(page, per_page, kind=kind, unread_only=unread_only)
        return jsonify({'success': True, 'unread': inbox.unread_count, **result.to_dict()})

    @bp.route('/notifications/mark-read', methods=['POST'])
    @login_required
    @admin_required
    def mark_notifications_read():
        form = MarkReadForm()
        if not form.validate_on_submit():
            return form_errors(form)
        inbox = get_services().inbox
        if form.all.data:
            marked = inbox.mark_all_read()
        elif form.ids.data:
            marked = inbox.mark_read(form.ids.data)
        else:
            return jsonify({'success': False, 'error': 'Select notifications or set all'}), 400
        log_action('NOTIFICATION_MARK_READ', 'notification', 'all' if form.all.data else ','.join(form.ids.data),
                   details={'marked': marked})
        return jsonify({'success': True, 'marked': marked, 'unread': inbox.unread_count})

    @bp.route('/notifications/<notification_id>', methods=['DELETE'])
    @login_required
    @admin_required
    def delete_notification(notification_id):
        get_services().inbox.delete(notification_id)
        log_action('NOTIFICATION_DELETE', 'notification', notification_id)
        return jsonify({'success': True})

    @bp.route('/notifications/bulk-delete', methods=['POST'])
    @login_required
    @admin_required
    def bulk_delete_notifications():
        form = BulkActionForm()
        if not form.validate_on_submit():
            return form_errors(form)
        result = get_services().inbox.delete_many(form.ids.data)
        log_action('NOTIFICATION_BULK_DELETE', 'notification', ','.join(form.ids.data), details=result)
        return jsonify({'success': not result['failed'], **result})
