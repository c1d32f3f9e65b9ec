"""
Top-up verification: pending GCash/Maya top-ups waiting for an admin
"""

from flask import jsonify, request
from flask_login import login_required
from app.admin.forms import RejectionForm
from app.admin.helpers import to_json, log_action, form_errors
from app.services import get_services
from app.utils.decorators import admin_required
from app.utils.listing import TOPUP_LISTING, ViewOptions, view
from app.utils.money import format_peso


def _topup_row(topup):
    row = to_json(topup)
    row['amountDisplay'] = format_peso(topup.get('amount'))
    return row


def register_topup_routes(bp):
    """Register top-up verification routes"""

    @bp.route('/topups', methods=['GET'])
    @login_required
    @admin_required
    def topups():
        service = get_services().topups
        service.refresh()
        options = ViewOptions.from_args(request.args, TOPUP_LISTING)
        rows = view(service.store.items(), TOPUP_LISTING, options)
        return jsonify({
            'success': True,
            'topups': [_topup_row(t) for t in rows],
            'shown': len(rows),
            'pending': len(service.store),
        })

    @bp.route('/topups/<topup_id>/approve', methods=['POST'])
    @login_required
    @admin_required
    def approve_topup(topup_id):
        """Approve a top-up. The backend credits the wallet."""
        result = get_services().topups.approve(topup_id)
        log_action('TOPUP_APPROVE', 'topup', topup_id)
        return jsonify({'success': True, 'removed': result.removed, 'topup': to_json(result.record)})

    @bp.route('/topups/<topup_id>/reject', methods=['POST'])
    @login_required
    @admin_required
    def reject_topup(topup_id):
        form = RejectionForm()
        if not form.validate_on_submit():
            return form_errors(form)
        result = get_services().topups.reject(topup_id, form.reason.data)
        log_action('TOPUP_REJECT', 'topup', topup_id, details={'reason': form.reason.data})
        return jsonify({'success': True, 'removed': result.removed, 'topup': to_json(result.record)})
