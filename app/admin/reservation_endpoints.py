"""
Reservation review: pending queue, approve/reject (single and bulk)
and the reservation date restriction editor
"""

from flask import jsonify, request
from flask_login import login_required
from app.admin.forms import BulkActionForm, DateRangeForm, MonthForm
from app.admin.helpers import to_json, log_action, form_errors
from app.services import get_services
from app.utils.decorators import admin_required
from app.utils.entities import pretty_pickup_window
from app.utils.listing import RESERVATION_LISTING, ViewOptions, view
from app.utils.restrictions import DateRestrictionSet, is_blocked
from app.utils.statuses import ORDER_STATUSES, tab_counts
import logging

logger = logging.getLogger(__name__)

RESERVATION_TABS = ORDER_STATUSES.order + ('All',)


def _reservation_row(reservation):
    row = to_json(reservation)
    row['pickupWindow'] = pretty_pickup_window(reservation.get('when'))
    return row


def _load_restrictions(api):
    return DateRestrictionSet.from_payload(api.get_date_restrictions())


def _save_restrictions(api, rules, action, details=None):
    response = api.save_date_restrictions(rules.to_payload())
    saved = DateRestrictionSet.from_payload(response) if response else rules
    log_action(action, 'date_restrictions', 'reservations', details=details)
    logger.info(f'Reservation date restrictions updated: {action}')
    return saved


def register_reservation_routes(bp):
    """Register reservation review routes"""

    @bp.route('/reservations', methods=['GET'])
    @login_required
    @admin_required
    def reservations():
        """Reservation list with status tabs, pickup window filter and search"""
        service = get_services().reservations
        service.refresh()
        items = service.store.items()
        options = ViewOptions.from_args(request.args, RESERVATION_LISTING)
        rows = view(items, RESERVATION_LISTING, options)
        return jsonify({
            'success': True,
            'reservations': [_reservation_row(r) for r in rows],
            'counts': tab_counts(items, RESERVATION_TABS),
            'shown': len(rows),
        })

    @bp.route('/reservations/<reservation_id>/approve', methods=['POST'])
    @login_required
    @admin_required
    def approve_reservation(reservation_id):
        result = get_services().reservations.approve(reservation_id)
        log_action('RESERVATION_APPROVE', 'reservation', reservation_id)
        return jsonify({'success': True, 'reservation': to_json(result.record)})

    @bp.route('/reservations/<reservation_id>/reject', methods=['POST'])
    @login_required
    @admin_required
    def reject_reservation(reservation_id):
        result = get_services().reservations.reject(reservation_id)
        log_action('RESERVATION_REJECT', 'reservation', reservation_id)
        return jsonify({'success': True, 'reservation': to_json(result.record)})

    @bp.route('/reservations/bulk/<action>', methods=['POST'])
    @login_required
    @admin_required
    def bulk_reservations(action):
        """Best-effort bulk approve/reject; each id succeeds or fails on its own"""
        if action not in ('approve', 'reject'):
            return jsonify({'success': False, 'error': f'Unknown bulk action: {action}'}), 404
        form = BulkActionForm()
        if not form.validate_on_submit():
            return form_errors(form)

        service = get_services().reservations
        ids = form.ids.data
        result = service.approve_many(ids) if action == 'approve' else service.reject_many(ids)
        log_action(f'RESERVATION_BULK_{action.upper()}', 'reservation', ','.join(ids),
                   details=result.to_dict())
        return jsonify({'success': result.all_succeeded, **result.to_dict()})

    # ---- date restrictions ---------------------------------------------

    @bp.route('/reservation-date-restrictions', methods=['GET'])
    @login_required
    @admin_required
    def get_date_restrictions():
        rules = _load_restrictions(get_services().api)
        return jsonify({'success': True, 'restrictions': rules.describe()})

    @bp.route('/reservation-date-restrictions', methods=['PUT'])
    @login_required
    @admin_required
    def put_date_restrictions():
        """Replace the whole rule set; malformed entries are dropped"""
        payload = request.get_json(silent=True) or {}
        rules = DateRestrictionSet.from_payload(payload)
        saved = _save_restrictions(get_services().api, rules, 'RESTRICTIONS_REPLACE',
                                   details=rules.to_payload())
        return jsonify({'success': True, 'restrictions': saved.describe()})

    @bp.route('/reservation-date-restrictions/ranges', methods=['POST'])
    @login_required
    @admin_required
    def add_restricted_range():
        form = DateRangeForm()
        if not form.validate_on_submit():
            return form_errors(form)
        api = get_services().api
        rules = _load_restrictions(api).add_range(form.start.data, form.end.data)
        saved = _save_restrictions(api, rules, 'RESTRICTIONS_ADD_RANGE',
                                   details={'from': form.start.data, 'to': form.end.data})
        return jsonify({'success': True, 'restrictions': saved.describe()})

    @bp.route('/reservation-date-restrictions/ranges/<int:index>', methods=['DELETE'])
    @login_required
    @admin_required
    def remove_restricted_range(index):
        api = get_services().api
        rules = _load_restrictions(api).remove_range(index)
        saved = _save_restrictions(api, rules, 'RESTRICTIONS_REMOVE_RANGE', details={'index': index})
        return jsonify({'success': True, 'restrictions': saved.describe()})

    @bp.route('/reservation-date-restrictions/months', methods=['POST'])
    @login_required
    @admin_required
    def add_restricted_month():
        form = MonthForm()
        if not form.validate_on_submit():
            return form_errors(form)
        api = get_services().api
        rules = _load_restrictions(api).add_month(form.year.data, form.month.data)
        saved = _save_restrictions(api, rules, 'RESTRICTIONS_ADD_MONTH',
                                   details={'year': form.year.data, 'month': form.month.data})
        return jsonify({'success': True, 'restrictions': saved.describe()})

    @bp.route('/reservation-date-restrictions/months/<int:year>/<int:month>', methods=['DELETE'])
    @login_required
    @admin_required
    def remove_restricted_month(year, month):
        api = get_services().api
        rules = _load_restrictions(api).remove_month(year, month)
        saved = _save_restrictions(api, rules, 'RESTRICTIONS_REMOVE_MONTH',
                                   details={'year': year, 'month': month})
        return jsonify({'success': True, 'restrictions': saved.describe()})

    @bp.route('/reservation-date-restrictions/weekdays/<int:weekday>', methods=['POST'])
    @login_required
    @admin_required
    def toggle_restricted_weekday(weekday):
        api = get_services().api
        rules = _load_restrictions(api).toggle_weekday(weekday)
        saved = _save_restrictions(api, rules, 'RESTRICTIONS_TOGGLE_WEEKDAY', details={'weekday': weekday})
        return jsonify({'success': True, 'restrictions': saved.describe()})

    @bp.route('/reservation-date-restrictions/check', methods=['GET'])
    @login_required
    @admin_required
    def check_restricted_date():
        candidate = request.args.get('date', '')
        rules = _load_restrictions(get_services().api)
        return jsonify({'success': True, 'date': candidate, 'blocked': is_blocked(candidate, rules)})
