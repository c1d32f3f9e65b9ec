"""
Kitchen order board: approved reservations moving through
Preparing, Ready and Claimed
"""

from flask import jsonify, request
from flask_login import login_required
from app.admin.helpers import to_json, log_action
from app.services import get_services
from app.utils.decorators import staff_required
from app.utils.entities import pretty_pickup_window, reservation_total
from app.utils.listing import ORDER_SORT_FIELDS, ORDER_TABS, order_tab_counts, order_view
from app.utils.money import format_peso
from app.utils.search_query import active_filter_chips, parse_search_query, remove_filter
import logging

logger = logging.getLogger(__name__)


def _order_row(order):
    row = to_json(order)
    row['pickupWindow'] = pretty_pickup_window(order.get('when'))
    row['totalDisplay'] = format_peso(reservation_total(order))
    return row


def register_order_routes(bp):
    """Register kitchen order board routes"""

    @bp.route('/orders', methods=['GET'])
    @login_required
    @staff_required
    def orders():
        """
        Order board.
        Query args: tab, q (supports field:value filters), sort, order
        and remove=field:value to drop one filter chip from q.
        """
        tab = request.args.get('tab', 'All')
        if tab not in ORDER_TABS:
            tab = 'All'
        sort_field = request.args.get('sort', 'pickup')
        if sort_field not in ORDER_SORT_FIELDS:
            sort_field = 'pickup'
        sort_order = 'desc' if request.args.get('order') == 'desc' else 'asc'

        parsed = parse_search_query(request.args.get('q', ''))
        chip = request.args.get('remove')
        if chip and ':' in chip:
            name, value = chip.split(':', 1)
            parsed = remove_filter(parsed, name, value)
        query = parsed.to_text()

        service = get_services().reservations
        service.refresh()
        items = service.store.items()
        rows = order_view(items, tab=tab, query=query, sort_field=sort_field, sort_order=sort_order)
        return jsonify({
            'success': True,
            'orders': [_order_row(o) for o in rows],
            'counts': order_tab_counts(items),
            'tab': tab,
            'query': query,
            'chips': active_filter_chips(parsed),
            'sort': {'field': sort_field, 'order': sort_order},
        })

    @bp.route('/orders/<order_id>/advance', methods=['POST'])
    @login_required
    @staff_required
    def advance_order(order_id):
        data = request.get_json(silent=True) or request.form
        next_status = (data.get('status') or '').strip()
        if not next_status:
            return jsonify({'success': False, 'error': 'Next status is required'}), 400

        result = get_services().reservations.advance(order_id, next_status)
        log_action('ORDER_ADVANCE', 'reservation', order_id, details={'status': next_status})
        return jsonify({'success': True, 'order': to_json(result.record)})
