"""
Audit trail of console actions: filtered listing, statistics and CSV export
"""

from flask import jsonify, make_response, request
from flask_login import login_required
from sqlalchemy import desc, or_
from datetime import datetime, timedelta
from app import db
from app.admin.helpers import page_args
from app.models import AuditLog, Operator
from app.utils.datetime_utils import manila_now_naive
from app.utils.decorators import admin_required
import csv
import io
import json


def _filtered_query(args):
    query = AuditLog.query

    action_filter = args.get('action', '')
    if action_filter:
        query = query.filter(AuditLog.action.ilike(f'%{action_filter}%'))

    resource_filter = args.get('resource', '')
    if resource_filter:
        query = query.filter(AuditLog.resource_type.ilike(f'%{resource_filter}%'))

    resource_id = args.get('resource_id', '')
    if resource_id:
        query = query.filter(AuditLog.resource_id == resource_id)

    operator_filter = args.get('operator', '')
    if operator_filter:
        query = query.filter(or_(
            AuditLog.operator_id == args.get('operator', type=int),
            AuditLog.resource_id == operator_filter
        ))

    date_from = args.get('date_from', '')
    if date_from:
        try:
            query = query.filter(AuditLog.created_at >= datetime.strptime(date_from, '%Y-%m-%d'))
        except ValueError:
            raise ValueError(f'Invalid date_from: {date_from}')

    date_to = args.get('date_to', '')
    if date_to:
        try:
            # Inclusive of the whole day
            end = datetime.strptime(date_to, '%Y-%m-%d') + timedelta(days=1)
            query = query.filter(AuditLog.created_at < end)
        except ValueError:
            raise ValueError(f'Invalid date_to: {date_to}')

    return query.order_by(desc(AuditLog.created_at), desc(AuditLog.id))


def get_audit_statistics():
    """Counts over the last day/week/month and the most frequent actions"""
    now = datetime.utcnow()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    top_actions = db.session.query(
        AuditLog.action, db.func.count(AuditLog.id)
    ).group_by(AuditLog.action).order_by(
        db.func.count(AuditLog.id).desc()
    ).limit(10).all()

    top_operators = db.session.query(
        AuditLog.operator_id, Operator.full_name, db.func.count(AuditLog.id)
    ).join(Operator).group_by(
        AuditLog.operator_id, Operator.full_name
    ).order_by(
        db.func.count(AuditLog.id).desc()
    ).limit(10).all()

    return {
        'total_logs': AuditLog.query.count(),
        'today_logs': AuditLog.query.filter(AuditLog.created_at >= day_start).count(),
        'week_logs': AuditLog.query.filter(AuditLog.created_at >= now - timedelta(days=7)).count(),
        'month_logs': AuditLog.query.filter(AuditLog.created_at >= now - timedelta(days=30)).count(),
        'top_actions': [{'action': action, 'count': count} for action, count in top_actions],
        'top_operators': [
            {'operator_id': operator_id, 'name': name, 'count': count}
            for operator_id, name, count in top_operators
        ],
    }


def register_audit_routes(bp):
    """Register audit log routes"""

    @bp.route('/audit', methods=['GET'])
    @login_required
    @admin_required
    def audit_logs():
        """
        Paginated audit entries, newest first.
        Filters: action, resource, resource_id, operator, date_from, date_to (YYYY-MM-DD)
        """
        page, per_page = page_args(default_per_page=50)
        logs = _filtered_query(request.args).paginate(page=page, per_page=per_page, error_out=False)
        return jsonify({
            'success': True,
            'logs': [log.to_dict() for log in logs.items],
            'page': logs.page,
            'pages': logs.pages,
            'total': logs.total,
        })

    @bp.route('/audit/stats', methods=['GET'])
    @login_required
    @admin_required
    def audit_stats():
        return jsonify({'success': True, 'stats': get_audit_statistics()})

    @bp.route('/audit/export', methods=['GET'])
    @login_required
    @admin_required
    def export_audit():
        """Export the filtered audit entries to CSV"""
        logs = _filtered_query(request.args).all()

        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow([
            'ID', 'Date/Time (UTC)', 'Operator', 'Action',
            'Resource type', 'Resource ID', 'IP address', 'Details'
        ])
        for log in logs:
            operator = f'{log.operator.full_name} ({log.operator.email})' if log.operator else 'System'
            writer.writerow([
                log.id,
                log.created_at.strftime('%Y-%m-%d %H:%M:%S') if log.created_at else '',
                operator,
                log.action,
                log.resource_type or '',
                log.resource_id or '',
                log.ip_address or '',
                json.dumps(log.details, ensure_ascii=False) if log.details else ''
            ])

        response = make_response(output.getvalue())
        response.headers['Content-Type'] = 'text/csv; charset=utf-8'
        response.headers['Content-Disposition'] = (
            f'attachment; filename=audit_logs_{manila_now_naive().strftime("%Y%m%d_%H%M%S")}.csv'
        )
        return response
