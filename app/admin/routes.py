from flask import jsonify, request
from flask_login import login_required
from app.admin import bp
from app.admin.forms import EditUserForm, ApprovalForm, RejectionForm, SetBalanceForm
from app.admin.helpers import to_json, log_action, form_errors
from app.services import get_services
from app.utils.decorators import admin_required
from app.utils.entities import can_delete
from app.utils.listing import USER_LISTING, ARCHIVED_USER_LISTING, ViewOptions, view
from app.utils.money import format_peso
from app.utils.validators import normalize_phone
import logging

logger = logging.getLogger(__name__)


@bp.route('/dashboard')
@login_required
@admin_required
def dashboard():
    """Badge counts for the navigation and the home screen, from a fresh load"""
    return jsonify({'success': True, 'badges': get_services().badges.refresh_all()})


def _user_row(user):
    row = to_json(user)
    row['canDelete'] = can_delete(user)
    row['balanceDisplay'] = format_peso(user.get('balance'))
    return row


@bp.route('/users')
@login_required
@admin_required
def users():
    """Active accounts with search, zero-balance/pending filters and sorting"""
    users_service = get_services().users
    users_service.refresh()
    options = ViewOptions.from_args(request.args, USER_LISTING)
    rows = view(users_service.store.items(), USER_LISTING, options)
    return jsonify({
        'success': True,
        'users': [_user_row(u) for u in rows],
        'shown': len(rows),
        'total': len(users_service.store),
        'total_balance': float(users_service.total_balance(rows)),
        'sort': {'field': options.sort_field, 'order': options.sort_order},
    })


@bp.route('/users/archived')
@login_required
@admin_required
def archived_users():
    users_service = get_services().users
    users_service.refresh_archived()
    options = ViewOptions.from_args(request.args, ARCHIVED_USER_LISTING)
    rows = view(users_service.archived_store.items(), ARCHIVED_USER_LISTING, options)
    return jsonify({
        'success': True,
        'users': [_user_row(u) for u in rows],
        'shown': len(rows),
        'total': len(users_service.archived_store),
        'sort': {'field': options.sort_field, 'order': options.sort_order},
    })


@bp.route('/users/<user_id>', methods=['PATCH'])
@login_required
@admin_required
def edit_user(user_id):
    form = EditUserForm()
    if not form.validate_on_submit():
        return form_errors(form)

    fields = {
        'name': form.name.data.strip() if form.name.data else None,
        'phone': normalize_phone(form.phone.data) if form.phone.data else None,
        'note': form.note.data if form.note.data is not None else None,
    }
    photo = form.photo.data if getattr(form.photo.data, 'filename', None) else None
    result = get_services().users.update_profile(
        user_id, fields, photo=photo, remove_photo=form.remove_photo.data)

    log_action('USER_UPDATE', 'user', user_id, details={
        'fields': sorted(k for k, v in fields.items() if v is not None),
        'photo': bool(photo),
        'remove_photo': form.remove_photo.data,
    })
    return jsonify({'success': True, 'user': to_json(result.record)})


@bp.route('/users/<user_id>/approve', methods=['POST'])
@login_required
@admin_required
def approve_user(user_id):
    form = ApprovalForm()
    if not form.validate_on_submit():
        return form_errors(form)
    result = get_services().users.approve_registration(user_id, form.notes.data)
    log_action('USER_APPROVE', 'user', user_id, details={'notes': form.notes.data})
    return jsonify({'success': True, 'user': to_json(result.record)})


@bp.route('/users/<user_id>/reject', methods=['POST'])
@login_required
@admin_required
def reject_user(user_id):
    """Reject a pending registration. The account is deleted permanently."""
    form = RejectionForm()
    if not form.validate_on_submit():
        return form_errors(form)
    get_services().users.reject_registration(user_id, form.reason.data)
    log_action('USER_REJECT', 'user', user_id, details={'reason': form.reason.data})
    return jsonify({'success': True, 'removed': True})


@bp.route('/users/<user_id>', methods=['DELETE'])
@login_required
@admin_required
def archive_user(user_id):
    """Archive (soft delete) an account. Requires zero balance and a non-admin account."""
    result = get_services().users.archive(user_id)
    log_action('USER_ARCHIVE', 'user', user_id)
    return jsonify({'success': True, 'user': to_json(result.record)})


@bp.route('/users/<user_id>/restore', methods=['POST'])
@login_required
@admin_required
def restore_user(user_id):
    result = get_services().users.restore(user_id)
    log_action('USER_RESTORE', 'user', user_id)
    return jsonify({'success': True, 'user': to_json(result.record)})


@bp.route('/users/<user_id>/wallet')
@login_required
@admin_required
def user_wallet(user_id):
    balance = get_services().users.api.get_balance(user_id)
    return jsonify({'success': True, 'balance': to_json(balance), 'balanceDisplay': format_peso(balance)})


@bp.route('/users/<user_id>/wallet/set-balance', methods=['POST'])
@login_required
@admin_required
def set_user_balance(user_id):
    form = SetBalanceForm()
    if not form.validate_on_submit():
        return form_errors(form)
    result = get_services().users.set_balance(
        user_id, form.balance.data, form.admin_email.data, form.admin_password.data)
    log_action('USER_SET_BALANCE', 'user', user_id, details={'balance': float(form.balance.data)})
    return jsonify({'success': True, 'user': to_json(result.record)})
