"""
Menu management: items, categories, stock and visibility
"""

from flask import jsonify, request
from flask_login import login_required
from app.admin.forms import MenuItemForm, StockForm, VisibilityForm
from app.admin.helpers import to_json, log_action, form_errors
from app.services import get_services
from app.services.menu import menu_form_fields
from app.utils.decorators import admin_required, staff_required
from app.utils.listing import fold


def _image(form):
    upload = form.image.data
    return upload if getattr(upload, 'filename', None) else None


def register_menu_routes(bp):
    """Register menu item routes"""

    @bp.route('/menu', methods=['GET'])
    @login_required
    @staff_required
    def menu_items():
        """Menu items, optionally narrowed by category and a name search"""
        items = get_services().menu.list_items()
        category = request.args.get('category', '')
        if category and category != 'All':
            items = [i for i in items if fold(i.get('category')) == fold(category)]
        search = fold(request.args.get('q', ''))
        if search:
            items = [i for i in items if search in fold(i.get('name'))]
        return jsonify({'success': True, 'items': to_json(items), 'shown': len(items)})

    @bp.route('/menu/categories', methods=['GET'])
    @login_required
    @staff_required
    def menu_categories():
        return jsonify({'success': True, 'categories': get_services().menu.categories()})

    @bp.route('/menu/<item_id>', methods=['GET'])
    @login_required
    @staff_required
    def menu_item(item_id):
        item = get_services().menu.get(item_id)
        if item is None:
            return jsonify({'success': False, 'error': 'Menu item not found'}), 404
        return jsonify({'success': True, 'item': to_json(item)})

    @bp.route('/menu', methods=['POST'])
    @login_required
    @admin_required
    def create_menu_item():
        form = MenuItemForm()
        if not form.validate_on_submit():
            return form_errors(form)
        fields = menu_form_fields(form.name.data, form.category.data, form.price.data,
                                  form.stock.data, form.is_active.data)
        created = get_services().menu.create(fields, image=_image(form))
        log_action('MENU_CREATE', 'menu_item', (created or {}).get('id'), details=fields)
        return jsonify({'success': True, 'item': to_json(created)}), 201

    @bp.route('/menu/<item_id>', methods=['PUT'])
    @login_required
    @admin_required
    def update_menu_item(item_id):
        form = MenuItemForm()
        if not form.validate_on_submit():
            return form_errors(form)
        fields = menu_form_fields(form.name.data, form.category.data, form.price.data,
                                  form.stock.data, form.is_active.data)
        updated = get_services().menu.update(item_id, fields, image=_image(form))
        log_action('MENU_UPDATE', 'menu_item', item_id, details=fields)
        return jsonify({'success': True, 'item': to_json(updated)})

    @bp.route('/menu/<item_id>', methods=['DELETE'])
    @login_required
    @admin_required
    def delete_menu_item(item_id):
        get_services().menu.delete(item_id)
        log_action('MENU_DELETE', 'menu_item', item_id)
        return jsonify({'success': True})

    @bp.route('/menu/<item_id>/visibility', methods=['POST'])
    @login_required
    @admin_required
    def set_menu_visibility(item_id):
        form = VisibilityForm()
        if not form.validate_on_submit():
            return form_errors(form)
        result = get_services().menu.set_visibility(item_id, form.is_active.data)
        log_action('MENU_VISIBILITY', 'menu_item', item_id, details={'isActive': form.is_active.data})
        return jsonify({'success': True, 'item': to_json(result)})

    @bp.route('/menu/<item_id>/stock', methods=['POST'])
    @login_required
    @staff_required
    def set_menu_stock(item_id):
        form = StockForm()
        if not form.validate_on_submit():
            return form_errors(form)
        result = get_services().menu.set_stock(item_id, form.stock.data)
        log_action('MENU_STOCK', 'menu_item', item_id, details={'stock': form.stock.data})
        return jsonify({'success': True, 'item': to_json(result)})
