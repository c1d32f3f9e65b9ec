"""
Menu item writes. Input is validated by app.admin.forms.MenuItemForm
before it gets here.
"""

import logging

from app.services.events import MenuUpdated
from app.utils.money import round_currency

logger = logging.getLogger(__name__)


def menu_form_fields(name, category, price, stock, is_active=True):
    """Multipart field values in the shape the backend expects."""
    return {
        'name': name.strip(),
        'category': category,
        'price': str(round_currency(price)),
        'stock': str(int(stock or 0)),
        'isActive': 'true' if is_active else 'false',
    }


class MenuService:
    def __init__(self, api, bus):
        self.api = api
        self.bus = bus

    def list_items(self):
        return self.api.list_menu()

    def categories(self):
        names = []
        for category in self.api.list_categories():
            name = category.get('name') if isinstance(category, dict) else category
            if name and name not in names:
                names.append(str(name))
        return names

    def get(self, item_id):
        return self.api.get_menu_item(item_id)

    def create(self, fields, image=None):
        created = self.api.create_menu_item(fields, image=image)
        logger.info(f"Menu item created: {fields.get('name')}")
        self.bus.publish(MenuUpdated())
        return created

    def update(self, item_id, fields, image=None):
        updated = self.api.update_menu_item(item_id, fields, image=image)
        logger.info(f'Menu item {item_id} updated')
        self.bus.publish(MenuUpdated())
        return updated

    def delete(self, item_id):
        self.api.delete_menu_item(item_id)
        logger.info(f'Menu item {item_id} deleted')
        self.bus.publish(MenuUpdated())

    def set_visibility(self, item_id, visible):
        result = self.api.patch_menu_item(item_id, {'isActive': bool(visible)})
        self.bus.publish(MenuUpdated())
        return result

    def set_stock(self, item_id, stock):
        stock = int(stock)
        if stock < 0:
            raise ValueError('Stock must be 0 or more.')
        result = self.api.patch_menu_item(item_id, {'stock': stock})
        self.bus.publish(MenuUpdated())
        return result
