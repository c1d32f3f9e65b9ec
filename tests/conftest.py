import copy

import pytest

from app import create_app, db
from app.models import Operator
from app.services import CanteenServices
from app.utils.canteen_api import ApiError
from config import TestingConfig

ADMIN_EMAIL = 'admin@canteen.ph'
STAFF_EMAIL = 'kitchen@canteen.ph'
PASSWORD = 'secret-pass'


class FakeCanteenAPI:
    """
    In-memory stand-in for CanteenAPI.

    Every call is appended to ``calls`` as (method, args). ``fail`` makes a
    method raise an ApiError, either always or only for one entity id.
    """

    def __init__(self):
        self.users = []
        self.archived_users = []
        self.wallets = {}
        self.reservations = []
        self.topups = []
        self.menu = []
        self.categories = []
        self.restrictions = {}
        self.notifications = []
        self.credentials = (ADMIN_EMAIL, PASSWORD)
        self.calls = []
        self._failures = {}
        self._next_id = 100

    # -- test helpers --------------------------------------------------------

    @property
    def is_configured(self):
        return True

    def fail(self, method, error, entity_id=None):
        self._failures.setdefault(method, {})[entity_id] = error

    def clear_failures(self):
        self._failures = {}

    def called(self, method):
        return [args for name, args in self.calls if name == method]

    def _call(self, method, *args):
        self.calls.append((method, args))
        failures = self._failures.get(method, {})
        entity_id = str(args[0]) if args else None
        error = failures.get(entity_id) or failures.get(None)
        if error is not None:
            raise error

    @staticmethod
    def _find(collection, entity_id):
        for record in collection:
            if str(record.get('id')) == str(entity_id):
                return record
        return None

    def _require(self, collection, entity_id, noun):
        record = self._find(collection, entity_id)
        if record is None:
            raise ApiError(f'{noun} not found', 404)
        return record

    # -- users ---------------------------------------------------------------

    def list_users(self):
        self._call('list_users')
        return copy.deepcopy(self.users)

    def list_archived_users(self):
        self._call('list_archived_users')
        return copy.deepcopy(self.archived_users)

    def get_user(self, user_id):
        self._call('get_user', user_id)
        record = self._find(self.users, user_id) or self._find(self.archived_users, user_id)
        return copy.deepcopy(record)

    def get_wallet(self, user_id):
        self._call('get_wallet', user_id)
        return {'wallet': {'balance': self.wallets.get(str(user_id), 0)}}

    def get_balance(self, user_id):
        return self.get_wallet(user_id)['wallet']['balance']

    def update_user(self, user_id, fields, photo=None, remove_photo=False):
        self._call('update_user', user_id, fields, photo, remove_photo)
        user = self._require(self.users, user_id, 'User')
        user.update(fields)
        if remove_photo:
            user['profilePictureUrl'] = None
        return copy.deepcopy(user)

    def approve_user(self, user_id, notes=None):
        self._call('approve_user', user_id, notes)
        user = self._require(self.users, user_id, 'User')
        user['status'] = 'approved'
        return copy.deepcopy(user)

    def reject_user(self, user_id, reason=None):
        self._call('reject_user', user_id, reason)
        user = self._require(self.users, user_id, 'User')
        self.users.remove(user)
        return {'deleted': True}

    def delete_user(self, user_id):
        self._call('delete_user', user_id)
        user = self._require(self.users, user_id, 'User')
        self.users.remove(user)
        user['deletedAt'] = '2026-10-19T02:00:00Z'
        self.archived_users.append(user)
        return {'archived': True}

    def restore_user(self, user_id):
        self._call('restore_user', user_id)
        user = self._require(self.archived_users, user_id, 'User')
        self.archived_users.remove(user)
        user.pop('deletedAt', None)
        self.users.append(user)
        return copy.deepcopy(user)

    def set_balance(self, user_id, balance):
        self._call('set_balance', user_id, balance)
        user = self._require(self.users, user_id, 'User')
        user['balance'] = balance
        return {'balance': balance}

    def verify_credentials(self, email, password):
        self._call('verify_credentials', email)
        if (email, password) != self.credentials:
            raise ApiError('Invalid email or password', 401)
        return {'token': 'backend-token'}

    # -- reservations --------------------------------------------------------

    def list_reservations(self):
        self._call('list_reservations')
        return copy.deepcopy(self.reservations)

    def get_reservation(self, reservation_id):
        self._call('get_reservation', reservation_id)
        return copy.deepcopy(self._find(self.reservations, reservation_id))

    def update_reservation_status(self, reservation_id, status):
        self._call('update_reservation_status', reservation_id, status)
        reservation = self._require(self.reservations, reservation_id, 'Reservation')
        reservation['status'] = status
        return copy.deepcopy(reservation)

    # -- top-ups -------------------------------------------------------------

    def list_topups(self):
        self._call('list_topups')
        return copy.deepcopy(self.topups)

    def get_topup(self, topup_id):
        self._call('get_topup', topup_id)
        return copy.deepcopy(self._find(self.topups, topup_id))

    def update_topup_status(self, topup_id, status, reason=None):
        self._call('update_topup_status', topup_id, status, reason)
        topup = self._require(self.topups, topup_id, 'Top-up')
        topup['status'] = status
        if reason:
            topup['rejectionReason'] = reason
        return copy.deepcopy(topup)

    # -- menu ----------------------------------------------------------------

    def list_menu(self):
        self._call('list_menu')
        return copy.deepcopy(self.menu)

    def get_menu_item(self, item_id):
        self._call('get_menu_item', item_id)
        return copy.deepcopy(self._find(self.menu, item_id))

    def list_categories(self):
        self._call('list_categories')
        return copy.deepcopy(self.categories)

    def create_menu_item(self, fields, image=None):
        self._call('create_menu_item', fields, image)
        self._next_id += 1
        item = {'id': f'm{self._next_id}', **fields}
        self.menu.append(item)
        return copy.deepcopy(item)

    def update_menu_item(self, item_id, fields, image=None):
        self._call('update_menu_item', item_id, fields, image)
        item = self._require(self.menu, item_id, 'Menu item')
        item.update(fields)
        return copy.deepcopy(item)

    def patch_menu_item(self, item_id, fields):
        self._call('patch_menu_item', item_id, fields)
        item = self._require(self.menu, item_id, 'Menu item')
        item.update(fields)
        return copy.deepcopy(item)

    def delete_menu_item(self, item_id):
        self._call('delete_menu_item', item_id)
        item = self._require(self.menu, item_id, 'Menu item')
        self.menu.remove(item)
        return None

    # -- date restrictions ---------------------------------------------------

    def get_date_restrictions(self):
        self._call('get_date_restrictions')
        return copy.deepcopy(self.restrictions)

    def save_date_restrictions(self, payload):
        self._call('save_date_restrictions', payload)
        self.restrictions = {**copy.deepcopy(payload), 'updatedAt': '2026-10-19T02:00:00Z'}
        return copy.deepcopy(self.restrictions)

    # -- notifications -------------------------------------------------------

    def list_notifications(self):
        self._call('list_notifications')
        return copy.deepcopy(self.notifications)

    def mark_notifications_read(self, ids=None, mark_all=False):
        self._call('mark_notifications_read', ids, mark_all)
        for notification in self.notifications:
            if mark_all or notification['id'] in (ids or []):
                notification['read'] = True
        return {'updated': True}

    def delete_notification(self, notification_id):
        self._call('delete_notification', notification_id)
        notification = self._require(self.notifications, notification_id, 'Notification')
        self.notifications.remove(notification)
        return None


def seed(api):
    """A small canteen: five accounts, a week of reservations, two pending top-ups."""
    api.users = [
        {'id': 'u1', 'studentId': '2023-0001', 'name': 'Juan Dela Cruz', 'email': 'juan@school.ph',
         'phone': '+639171234567', 'status': 'approved', 'balance': 150, 'createdAt': '2026-06-01T00:00:00Z'},
        {'id': 'u2', 'studentId': '2023-0002', 'name': 'Maria Santos', 'email': 'maria@school.ph',
         'phone': '+639181234567', 'status': 'pending', 'balance': 0, 'createdAt': '2026-10-10T00:00:00Z'},
        {'id': 'u3', 'studentId': '2023-0003', 'name': 'Pedro Reyes', 'email': 'pedro@school.ph',
         'phone': '+639191234567', 'balance': 0, 'createdAt': '2026-07-01T00:00:00Z'},
        {'id': 'u4', 'name': 'Canteen Admin', 'email': 'admin@canteen.ph', 'role': 'admin',
         'status': 'approved', 'balance': 0},
        {'id': 'u6', 'studentId': '2023-0006', 'name': 'Ángel Bautista', 'email': 'angel@school.ph',
         'status': 'approved'},
    ]
    api.wallets = {'u6': 20}
    api.archived_users = [
        {'id': 'u5', 'studentId': '2022-0005', 'name': 'Ana Lim', 'email': 'ana@school.ph',
         'status': 'approved', 'balance': 0, 'deletedAt': '2026-09-01T00:00:00Z'},
    ]
    api.reservations = [
        {'id': 'r1', 'student': 'Juan Dela Cruz', 'grade': 'Grade 5', 'section': 'Rizal',
         'items': [{'name': 'Chicken Adobo', 'price': 60, 'qty': 2}], 'when': 'Lunch (11:30)',
         'pickupDate': '2026-10-20', 'status': 'Pending', 'createdAt': '2026-10-01T01:00:00Z'},
        {'id': 'r2', 'student': 'Maria Santos', 'grade': 'Grade 4', 'section': 'Mabini',
         'items': [{'name': 'Pancit Canton', 'price': 45}], 'when': 'Recess',
         'pickupDate': '2026-10-20', 'status': 'pending', 'createdAt': '2026-10-02T01:00:00Z'},
        {'id': 'r3', 'student': 'Pedro Reyes', 'grade': 'Grade 6', 'section': 'Bonifacio',
         'items': [{'name': 'Turon', 'price': 15, 'qty': 3}], 'when': 'Breakfast',
         'pickupDate': '2026-10-21', 'status': 'approved', 'createdAt': '2026-10-03T01:00:00Z'},
        {'id': 'r4', 'student': 'Juan Dela Cruz', 'grade': 'Grade 5', 'section': 'Rizal',
         'items': [{'name': 'Chicken Adobo', 'price': 60}], 'when': 'Lunch',
         'pickupDate': '2026-10-21', 'status': 'preparing', 'createdAt': '2026-10-04T01:00:00Z'},
        {'id': 'r5', 'student': 'Ana Lim', 'grade': 'Grade 5', 'section': 'Rizal',
         'items': [{'name': 'Sinigang', 'price': 70}], 'when': 'After Class', 'note': 'no rice',
         'pickupDate': '2026-10-21', 'status': 'Ready', 'createdAt': '2026-10-05T01:00:00Z'},
        {'id': 'r6', 'student': 'Maria Santos', 'items': [{'name': 'Chicken Adobo', 'price': 60}],
         'when': 'Lunch', 'status': 'Rejected', 'createdAt': '2026-10-06T01:00:00Z'},
        {'id': 'r7', 'student': 'Pedro Reyes', 'items': [{'name': 'Lumpia', 'price': 25, 'qty': 2}],
         'when': 'Dismissal', 'pickupDate': '2026-10-22', 'status': 'Pending',
         'createdAt': '2026-10-07T01:00:00Z'},
    ]
    api.topups = [
        {'id': 't1', 'studentName': 'Juan Dela Cruz', 'userId': 'u1', 'provider': 'GCash',
         'amount': '200.00', 'refNumber': 'GC-1001', 'status': 'Pending', 'createdAt': '2026-10-18T03:00:00Z'},
        {'id': 't2', 'studentName': 'Ángel Bautista', 'userId': 'u6', 'provider': 'PayMaya',
         'amount': 500, 'refNumber': 'MY-2002', 'status': 'submitted', 'createdAt': '2026-10-18T05:00:00Z'},
        {'id': 't3', 'studentName': 'Pedro Reyes', 'userId': 'u3', 'provider': 'gcash',
         'amount': 100, 'refNumber': 'GC-0999', 'status': 'Approved', 'createdAt': '2026-10-10T03:00:00Z'},
    ]
    api.menu = [
        {'id': 'm1', 'name': 'Chicken Adobo', 'category': 'Meals', 'price': 60, 'stock': 10, 'isActive': True},
        {'id': 'm2', 'name': 'Turon', 'category': 'Snacks', 'price': 15, 'stock': 0, 'isActive': True},
        {'id': 'm3', 'name': 'Buko Juice', 'category': 'Drinks', 'price': 25, 'stock': 12, 'isActive': False},
    ]
    api.categories = [{'name': 'Meals'}, {'name': 'Snacks'}, 'Drinks', {'name': 'Meals'}]
    api.notifications = [
        {'id': 'n1', 'title': 'New registration', 'body': 'Maria Santos signed up', 'read': False,
         'createdAt': '2026-10-10T00:05:00Z', 'actor': {'id': 'u2', 'name': 'Maria Santos'},
         'data': {'studentId': '2023-0002', 'email': 'maria@school.ph', 'userId': 'u2'}},
        {'id': 'n2', 'title': 'New reservation', 'body': 'Juan reserved lunch', 'read': True,
         'createdAt': '2026-10-01T01:00:00Z', 'actor': {'id': 'u1', 'name': 'Juan Dela Cruz'},
         'data': {'reservationId': 'r1', 'items': [{'name': 'Chicken Adobo', 'qty': 2}], 'total': 120,
                  'when': 'Lunch (11:30)', 'pickupDate': '2026-10-20'}},
        {'id': 'n3', 'type': 'topup', 'title': 'Top-up submitted', 'body': 'GCash ₱200', 'read': False,
         'createdAt': '2026-10-18T03:00:00Z', 'actor': {'id': 'u1', 'name': 'Juan Dela Cruz'},
         'data': {'topupId': 't1', 'amount': '200.00', 'provider': 'GCash', 'referenceNumber': 'GC-1001'}},
        {'id': 'n4', 'title': 'Maintenance', 'body': 'Backend restarts at 10pm', 'read': False,
         'createdAt': '2026-10-15T12:00:00Z'},
    ]
    return api


@pytest.fixture
def fake_api():
    return seed(FakeCanteenAPI())


@pytest.fixture
def services(fake_api):
    return CanteenServices(fake_api)


@pytest.fixture
def app(fake_api):
    app = create_app(TestingConfig, canteen_api=fake_api)
    with app.app_context():
        db.create_all()
        admin = Operator(email=ADMIN_EMAIL, full_name='Canteen Admin', role='ADMIN')
        admin.set_password(PASSWORD)
        staff = Operator(email=STAFF_EMAIL, full_name='Kitchen Staff', role='STAFF')
        staff.set_password(PASSWORD)
        db.session.add_all([admin, staff])
        db.session.commit()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, email, password=PASSWORD):
    return client.post('/auth/login', json={'email': email, 'password': password})


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    response = login(client, ADMIN_EMAIL)
    assert response.status_code == 200
    return client


@pytest.fixture
def staff_client(app):
    client = app.test_client()
    response = login(client, STAFF_EMAIL)
    assert response.status_code == 200
    return client
