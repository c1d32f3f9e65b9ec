"""Tests for the admin JSON console endpoints"""
from app.utils.canteen_api import ApiError


class TestAccess:

    def test_anonymous_requests_get_401(self, client):
        response = client.get('/admin/users')
        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_staff_cannot_manage_accounts(self, staff_client):
        assert staff_client.get('/admin/users').status_code == 403

    def test_staff_can_use_the_order_board(self, staff_client):
        assert staff_client.get('/admin/orders').status_code == 200

    def test_wrong_password(self, client):
        response = client.post('/auth/login', json={'email': 'admin@canteen.ph', 'password': 'nope'})
        assert response.status_code == 401

    def test_me(self, admin_client):
        data = admin_client.get('/auth/me').get_json()
        assert data['operator']['role'] == 'ADMIN'

    def test_dashboard_counts_without_prior_visits(self, admin_client):
        badges = admin_client.get('/admin/dashboard').get_json()['badges']
        assert badges == {'reservations': 3, 'topups': 2, 'registrations': 1, 'notifications': 3}

    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'


class TestUsers:

    def test_zero_balance_filter(self, admin_client):
        data = admin_client.get('/admin/users?zero_balance=true').get_json()
        assert [u['name'] for u in data['users']] == ['Canteen Admin', 'Maria Santos', 'Pedro Reyes']
        assert data['total'] == 5
        assert data['total_balance'] == 0

    def test_sort_by_balance(self, admin_client):
        data = admin_client.get('/admin/users?sort=balance&order=desc').get_json()
        assert [u['id'] for u in data['users']][:2] == ['u1', 'u6']
        assert data['users'][0]['balanceDisplay'] == '₱150.00'
        assert data['users'][0]['canDelete'] is False

    def test_search(self, admin_client):
        data = admin_client.get('/admin/users?q=BAUTISTA').get_json()
        assert [u['id'] for u in data['users']] == ['u6']

    def test_archive_with_balance_is_refused(self, admin_client, fake_api):
        response = admin_client.delete('/admin/users/u1')
        assert response.status_code == 409
        assert response.get_json()['error'] == 'User must have zero balance before deletion'
        assert fake_api.called('delete_user') == []

    def test_archive_and_restore(self, admin_client):
        assert admin_client.delete('/admin/users/u3').status_code == 200
        archived = admin_client.get('/admin/users/archived').get_json()
        assert sorted(u['id'] for u in archived['users']) == ['u3', 'u5']

        assert admin_client.post('/admin/users/u3/restore').status_code == 200
        users = admin_client.get('/admin/users').get_json()
        assert 'u3' in [u['id'] for u in users['users']]

    def test_approve_registration(self, admin_client, fake_api):
        response = admin_client.post('/admin/users/u2/approve', json={'notes': 'ID checked'})
        assert response.status_code == 200
        assert response.get_json()['user']['status'] == 'approved'
        assert fake_api.called('approve_user') == [('u2', 'ID checked')]

    def test_edit_rejects_bad_phone(self, admin_client, fake_api):
        response = admin_client.patch('/admin/users/u1', json={'phone': '12'})
        assert response.status_code == 400
        assert 'phone' in response.get_json()['errors']
        assert fake_api.called('update_user') == []

    def test_set_balance(self, admin_client, fake_api):
        response = admin_client.post('/admin/users/u1/wallet/set-balance', json={
            'balance': '75.50', 'admin_email': 'admin@canteen.ph', 'admin_password': 'secret-pass',
        })
        assert response.status_code == 200
        assert response.get_json()['user']['balance'] == 75.5
        assert fake_api.called('set_balance') == [('u1', 75.5)]

    def test_set_balance_wrong_password(self, admin_client, fake_api):
        response = admin_client.post('/admin/users/u1/wallet/set-balance', json={
            'balance': '10', 'admin_email': 'admin@canteen.ph', 'admin_password': 'guess',
        })
        assert response.status_code == 409
        assert fake_api.called('set_balance') == []

    def test_backend_unreachable(self, admin_client, fake_api):
        fake_api.fail('list_users', ApiError('Connection refused', 0))
        response = admin_client.get('/admin/users')
        assert response.status_code == 502
        assert response.get_json()['backend_status'] == 0


class TestReservations:

    def test_pending_tab(self, admin_client):
        data = admin_client.get('/admin/reservations?status=Pending').get_json()
        assert sorted(r['id'] for r in data['reservations']) == ['r1', 'r2', 'r7']
        assert data['counts']['Pending'] == 3

    def test_kitchen_status_tab(self, admin_client):
        data = admin_client.get('/admin/reservations?status=Preparing').get_json()
        assert [r['id'] for r in data['reservations']] == ['r4']
        assert data['counts']['Preparing'] == 1
        assert data['counts']['Ready'] == 1
        assert data['counts']['All'] == 7

    def test_bulk_approve_reports_each_id(self, admin_client, fake_api):
        fake_api.fail('update_reservation_status', ApiError('Out of stock', 409), entity_id='r2')

        response = admin_client.post('/admin/reservations/bulk/approve', json={'ids': ['r1', 'r2', 'r7']})

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is False
        assert data['succeeded'] == ['r1', 'r7']
        assert data['failed'] == [{'id': 'r2', 'error': 'Out of stock'}]

    def test_unknown_bulk_action(self, admin_client):
        assert admin_client.post('/admin/reservations/bulk/archive', json={'ids': ['r1']}).status_code == 404

    def test_bulk_needs_ids(self, admin_client):
        assert admin_client.post('/admin/reservations/bulk/reject', json={'ids': []}).status_code == 400

    def test_approve_is_audited(self, admin_client):
        assert admin_client.post('/admin/reservations/r1/approve').status_code == 200
        data = admin_client.get('/admin/audit?action=RESERVATION_APPROVE').get_json()
        assert data['total'] == 1
        assert data['logs'][0]['resource_id'] == 'r1'


class TestDateRestrictions:

    def test_reversed_range_is_saved_in_order(self, admin_client, fake_api):
        response = admin_client.post('/admin/reservation-date-restrictions/ranges',
                                     json={'start': '2026-12-31', 'end': '2026-12-20'})
        assert response.status_code == 200
        assert response.get_json()['restrictions']['ranges'] == [{'from': '2026-12-20', 'to': '2026-12-31'}]
        assert fake_api.restrictions['ranges'] == [{'from': '2026-12-20', 'to': '2026-12-31'}]

    def test_invalid_month(self, admin_client, fake_api):
        response = admin_client.post('/admin/reservation-date-restrictions/months',
                                     json={'year': 2026, 'month': 13})
        assert response.status_code == 400
        assert fake_api.called('save_date_restrictions') == []

    def test_weekday_toggle_and_check(self, admin_client):
        data = admin_client.post('/admin/reservation-date-restrictions/weekdays/0').get_json()
        assert data['restrictions']['weekdayNames'] == ['Sunday']

        check = admin_client.get('/admin/reservation-date-restrictions/check?date=2026-10-18').get_json()
        assert check['blocked'] is True
        check = admin_client.get('/admin/reservation-date-restrictions/check?date=2026-10-19').get_json()
        assert check['blocked'] is False

    def test_weekday_out_of_range(self, admin_client):
        assert admin_client.post('/admin/reservation-date-restrictions/weekdays/7').status_code == 400


class TestTopUps:

    def test_queue_lists_pending_only(self, admin_client):
        data = admin_client.get('/admin/topups').get_json()
        assert sorted(t['id'] for t in data['topups']) == ['t1', 't2']
        assert data['pending'] == 2

    def test_reject_with_reason(self, admin_client, fake_api):
        admin_client.get('/admin/topups')
        response = admin_client.post('/admin/topups/t2/reject', json={'reason': 'Wrong reference'})
        assert response.status_code == 200
        assert response.get_json()['removed'] is True
        assert fake_api.called('update_topup_status') == [('t2', 'Rejected', 'Wrong reference')]


class TestOrders:

    def test_query_and_chips(self, staff_client):
        data = staff_client.get('/admin/orders?q=item:adobo').get_json()
        assert [o['id'] for o in data['orders']] == ['r4']
        assert data['chips'][0]['field'] == 'item'
        assert data['orders'][0]['totalDisplay'] == '₱60.00'

    def test_remove_chip(self, staff_client):
        data = staff_client.get('/admin/orders?q=item:adobo&remove=item:adobo').get_json()
        assert data['query'] == ''
        assert data['chips'] == []
        assert len(data['orders']) == 3

    def test_advance(self, staff_client):
        response = staff_client.post('/admin/orders/r3/advance', json={'status': 'Preparing'})
        assert response.status_code == 200
        assert response.get_json()['order']['status'] == 'Preparing'

    def test_advance_needs_status(self, staff_client):
        assert staff_client.post('/admin/orders/r3/advance', json={}).status_code == 400


class TestMenu:

    def test_create(self, admin_client, fake_api):
        response = admin_client.post('/admin/menu', json={
            'name': ' Pancit ', 'category': 'Meals', 'price': '25', 'stock': '5', 'is_active': False,
        })
        assert response.status_code == 201
        item = response.get_json()['item']
        assert item['name'] == 'Pancit'
        assert item['price'] == '25.00'
        assert item['isActive'] == 'false'

    def test_price_must_be_positive(self, admin_client, fake_api):
        response = admin_client.post('/admin/menu', json={
            'name': 'Pancit', 'category': 'Meals', 'price': '0', 'stock': '5',
        })
        assert response.status_code == 400
        assert 'price' in response.get_json()['errors']
        assert fake_api.called('create_menu_item') == []

    def test_price_ceiling(self, admin_client):
        response = admin_client.post('/admin/menu', json={
            'name': 'Lechon', 'category': 'Meals', 'price': '25000', 'stock': '1',
        })
        assert response.status_code == 400

    def test_staff_can_update_stock_but_not_create(self, staff_client, fake_api):
        assert staff_client.post('/admin/menu/m2/stock', json={'stock': '12'}).status_code == 200
        assert fake_api.called('patch_menu_item') == [('m2', {'stock': 12})]
        response = staff_client.post('/admin/menu', json={
            'name': 'Pancit', 'category': 'Meals', 'price': '25', 'stock': '5',
        })
        assert response.status_code == 403

    def test_categories_are_deduplicated(self, staff_client):
        data = staff_client.get('/admin/menu/categories').get_json()
        assert data['categories'] == ['Meals', 'Snacks', 'Drinks']

    def test_missing_item(self, staff_client):
        assert staff_client.get('/admin/menu/m404').status_code == 404


class TestNotifications:

    def test_kind_filter(self, admin_client):
        data = admin_client.get('/admin/notifications?kind=topup').get_json()
        assert [n['id'] for n in data['items']] == ['n3']
        assert data['unread'] == 3

    def test_unknown_kind(self, admin_client):
        assert admin_client.get('/admin/notifications?kind=promo').status_code == 400

    def test_mark_all_read(self, admin_client):
        admin_client.get('/admin/notifications')
        data = admin_client.post('/admin/notifications/mark-read', json={'all': True}).get_json()
        assert data['marked'] == 3
        assert data['unread'] == 0
        badges = admin_client.get('/admin/dashboard').get_json()['badges']
        assert badges['notifications'] == 0

    def test_mark_read_needs_a_target(self, admin_client):
        assert admin_client.post('/admin/notifications/mark-read', json={}).status_code == 400
