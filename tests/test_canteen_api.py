"""Tests for the canteen backend client"""
import io
import json
from unittest.mock import patch

import pytest
import requests

from app.utils.canteen_api import ApiError, CanteenAPI


def make_response(status=200, body=None, content_type='application/json', reason='OK'):
    response = requests.Response()
    response.status_code = status
    response.reason = reason
    if body is None:
        response._content = b''
    elif isinstance(body, (dict, list)):
        response._content = json.dumps(body).encode('utf-8')
    else:
        response._content = str(body).encode('utf-8')
    response.headers['Content-Type'] = content_type
    return response


class TestCanteenAPI:

    def setup_method(self):
        self.api = CanteenAPI('http://canteen.test/', token='test-token', timeout=12)

    def test_base_url_and_auth_header(self):
        assert self.api.base_url == 'http://canteen.test'
        assert self.api.session.headers['Authorization'] == 'Bearer test-token'
        assert self.api.is_configured
        assert not CanteenAPI('http://canteen.test').is_configured

    def test_envelope_is_unwrapped(self):
        body = {'status': 'success', 'data': [{'id': 'u1'}]}
        with patch.object(self.api.session, 'request', return_value=make_response(body=body)) as request:
            users = self.api.list_users()

        assert users == [{'id': 'u1'}]
        request.assert_called_once()
        args, kwargs = request.call_args
        assert args == ('GET', 'http://canteen.test/api/admin/users')
        assert kwargs['timeout'] == 12

    def test_list_shapes(self):
        body = {'items': [{'id': 'm1'}]}
        with patch.object(self.api.session, 'request', return_value=make_response(body=body)):
            assert self.api.list_menu() == [{'id': 'm1'}]
        with patch.object(self.api.session, 'request', return_value=make_response(body={'message': 'ok'})):
            assert self.api.list_menu() == []

    def test_error_message_comes_from_body(self):
        response = make_response(404, {'error': 'User not found'}, reason='Not Found')
        with patch.object(self.api.session, 'request', return_value=response):
            with pytest.raises(ApiError) as exc:
                self.api.delete_user('u9')
        assert exc.value.status == 404
        assert exc.value.message == 'User not found'
        assert exc.value.is_not_found

    def test_error_without_body_uses_status_line(self):
        response = make_response(502, None, reason='Bad Gateway')
        with patch.object(self.api.session, 'request', return_value=response):
            with pytest.raises(ApiError) as exc:
                self.api.list_topups()
        assert exc.value.message == '502 Bad Gateway'

    def test_plain_text_body(self):
        response = make_response(500, 'upstream exploded', content_type='text/plain')
        with patch.object(self.api.session, 'request', return_value=response):
            with pytest.raises(ApiError) as exc:
                self.api.list_reservations()
        assert exc.value.message == 'upstream exploded'

    def test_network_failure_has_status_zero(self):
        error = requests.ConnectionError('Connection refused')
        with patch.object(self.api.session, 'request', side_effect=error):
            with pytest.raises(ApiError) as exc:
                self.api.list_users()
        assert exc.value.status == 0
        assert exc.value.is_network_error

    def test_get_user_falls_back_to_archived_list(self):
        responses = [
            make_response(body=[{'id': 'u1'}]),
            make_response(body=[{'id': 'u5', 'deletedAt': '2026-09-01'}]),
        ]
        with patch.object(self.api.session, 'request', side_effect=responses) as request:
            user = self.api.get_user('u5')
        assert user == {'id': 'u5', 'deletedAt': '2026-09-01'}
        assert request.call_args_list[1][0][1] == 'http://canteen.test/api/admin/users/archived'

    def test_missing_menu_item_is_none(self):
        response = make_response(404, {'message': 'Not found'})
        with patch.object(self.api.session, 'request', return_value=response):
            assert self.api.get_menu_item('m404') is None

    def test_topup_reason_only_sent_when_given(self):
        with patch.object(self.api.session, 'request', return_value=make_response(204)) as request:
            self.api.update_topup_status('t1', 'Approved')
            self.api.update_topup_status('t2', 'Rejected', 'Wrong reference')
        first, second = request.call_args_list
        assert first[1]['json'] == {'status': 'Approved'}
        assert second[1]['json'] == {'status': 'Rejected', 'reason': 'Wrong reference'}

    def test_balance_from_nested_wallet(self):
        body = {'wallet': {'balance': 42.5}}
        with patch.object(self.api.session, 'request', return_value=make_response(body=body)):
            assert self.api.get_balance('u1') == 42.5

    def test_mark_read_body(self):
        with patch.object(self.api.session, 'request', return_value=make_response(204)) as request:
            self.api.mark_notifications_read(mark_all=True)
            self.api.mark_notifications_read(ids=('n1', 'n2'))
        first, second = request.call_args_list
        assert first[1]['json'] == {'all': True}
        assert second[1]['json'] == {'ids': ['n1', 'n2']}

    def test_upload_filename_is_sanitized(self):
        upload = io.BytesIO(b'fake-image')
        upload.filename = '../../adobo plate.png'
        files = CanteenAPI._upload('image', upload)
        assert files['image'][0] == 'adobo_plate.png'
        assert files['image'][2] == 'application/octet-stream'
        assert CanteenAPI._upload('image', None) is None

    def test_from_config(self):
        api = CanteenAPI.from_config({'CANTEEN_API_URL': 'http://canteen.test', 'CANTEEN_API_TOKEN': 't'})
        assert api.timeout == 30
        assert api._url('reservations/admin') == 'http://canteen.test/api/reservations/admin'
