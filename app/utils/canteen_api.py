"""
Canteen backend REST client
All reads and writes the console performs go through CanteenAPI
"""

import logging

import requests

from app.utils.validators import sanitize_filename

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """
    Failed call to the canteen backend.

    status is the HTTP status code, or 0 when the request never got a
    response (DNS, refused connection, timeout).
    """

    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    SERVER_ERROR = 500
    MAINTENANCE = 503

    def __init__(self, message, status=0, payload=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload

    def is_status(self, status):
        return self.status == status

    @property
    def is_network_error(self):
        return self.status == 0

    @property
    def is_not_found(self):
        return self.status == self.NOT_FOUND

    def to_dict(self):
        return {'error': self.message, 'status': self.status}

    def __repr__(self):
        return f'ApiError(status={self.status}, message={self.message!r})'


def _same_id(a, b):
    return a is not None and b is not None and str(a) == str(b)


def _find_by_id(items, entity_id):
    for item in items or []:
        if isinstance(item, dict) and _same_id(item.get('id', item.get('_id')), entity_id):
            return item
    return None


def _as_list(data):
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ('items', 'results', 'rows'):
            if isinstance(data.get(key), list):
                return data[key]
    return []


class CanteenAPI:
    """Canteen backend API wrapper"""

    def __init__(self, base_url, token=None, timeout=30, session=None):
        self.base_url = (base_url or '').rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

        logger.info(f"Canteen API client initialized:")
        logger.info(f"  Base URL: {self.base_url or 'None'}")
        logger.info(f"  Token: {'*' * 20 if token else 'None'}")
        logger.info(f"  Timeout: {self.timeout}s")

    @classmethod
    def from_config(cls, config):
        return cls(
            base_url=config.get('CANTEEN_API_URL'),
            token=config.get('CANTEEN_API_TOKEN'),
            timeout=config.get('CANTEEN_API_TIMEOUT', 30),
        )

    @property
    def is_configured(self):
        return bool(self.base_url and self.token)

    def _url(self, path):
        if not path.startswith('/'):
            path = '/' + path
        if not path.startswith('/api'):
            path = '/api' + path
        return f'{self.base_url}{path}'

    def request(self, method, path, json=None, data=None, files=None, params=None):
        """
        Perform a request and return the decoded body.

        JSON bodies shaped like {status, data} are unwrapped to data.
        Non-2xx responses and transport failures raise ApiError.
        """
        url = self._url(path)
        try:
            response = self.session.request(
                method, url, json=json, data=data, files=files, params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f'Canteen API {method} {path} failed: {str(e)}')
            raise ApiError(str(e) or 'Network request failed', 0) from e

        content_type = response.headers.get('Content-Type', '')
        is_json = 'application/json' in content_type
        body = None
        if response.status_code != 204 and response.content:
            if is_json:
                try:
                    body = response.json()
                except ValueError:
                    logger.warning(f'Canteen API {method} {path}: invalid JSON body')
                    body = response.text
            else:
                body = response.text

        if not response.ok:
            message = None
            if isinstance(body, dict):
                message = body.get('error') or body.get('message')
            elif isinstance(body, str) and body:
                message = body
            message = message or f'{response.status_code} {response.reason}'
            logger.error(f'Canteen API {method} {path} -> {response.status_code}: {message}')
            raise ApiError(message, response.status_code, body)

        if is_json and isinstance(body, dict) and 'data' in body and 'status' in body:
            return body['data']
        return body

    def get(self, path, **kwargs):
        return self.request('GET', path, **kwargs)

    def post(self, path, **kwargs):
        return self.request('POST', path, **kwargs)

    def put(self, path, **kwargs):
        return self.request('PUT', path, **kwargs)

    def patch(self, path, **kwargs):
        return self.request('PATCH', path, **kwargs)

    def delete(self, path, **kwargs):
        return self.request('DELETE', path, **kwargs)

    # ---- users -----------------------------------------------------------

    def list_users(self):
        return _as_list(self.get('/admin/users'))

    def list_archived_users(self):
        return _as_list(self.get('/admin/users/archived'))

    def get_user(self, user_id):
        """
        Single account lookup. The backend has no per-user GET, so this reads
        the active list and then the archived list. Returns None when absent.
        """
        user = _find_by_id(self.list_users(), user_id)
        if user is None:
            user = _find_by_id(self.list_archived_users(), user_id)
        return user

    def get_wallet(self, user_id):
        return self.get(f'/admin/users/{user_id}/wallet')

    def get_balance(self, user_id):
        wallet = self.get_wallet(user_id)
        if isinstance(wallet, dict):
            nested = wallet.get('wallet')
            if isinstance(nested, dict):
                return nested.get('balance', 0)
            if 'balance' in wallet:
                return wallet.get('balance')
            return nested if nested is not None else 0
        return wallet or 0

    def update_user(self, user_id, fields, photo=None, remove_photo=False):
        data = {k: v for k, v in fields.items() if v is not None}
        if remove_photo:
            data['removePhoto'] = 'true'
        return self.patch(f'/admin/users/{user_id}', data=data, files=self._upload('photo', photo))

    def approve_user(self, user_id, notes=None):
        return self.post(f'/admin/users/{user_id}/approve', json={'approvalNotes': notes or ''})

    def reject_user(self, user_id, reason=None):
        return self.post(f'/admin/users/{user_id}/reject', json={'rejectionReason': reason or ''})

    def delete_user(self, user_id):
        return self.delete(f'/admin/users/{user_id}')

    def restore_user(self, user_id):
        return self.post(f'/admin/users/{user_id}/restore')

    def set_balance(self, user_id, balance):
        return self.post(f'/admin/users/{user_id}/wallet/set-balance', json={'balance': balance})

    def verify_credentials(self, email, password):
        """Re-check an operator's backend credentials. Raises ApiError(401) when wrong."""
        return self.post('/auth/login', json={'email': email, 'password': password})

    # ---- reservations ----------------------------------------------------

    def list_reservations(self):
        return _as_list(self.get('/reservations/admin'))

    def get_reservation(self, reservation_id):
        return _find_by_id(self.list_reservations(), reservation_id)

    def update_reservation_status(self, reservation_id, status):
        return self.patch(f'/reservations/admin/{reservation_id}', json={'status': status})

    # ---- top-ups ---------------------------------------------------------

    def list_topups(self):
        return _as_list(self.get('/admin/topups'))

    def get_topup(self, topup_id):
        return _find_by_id(self.list_topups(), topup_id)

    def update_topup_status(self, topup_id, status, reason=None):
        body = {'status': status}
        if reason:
            body['reason'] = reason
        return self.patch(f'/admin/topups/{topup_id}', json=body)

    # ---- menu ------------------------------------------------------------

    def list_menu(self):
        return _as_list(self.get('/menu'))

    def get_menu_item(self, item_id):
        try:
            return self.get(f'/menu/{item_id}')
        except ApiError as e:
            if e.is_not_found:
                return None
            raise

    def list_categories(self):
        return _as_list(self.get('/categories'))

    def create_menu_item(self, fields, image=None):
        return self.post('/admin/menu', data=fields, files=self._upload('image', image))

    def update_menu_item(self, item_id, fields, image=None):
        return self.put(f'/admin/menu/{item_id}', data=fields, files=self._upload('image', image))

    def patch_menu_item(self, item_id, fields):
        return self.put(f'/menu/{item_id}', json=fields)

    def delete_menu_item(self, item_id):
        return self.delete(f'/menu/{item_id}')

    @staticmethod
    def _upload(field_name, upload):
        """Multipart files mapping for a werkzeug FileStorage or plain file object."""
        if upload is None:
            return None
        filename = sanitize_filename(getattr(upload, 'filename', None) or field_name)
        stream = getattr(upload, 'stream', upload)
        mimetype = getattr(upload, 'mimetype', None) or 'application/octet-stream'
        return {field_name: (filename, stream, mimetype)}

    # ---- reservation date restrictions -----------------------------------

    def get_date_restrictions(self):
        return self.get('/admin/reservation-date-restrictions') or {}

    def save_date_restrictions(self, payload):
        return self.put('/admin/reservation-date-restrictions', json=payload) or {}

    # ---- notifications ---------------------------------------------------

    def list_notifications(self):
        return _as_list(self.get('/notifications/admin'))

    def mark_notifications_read(self, ids=None, mark_all=False):
        body = {'all': True} if mark_all else {'ids': list(ids or [])}
        return self.post('/notifications/admin/mark-read', json=body)

    def delete_notification(self, notification_id):
        return self.delete(f'/notifications/admin/{notification_id}')
