import json

import pytest
import requests

from clinic.http_client import ApiAuthError, ApiClientError, HttpApiClient, get_api_client
from clinic.mock_client import InvalidCredentials, MockApiClient, UnknownEntity


def make_response(status, body=None):
    response = requests.Response()
    response.status_code = status
    response.headers['Content-Type'] = 'application/json'
    response._content = json.dumps(body if body is not None else {}).encode()
    return response


class FakeSession:
    """Stands in for ``requests.Session`` and replays queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, **kwargs):
        self.calls.append(kwargs)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def api():
    def make(*responses, token=None):
        client = HttpApiClient('http://mediflow.test/api/', token=token)
        client._session = FakeSession(*responses)
        return client
    return make


def test_requires_base_url():
    with pytest.raises(ValueError):
        HttpApiClient('')


def test_get_and_missing_record(api):
    client = api(
        make_response(200, {'success': True, 'data': {'id': '1', 'first_name': 'John'}}),
        make_response(404, {'success': False, 'error': {'code': 'not_found', 'message': 'Patient not found'}}),
        token='abc',
    )
    assert client.manager('Patient').get('1')['first_name'] == 'John'
    assert client.Patient.get('99') is None

    first = client._session.calls[0]
    assert first['method'] == 'GET'
    assert first['url'] == 'http://mediflow.test/api/patients/1'
    assert first['headers']['Authorization'] == 'Bearer abc'


def test_list_follows_pagination(api):
    client = api(
        make_response(200, {'success': True, 'data': [{'id': '1'}, {'id': '2'}],
                            'pagination': {'page': 1, 'limit': 100, 'total': 3, 'pages': 2}}),
        make_response(200, {'success': True, 'data': [{'id': '3'}],
                            'pagination': {'page': 2, 'limit': 100, 'total': 3, 'pages': 2}}),
    )
    assert [r['id'] for r in client.manager('LabOrder').list()] == ['1', '2', '3']
    assert [c['params']['page'] for c in client._session.calls] == [1, 2]
    assert client._session.calls[0]['url'] == 'http://mediflow.test/api/lab-orders'


def test_count_create_delete(api):
    client = api(
        make_response(200, {'success': True, 'data': [{'id': '1'}],
                            'pagination': {'page': 1, 'limit': 1, 'total': 7, 'pages': 7}}),
        make_response(201, {'success': True, 'data': {'id': '8', 'name': 'Gauze'}}),
        make_response(200, {'success': True, 'data': None}),
        make_response(404, {'success': False, 'error': {'message': 'Inventory item not found'}}),
    )
    items = client.manager('InventoryItem')
    assert items.count() == 7
    assert items.create({'name': 'Gauze'})['id'] == '8'
    assert client._session.calls[1]['json'] == {'name': 'Gauze'}
    assert items.delete('8') is True
    assert items.delete('8') is False


def test_error_statuses(api):
    client = api(
        make_response(401, {'success': False, 'error': {'code': 'unauthorized', 'message': 'Token expired'}}),
        make_response(500, {'success': False, 'error': {'message': 'boom'}}),
        requests.ConnectionError('refused'),
    )
    with pytest.raises(ApiAuthError) as exc:
        client.manager('Patient').list()
    assert exc.value.status_code == 401
    assert str(exc.value) == 'Token expired'
    assert isinstance(exc.value, InvalidCredentials)

    with pytest.raises(ApiClientError) as exc:
        client.manager('Patient').get('1')
    assert exc.value.status_code == 500

    with pytest.raises(ApiClientError):
        client.health_check()


def test_unknown_entity(api):
    with pytest.raises(UnknownEntity):
        api().manager('Spaceship')
    with pytest.raises(AttributeError):
        api().Spaceship


def test_authenticate_stores_token(api):
    client = api(
        make_response(200, {'success': True, 'data': {'token': 'jwt-1', 'refresh_token': 'r-1', 'user': {'id': '1'}}}),
        make_response(200, {'success': True, 'data': []}),
        make_response(200, {'success': True, 'data': None}),
    )
    data = client.authenticate('admin', 'admin')
    assert data['token'] == 'jwt-1'
    assert 'Authorization' not in client._session.calls[0]['headers']
    assert client._session.calls[0]['json'] == {'username': 'admin', 'password': 'admin'}

    client.manager('Patient').list()
    assert client._session.calls[1]['headers']['Authorization'] == 'Bearer jwt-1'

    assert client.logout() == {'success': True}
    assert client.token is None


def test_authenticate_without_token(api):
    client = api(make_response(200, {'success': True, 'data': {}}))
    with pytest.raises(ApiAuthError):
        client.authenticate('admin', 'admin')


def test_get_api_client_modes(settings, monkeypatch):
    settings.CLINIC_API_MODE = 'mock'
    assert isinstance(get_api_client(), MockApiClient)

    settings.CLINIC_API_MODE = 'carrier-pigeon'
    with pytest.raises(ValueError):
        get_api_client()

    settings.CLINIC_API_MODE = 'http'
    settings.CLINIC_API_BASE_URL = 'http://mediflow.test/api'
    settings.CLINIC_API_USERNAME = 'admin'
    settings.CLINIC_API_PASSWORD = 'admin'
    logins = []
    monkeypatch.setattr(HttpApiClient, 'authenticate', lambda self, u, p: logins.append((u, p)))
    client = get_api_client()
    assert isinstance(client, HttpApiClient)
    assert client.base_url == 'http://mediflow.test/api'
    assert logins == [('admin', 'admin')]
