import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from clinic.authentication import ClinicUser
from clinic.mock_client import get_mock_client, reset_mock_client


@pytest.fixture(autouse=True)
def _fast_hasher(settings):
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    settings.MOCK_API_LATENCY_SCALE = 0


@pytest.fixture(autouse=True)
def _fresh_state(_fast_hasher):
    reset_mock_client()
    cache.clear()
    yield
    reset_mock_client()
    cache.clear()


@pytest.fixture
def mock_client():
    return get_mock_client()


@pytest.fixture
def client_as(mock_client):
    """APIClient force-authenticated as the seeded user with the given username."""
    def make(username):
        record = mock_client.find_user(username)
        assert record is not None, username
        client = APIClient()
        client.force_authenticate(user=ClinicUser(record))
        return client
    return make


@pytest.fixture
def make_user(mock_client):
    """Add a user with the given role to the mock User collection."""
    from django.contrib.auth.hashers import make_password

    def make(role, username=None, password='secret-pass', **extra):
        username = username or f'{role}.user'
        return mock_client.manager('User').create({
            'username': username,
            'email': f'{username}@mediflow.test',
            'role': role,
            'is_active': True,
            'password_hash': make_password(password),
            **extra,
        })
    return make
