"""
JWT authentication against the in-memory User collection.

simplejwt validates the signature and expiry as usual; ``get_user`` is
overridden so the ``user_id`` claim resolves to a record held by the mock
client instead of a row of Django's user table.  Revoked tokens (see
``clinic.auth``) and deactivated users are rejected.
"""
from __future__ import annotations

from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken
from rest_framework_simplejwt.settings import api_settings

from .auth import is_revoked
from .mock_client import get_mock_client, public_user


class ClinicUser:
    """Request user backed by an in-memory User record."""

    is_authenticated = True
    is_anonymous = False

    def __init__(self, record: dict) -> None:
        self.record = public_user(record) or {}
        self.id = str(self.record.get('id'))
        self.pk = self.id
        self.username = self.record.get('username', '')
        self.email = self.record.get('email', '')
        self.role = self.record.get('role', '')
        self.organization_id = self.record.get('organization_id')

    def __str__(self) -> str:
        return self.username

    def get_full_name(self) -> str:
        first = self.record.get('first_name') or ''
        last = self.record.get('last_name') or ''
        return f'{first} {last}'.strip()


class MockJWTAuthentication(JWTAuthentication):
    """Bearer JWT authentication resolving users through the mock client."""

    def get_user(self, validated_token):
        user_id = validated_token.get(api_settings.USER_ID_CLAIM)
        if user_id is None:
            raise InvalidToken('Token contained no recognizable user identification')

        if is_revoked(validated_token.get(api_settings.JTI_CLAIM)):
            raise AuthenticationFailed('Token has been revoked', code='token_revoked')

        record = get_mock_client().manager('User').get(user_id)
        if record is None:
            raise AuthenticationFailed('User not found', code='user_not_found')
        if not record.get('is_active', True):
            raise AuthenticationFailed('User is inactive', code='user_inactive')
        return ClinicUser(record)
