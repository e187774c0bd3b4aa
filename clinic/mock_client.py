"""
In-process mock API client.

Bundles one :class:`~clinic.entities.EntityManager` per entity type, seeded
from ``clinic/fixtures/mock_data.json``, together with the health check and
the login/logout calls of the real API.  The REST layer, the management
commands and the tests all talk to the process-wide instance returned by
:func:`get_mock_client`.
"""
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone as dt_timezone
from pathlib import Path
from typing import Any, Dict, Optional

from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import UntypedToken

from .auth import expiry_iso, issue_tokens, revoke
from .entities import EntityManager, iso_timestamp

logger = logging.getLogger(__name__)

FIXTURES_PATH = Path(__file__).resolve().parent / 'fixtures' / 'mock_data.json'

ENTITY_NAMES = (
    'Patient',
    'Appointment',
    'User',
    'Organization',
    'LabOrder',
    'InventoryItem',
    'Equipment',
    'MaintenanceRecord',
    'QCTest',
    'ComplianceRecord',
    'Telemedicine',
    'ProceduralReport',
    'Prescription',
    'Encounter',
    'Billing',
    'DocumentTemplate',
    'MedicalDocument',
)

SENSITIVE_USER_FIELDS = ('password', 'password_hash')


class UnknownEntity(LookupError):
    """Raised when asking for a manager that does not exist."""


class InvalidCredentials(Exception):
    """Raised by ``authenticate``/``logout`` on bad credentials or tokens."""


def public_user(record: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Strip password material from a User record."""
    if record is None:
        return None
    return {k: v for k, v in record.items() if k not in SENSITIVE_USER_FIELDS}


def load_fixtures(path: Path = FIXTURES_PATH) -> Dict[str, list]:
    with open(path, encoding='utf-8') as fh:
        return json.load(fh)


def _hash_seed_passwords(users: list) -> list:
    for user in users:
        raw = user.pop('password', None)
        if raw:
            user['password_hash'] = make_password(raw)
    return users


class MockApiClient:
    """Entity managers plus health/auth calls over in-memory data."""

    def __init__(self, seed: bool = True, latency_scale: Optional[float] = None) -> None:
        if latency_scale is None:
            latency_scale = float(getattr(settings, 'MOCK_API_LATENCY_SCALE', 0) or 0)
        data = load_fixtures() if seed else {}
        _hash_seed_passwords(data.get('User', []))
        self.entities: Dict[str, EntityManager] = {
            name: EntityManager(name, data.get(name, ()), latency_scale=latency_scale)
            for name in ENTITY_NAMES
        }

    def manager(self, entity: str) -> EntityManager:
        try:
            return self.entities[entity]
        except KeyError:
            raise UnknownEntity(f'Unknown entity: {entity}') from None

    def __getattr__(self, name: str) -> EntityManager:
        # client.Patient.list() reads like the frontend's client.entities.Patient
        entities = self.__dict__.get('entities') or {}
        if name in entities:
            return entities[name]
        raise AttributeError(name)

    def reset(self) -> None:
        for mgr in self.entities.values():
            mgr.reset()

    # ------------------------------------------------------------------
    # health / auth
    # ------------------------------------------------------------------
    def health_check(self) -> Dict[str, Any]:
        return {
            'status': 'healthy',
            'timestamp': iso_timestamp(int(datetime.now(tz=dt_timezone.utc).timestamp() * 1000)),
            'version': getattr(settings, 'API_VERSION', '1.0.0'),
        }

    def find_user(self, identifier: str) -> Optional[Dict[str, Any]]:
        """Look a user up by username or email (case-insensitive)."""
        ident = (identifier or '').strip().lower()
        if not ident:
            return None
        for user in self.entities['User'].list():
            if str(user.get('username') or '').lower() == ident or str(user.get('email') or '').lower() == ident:
                return user
        return None

    def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        user = self.find_user(username)
        if (
            not user
            or not user.get('is_active', True)
            or not password
            or not check_password(password, user.get('password_hash') or '')
        ):
            logger.warning('Failed login for %r', username)
            raise InvalidCredentials('Invalid credentials')

        refresh = issue_tokens(user)
        access = refresh.access_token
        updated = self.entities['User'].update(
            user['id'], {'last_login': datetime.now(tz=dt_timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')}
        ) or user
        logger.info('User %s logged in', user.get('username'))
        return {
            'token': str(access),
            'refresh': str(refresh),
            'user': public_user(updated),
            'expires_at': expiry_iso(access),
        }

    def logout(self, token: Optional[str] = None) -> Dict[str, Any]:
        if token:
            try:
                revoke(UntypedToken(token))
            except TokenError as exc:
                raise InvalidCredentials('Invalid token') from exc
        return {'success': True}


_client: Optional[MockApiClient] = None
_client_lock = threading.Lock()


def get_mock_client() -> MockApiClient:
    """Return the process-wide mock client, creating it on first use."""
    global _client
    with _client_lock:
        if _client is None:
            _client = MockApiClient()
        return _client


def reset_mock_client() -> None:
    """Drop the process-wide client; the next call re-seeds from fixtures."""
    global _client
    with _client_lock:
        _client = None
