"""
JWT helpers shared by the mock client, the authentication class and the
auth views.

Tokens are plain simplejwt tokens carrying the in-memory user's id, role and
email.  Revocation is tracked by ``jti`` in the Django cache until the token
would have expired anyway, which keeps logout working without the ORM-backed
blacklist app.
"""
from __future__ import annotations

from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, Optional

from django.core.cache import cache
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken, Token

REVOKED_PREFIX = 'jwt:revoked:'


def issue_tokens(user: Dict[str, Any]) -> RefreshToken:
    """Return a refresh token (with access token) for an in-memory user record."""
    refresh = RefreshToken()
    refresh[api_settings.USER_ID_CLAIM] = str(user['id'])
    refresh['role'] = user.get('role') or ''
    refresh['email'] = user.get('email') or ''
    return refresh


def expiry_iso(token: Token) -> str:
    exp = datetime.fromtimestamp(int(token['exp']), tz=dt_timezone.utc)
    return exp.strftime('%Y-%m-%dT%H:%M:%SZ')


def _seconds_left(token: Token) -> int:
    now = datetime.now(tz=dt_timezone.utc).timestamp()
    return max(int(token.get('exp', now)) - int(now), 1)


def revoke(token: Token) -> None:
    jti = token.get(api_settings.JTI_CLAIM)
    if jti:
        cache.set(f'{REVOKED_PREFIX}{jti}', True, timeout=_seconds_left(token))


def is_revoked(jti: Optional[str]) -> bool:
    if not jti:
        return False
    return bool(cache.get(f'{REVOKED_PREFIX}{jti}'))
