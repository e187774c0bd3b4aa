"""
Authentication views.

Login issues a simplejwt token pair for an in-memory user; logout revokes
the presented tokens; refresh trades a refresh token for a new access
token.  Kept apart from ``clinic.authentication`` so the authentication
class can be imported by DRF settings without pulling in the views.
"""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import SimpleRateThrottle
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken

from .auth import expiry_iso, is_revoked, revoke
from .authentication import ClinicUser
from .exceptions import error_body
from .mock_client import InvalidCredentials, get_mock_client
from .responses import ok
from .serializers.auth import LoginSerializer, LogoutSerializer, RefreshSerializer
from .services.audit import log_action

logger = logging.getLogger(__name__)


class LoginRateThrottle(SimpleRateThrottle):
    scope = 'login'

    def get_cache_key(self, request, view):
        return self.cache_format % {'scope': self.scope, 'ident': self.get_ident(request)}


def _unauthorized(message):
    return Response(error_body('unauthorized', message), status=status.HTTP_401_UNAUTHORIZED)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    """Accepts ``username`` (or ``email``) and ``password``."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    ip = request.META.get('REMOTE_ADDR')

    try:
        result = get_mock_client().authenticate(vd['identifier'], vd['password'])
    except InvalidCredentials:
        log_action(action='login', object_type='User',
                   detail={'result': 'fail', 'username': vd['identifier'], 'ip': ip})
        return _unauthorized('Invalid credentials')

    user = result['user']
    log_action(actor=ClinicUser(user), action='login', object_type='User', object_id=user['id'],
               detail={'result': 'ok', 'username': user.get('username'), 'ip': ip})
    return ok(result, message='Login successful')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Revoke the access token used for this call and, if given, its refresh token.

    A bad refresh token is rejected before anything is revoked.
    """
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = None
    if s.validated_data.get('refresh'):
        try:
            refresh = RefreshToken(s.validated_data['refresh'])
        except TokenError:
            return _unauthorized('Invalid or expired refresh token')

    if request.auth is not None:
        revoke(request.auth)
    if refresh is not None:
        revoke(refresh)
    log_action(actor=request.user, action='logout', object_type='User', object_id=request.user.id)
    logger.info('User %s logged out', request.user.username)
    return ok(None, message='Logged out successfully')


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def refresh_view(request):
    s = RefreshSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        refresh = RefreshToken(s.validated_data['refresh'])
    except TokenError:
        return _unauthorized('Invalid or expired refresh token')
    if is_revoked(refresh.get(api_settings.JTI_CLAIM)):
        return _unauthorized('Refresh token has been revoked')

    user = get_mock_client().manager('User').get(refresh.get(api_settings.USER_ID_CLAIM))
    if user is None or not user.get('is_active', True):
        return _unauthorized('User not found or inactive')

    access = refresh.access_token
    return ok({'token': str(access), 'expires_at': expiry_iso(access)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return ok(request.user.record)
