from django.db import DatabaseError, connections
from django.http import JsonResponse
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny

from ..mock_client import get_mock_client
from ..responses import ok


def healthz(request):
    body = get_mock_client().health_check()
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        body['db'] = bool(row and row[0] == 1)
        return JsonResponse(body)
    except DatabaseError as e:
        body.update(status='degraded', db=False, error=str(e))
        return JsonResponse(body, status=500)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def api_health(request):
    return ok(get_mock_client().health_check())
