"""Success envelope helpers shared by the API views."""
import math

from django.utils import timezone
from rest_framework.response import Response


def ok(data=None, status=200, message=None, **extra):
    body = {'success': True, 'data': data}
    if message:
        body['message'] = message
    body.update(extra)
    body['timestamp'] = timezone.now().isoformat()
    return Response(body, status=status)


def paginated(items, page, limit, total):
    return ok(items, pagination={
        'page': page,
        'limit': limit,
        'total': total,
        'pages': math.ceil(total / limit) if limit else 0,
    })
