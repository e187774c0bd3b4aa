"""
Dashboard endpoint.

Headline counts for the landing page together with the alerts raised by
inventory, equipment, quality control and prescription monitoring.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from ..mock_client import get_mock_client
from ..responses import ok
from ..services.dashboard import dashboard_summary


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    return ok(dashboard_summary(get_mock_client()))
