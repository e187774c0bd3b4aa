from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from ..mock_client import get_mock_client
from ..responses import ok
from ..services.inventory import STOCK_STATUSES, filter_items, inventory_metrics, reorder_list


class StatusQuerySerializer(serializers.Serializer):
    category = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=('all',) + STOCK_STATUSES, required=False)
    search = serializers.CharField(required=False, allow_blank=True)


def _items():
    return get_mock_client().manager('InventoryItem').list()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_status(request):
    q = StatusQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    items = filter_items(_items(), **q.validated_data)
    return ok(items, total=len(items))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_metrics_view(request):
    return ok(inventory_metrics(_items()))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_reorder(request):
    return ok(reorder_list(_items()))
