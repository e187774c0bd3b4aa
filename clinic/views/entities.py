"""
Generic CRUD routes over the mock client's entity managers.

``/api/<resource>`` and ``/api/<resource>/<id>`` serve every entity type
listed in ``clinic.resources``.  Input is validated by the resource's
serializer, output is the stored record.  Every write is audited and
broadcast to websocket listeners.
"""
from __future__ import annotations

import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated

from ..mock_client import get_mock_client
from ..permissions import HasResourceRole
from ..resources import RESOURCES
from ..responses import ok, paginated
from ..serializers.query import ListQuerySerializer, apply_query, field_filters
from ..services.audit import log_action
from ..services.notify import broadcast_change

logger = logging.getLogger(__name__)


def _resource(slug):
    resource = RESOURCES.get(slug)
    if resource is None:
        raise NotFound(f'Unknown resource: {slug}')
    return resource


def record_change(request, entity, action, record_id, detail=None):
    """Audit, log and broadcast one write."""
    user = request.user
    logger.info('%s %s %s by %s', action, entity, record_id, getattr(user, 'username', '-'))
    log_action(actor=user, action=action, object_type=entity, object_id=record_id, detail=detail)
    broadcast_change(entity, action, record_id)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourceRole])
def entity_collection(request, resource):
    res = _resource(resource)
    manager = get_mock_client().manager(res.entity)

    if request.method == 'GET':
        q = ListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        items = apply_query(
            manager.list(),
            res.search_fields,
            search=vd['search'],
            sort=vd['sort'],
            order=vd['order'],
            filters=field_filters(request.query_params),
        )
        page, limit = vd['page'], vd['limit']
        start = (page - 1) * limit
        return paginated([res.output(r) for r in items[start:start + limit]], page, limit, len(items))

    s = res.serializer(data=request.data, context={'request': request, 'manager': manager})
    s.is_valid(raise_exception=True)
    record = manager.create(s.validated_data)
    record_change(request, res.entity, 'create', record['id'])
    return ok(res.output(record), status=201, message=f'{res.title} created successfully')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourceRole])
def entity_detail(request, resource, pk):
    res = _resource(resource)
    manager = get_mock_client().manager(res.entity)
    not_found = NotFound(f'{res.title} not found')

    if request.method == 'GET':
        record = manager.get(pk)
        if record is None:
            raise not_found
        return ok(res.output(record))

    if request.method == 'DELETE':
        if not manager.delete(pk):
            raise not_found
        record_change(request, res.entity, 'delete', pk)
        return ok(None, message=f'{res.title} deleted successfully')

    # PUT and PATCH both merge into the stored record
    stored = manager.get(pk)
    if stored is None:
        raise not_found
    s = res.serializer(
        data=request.data,
        partial=True,
        context={'request': request, 'manager': manager, 'record_id': pk, 'record': stored},
    )
    s.is_valid(raise_exception=True)
    record = manager.update(pk, s.validated_data)
    if record is None:
        raise not_found
    record_change(request, res.entity, 'update', pk, detail={'fields': sorted(s.validated_data)})
    return ok(res.output(record), message=f'{res.title} updated successfully')
