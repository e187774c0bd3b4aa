import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from clinic.models import AuditEvent
from clinic.services.audit import log_action
from clinic.services.notify import GROUP, broadcast_change


def test_broadcast_reaches_group():
    layer = get_channel_layer()
    channel = async_to_sync(layer.new_channel)()
    async_to_sync(layer.group_add)(GROUP, channel)

    assert broadcast_change('Patient', 'update', 7) is True
    message = async_to_sync(layer.receive)(channel)
    assert message['type'] == 'entity.changed'
    assert message['entity'] == 'Patient'
    assert message['action'] == 'update'
    assert message['id'] == '7'

    async_to_sync(layer.group_discard)(GROUP, channel)


def test_broadcast_without_layer(monkeypatch):
    monkeypatch.setattr('clinic.services.notify.get_channel_layer', lambda: None)
    assert broadcast_change('Patient', 'delete') is False


class Actor:
    id = '2'
    username = 'dr.smith'


@pytest.mark.django_db
def test_log_action():
    event = log_action(actor=Actor(), action='update', object_type='Patient', object_id=1,
                       detail={'fields': ['phone']})
    stored = AuditEvent.objects.get(pk=event.pk)
    assert stored.actor_username == 'dr.smith'
    assert stored.actor_id == '2'
    assert stored.object_id == '1'
    assert stored.detail == {'fields': ['phone']}


@pytest.mark.django_db
def test_log_action_anonymous():
    event = log_action(action='login', object_type='User', detail={'result': 'fail'})
    assert event.actor_id == ''
    assert event.object_id == ''


@pytest.mark.django_db
def test_writes_are_audited(client_as):
    client = client_as('admin')
    response = client.patch('/api/patients/1', {'phone': '+1-555-0000'}, format='json')
    assert response.status_code == 200
    event = AuditEvent.objects.get(action='update', object_type='Patient')
    assert event.object_id == '1'
    assert event.detail == {'fields': ['phone']}


def test_websocket_route_is_wrapped_in_auth_stack():
    from channels.sessions import CookieMiddleware
    from mediflow.asgi import application

    assert isinstance(application.application_mapping['websocket'], CookieMiddleware)
