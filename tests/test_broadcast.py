"""Tests for the broadcast hub and the Socket.IO channel."""
import json

from faceoff.app import socketio
from faceoff.services.broadcast import BroadcastHub

from conftest import photo_payload


class _FakeConnection:
    def __init__(self, connection_id, hub=None, closed=False, fail=False):
        self.id = connection_id
        self.hub = hub
        self.closed = closed
        self.fail = fail
        self.messages = []
        self.hub_size_at_send = []

    def send(self, text):
        if self.hub is not None:
            self.hub_size_at_send.append(len(self.hub))
        if self.fail:
            raise ConnectionError('socket gone')
        self.messages.append(json.loads(text))


def test_register_sends_connected_ack():
    hub = BroadcastHub()
    connection = _FakeConnection('a')
    hub.register(connection)
    assert connection.messages == [{'type': 'connected'}]
    assert 'a' in hub


def test_broadcast_reaches_live_and_drops_stale_after_pass():
    hub = BroadcastHub()
    live = [_FakeConnection(f'live-{i}', hub=hub) for i in range(3)]
    for connection in live:
        hub.register(connection)
    stale = _FakeConnection('stale', hub=hub)
    hub.register(stale)
    stale.closed = True
    for connection in live:
        connection.messages.clear()
        connection.hub_size_at_send.clear()

    delivered = hub.broadcast({'type': 'match_updated', 'match': {'id': 7}})

    assert delivered == 3
    for connection in live:
        assert connection.messages == [{'type': 'match_updated', 'match': {'id': 7}}]
        # the stale entry is still present while delivery is in progress
        assert connection.hub_size_at_send == [4]
    assert len(hub) == 3
    assert 'stale' not in hub
    assert stale.messages == [{'type': 'connected'}]


def test_failed_send_is_dropped_without_aborting_others():
    hub = BroadcastHub()
    broken = _FakeConnection('broken')
    hub.register(broken)
    broken.fail = True
    healthy = _FakeConnection('healthy')
    hub.register(healthy)

    assert hub.broadcast({'type': 'match_created', 'match': {'id': 1}}) == 1
    assert healthy.messages[-1]['type'] == 'match_created'
    assert 'broken' not in hub
    assert 'healthy' in hub


def test_unregister_is_idempotent():
    hub = BroadcastHub()
    hub.register(_FakeConnection('a'))
    hub.unregister('a')
    hub.unregister('a')
    assert len(hub) == 0
    assert hub.broadcast({'type': 'match_created'}) == 0


def test_socket_client_receives_connected_and_match_events(app, make_client):
    hub = app.extensions['broadcast_hub']
    socket_client = socketio.test_client(app)
    assert socket_client.is_connected()
    assert len(hub) == 1

    received = socket_client.get_received()
    assert json.loads(received[0]['args']) == {'type': 'connected'}

    alice = make_client('alice')
    make_client('bob')
    res = alice.post('/api/matches', data={
        'invitedUsername': 'bob', 'photo': photo_payload(),
    }, content_type='multipart/form-data')
    assert res.status_code == 200

    events = [json.loads(item['args']) for item in socket_client.get_received()]
    assert events[-1]['type'] == 'match_created'
    assert events[-1]['match']['id'] == res.get_json()['id']
    assert 'creatorPhoto' not in events[-1]['match']

    socket_client.disconnect()
    assert len(hub) == 0
