"""Fan-out of match events to every live real-time connection."""
import json
import logging
import threading

logger = logging.getLogger(__name__)

CONNECTED_EVENT = {'type': 'connected'}


class SocketIOConnection:
    """One Socket.IO client, addressed by its session id."""

    def __init__(self, socketio, sid, namespace='/'):
        self.socketio = socketio
        self.id = sid
        self.namespace = namespace

    @property
    def closed(self):
        server = getattr(self.socketio, 'server', None)
        if server is None:
            return True
        return not server.manager.is_connected(self.id, self.namespace)

    def send(self, text):
        self.socketio.send(text, to=self.id, namespace=self.namespace)


class BroadcastHub:
    """Owns the live connection set.

    Connections must expose ``id``, ``closed`` and ``send(text)``. Delivery is
    best-effort and at-most-once. Closed or failing connections found during a
    broadcast are dropped once the pass is over, so the set never changes
    under the delivery loop.
    """

    def __init__(self):
        self._connections = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection_id):
        with self._lock:
            return connection_id in self._connections

    def register(self, connection):
        with self._lock:
            self._connections[connection.id] = connection
        logger.info('Real-time client connected: %s', connection.id)
        self._deliver(connection, json.dumps(CONNECTED_EVENT))

    def unregister(self, connection_id):
        with self._lock:
            removed = self._connections.pop(connection_id, None)
        if removed is not None:
            logger.info('Real-time client disconnected: %s', connection_id)

    def broadcast(self, event):
        """Send ``event`` to every open connection; returns the delivery count."""
        message = json.dumps(event, default=str)
        with self._lock:
            connections = list(self._connections.values())

        delivered = 0
        stale = []
        for connection in connections:
            if connection.closed:
                stale.append(connection.id)
                continue
            if self._deliver(connection, message):
                delivered += 1
            else:
                stale.append(connection.id)

        if stale:
            with self._lock:
                for connection_id in stale:
                    self._connections.pop(connection_id, None)
            logger.debug('Dropped %d stale real-time connections', len(stale))
        return delivered

    def _deliver(self, connection, message):
        try:
            connection.send(message)
        except Exception as exc:
            logger.warning('Broadcast to %s failed: %s', connection.id, exc)
            return False
        return True
