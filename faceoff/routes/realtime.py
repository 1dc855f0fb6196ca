"""Socket.IO connection lifecycle wired into the broadcast hub.

Clients only listen; there is no client-to-server message protocol.
"""
from flask import current_app, request

from faceoff.app import socketio
from faceoff.services.broadcast import SocketIOConnection


def _hub():
    return current_app.extensions['broadcast_hub']


@socketio.on('connect')
def on_connect(auth=None):
    _hub().register(SocketIOConnection(socketio, request.sid))


@socketio.on('disconnect')
def on_disconnect(*_args):
    _hub().unregister(request.sid)
