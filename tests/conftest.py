import base64
import io

import pytest
from faceoff.app import create_app, db


class FakeScorer:
    """Stands in for the Face++ client; scores keyed by raw photo bytes."""

    def __init__(self, scores=None, errors=None):
        self.scores = dict(scores or {})
        self.errors = dict(errors or {})
        self.calls = []

    def score_photo(self, photo_b64):
        photo_bytes = base64.b64decode(photo_b64)
        self.calls.append(photo_bytes)
        if photo_bytes in self.errors:
            raise self.errors[photo_bytes]
        return self.scores[photo_bytes]


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_client(app):
    """Return a factory producing a signed-in test client per username."""
    def _make(username, password='password123'):
        user_client = app.test_client()
        res = user_client.post('/api/register', json={
            'username': username, 'password': password,
        })
        assert res.status_code == 201, res.get_json()
        user_client.user = res.get_json()
        return user_client
    return _make


@pytest.fixture
def fake_scorer(app):
    scorer = FakeScorer()
    app.extensions['match_workflow'].scorer = scorer
    return scorer


@pytest.fixture
def published_events(app):
    """Capture every event the store publishes."""
    events = []
    store = app.extensions['match_store']
    original = store.notifier

    def _capture(event):
        events.append(event)
        original(event)

    store.notifier = _capture
    return events


def photo_payload(content=b'\xff\xd8\xff-photo', filename='me.jpg', mimetype='image/jpeg'):
    return (io.BytesIO(content), filename, mimetype)
