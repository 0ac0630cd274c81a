import os
import sys
import pytest

# Ensure the backend root (containing the `pintintin` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from pintintin import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    ADMIN_USERNAME = 'Raymond'
    ADMIN_PASSWORD = 'admin-secret'
    GUEST_DISPLAY_NAME = 'Invitado'
    SHARE_BASE_URL = 'http://pintintin.test'
    CORS_ORIGINS = ['http://localhost:5173']


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import pintintin.models  # noqa: F401
        db.create_all()
    # No app context is held during the test; each request pushes its own
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def login(client, username, password=None, role=None):
    body = {'username': username}
    if password is not None:
        body['password'] = password
    if role is not None:
        body['role'] = role
    return client.post('/login', json=body)


@pytest.fixture()
def user_client(flask_app):
    c = flask_app.test_client()
    assert login(c, 'Mesa').status_code == 200
    return c


@pytest.fixture()
def admin_client(flask_app):
    c = flask_app.test_client()
    assert login(c, 'Raymond', 'admin-secret').status_code == 200
    return c


@pytest.fixture()
def guest_client(flask_app):
    c = flask_app.test_client()
    assert login(c, '', role='guest').status_code == 200
    return c


@pytest.fixture()
def trio(user_client):
    """Three roster players created through the API, in creation order."""
    ids = []
    for name in ('Ana', 'Beto', 'Carla'):
        res = user_client.post('/api/players/', json={'name': name})
        assert res.status_code == 201
        ids.append(res.get_json()['id'])
    return ids


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
