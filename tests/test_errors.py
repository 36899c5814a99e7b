import pytest
from werkzeug.exceptions import Forbidden

from mediqueue import create_app
from mediqueue.utils.cors import allowed_origins


@pytest.fixture
def unconfigured_client():
    app = create_app('testing', config_overrides={'SQLALCHEMY_DATABASE_URI': None})
    return app.test_client()


def test_unknown_path_returns_json_404(client):
    response = client.get('/api/does-not-exist')
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'error': 'Endpoint not found'}


def test_wrong_method_returns_405(client):
    response = client.delete('/api/departments')
    assert response.status_code == 405
    assert response.get_json()['success'] is False


def test_setup_required_when_database_not_configured(unconfigured_client):
    response = unconfigured_client.get('/api/departments')
    assert response.status_code == 503
    body = response.get_json()
    assert body['setup_required'] is True
    assert any('DATABASE_URL' in step for step in body['setup'])

    response = unconfigured_client.post('/api/bookings', json={'name': 'Asha'})
    assert response.status_code == 503


def test_health_endpoints_when_not_configured(unconfigured_client):
    assert unconfigured_client.get('/health').status_code == 200

    response = unconfigured_client.get('/health/setup')
    assert response.get_json()['setup_required'] is True

    response = unconfigured_client.get('/health/ready')
    assert response.status_code == 503
    assert response.get_json()['database'] == 'not_configured'


def test_placeholder_secret_counts_as_missing():
    app = create_app('testing', config_overrides={'SECRET_KEY': 'your-secret-key'})
    assert app.config['DATA_SERVICE_CONFIGURED'] is False


def test_health_ready_when_connected(client):
    response = client.get('/health/ready')
    assert response.status_code == 200
    assert response.get_json()['database'] == 'connected'


def test_error_boundary_returns_recovery_payload(app, client):
    @app.route('/boom')
    def boom():
        raise RuntimeError('kaboom')

    response = client.get('/boom')
    assert response.status_code == 500
    body = response.get_json()
    assert body['success'] is False
    assert body['recovery'] == {'reload': '/boom', 'home': '/'}
    report = body['report']
    assert report['path'] == '/boom'
    assert report['method'] == 'GET'
    assert report['error_type'] == 'RuntimeError'
    assert report['id'] and report['timestamp']
    assert 'message' not in report


def test_error_boundary_includes_message_in_debug(app, client):
    @app.route('/boom')
    def boom():
        raise RuntimeError('kaboom')

    app.config['DEBUG'] = True
    response = client.get('/boom')
    assert response.get_json()['report']['message'] == 'kaboom'


def test_http_errors_keep_their_status(app, client):
    @app.route('/forbidden')
    def forbidden():
        raise Forbidden('No entry')

    response = client.get('/forbidden')
    assert response.status_code == 403
    assert response.get_json() == {'success': False, 'error': 'No entry'}


def test_expired_or_bad_token(client):
    response = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-jwt'})
    assert response.status_code == 401
    assert response.get_json()['success'] is False


@pytest.mark.parametrize('value, expected', [
    (None, '*'),
    ('*', '*'),
    ('', '*'),
    ('https://desk.clinic.example, https://tv.clinic.example',
     ['https://desk.clinic.example', 'https://tv.clinic.example']),
    (['https://desk.clinic.example'], ['https://desk.clinic.example']),
])
def test_allowed_origins(value, expected):
    assert allowed_origins(value) == expected


def test_cors_honours_configured_origins():
    app = create_app('testing', config_overrides={
        'SQLALCHEMY_DATABASE_URI': None,
        'CORS_ORIGINS': 'https://desk.clinic.example',
    })
    client = app.test_client()

    response = client.get('/health', headers={'Origin': 'https://desk.clinic.example'})
    assert response.headers['Access-Control-Allow-Origin'] == 'https://desk.clinic.example'

    response = client.get('/health', headers={'Origin': 'https://elsewhere.example'})
    assert 'Access-Control-Allow-Origin' not in response.headers


def test_cors_defaults_to_any_origin(unconfigured_client):
    response = unconfigured_client.get('/health', headers={'Origin': 'https://tv.clinic.example'})
    assert response.headers['Access-Control-Allow-Origin'] == '*'
