import pytest

from mediqueue.config import is_data_service_configured
from mediqueue.extensions import db
from mediqueue.models import Department, ClinicSetting
from mediqueue.services.data_access import (
    NOT_CONFIGURED,
    safe_query,
    initialize_database,
    probe_connection,
)


def test_safe_query_returns_data(app):
    result = safe_query(lambda: Department.query.count())
    assert result.data == 3
    assert result.error is None


def test_safe_query_with_raising_thunk(app):
    def boom():
        raise RuntimeError('relation "visits" does not exist')

    data, error = safe_query(boom)
    assert data is None
    assert error == 'relation "visits" does not exist'


def test_safe_query_falls_back_to_generic_message(app):
    def boom():
        raise RuntimeError()

    assert safe_query(boom).error == 'Database operation failed'


def test_safe_query_when_not_configured(app):
    app.config['DATA_SERVICE_CONFIGURED'] = False
    calls = []

    result = safe_query(lambda: calls.append(1))
    assert result == (None, NOT_CONFIGURED)
    assert calls == []


def test_initialize_database_is_idempotent(app):
    initialize_database()
    initialize_database()
    assert Department.query.count() == 3
    assert ClinicSetting.query.count() == 3
    assert ClinicSetting.query.filter_by(setting_key='maintenance_mode').first().setting_value is False


def test_initialize_database_keeps_existing_departments(app):
    Department.query.delete()
    db.session.add(Department(name='dermatology', display_name='Dermatology'))
    db.session.commit()

    initialize_database()
    assert [d.name for d in Department.query.all()] == ['dermatology']


def test_probe_connection_success(app):
    assert probe_connection() is True


def test_probe_connection_retries_with_linear_backoff(app, monkeypatch):
    def unreachable(*args, **kwargs):
        raise ConnectionError('could not connect to server')

    monkeypatch.setattr(db.session, 'execute', unreachable)
    sleeps = []

    assert probe_connection(retries=3, backoff=2, sleep=sleeps.append) is False
    assert sleeps == [2, 4]


def test_probe_connection_not_configured(app):
    app.config['DATA_SERVICE_CONFIGURED'] = False
    assert probe_connection(sleep=pytest.fail) is False


@pytest.mark.parametrize('url,key,expected', [
    ('postgresql://clinic@localhost/clinic', 's3cret-value', True),
    (None, 's3cret-value', False),
    ('postgresql://clinic@localhost/clinic', None, False),
    ('your-database-url', 's3cret-value', False),
    ('postgresql://clinic@localhost/clinic', 'your-secret-key', False),
    ('   ', 's3cret-value', False),
])
def test_is_data_service_configured(url, key, expected):
    assert is_data_service_configured(url, key) is expected
