from datetime import date, timedelta

import pytest

from mediqueue.extensions import db
from mediqueue.models import Visit
from mediqueue.services.queue_service import (
    estimate_wait_time,
    queue_position,
    queue_message,
    generate_uid,
    now_serving,
    queue_status,
    department_stats,
    completion_percent,
    call_next,
    expire_stale_visits,
)


def test_estimate_wait_time_is_non_negative_and_monotone():
    waits = [estimate_wait_time(position) for position in range(0, 50)]
    assert all(w >= 0 for w in waits)
    assert waits == sorted(waits)
    assert estimate_wait_time(3) == 30
    assert estimate_wait_time(3, avg_service_time=15) == 45


def test_estimate_wait_time_clamps_negative_positions():
    assert estimate_wait_time(-4) == 0


@pytest.mark.parametrize('user_token,serving,expected', [
    (5, 2, 3),
    (2, 2, 0),
    (1, 7, 0),
    (0, 0, 0),
])
def test_queue_position_never_negative(user_token, serving, expected):
    assert queue_position(user_token, serving) == expected


@pytest.mark.parametrize('waiting,message', [
    (0, 'No Queue - Walk In!'),
    (1, 'Short Queue - Quick Service'),
    (3, 'Short Queue - Quick Service'),
    (4, 'Moderate Queue - Book Now'),
    (8, 'Moderate Queue - Book Now'),
    (9, 'Busy - Plan Ahead'),
])
def test_queue_message_thresholds(waiting, message):
    assert queue_message(waiting) == message


def test_generate_uid_format():
    uid = generate_uid(prefix='CLN1')
    assert uid.startswith('CLN1-')
    assert uid == uid.upper()
    assert len(uid) > len('CLN1-') + 6
    assert generate_uid(prefix='CLN1') != uid


def test_generate_uid_uses_configured_prefix(app):
    app.config['CLINIC_UID_PREFIX'] = 'ab2'
    assert generate_uid().startswith('AB2-')


def test_now_serving_empty_department(app):
    assert now_serving('general', date.today()) == 0


def test_now_serving_prefers_token_in_service(make_visit):
    make_visit(status='completed')
    make_visit(status='in_service')
    make_visit(status='waiting')
    assert now_serving('general', date.today()) == 2


def test_now_serving_falls_back_to_last_completed(make_visit):
    make_visit(status='completed')
    make_visit(status='completed')
    make_visit(status='waiting')
    assert now_serving('general', date.today()) == 2


def test_queue_status_for_user_token(make_visit):
    make_visit(status='completed')
    make_visit(status='in_service')
    make_visit(status='waiting')
    make_visit(status='checked_in')
    make_visit(status='held')

    status = queue_status('general', user_stn=5)

    assert status['now_serving'] == 2
    assert status['total_waiting'] == 2
    assert status['total_in_service'] == 1
    assert status['total_completed'] == 1
    assert status['total_held'] == 1
    assert status['your_token'] == 5
    assert status['position'] == 3
    assert status['estimated_wait_minutes'] == 30
    assert status['progress_percent'] == 20
    assert status['refresh_seconds'] == 15


def test_queue_status_is_scoped_to_department_and_day(make_visit):
    make_visit(department='cardiology', status='waiting')
    make_visit(status='waiting', visit_date=date.today() - timedelta(days=1))

    status = queue_status('general')
    assert status['total_waiting'] == 0
    assert 'position' not in status


def test_department_stats(make_visit):
    make_visit(status='waiting')
    make_visit(status='waiting')

    stats = department_stats()
    by_name = {d['department']: d for d in stats['departments']}

    assert set(by_name) == {'general', 'cardiology', 'orthopedics'}
    assert by_name['general']['total_waiting'] == 2
    assert by_name['general']['estimated_wait_for_new'] == 30
    assert by_name['general']['message'] == 'Short Queue - Quick Service'
    assert by_name['cardiology']['message'] == 'No Queue - Walk In!'
    assert by_name['general']['completion_percent'] == 0
    assert stats['total_waiting'] == 2


@pytest.mark.parametrize('completed,waiting,expected', [
    (0, 0, 0),
    (0, 5, 0),
    (1, 1, 50),
    (2, 1, 67),
    (1, 2, 33),
    (4, 0, 100),
])
def test_completion_percent(completed, waiting, expected):
    assert completion_percent(completed, waiting) == expected


def test_department_stats_completion_and_doctors(make_visit, doctor):
    make_visit(status='completed')
    make_visit(status='completed')
    make_visit(status='waiting')

    by_name = {d['department']: d for d in department_stats()['departments']}
    assert by_name['general']['completion_percent'] == 67
    assert by_name['general']['doctor_count'] == 1
    assert by_name['cardiology']['completion_percent'] == 0
    assert by_name['cardiology']['doctor_count'] == 0


def test_call_next_advances_queue_in_stn_order(make_visit):
    first = make_visit(status='in_service')
    second = make_visit(status='waiting')
    third = make_visit(status='checked_in')

    completed, upcoming = call_next('general')
    assert [v.id for v in completed] == [first.id]
    assert upcoming.id == second.id
    assert db.session.get(Visit, first.id).status == 'completed'
    assert db.session.get(Visit, second.id).status == 'in_service'

    completed, upcoming = call_next('general')
    assert upcoming.id == third.id

    completed, upcoming = call_next('general')
    assert [v.id for v in completed] == [third.id]
    assert upcoming is None
    assert now_serving('general', date.today()) == 3


def test_expire_stale_visits(make_visit):
    yesterday = date.today() - timedelta(days=1)
    stale_waiting = make_visit(status='waiting', visit_date=yesterday)
    stale_held = make_visit(status='held', visit_date=yesterday)
    done = make_visit(status='completed', visit_date=yesterday)
    current = make_visit(status='waiting')

    assert expire_stale_visits() == 2

    assert db.session.get(Visit, stale_waiting.id).status == 'expired'
    assert db.session.get(Visit, stale_held.id).status == 'expired'
    assert db.session.get(Visit, done.id).status == 'completed'
    assert db.session.get(Visit, current.id).status == 'waiting'
