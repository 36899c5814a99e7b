import pytest

from mediqueue.services.notifications import NotificationChannel


@pytest.fixture
def standalone(scheduler):
    return NotificationChannel(scheduler=scheduler)


def test_publish_returns_id_and_lists_active(standalone):
    notification_id = standalone.success('Saved', 'Patient saved')
    active = standalone.active()
    assert [n.id for n in active] == [notification_id]
    assert active[0].kind == 'success'
    assert active[0].duration_ms == 5000


def test_publish_rejects_unknown_kind_and_empty_title(standalone):
    with pytest.raises(ValueError):
        standalone.publish('fatal', 'Boom')
    with pytest.raises(ValueError):
        standalone.publish('info', '')
    assert standalone.active() == []


def test_auto_dismiss_after_duration(standalone, scheduler):
    standalone.info('Heads up')
    scheduler.advance(4.9)
    assert len(standalone.active()) == 1
    scheduler.advance(0.2)
    assert standalone.active() == []


def test_persistent_notification_is_never_auto_removed(standalone, scheduler):
    notification_id = standalone.error('Connection lost', persistent=True)
    scheduler.advance(60)
    assert [n.id for n in standalone.active()] == [notification_id]
    assert scheduler.pending() == []


def test_zero_duration_disables_auto_dismiss(standalone, scheduler):
    standalone.warning('Stay', duration_ms=0)
    scheduler.advance(3600)
    assert len(standalone.active()) == 1


def test_dismiss_unknown_id_leaves_stack_unchanged(standalone):
    standalone.info('One')
    standalone.info('Two')
    before = [n.id for n in standalone.active()]

    assert standalone.dismiss('does-not-exist') is False
    assert [n.id for n in standalone.active()] == before


def test_manual_dismiss_cancels_timer(standalone, scheduler):
    notification_id = standalone.info('Bye')
    assert standalone.dismiss(notification_id) is True
    assert scheduler.pending() == []
    assert standalone.dismiss(notification_id) is False


def test_clear_all(standalone, scheduler):
    standalone.info('One')
    standalone.success('Two')
    standalone.clear_all()
    assert standalone.active() == []
    assert scheduler.pending() == []


def test_subscribers_receive_stack_and_can_unsubscribe(standalone, scheduler):
    seen = []
    unsubscribe = standalone.subscribe(lambda stack: seen.append([n.title for n in stack]))

    standalone.info('First')
    standalone.info('Second')
    scheduler.advance(5)
    assert seen == [['First'], ['First', 'Second'], ['Second'], []]

    unsubscribe()
    standalone.info('Third')
    assert len(seen) == 4


def test_failing_subscriber_does_not_break_publish(standalone):
    def broken(stack):
        raise RuntimeError('subscriber bug')

    standalone.subscribe(broken)
    notification_id = standalone.info('Still works')
    assert [n.id for n in standalone.active()] == [notification_id]


def test_notifications_api(client, channel, receptionist_headers):
    response = client.post('/api/notifications', json={'kind': 'warning', 'title': 'Low stock'},
                           headers=receptionist_headers)
    assert response.status_code == 201
    notification_id = response.get_json()['data']['id']

    response = client.get('/api/notifications')
    assert [n['id'] for n in response.get_json()['data']] == [notification_id]

    response = client.delete('/api/notifications/unknown', headers=receptionist_headers)
    assert response.get_json()['dismissed'] is False
    assert len(channel.active()) == 1

    response = client.delete(f'/api/notifications/{notification_id}', headers=receptionist_headers)
    assert response.get_json()['dismissed'] is True
    assert channel.active() == []


def test_notifications_api_validates_kind(client, receptionist_headers):
    response = client.post('/api/notifications', json={'kind': 'loud', 'title': 'x'},
                           headers=receptionist_headers)
    assert response.status_code == 400
    response = client.post('/api/notifications', json={'kind': 'info', 'title': '  '},
                           headers=receptionist_headers)
    assert response.status_code == 400


@pytest.mark.parametrize('body', [
    {'kind': 'info', 'title': 5},
    {'kind': 'info', 'title': 'Hi', 'message': ['a']},
    {'kind': 'info', 'title': 'Hi', 'duration_ms': True},
    [{'kind': 'info', 'title': 'Hi'}],
])
def test_notifications_api_rejects_malformed_body(client, channel, receptionist_headers, body):
    response = client.post('/api/notifications', json=body, headers=receptionist_headers)
    assert response.status_code == 400
    assert response.get_json()['success'] is False
    assert channel.active() == []


def test_notification_changes_require_staff(client, channel):
    channel.info('Staff only')

    assert client.post('/api/notifications', json={'title': 'x'}).status_code == 401
    assert client.delete('/api/notifications').status_code == 401
    notification_id = channel.active()[0].id
    assert client.delete(f'/api/notifications/{notification_id}').status_code == 401
    assert len(channel.active()) == 1

    assert client.get('/api/notifications').status_code == 200


def test_clear_notifications_api(client, channel, doctor_headers):
    channel.info('One')
    channel.info('Two')
    response = client.delete('/api/notifications', headers=doctor_headers)
    assert response.status_code == 200
    assert channel.active() == []
