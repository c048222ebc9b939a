"""
Test the dispatching JSON API.
Checks status codes and error bodies; lifecycle rules are covered by the context tests.
"""

import pytest
from sqlalchemy.exc import OperationalError
from fleet_dispatch.services.dispatching.dispatch_service import DispatchService

BASE = '/api/dispatches'
ACTOR = {'X-Actor-Id': '11'}


def _create(client, booking_id):
    return client.post(f'{BASE}/', json={'booking_id': booking_id}, headers=ACTOR)


@pytest.fixture
def dispatch_id(client, make_booking):
    response = _create(client, make_booking().id)
    assert response.status_code == 201
    return response.get_json()['dispatch_id']


def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok', 'database': 'ok'}


def test_create_dispatch(client, make_booking):
    booking = make_booking()

    response = _create(client, booking.id)

    assert response.status_code == 201
    body = response.get_json()
    assert body['booking_id'] == booking.id
    assert body['status'] == 'pending'
    assert body['assigned_driver'] is None
    assert body['created_by_id'] == 11


def test_create_duplicate_is_conflict(client, make_booking):
    booking = make_booking()
    _create(client, booking.id)

    response = _create(client, booking.id)

    assert response.status_code == 409
    assert response.get_json()['error'] == 'duplicate_dispatch'


def test_create_unknown_booking_is_not_found(client):
    response = _create(client, 9999)

    assert response.status_code == 404
    assert response.get_json()['error'] == 'not_found'


def test_create_requires_integer_booking_id(client):
    response = client.post(f'{BASE}/', json={'booking_id': 'abc'})

    assert response.status_code == 400


def test_non_integer_actor_is_bad_request(client, make_booking):
    response = client.post(f'{BASE}/', json={'booking_id': make_booking().id}, headers={'X-Actor-Id': 'ops'})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'bad_request'


def test_assign_and_list_available_drivers(client, dispatch_id, make_driver):
    driver = make_driver()
    assert [d['id'] for d in client.get(f'{BASE}/available-drivers').get_json()] == [driver.id]

    response = client.put(f'{BASE}/{dispatch_id}/assign-driver?driver_id={driver.id}', headers=ACTOR)

    assert response.status_code == 200
    assert response.get_json()['assigned_driver'] == driver.id
    assert client.get(f'{BASE}/available-drivers').get_json() == []


def test_assign_busy_driver_is_conflict(client, dispatch_id, make_booking, make_driver):
    driver = make_driver()
    client.put(f'{BASE}/{dispatch_id}/assign-driver?driver_id={driver.id}')
    other_id = _create(client, make_booking().id).get_json()['dispatch_id']

    response = client.put(f'{BASE}/{other_id}/assign-driver?driver_id={driver.id}')

    assert response.status_code == 409
    assert response.get_json()['error'] == 'driver_unavailable'


def test_assign_requires_driver_id(client, dispatch_id):
    response = client.put(f'{BASE}/{dispatch_id}/assign-driver')

    assert response.status_code == 400


def test_dispatch_without_driver_is_unprocessable(client, dispatch_id):
    response = client.put(f'{BASE}/{dispatch_id}/status', json={'status': 'dispatched'})

    assert response.status_code == 422
    assert response.get_json()['error'] == 'missing_driver'


def test_status_walk_with_explicit_times(client, dispatch_id, make_driver):
    client.put(f'{BASE}/{dispatch_id}/assign-driver?driver_id={make_driver().id}')

    steps = [
        {'status': 'dispatched', 'dispatch_time': '2024-05-01T08:00:00'},
        {'status': 'in_transit'},
        {'status': 'arrived', 'arrival_time': '2024-05-01T12:30:00'},
        {'status': 'completed'},
    ]
    for step in steps:
        response = client.put(f'{BASE}/{dispatch_id}/status', json=step, headers=ACTOR)
        assert response.status_code == 200, response.get_json()

    body = response.get_json()
    assert body['status'] == 'completed'
    assert body['dispatch_time'] == '2024-05-01T08:00:00'
    assert body['arrival_time'] == '2024-05-01T12:30:00'

    response = client.put(f'{BASE}/{dispatch_id}/status', json={'status': 'pending'})
    assert response.status_code == 409
    assert response.get_json()['error'] == 'invalid_transition'


def test_unknown_status_is_bad_request(client, dispatch_id):
    assert client.put(f'{BASE}/{dispatch_id}/status', json={'status': 'lost'}).status_code == 400
    assert client.get(f'{BASE}/?status=lost').status_code == 400
    assert client.get(f'{BASE}/status/lost').status_code == 400


def test_bad_timestamp_is_bad_request(client, dispatch_id, make_driver):
    client.put(f'{BASE}/{dispatch_id}/assign-driver?driver_id={make_driver().id}')

    response = client.put(f'{BASE}/{dispatch_id}/status', json={'status': 'dispatched', 'dispatch_time': 'soon'})

    assert response.status_code == 400


def test_cancel_then_cancel_again(client, dispatch_id):
    response = client.delete(f'{BASE}/{dispatch_id}/cancel', json={'reason': 'Customer request'}, headers=ACTOR)

    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'cancelled'
    assert body['cancelled_by_id'] == 11
    assert body['cancelled_reason'] == 'Customer request'

    assert client.delete(f'{BASE}/{dispatch_id}/cancel').status_code == 409


def test_delete_pending_then_lookup_by_booking(client, make_booking):
    booking = make_booking()
    dispatch_id = _create(client, booking.id).get_json()['dispatch_id']

    assert client.delete(f'{BASE}/{dispatch_id}').status_code == 204
    assert client.get(f'{BASE}/{dispatch_id}').status_code == 404
    assert client.get(f'{BASE}/booking/{booking.id}').status_code == 404


def test_delete_dispatched_is_conflict(client, dispatch_id, make_driver):
    client.put(f'{BASE}/{dispatch_id}/assign-driver?driver_id={make_driver().id}')
    client.put(f'{BASE}/{dispatch_id}/status', json={'status': 'dispatched'})

    response = client.delete(f'{BASE}/{dispatch_id}')

    assert response.status_code == 409
    assert response.get_json()['error'] == 'invalid_state'


def test_read_endpoints(client, dispatch_id, make_driver):
    driver = make_driver()
    client.put(f'{BASE}/{dispatch_id}/assign-driver?driver_id={driver.id}')

    assert client.get(f'{BASE}/{dispatch_id}').get_json()['dispatch_id'] == dispatch_id
    assert [d['dispatch_id'] for d in client.get(f'{BASE}/').get_json()] == [dispatch_id]
    assert [d['dispatch_id'] for d in client.get(f'{BASE}/driver/{driver.id}').get_json()] == [dispatch_id]
    assert [d['dispatch_id'] for d in client.get(f'{BASE}/status/pending').get_json()] == [dispatch_id]
    assert client.get(f'{BASE}/?limit=0').status_code == 200

    details = client.get(f'{BASE}/{dispatch_id}/with-details').get_json()
    assert details['driver']['id'] == driver.id
    assert details['allowed_transitions'] == ['cancelled', 'dispatched']

    history = client.get(f'{BASE}/{dispatch_id}/history').get_json()
    assert [h['action'] for h in history] == ['created', 'assigned']

    summary = client.get(f'{BASE}/summary').get_json()
    assert summary['pending'] == 1
    assert summary['total'] == 1


def test_unknown_dispatch_is_not_found(client):
    assert client.get(f'{BASE}/404').status_code == 404
    assert client.put(f'{BASE}/404/status', json={'status': 'cancelled'}).status_code == 404
    assert client.delete(f'{BASE}/404/cancel').status_code == 404


def test_store_outage_is_retryable(client, monkeypatch):
    def _unavailable():
        raise OperationalError('SELECT', {}, Exception('connection refused'))

    monkeypatch.setattr(DispatchService, 'status_summary', staticmethod(_unavailable))

    response = client.get(f'{BASE}/summary')

    assert response.status_code == 503
    assert response.get_json()['retryable'] is True


def test_offset_times_are_converted_to_utc(client, dispatch_id, make_driver):
    client.put(f'{BASE}/{dispatch_id}/assign-driver?driver_id={make_driver().id}')
    client.put(f'{BASE}/{dispatch_id}/status', json={'status': 'dispatched', 'dispatch_time': '2024-05-01T08:00:00'})
    client.put(f'{BASE}/{dispatch_id}/status', json={'status': 'in_transit'})

    response = client.put(
        f'{BASE}/{dispatch_id}/status',
        json={'status': 'arrived', 'arrival_time': '2024-05-01T10:00:00+00:00'},
    )
    assert response.status_code == 200, response.get_json()
    assert response.get_json()['arrival_time'] == '2024-05-01T10:00:00'

    response = client.put(
        f'{BASE}/{dispatch_id}/status',
        json={'status': 'completed'},
    )
    assert response.status_code == 200


def test_offset_time_before_dispatch_is_unprocessable(client, dispatch_id, make_driver):
    """09:30+02:00 is 07:30 UTC, before the 08:00 dispatch"""
    client.put(f'{BASE}/{dispatch_id}/assign-driver?driver_id={make_driver().id}')
    client.put(f'{BASE}/{dispatch_id}/status', json={'status': 'dispatched', 'dispatch_time': '2024-05-01T08:00:00'})
    client.put(f'{BASE}/{dispatch_id}/status', json={'status': 'in_transit'})

    response = client.put(
        f'{BASE}/{dispatch_id}/status',
        json={'status': 'arrived', 'arrival_time': '2024-05-01T09:30:00+02:00'},
    )

    assert response.status_code == 422
    assert response.get_json()['error'] == 'inconsistent_dispatch'
    assert client.get(f'{BASE}/{dispatch_id}').get_json()['status'] == 'in_transit'
