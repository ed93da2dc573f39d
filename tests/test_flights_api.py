"""
API tests for flight CRUD, zone-gated edits, ownership transfer and locks.

The app clock starts at 2026-03-01 12:00 Moscow time. Flights out of
Domodedovo scheduled for later in the day sit at UUDD, inside the
moscow_uudd circle and the Moscow region.
"""

import pytest

from skydispatch.models import FlightRecord

from conftest import admin_token, auth_header, flight_body, login, register, register_and_login


def domodedovo_departure(callsign: str = 'SU200', **extra) -> dict:
    return flight_body(callsign, 'UUDD', 'URSS', '2026-03-01 14:00', '2026-03-01 16:30', **extra)


def create(client, token: str, body: dict):
    return client.post('/flights', headers=auth_header(token), json=body)


def update(client, token: str, flight_id: str, body: dict):
    return client.put(f'/flights/{flight_id}', headers=auth_header(token), json=body)


@pytest.fixture
def alice(client):
    return register_and_login(client, 'alice', 'moscow_uudd')


@pytest.fixture
def bob(client):
    return register_and_login(client, 'bob', 'moscow_uuee')


@pytest.fixture
def flight(client, alice):
    response = create(client, alice['token'], domodedovo_departure(speed=0, altitude=0))
    assert response.status_code == 201
    return response.get_json()


class TestCreate:

    def test_requires_login(self, client):
        response = client.post('/flights', json=domodedovo_departure())
        assert response.status_code == 401

    def test_created_flight(self, client, alice):
        response = create(client, alice['token'], domodedovo_departure('su200', priority='high', phase='Taxi'))
        assert response.status_code == 201

        body = response.get_json()
        assert body['callsign'] == 'SU200'
        assert body['ownerId'] == alice['id']
        assert body['ownerName'] == 'alice'
        assert body['status'] == 'scheduled'
        assert body['progress'] == 0.0
        assert body['priority'] == 'HIGH'
        assert body['phase'] == 'Taxi'
        assert body['departureMsk'] == '2026-03-01 14:00'
        assert body['origin']['icao'] == 'UUDD'
        assert body['transferPending'] is False
        assert body['isLocked'] is False

        listed = client.get('/flights').get_json()
        assert [f['id'] for f in listed] == [body['id']]

    @pytest.mark.parametrize('body,error', [
        (flight_body('AB', 'UUDD', 'URSS', '2026-03-01 14:00', '2026-03-01 16:30'), 'invalid_callsign'),
        (flight_body('SU200', 'UUDD', 'UUDD', '2026-03-01 14:00', '2026-03-01 16:30'), 'invalid_route'),
        (flight_body('SU200', '', 'URSS', '2026-03-01 14:00', '2026-03-01 16:30'), 'invalid_route'),
        (flight_body('SU200', 'UUDD', 'ZZZZ', '2026-03-01 14:00', '2026-03-01 16:30'), 'unknown_airport'),
        (flight_body('SU200', 'UUDD', 'URSS', '2026-03-01 16:30', '2026-03-01 14:00'), 'invalid_schedule'),
        (flight_body('SU200', 'UUDD', 'URSS', 'soon', '2026-03-01 14:00'), 'invalid_schedule'),
    ])
    def test_validation(self, client, alice, body, error):
        response = create(client, alice['token'], body)
        assert response.status_code == 400
        assert response.get_json() == {'error': error}

    def test_callsign_taken(self, client):
        lena = register_and_login(client, 'lena', 'los_angeles')
        body = flight_body('AAL1', 'KJFK', 'KLAX', '2026-03-01 14:00', '2026-03-01 20:00')
        assert create(client, lena['token'], body).status_code == 201

        response = create(client, lena['token'], flight_body('aal1', 'EGLL', 'EDDF', '2026-03-01 15:00',
                                                            '2026-03-01 17:00'))
        assert response.status_code == 409
        assert response.get_json() == {'error': 'callsign_taken'}

    def test_completed_flight_releases_callsign(self, client, alice):
        past = flight_body('SU100', 'UUDD', 'URSS', '2026-03-01 08:00', '2026-03-01 10:00')
        assert create(client, alice['token'], past).get_json()['status'] == 'completed'

        again = create(client, alice['token'], domodedovo_departure('SU100'))
        assert again.status_code == 201


class TestUpdate:

    def test_owner_updates_in_zone(self, client, alice, flight):
        body = domodedovo_departure(phase='Pushback', speed=12)
        response = update(client, alice['token'], flight['id'], body)
        assert response.status_code == 200
        assert response.get_json()['phase'] == 'Pushback'
        assert response.get_json()['speed'] == 12

    def test_omitted_fields_keep_current_values(self, client, alice):
        created = create(client, alice['token'], domodedovo_departure(
            speed=250, altitude=5000, awaitingAtc=True, priority='EMERGENCY', phase='Taxi')).get_json()

        updated = update(client, alice['token'], created['id'], domodedovo_departure()).get_json()
        assert updated['speed'] == 250
        assert updated['altitude'] == 5000
        assert updated['awaitingAtc'] is True
        assert updated['priority'] == 'EMERGENCY'
        assert updated['phase'] == 'Taxi'

    def test_dispatcher_outside_zone_is_forbidden(self, client, bob, flight):
        response = update(client, bob['token'], flight['id'], domodedovo_departure())
        assert response.status_code == 403
        assert response.get_json() == {'error': 'zone_forbidden'}

    def test_missing_flight(self, client, alice):
        response = update(client, alice['token'], 'missing', domodedovo_departure())
        assert response.status_code == 404
        assert response.get_json() == {'error': 'not_found'}

    def test_region_dispatcher_shadowed_by_airport(self, client, alice, flight):
        rita = register_and_login(client, 'rita', 'moscow_region')

        response = update(client, rita['token'], flight['id'], domodedovo_departure())
        assert response.status_code == 403

        client.post('/auth/logout', headers=auth_header(alice['token']))
        response = update(client, rita['token'], flight['id'], domodedovo_departure())
        assert response.status_code == 200
        # Owned flights keep their owner when someone else edits them
        assert response.get_json()['ownerId'] == alice['id']

    def test_unowned_flight_is_taken_over_on_edit(self, client, alice, flight):
        admin = admin_token(client)
        client.delete(f"/dispatchers/{alice['id']}", headers=auth_header(admin))

        register(client, 'dana', 'sochi')
        dana = login(client, 'dana', 'moscow_uudd').get_json()
        response = update(client, dana['token'], flight['id'], domodedovo_departure())
        assert response.get_json()['ownerId'] == dana['id']
        assert response.get_json()['ownerName'] == 'dana'

    def test_callsign_clash_on_update(self, client, alice, flight):
        create(client, alice['token'], domodedovo_departure('SU300'))
        response = update(client, alice['token'], flight['id'], domodedovo_departure('SU300'))
        assert response.status_code == 409
        assert response.get_json() == {'error': 'callsign_taken'}


class TestDelete:

    def test_owner_deletes(self, client, alice, flight):
        response = client.delete(f"/flights/{flight['id']}", headers=auth_header(alice['token']))
        assert response.get_json() == {'ok': True}
        assert client.get('/flights').get_json() == []

    def test_outside_zone(self, client, bob, flight):
        response = client.delete(f"/flights/{flight['id']}", headers=auth_header(bob['token']))
        assert response.status_code == 403


class TestLocks:

    def lock(self, client, token: str, flight_id: str, locked: bool = True):
        return client.post(f'/flights/{flight_id}/lock', headers=auth_header(token), json={'locked': locked})

    def test_locked_flight_rejects_dispatcher_but_not_admin(self, client, alice, flight):
        admin = admin_token(client)
        locked = self.lock(client, admin, flight['id']).get_json()
        assert locked['isLocked'] is True
        assert locked['lockedBy'] == 'admin'

        response = update(client, alice['token'], flight['id'], domodedovo_departure())
        assert response.status_code == 423
        assert response.get_json() == {'error': 'locked'}

        response = update(client, admin, flight['id'], domodedovo_departure(phase='Taxi'))
        assert response.status_code == 200
        assert response.get_json()['phase'] == 'Taxi'
        # Admin edits never take over ownership
        assert response.get_json()['ownerId'] == alice['id']

        unlocked = self.lock(client, admin, flight['id'], locked=False).get_json()
        assert unlocked['isLocked'] is False
        assert unlocked['lockedBy'] is None
        assert update(client, alice['token'], flight['id'], domodedovo_departure()).status_code == 200

    def test_dispatcher_cannot_lock(self, client, alice, flight):
        response = self.lock(client, alice['token'], flight['id'])
        assert response.status_code == 403
        assert response.get_json() == {'error': 'forbidden'}


class TestTransfers:

    def offer(self, client, token: str, flight_id: str, to_user_id):
        return client.post(f'/flights/{flight_id}/transfer', headers=auth_header(token),
                           json={'toUserId': to_user_id})

    def test_request_and_decline(self, client, clock, alice, bob, flight):
        offered = self.offer(client, alice['token'], flight['id'], bob['id'])
        assert offered.status_code == 200
        body = offered.get_json()
        assert body['transferPending'] is True
        assert body['transferToUserId'] == bob['id']
        assert body['transferRequestedAt'] == clock.now
        assert body['transferExpiresAt'] == clock.now + 15000

        pending = client.get('/transfers/pending', headers=auth_header(bob['token'])).get_json()
        assert [f['id'] for f in pending] == [flight['id']]
        assert client.get('/transfers/pending', headers=auth_header(alice['token'])).get_json() == []

        # Frozen while the offer is open
        response = update(client, alice['token'], flight['id'], domodedovo_departure())
        assert response.status_code == 409
        assert response.get_json() == {'error': 'transfer_pending'}

        declined = client.post(f"/flights/{flight['id']}/transfer/decline",
                               headers=auth_header(bob['token'])).get_json()
        assert declined['transferPending'] is False
        assert declined['ownerId'] == alice['id']
        assert update(client, alice['token'], flight['id'], domodedovo_departure()).status_code == 200

    def test_accept_moves_ownership(self, client, alice, bob, flight):
        self.offer(client, alice['token'], flight['id'], bob['id'])
        accepted = client.post(f"/flights/{flight['id']}/transfer/accept",
                               headers=auth_header(bob['token'])).get_json()
        assert accepted['ownerId'] == bob['id']
        assert accepted['ownerName'] == 'bob'
        assert accepted['transferPending'] is False
        assert accepted['transferToUserId'] is None

    def test_only_target_can_answer(self, client, alice, bob, flight):
        self.offer(client, alice['token'], flight['id'], bob['id'])
        response = client.post(f"/flights/{flight['id']}/transfer/accept", headers=auth_header(alice['token']))
        assert response.status_code == 409
        assert response.get_json() == {'error': 'transfer_not_found'}

    def test_second_offer_is_rejected(self, client, alice, bob, flight):
        self.offer(client, alice['token'], flight['id'], bob['id'])
        response = self.offer(client, alice['token'], flight['id'], bob['id'])
        assert response.status_code == 409
        assert response.get_json() == {'error': 'transfer_pending'}

    def test_expired_offer_restores_access(self, client, clock, alice, bob, flight):
        self.offer(client, alice['token'], flight['id'], bob['id'])
        clock.advance(15000)

        listed = client.get('/flights').get_json()[0]
        assert listed['transferPending'] is False
        assert listed['transferExpiresAt'] is None
        assert client.get('/transfers/pending', headers=auth_header(bob['token'])).get_json() == []

        response = client.post(f"/flights/{flight['id']}/transfer/accept", headers=auth_header(bob['token']))
        assert response.get_json() == {'error': 'transfer_not_found'}
        assert update(client, alice['token'], flight['id'], domodedovo_departure()).status_code == 200

    def test_expired_offer_is_cleared_on_write_paths_too(self, client, clock, alice, bob, flight):
        self.offer(client, alice['token'], flight['id'], bob['id'])
        clock.advance(20000)
        assert update(client, alice['token'], flight['id'], domodedovo_departure()).status_code == 200

    def test_invalid_targets(self, client, alice, bob, flight):
        assert self.offer(client, alice['token'], flight['id'], '').get_json() == {'error': 'invalid_target'}
        assert self.offer(client, alice['token'], flight['id'], alice['id']).get_json() == {'error': 'invalid_target'}

        response = self.offer(client, alice['token'], flight['id'], 'missing')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'user_not_found'}

    def test_offline_target(self, client, alice, flight):
        register(client, 'carl', 'sochi')
        carl_id = next(
            d['id'] for d in client.get('/dispatchers', headers=auth_header(admin_token(client))).get_json()
            if d['username'] == 'carl'
        )
        response = self.offer(client, alice['token'], flight['id'], carl_id)
        assert response.status_code == 409
        assert response.get_json() == {'error': 'user_offline'}

    def test_outside_zone_cannot_offer(self, client, alice, bob, flight):
        response = self.offer(client, bob['token'], flight['id'], alice['id'])
        assert response.status_code == 403
        assert response.get_json() == {'error': 'zone_forbidden'}

    def test_pending_transfer_checked_before_lock(self, client, alice, bob, flight):
        admin = admin_token(client)
        assert self.offer(client, admin, flight['id'], bob['id']).status_code == 200
        client.post(f"/flights/{flight['id']}/lock", headers=auth_header(admin), json={'locked': True})

        response = update(client, alice['token'], flight['id'], domodedovo_departure())
        assert response.status_code == 409
        assert response.get_json() == {'error': 'transfer_pending'}


class TestAudit:

    def test_operations_are_logged(self, client, alice, bob, flight):
        update(client, alice['token'], flight['id'], domodedovo_departure(speed=10))
        client.post(f"/flights/{flight['id']}/transfer", headers=auth_header(alice['token']),
                    json={'toUserId': bob['id']})

        logs = client.get('/logs', headers=auth_header(admin_token(client))).get_json()
        actions = [e['actionType'] for e in logs]
        for expected in ('flight_create', 'flight_update', 'transfer_request'):
            assert expected in actions

        updated = next(e for e in logs if e['actionType'] == 'flight_update')
        assert updated['actorName'] == 'alice'
        assert updated['entityId'] == flight['id']
        assert updated['diff']['speed'] == 10


class TestReferenceData:

    def test_zones(self, client):
        zones = client.get('/zones').get_json()
        assert zones[0]['id'] == 'moscow_region'
        uudd = next(z for z in zones if z['id'] == 'moscow_uudd')
        assert uudd['parentId'] == 'moscow_region'
        assert uudd['radiusKm'] == 35
        assert uudd['icao'] == 'UUDD'
        assert uudd['occupied'] is False

    def test_airport_search(self, client):
        by_code = client.get('/airports/search?q=uudd').get_json()
        assert by_code[0]['icao'] == 'UUDD'

        by_name = client.get('/airports/search?q=sheremetyevo').get_json()
        assert [a['icao'] for a in by_name] == ['UUEE']

        assert client.get('/airports/search?q=k').get_json() == []

    def test_unreadable_flight_table_serves_empty_list(self, client, state, alice, flight):
        FlightRecord.__table__.drop(state.storage.engine)
        response = client.get('/flights')
        assert response.status_code == 200
        assert response.get_json() == []
