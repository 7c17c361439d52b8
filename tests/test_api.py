import logging
import time

import jwt
import pytest

import auth
from app import create_app
from builders import spot_row
from config import Config
from game_logic import GameService
from stores import SupabaseSpotStore, SupabaseCatchStore, SupabaseTerritoryStore
from titles import SpotTitleResolver

SECRET = 'test-jwt-secret-long-enough-for-hs256-signing'


class AlwaysConflictingStore(SupabaseSpotStore):
    def conditional_update(self, spot_id, expected_version, fields):
        return False


def make_token(user_id, secret=SECRET, expires_in=3600):
    return jwt.encode(
        {'sub': user_id, 'email': f'{user_id}@example.com', 'exp': int(time.time()) + expires_in},
        secret,
        algorithm='HS256',
    )


def headers(user_id='u1'):
    return {'Authorization': f'Bearer {make_token(user_id)}'}


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(Config, 'SUPABASE_JWT_SECRET', SECRET)
    auth.rate_limit_storage.clear()
    yield
    auth.rate_limit_storage.clear()


@pytest.fixture()
def client(game):
    return create_app(game=game).test_client()


@pytest.fixture()
def seeded(supabase):
    supabase.seed('territories', {'id': 'T', 'name': 'North Lakes'})
    supabase.seed(
        'spots',
        spot_row('S1', territory_id='T', king='u1', best_catch='c1', best_size=40, best_unit='cm'),
        spot_row('S2', territory_id='T'),
    )
    supabase.seed('profiles', {'id': 'u1', 'username': 'reelqueen', 'avatar_url': None})
    return supabase


def test_health(client):
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'ok'}


def test_requires_auth(client):
    assert client.get('/api/leaderboard').status_code == 401
    res = client.get('/api/leaderboard', headers={'Authorization': 'Bearer'})
    assert res.status_code == 401
    res = client.get('/api/leaderboard', headers={'Authorization': f'Bearer {make_token("u1", secret="a-different-secret-of-sufficient-length-xyz")}'})
    assert res.status_code == 401
    res = client.get('/api/leaderboard', headers={'Authorization': f'Bearer {make_token("u1", expires_in=-60)}'})
    assert res.status_code == 401


def test_submit_catch_takes_title(client, seeded, events):
    res = client.post('/api/catches', headers=headers('u2'), json={
        'spot_id': 'S1', 'species': 'Pike', 'size_value': 17, 'size_unit': 'in',
    })

    assert res.status_code == 201
    body = res.get_json()
    assert body['is_new_king'] is True
    assert body['previous_king_id'] == 'u1'
    assert body['catch']['user_id'] == 'u2'
    assert body['catch']['normalized_size_cm'] == pytest.approx(43.18)
    assert body['event']['previous_owner_id'] == 'u1'
    assert len(events) == 1


def test_submit_catch_validation_error(client, seeded, caplog):
    with caplog.at_level(logging.INFO, logger='app'):
        res = client.post('/api/catches', headers=headers(), json={'spot_id': 'S1', 'species': 'Pike', 'size_value': 0})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'invalid_catch'
    assert any('Rejected catch submission' in r.getMessage() for r in caplog.records)


def test_submit_catch_unknown_spot(client, seeded):
    res = client.post('/api/catches', headers=headers(), json={'spot_id': 'nope', 'species': 'Pike', 'size_value': 30})
    assert res.status_code == 404
    assert res.get_json()['error'] == 'not_found'


def test_submit_catch_contention_is_retryable(supabase):
    supabase.seed('spots', spot_row('S'))
    spot_store = AlwaysConflictingStore(supabase)
    game = GameService(
        spot_store=spot_store,
        catch_store=SupabaseCatchStore(supabase),
        territory_store=SupabaseTerritoryStore(supabase, spot_store),
        resolver=SpotTitleResolver(spot_store, max_attempts=2),
    )
    client = create_app(game=game).test_client()

    res = client.post('/api/catches', headers=headers(), json={'spot_id': 'S', 'species': 'Carp', 'size_value': 60})

    assert res.status_code == 409
    body = res.get_json()
    assert body['retryable'] is True
    assert supabase.row('catches', body['catch_id']) is not None


def test_spot_leaderboard_and_king(client, seeded):
    client.post('/api/catches', headers=headers('u1'), json={'spot_id': 'S2', 'species': 'Bass', 'size_value': 30})
    client.post('/api/catches', headers=headers('u2'), json={'spot_id': 'S2', 'species': 'Bass', 'size_value': 35})

    res = client.get('/api/spots/S2/leaderboard?limit=5', headers=headers())
    assert res.status_code == 200
    board = res.get_json()
    assert [e['user_id'] for e in board] == ['u2', 'u1']
    assert board[0]['is_current_king'] is True

    king = client.get('/api/spots/S1/king', headers=headers()).get_json()
    assert king['king']['username'] == 'reelqueen'


def test_territory_and_global_leaderboard(client, seeded):
    territory = client.get('/api/territories/T', headers=headers('u1')).get_json()
    assert territory['ruler_id'] == 'u1'
    assert territory['viewer_crowns'] == 1
    assert territory['total_spots'] == 2

    board = client.get('/api/leaderboard', headers=headers()).get_json()
    assert board[0]['user_id'] == 'u1'
    assert board[0]['territories_ruled'] == 1

    assert client.get('/api/territories/missing', headers=headers()).status_code == 404


def test_user_stats(client, seeded):
    client.post('/api/catches', headers=headers('u1'), json={'spot_id': 'S2', 'species': 'Bass', 'size_value': 30})

    stats = client.get('/api/users/u1/stats', headers=headers()).get_json()

    assert stats['total_catches'] == 1
    assert stats['crowned_spots'] == 2


def test_rate_limit(client, seeded, monkeypatch):
    monkeypatch.setattr(Config, 'RATE_LIMIT_REQUESTS', 2)
    payload = {'spot_id': 'S2', 'species': 'Bass', 'size_value': 10}

    assert client.post('/api/catches', headers=headers(), json=payload).status_code == 201
    assert client.post('/api/catches', headers=headers(), json=payload).status_code == 201
    res = client.post('/api/catches', headers=headers(), json=payload)
    assert res.status_code == 429
