import json

from conftest import login
from pintintin import db
from pintintin.models import StateRecord
from pintintin.services.games import EXTENSION_KEY, get_state
from pintintin.services.games.state import GameState, KEY_COUNT, KEY_HISTORY, KEY_PLAYERS
from pintintin.services.games.store import save_snapshot


def start(client, player_ids, **extra):
    return client.post('/api/game/start', json={'player_ids': player_ids, **extra})


def points(client, player_id, amount):
    return client.post('/api/game/points', json={'player_id': player_id, 'points': amount})


def test_login_roles(client):
    res = login(client, 'Mesa')
    assert res.status_code == 200
    assert res.get_json()['role'] == 'user'
    assert client.get('/check_login').get_json()['role'] == 'user'


def test_login_requires_username(client):
    assert login(client, '  ').status_code == 400


def test_admin_login_checks_password(client):
    assert login(client, 'Raymond', 'wrong').status_code == 401
    res = login(client, 'Raymond', 'admin-secret')
    assert res.get_json()['role'] == 'admin'


def test_shared_link_logs_in_as_guest(client):
    res = client.post('/login?game=live', json={'username': ''})
    data = res.get_json()
    assert data['role'] == 'guest'
    assert data['user']['username'] == 'Invitado'


def test_state_requires_login(client):
    assert client.get('/api/game/state').status_code == 401


def test_guest_can_observe_but_not_mutate(guest_client, trio):
    state = guest_client.get('/api/game/state').get_json()
    assert state['role'] == 'guest'
    assert state['rules']['threshold'] == 150
    assert len(state['players']) == 3
    assert start(guest_client, trio).status_code == 403
    assert guest_client.post('/api/players/', json={'name': 'Dani'}).status_code == 403


def test_points_game_flow(user_client, trio):
    a, b, c = trio
    res = start(user_client, trio)
    assert res.status_code == 201
    assert res.get_json()['active_game']['state'] == 'open'

    points(user_client, a, 50)
    points(user_client, a, 50)
    points(user_client, b, 50)
    points(user_client, c, 20)
    res = points(user_client, a, 50)
    data = res.get_json()
    assert data['active_game']['is_finished'] is True
    assert data['active_game']['winner_id'] == a
    assert data['active_game']['loser_id'] == c
    assert data['history_entry']['player_id'] == c
    assert data['history_entry']['opponents'] == ['Ana', 'Beto']
    assert data['game_count'] == 1

    players = {p['id']: p for p in user_client.get('/api/players/').get_json()}
    assert players[c]['losses'] == 1
    assert players[a]['losses'] == 0

    # no more scoring once finished
    res = points(user_client, b, 10)
    assert res.status_code == 409
    assert res.get_json()['code'] == 'NoActiveSessionError'


def test_tie_flow(user_client, trio):
    a, b, c = trio
    start(user_client, trio)
    data = points(user_client, a, 150).get_json()
    assert data['active_game']['tie_for_loser'] is True
    assert data['history_entry'] is None

    res = points(user_client, b, 10)
    assert res.status_code == 409
    assert res.get_json()['code'] == 'TiePendingError'

    bad = user_client.post('/api/game/tie', json={'loser_id': a})
    assert bad.status_code == 400
    assert bad.get_json()['code'] == 'InvalidLoserError'

    data = user_client.post('/api/game/tie', json={'loser_id': b}).get_json()
    assert data['active_game']['loser_id'] == b
    assert data['history_entry']['loss_type'] == 'points'


def test_foul_flow(user_client, trio):
    a, b, c = trio
    start(user_client, trio)
    data = user_client.post('/api/game/foul', json={'player_id': c, 'foul_type': 'Chivo'}).get_json()
    assert data['active_game']['loser_id'] == c
    assert set(data['active_game']['winner_ids']) == {a, b}
    assert data['history_entry']['loss_type'] == 'foul'
    assert data['history_entry']['foul_type'] == 'Chivo'


def test_start_rejects_two_players_and_keeps_current_game(user_client, trio):
    start(user_client, trio)
    res = start(user_client, trio[:2], confirm=True)
    assert res.status_code == 400
    assert res.get_json()['code'] == 'InvalidTrioError'
    state = user_client.get('/api/game/state').get_json()
    assert state['active_game'] is not None
    assert state['game_count'] == 0


def test_restart_needs_confirmation(user_client, trio):
    start(user_client, trio)
    res = start(user_client, list(reversed(trio)))
    assert res.status_code == 409
    assert res.get_json()['code'] == 'SessionInProgressError'
    res = start(user_client, list(reversed(trio)), confirm=True)
    assert res.status_code == 201
    assert [p['id'] for p in res.get_json()['active_game']['players']] == list(reversed(trio))


def test_unknown_player_points(user_client, trio):
    start(user_client, trio)
    res = points(user_client, 'nobody', 10)
    assert res.status_code == 404
    assert res.get_json()['code'] == 'UnknownPlayerError'


def test_discard_game(user_client, trio):
    start(user_client, trio)
    res = user_client.post('/api/game/discard')
    assert res.status_code == 200
    assert res.get_json()['active_game'] is None
    assert user_client.post('/api/game/discard').status_code == 409


def test_removing_player_discards_active_game(user_client, trio):
    start(user_client, trio)
    res = user_client.delete(f'/api/players/{trio[1]}')
    assert res.get_json()['game_discarded'] is True
    assert user_client.get('/api/game/state').get_json()['active_game'] is None


def test_player_history(user_client, trio):
    a, b, c = trio
    start(user_client, trio)
    user_client.post('/api/game/foul', json={'player_id': a, 'foul_type': 'Jugo adelantado'})
    start(user_client, trio)
    user_client.post('/api/game/foul', json={'player_id': b, 'foul_type': 'Chivo'})

    data = user_client.get(f'/api/players/{a}/history').get_json()
    assert data['player']['losses'] == 1
    assert [e['foul_type'] for e in data['history']] == ['Jugo adelantado']
    all_entries = user_client.get('/api/game/history').get_json()
    assert [e['player_id'] for e in all_entries] == [b, a]
    missing = user_client.get('/api/players/missing/history')
    assert missing.status_code == 200
    assert missing.get_json() == {'player': None, 'history': []}


def test_removed_player_keeps_history(user_client, trio):
    a, b, c = trio
    start(user_client, trio)
    user_client.post('/api/game/foul', json={'player_id': c, 'foul_type': 'Chivo'})
    assert user_client.delete(f'/api/players/{c}').status_code == 200

    res = user_client.get(f'/api/players/{c}/history')
    assert res.status_code == 200
    data = res.get_json()
    assert data['player'] is None
    assert [e['player_id'] for e in data['history']] == [c]


def test_counter_reset_is_admin_only_and_confirmed(user_client, admin_client, trio):
    start(user_client, trio)
    user_client.post('/api/game/foul', json={'player_id': trio[0], 'foul_type': 'Chivo'})

    assert user_client.post('/api/game/counter/reset', json={'confirm': True}).status_code == 403
    assert admin_client.post('/api/game/counter/reset', json={}).status_code == 400
    res = admin_client.post('/api/game/counter/reset', json={'confirm': True})
    assert res.get_json()['game_count'] == 0
    state = admin_client.get('/api/game/state').get_json()
    assert len(state['history']) == 1
    assert {p['id']: p['losses'] for p in state['players']}[trio[0]] == 1


def test_export_html(admin_client, user_client, trio):
    start(user_client, trio)
    user_client.post('/api/game/foul', json={'player_id': trio[2], 'foul_type': 'Chivo'})
    assert user_client.get('/api/game/export').status_code == 403
    res = admin_client.get('/api/game/export')
    assert res.status_code == 200
    assert 'attachment; filename=pintintin.html' == res.headers['Content-Disposition']
    body = res.get_data(as_text=True)
    assert 'FALTA: Chivo' in body
    assert 'Carla' in body


def test_share_link(user_client, trio):
    assert user_client.get('/api/game/share').get_json()['url'] == 'http://pintintin.test/?game=live'
    session_id = start(user_client, trio).get_json()['active_game']['id']
    assert user_client.get('/api/game/share').get_json()['game'] == session_id


def test_changes_are_persisted_and_reloaded(flask_app, user_client, trio):
    start(user_client, trio)
    user_client.post('/api/game/foul', json={'player_id': trio[0], 'foul_type': 'Chivo'})

    with flask_app.app_context():
        stored = {r.key: json.loads(r.value) for r in StateRecord.query.all()}
    assert stored[KEY_COUNT] == 1
    assert len(stored[KEY_PLAYERS]) == 3
    assert stored[KEY_HISTORY][0]['player_id'] == trio[0]

    # A fresh process state reloads from storage on first access
    flask_app.extensions[EXTENSION_KEY] = GameState()
    state = user_client.get('/api/game/state').get_json()
    assert state['game_count'] == 1
    assert state['active_game']['loser_id'] == trio[0]


def test_unreadable_key_falls_back_to_default(flask_app, user_client, trio):
    with flask_app.app_context():
        record = db.session.get(StateRecord, KEY_COUNT)
        record.value = 'not json'
        db.session.commit()

    flask_app.extensions[EXTENSION_KEY] = GameState()
    state = user_client.get('/api/game/state').get_json()
    assert state['game_count'] == 0
    assert len(state['players']) == 3


def test_login_during_another_change_returns_conflict(flask_app, client):
    with flask_app.app_context():
        state = get_state(flask_app)
    with state.mutation():
        res = login(client, 'Mesa')
    assert res.status_code == 409
    assert res.get_json()['code'] == 'ConcurrentMutationError'
    # The rejected login did not start a session
    assert client.get('/check_login').status_code == 401


def test_stale_snapshot_does_not_overwrite_newer_one(flask_app, user_client, trio):
    state = flask_app.extensions[EXTENSION_KEY]
    with state.mutation():
        stale, stale_version = state.to_snapshot(), state.version

    start(user_client, trio)
    user_client.post('/api/game/foul', json={'player_id': trio[1], 'foul_type': 'Chivo'})
    assert state.ledger.game_count == 1
    assert state.saved_version == state.version

    save_snapshot(flask_app, stale, stale_version, state)
    with flask_app.app_context():
        stored = db.session.get(StateRecord, KEY_COUNT)
        assert json.loads(stored.value) == 1
        assert len(json.loads(db.session.get(StateRecord, KEY_HISTORY).value)) == 1
