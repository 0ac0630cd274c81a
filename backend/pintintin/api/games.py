from flask import Blueprint, jsonify, request, current_app, render_template_string, make_response
from pintintin.auth import MUTATOR_ROLES, current_role, role_required
from pintintin.models import ROLE_ADMIN, ROLE_GUEST
from pintintin.services.games import get_state, publish_change
from pintintin.services.games.constants import FOUL_LABELS, POINT_INCREMENTS, WIN_THRESHOLD
import datetime


games = Blueprint('games', __name__)


def _active_payload(state, entry=None):
    return {
        'active_game': state.active.to_dict() if state.active else None,
        'history_entry': entry.to_dict() if entry else None,
        'game_count': state.ledger.game_count,
    }


@games.route('/state', methods=['GET'])
@role_required(*MUTATOR_ROLES, ROLE_GUEST)
def get_game_state():
    state = get_state()
    payload = state.public_dict()
    payload['role'] = current_role()
    payload['rules'] = {
        'threshold': WIN_THRESHOLD,
        'point_increments': list(POINT_INCREMENTS),
        'foul_labels': list(FOUL_LABELS),
    }
    return jsonify(payload)


@games.route('/start', methods=['POST'])
@role_required(*MUTATOR_ROLES)
def start_game():
    """Start a game for the three selected players.

    Replacing an unfinished game requires ``confirm: true``.
    """
    data = request.get_json(silent=True) or {}
    state = get_state()
    with state.mutation():
        previous = state.active
        new_session = state.start_session(data.get('player_ids') or [], confirm=bool(data.get('confirm')))
        publish_change(current_app._get_current_object(), state, 'session_start')
    if previous is not None and not previous.is_finished:
        current_app.logger.info(f"[session-discard] game={previous.id} replaced before finishing")
    current_app.logger.info(
        f"[session-start] game={new_session.id} players={','.join(p.name for p in new_session.players)}"
    )
    return jsonify(_active_payload(state)), 201


@games.route('/points', methods=['POST'])
@role_required(*MUTATOR_ROLES)
def add_points():
    data = request.get_json(silent=True) or {}
    state = get_state()
    with state.mutation():
        entry = state.score(data.get('player_id'), data.get('points'))
        publish_change(current_app._get_current_object(), state, 'points')
    session = state.active
    if session.tie_for_loser:
        current_app.logger.info(f"[tie-pending] game={session.id} winner={session.winner_id}")
    if entry:
        current_app.logger.info(
            f"[game-finish] game={session.id} winner={session.winner_id} loser={entry.player_id} type={entry.loss_type}"
        )
    return jsonify(_active_payload(state, entry))


@games.route('/foul', methods=['POST'])
@role_required(*MUTATOR_ROLES)
def register_foul():
    data = request.get_json(silent=True) or {}
    state = get_state()
    with state.mutation():
        entry = state.foul(data.get('player_id'), data.get('foul_type'))
        publish_change(current_app._get_current_object(), state, 'foul')
    current_app.logger.info(
        f"[game-finish] game={state.active.id} loser={entry.player_id} type={entry.loss_type} foul={entry.foul_type}"
    )
    return jsonify(_active_payload(state, entry))


@games.route('/tie', methods=['POST'])
@role_required(*MUTATOR_ROLES)
def resolve_tie():
    data = request.get_json(silent=True) or {}
    state = get_state()
    with state.mutation():
        entry = state.resolve_tie(data.get('loser_id'))
        publish_change(current_app._get_current_object(), state, 'tie')
    current_app.logger.info(f"[game-finish] game={state.active.id} loser={entry.player_id} type=tie-break")
    return jsonify(_active_payload(state, entry))


@games.route('/discard', methods=['POST'])
@role_required(*MUTATOR_ROLES)
def discard_game():
    state = get_state()
    with state.mutation():
        discarded = state.discard_session()
        publish_change(current_app._get_current_object(), state, 'discard')
    current_app.logger.info(f"[session-discard] game={discarded.id} finished={discarded.is_finished}")
    return jsonify(_active_payload(state))


@games.route('/history', methods=['GET'])
@role_required(*MUTATOR_ROLES, ROLE_GUEST)
def get_history():
    state = get_state()
    player_id = request.args.get('player_id')
    if player_id:
        entries = state.ledger.query_by_player(player_id)
    else:
        entries = state.ledger.log
    return jsonify([e.to_dict() for e in entries])


@games.route('/share', methods=['GET'])
@role_required(*MUTATOR_ROLES, ROLE_GUEST)
def share_link():
    state = get_state()
    game_ref = state.active.id if state.active else 'live'
    base = current_app.config.get('SHARE_BASE_URL', '').rstrip('/')
    return jsonify({'url': f"{base}/?game={game_ref}", 'game': game_ref})


@games.route('/counter/reset', methods=['POST'])
@role_required(ROLE_ADMIN)
def reset_counter():
    data = request.get_json(silent=True) or {}
    if data.get('confirm') is not True:
        return jsonify({'error': 'Resetting the counter must be confirmed', 'code': 'ConfirmationRequired'}), 400
    state = get_state()
    with state.mutation():
        previous = state.ledger.game_count
        state.reset_counter()
        publish_change(current_app._get_current_object(), state, 'counter_reset')
    current_app.logger.info(f"[counter-reset] previous={previous}")
    return jsonify({'game_count': state.ledger.game_count})


EXPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="es">
<head><meta charset="utf-8"><title>Pintintin</title></head>
<body>
  <h1>Pintintin</h1>
  <p>Partidas jugadas: {{ game_count }}</p>
  <h2>Jugadores</h2>
  <table>
    <tr><th>Jugador</th><th>Derrotas</th></tr>
    {% for p in players %}<tr><td>{{ p.name }}</td><td>{{ p.losses }}</td></tr>
    {% endfor %}
  </table>
  <h2>Historial</h2>
  <table>
    <tr><th>Fecha</th><th>Perdedor</th><th>Tipo</th><th>Oponentes</th><th>Puntuación final</th></tr>
    {% for e in history %}<tr>
      <td>{{ e.date }}</td>
      <td>{{ names.get(e.player_id, e.player_id) }}</td>
      <td>{% if e.loss_type == 'foul' %}FALTA: {{ e.foul_type }}{% else %}POR PUNTOS{% endif %}</td>
      <td>{{ e.opponents | join(' vs ') }}</td>
      <td>{% for s in e.final_scores.values() %}{{ s.name }}: {{ s.score }}{% if not loop.last %}, {% endif %}{% endfor %}</td>
    </tr>
    {% endfor %}
  </table>
</body>
</html>
"""


@games.route('/export', methods=['GET'])
@role_required(ROLE_ADMIN)
def export_html():
    """Download standings and history as a standalone HTML page."""
    state = get_state()
    names = {p.id: p.name for p in state.ledger.roster}
    for entry in state.ledger.log:
        for score in entry.final_scores:
            names.setdefault(score.player_id, score.name)
    history = []
    for entry in state.ledger.log:
        row = entry.to_dict()
        row['date'] = datetime.datetime.fromtimestamp(entry.date / 1000).strftime('%Y-%m-%d %H:%M')
        history.append(row)
    html = render_template_string(
        EXPORT_TEMPLATE,
        game_count=state.ledger.game_count,
        players=state.ledger.standings(),
        history=history,
        names=names,
    )
    response = make_response(html)
    response.headers['Content-Type'] = 'text/html; charset=utf-8'
    response.headers['Content-Disposition'] = 'attachment; filename=pintintin.html'
    current_app.logger.info(f"[export] entries={len(history)}")
    return response
