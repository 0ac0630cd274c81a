from flask import Blueprint, jsonify, request, current_app
from pintintin.auth import MUTATOR_ROLES, role_required
from pintintin.models import ROLE_GUEST
from pintintin.services.games import get_state, publish_change

players = Blueprint('players', __name__)


@players.route('/', methods=['GET'])
@role_required(*MUTATOR_ROLES, ROLE_GUEST)
def list_players():
    """Roster ordered by losses, most first."""
    state = get_state()
    return jsonify([p.to_dict() for p in state.ledger.standings()])


@players.route('/', methods=['POST'])
@role_required(*MUTATOR_ROLES)
def add_player():
    data = request.get_json(silent=True) or {}
    state = get_state()
    with state.mutation():
        player = state.add_player(data.get('name'))
        publish_change(current_app._get_current_object(), state, 'player_add')
    current_app.logger.info(f"[player-add] id={player.id} name={player.name}")
    return jsonify(player.to_dict()), 201


@players.route('/<string:player_id>', methods=['DELETE'])
@role_required(*MUTATOR_ROLES)
def remove_player(player_id):
    state = get_state()
    with state.mutation():
        discarded = state.remove_player(player_id)
        publish_change(current_app._get_current_object(), state, 'player_remove')
    current_app.logger.info(f"[player-remove] id={player_id} discarded_game={discarded}")
    return jsonify({'success': True, 'game_discarded': discarded})


@players.route('/<string:player_id>/history', methods=['GET'])
@role_required(*MUTATOR_ROLES, ROLE_GUEST)
def player_history(player_id):
    """Losses of one player, newest first. Removed players keep their history."""
    state = get_state()
    player = state.ledger.find_player(player_id)
    entries = state.ledger.query_by_player(player_id)
    return jsonify({'player': player.to_dict() if player else None, 'history': [e.to_dict() for e in entries]})
