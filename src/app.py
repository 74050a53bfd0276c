"""
Flask web application for the group stage tournament engine.

JSON API only; every route is a thin wrapper around TournamentEngine.
"""
import os
import logging
from flask import Flask, request, jsonify, g

from core.engine import TournamentEngine
from core.errors import TournamentError
from core.settings import load_settings, save_settings, get_default_settings, validate_group_size

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))


def get_engine() -> TournamentEngine:
    """Return the engine for this request, created on first use."""
    engine = getattr(g, 'engine', None)
    if engine is None:
        engine = TournamentEngine(DATA_DIR)
        engine.notifier.subscribe(_log_change)
        g.engine = engine
    return engine


def _log_change(event):
    app.logger.debug(f'Change: {event.action} {", ".join(event.kinds)} '
                     f'(category={event.category_id}, division={event.division_id})')


def _coerce_id(value):
    """Category/division ids arrive as strings in query args; store them as ints."""
    if value is None or value == '':
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def _require(data: dict, *keys):
    """Return the requested keys from a JSON body, or None if any is missing."""
    values = [data.get(k) for k in keys]
    if any(v is None or v == '' for v in values):
        return None
    return values


def _bad_request(message: str):
    return jsonify({'success': False, 'error': message}), 400


def _pair_from_args():
    return _coerce_id(request.args.get('category')), _coerce_id(request.args.get('division'))


@app.errorhandler(TournamentError)
def handle_tournament_error(error):
    """Report engine precondition failures as JSON."""
    app.logger.warning(f'{request.method} {request.path} rejected: {error.message}')
    return jsonify(error.to_dict()), error.status


# ----------------------------------------------------------------------
# Teams
# ----------------------------------------------------------------------

@app.route('/api/teams', methods=['GET'])
def api_list_teams():
    """List teams, optionally filtered by category and division."""
    category_id, division_id = _pair_from_args()
    teams = get_engine().list_teams(category_id, division_id)
    return jsonify({'teams': [t.to_dict() for t in teams]})


@app.route('/api/teams/<team_id>', methods=['GET'])
def api_get_team(team_id):
    return jsonify({'team': get_engine().get_team(team_id).to_dict()})


@app.route('/api/teams/<team_id>/matches', methods=['GET'])
def api_team_matches(team_id):
    matches = get_engine().get_team_matches(team_id)
    return jsonify({'matches': [m.to_dict() for m in matches]})


@app.route('/api/teams/create', methods=['POST'])
def api_create_team():
    """Register a new team."""
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    category_id = _coerce_id(data.get('category_id'))
    division_id = _coerce_id(data.get('division_id'))
    if not name or category_id is None or division_id is None:
        return _bad_request('Team name, category_id and division_id are required')

    extra = {k: data[k] for k in ('robot_name', 'robot_description', 'rank_position', 'is_qualified')
             if k in data}
    team = get_engine().create_team(name, category_id, division_id, **extra)
    return jsonify({'success': True, 'team': team.to_dict()})


@app.route('/api/teams/update', methods=['POST'])
def api_update_team():
    """Edit a team's registration details."""
    data = request.get_json(silent=True) or {}
    team_id = data.pop('team_id', None)
    if not team_id:
        return _bad_request('Missing team_id')
    for key in ('category_id', 'division_id'):
        if key in data:
            data[key] = _coerce_id(data[key])
    try:
        team = get_engine().update_team(team_id, **data)
    except ValueError as e:
        return _bad_request(str(e))
    return jsonify({'success': True, 'team': team.to_dict()})


@app.route('/api/teams/delete', methods=['POST'])
def api_delete_team():
    data = request.get_json(silent=True) or {}
    if not data.get('team_id'):
        return _bad_request('Missing team_id')
    get_engine().delete_team(data['team_id'])
    return jsonify({'success': True})


# ----------------------------------------------------------------------
# Groups and stages
# ----------------------------------------------------------------------

@app.route('/api/groups', methods=['GET'])
def api_list_groups():
    """List groups; pass include_teams=1 to embed each group's memberships."""
    category_id, division_id = _pair_from_args()
    stage_number = request.args.get('stage', type=int)
    engine = get_engine()
    groups = engine.list_groups(category_id, division_id, stage_number)
    payload = [grp.to_dict() for grp in groups]
    if request.args.get('include_teams'):
        for entry in payload:
            entry['group_teams'] = [m.to_dict() for m in engine.get_group_teams(entry['id'])]
    return jsonify({'groups': payload})


@app.route('/api/groups/<group_id>/teams', methods=['GET'])
def api_group_teams(group_id):
    """Group standings: memberships ordered by wins."""
    memberships = get_engine().get_group_teams(group_id)
    return jsonify({'group_teams': [m.to_dict() for m in memberships]})


@app.route('/api/groups/generate', methods=['POST'])
def api_generate_groups():
    """Start the group stage for a category/division from scratch."""
    data = request.get_json(silent=True) or {}
    pair = _require(data, 'category_id', 'division_id')
    if pair is None:
        return _bad_request('Missing category_id or division_id')
    category_id, division_id = (_coerce_id(v) for v in pair)
    groups = get_engine().generate_first_stage(category_id, division_id)
    app.logger.info(f'Generated {len(groups)} groups for category {category_id} division {division_id}')
    return jsonify({'success': True, 'groups': [grp.to_dict() for grp in groups]})


@app.route('/api/groups/winner', methods=['POST'])
def api_set_group_winner():
    """Declare a group's winner."""
    data = request.get_json(silent=True) or {}
    values = _require(data, 'group_id', 'winner_id')
    if values is None:
        return _bad_request('Missing group_id or winner_id')
    group = get_engine().set_group_winner(*values)
    return jsonify({'success': True, 'group': group.to_dict()})


@app.route('/api/groups/reset', methods=['POST'])
def api_reset_groups():
    """Delete every group and match of a category/division."""
    data = request.get_json(silent=True) or {}
    pair = _require(data, 'category_id', 'division_id')
    if pair is None:
        return _bad_request('Missing category_id or division_id')
    deleted = get_engine().reset_groups(*(_coerce_id(v) for v in pair))
    return jsonify({'success': True, 'deleted_groups': deleted})


@app.route('/api/stage', methods=['GET'])
def api_stage():
    """Current stage number and state for a category/division."""
    category_id, division_id = _pair_from_args()
    if category_id is None or division_id is None:
        return _bad_request('Missing category or division')
    engine = get_engine()
    return jsonify({
        'stage_number': engine.current_stage(category_id, division_id),
        'status': engine.stage_status(category_id, division_id),
    })


@app.route('/api/stage/advance', methods=['POST'])
def api_advance_stage():
    """Advance group winners to the next stage, or report the champion."""
    data = request.get_json(silent=True) or {}
    pair = _require(data, 'category_id', 'division_id')
    if pair is None:
        return _bad_request('Missing category_id or division_id')
    result = get_engine().advance_stage(*(_coerce_id(v) for v in pair))
    return jsonify({'success': True, **result.to_dict()})


# ----------------------------------------------------------------------
# Matches
# ----------------------------------------------------------------------

@app.route('/api/matches', methods=['GET'])
def api_list_matches():
    category_id, division_id = _pair_from_args()
    matches = get_engine().list_matches(
        category_id, division_id,
        status=request.args.get('status') or None,
        group_id=request.args.get('group_id') or None,
        stage_number=request.args.get('stage', type=int))
    return jsonify({'matches': [m.to_dict() for m in matches]})


@app.route('/api/matches/result', methods=['POST'])
def api_record_match_result():
    """Record the winner of a match."""
    data = request.get_json(silent=True) or {}
    values = _require(data, 'match_id', 'winner_id')
    if values is None:
        return _bad_request('Missing match_id or winner_id')
    match = get_engine().record_match_result(*values)
    return jsonify({'success': True, 'match': match.to_dict()})


@app.route('/api/bracket/generate', methods=['POST'])
def api_generate_bracket():
    """Create Round 1 knockout matches without groups."""
    data = request.get_json(silent=True) or {}
    pair = _require(data, 'category_id', 'division_id')
    if pair is None:
        return _bad_request('Missing category_id or division_id')
    matches = get_engine().generate_bracket(*(_coerce_id(v) for v in pair))
    return jsonify({'success': True, 'matches': [m.to_dict() for m in matches]})


# ----------------------------------------------------------------------
# Settings
# ----------------------------------------------------------------------

@app.route('/api/settings', methods=['GET'])
def api_get_settings():
    return jsonify({'settings': load_settings(DATA_DIR)})


@app.route('/api/settings/update', methods=['POST'])
def api_update_settings():
    """Update tournament settings."""
    data = request.get_json(silent=True) or {}
    settings = load_settings(DATA_DIR)
    allowed = set(get_default_settings().keys())

    unknown = set(data) - allowed
    if unknown:
        return _bad_request(f'Unknown settings: {", ".join(sorted(unknown))}')

    if 'default_group_size' in data:
        settings['default_group_size'] = validate_group_size(data['default_group_size'])
    if 'group_sizes' in data:
        sizes = data['group_sizes'] or {}
        if not isinstance(sizes, dict):
            return _bad_request('group_sizes must map category ids to group sizes')
        keys = {k: _coerce_id(k) for k in sizes}
        bad_keys = [k for k, v in keys.items() if not isinstance(v, int)]
        if bad_keys:
            return _bad_request(f'Invalid category ids in group_sizes: {", ".join(map(str, bad_keys))}')
        settings['group_sizes'] = {keys[k]: validate_group_size(v) for k, v in sizes.items()}
    if 'auto_complete_byes' in data:
        settings['auto_complete_byes'] = bool(data['auto_complete_byes'])
    if 'lock_timeout_seconds' in data:
        timeout = data['lock_timeout_seconds']
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
            return _bad_request('lock_timeout_seconds must be a non-negative number')
        settings['lock_timeout_seconds'] = timeout

    save_settings(DATA_DIR, settings)
    app.logger.info('Settings updated')
    return jsonify({'success': True, 'settings': settings})


if __name__ == '__main__':
    logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'INFO'),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.run(debug=True)
