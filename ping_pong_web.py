#!/usr/bin/env python3
import logging
from datetime import datetime, timezone

from flask import Flask, current_app, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from config import Config
from exceptions import InvalidMatchInput, NotFoundError, RepositoryError, WriteBackError
from head_to_head import head_to_head
from insights_generator import generate_daily_insights
from leader_days import check_and_increment_leader_days
from models import db
from player_stats import calculate_advanced_stats
from predictions import predict_doubles, predict_singles
from repository import SQLAlchemyRepository
from scoring import rank_players, validate_scores
from stats_calculator import current_rank_map, populate_historical_ranks, recalculate_all_stats
from team_generator import generate_teams

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
migrate = Migrate()


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    logging.basicConfig(level=logging.INFO)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    register_error_handlers(app)
    register_routes(app)
    return app


def get_repository():
    return SQLAlchemyRepository(db.session)


def recalculate(repository):
    """Full stats pass using the configured strategy"""
    return recalculate_all_stats(
        repository,
        strategy=current_app.config['STATS_STRATEGY'],
        window_size=current_app.config['ROLLING_WINDOW_SIZE'],
        max_points=current_app.config['POINTS_CAP'],
    )


def parse_timestamp(value):
    """ISO timestamp to naive UTC; missing means now"""
    if value in (None, ''):
        return datetime.utcnow()
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise InvalidMatchInput(f"Invalid played_at timestamp: {value}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def validate_match(data):
    """
    Check and normalise a match payload.

    Teams are lists of one (singles) or two (doubles) names, no name may
    appear twice, and scores must describe a finished game.
    """
    team1 = data.get('team1')
    team2 = data.get('team2')
    if not isinstance(team1, list) or not isinstance(team2, list):
        raise InvalidMatchInput("team1 and team2 must be lists of player names")

    team1 = [str(name).strip() for name in team1]
    team2 = [str(name).strip() for name in team2]
    if '' in team1 or '' in team2:
        raise InvalidMatchInput("Player names cannot be empty")
    if len(team1) != len(team2) or len(team1) not in (1, 2):
        raise InvalidMatchInput("Teams must both have 1 player (singles) or 2 players (doubles)")
    if len(set(team1 + team2)) != len(team1) + len(team2):
        raise InvalidMatchInput("A player can only appear once in a match")

    is_double = len(team1) == 2
    if 'is_double' in data and data['is_double'] is not None and bool(data['is_double']) != is_double:
        raise InvalidMatchInput("is_double does not match the team sizes")

    score1, score2 = validate_scores(data.get('score1'), data.get('score2'))

    return {
        'team1': team1,
        'team2': team2,
        'score1': score1,
        'score2': score2,
        'is_double': is_double,
        'played_at': parse_timestamp(data.get('played_at')),
    }


def _require_player(repository, name):
    player = repository.get_player_by_name(name)
    if player is None:
        raise NotFoundError('Player', name)
    return player


def register_error_handlers(app):
    @app.errorhandler(ValueError)
    def bad_request(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(NotFoundError)
    def not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(WriteBackError)
    def write_back_failed(e):
        return jsonify({"error": str(e), "failed_players": sorted(e.failures)}), 500

    @app.errorhandler(RepositoryError)
    def repository_failed(e):
        return jsonify({"error": str(e)}), 500


def register_routes(app):

    @app.route('/players', methods=['GET'])
    def list_players():
        return jsonify({"players": get_repository().list_players()})

    @app.route('/players', methods=['POST'])
    def create_player():
        data = request.get_json(silent=True) or {}
        name = str(data.get('name', '')).strip()
        if not name:
            return jsonify({"error": "Player name cannot be empty"}), 400

        repository = get_repository()
        if repository.get_player_by_name(name):
            return jsonify({"error": f"Player '{name}' already exists"}), 409

        player = repository.create_player(dict(data, name=name))
        logger.info(f"Created player {name}")
        recalculate(repository)
        return jsonify(repository.get_player_by_name(name) or player), 201

    @app.route('/players/<int:player_id>', methods=['PATCH'])
    def update_player(player_id):
        data = request.get_json(silent=True) or {}
        repository = get_repository()
        current = repository.get_player(player_id)
        # Matches reference players by name, so renaming would orphan their history
        if 'name' in data and data['name'] != current['name']:
            return jsonify({"error": "Player names cannot be changed"}), 400
        return jsonify(repository.update_player(player_id, data))

    @app.route('/players/<int:player_id>', methods=['DELETE'])
    def delete_player(player_id):
        repository = get_repository()
        repository.delete_player(player_id)
        recalculate(repository)
        return jsonify({"success": True, "message": "Player deleted successfully"})

    @app.route('/leaderboard', methods=['GET'])
    def leaderboard():
        ranked = rank_players(get_repository().list_players())
        for position, player in enumerate(ranked, start=1):
            player['rank'] = position
        return jsonify({"players": ranked})

    @app.route('/players/<name>/advanced', methods=['GET'])
    def advanced_stats(name):
        repository = get_repository()
        player = _require_player(repository, name)
        stats = calculate_advanced_stats(
            player, repository.list_matches(), repository.list_players(),
            strict_sides=current_app.config['HEAD_TO_HEAD_STRICT_SIDES'],
        )
        return jsonify(stats)

    @app.route('/matches', methods=['GET'])
    def list_matches():
        matches = get_repository().list_matches()
        matches.reverse()
        return jsonify({"matches": matches})

    @app.route('/matches/<int:match_id>', methods=['GET'])
    def get_match(match_id):
        return jsonify(get_repository().get_match(match_id))

    @app.route('/matches', methods=['POST'])
    def create_match():
        match = validate_match(request.get_json(silent=True) or {})
        repository = get_repository()
        match['player_ranks'] = {name: rank for name, rank in current_rank_map(repository.list_players()).items()
                                 if name in match['team1'] + match['team2']}
        created = repository.create_match(match)
        recalculate(repository)
        return jsonify(created), 201

    @app.route('/matches/<int:match_id>', methods=['PATCH'])
    def update_match(match_id):
        repository = get_repository()
        existing = repository.get_match(match_id)
        updates = request.get_json(silent=True) or {}
        merged = {key: updates.get(key, existing[key])
                  for key in ('team1', 'team2', 'score1', 'score2', 'played_at')}
        merged['is_double'] = updates.get('is_double')
        updated = repository.update_match(match_id, validate_match(merged))
        recalculate(repository)
        return jsonify(updated)

    @app.route('/matches/<int:match_id>', methods=['DELETE'])
    def delete_match(match_id):
        repository = get_repository()
        repository.delete_match(match_id)
        recalculate(repository)
        return jsonify({"success": True, "message": "Match deleted successfully"})

    @app.route('/reports', methods=['GET'])
    def list_reports():
        return jsonify({"reports": get_repository().list_reports()})

    @app.route('/reports', methods=['POST'])
    def create_report():
        data = request.get_json(silent=True) or {}
        author = str(data.get('author', '')).strip()
        content = str(data.get('content', '')).strip()
        if not author or not content:
            return jsonify({"error": "Author and content are required"}), 400
        return jsonify(get_repository().create_report(author, content)), 201

    @app.route('/reports/<int:report_id>', methods=['DELETE'])
    def delete_report(report_id):
        get_repository().delete_report(report_id)
        return jsonify({"success": True, "message": "Report deleted successfully"})

    @app.route('/recalculate', methods=['POST'])
    @limiter.limit("10 per minute")
    def recalculate_stats():
        updates = recalculate(get_repository())
        return jsonify({"players": updates})

    @app.route('/ranks/populate', methods=['POST'])
    def populate_ranks():
        updated, errors = populate_historical_ranks(get_repository())
        return jsonify({"updated": updated, "errors": errors})

    @app.route('/head_to_head', methods=['GET'])
    def head_to_head_stats():
        name_a = request.args.get('a', '')
        name_b = request.args.get('b', '')
        if not name_a or not name_b:
            return jsonify({"error": "Missing a or b parameter"}), 400
        h2h = head_to_head(name_a, name_b, get_repository().list_matches(),
                           strict_sides=current_app.config['HEAD_TO_HEAD_STRICT_SIDES'])
        return jsonify(h2h)

    @app.route('/predict/singles', methods=['GET'])
    def predict_singles_match():
        repository = get_repository()
        player_a = _require_player(repository, request.args.get('a', ''))
        player_b = _require_player(repository, request.args.get('b', ''))
        if player_a['name'] == player_b['name']:
            return jsonify({"error": "Pick two different players"}), 400
        prediction = predict_singles(player_a['name'], player_b['name'], player_a, player_b,
                                     repository.list_matches(),
                                     strict_sides=current_app.config['HEAD_TO_HEAD_STRICT_SIDES'])
        return jsonify(prediction)

    @app.route('/predict/doubles', methods=['GET'])
    def predict_doubles_match():
        names = [request.args.get(key, '') for key in ('a1', 'a2', 'b1', 'b2')]
        if '' in names or len(set(names)) != 4:
            return jsonify({"error": "Four different players are required (a1, a2, b1, b2)"}), 400
        repository = get_repository()
        players = [_require_player(repository, name) for name in names]
        prediction = predict_doubles(*names, players, repository.list_matches(),
                                     strict_sides=current_app.config['HEAD_TO_HEAD_STRICT_SIDES'])
        return jsonify(prediction)

    @app.route('/insights', methods=['GET'])
    def daily_insights():
        date = request.args.get('date') or datetime.now().strftime("%Y-%m-%d")
        try:
            target = datetime.strptime(date, "%Y-%m-%d").date()
        except ValueError:
            return jsonify({"error": "Invalid date format. Please use YYYY-MM-DD"}), 400
        repository = get_repository()
        insights = generate_daily_insights(repository.list_matches(), repository.list_players(), target)
        return jsonify({"date": date, "insights": insights})

    @app.route('/leader_days/check', methods=['POST'])
    def leader_days_check():
        incremented = check_and_increment_leader_days(
            get_repository(), check_hour=current_app.config['LEADER_CHECK_HOUR'])
        return jsonify({"incremented": incremented})

    @app.route('/teams/generate', methods=['POST'])
    def generate_random_teams():
        data = request.get_json(silent=True) or {}
        return jsonify(generate_teams(data.get('players', [])))


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()
    app.config['RATELIMIT_HEADERS_ENABLED'] = True
    app.run(debug=True, port=5000)
