"""
HTTP API for the spot ranking server
"""
import logging

from flask import Flask, Blueprint, current_app, jsonify, request

from auth import require_auth, rate_limit
from config import Config
from errors import NotFoundError, InvalidCatchError, TitleContentionError, describe
from game_logic import GameService
from models import Catch

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__)


def get_game() -> GameService:
    return current_app.extensions['game']


@api.route('/health')
def health():
    return jsonify({'status': 'ok'})


@api.route('/api/catches', methods=['POST'])
@require_auth
@rate_limit()
def submit_catch():
    catch = Catch.from_input(request.user_id, request.get_json(silent=True) or {})
    result = get_game().submit_catch(catch)
    return jsonify(result.to_dict()), 201


@api.route('/api/catches/<catch_id>/contest', methods=['POST'])
@require_auth
@rate_limit()
def contest_title(catch_id):
    result = get_game().contest_title(catch_id)
    return jsonify(result.to_dict())


@api.route('/api/spots/<spot_id>/leaderboard')
@require_auth
def spot_leaderboard(spot_id):
    limit = request.args.get('limit', type=int)
    entries = get_game().get_spot_leaderboard(spot_id, limit)
    return jsonify([e.to_dict() for e in entries])


@api.route('/api/spots/<spot_id>/king')
@require_auth
def spot_king(spot_id):
    king = get_game().get_king(spot_id)
    return jsonify({'spot_id': spot_id, 'king': king.to_dict() if king else None})


@api.route('/api/territories/<territory_id>')
@require_auth
def territory_control(territory_id):
    control = get_game().get_territory_control(territory_id, viewer_id=request.user_id)
    return jsonify(control.to_dict())


@api.route('/api/leaderboard')
@require_auth
def global_leaderboard():
    limit = request.args.get('limit', type=int)
    entries = get_game().get_global_leaderboard(limit)
    return jsonify([e.to_dict() for e in entries])


@api.route('/api/users/<user_id>/stats')
@require_auth
def user_stats(user_id):
    return jsonify(get_game().get_user_stats(user_id).to_dict())


@api.app_errorhandler(NotFoundError)
def handle_not_found(e):
    return jsonify({'error': describe(e), 'message': str(e)}), 404


@api.app_errorhandler(InvalidCatchError)
def handle_invalid_catch(e):
    logger.info("Rejected catch submission: %s", e)
    return jsonify({'error': describe(e), 'message': str(e)}), 400


@api.app_errorhandler(TitleContentionError)
def handle_title_contention(e):
    return jsonify({
        'error': describe(e),
        'message': str(e),
        'retryable': e.retryable,
        'catch': e.catch.to_dict() if e.catch else None,
        'catch_id': e.catch_id,
        'spot_id': e.spot_id,
    }), 409


def create_app(game: GameService = None):
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if game is None:
        from supabase import create_client
        logger.info("Connecting to Supabase at %s", Config.SUPABASE_URL)
        client = create_client(Config.SUPABASE_URL, Config.SUPABASE_SERVICE_KEY)
        game = GameService.from_supabase(client)

    flask_app = Flask(__name__)
    flask_app.extensions['game'] = game
    flask_app.register_blueprint(api)
    return flask_app


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=5000)
