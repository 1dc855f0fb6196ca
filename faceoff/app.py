import logging

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from faceoff.config import config
from faceoff.errors import AppError
from faceoff.logging_config import setup_logging

db = SQLAlchemy()
socketio = SocketIO()

logger = logging.getLogger(__name__)


def _parse_allowed_origins(raw_origins):
    if not raw_origins:
        return '*'

    if isinstance(raw_origins, (list, tuple, set)):
        cleaned = [origin for origin in raw_origins if origin]
        return cleaned or '*'

    raw_text = str(raw_origins).strip()
    if not raw_text or raw_text == '*':
        return '*'

    origins = [origin.strip() for origin in raw_text.split(',') if origin.strip()]
    return origins or '*'


def _register_error_handlers(app):
    @app.errorhandler(AppError)
    def _handle_app_error(exc):
        if exc.status_code >= 500:
            app.logger.error('%s: %s', type(exc).__name__, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def _handle_too_large(_exc):
        max_mb = app.config['MAX_PHOTO_BYTES'] // (1024 * 1024)
        return jsonify({'message': f'File is too large. Maximum size is {max_mb}MB'}), 400

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc):
        return jsonify({'message': exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc):
        app.logger.exception('Unhandled error on %s %s', request.method, request.path)
        db.session.rollback()
        return jsonify({'message': 'An unexpected error occurred'}), 500


def _build_services(app):
    from faceoff.services.broadcast import BroadcastHub
    from faceoff.services.face_scoring import FaceScoringClient
    from faceoff.services.match_store import MatchStore
    from faceoff.services.match_workflow import MatchWorkflow

    hub = BroadcastHub()
    store = MatchStore(db.session, notifier=hub.broadcast)
    scorer = FaceScoringClient.from_config(app.config)
    workflow = MatchWorkflow(
        store,
        scorer,
        compare_delay=app.config.get('COMPARE_DELAY_SECONDS', 0.5),
        leaderboard_size=app.config.get('LEADERBOARD_SIZE', 10),
    )
    app.extensions['broadcast_hub'] = hub
    app.extensions['match_store'] = store
    app.extensions['match_workflow'] = workflow


def create_app(config_name='development'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    setup_logging(app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = _parse_allowed_origins(app.config.get('CORS_ALLOWED_ORIGINS', '*'))
    if str(config_name).strip().lower() == 'production':
        secret_key = str(app.config.get('SECRET_KEY') or '').strip()
        if not secret_key or secret_key == 'dev-secret-key-change-in-prod':
            raise RuntimeError('SECRET_KEY must be set to a non-default value in production')
        if allowed_origins == '*':
            raise RuntimeError('CORS_ALLOWED_ORIGINS must be explicitly set in production')
        if not app.config.get('FACEPP_API_KEY') or not app.config.get('FACEPP_API_SECRET'):
            raise RuntimeError('FACEPP_API_KEY and FACEPP_API_SECRET must be set in production')

    # Socket handlers register on import and must exist before init_app.
    from faceoff.routes import realtime  # noqa: F401

    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'threading'),
        path=app.config.get('SOCKETIO_PATH', 'ws'),
    )
    CORS(
        app,
        resources={r'/api/*': {'origins': allowed_origins}},
        supports_credentials=allowed_origins != '*',
    )

    @app.before_request
    def _enforce_origin_for_mutating_api_requests():
        if request.method in {'GET', 'HEAD', 'OPTIONS'}:
            return None
        if not request.path.startswith('/api/'):
            return None

        origin = str(request.headers.get('Origin') or '').strip()
        if not origin:
            return None

        configured_origins = _parse_allowed_origins(
            app.config.get('CORS_ALLOWED_ORIGINS', '*')
        )
        if configured_origins != '*' and origin not in configured_origins:
            return jsonify({'message': 'Invalid request origin'}), 403
        return None

    _register_error_handlers(app)
    _build_services(app)

    from faceoff.routes.auth import auth_bp
    from faceoff.routes.matches import matches_bp
    from faceoff.routes.community import community_bp

    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(matches_bp, url_prefix='/api/matches')
    app.register_blueprint(community_bp, url_prefix='/api')

    with app.app_context():
        from faceoff import models  # noqa: F401
        db.create_all()

    logger.info('Face Off app created with %s config', config_name)
    return app
