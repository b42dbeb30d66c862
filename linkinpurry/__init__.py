import logging
import os

from flask import Flask, jsonify, send_from_directory
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException

from linkinpurry.cache import ResponseCache

# Initialize extensions
db = SQLAlchemy()
bcrypt = Bcrypt()
jwt = JWTManager()
socketio = SocketIO()
cache = ResponseCache()


def configure_logging(app):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(level=level, format="[%(asctime)s] %(levelname)s in %(name)s: %(message)s")
    app.logger.setLevel(level)


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object('linkinpurry.config.Config')
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    bcrypt.init_app(app)
    jwt.init_app(app)
    cache.init_app(app)
    # chat_routes registers the @socketio.on handlers; import it before init_app
    # so every new server (one per create_app) receives them.
    from linkinpurry.chat_routes import chat_bp
    socketio.init_app(app, cors_allowed_origins=app.config['CORS_ORIGINS'])
    CORS(app, resources={
        r"/*": {
            "origins": app.config['CORS_ORIGINS'],
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Authorization", "Content-Type"],
            "supports_credentials": True,
        }
    })

    from linkinpurry.auth import register_jwt_handlers
    from linkinpurry.storage import storage_from_config

    register_jwt_handlers(jwt)
    app.extensions['storage'] = storage_from_config(app.config)

    uploads_folder = app.config['UPLOAD_FOLDER']

    @app.route('/uploads/<path:filename>', methods=['GET'])
    def serve_upload(filename):
        """Serve files stored by the local storage backend."""
        if not os.path.exists(os.path.join(uploads_folder, filename)):
            return jsonify({'success': False, 'message': 'File not found', 'error': filename}), 404
        return send_from_directory(uploads_folder, filename)

    register_error_handlers(app)

    # Create tables if they don't exist
    with app.app_context():
        from linkinpurry import models  # noqa: F401
        db.create_all()

    # Import and register Blueprints
    from linkinpurry.auth_routes import auth_bp
    from linkinpurry.profile_routes import profile_bp
    from linkinpurry.connection_routes import connection_bp
    from linkinpurry.feed_routes import feed_bp
    from linkinpurry.push_routes import push_bp
    from linkinpurry.routes import bp as health_bp

    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(profile_bp, url_prefix='/api/profile')
    app.register_blueprint(connection_bp, url_prefix='/api')
    app.register_blueprint(feed_bp, url_prefix='/api/feed')
    app.register_blueprint(chat_bp, url_prefix='/api/chat')
    app.register_blueprint(push_bp, url_prefix='/api/push')
    app.register_blueprint(health_bp)

    app.logger.info("create_app() complete; app ready to serve")
    return app


def register_error_handlers(app):
    from linkinpurry.utils import error_response

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify(error_response(e.name, e.description)), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        app.logger.exception("Unhandled error: %s", e)
        db.session.rollback()
        return jsonify(error_response('Internal server error', 'An unexpected error occurred')), 500
