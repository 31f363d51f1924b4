# authenledger/app.py

import os
import logging
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from werkzeug.exceptions import HTTPException, NotFound

from authenledger.config import config
from authenledger.models import db
from authenledger.seed import seed_command
from authenledger.services.scoring_service import RandomScorer
from authenledger.routes.auth import auth_bp, is_session_active
from authenledger.routes.validate import validate_bp
from authenledger.routes.verify import verify_bp
from authenledger.routes.admin_routes import admin_bp

def create_app(config_name=None, scorer=None):
    if config_name is None:
        config_name = os.getenv('FLASK_CONFIG', 'default')

    PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
    INSTANCE_FOLDER_PATH = os.path.join(PROJECT_ROOT, 'instance')

    app = Flask(__name__, instance_path=INSTANCE_FOLDER_PATH)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)
    # Keep payload fields in the order they were built.
    app.json.sort_keys = False

    os.makedirs(app.instance_path, exist_ok=True)

    db.init_app(app)
    CORS(app, expose_headers=["Content-Length", "Content-Disposition"], max_age=600)
    jwt = JWTManager(app)
    app.extensions["scorer"] = scorer or RandomScorer(seed=app.config.get("SCORER_SEED"))

    @jwt.token_in_blocklist_loader
    def check_if_session_revoked(jwt_header, jwt_payload):
        return not is_session_active(jwt_payload["jti"])

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify(error="Authorization token required"), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify(error="Invalid authorization token"), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify(error="Session expired"), 401

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return jsonify(error="Invalid authorization token"), 401

    app.register_blueprint(auth_bp)
    app.register_blueprint(validate_bp)
    app.register_blueprint(verify_bp)
    app.register_blueprint(admin_bp, url_prefix='/admin')

    with app.app_context():
        db.create_all()

    if not app.debug and not app.testing:
        log_dir = os.path.join(PROJECT_ROOT, 'logs')
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(os.path.join(log_dir, 'authenledger.log'), maxBytes=10240, backupCount=10)
        file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        app.logger.setLevel(logging.INFO)
        app.logger.info('AuthenLedger Application Startup')

    @app.errorhandler(NotFound)
    def handle_not_found(e):
        return jsonify(error="The requested resource was not found."), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify(error=e.description), e.code

    @app.errorhandler(Exception)
    def handle_generic_error(e):
        app.logger.exception(f"An unhandled exception occurred: {e}")
        return jsonify(error="Internal server error"), 500

    app.cli.add_command(seed_command)

    @app.route("/health")
    def health():
        return jsonify(status="ok")

    return app
