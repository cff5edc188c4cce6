"""Flask application factory and request plumbing."""
from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Mapping

import click
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

import config as app_config
from db import seed as db_seed
from db import utils as db_utils
from init import initialize_app
from media.images import ImageStore
from routes import games as routes_games
from routes import middleware as routes_middleware
from routes import users as routes_users

logger = logging.getLogger(__name__)

_DEFAULT_SETTINGS: dict[str, Any] = {
    "DB_DSN": app_config.DB_DSN,
    "DB_POOL_SIZE": app_config.DB_POOL_SIZE,
    "DB_CONNECT_TIMEOUT_SECONDS": app_config.DB_CONNECT_TIMEOUT_SECONDS,
    "DB_SSL": app_config.DB_SSL,
    "IMAGE_DIR": app_config.IMAGE_DIR,
    "MAX_IMAGE_BYTES": app_config.MAX_IMAGE_BYTES,
    "LOG_FILE": app_config.LOG_FILE,
    "API_PREFIX": app_config.API_PREFIX,
    "SEED_DEMO_DATA": app_config.SEED_DEMO_DATA,
    "DEMO_USER_PASSWORD": app_config.DEMO_USER_PASSWORD,
}


def _determine_log_level(flask_app: Flask) -> int:
    if flask_app.debug:
        return logging.DEBUG
    if os.environ.get('FLASK_DEBUG', '').lower() in {'1', 'true', 'yes', 'on'}:
        return logging.DEBUG
    return logging.INFO


def _configure_logging(flask_app: Flask) -> None:
    log_level = _determine_log_level(flask_app)
    log_path = Path(flask_app.config['LOG_FILE'])
    log_path.parent.mkdir(parents=True, exist_ok=True)

    for handler in list(flask_app.logger.handlers):
        flask_app.logger.removeHandler(handler)

    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'standard': {
                    'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s',
                    'datefmt': '%Y-%m-%d %H:%M:%S',
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'standard',
                    'level': log_level,
                    'stream': 'ext://sys.stdout',
                },
                'file': {
                    'class': 'logging.handlers.RotatingFileHandler',
                    'formatter': 'standard',
                    'level': logging.DEBUG,
                    'filename': os.fspath(log_path),
                    'maxBytes': 5 * 1024 * 1024,
                    'backupCount': 5,
                    'encoding': 'utf-8',
                },
            },
            'root': {
                'level': log_level,
                'handlers': ['console', 'file'],
            },
        }
    )

    flask_app.logger.setLevel(log_level)


def _register_request_hooks(flask_app: Flask) -> None:
    @flask_app.teardown_appcontext
    def close_db(exc):
        db_utils.close_db()

    @flask_app.errorhandler(RequestEntityTooLarge)
    def handle_file_too_large(e):
        flask_app.logger.warning("Upload too large for path %s", request.path)
        return jsonify({'error': 'Payload too large'}), 413

    @flask_app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({'error': e.description or e.name}), e.code or 500

    @flask_app.errorhandler(Exception)
    def handle_exception(e):
        flask_app.logger.exception("Unhandled exception")
        return jsonify({'error': 'Internal server error'}), 500


def _register_cli(flask_app: Flask, engine: db_utils.DatabaseEngine) -> None:
    @flask_app.cli.command('reset-db')
    def reset_db_command():
        """Drop all tables and reload the genre and platform rows."""
        db_seed.reset_database(engine)
        click.echo('Database reset.')

    @flask_app.cli.command('resample-db')
    def resample_db_command():
        """Reset the database and load the demo users and games."""
        db_seed.resample_database(
            engine, demo_password=flask_app.config['DEMO_USER_PASSWORD']
        )
        click.echo('Database resampled with demo data.')


def configure_blueprints(
    flask_app: Flask,
    *,
    get_db,
    image_store: ImageStore,
) -> None:
    prefix = flask_app.config['API_PREFIX']
    routes_middleware.configure({'get_db': get_db})
    routes_users.configure({'get_db': get_db, 'image_store': image_store})
    routes_games.configure({'get_db': get_db, 'image_store': image_store})

    flask_app.register_blueprint(routes_users.users_blueprint, url_prefix=f"{prefix}/users")
    flask_app.register_blueprint(routes_games.games_blueprint, url_prefix=f"{prefix}/games")


def create_app(settings: Mapping[str, Any] | None = None) -> Flask:
    """Return a configured Flask application instance.

    ``settings`` overrides the values read from :mod:`config`; tests use it to
    point the app at a temporary database and image directory.
    """

    flask_app = Flask(__name__.split('.')[0])
    flask_app.config.update(_DEFAULT_SETTINGS)
    if settings:
        flask_app.config.update(settings)
    flask_app.config['MAX_CONTENT_LENGTH'] = flask_app.config['MAX_IMAGE_BYTES']

    _configure_logging(flask_app)

    engine = db_utils.build_engine_from_dsn(
        flask_app.config['DB_DSN'],
        timeout=flask_app.config['DB_CONNECT_TIMEOUT_SECONDS'],
        pool_size=flask_app.config['DB_POOL_SIZE'],
        ssl=flask_app.config['DB_SSL'],
    )
    image_store = ImageStore(flask_app.config['IMAGE_DIR'])

    def get_db() -> db_utils.DatabaseHandle:
        return db_utils.get_db(lambda: engine)

    fallback_handle = initialize_app(
        ensure_dirs=image_store.ensure_directory,
        init_db=lambda *, seed_demo_data: db_seed.initialize_database(
            engine,
            seed_demo_data=seed_demo_data,
            demo_password=flask_app.config['DEMO_USER_PASSWORD'],
        ),
        connection_factory=lambda: engine,
        seed_demo_data=flask_app.config['SEED_DEMO_DATA'],
    )

    flask_app.extensions['catalog_engine'] = engine
    flask_app.extensions['catalog_fallback'] = fallback_handle
    flask_app.extensions['image_store'] = image_store

    _register_request_hooks(flask_app)
    _register_cli(flask_app, engine)
    configure_blueprints(flask_app, get_db=get_db, image_store=image_store)

    logger.info("Game catalog API ready under %s", flask_app.config['API_PREFIX'] or '/')
    return flask_app


__all__ = ["configure_blueprints", "create_app"]
