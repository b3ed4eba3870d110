from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from datetime import timedelta
from typing import Optional, Dict, Any
import logging

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    from .config.settings import load_settings
    from .errors import error_payload, kind_for

    app = Flask(__name__)
    app.config.update(load_settings())

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(hours=int(app.config['JWT_ACCESS_TOKEN_EXPIRES_HOURS']))
    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    # Mappers reference each other by name; import them all before first use
    from .models import user, ticket, ticket_update, email_notification  # noqa: F401

    jwt.init_app(app)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_payload(401, 'Unauthorized', 'unauthorized', 'Access token required'), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return error_payload(401, 'Unauthorized', 'unauthorized', 'Invalid token'), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_payload(401, 'Unauthorized', 'unauthorized', 'Token expired'), 401

    from .routes.auth import auth_bp
    from .routes.tickets import tickets_bp
    from .routes.users import users_bp
    from .routes.notifications import notifications_bp
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(tickets_bp, url_prefix='/tickets')
    app.register_blueprint(users_bp, url_prefix='/users')
    app.register_blueprint(notifications_bp, url_prefix='/notifications')

    @app.teardown_appcontext
    def release_session(exc):
        # Each request starts from a fresh identity map
        close_db()

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = error_payload(e.code, e.name, kind_for(e), e.description, getattr(e, 'errors', None))
            return payload, e.code
        # Unhandled exception; the request's unit of work is abandoned
        get_db().rollback()
        app.logger.exception('Unhandled exception')
        return error_payload(500, 'Internal Server Error', 'internal', 'Unexpected error'), 500

    from .services.dispatcher import dispatcher
    dispatcher.init_app(app)

    return app


def get_db():
    return SessionLocal()


def close_db():
    """Release the calling thread's session (app context teardown and background jobs)."""
    if SessionLocal is not None:
        SessionLocal.remove()
