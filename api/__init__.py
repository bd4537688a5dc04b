import logging
import time
import uuid

import click
from flask import Flask, g, request
from flasgger import Swagger
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import get_config
from .errors import register_error_handlers
from .extensions import RATE_LIMITERS, SESSION_REGISTRY, STORAGE, TOKEN_ISSUER
from .log import setup_logging
from models.db_storage import DBStorage
from utils.rate_limit import FixedWindowRateLimiter
from utils.sessions import SessionRegistry
from utils.tokens import TokenIssuer

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
REQUEST_ID_HEADER = "X-Request-ID"

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Auth API",
        "version": "1.0.0",
        "description": "Authentication, sessions and authorization for the social feed and marketplace backend.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    The storage, token issuer, session registry and rate limiters are built
    here, once per app, and parked in app.extensions (see api.extensions).
    overrides is applied on top of the selected config class; tests use it
    to tighten rate limits or point at another database.
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    setup_logging(app.config["LOG_LEVEL"])

    # request.remote_addr becomes the client address reported by trusted proxies
    hops = int(app.config.get("TRUST_PROXY_HOPS", 0))
    if hops > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops)

    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", [])}},
        supports_credentials=True,
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )

    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    storage = DBStorage(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()
    app.extensions[STORAGE] = storage
    app.extensions[TOKEN_ISSUER] = TokenIssuer.from_config(app.config)
    app.extensions[SESSION_REGISTRY] = SessionRegistry(storage)
    app.extensions[RATE_LIMITERS] = {
        name: FixedWindowRateLimiter.parse(spec, name=name)
        for name, spec in app.config["RATE_LIMITS"].items()
    }

    register_error_handlers(app)
    _register_request_hooks(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .otp import bp as otp_bp
    from .users import bp as users_bp
    from .admin_requests import bp as admin_requests_bp
    from .admin import bp as admin_bp
    from .posts import bp as posts_bp

    for blueprint in (health_bp, auth_bp, otp_bp, users_bp, admin_requests_bp, admin_bp, posts_bp):
        app.register_blueprint(blueprint, url_prefix=API_PREFIX + (blueprint.url_prefix or ""))

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to the Auth API",
            "docs": "/apidocs/",
            "health": f"{API_PREFIX}/health",
        }, 200

    _register_cli(app)
    return app


def _register_request_hooks(app: Flask) -> None:
    from utils.decorators import check_rate_limit

    @app.before_request
    def start_request():
        g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        g.request_started = time.perf_counter()
        # an app context can outlive one request (e.g. under test); start from a clean identity
        g.current_user = None
        g.current_session = None
        g.current_token = None
        g.rate_limits = {}
        if request.path.startswith(API_PREFIX) and request.method != "OPTIONS":
            check_rate_limit("api")

    @app.after_request
    def finish_request(response):
        response.headers[REQUEST_ID_HEADER] = getattr(g, "request_id", "-")
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)

        api_limit = getattr(g, "rate_limits", {}).get("api")
        if api_limit is not None:
            response.headers["X-RateLimit-Limit"] = str(api_limit.limit)
            response.headers["X-RateLimit-Remaining"] = str(api_limit.remaining)
            response.headers["X-RateLimit-Reset"] = str(int(api_limit.reset_at))

        started = getattr(g, "request_started", None)
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.path, response.status_code, elapsed_ms)
        return response


def _register_cli(app: Flask) -> None:
    @app.cli.command("create-superuser")
    @click.argument("email")
    @click.argument("password")
    def create_superuser(email, password):
        """Create (or promote) a superuser account."""
        from models.schemas.common import norm_email, validate_password_strength
        from models.user import ROLE_SUPERUSER, User
        from utils.security import hash_password

        validate_password_strength(password)
        storage = app.extensions[STORAGE]
        email = norm_email(email)
        with storage.transaction() as session:
            user = session.query(User).filter(User.email == email).first()
            if user is None:
                user = User(email=email, password_hash=hash_password(password), is_verified=True)
                storage.new(user)
            user.role = ROLE_SUPERUSER
            user.is_active = True
            user.is_blocked = False
        click.echo(f"superuser ready: {user.email} ({user.id})")

    @app.cli.command("purge-sessions")
    def purge_sessions():
        """Delete expired and revoked sessions."""
        storage = app.extensions[STORAGE]
        with storage.transaction():
            removed = app.extensions[SESSION_REGISTRY].purge_expired()
        click.echo(f"removed {removed} session(s)")
