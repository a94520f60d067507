"""Flask application factory, CLI entry points, and database bootstrap."""

import json
import logging
from logging.handlers import RotatingFileHandler
import os
import sqlite3
import uuid
from pathlib import Path

import click
from flask import Flask, g, has_request_context, jsonify, request
from flask_compress import Compress
from flask_talisman import Talisman
from sqlalchemy import event, func
from sqlalchemy.engine import Engine

from dotenv import load_dotenv; load_dotenv()

from config import Config, INSTANCE_DIR as CONFIG_INSTANCE_DIR
from extensions import db, migrate, cache, limiter, login_manager
from utils.redaction import RedactingFilter, context_fields

_LOG = logging.getLogger(__name__)


class RequestIdFilter(logging.Filter):
    """Inject request-scoped metadata into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            record.request_id = getattr(g, "request_id", "n/a")
            record.path = request.path
            record.method = request.method
        else:
            record.request_id = getattr(record, "request_id", "startup")
            record.path = getattr(record, "path", "")
            record.method = getattr(record, "method", "")
        return True


class JsonRequestFormatter(logging.Formatter):
    """Simple JSON formatter for logfmt-friendly ingestion."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "n/a"),
            "path": getattr(record, "path", ""),
            "method": getattr(record, "method", ""),
        }
        for key, value in context_fields(record).items():
            base.setdefault(key, value)
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def _configure_login_manager(app: Flask) -> None:
    """Bind Flask-Login and support API token authentication."""
    login_manager.init_app(app)
    login_manager.session_protection = "strong"

    def _extract_token(req):
        auth_header = req.headers.get("Authorization", "")
        if auth_header.lower().startswith("bearer "):
            return auth_header.split(" ", 1)[1].strip()
        return None

    @login_manager.user_loader
    def _load_user(user_id: str):
        from models import User

        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    @login_manager.request_loader
    def _load_user_from_request(req):
        from models import User

        token = _extract_token(req)
        if not token:
            return None
        return User.verify_api_token(token)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"error": "authentication_required"}), 401


# ---------------------------------------------------------------------------
# Extension bootstrap helpers
# ---------------------------------------------------------------------------

def _safe_init_sqlalchemy(app: Flask):
    """Initialise SQLAlchemy only if it has not been bound yet."""
    if not getattr(app, "extensions", None) or "sqlalchemy" not in app.extensions:
        db.init_app(app)


def _safe_init_migrate(app: Flask):
    """Bind Flask-Migrate, in batch mode so SQLite ALTERs work."""
    if not getattr(app, "extensions", None) or "migrate" not in app.extensions:
        migrate.init_app(app, db, render_as_batch=True)


def _safe_init_cache(app: Flask):
    """Register the cache; a broken Redis config degrades to SimpleCache."""
    try:
        cache.init_app(app)
    except Exception as exc:
        app.logger.warning("Primary cache init failed (%s); falling back to SimpleCache.", exc)
        fallback_cfg = {
            "CACHE_TYPE": "SimpleCache",
            "CACHE_DEFAULT_TIMEOUT": app.config.get("CACHE_DEFAULT_TIMEOUT", 600),
        }
        try:
            cache.init_app(app, config=fallback_cfg)
        except Exception:
            app.logger.exception("Cache fallback failed; aborting startup.")
            raise


def _log_level(app: Flask) -> int:
    if app.config.get("E2E_TEST_MODE"):
        return logging.CRITICAL + 1
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    return level if isinstance(level, int) else logging.INFO


def _configure_logging(app: Flask) -> None:
    """Configure structured logging with request IDs and redacted context."""
    level = _log_level(app)

    stream_handler = logging.StreamHandler()
    stream_handler.addFilter(RequestIdFilter())
    stream_handler.addFilter(RedactingFilter())
    stream_handler.setFormatter(JsonRequestFormatter())
    stream_handler.setLevel(level)

    handlers = [stream_handler]

    try:
        logs_dir = Path(app.instance_path) / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            logs_dir / "app.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.addFilter(RequestIdFilter())
        file_handler.addFilter(RedactingFilter())
        file_handler.setFormatter(JsonRequestFormatter())
        file_handler.setLevel(level)
        handlers.append(file_handler)
    except OSError as exc:
        app.logger.warning("Falling back to stream-only logging (file handler unavailable): %s", exc)

    app.logger.handlers = handlers
    app.logger.setLevel(level)
    for name in ("services", "routes", "werkzeug"):
        named = logging.getLogger(name)
        named.handlers = handlers
        named.setLevel(level)
        named.propagate = False


def _ensure_sqlite_directory(app: Flask) -> None:
    from sqlalchemy.engine.url import make_url

    uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    url = make_url(uri)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    db_path = Path(url.database)
    if not db_path.is_absolute():
        db_path = Path(app.instance_path) / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app():
    """Create, configure, and return a fully-initialised Flask app."""
    app = Flask(
        __name__,
        instance_path=str(CONFIG_INSTANCE_DIR),
        instance_relative_config=False,
    )
    app.config.from_object(Config)
    os.makedirs(app.instance_path, exist_ok=True)
    _configure_logging(app)

    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'database.db')}"
    _ensure_sqlite_directory(app)

    # --- Core extensions ---
    _safe_init_sqlalchemy(app)
    _safe_init_migrate(app)
    _safe_init_cache(app)
    _configure_login_manager(app)
    Compress(app)
    limiter.init_app(app)

    if app.config.get("ENABLE_TALISMAN", True):
        Talisman(
            app,
            content_security_policy=app.config.get("CONTENT_SECURITY_POLICY"),
            force_https=app.config.get("TALISMAN_FORCE_HTTPS", not app.debug),
            session_cookie_secure=app.config.get("SESSION_COOKIE_SECURE", True),
            session_cookie_samesite=app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        )

    with app.app_context():
        # Import models after db is bound
        import models  # noqa: F401

    from services.deck_links import fetch_archidekt_deck, fetch_moxfield_deck

    for fetcher in (fetch_archidekt_deck, fetch_moxfield_deck):
        fetcher.cache_timeout = app.config.get("DECK_LINK_CACHE_TIMEOUT", 600)

    # Blueprints
    from routes import api_bp
    app.register_blueprint(api_bp)

    from utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    _register_cli(app)

    @app.before_request
    def _reject_querystring_api_token():
        if "api_token" not in request.args:
            return
        detail = "API tokens must be sent using the Authorization: Bearer header; query parameters are not accepted."
        return jsonify({"error": "api_token_query_not_supported", "detail": detail}), 400

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    @app.after_request
    def attach_request_id(resp):
        rid = getattr(g, "request_id", None)
        if rid:
            resp.headers.setdefault("X-Request-ID", rid)
        return resp

    @app.after_request
    def security_headers(resp):
        """Attach a minimal set of security-related HTTP headers to each response."""
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "no-referrer-when-downgrade")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        return resp

    return app


# ------------------------------------------------------------------
# CLI COMMANDS
# ------------------------------------------------------------------

def _register_cli(app: Flask) -> None:
    from models import Deck, Game, User
    from services.data_manager import E2E_DECKS_SHEET, E2E_GAMES_SHEET
    from services.sheet_rows import decks_from_sheet, games_from_sheet

    @app.cli.command("init-db")
    def init_db():
        """Create all tables directly (local use; production runs migrations)."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("create-user")
    @click.argument("username")
    @click.argument("email")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--display-name", default=None, help="Optional label shown in the UI")
    def create_user(username, email, password, display_name):
        normalized = email.strip().lower()
        if not normalized:
            raise click.ClickException("Email is required.")
        if User.query.filter(func.lower(User.email) == normalized).first():
            raise click.ClickException(f"User {normalized} already exists.")
        username_clean = username.strip().lower()
        if not username_clean:
            raise click.ClickException("Username is required.")
        if User.query.filter(func.lower(User.username) == username_clean).first():
            raise click.ClickException(f"Username {username_clean} already exists.")
        user = User(email=normalized, username=username_clean, display_name=display_name)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f"Created user {normalized}/{username_clean}.")

    @app.cli.command("seed-fixtures")
    @click.argument("email")
    def seed_fixtures(email):
        """Load the fixture decks and games into EMAIL's account."""
        normalized = email.strip().lower()
        user = User.query.filter(func.lower(User.email) == normalized).first()
        if not user:
            raise click.ClickException(f"User {normalized} not found.")

        decks_by_name = {deck.name: deck for deck in Deck.query.filter_by(user_id=user.id)}
        added_decks = 0
        for deck in decks_from_sheet(E2E_DECKS_SHEET):
            if deck.deck_name in decks_by_name:
                continue
            record = Deck(
                user_id=user.id,
                name=deck.deck_name,
                target_bracket=deck.target_bracket,
                summary=deck.summary,
                archidekt_link=deck.archidekt_link,
            )
            db.session.add(record)
            decks_by_name[deck.deck_name] = record
            added_decks += 1
        db.session.flush()

        added_games = 0
        for game in games_from_sheet(E2E_GAMES_SHEET):
            deck = decks_by_name.get(game.deck_name)
            if deck is None:
                continue
            db.session.add(
                Game(
                    user_id=user.id,
                    deck_id=deck.id,
                    winner=game.winner,
                    fun=game.fun,
                    p2_fun=game.p2_fun,
                    p3_fun=game.p3_fun,
                    p4_fun=game.p4_fun,
                    notes=game.notes,
                    est_bracket=game.est_bracket,
                )
            )
            added_games += 1
        db.session.commit()
        click.echo(f"Seeded {added_decks} decks and {added_games} games for {normalized}.")


# Single SQLite PRAGMA hook (avoid duplicate listeners)
_SQLITE_PRAGMA_STATEMENTS = (
    "PRAGMA foreign_keys=ON;",
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
)


def _apply_sqlite_pragmas(dbapi_connection) -> None:
    """Execute the configured PRAGMAs if this is a SQLite connection."""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cur = dbapi_connection.cursor()
    try:
        for statement in _SQLITE_PRAGMA_STATEMENTS:
            cur.execute(statement)
    except sqlite3.Error as exc:
        _LOG.warning("SQLite PRAGMA setup failed: %s", exc)
    finally:
        cur.close()


@event.listens_for(Engine, "connect")
def _sqlite_pragmas(dbapi_connection, _) -> None:
    """Enforce foreign keys (ON DELETE CASCADE) each time SQLite opens a connection."""
    _apply_sqlite_pragmas(dbapi_connection)


if __name__ == "__main__":
    _app = create_app()
    _app.run(host="127.0.0.1", port=5000, debug=True)
