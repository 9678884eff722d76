"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, current_app, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import CATALOG_PAGE_SIZE, DEFAULT_CURRENCY, USERS_COLLECTION
from .extensions import csrf, mail
from .utils import format_currency, format_party_date, sanitize_mail_setting

TRUTHY = ["true", "1", "t", "yes"]


def _env_flag(name, default):
    return (os.environ.get(name) or default).lower() in TRUTHY


def _init_firebase(app):
    """Initialize Firebase Admin from env, a local file, or default credentials."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        MAIL_SERVER=os.environ.get("MAIL_SERVER") or "smtp.gmail.com",
        MAIL_PORT=int(os.environ.get("MAIL_PORT") or 587),
        MAIL_USE_TLS=_env_flag("MAIL_USE_TLS", "true"),
        MAIL_USE_SSL=_env_flag("MAIL_USE_SSL", "false"),
        MAIL_USERNAME=sanitize_mail_setting(os.environ.get("MAIL_USERNAME")),
        # App passwords are often pasted with spaces between the groups.
        MAIL_PASSWORD=sanitize_mail_setting(
            os.environ.get("MAIL_PASSWORD"), strip_spaces=True
        ),
        MAIL_DEFAULT_SENDER=sanitize_mail_setting(
            os.environ.get("MAIL_DEFAULT_SENDER")
        )
        or "noreply@shopsquad.app",
        PAYMENT_CURRENCY=os.environ.get("PAYMENT_CURRENCY") or DEFAULT_CURRENCY,
        PAYPAL_CLIENT_ID=os.environ.get("PAYPAL_CLIENT_ID"),
        SQUAD_AUTO_COMPLETE=_env_flag("SQUAD_AUTO_COMPLETE", "false"),
        SQUAD_MANUAL_TRANSITIONS=_env_flag("SQUAD_MANUAL_TRANSITIONS", "true"),
        SQUAD_STREAM_HEARTBEAT=int(os.environ.get("SQUAD_STREAM_HEARTBEAT") or 15),
        CATALOG_PAGE_SIZE=int(os.environ.get("CATALOG_PAGE_SIZE") or CATALOG_PAGE_SIZE),
        REAUTH_MAX_AGE_SECONDS=int(os.environ.get("REAUTH_MAX_AGE_SECONDS") or 300),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    mail.init_app(app)
    csrf.init_app(app)

    app.add_template_filter(format_currency, "currency")
    app.add_template_filter(format_party_date, "party_date")

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import party as party_bp

    app.register_blueprint(party_bp.bp)

    from . import payments as payments_bp

    app.register_blueprint(payments_bp.bp)

    from . import notifications as notifications_bp

    app.register_blueprint(notifications_bp.bp)

    from . import catalog as catalog_bp

    app.register_blueprint(catalog_bp.bp)

    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """If a user_id is in the session, load the user data from Firestore and store it in g."""
        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        try:
            db = firestore.client()
            user_doc = db.collection(USERS_COLLECTION).document(user_id).get()
            if user_doc.exists:
                g.user = user_doc.to_dict()
                g.user["uid"] = user_id  # Ensure uid is in the user object
            else:
                # User ID in session but no user in DB. Clear the session.
                session.clear()
                current_app.logger.warning(
                    f"User {user_id} in session but not found in Firestore."
                )
        except Exception as e:
            current_app.logger.error(f"Error loading user from session: {e}")
            session.clear()  # Clear session on error to be safe

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
