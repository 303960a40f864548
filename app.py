import os
from datetime import datetime, timezone

from flask import Flask

from config import Config
from extensions import db, login_manager, init_extensions
from logger import configure_app_logging
from models import User


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.debug and not app.testing:
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            REMEMBER_COOKIE_SECURE=True,
            REMEMBER_COOKIE_HTTPONLY=True,
        )

    # ------------------------------------------------------------------------------------------
    # LOGGING
    # ------------------------------------------------------------------------------------------
    configure_app_logging(app)

    # ----------------------------------------------------------------------------------------------------------------------------------
    # DATABASE URI Fix
    # --------------------------------------------------------------------------------------------------------------------------------------------
    database_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if database_uri.startswith("sqlite:///"):
        os.makedirs(os.path.dirname(database_uri[len("sqlite:///"):]) or ".", exist_ok=True)

    # --------------------------------------------------------------------------------------------------------------------------
    # Initialize extensions
    # ----------------------------------------------------------------------------------------------------------------------------
    init_extensions(app)

    register_blueprints(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    from seed import seed_command
    app.cli.add_command(seed_command)

    @app.route("/healthz")
    def healthz():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}, 200

    return app


def register_blueprints(app):
    """Register all blueprints"""
    from blueprints.auth import bp as auth_bp
    from blueprints.password_reset import password_bp
    from blueprints.profile import bp as profile_bp
    from blueprints.deposits import bp as deposits_bp
    from blueprints.withdrawals import bp as withdrawals_bp
    from blueprints.tasks import bp as tasks_bp
    from blueprints.packages import bp as packages_bp
    from blueprints.referral import bp as referral_bp
    from blueprints.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(password_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(deposits_bp)
    app.register_blueprint(withdrawals_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(packages_bp)
    app.register_blueprint(referral_bp)
    app.register_blueprint(admin_bp)
