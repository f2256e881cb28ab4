import logging

from flask import Flask, jsonify
from config import Config
from routes import health_bp, catalog_bp, booking_bp, admin_bp

from models import db
from models.db import configure_sqlite_locking
from flask_migrate import Migrate
from reservations.clock import install_clock
from reservations.errors import BookingError, ConcurrencyConflict
from tasks import celery_init_app
from utils.auth_context import load_current_user

logger = logging.getLogger(__name__)


def create_app(config_overrides=None, clock=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)
    configure_sqlite_locking(app)

    # Migrations
    Migrate(app, db)

    # Wall clock for hold / cutoff rules (tests pass a FixedClock)
    install_clock(app, clock)

    # Background janitor
    celery_init_app(app)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(BookingError)
    def _booking_error(err):
        resp = jsonify(err.to_dict())
        resp.status_code = err.status_code
        if isinstance(err, ConcurrencyConflict):
            resp.headers["Retry-After"] = str(err.retry_after)
        return resp

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp


    register_cli(app)


    return app

#-------------------------
import click
from reservations.lifecycle import run_expiry_sweep, run_completion_sweep
from utils.seed import seed_catalog

def register_cli(app):
    @app.cli.command("sweep")
    @click.option("--only", type=click.Choice(["expire", "complete"]), default=None)
    def sweep(only):
        """Run the janitor sweeps once (cron fallback when beat is not running)."""
        if only in (None, "expire"):
            print(f"expired {run_expiry_sweep()} stale holds")
        if only in (None, "complete"):
            print(f"completed {run_completion_sweep()} past bookings")

    @app.cli.command("seed-catalog")
    @click.argument("owner_user_id", type=int)
    @click.option("--name", default=None, help="Service name")
    @click.option("--price", default=None, help="Hourly price, e.g. 30.00")
    def seed(owner_user_id, name, price):
        """Create a court service with hourly slots (bootstrap)."""
        service, created = seed_catalog(owner_user_id, name=name, price=price)
        if not created:
            print(f"Service '{service.name}' already exists (id={service.id})")
            return
        print(f"Service '{service.name}' created (id={service.id}) with {created} slots")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
