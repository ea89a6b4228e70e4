import logging
import uuid

from dotenv import load_dotenv
from flask import Flask, g, jsonify
from sqlalchemy import inspect as sa_inspect

from app.tailorbook.config import load_config
from app.tailorbook.db import init_db, teardown_db_session
from app.tailorbook.models import Base  # noqa: F401  (registers every table before the modules load)
from app.tailorbook.routes import bp as routes_bp
from app.tailorbook.modules.customer_profiles.admin import bp as customer_profiles_bp
from app.tailorbook.modules.measurements.admin import bp as measurements_bp
from app.tailorbook.modules.customer_images.admin import bp as customer_images_bp, media_bp
from app.tailorbook.modules.whatsapp_dispatch.admin import bp as whatsapp_dispatch_bp
from app.tailorbook.storage import S3Storage, StorageError, storage_from_config

_REQUIRED_TABLES = ("customers", "measurements", "customer_images", "activity_events")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    # Storage health check (fail loudly on misconfiguration)
    storage = storage_from_config(app.config)
    app.extensions["storage"] = storage
    if isinstance(storage, S3Storage):
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))
        else:
            try:
                storage._client().head_bucket(Bucket=storage.bucket)
                app.logger.info("Storage health check PASSED: S3 bucket '%s' accessible", storage.bucket)
            except Exception as e:
                app.logger.error("STORAGE CONFIG ERROR: Cannot access S3 bucket: %s", e)

    if not (app.config.get("WHATSAPP_TOKEN") and app.config.get("WHATSAPP_PHONE_NUMBER_ID")):
        app.logger.warning("WhatsApp credentials not set; send-whatsapp will answer 503.")

    app.register_blueprint(routes_bp)
    app.register_blueprint(media_bp)
    app.register_blueprint(customer_profiles_bp, url_prefix="/api")
    app.register_blueprint(measurements_bp, url_prefix="/api")
    app.register_blueprint(customer_images_bp, url_prefix="/api")
    app.register_blueprint(whatsapp_dispatch_bp, url_prefix="/api")

    @app.before_request
    def _assign_request_id():
        g.request_id = uuid.uuid4().hex

    app.teardown_appcontext(teardown_db_session)

    # Schema health (lean): warn when tables are missing instead of failing every request.
    try:
        insp = sa_inspect(app.extensions["sqlalchemy_engine"])
        missing = [t for t in _REQUIRED_TABLES if not insp.has_table(t)]
        if missing:
            app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(missing))
    except Exception as e:
        app.logger.exception("Schema health check failed: %s", e)

    @app.errorhandler(StorageError)
    def _err_storage(e):  # type: ignore[no-redef]
        app.logger.error("Storage error (request_id=%s): %s", getattr(g, "request_id", None), e)
        return jsonify({"error": f"Storage error: {e}"}), 502

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return jsonify({"error": "Not found."}), 404

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        return jsonify({"error": "Upload too large. Maximum size is 50MB."}), 413

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "Internal server error."}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
