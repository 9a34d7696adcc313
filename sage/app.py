#!/usr/bin/env python3
"""
Sage - Classroom Writing Platform
=================================
Run: python3 -m sage.app
Then point the client at: http://localhost:5000
"""
import json
import logging
import secrets

from flask import Flask, jsonify
from flask_cors import CORS
from pydantic import ValidationError

from .config import config, JWT_SECRET, HOST, PORT, DEBUG, LOG_LEVEL
from .errors import SageError
from .auth import init_auth
from .routes import register_routes
from .seed import seed_demo_data
from .services.email_service import SageEmailer
from .storage import MemoryStorage

logger = logging.getLogger(__name__)

_logging_configured = False


def configure_logging(level: str = None):
    """Configure root logging once per process."""
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _logging_configured = True


def build_storage():
    """Storage backend selected by config.storage_backend."""
    if config.storage_backend == "supabase":
        from .supabase_storage import SupabaseStorage
        return SupabaseStorage()
    return MemoryStorage()


def create_app(storage=None, settings: dict = None):
    """
    Application factory.

    Args:
        storage: Storage backend (defaults to config.storage_backend)
        settings: Overrides for Config fields, plus optional "jwt_secret"
                  and "emailer"
    """
    configure_logging()
    settings = dict(settings or {})
    jwt_secret = settings.pop("jwt_secret", None) or JWT_SECRET
    emailer = settings.pop("emailer", None)
    config.update(settings)

    app = Flask(__name__)
    CORS(app)

    if not jwt_secret:
        jwt_secret = secrets.token_hex(32)
        logger.warning("SAGE_JWT_SECRET not set - using a random secret, tokens will not survive restarts")
    app.config['JWT_SECRET'] = jwt_secret

    storage = storage if storage is not None else build_storage()
    app.extensions['sage_storage'] = storage
    app.extensions['sage_emailer'] = emailer or SageEmailer()
    app.extensions['sage_revoked_tokens'] = set()

    if config.seed_demo_data:
        seed_demo_data(storage)

    # ══════════════════════════════════════════════════════════════
    # AUTHENTICATION
    # ══════════════════════════════════════════════════════════════
    init_auth(app)

    register_routes(app)

    @app.errorhandler(SageError)
    def handle_sage_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"error": "Invalid request data", "details": json.loads(e.json(include_url=False))}), 400

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    logger.info("Sage app created (storage=%s, ai_provider=%s)", type(storage).__name__, config.ai_provider)
    return app


# ══════════════════════════════════════════════════════════════
# MAIN
# ══════════════════════════════════════════════════════════════

if __name__ == '__main__':
    print()
    print("+" + "=" * 50 + "+")
    print("|  Sage - Classroom Writing Platform               |")
    print("+" + "=" * 50 + "+")
    print("|                                                  |")
    print(f"|  API: http://localhost:{PORT:<27}|")
    print("|                                                  |")
    print("|  Press Ctrl+C to stop                            |")
    print("+" + "=" * 50 + "+")
    print()

    create_app().run(host=HOST, port=PORT, debug=DEBUG)
