"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from medivault.config import API_HOST, API_PORT, TOKEN_EXPIRY_HOURS, app_defaults, get_env
from medivault.database import init_engine, make_session_factory
from medivault.api.routes import register_routes


def create_app(config=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    app.config.update(app_defaults())
    if config:
        app.config.update(config)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    try:
        print("[init] Initializing database connection...")
        engine = init_engine(app.config["DB_URI"])
        session_factory = make_session_factory(engine)

        if not app.config.get("JWT_SECRET_KEY"):
            raise ValueError("JWT_SECRET_KEY must not be empty")

        print("[init] ✓ API server ready")
    except Exception as e:
        print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)

    app.extensions["medivault.engine"] = engine
    app.extensions["medivault.session_factory"] = session_factory

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, engine, session_factory)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("MediVault – REST API Server")
    print("=" * 60)

    # Never serve production traffic with the built-in development key.
    if os.getenv("FLASK_ENV") == "production":
        get_env("JWT_SECRET_KEY")

    app = create_app()

    host = API_HOST
    port = API_PORT
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] CORS enabled: True")
    print(f"[server] Token expiry: {TOKEN_EXPIRY_HOURS} hours")
    print("\nAPI Endpoints:")
    print(f"  - POST  http://{host}:{port}/api/auth/login")
    print(f"  - POST  http://{host}:{port}/api/auth/register")
    print(f"  - GET   http://{host}:{port}/api/user/profile")
    print(f"  - GET   http://{host}:{port}/api/patient/<id>")
    print(f"  - POST  http://{host}:{port}/api/appointments")
    print(f"  - POST  http://{host}:{port}/api/prescriptions")
    print(f"  - POST  http://{host}:{port}/api/documents")
    print(f"  - GET   http://{host}:{port}/api/admin/stats")
    print(f"  - GET   http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
