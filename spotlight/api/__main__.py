"""
Entrypoint for running the API (HTTP + Socket.IO) in development.
In production run it behind an eventlet/gevent worker or use a message queue.
"""
import os
from . import create_app
from .extensions import socketio

# Respect APP_ENV for configuration selection (handled in get_config())
app = create_app()

if __name__ == "__main__":
    host = os.getenv("FLASK_RUN_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_RUN_PORT", "8000"))
    debug = bool(os.getenv("FLASK_DEBUG", str(app.config.get("DEBUG", True))).lower() in ("1", "true", "yes"))
    socketio.run(app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=True)
