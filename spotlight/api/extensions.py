"""
Extension singletons shared by the app factory, the blueprints and the
realtime gateway.

Rate limits come from the RATE_LIMIT_POLICIES table in the config:
    {"login": {"window_seconds": 900, "max_requests": 5}, ...}
Each group is turned into a Flask-Limiter string ("5 per 900 seconds") at
request time, so the table can differ per app instance.
"""
from flask import current_app
from flask_limiter import Limiter
from flask_socketio import SocketIO

from spotlight.utils.request_context import rate_limit_key

socketio = SocketIO()
limiter = Limiter(key_func=rate_limit_key)


def policy_limit(group: str, config=None) -> str:
    config = config if config is not None else current_app.config
    policy = config["RATE_LIMIT_POLICIES"][group]
    return f"{policy['max_requests']} per {policy['window_seconds']} seconds"


def rate_limited(group: str):
    """Apply a named policy on top of the general default limit."""
    return limiter.limit(lambda: policy_limit(group), override_defaults=False)


def init_extensions(app):
    app.config.setdefault("RATELIMIT_DEFAULT", lambda: policy_limit("general"))
    limiter.init_app(app)

    socketio.init_app(
        app,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE"),
        cors_allowed_origins=app.config.get("CORS_ORIGINS", "*"),
        message_queue=app.config.get("SOCKETIO_MESSAGE_QUEUE"),
        logger=False,
        engineio_logger=False,
    )
