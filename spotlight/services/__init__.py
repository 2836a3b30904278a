"""
Service layer. `init_services` builds one instance of each service from the
app config and keeps them in `app.extensions`; views and socket handlers
fetch them with the getters below.
"""
from flask import current_app

from spotlight.services.auth_service import AuthService
from spotlight.services.chat_service import ChatService
from spotlight.services.passwords import PasswordService
from spotlight.services.principal import Principal
from spotlight.services.tokens import TokenIssuer
from spotlight.services.user_service import UserService
from spotlight.utils.mailer import Mailer

EXTENSION_KEY = "spotlight.services"


def init_services(app):
    tokens = TokenIssuer.from_config(app.config)
    services = {
        "passwords": PasswordService.from_config(app.config),
        "tokens": tokens,
        "mailer": Mailer.from_config(app.config),
        "users": UserService(tokens),
        "chat": ChatService(),
    }
    services["auth"] = AuthService(
        passwords=services["passwords"],
        tokens=tokens,
        mailer=services["mailer"],
        reset_ttl=app.config["PASSWORD_RESET_TTL"],
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def _service(name: str):
    return current_app.extensions[EXTENSION_KEY][name]


def get_auth_service() -> AuthService:
    return _service("auth")


def get_user_service() -> UserService:
    return _service("users")


def get_chat_service() -> ChatService:
    return _service("chat")


def get_token_issuer() -> TokenIssuer:
    return _service("tokens")


__all__ = [
    "AuthService",
    "ChatService",
    "PasswordService",
    "Principal",
    "TokenIssuer",
    "UserService",
    "init_services",
    "get_auth_service",
    "get_user_service",
    "get_chat_service",
    "get_token_issuer",
]
