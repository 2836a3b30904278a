from __future__ import annotations
from functools import wraps
from flask import request, g

from spotlight.exceptions import Unauthorized
from spotlight.models import storage
from spotlight.models.account import Account
from spotlight.services import Principal, get_token_issuer


def authenticate_token(token: str) -> Principal:
    """
    Resolve an access token to a Principal.
    Raises Unauthorized for bad tokens and for unknown or disabled accounts.
    """
    decoded = get_token_issuer().decode_access_token(token)
    account = storage.get(Account, decoded["sub"])
    if account is None or not account.enabled:
        raise Unauthorized("User not found or disabled")
    return Principal.from_account(account)


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                raise Unauthorized("Missing or invalid Authorization header")
            token = auth.split(" ", 1)[1].strip()
            g.principal = authenticate_token(token)
            return fn(*args, **kwargs)

        return wrapper

    return decorator
