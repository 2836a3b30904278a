"""Helpers that read client details off the current request."""
from __future__ import annotations

from flask import request


def client_ip() -> str | None:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket address."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("X-Real-IP", "").strip()
    if real_ip:
        return real_ip
    return request.remote_addr


def user_agent() -> str | None:
    return request.headers.get("User-Agent") or None


def rate_limit_key() -> str:
    return client_ip() or "unknown"
