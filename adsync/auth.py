# adsync/auth.py
"""Owner identity resolution.

The owner of every record comes from the credentials on the request, never
from ids inside the body or query string. Tokens are static and mapped to
owners through the `AUTH_TOKENS` setting.
"""
import hmac
from typing import Mapping, NamedTuple, Optional
from fastapi import Header, Request
from .errors import InvalidInput, Unauthorized


def extract_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    api_key = request.headers.get("X-API-Key")
    if api_key:
        return api_key.strip()
    return None


def resolve_owner(token: Optional[str], tokens: Mapping[str, str]) -> Optional[str]:
    if not token:
        return None
    owner = None
    # compare against every entry so timing does not depend on the match position
    for known, known_owner in tokens.items():
        if hmac.compare_digest(token.encode(), known.encode()):
            owner = known_owner
    return owner


def get_owner_id(request: Request) -> str:
    owner = resolve_owner(extract_token(request), request.app.state.settings.auth_tokens)
    if owner is None:
        raise Unauthorized()
    return owner


class DeviceHeaders(NamedTuple):
    device_id: Optional[str]
    platform: Optional[str]


def get_device_headers(
    x_device_id: Optional[str] = Header(None),
    x_device_platform: Optional[str] = Header(None),
) -> DeviceHeaders:
    return DeviceHeaders(x_device_id, x_device_platform)


def require_device_id(*candidates: Optional[str]) -> str:
    for value in candidates:
        if value and value.strip():
            return value.strip()
    raise InvalidInput("deviceId is required")
