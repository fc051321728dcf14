"""
Security helpers: tokens, password hashing and the authorization guard.

Tokens are JSON Web Tokens signed with HMAC-SHA256 and base64url
encoded.  The ``sub`` claim holds the user id and ``exp`` the expiry
as a UNIX timestamp.  Passwords are hashed with PBKDF2-HMAC-SHA256
and stored as ``salthex$hashhex``.

The guard is implemented once and applied per route as a dependency::

    @router.post("/")
    async def create_resource(
        current_user: dict = Depends(require_permission(can_manage_content, "...")),
    ): ...

The caller's role is never taken from the token.  ``get_current_user``
re-reads it from the ``users`` table on every request, so a role
change takes effect immediately.
"""

import base64
import hashlib
import hmac
import json
import logging
import os
import sqlite3
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .db import get_connection
from .roles import RoleLike, parse_role

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000


class Unauthenticated(HTTPException):
    """No valid caller identity.  The client has to log in again."""

    def __init__(self, detail: str = "Not authenticated") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    """Valid identity with an insufficient role.

    The response detail includes the caller's current role so that
    clients can explain the refusal.
    """

    def __init__(self, message: str, current_role: RoleLike) -> None:
        role = parse_role(current_role)
        self.current_role = role.value if role is not None else current_role
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": message, "current_role": self.current_role},
        )


class LookupFailure(HTTPException):
    """The role (or another record needed for a decision) could not be read."""

    def __init__(self, detail: str = "Failed to fetch user profile") -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def _b64_url_encode(data: bytes) -> str:
    """Base64-url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64-url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT with the given claims.

    Parameters
    ----------
    data : dict
        Claims to embed in the token, typically ``{"sub": "<user id>"}``.
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.

    Returns
    -------
    str
        ``header.payload.signature``, each part base64url encoded.
    """
    to_encode = dict(data)
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": settings.algorithm, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a token's signature and expiry.

    Returns the payload dictionary, or ``None`` if the token is
    malformed, tampered with or expired.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    try:
        actual_sig = _b64_url_decode(signature_b64)
        if not hmac.compare_digest(_sign(signing_input, settings.secret_key), actual_sig):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    try:
        if int(data.get("exp", 0)) < int(time.time()):
            return None
    except (TypeError, ValueError):
        return None
    return data


security = HTTPBearer(auto_error=False)


def _load_caller(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the stored role to a decoded token payload."""
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid or expired token")
    try:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, email, role, disabled FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
    except sqlite3.Error:
        logger.exception("Role lookup failed for user %s", user_id)
        raise LookupFailure()
    if not row:
        raise Unauthenticated("User no longer exists")
    if row["disabled"]:
        raise Unauthenticated("User account disabled")
    return {
        "sub": str(row["id"]),
        "user_id": row["id"],
        "email": row["email"],
        "role": row["role"],
    }


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, Any]:
    """Dependency returning the authenticated caller.

    Raises ``Unauthenticated`` when no bearer token is sent, the token
    is invalid or the account is gone/disabled, and ``LookupFailure``
    when the users table cannot be read.
    """
    if credentials is None:
        raise Unauthenticated()
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise Unauthenticated("Invalid or expired token")
    return _load_caller(payload)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Optional[Dict[str, Any]]:
    """Like ``get_current_user`` but anonymous requests yield ``None``.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return get_current_user(credentials)


def require_permission(
    predicate: Callable[[RoleLike], bool],
    detail: str = "Insufficient permissions",
) -> Callable[..., Dict[str, Any]]:
    """Dependency factory enforcing a role predicate.

    Use it in FastAPI endpoints via
    ``Depends(require_permission(can_manage_content, "Only organizers ..."))``.

    Parameters
    ----------
    predicate : Callable
        One of the predicates from ``core.roles``.
    detail : str
        Message returned to the client when the predicate fails.

    Returns
    -------
    Callable
        A dependency validating the caller's stored role and returning
        the caller context on success.
    """

    def _permission_dependency(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        role = current_user.get("role")
        if not predicate(role):
            logger.info(
                "Denied %s for user %s with role %s",
                getattr(predicate, "__name__", "permission"),
                current_user.get("user_id"),
                role,
            )
            raise Forbidden(detail, role)
        return current_user

    return _permission_dependency


def hash_password(password: str) -> str:
    """Hash a password with PBKDF2-HMAC-SHA256 and a random 16-byte salt."""
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Check a plain password against a stored ``salthex$hashhex`` string."""
    if not hashed_password or "$" not in hashed_password:
        return False
    salt_hex, hash_hex = hashed_password.split("$", 1)
    try:
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
