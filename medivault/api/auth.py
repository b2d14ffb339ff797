"""
JWT token service and request decorators for the Flask API.

Tokens are stateless: the subject and role claim baked in at issuance are
trusted until expiry, and verification never touches the database.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

import jwt
from flask import current_app, request

from medivault.config import JWT_ALGORITHM, SECRET_KEY, TOKEN_EXPIRY_HOURS
from medivault.exceptions import InvalidToken
from medivault.models import AccessContext, Role
from medivault.rbac import check_operation


def generate_token(
    ctx: AccessContext,
    secret_key: str = SECRET_KEY,
    expires_in: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """Sign a token for an authenticated identity."""
    now = now or datetime.now(timezone.utc)
    if expires_in is None:
        expires_in = timedelta(hours=TOKEN_EXPIRY_HOURS)
    payload = {
        "sub": str(ctx.user_id),
        "email": ctx.email,
        "name": ctx.name,
        "role": ctx.role.value,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, secret_key, algorithm=JWT_ALGORITHM)


def verify_token(token: str, secret_key: str = SECRET_KEY) -> AccessContext:
    """Verify a token and return the caller it asserts, or raise InvalidToken."""
    try:
        payload = jwt.decode(
            token, secret_key, algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "role", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise InvalidToken("Token has expired") from None
    except jwt.InvalidTokenError:
        raise InvalidToken() from None

    try:
        return AccessContext(
            user_id=int(payload["sub"]),
            email=payload.get("email", ""),
            name=payload.get("name", ""),
            role=Role[payload["role"]],
        )
    except (KeyError, ValueError, TypeError):
        raise InvalidToken() from None


def bearer_token() -> str:
    """Extract the bearer token from the Authorization header."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        raise InvalidToken("Authentication token is missing")

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise InvalidToken("Invalid authorization header format")
    return parts[1]


def token_required(f):
    """Decorator that resolves the caller from the bearer token."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = bearer_token()
        request.caller = verify_token(token, current_app.config["JWT_SECRET_KEY"])
        return f(*args, **kwargs)

    return decorated


def permission_required(operation: str):
    """Decorator that authenticates the caller, then checks the operation's roles."""
    def decorator(f):
        @wraps(f)
        @token_required
        def decorated(*args, **kwargs):
            check_operation(request.caller, operation)
            return f(*args, **kwargs)

        return decorated

    return decorator
