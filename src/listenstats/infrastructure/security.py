"""Password hashing (bcrypt) and signed tokens (PyJWT).

Hey future me - two kinds of JWT come out of here:
1. Access tokens: `sub` = user id, 1h lifetime, sent back as `Authorization: Bearer ...`.
2. OAuth state tokens: `typ` = "spotify_state", a few minutes lifetime. They ride along
   the Spotify consent redirect so /callback knows which user connected, without a
   server-side session store.
Both are HS256 with the same secret, the `typ` claim keeps them from being swapped.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from listenstats.config import Settings
from listenstats.domain.exceptions import AuthorizationError, ValidationError

ACCESS_TOKEN_TYPE = "access"  # nosec B105 - token type marker, not a secret
STATE_TOKEN_TYPE = "spotify_state"  # nosec B105


BCRYPT_MAX_PASSWORD_BYTES = 72


# Hey future me - bcrypt only ever looked at the first 72 bytes, bcrypt>=5 raises instead of
# truncating. Cutting here keeps long passwords working and matches existing hashes.
def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash a password with a fresh bcrypt salt."""
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _encode(payload: dict[str, Any], settings: Settings, lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    claims = {**payload, "iat": now, "exp": now + lifetime}
    return jwt.encode(
        claims,
        settings.security.jwt_secret,
        algorithm=settings.security.jwt_algorithm,
    )


def create_access_token(user_id: int, email: str, settings: Settings) -> str:
    """Issue a bearer token for a logged-in user."""
    return _encode(
        {"sub": str(user_id), "email": email, "typ": ACCESS_TOKEN_TYPE},
        settings,
        timedelta(minutes=settings.security.access_token_expire_minutes),
    )


def decode_access_token(token: str, settings: Settings) -> int:
    """Verify a bearer token and return the user id it was issued for.

    Raises:
        AuthorizationError: "Token expired" or "Invalid token" (both map to 403)
    """
    try:
        claims = jwt.decode(
            token,
            settings.security.jwt_secret,
            algorithms=[settings.security.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthorizationError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthorizationError("Invalid token") from e

    if claims.get("typ") != ACCESS_TOKEN_TYPE:
        raise AuthorizationError("Invalid token")
    try:
        return int(claims["sub"])
    except (TypeError, ValueError) as e:
        raise AuthorizationError("Invalid token") from e


def create_state_token(user_id: int, settings: Settings) -> str:
    """Issue the OAuth `state` value that identifies the user across the redirect."""
    return _encode(
        {"sub": str(user_id), "typ": STATE_TOKEN_TYPE},
        settings,
        timedelta(minutes=settings.security.oauth_state_expire_minutes),
    )


def decode_state_token(state: str, settings: Settings) -> int:
    """Verify an OAuth state value and return its user id.

    Raises:
        ValidationError: state is expired, forged or not a state token (400)
    """
    try:
        claims = jwt.decode(
            state,
            settings.security.jwt_secret,
            algorithms=[settings.security.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
        if claims.get("typ") != STATE_TOKEN_TYPE:
            raise ValidationError("Invalid OAuth state")
        return int(claims["sub"])
    except (jwt.InvalidTokenError, TypeError, ValueError) as e:
        raise ValidationError("Invalid OAuth state") from e
