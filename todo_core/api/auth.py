"""
Authentication helper library for the core REST API

This module provides the one-way password hashing of user accounts as well
as issuing and checking the signed bearer tokens. Passwords are hashed with
argon2 (salted, memory-hard), tokens are JSON web tokens signed with HS256
using the configured server secret. All functions receive the server config
explicitly, there is no module-level secret or hasher state.
"""

import datetime
import functools
import logging
from typing import Optional

from argon2 import PasswordHasher, profiles
from argon2.exceptions import InvalidHashError, VerificationError
from jose import jwt

from ..schemas import config


logger = logging.getLogger(__name__)


class InvalidOrExpiredToken(ValueError):
    """
    Exception raised for tokens with bad signature, malformed content or past expiration
    """


@functools.lru_cache(maxsize=2)
def _get_password_hasher(weak: bool) -> PasswordHasher:
    if weak:
        return PasswordHasher.from_parameters(profiles.CHEAPEST)
    return PasswordHasher.from_parameters(profiles.RFC_9106_LOW_MEMORY)


def get_password_hasher(server_config: config.ServerConfig) -> PasswordHasher:
    return _get_password_hasher(server_config.allow_weak_insecure_password_hashes)


def hash_password(password: str, server_config: config.ServerConfig) -> str:
    return get_password_hasher(server_config).hash(password)


def verify_password(password: str, hashed_password: str, server_config: config.ServerConfig) -> bool:
    """
    Check the password against the stored hash, returning False for mismatches and broken hashes
    """

    try:
        return get_password_hasher(server_config).verify(hashed_password, password)
    except (VerificationError, InvalidHashError):
        return False


def create_access_token(
        user_id: int,
        server_config: config.ServerConfig,
        expiration_minutes: Optional[int] = None
) -> str:
    if expiration_minutes is None:
        expiration_minutes = server_config.token_expiration_minutes
    now = datetime.datetime.now(datetime.timezone.utc)
    return jwt.encode(
        {
            "exp": now + datetime.timedelta(minutes=expiration_minutes),
            "iat": now,
            "sub": str(user_id),
            "userId": user_id
        },
        server_config.token_secret,
        algorithm=jwt.ALGORITHMS.HS256
    )


def verify_access_token(token: str, server_config: config.ServerConfig) -> int:
    """
    Verify the signature and expiration of a token and return the embedded user ID

    :param token: encoded JSON web token as sent by the client
    :param server_config: server configuration holding the signing secret
    :return: user ID stored in the token
    :raises InvalidOrExpiredToken: for any kind of invalid token
    """

    try:
        payload = jwt.decode(
            token,
            server_config.token_secret,
            algorithms=[jwt.ALGORITHMS.HS256],
            options={"require_exp": True, "require_iat": True, "require_sub": True}
        )
        user_id = int(payload.get("userId", payload["sub"]))
    except (jwt.JWTError, KeyError, TypeError, ValueError) as exc:
        raise InvalidOrExpiredToken(str(exc)) from exc
    if user_id <= 0:
        raise InvalidOrExpiredToken(f"Invalid user ID {user_id!r} in token")
    return user_id
