"""Bearer token authentication.

This module resolves the current user from a signed bearer token. Tokens are
``<user_id>.<signature>`` where the signature is an HMAC-SHA256 of the user
id keyed with the application secret, so the server can verify them without
storing sessions.

Core logic only needs "a user id or none"; routes that manage forms depend
on require_user, public respond routes on get_optional_user.
"""

import hashlib
import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Request

from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)


class AuthService:
    """Issues and verifies signed user tokens.

    Security Notes:
        - NEVER log tokens or the secret key
        - Signatures are compared in constant time
    """

    def __init__(self, secret_key: str):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._key = secret_key.encode("utf-8")

    def _sign(self, user_id: str) -> str:
        return hmac.new(self._key, user_id.encode("utf-8"), hashlib.sha256).hexdigest()

    def issue_token(self, user_id: str) -> str:
        """Create a token for user_id.

        Example:
            >>> auth = AuthService("secret")
            >>> token = auth.issue_token("user_abc")
            >>> auth.resolve(token)
            'user_abc'
        """
        if not user_id or "." in user_id:
            raise ValueError("user_id must be non-empty and contain no '.'")
        return f"{user_id}.{self._sign(user_id)}"

    def resolve(self, token: Optional[str]) -> Optional[str]:
        """Return the user id a token was issued for, or None if invalid."""
        if not token or "." not in token:
            return None
        user_id, _, signature = token.rpartition(".")
        if not user_id:
            return None
        if not hmac.compare_digest(signature, self._sign(user_id)):
            return None
        return user_id


def get_auth_service(request: Request) -> AuthService:
    """FastAPI dependency returning the application's AuthService."""
    return request.app.state.auth_service


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def get_optional_user(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> Optional[str]:
    """FastAPI dependency: current user id, or None when unauthenticated.

    An invalid token is treated like no token but logged.
    """
    token = _bearer_token(request)
    if token is None:
        return None
    user_id = auth.resolve(token)
    if user_id is None:
        client_ip = request.client.host if request.client else "unknown"
        logger.warning(
            f"Invalid bearer token from IP: {client_ip}",
            extra={"client_ip": client_ip}
        )
    return user_id


async def require_user(user_id: Optional[str] = Depends(get_optional_user)) -> str:
    """FastAPI dependency: current user id.

    Raises:
        HTTPException(401): If the request carries no valid token
    """
    if user_id is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id
