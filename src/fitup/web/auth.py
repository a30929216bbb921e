"""Bearer token authentication.

Tokens are HS256 JWTs carrying ``sub`` (user id), ``role`` and optionally
``email``. Token issuance lives here too so the CLI and tests can mint
tokens with the configured secret.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..exceptions import UnauthenticatedError, UnauthorizedError
from ..models.profile import UserRole

security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """The authenticated caller."""

    user_id: str
    role: UserRole = UserRole.USER
    email: str | None = None

    @property
    def is_coach(self) -> bool:
        return self.role in (UserRole.COACH, UserRole.ADMIN)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class TokenService:
    """Issues and verifies access and refresh tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_ttl_seconds: int = 86400,
        refresh_ttl_seconds: int = 7 * 86400,
    ):
        self._secret = secret
        self._algorithm = algorithm
        self.access_ttl_seconds = access_ttl_seconds
        self.refresh_ttl_seconds = refresh_ttl_seconds

    def create_access_token(
        self,
        user_id: str,
        role: UserRole = UserRole.USER,
        email: str | None = None,
        expires_in: int | None = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": user_id,
            "role": role.value,
            "type": "access",
            "iat": now,
            "exp": now + timedelta(seconds=expires_in or self.access_ttl_seconds),
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def create_refresh_token(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "type": "refresh",
            "iat": now,
            "exp": now + timedelta(seconds=self.refresh_ttl_seconds),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str, expected_type: str = "access") -> dict[str, Any]:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise UnauthenticatedError("token has expired") from e
        except jwt.InvalidTokenError as e:
            raise UnauthenticatedError(f"invalid token: {e}") from e
        if payload.get("type") != expected_type:
            raise UnauthenticatedError(f"expected a {expected_type} token")
        if not payload.get("sub"):
            raise UnauthenticatedError("token has no subject")
        return payload

    def authenticate(self, token: str) -> CurrentUser:
        payload = self.verify(token)
        try:
            role = UserRole(payload.get("role", UserRole.USER.value))
        except ValueError as e:
            raise UnauthenticatedError("token carries an unknown role") from e
        return CurrentUser(user_id=payload["sub"], role=role, email=payload.get("email"))


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    tokens: TokenService = Depends(get_token_service),
) -> CurrentUser:
    """FastAPI dependency for the authenticated caller."""
    if credentials is None:
        raise UnauthenticatedError()
    return tokens.authenticate(credentials.credentials)


async def require_coach(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_coach:
        raise UnauthorizedError("coach role required")
    return user

