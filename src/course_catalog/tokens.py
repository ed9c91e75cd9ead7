"""Signed, time-limited session tokens."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from .config import Settings


class InvalidToken(Exception):
    """Raised when a token cannot be trusted."""


@dataclass(frozen=True)
class TokenIdentity:
    """Identity asserted by a verified token."""

    user_id: str
    username: str


@dataclass
class TokenService:
    """Issue and verify JWT access tokens.

    Tokens are stateless: nothing is recorded on issue, so logging out only
    means the client forgets its token.
    """

    secret: str
    algorithm: str = "HS256"
    lifetime: timedelta = timedelta(hours=24)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            lifetime=timedelta(hours=settings.token_expire_hours),
        )

    def issue(self, user_id: str, username: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "username": username,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
            "type": "access",
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenIdentity:
        """Decode ``token`` or raise :class:`InvalidToken`.

        Expiry is checked with zero leeway, so a token is rejected from the
        instant its ``exp`` is reached.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidToken(str(exc)) from exc

        user_id = payload.get("sub")
        username = payload.get("username")
        if not isinstance(user_id, str) or not isinstance(username, str):
            raise InvalidToken("token payload is malformed")
        return TokenIdentity(user_id=user_id, username=username)
