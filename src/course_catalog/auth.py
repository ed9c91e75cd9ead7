from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import Forbidden, Unauthenticated
from .store import Store
from .tokens import InvalidToken, TokenIdentity, TokenService

# auto_error is off so a missing header maps to 401 and a bad token to 403
security = HTTPBearer(auto_error=False)


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def _raw_token(request: Request) -> Optional[str]:
    """Return the second word of the Authorization header, whatever its scheme."""
    parts = request.headers.get("Authorization", "").split(" ")
    return parts[1] if len(parts) > 1 and parts[1] else None


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tokens: TokenService = Depends(get_token_service),
) -> TokenIdentity:
    """Require a token and return the identity it asserts.

    A token sent under a scheme other than ``Bearer`` counts as present, so
    it is rejected as invalid rather than missing.
    """
    token = credentials.credentials if credentials is not None else _raw_token(request)
    if not token:
        raise Unauthenticated("Access token required")
    try:
        return tokens.verify(token)
    except InvalidToken:
        raise Forbidden("Invalid or expired token")
