from typing import Callable

from fastapi import Header, Request

from resume_service.errors import AuthenticationError
from resume_service.logger import get_logger
from resume_service.tokens import TokenService

logger = get_logger(__name__)


def bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise AuthenticationError("No token provided")
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header", details="expected 'Bearer <token>'")
    return token.strip()


def require_user(tokens: TokenService) -> Callable[..., dict]:
    """Build a route dependency that admits only requests with a valid bearer token.

    The decoded claims are returned to the route and also kept on
    ``request.state.user``.
    """

    def dependency(request: Request, authorization: str | None = Header(default=None)) -> dict:
        try:
            claims = tokens.validate(bearer_token(authorization))
        except AuthenticationError as exc:
            logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.details or exc.message)
            raise
        request.state.user = claims
        return claims

    return dependency
