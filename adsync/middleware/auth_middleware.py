"""Authentication middleware: verifies the bearer JWT and reads the caller's user id.

Tokens are HS-signed by the auth provider with the shared JWT secret; the
`sub` claim is the user id.
"""
from typing import Optional

from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from adsync.config import get_settings
from adsync.utils.logger import log

settings = get_settings()

# Paths that never require authentication
PUBLIC_PREFIXES = (
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
)

# Invite details are shown to people who do not have an account yet
PUBLIC_GET_PREFIXES = (
    "/invites/",
)


def decode_jwt_subject(token: str) -> Optional[str]:
    """`sub` claim of a JWT whose signature and expiry check out, else None"""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except JWTError as e:
        log.debug(f"Rejected bearer token: {e}")
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(status_code=401, content={"success": False, "error": message})


class AuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        request.state.user_id = None

        if request.method == "OPTIONS" or path == "/" or any(path.startswith(p) for p in PUBLIC_PREFIXES):
            return await call_next(request)

        if request.method == "GET" and any(path.startswith(p) for p in PUBLIC_GET_PREFIXES):
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if not auth_header:
            return _unauthorized("Authorization header is required")

        token = auth_header.replace("Bearer ", "", 1).strip()
        user_id = decode_jwt_subject(token)
        if not user_id:
            return _unauthorized("Unauthorized - invalid token")

        request.state.user_id = user_id
        return await call_next(request)
