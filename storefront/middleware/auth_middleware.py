"""Authentication middleware — attaches the session user to the request."""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from storefront.models.base import SessionLocal
from storefront.services import auth_service


def request_token(request: Request) -> str | None:
    """Bearer token from the Authorization header, else the session cookie."""
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get("session_token")


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Resolve the session token to a User on request.state.user.

    Never rejects a request; routes that need a user use the
    require_user / require_admin dependencies.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user = None

        token = request_token(request)
        if token:
            db = SessionLocal()
            try:
                request.state.user = auth_service.validate_session(db, token)
            finally:
                db.close()

        return await call_next(request)
