"""Authentication API — register, login, logout, profile."""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import require_user
from storefront.middleware.auth_middleware import request_token
from storefront.models.base import get_db
from storefront.models.user import User
from storefront.schemas import LoginRequest, RegisterRequest
from storefront.services import auth_service
from storefront.config import get_settings

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_response(user: User, token: str, status_code: int = 200) -> JSONResponse:
    settings = get_settings()
    response = JSONResponse(
        status_code=status_code,
        content={"success": True, "data": {"token": token, "user": auth_service.user_out(user)}},
    )
    response.set_cookie(
        key="session_token",
        value=token,
        httponly=True,
        secure=settings.environment != "development",
        samesite="lax",
        max_age=settings.session_duration_hours * 3600,
        path="/",
    )
    return response


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and return a bearer token."""
    user, token = auth_service.register(db, body.username, body.email, body.password)
    return _session_response(user, token, status_code=201)


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate with username or email and return a bearer token."""
    user = auth_service.authenticate(db, body.login, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = auth_service.create_session(db, user.id)
    return _session_response(user, token)


@router.post("/logout")
async def logout(request: Request, db: Session = Depends(get_db)):
    """Revoke the current session token and clear the cookie."""
    token = request_token(request)
    if token:
        auth_service.delete_session(db, token)
    response = JSONResponse(content={"success": True, "message": "Logged out"})
    response.delete_cookie("session_token", path="/")
    return response


@router.get("/me")
async def me(user: User = Depends(require_user)):
    """Return current authenticated user."""
    return {"success": True, "data": auth_service.user_out(user)}
