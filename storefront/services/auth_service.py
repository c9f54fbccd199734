"""Authentication service — password hashing, sessions, user accounts"""
import secrets
from datetime import datetime, timedelta

from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.orm import Session

from storefront.models.user import User, UserSession
from storefront.config import get_settings
from storefront.exceptions import ConflictError, ValidationError
from storefront.utils.cache import clear_for_source
from storefront.utils.logger import log

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def user_out(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "email": u.email,
        "is_admin": u.is_admin,
        "is_active": u.is_active,
        "created_at": u.created_at.isoformat() if u.created_at else None,
        "last_login": u.last_login.isoformat() if u.last_login else None,
    }


def authenticate(db: Session, login: str, password: str) -> User | None:
    """Verify credentials (username or email) and return user, or None."""
    login = (login or "").strip()
    user = (
        db.query(User)
        .filter(
            or_(User.username == login, User.email == login.lower()),
            User.is_active == True,  # noqa: E712
        )
        .first()
    )
    if not user or not verify_password(password, user.password_hash):
        return None
    user.last_login = datetime.utcnow()
    db.commit()
    return user


def create_session(db: Session, user_id: int) -> str:
    """Create a new session token for the user."""
    settings = get_settings()
    token = secrets.token_hex(32)
    session = UserSession(
        user_id=user_id,
        token=token,
        expires_at=datetime.utcnow() + timedelta(hours=settings.session_duration_hours),
    )
    db.add(session)
    db.commit()
    return token


def validate_session(db: Session, token: str) -> User | None:
    """Return the user for a valid, non-expired session token."""
    session = (
        db.query(UserSession)
        .filter(UserSession.token == token, UserSession.expires_at > datetime.utcnow())
        .first()
    )
    if not session:
        return None
    user = db.query(User).filter(User.id == session.user_id, User.is_active == True).first()  # noqa: E712
    return user


def delete_session(db: Session, token: str) -> None:
    """Remove a session (logout)."""
    db.query(UserSession).filter(UserSession.token == token).delete()
    db.commit()


def cleanup_expired(db: Session) -> int:
    """Delete expired sessions. Returns count removed."""
    count = db.query(UserSession).filter(UserSession.expires_at <= datetime.utcnow()).delete()
    db.commit()
    return count


def create_user(db: Session, username: str, email: str, password: str, is_admin: bool = False) -> User:
    """Create a new user account. Duplicate username or email raises ConflictError."""
    username = (username or "").strip()
    email = (email or "").lower().strip()

    if len(username) < 3:
        raise ValidationError("Username must be at least 3 characters", field="username")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    if db.query(User).filter(User.username == username).first():
        raise ConflictError("Username already taken", field="username")
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already registered", field="email")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def register(db: Session, username: str, email: str, password: str) -> tuple[User, str]:
    """Create a regular account and log it in."""
    user = create_user(db, username, email, password)
    log.info(f"Registered user {user.username}")
    clear_for_source("users")
    return user, create_session(db, user.id)


def seed_initial_user(db: Session) -> None:
    """Create the first admin user from env vars if no users exist."""
    settings = get_settings()
    if not settings.initial_admin_email or not settings.initial_admin_password:
        return
    # Skip if any users already exist
    if db.query(User).first():
        return
    create_user(
        db,
        settings.initial_admin_username,
        settings.initial_admin_email,
        settings.initial_admin_password,
        is_admin=True,
    )
    log.info(f"Seeded initial admin user: {settings.initial_admin_email}")
