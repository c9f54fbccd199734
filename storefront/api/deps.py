"""Shared route dependencies: current user, admin gate, carrier connector."""
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from storefront.connectors.shiprocket_connector import ShiprocketConnector
from storefront.connectors.token_cache import TokenCache
from storefront.models.base import get_db
from storefront.models.user import User
from storefront.services.shipment_service import ShipmentService

# One carrier token cache per process, shared by every request
TOKEN_CACHE = TokenCache()


def current_user(request: Request) -> Optional[User]:
    """User attached by AuthMiddleware, or None for anonymous requests."""
    return getattr(request.state, "user", None)


def require_user(user: Optional[User] = Depends(current_user)) -> User:
    """Dependency: raise 401 if no authenticated user on request."""
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(user: User = Depends(require_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def get_shiprocket(db: Session = Depends(get_db)) -> ShiprocketConnector:
    return ShiprocketConnector(db, TOKEN_CACHE)


def get_shipment_service(
    db: Session = Depends(get_db),
    carrier: ShiprocketConnector = Depends(get_shiprocket),
) -> ShipmentService:
    return ShipmentService(db, carrier)
