"""
Storefront API
Main FastAPI application
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager

from storefront.config import get_settings
from storefront.exceptions import StorefrontError
from storefront.utils.logger import log
from storefront import __version__

# Import routers
from storefront.api import analytics, articles, auth, health, orders, payments, products, shipping, shiprocket
from storefront.middleware.auth_middleware import AuthMiddleware
from storefront.middleware.security_middleware import SecurityMiddleware

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    # Initialize database
    from storefront.models.base import init_db, SessionLocal
    init_db()
    log.info("Database initialized")

    # Seed initial admin user if configured, drop stale sessions
    from storefront.services import auth_service
    db = SessionLocal()
    try:
        auth_service.seed_initial_user(db)
        removed = auth_service.cleanup_expired(db)
        if removed:
            log.info(f"Removed {removed} expired session(s)")
    finally:
        db.close()

    yield

    # Shutdown
    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    E-commerce backend

    - Product catalog and guest checkout
    - Razorpay online payments and cash on delivery
    - Shiprocket shipments: courier selection, AWB assignment, tracking, cancellation
    - Local shipping cost estimates from rate and zone tables
    - Articles (blog)
    - Admin analytics
    """,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.client_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Security middleware (auth rate limit, security headers, Cache-Control)
app.add_middleware(SecurityMiddleware)

# Session/bearer token resolution
app.add_middleware(AuthMiddleware)

# Gzip compression
app.add_middleware(GZipMiddleware, minimum_size=500)


# ── Error handlers ─────────────────────────────────────────

@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        log.error(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    else:
        log.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "code": "http_error"},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Validation failed",
            "code": "validation_error",
            "errors": errors,
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Something went wrong please try again",
            "code": "internal_error",
            "detail": str(exc) if settings.environment != "production" else None,
        },
    )


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(products.router, prefix=settings.api_prefix)
app.include_router(orders.router, prefix=settings.api_prefix)
app.include_router(payments.router, prefix=settings.api_prefix)
app.include_router(shipping.router, prefix=settings.api_prefix)
app.include_router(shiprocket.router, prefix=settings.api_prefix)
app.include_router(articles.router, prefix=settings.api_prefix)
app.include_router(analytics.router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "app": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "api": settings.api_prefix,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "storefront.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
