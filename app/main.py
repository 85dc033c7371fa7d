"""
Aslam Tailor Storefront Backend
Main FastAPI application
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.config import get_settings
from app.exceptions import ShippingError
from app.utils.logger import log
from app import __version__

# Import routers
from app.api import health, shipping, dashboard
from app.middleware.security_middleware import SecurityMiddleware

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    if not (settings.shiprocket_email and settings.shiprocket_password):
        log.warning("Shiprocket credentials not configured; shipping relay calls will fail")

    # Initialize database
    try:
        from app.models.base import init_db
        init_db()
        log.info("Database initialized")
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    yield

    # Shutdown
    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Backend for the Aslam Tailor storefront

    - Shiprocket relay: login, create shipping order, courier serviceability
    - Admin dashboard: income and cancellation metrics, top products and
      customers, CSV export
    """,
    lifespan=lifespan
)

# CORS middleware (single storefront origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.cors_origin],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

# Security middleware (Basic Auth gate for /dashboard, X-Robots-Tag)
app.add_middleware(SecurityMiddleware)


@app.exception_handler(ShippingError)
async def shipping_error_handler(request: Request, exc: ShippingError):
    """Relay failures become {message[, details]} JSON bodies"""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if field:
        return f"Invalid {field}: {first.get('msg', 'invalid value')}"
    return f"Invalid request body: {first.get('msg', 'invalid value')}"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same 400 {message} shape as relay validation errors"""
    message = _validation_message(exc)
    log.warning(f"Rejected {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"message": message})


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(shipping.router)
app.include_router(dashboard.router)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "app": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "login_shiprocket": "POST /login-shiprocket",
            "create_order": "POST /create-order",
            "check_courier": "POST /check-courier",
            "dashboard_metrics": "GET /dashboard/metrics",
            "dashboard_export": "GET /dashboard/export/{orders|products|customers}",
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
