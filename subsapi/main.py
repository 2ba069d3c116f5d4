"""
Subscription API - Main FastAPI Application
Plans, subscriptions and gateway payments with phone OTP login
"""

from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging

from subsapi.api import auth, users, plans, subscriptions, payments, api_keys, webhooks, gateway_credentials
from subsapi.config import settings
from subsapi.middleware.auth import require_api_key, require_master
from subsapi.utils.database import engine, create_tables, utcnow
from subsapi.utils.errors import ServiceError, GatewayError, RateLimitError

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    await create_tables()
    logger.info(f"{settings.APP_NAME} started, default gateway: {settings.DEFAULT_GATEWAY}")
    yield
    # Shutdown
    await engine.dispose()

# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Subscription billing with Iranian payment gateways",
    version="1.0.0",
    docs_url="/api/docs" if settings.DEBUG else None,
    lifespan=lifespan
)

# Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure based on environment
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error handlers

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    body = {"error": exc.title, "message": exc.message}
    headers = None
    if isinstance(exc, GatewayError) and exc.code is not None:
        body["code"] = exc.code
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg', 'Invalid input')}" if field else first.get("msg", "Invalid input")
    return JSONResponse(status_code=400, content={"error": "Bad Request", "message": message})

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={
            "error": "Route not found",
            "message": "The requested endpoint does not exist",
        })
    return JSONResponse(status_code=exc.status_code, content={"error": "Error", "message": str(exc.detail)})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={
        "error": "Internal Server Error",
        "message": "Something went wrong",
    })

# API Routes
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(payments.router, prefix="/api/payment", tags=["payments"])
app.include_router(users.router, prefix="/api/user", tags=["users"], dependencies=[Depends(require_api_key)])
app.include_router(plans.router, prefix="/api/plan", tags=["plans"], dependencies=[Depends(require_api_key)])
app.include_router(subscriptions.router, prefix="/api/subscription", tags=["subscriptions"], dependencies=[Depends(require_api_key)])
app.include_router(webhooks.router, prefix="/api/webhook", tags=["webhooks"])
app.include_router(gateway_credentials.router, prefix="/api/gateway-credentials", tags=["gateway-credentials"])

# Admin Routes
app.include_router(api_keys.router, prefix="/api/apikey", tags=["admin-apikeys"], dependencies=[Depends(require_master)])

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "service": "subscription-api",
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "subsapi.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG
    )
