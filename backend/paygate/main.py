"""
FastAPI entrypoint for the Paygate backend application.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError, StatementError
from starlette.exceptions import HTTPException as StarletteHTTPException
from paygate.core.config import settings
from paygate.core.exceptions import AppError
from paygate.core.logging import configure_logging
from paygate.core.utils import format_error, format_response, utc_timestamp
from paygate.api.router import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and make sure the default roles exist."""
    from paygate.db.session import SessionLocal, init_db
    from paygate.services.role_service import seed_default_roles

    configure_logging()
    init_db()
    if settings.SEED_DEFAULT_ROLES:
        db = SessionLocal()
        try:
            seed_default_roles(db)
        finally:
            db.close()
    yield


app = FastAPI(
    title="Paygate API",
    description="Access control and payment approval workflow API",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Typed service errors -> status code + error envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=format_error(exc.message, exc.errors))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Request validation failures are reported as 400 with per-field messages."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or None, "message": err.get("msg", "Invalid value")})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error("Validation failed", errors)
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Framework HTTP errors (unknown route, wrong method) in the same envelope."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
        message = f"Route {request.url.path} not found"
    return JSONResponse(status_code=exc.status_code, content=format_error(message), headers=exc.headers)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Duplicate keys and broken references surface as conflicts."""
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=format_error("Duplicate value", [{"message": "The record conflicts with existing data"}])
    )


@app.exception_handler(DataError)
@app.exception_handler(StatementError)
async def data_error_handler(request: Request, exc: StatementError):
    """Values the database cannot store or cast."""
    logger.warning(f"Data error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error("Invalid identifier or value", [{"message": "A value has an invalid format"}])
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Anything else is a 500; details only leak in DEBUG."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    errors = [{"message": str(exc)}] if settings.DEBUG else []
    message = str(exc) if settings.DEBUG else "An unexpected error occurred"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=format_error(message, errors)
    )


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "Paygate API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/api/health")
async def api_health():
    """Health check in the standard envelope."""
    return format_response({"status": "healthy", "time": utc_timestamp()}, "API is running")
