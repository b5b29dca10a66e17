from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse
from sqlalchemy import text
import os
import time
from typing import Callable
from redis.asyncio import Redis

from classroom.core.config.settings import get_settings
from classroom.core.config.logging_config import setup_logging
from classroom.core.errors import ClassroomError, ErrorKind
from classroom.db.base import Base
from classroom.db.session import engine, SessionLocal
from classroom.db.init_db import init_db
from classroom.routers import assignments, auth, submissions
from classroom.services.deadline_scanner import DeadlineScanner
from classroom.services.email import get_notifier

# Setup logging
logger = setup_logging()

settings = get_settings()

# Create necessary directories
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

# Error kinds translated to transport codes at the boundary
ERROR_STATUS_CODES = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.STORAGE_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.DATABASE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.DELIVERY_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}

# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
)

# Redis connection instance
redis = None

@app.on_event("startup")
async def startup_event():
    global redis
    # Initialize Redis if URL is configured
    if settings.REDIS_URL:
        try:
            redis = Redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True
            )
            await redis.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {str(e)}")
            redis = None

    # Initialize database
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        init_db(db)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
    finally:
        db.close()

    if settings.REMINDER_ENABLED:
        app.state.deadline_scanner = DeadlineScanner.from_settings(settings, SessionLocal, get_notifier())
        app.state.deadline_scanner.start()

@app.on_event("shutdown")
async def shutdown_event():
    global redis
    scanner = getattr(app.state, "deadline_scanner", None)
    if scanner:
        await scanner.stop()
    if redis:
        await redis.close()
        logger.info("Redis connection closed")

# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next: Callable):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info(
        f"Method: {request.method} Path: {request.url.path} "
        f"Status: {response.status_code} Duration: {duration:.2f}s"
    )
    return response

# Rate limiting middleware
@app.middleware("http")
async def rate_limit(request: Request, call_next: Callable):
    if redis and request.client:
        client_ip = request.client.host
        key = f"rate_limit:{client_ip}"
        requests = await redis.incr(key)

        if requests == 1:
            await redis.expire(key, 60)  # Reset after 60 seconds

        if requests > settings.RATE_LIMIT_PER_MINUTE:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests"}
            )

    return await call_next(request)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded blobs are served from the upload directory
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Include routers with prefix
api_prefix = settings.API_V1_PREFIX
app.include_router(auth.router, prefix=api_prefix)
app.include_router(submissions.router, prefix=api_prefix)
app.include_router(assignments.router, prefix=api_prefix)

# Exception handlers
@app.exception_handler(ClassroomError)
async def classroom_exception_handler(request: Request, exc: ClassroomError):
    status_code = ERROR_STATUS_CODES[exc.kind]
    if status_code >= 500:
        logger.error(f"{exc.kind.name}: {exc.message}")
    else:
        logger.info(f"{exc.kind.name}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind == ErrorKind.UNAUTHORIZED else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message},
        headers=headers,
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # malformed or missing request fields are invalid input like any other
    problems = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ())]
        # drop the "body" / "query" prefix
        field = ".".join(location[1:]) or ".".join(location)
        problems.append(f"{field}: {error['msg']}" if field else error["msg"])
    message = "; ".join(problems) or "Invalid request"
    logger.info(f"{ErrorKind.INVALID_INPUT.name}: {message}")
    return JSONResponse(
        status_code=ERROR_STATUS_CODES[ErrorKind.INVALID_INPUT],
        content={"detail": message},
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled Exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )

@app.get("/")
async def root():
    return {"message": "Welcome to the Virtual Classroom"}

# Health check endpoint with additional status info
@app.get("/health")
async def health_check():
    scanner = getattr(app.state, "deadline_scanner", None)
    status_info = {
        "status": "healthy",
        "timestamp": time.time(),
        "database": "connected",
        "redis": "connected" if redis else "not configured",
        "deadline_scanner": "running" if scanner and scanner.running else "stopped",
    }

    # Check database connection
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except Exception as e:
        status_info["database"] = "disconnected"
        status_info["status"] = "unhealthy"
        logger.error(f"Database health check failed: {str(e)}")

    # Check Redis connection if configured
    if redis:
        try:
            await redis.ping()
        except Exception as e:
            status_info["redis"] = "disconnected"
            status_info["status"] = "unhealthy"
            logger.error(f"Redis health check failed: {str(e)}")

    return status_info
