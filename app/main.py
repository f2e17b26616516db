"""
FastAPI main application entry point
"""

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import time
import uuid

from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.routes import assessments, auth, submissions, users
from app.services.ai_service import Evaluator, build_evaluator, get_evaluator
from app.services.store_service import store_service
from app.utils.logger import logger
from app.utils.error_handler import (
    global_exception_handler,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    database_exception_handler,
    AppException
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    store_service.connect(serverSelectionTimeoutMS=5000)
    try:
        store_service.ensure_indexes()
    except Exception as e:
        # Keep serving; the health check reports the database as unavailable
        logger.warning(f"Could not ensure MongoDB indexes: {str(e)}")

    app.state.evaluator = build_evaluator(settings)

    yield

    # Shutdown
    store_service.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
    Assessment Platform API

    Teachers author and assign timed assessments; students take them and are
    scored per question.

    Features:
    - AI-assisted question generation (Gemini, OpenAI or Groq)
    - Programming, theory and multiple choice questions
    - Timed sessions with automatic expiry
    - Per-assessment results and student statistics
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Note: When allow_origins=["*"], allow_credentials must be False
cors_origins = ["*"] if settings.DEBUG else settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request ID and timing middleware
@app.middleware("http")
async def request_id_and_timing_middleware(request: Request, call_next):
    """Add request ID and track processing time"""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000  # Convert to milliseconds

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{process_time:.2f}ms"

    # Log only errors
    if response.status_code >= 400:
        log = logger.error if response.status_code >= 500 else logger.warning
        log(
            f"{request.method} {request.url.path} - {response.status_code}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": process_time
            }
        )

    return response


# Exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(PyMongoError, database_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)


# Health check endpoint
@app.get(f"{settings.API_PREFIX}/health", tags=["Health"])
async def health_check(evaluator: Evaluator = Depends(get_evaluator)):
    """
    Health check endpoint with system status

    Returns:
        Health status, database reachability and the active evaluator
    """
    database_ok = store_service.ping()

    content = {
        "status": "healthy" if database_ok else "unhealthy",
        "version": settings.VERSION,
        "service": settings.PROJECT_NAME,
        "checks": {
            "database": "connected" if database_ok else "unavailable",
            "evaluator": evaluator.name,
        },
        "timestamp": time.time()
    }
    if not database_ok:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=content)
    return content


# Include routers
app.include_router(auth.router)
app.include_router(assessments.router)
app.include_router(submissions.router)
app.include_router(users.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
