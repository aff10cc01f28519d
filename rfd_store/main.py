import os
import subprocess
from contextlib import asynccontextmanager
from datetime import datetime
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rfd_store.config.logger import app_logger, log_request
from rfd_store.config.settings import settings
from rfd_store.db.db import Database
from rfd_store.api.rfds.router import router as rfds_router
from rfd_store.services.rfd_store import RFDStore
from rfd_store.utils.errors import RFDStoreError, ValidationError
from rfd_store.utils.responses import error_response


_git_sha_cache: Optional[str] = None


def get_git_sha() -> str:
    """Get the current Git commit SHA (cached to avoid blocking)."""
    global _git_sha_cache
    if _git_sha_cache is not None:
        return _git_sha_cache

    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=1.0
        )
        _git_sha_cache = result.stdout.strip()[:8]
        return _git_sha_cache
    except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
        _git_sha_cache = "local-dev"
        return _git_sha_cache


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and the RFD store for the life of the application."""
    app_logger.info(f"{settings.APP_NAME} starting up")

    database = Database(settings)
    await database.start()
    app.state.database = database
    app.state.store = RFDStore(database.session_maker, batch_size=settings.RFD_LIST_BATCH_SIZE)

    app_logger.info("Application initialized successfully")

    yield

    app_logger.info(f"{settings.APP_NAME} shutting down")
    app.state.store = None
    await database.close()
    app_logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing information."""
    start_time = datetime.now()

    try:
        response = await call_next(request)
    except Exception as e:
        log_request(request, None, (datetime.now() - start_time).total_seconds(), error=e)
        raise

    log_request(request, response.status_code, (datetime.now() - start_time).total_seconds())
    return response


@app.exception_handler(RFDStoreError)
async def rfd_store_error_handler(request: Request, exc: RFDStoreError):
    """Translate store errors into distinct HTTP statuses."""
    errors = exc.errors if isinstance(exc, ValidationError) else []
    body = error_response(error=exc.error, detail=exc.detail, errors=errors)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies and parameters in the error envelope."""
    errors = [{k: v for k, v in err.items() if k not in ("ctx", "url")} for err in exc.errors()]
    body = error_response(
        error=ValidationError.error,
        detail="Request failed validation",
        errors=jsonable_encoder(errors),
    )
    return JSONResponse(status_code=422, content=body.model_dump(mode="json"))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Wrap HTTP errors (unknown routes, store unavailable) in the error envelope."""
    body = error_response(error=HTTPStatus(exc.status_code).phrase, detail=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json"),
        headers=getattr(exc, "headers", None),
    )


@app.get("/", tags=["health"])
async def root():
    """Root endpoint with basic API information."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "status": "operational",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/status", tags=["health"])
async def status():
    """Status endpoint with build information for CI/CD monitoring."""
    build_number = os.getenv("BUILD_NUMBER", "local-dev")
    git_sha = os.getenv("GIT_SHA", os.getenv("GITHUB_SHA", get_git_sha()))
    environment = os.getenv("ENVIRONMENT", os.getenv("ENV", "development"))

    return {
        "status": "ok",
        "build": build_number,
        "sha": git_sha,
        "env": environment
    }


@app.get("/health/db", tags=["health"])
async def health_db(request: Request):
    """Database health endpoint."""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        is_ok, message = False, "Database not initialized"
    else:
        is_ok, message = await database.ping()
    if not is_ok:
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "db": "unavailable", "message": message}
        )
    return {"status": "ok", "db": "available", "message": message}


app.include_router(rfds_router)


if __name__ == "__main__":
    import uvicorn

    app_logger.info(f"Starting {settings.APP_NAME} server")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_config=None  # Use our custom logger
    )
