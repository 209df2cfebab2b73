"""
CoachTrack API entry point.

Wires logging, CORS, request timing, error rendering and the three
routers: client workouts, check-ins and the coach dashboard.
"""
import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.database import check_db_connection
from core.exceptions import APIException
from core.logging import setup_logging
from routers import check_ins, client_workouts, coach_dashboard

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CoachTrack API",
    description="Workout tracking, check-ins and adherence for coached clients",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _request_fields(request: Request, **fields) -> dict:
    base = {
        "request_id": getattr(request.state, "request_id", None),
        "method": request.method,
        "path": request.url.path,
    }
    base.update(fields)
    return {"extra_fields": base}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request.state.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"Request failed: {request.method} {request.url.path}",
            exc_info=True,
            extra=_request_fields(request, error=str(e)),
        )
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code}",
        extra=_request_fields(
            request,
            status_code=response.status_code,
            process_time_ms=elapsed_ms,
            client_ip=request.client.host if request.client else None,
        ),
    )
    response.headers["X-Request-ID"] = request.state.request_id
    response.headers["X-Process-Time-Ms"] = str(elapsed_ms)
    return response


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Domain errors render as {"detail", "error_code"} with the error's status."""
    logger.warning(
        f"{exc.error_code}: {exc.detail}",
        extra=_request_fields(request, status_code=exc.status_code, error_code=exc.error_code),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True, extra=_request_fields(request))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error_code": "INTERNAL_ERROR"},
    )


@app.get("/health")
async def health():
    """200 when the database answers, 503 otherwise."""
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "database": "ok", "timestamp": time.time()}


@app.get("/ping")
async def ping():
    return {"pong": True}


app.include_router(client_workouts.router)
app.include_router(check_ins.router)
app.include_router(coach_dashboard.router)
