from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from streakboard.core.config import settings
from streakboard.core.analytics import initialize_posthog, shutdown_posthog
from streakboard.core.errors import StreakboardError
from streakboard.api.v1.router import api_router
from streakboard.core.health import build_health_report, HealthStatus
from streakboard.services.logger import logger

is_development = settings.ENVIRONMENT == "development"

app = FastAPI(
    title="Streakboard API",
    description="Challenge check-ins, streaks and leaderboards",
    version="1.0.0",
    docs_url="/docs" if is_development else None,
    redoc_url="/redoc" if is_development else None,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(StreakboardError)
async def streakboard_error_handler(request: Request, exc: StreakboardError):
    """Render domain errors as a stable kind/message pair"""
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


HTTP_ERROR_KINDS = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Routing and framework errors in the same kind/message shape"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": HTTP_ERROR_KINDS.get(exc.status_code, "http_error"),
            "message": str(exc.detail),
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "validation_error",
            "message": f"{field}: {message}" if field else message,
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures without leaking their details"""
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "internal_error",
            "message": "Internal server error",
        },
    )


@app.get("/health")
async def health():
    """Record store, metrics sweep and cache status; 503 when critical"""
    report = await build_health_report(api_version=app.version)
    code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if report.status == HealthStatus.CRITICAL
        else status.HTTP_200_OK
    )
    return JSONResponse(status_code=code, content=report.model_dump(mode="json"))


@app.on_event("startup")
async def on_startup():
    if initialize_posthog():
        logger.info("PostHog analytics enabled")
    logger.info(f"Streakboard API started ({settings.ENVIRONMENT})")


@app.on_event("shutdown")
async def on_shutdown():
    shutdown_posthog()
    logger.info("Streakboard API stopped")


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=is_development)
