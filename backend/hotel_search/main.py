import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hotel_search.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(os.environ.get("LOG_DIR", Path(__file__).resolve().parent.parent / "logs"))
_LOG_DIR.mkdir(parents=True, exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "hotel_search.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from hotel_search.dependencies import get_services
from hotel_search.errors import HotelSearchError, ProviderError, RateLimitError, ValidationError
from hotel_search.routers import geocode, health, hotels, places, reviews

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = get_services()
    logger.info(f"Hotel search API starting ({settings.environment}), cache backend: {settings.cache_backend}")
    logger.info(f"Metrics enabled: {settings.enable_metrics}")

    yield

    # Shutdown
    await services.close()
    logger.info("Provider clients and cache closed")


app = FastAPI(
    title="Hotel Search",
    description="Hotel discovery and pricing aggregator",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _http_status(exc: HotelSearchError) -> int:
    if isinstance(exc, RateLimitError):
        return 429
    if isinstance(exc, ProviderError):
        # unknown hotel ids pass through as 404
        return 404 if exc.status == 404 else 502
    if 400 <= exc.status < 600:
        return exc.status
    return 500


@app.exception_handler(HotelSearchError)
async def hotel_search_error_handler(request: Request, exc: HotelSearchError):
    status = _http_status(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")

    payload = exc.to_payload()
    if isinstance(exc, ProviderError) and status != 404 and not settings.is_development:
        payload["error"]["message"] = "One or more external services are currently unavailable"
    if isinstance(exc, RateLimitError):
        payload["error"]["retryAfter"] = exc.retry_after or 60
    return JSONResponse(status_code=status, content=payload)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}" for err in exc.errors()
    ]
    payload = ValidationError("Please correct the following errors").to_payload()
    payload["error"]["details"] = details
    return JSONResponse(status_code=400, content=payload)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if settings.is_development else "Something went wrong. Please try again later."
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": message}},
    )


app.include_router(hotels.router, prefix="/api", tags=["hotels"])
app.include_router(geocode.router, prefix="/api/geocode", tags=["geocode"])
app.include_router(reviews.router, prefix="/api/reviews", tags=["reviews"])
app.include_router(places.router, prefix="/api/places", tags=["places"])
app.include_router(health.router, prefix="/api", tags=["health"])
