import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from api.routes import edit
from config import AppMode, get_settings
from services.errors import ConfigurationError
from services.transform_client import GeminiTransformClient

settings = get_settings()

# Налаштування логування
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Заглушити шумні логгери
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("google_genai").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events - startup та shutdown"""

    # === STARTUP ===
    logger.info(f"Starting PUF PFP Generator in {settings.APP_MODE.value} mode...")

    # No API key -> refuse to start instead of failing on the first request
    try:
        app.state.transform_client = GeminiTransformClient.from_settings(settings)
    except ConfigurationError as e:
        logger.critical(f"Cannot start: {e}. Set GOOGLE_API_KEY in .env")
        raise

    yield

    # === SHUTDOWN ===
    app.state.transform_client = None
    logger.info("Shutting down PUF PFP Generator...")


app = FastAPI(
    title="PUF PFP Generator",
    description="Edits uploaded photos with Google Gemini: security camera filter plus a PUF chain",
    version="1.0.0",
    lifespan=lifespan,
    debug=(settings.APP_MODE == AppMode.DEV),
)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Never echo submitted image payloads back in 422 bodies.
    safe_errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": safe_errors},
    )


# Request logging (development only)
if settings.APP_MODE == AppMode.DEV:
    from middleware.logging import RequestLoggingMiddleware, configure_request_logging

    configure_request_logging(settings.LOG_LEVEL)
    app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - must be last (first to process incoming requests)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# API Routes - versioned under /api/v1/
api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(edit.router)
app.include_router(api_v1_router)

# Backward compatibility: Also mount routes at /api/ (deprecated)
api_compat_router = APIRouter(prefix="/api", deprecated=True)
api_compat_router.include_router(edit.router)
app.include_router(api_compat_router)


@app.get("/")
async def root():
    """Головна сторінка API"""
    return {
        "name": "PUF PFP Generator API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "mode": settings.APP_MODE.value,
        "ai_enabled": getattr(app.state, "transform_client", None) is not None,
        "ai_model": GeminiTransformClient.GEMINI_IMAGE_MODEL,
    }


@app.get("/api/v1/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": "PUF PFP Generator",
        "version": "1.0.0",
        "api_version": "v1",
        "mode": settings.APP_MODE.value,
        "endpoints": {
            "edit": "/api/v1/edit",
            "edit_base64": "/api/v1/edit/base64",
            "presets": "/api/v1/edit/presets",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=(settings.APP_MODE == AppMode.DEV),
    )
