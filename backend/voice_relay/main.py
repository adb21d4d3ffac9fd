from contextlib import asynccontextmanager
from typing import Optional
import json
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voice_relay import __version__
from voice_relay.core.config import Settings
from voice_relay.core.relay import SignalingRelay
from voice_relay.routes import calls, signaling
from voice_relay.utils.logger import configure_logging

load_dotenv()

logger = logging.getLogger(__name__)

# Custom JSON encoder that keeps non-ASCII identities readable
class UnicodeJSONResponse(JSONResponse):
    def render(self, content) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


def _cors_headers(request: Request, allowed_origins) -> dict:
    origin = request.headers.get("origin")
    headers = {}
    if origin in allowed_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
    return headers


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    if settings is None:
        settings = Settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Signaling relay listening on {settings.WEBSOCKET_PATH}")
        yield
        app.state.relay.shutdown()

    app = FastAPI(
        title="Voice Relay API",
        description="Signaling relay and call history for peer-to-peer voice calls",
        version=__version__,
        openapi_tags=[
            {"name": "Calls", "description": "Call history and relay status"},
            {"name": "WebSocket", "description": "Signaling WebSocket"},
        ],
        default_response_class=UnicodeJSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay = SignalingRelay(settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming API requests"""
        client = request.client.host if request.client else "Unknown"
        logger.info(f"[{request.method}] {request.url.path} from {client}")
        response = await call_next(request)
        logger.info(f"[{request.method}] {request.url.path} - Status: {response.status_code}")
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions and ensure CORS headers are included"""
        return UnicodeJSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=_cors_headers(request, settings.CORS_ORIGINS),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors with CORS headers"""
        return UnicodeJSONResponse(
            status_code=422,
            content={"detail": exc.errors()},
            headers=_cors_headers(request, settings.CORS_ORIGINS),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Anything unexpected becomes a generic 500"""
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return UnicodeJSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
            headers=_cors_headers(request, settings.CORS_ORIGINS),
        )

    app.include_router(calls.router, prefix=settings.API_PREFIX, tags=["Calls"])
    app.include_router(signaling.build_router(settings.WEBSOCKET_PATH), tags=["WebSocket"])

    @app.get("/")
    async def root():
        return {"message": "Welcome to the Voice Relay API"}

    @app.get(f"{settings.API_PREFIX}/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
