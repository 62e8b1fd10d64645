"""HTTP server for the AI fashion image generator."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import gradio as gr
import uvicorn
from fastapi import Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from app.config import Settings, settings
from app.ui import create_ui
from fashiongen.backends.gemini import GeminiBackend
from fashiongen.core.base_backend import BaseBackend
from fashiongen.core.generation_service import GenerationService
from fashiongen.core.models import GenerationResponse
from fashiongen.utils.health import HealthChecker, HealthStatus
from fashiongen.utils.rate_limiter import RateLimiter
from fashiongen.utils.result_store import ResultStore

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

LIVENESS_MESSAGE = "AI Fashion Image Generator Backend is running!"


def create_backend(config: Settings) -> BaseBackend:
    """Create the remote model backend.

    Raises:
        ValueError: If required configuration is missing
    """
    try:
        config.validate_required_keys()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise

    return GeminiBackend(
        config.gemini_api_key,
        model=config.gemini_model,
        max_workers=config.max_concurrent_generations,
        http_timeout_ms=config.generation_timeout_ms + 15000,
    )


def create_app(config: Optional[Settings] = None, backend: Optional[BaseBackend] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings to use (defaults to the global settings)
        backend: Backend to use (defaults to a GeminiBackend built from config)

    Returns:
        Configured FastAPI application

    Raises:
        ValueError: If required configuration is missing
        StorageError: If the content directory cannot be prepared
    """
    config = config or settings
    backend = backend or create_backend(config)

    store = ResultStore(config.content_dir, config.metadata_file, route_prefix=config.image_route_prefix)
    store.initialize()

    service = GenerationService(
        backend,
        store,
        timeout_ms=config.generation_timeout_ms,
        max_image_bytes=config.max_image_bytes,
    )
    health_checker = HealthChecker(store, api_key_configured=bool(config.gemini_api_key))
    rate_limiter = (
        RateLimiter(max_requests=config.rate_limit_requests, window_seconds=config.rate_limit_window)
        if config.enable_rate_limiting else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Server ready with backend {backend.name}")
        yield
        close = getattr(backend, "close", None)
        if callable(close):
            close()
        logger.info("Server shut down")

    app = FastAPI(
        title="AI Fashion Image Generator",
        description="Generates fashion photographs of a model wearing an uploaded garment.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.backend = backend
    app.state.store = store
    app.state.service = service
    app.state.health_checker = health_checker
    app.state.rate_limiter = rate_limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.mount(store.route_prefix, StaticFiles(directory=store.content_dir), name="images")

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.error(f"Rejected request to {request.url.path}: {exc.errors()}")
        if any(error.get("type") == "json_invalid" for error in exc.errors()):
            message = "Invalid JSON body."
        else:
            message = "Invalid request parameters."
        return JSONResponse(GenerationResponse.failure(message, 400).to_payload(), status_code=400)

    @app.get("/", response_class=PlainTextResponse)
    def index() -> str:
        return LIVENESS_MESSAGE

    @app.post("/generate")
    def generate(request: Request, payload: Any = Body(None)):
        if rate_limiter is not None:
            client_id = request.client.host if request.client else "unknown"
            decision = rate_limiter.check(client_id)
            if not decision.allowed:
                response = GenerationResponse.failure(
                    f"Too many requests. Please try again in {decision.retry_after} seconds.", 429
                )
                return JSONResponse(
                    response.to_payload(),
                    status_code=429,
                    headers={"Retry-After": str(decision.retry_after)},
                )

        response = service.handle(payload)
        health_checker.record_request(success=response.success)
        return JSONResponse(response.to_payload(), status_code=response.status_code)

    @app.get("/generations")
    def list_generations(limit: Optional[int] = Query(None, ge=1)):
        return store.load_records(limit)

    if config.enable_health_checks:
        @app.get("/health")
        def health(backend_check: bool = Query(False, alias="backend")):
            result = health_checker.check_health()
            body = result.to_dict()
            status = result.status
            if backend_check:
                backend_result = health_checker.check_backend(backend)
                body["backend"] = backend_result.to_dict()
                if backend_result.status != HealthStatus.HEALTHY:
                    status = HealthStatus.UNHEALTHY
                    body["status"] = status.value
            if rate_limiter is not None:
                body["rate_limiter"] = rate_limiter.get_stats()
            return JSONResponse(body, status_code=503 if status == HealthStatus.UNHEALTHY else 200)

    if config.enable_ui:
        demo = create_ui(
            service,
            store,
            max_gallery_items=config.gallery_max_items,
        )
        app = gr.mount_gradio_app(app, demo, path="/ui", allowed_paths=[str(store.content_dir)])

    logger.info(f"Application created; images served from {store.route_prefix}")
    return app


if __name__ == "__main__":
    logger.info(f"Launching server on {settings.host}:{settings.port}...")
    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )
