import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api import dependencies
from app.api.routes import chat
from app.core.container import AppContainer
from app.core.logging import configure_logging, request_id_context
from app.core.providers import load_providers_config
from app.core.settings import get_settings
from app.providers.registry import ProviderRegistry

configure_logging()
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    providers_config = load_providers_config(settings.providers_config_path)
    http_client = httpx.AsyncClient(timeout=settings.request_timeout_sec)
    providers = ProviderRegistry(
        http_client=http_client,
        providers_config=providers_config,
        gemini_api_key=settings.gemini_api_key if settings.has_gemini_credential else None,
    )
    app.state.container = AppContainer(
        settings=settings,
        providers_config=providers_config,
        http_client=http_client,
        providers=providers,
    )
    logger.info(
        "Chat relay started",
        extra={"event": "startup", "provider": providers_config.llm.provider},
    )

    try:
        yield
    finally:
        await http_client.aclose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.include_router(chat.router, prefix="/api")


@app.middleware("http")
async def add_request_id_context(request: Request, call_next):
    with request_id_context(request.headers.get("X-Request-ID")) as request_id:
        request.state.request_id = request_id
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/health")
async def health(
    providers: ProviderRegistry = Depends(dependencies.get_provider_registry),
) -> dict[str, Any]:
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "providers": providers.summary(),
        "status": providers.status(),
    }
