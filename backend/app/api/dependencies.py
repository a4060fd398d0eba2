from fastapi import Depends, Request

from app.core.container import AppContainer
from app.core.settings import AppSettings
from app.providers.registry import ProviderRegistry
from app.services.chat_relay import ChatRelayService


def _get_container_from_app(app: object) -> AppContainer:
    container: AppContainer | None = getattr(app.state, "container", None)  # type: ignore[attr-defined]
    if container is None:
        raise RuntimeError("Application container is not initialized.")
    return container


def get_container(request: Request) -> AppContainer:
    return _get_container_from_app(request.app)


def get_provider_registry(container: AppContainer = Depends(get_container)) -> ProviderRegistry:
    return container.providers


def get_app_settings(container: AppContainer = Depends(get_container)) -> AppSettings:
    return container.settings


def get_chat_relay(
    providers: ProviderRegistry = Depends(get_provider_registry),
    settings: AppSettings = Depends(get_app_settings),
) -> ChatRelayService:
    return ChatRelayService(
        llm_client=providers.llm,
        token_delay_ms=settings.fallback_token_delay_ms,
    )
