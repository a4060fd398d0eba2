import logging
from typing import Any

import httpx

from app.core.providers import ProvidersConfig
from app.providers.llm import GeminiClient

logger = logging.getLogger(__name__)


class ProviderRegistry:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        providers_config: ProvidersConfig,
        gemini_api_key: str | None = None,
    ):
        self.config = providers_config
        self.llm = GeminiClient(providers_config.llm, http_client, api_key=gemini_api_key)
        if not self.llm.is_configured:
            logger.info(
                "GEMINI_API_KEY is not set; serving built-in topic answers.",
                extra={"fallback": True, "provider": providers_config.llm.provider},
            )

    def summary(self) -> dict[str, str]:
        return {"llm": self.config.llm.provider}

    def status(self) -> dict[str, dict[str, Any]]:
        return {
            "llm": self._provider_status(
                provider=self.config.llm.provider,
                endpoint=self.config.llm.endpoint,
                fallback_count=self.llm.fallback_count,
                credential_configured=self.llm.is_configured,
            ),
        }

    def _provider_status(
        self,
        provider: str,
        endpoint: str,
        fallback_count: int,
        credential_configured: bool,
    ) -> dict[str, Any]:
        endpoint_lower = endpoint.lower()
        provider_lower = provider.lower()
        is_mock = "mock" in provider_lower or "echo-server" in endpoint_lower
        degraded = is_mock or not credential_configured or fallback_count > 0
        return {
            "provider": provider,
            "endpoint": endpoint,
            "is_mock": is_mock,
            "credential_configured": credential_configured,
            "fallback_count": fallback_count,
            "degraded": degraded,
        }
