"""
Diagnosis dispatch.

Picks exactly one adapter for a request and guarantees a well-formed
response whatever the adapter does.
"""

import logging
import random
from typing import Dict, Optional, Union

import httpx

from app.config import CLAUDE_API_KEY, DEEPSEEK_API_KEY, OPENAI_API_KEY, PERPLEXITY_API_KEY
from app.models import DiagnosisResponse
from app.services.diagnosis.errors import TERMINAL_KINDS, ErrorKind
from app.services.diagnosis.normalizer import Provider
from app.services.diagnosis.providers import (
    ClaudeAdapter,
    DeepSeekAdapter,
    DiagnosisAdapter,
    OpenAIAdapter,
    PerplexityAdapter,
    PlantDatabaseAdapter,
)
from app.utils.images import get_image_hash, prepare_image

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = Provider.PLANT_DATABASE

PROVIDER_ALIASES = {
    "anthropic": Provider.CLAUDE,
    "gpt": Provider.OPENAI,
    "hybrid": Provider.PLANT_DATABASE,
    "database": Provider.PLANT_DATABASE,
    "static": Provider.PLANT_DATABASE,
}


def resolve_provider(provider_id: Optional[str]) -> Provider:
    """Map a client provider id to a Provider; unknown or unset -> plant database."""
    if not provider_id:
        return DEFAULT_PROVIDER
    key = provider_id.strip().lower()
    if key in PROVIDER_ALIASES:
        return PROVIDER_ALIASES[key]
    try:
        return Provider(key)
    except ValueError:
        logger.warning(f"Unknown provider '{provider_id}', using {DEFAULT_PROVIDER.value}")
        return DEFAULT_PROVIDER


class DiagnosisService:
    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        openai_api_key: Optional[str] = OPENAI_API_KEY,
        claude_api_key: Optional[str] = CLAUDE_API_KEY,
        perplexity_api_key: Optional[str] = PERPLEXITY_API_KEY,
        deepseek_api_key: Optional[str] = DEEPSEEK_API_KEY,
        store=None,
        rng=random,
    ):
        self.store = store
        self.adapters: Dict[Provider, DiagnosisAdapter] = {
            Provider.OPENAI: OpenAIAdapter(openai_api_key, http_client, rng),
            Provider.CLAUDE: ClaudeAdapter(claude_api_key, http_client, rng),
            Provider.PERPLEXITY: PerplexityAdapter(perplexity_api_key, http_client, rng),
            Provider.DEEPSEEK: DeepSeekAdapter(deepseek_api_key, http_client, rng),
            Provider.PLANT_DATABASE: PlantDatabaseAdapter(rng=rng),
        }

    def available_providers(self) -> Dict[str, bool]:
        return {provider.value: adapter.is_configured() for provider, adapter in self.adapters.items()}

    async def diagnose(
        self,
        image: Union[bytes, str],
        plant_type: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> DiagnosisResponse:
        provider = resolve_provider(provider_id)
        adapter = self.adapters[provider]
        logger.info(f"Diagnosing with {provider.value} (plant_type={plant_type or 'unknown'})")

        try:
            response = await adapter.diagnose(image, plant_type)
        except Exception as e:
            logger.error(f"Unexpected error from {provider.value} adapter: {e}", exc_info=True)
            response = adapter.mock_response(ErrorKind.API_ERROR)

        if self.store is None or provider == Provider.PLANT_DATABASE:
            return response
        return await self._apply_cache(image, response)

    async def _apply_cache(self, image: Union[bytes, str], response: DiagnosisResponse) -> DiagnosisResponse:
        try:
            image_hash = get_image_hash(prepare_image(image))
        except ValueError:
            return response

        if not response.mock_response:
            await self.store.cache_diagnosis(image_hash, response.result)
            return response

        # Keyless mocks and account-level failures are reported as-is
        if response.error is None or ErrorKind(response.error) in TERMINAL_KINDS:
            return response

        cached = await self.store.get_cached_diagnosis(image_hash)
        if cached is None:
            return response
        return response.model_copy(update={
            "result": cached,
            "mock_response": False,
            "cached": True,
            "error": None,
            "error_details": None,
        })
