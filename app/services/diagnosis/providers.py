"""
Provider Adapters

One adapter per diagnosis provider. Every adapter follows the same flow:

1. No usable API key -> mock diagnosis, no network call.
2. Encode the image the way the provider expects.
3. One POST with the provider's prompt.
4. Non-2xx / transport failure -> mock diagnosis tagged with an ErrorKind.
5. Parse the text reply as JSON and normalise it.

Adapters never raise; the caller always gets a ``DiagnosisResponse``.
"""

import logging
import random
from typing import List, Optional, Union

import httpx
import openai
from openai import AsyncOpenAI

from app.config import (
    API_CONNECT_TIMEOUT,
    API_TIMEOUT,
    CLAUDE_API_URL,
    CLAUDE_API_VERSION,
    CLAUDE_MODEL,
    DEEPSEEK_BASE_URL,
    DEEPSEEK_MODEL,
    MAX_TOKENS,
    OPENAI_MODELS,
    PERPLEXITY_API_URL,
    PERPLEXITY_MODEL,
    is_key_configured,
)
from app.models import AlternativeDiagnosis, DiagnosisResponse
from app.services.diagnosis import prompts
from app.services.diagnosis.errors import (
    ERROR_DETAILS,
    TERMINAL_KINDS,
    ErrorKind,
    ProviderError,
    SchemaValidationError,
)
from app.services.diagnosis.mock import get_mock_diagnosis
from app.services.diagnosis.normalizer import Provider, ProviderOutput, extract_json, normalize
from app.services.diagnosis.plant_database import calculate_confidence, diagnose_from_database
from app.utils.images import JPEG_MEDIA_TYPE, prepare_image, to_data_uri

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, str]

DEFAULT_TIMEOUT = httpx.Timeout(API_TIMEOUT, connect=API_CONNECT_TIMEOUT)


class DiagnosisAdapter:
    """Base adapter: shared key check, error mapping and normalisation."""

    provider: Provider

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        rng=random,
    ):
        self.api_key = api_key
        self.http_client = http_client
        self.rng = rng

    def is_configured(self) -> bool:
        return is_key_configured(self.api_key)

    def mock_response(self, error: Optional[ErrorKind] = None) -> DiagnosisResponse:
        return DiagnosisResponse(
            result=get_mock_diagnosis(self.rng),
            provider=self.provider.value,
            mock_response=True,
            error=error.value if error else None,
            error_details=ERROR_DETAILS.get(error) if error else None,
        )

    async def diagnose(self, image: ImageInput, plant_type: Optional[str] = None) -> DiagnosisResponse:
        if not self.is_configured():
            logger.info(f"Using mock response - no {self.provider.value} API key")
            return self.mock_response()

        try:
            image_b64 = prepare_image(image)
            text = await self._complete(image_b64, plant_type or "")
            raw = extract_json(text)
            result = normalize(ProviderOutput(self.provider, raw))
        except ProviderError as e:
            logger.error(f"{self.provider.value} diagnosis failed: {e} (status={e.status_code})")
            return self.mock_response(e.kind)
        except SchemaValidationError as e:
            logger.warning(f"{self.provider.value} response failed schema validation: {e}")
            return self.mock_response(ErrorKind.SCHEMA_VALIDATION_FAILED)
        except ValueError as e:
            # Undecodable image payloads
            logger.error(f"{self.provider.value} could not encode image: {e}")
            return self.mock_response(ErrorKind.API_ERROR)

        logger.info(
            f"{self.provider.value} diagnosis: {result.disease} "
            f"(confidence={result.confidence:.2f}, severity={result.severity.value})"
        )
        return DiagnosisResponse(result=result, provider=self.provider.value)

    async def _complete(self, image_b64: str, plant_type: str) -> str:
        """Send the request and return the model's text reply."""
        raise NotImplementedError

    async def _post(self, url: str, headers: dict, payload: dict) -> dict:
        """POST JSON with the shared client and return the decoded body."""
        try:
            if self.http_client is not None:
                response = await self.http_client.post(url, headers=headers, json=payload)
            else:
                async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                    response = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderError(ErrorKind.NETWORK_ERROR, detail=f"timeout: {e}")
        except httpx.RequestError as e:
            raise ProviderError(ErrorKind.NETWORK_ERROR, detail=str(e))

        if response.status_code >= 400:
            raise ProviderError.from_status(response.status_code, detail=response.text[:300])

        try:
            return response.json()
        except ValueError:
            raise ProviderError(ErrorKind.INVALID_RESPONSE, detail="provider returned non-JSON body")


# ============================================================================#
# Claude (Anthropic Messages API)
# ============================================================================#

class ClaudeAdapter(DiagnosisAdapter):
    provider = Provider.CLAUDE

    def __init__(self, api_key=None, http_client=None, rng=random, model: str = CLAUDE_MODEL):
        super().__init__(api_key, http_client, rng)
        self.model = model

    async def _complete(self, image_b64: str, plant_type: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": CLAUDE_API_VERSION,
        }
        payload = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompts.claude_prompt(plant_type)},
                        {
                            "type": "image",
                            "source": {"type": "base64", "media_type": JPEG_MEDIA_TYPE, "data": image_b64},
                        },
                    ],
                }
            ],
        }
        data = await self._post(CLAUDE_API_URL, headers, payload)

        content = data.get("content") or []
        text = next((block.get("text") for block in content if block.get("type", "text") == "text"), None)
        if not text:
            raise ProviderError(ErrorKind.INVALID_RESPONSE, detail="no text content from Claude")
        return text


# ============================================================================#
# Perplexity
# ============================================================================#

class PerplexityAdapter(DiagnosisAdapter):
    provider = Provider.PERPLEXITY

    def __init__(self, api_key=None, http_client=None, rng=random, model: str = PERPLEXITY_MODEL):
        super().__init__(api_key, http_client, rng)
        self.model = model

    async def _complete(self, image_b64: str, plant_type: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompts.perplexity_prompt(plant_type)},
                        {"type": "image_url", "image_url": {"url": to_data_uri(image_b64)}},
                    ],
                }
            ],
        }
        data = await self._post(PERPLEXITY_API_URL, headers, payload)
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ProviderError(ErrorKind.INVALID_RESPONSE, detail="no message content from Perplexity")


# ============================================================================#
# OpenAI-compatible chat completions (OpenAI, DeepSeek)
# ============================================================================#

def _map_openai_error(e: Exception) -> ProviderError:
    if isinstance(e, openai.APIStatusError):
        if getattr(e, "code", None) == "insufficient_quota":
            return ProviderError(ErrorKind.INSUFFICIENT_BALANCE, status_code=e.status_code, detail=str(e))
        return ProviderError.from_status(e.status_code, detail=str(e))
    if isinstance(e, openai.APIConnectionError):
        return ProviderError(ErrorKind.NETWORK_ERROR, detail=str(e))
    return ProviderError(ErrorKind.API_ERROR, detail=str(e))


class OpenAICompatibleAdapter(DiagnosisAdapter):
    base_url: Optional[str] = None
    models: List[str] = []

    def __init__(self, api_key=None, http_client=None, rng=random, models: Optional[List[str]] = None):
        super().__init__(api_key, http_client, rng)
        if models:
            self.models = list(models)
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            kwargs = {"api_key": self.api_key, "max_retries": 0, "timeout": DEFAULT_TIMEOUT}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            if self.http_client is not None:
                kwargs["http_client"] = self.http_client
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    def build_messages(self, image_b64: str, plant_type: str) -> list:
        raise NotImplementedError

    async def _complete(self, image_b64: str, plant_type: str) -> str:
        messages = self.build_messages(image_b64, plant_type)
        last_error: Optional[ProviderError] = None

        for model in self.models:
            logger.info(f"Calling {self.provider.value} with model: {model}")
            try:
                response = await self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    max_tokens=MAX_TOKENS,
                    temperature=0.2,
                )
            except openai.OpenAIError as e:
                last_error = _map_openai_error(e)
                logger.error(f"{self.provider.value} model {model} failed: {last_error.kind.value}")
                if last_error.kind in TERMINAL_KINDS:
                    raise last_error
                continue

            content = response.choices[0].message.content if response.choices else None
            if not content:
                raise ProviderError(ErrorKind.INVALID_RESPONSE, detail="no content in response")
            return content

        raise last_error or ProviderError(ErrorKind.API_ERROR, detail="no models configured")


class OpenAIAdapter(OpenAICompatibleAdapter):
    provider = Provider.OPENAI
    models = list(OPENAI_MODELS)

    def is_configured(self) -> bool:
        return is_key_configured(self.api_key) and self.api_key.strip().startswith("sk-")

    def build_messages(self, image_b64: str, plant_type: str) -> list:
        return [
            {"role": "system", "content": prompts.OPENAI_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompts.openai_user_prompt(plant_type)},
                    {"type": "image_url", "image_url": {"url": to_data_uri(image_b64)}},
                ],
            },
        ]


class DeepSeekAdapter(OpenAICompatibleAdapter):
    provider = Provider.DEEPSEEK
    base_url = DEEPSEEK_BASE_URL
    models = [DEEPSEEK_MODEL]

    def build_messages(self, image_b64: str, plant_type: str) -> list:
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompts.deepseek_prompt(plant_type)},
                    {"type": "image_url", "image_url": {"url": to_data_uri(image_b64)}},
                ],
            }
        ]


# ============================================================================#
# Static plant database
# ============================================================================#

class PlantDatabaseAdapter(DiagnosisAdapter):
    """Always-available provider backed by the built-in disease catalogue."""

    provider = Provider.PLANT_DATABASE

    def is_configured(self) -> bool:
        return True

    async def diagnose(self, image: ImageInput, plant_type: Optional[str] = None) -> DiagnosisResponse:
        try:
            image_b64 = prepare_image(image)
        except ValueError as e:
            logger.error(f"Plant database could not read image: {e}")
            return self.mock_response(ErrorKind.API_ERROR)

        raw, matches, keywords = diagnose_from_database(image_b64, plant_type)
        result = normalize(ProviderOutput(self.provider, raw))
        alternatives = [
            AlternativeDiagnosis(
                name=d.name,
                confidence=calculate_confidence(d, keywords, plant_type),
                severity=d.severity,
            )
            for d in matches[1:3]
        ]
        return DiagnosisResponse(result=result, provider=self.provider.value, alternatives=alternatives)
