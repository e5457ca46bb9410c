"""
Tests for provider adapters
All HTTP goes through httpx.MockTransport; nothing leaves the process.
"""
import asyncio
import json
import random

import httpx
import pytest

from conftest import SAMPLE_IMAGE, chat_completion, claude_message, mock_client, request_json
from app.services.diagnosis.errors import ErrorKind
from app.services.diagnosis.mock import MOCK_DISEASE_NAMES
from app.services.diagnosis.providers import (
    ClaudeAdapter,
    DeepSeekAdapter,
    OpenAIAdapter,
    PerplexityAdapter,
    PlantDatabaseAdapter,
)

CLAUDE_DIAGNOSIS = {
    "disease": "Early Blight",
    "confidence": 0.88,
    "severity": "High",
    "description": "Concentric brown lesions on lower leaves",
    "symptoms": ["Target spots"],
    "possibleCauses": ["Alternaria solani"],
    "organicTreatments": ["Copper fungicide"],
    "chemicalTreatments": ["Chlorothalonil"],
    "preventiveMeasures": ["Crop rotation"],
    "urgency": "High",
}

OPENAI_DIAGNOSIS = {
    "diseaseName": "Late Blight",
    "confidenceScore": 0.9,
    "severity": "High",
    "description": "Water-soaked lesions",
}


def run(coro):
    return asyncio.run(coro)


def json_response(status, body):
    return httpx.Response(status, json=body)


def assert_mock(response, provider, error=None):
    assert response.mock_response is True
    assert response.provider == provider
    assert response.result.disease in MOCK_DISEASE_NAMES
    assert response.error == (error.value if error else None)


# =============================================================================
# Missing / placeholder keys never hit the network
# =============================================================================
class TestNoKey:
    @pytest.mark.parametrize("adapter_cls", [ClaudeAdapter, PerplexityAdapter, DeepSeekAdapter, OpenAIAdapter])
    @pytest.mark.parametrize("key", [None, "", "   ", "your-claude-api-key", "your-openai-api-key"])
    def test_mock_without_request(self, adapter_cls, key):
        client = mock_client(lambda request: json_response(500, {}))
        adapter = adapter_cls(api_key=key, http_client=client, rng=random.Random(1))

        response = run(adapter.diagnose(SAMPLE_IMAGE, "tomato"))

        assert_mock(response, adapter.provider.value)
        assert client.recorder.requests == []

    def test_openai_requires_sk_prefix(self):
        client = mock_client(lambda request: json_response(200, chat_completion(json.dumps(OPENAI_DIAGNOSIS))))
        adapter = OpenAIAdapter(api_key="not-an-openai-key", http_client=client)

        response = run(adapter.diagnose(SAMPLE_IMAGE, "tomato"))

        assert response.mock_response is True
        assert client.recorder.requests == []


# =============================================================================
# Claude
# =============================================================================
class TestClaude:
    def test_success(self):
        def handler(request):
            assert request.headers["x-api-key"] == "claude-test-key"
            assert request.headers["anthropic-version"] == "2023-06-01"
            body = request_json(request)
            image_part = body["messages"][0]["content"][1]
            assert image_part["source"] == {"type": "base64", "media_type": "image/jpeg", "data": SAMPLE_IMAGE}
            return json_response(200, claude_message(json.dumps(CLAUDE_DIAGNOSIS)))

        adapter = ClaudeAdapter(api_key="claude-test-key", http_client=mock_client(handler))
        response = run(adapter.diagnose(SAMPLE_IMAGE, "tomato"))

        assert response.mock_response is False
        assert response.provider == "claude"
        assert response.result.disease == "Early Blight"
        assert response.result.confidence == pytest.approx(0.88)

    def test_insufficient_balance(self):
        client = mock_client(lambda request: json_response(402, {"error": {"message": "credit balance too low"}}))
        adapter = ClaudeAdapter(api_key="claude-test-key", http_client=client)

        response = run(adapter.diagnose(SAMPLE_IMAGE, "tomato"))

        assert_mock(response, "claude", ErrorKind.INSUFFICIENT_BALANCE)
        assert "insufficient balance" in response.error_details
        assert len(client.recorder.requests) == 1

    @pytest.mark.parametrize("status, kind", [
        (401, ErrorKind.INVALID_API_KEY),
        (403, ErrorKind.INVALID_API_KEY),
        (429, ErrorKind.RATE_LIMITED),
        (500, ErrorKind.API_ERROR),
        (503, ErrorKind.API_ERROR),
    ])
    def test_http_errors_become_mock(self, status, kind):
        client = mock_client(lambda request: json_response(status, {"error": "nope"}))
        adapter = ClaudeAdapter(api_key="claude-test-key", http_client=client)

        response = run(adapter.diagnose(SAMPLE_IMAGE, "tomato"))

        assert_mock(response, "claude", kind)

    def test_unparseable_text(self):
        client = mock_client(lambda request: json_response(200, claude_message("I think it is blight.")))
        adapter = ClaudeAdapter(api_key="claude-test-key", http_client=client)

        response = run(adapter.diagnose(SAMPLE_IMAGE))

        assert_mock(response, "claude", ErrorKind.INVALID_RESPONSE)

    def test_schema_failure(self):
        client = mock_client(lambda request: json_response(200, claude_message('{"confidence": 0.5}')))
        adapter = ClaudeAdapter(api_key="claude-test-key", http_client=client)

        response = run(adapter.diagnose(SAMPLE_IMAGE))

        assert_mock(response, "claude", ErrorKind.SCHEMA_VALIDATION_FAILED)

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        adapter = ClaudeAdapter(api_key="claude-test-key", http_client=mock_client(handler))
        response = run(adapter.diagnose(SAMPLE_IMAGE))

        assert_mock(response, "claude", ErrorKind.NETWORK_ERROR)


# =============================================================================
# Perplexity
# =============================================================================
class TestPerplexity:
    def test_success_with_code_fence(self):
        content = "```json\n" + json.dumps({
            "disease_name": "Powdery Mildew",
            "confidence_level": "85%",
            "severity_level": "medium",
            "organic_treatment_options": ["Neem oil"],
        }) + "\n```"

        def handler(request):
            assert request.headers["authorization"] == "Bearer pplx-test"
            body = request_json(request)
            assert "response_format" not in body
            assert body["messages"][0]["content"][1]["image_url"]["url"].startswith("data:image/jpeg;base64,")
            return json_response(200, chat_completion(content))

        adapter = PerplexityAdapter(api_key="pplx-test", http_client=mock_client(handler))
        response = run(adapter.diagnose(SAMPLE_IMAGE, "grape"))

        assert response.mock_response is False
        assert response.result.disease == "Powdery Mildew"
        assert response.result.confidence == pytest.approx(0.85)
        assert response.result.organic_treatments == ["Neem oil"]

    def test_empty_choices(self):
        client = mock_client(lambda request: json_response(200, {"choices": []}))
        adapter = PerplexityAdapter(api_key="pplx-test", http_client=client)

        response = run(adapter.diagnose(SAMPLE_IMAGE))

        assert_mock(response, "perplexity", ErrorKind.INVALID_RESPONSE)


# =============================================================================
# OpenAI / DeepSeek (openai SDK over the shared httpx client)
# =============================================================================
class TestOpenAI:
    def test_success(self):
        def handler(request):
            assert request.url.path.endswith("/chat/completions")
            body = request_json(request)
            assert body["messages"][0]["role"] == "system"
            return json_response(200, chat_completion(json.dumps(OPENAI_DIAGNOSIS), model=body["model"]))

        adapter = OpenAIAdapter(api_key="sk-test", http_client=mock_client(handler))
        response = run(adapter.diagnose(SAMPLE_IMAGE, "potato"))

        assert response.mock_response is False
        assert response.provider == "openai"
        assert response.result.disease == "Late Blight"

    def test_falls_back_to_next_model_on_api_error(self):
        seen_models = []

        def handler(request):
            model = request_json(request)["model"]
            seen_models.append(model)
            if model == "gpt-4o":
                return json_response(500, {"error": {"message": "overloaded", "type": "server_error"}})
            return json_response(200, chat_completion(json.dumps(OPENAI_DIAGNOSIS), model=model))

        adapter = OpenAIAdapter(api_key="sk-test", http_client=mock_client(handler), models=["gpt-4o", "gpt-4o-mini"])
        response = run(adapter.diagnose(SAMPLE_IMAGE))

        assert seen_models == ["gpt-4o", "gpt-4o-mini"]
        assert response.mock_response is False

    def test_insufficient_quota_stops_chain(self):
        def handler(request):
            return json_response(429, {"error": {
                "message": "You exceeded your current quota",
                "type": "insufficient_quota",
                "code": "insufficient_quota",
            }})

        client = mock_client(handler)
        adapter = OpenAIAdapter(api_key="sk-test", http_client=client, models=["gpt-4o", "gpt-4o-mini"])
        response = run(adapter.diagnose(SAMPLE_IMAGE))

        assert_mock(response, "openai", ErrorKind.INSUFFICIENT_BALANCE)
        assert len(client.recorder.requests) == 1

    def test_invalid_key_stops_chain(self):
        client = mock_client(lambda request: json_response(401, {"error": {"message": "bad key"}}))
        adapter = OpenAIAdapter(api_key="sk-test", http_client=client, models=["gpt-4o", "gpt-4o-mini"])

        response = run(adapter.diagnose(SAMPLE_IMAGE))

        assert_mock(response, "openai", ErrorKind.INVALID_API_KEY)
        assert len(client.recorder.requests) == 1

    def test_every_model_failing_is_api_error(self):
        client = mock_client(lambda request: json_response(500, {"error": {"message": "down"}}))
        adapter = OpenAIAdapter(api_key="sk-test", http_client=client, models=["gpt-4o", "gpt-4o-mini"])

        response = run(adapter.diagnose(SAMPLE_IMAGE))

        assert_mock(response, "openai", ErrorKind.API_ERROR)
        assert len(client.recorder.requests) == 2


class TestDeepSeek:
    def test_success_against_deepseek_base_url(self):
        def handler(request):
            assert request.url.host == "api.deepseek.com"
            content = json.dumps({"disease_name": "Bacterial Spot", "confidence": 70, "severity": "Medium"})
            return json_response(200, chat_completion(content, model="deepseek-chat"))

        adapter = DeepSeekAdapter(api_key="ds-test", http_client=mock_client(handler))
        response = run(adapter.diagnose(SAMPLE_IMAGE, "pepper"))

        assert response.mock_response is False
        assert response.provider == "deepseek"
        assert response.result.disease == "Bacterial Spot"
        assert response.result.confidence == pytest.approx(0.7)

    def test_rate_limited(self):
        client = mock_client(lambda request: json_response(429, {"error": {"message": "slow down"}}))
        adapter = DeepSeekAdapter(api_key="ds-test", http_client=client)

        response = run(adapter.diagnose(SAMPLE_IMAGE))

        assert_mock(response, "deepseek", ErrorKind.RATE_LIMITED)


# =============================================================================
# Plant database
# =============================================================================
class TestPlantDatabaseAdapter:
    def test_always_configured_and_offline(self):
        adapter = PlantDatabaseAdapter()
        response = run(adapter.diagnose(SAMPLE_IMAGE, "tomato"))

        assert adapter.is_configured()
        assert response.provider == "plant-database"
        assert response.mock_response is False
        assert len(response.alternatives) <= 2
        for alternative in response.alternatives:
            assert 0.1 <= alternative.confidence <= 0.95

    def test_accepts_raw_bytes(self):
        response = run(PlantDatabaseAdapter().diagnose(b"\x89PNG not really an image", "grape"))
        assert response.provider == "plant-database"
        assert 0.0 <= response.result.confidence <= 1.0
