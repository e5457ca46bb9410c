"""
Tests for provider dispatch and the diagnosis cache
"""
import asyncio
import json
import random

import httpx
import pytest

from conftest import SAMPLE_IMAGE, claude_message, mock_client
from app.services.diagnosis import DiagnosisService, Provider, resolve_provider
from app.services.diagnosis.errors import ErrorKind
from app.services.diagnosis.mock import MOCK_DISEASE_NAMES
from app.services.storage import DiagnosisStore

NO_KEYS = dict(openai_api_key=None, claude_api_key=None, perplexity_api_key=None, deepseek_api_key=None)


def run(coro):
    return asyncio.run(coro)


class TestResolveProvider:
    @pytest.mark.parametrize("provider_id, expected", [
        ("openai", Provider.OPENAI),
        ("OpenAI", Provider.OPENAI),
        ("gpt", Provider.OPENAI),
        ("claude", Provider.CLAUDE),
        ("anthropic", Provider.CLAUDE),
        ("perplexity", Provider.PERPLEXITY),
        ("deepseek", Provider.DEEPSEEK),
        ("plant-database", Provider.PLANT_DATABASE),
        ("hybrid", Provider.PLANT_DATABASE),
        (None, Provider.PLANT_DATABASE),
        ("", Provider.PLANT_DATABASE),
        ("watson", Provider.PLANT_DATABASE),
    ])
    def test_resolution(self, provider_id, expected):
        assert resolve_provider(provider_id) == expected


class TestDispatch:
    def test_tomato_claude_without_key(self):
        service = DiagnosisService(**NO_KEYS, rng=random.Random(3))

        response = run(service.diagnose(SAMPLE_IMAGE, "tomato", "claude"))

        assert response.mock_response is True
        assert response.provider == "claude"
        assert response.result.disease in MOCK_DISEASE_NAMES

    def test_unknown_provider_uses_plant_database(self):
        service = DiagnosisService(**NO_KEYS)
        response = run(service.diagnose(SAMPLE_IMAGE, "tomato", "watson"))
        assert response.provider == "plant-database"

    def test_exactly_one_adapter_called(self):
        client = mock_client(lambda request: httpx.Response(500))
        service = DiagnosisService(
            http_client=client,
            openai_api_key="sk-test",
            claude_api_key="claude-test",
            perplexity_api_key="pplx-test",
            deepseek_api_key="ds-test",
        )

        run(service.diagnose(SAMPLE_IMAGE, "tomato", "claude"))

        assert len(client.recorder.requests) == 1
        assert client.recorder.requests[0].url.host == "api.anthropic.com"

    def test_unexpected_adapter_exception_becomes_mock(self, monkeypatch):
        service = DiagnosisService(**NO_KEYS)

        async def explode(image, plant_type=None):
            raise RuntimeError("adapter bug")

        monkeypatch.setattr(service.adapters[Provider.PERPLEXITY], "diagnose", explode)
        response = run(service.diagnose(SAMPLE_IMAGE, "grape", "perplexity"))

        assert response.mock_response is True
        assert response.provider == "perplexity"
        assert response.error == ErrorKind.API_ERROR.value

    def test_available_providers(self):
        service = DiagnosisService(**{**NO_KEYS, "claude_api_key": "claude-test"})
        flags = service.available_providers()
        assert flags["claude"] is True
        assert flags["openai"] is False
        assert flags["plant-database"] is True


class TestDiagnosisCache:
    def test_success_cached_then_served_on_failure(self, fake_supabase):
        body = json.dumps({
            "disease": "Early Blight", "confidence": 0.8, "severity": "High", "description": "Rings",
        })
        state = {"status": 200}

        def handler(request):
            if state["status"] != 200:
                return httpx.Response(state["status"])
            return httpx.Response(200, json=claude_message(body))

        store = DiagnosisStore(fake_supabase)
        service = DiagnosisService(http_client=mock_client(handler), **{**NO_KEYS, "claude_api_key": "k"}, store=store)

        first = run(service.diagnose(SAMPLE_IMAGE, "tomato", "claude"))
        assert first.cached is False
        assert len(fake_supabase.tables["cached_diagnoses"]) == 1

        state["status"] = 503
        second = run(service.diagnose(SAMPLE_IMAGE, "tomato", "claude"))

        assert second.cached is True
        assert second.mock_response is False
        assert second.error is None
        assert second.result == first.result

    @staticmethod
    def seed_cache(fake_supabase):
        """Run one successful Claude diagnosis so the image is cached."""
        body = json.dumps({"disease": "Early Blight", "confidence": 0.8, "severity": "High"})
        client = mock_client(lambda request: httpx.Response(200, json=claude_message(body)))
        service = DiagnosisService(
            http_client=client, **{**NO_KEYS, "claude_api_key": "k"}, store=DiagnosisStore(fake_supabase),
        )
        run(service.diagnose(SAMPLE_IMAGE, "tomato", "claude"))
        assert len(fake_supabase.tables["cached_diagnoses"]) == 1

    def test_keyless_request_ignores_cache(self, fake_supabase):
        self.seed_cache(fake_supabase)
        service = DiagnosisService(**NO_KEYS, store=DiagnosisStore(fake_supabase), rng=random.Random(5))

        response = run(service.diagnose(SAMPLE_IMAGE, "tomato", "claude"))

        assert response.mock_response is True
        assert response.cached is False
        assert response.error is None
        assert response.result.disease in MOCK_DISEASE_NAMES

    @pytest.mark.parametrize("status, kind", [
        (402, ErrorKind.INSUFFICIENT_BALANCE),
        (401, ErrorKind.INVALID_API_KEY),
        (429, ErrorKind.RATE_LIMITED),
    ])
    def test_account_errors_ignore_cache(self, fake_supabase, status, kind):
        self.seed_cache(fake_supabase)
        client = mock_client(lambda request: httpx.Response(status, json={"error": {"message": "no"}}))
        service = DiagnosisService(
            http_client=client, **{**NO_KEYS, "claude_api_key": "k"}, store=DiagnosisStore(fake_supabase),
        )

        response = run(service.diagnose(SAMPLE_IMAGE, "tomato", "claude"))

        assert response.mock_response is True
        assert response.cached is False
        assert response.error == kind.value

    def test_cache_miss_keeps_mock(self, fake_supabase):
        store = DiagnosisStore(fake_supabase)
        service = DiagnosisService(**NO_KEYS, store=store)

        response = run(service.diagnose(SAMPLE_IMAGE, "tomato", "openai"))

        assert response.mock_response is True
        assert response.cached is False
