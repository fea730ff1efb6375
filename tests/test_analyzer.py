"""Tests for the analysis orchestrator."""

import asyncio
import json

import httpx
import pytest

from nlu_content_analyzer.analyzer import AnalysisOrchestrator
from nlu_content_analyzer.config import AnalysisConfig, GoogleCredentials, WatsonCredentials
from nlu_content_analyzer.errors import (
    AuthError,
    MissingCredentialsError,
    UnsupportedProviderError,
)
from nlu_content_analyzer.models import AnalysisRequest, Feature
from nlu_content_analyzer.session_store import ANALYSIS_PROVIDER, WATSON_API_KEY, WATSON_INSTANCE_ID
from nlu_content_analyzer.watson_client import WatsonClient


def _analyze(store, transport, call, **kwargs):
    """Run call(orchestrator) with an orchestrator wired to a mock transport."""
    async def run():
        async with httpx.AsyncClient(transport=transport) as http_client:
            orchestrator = AnalysisOrchestrator(store, http_client=http_client, **kwargs)
            return await call(orchestrator)

    return asyncio.run(run())


class TestRunAnalysis:
    """Tests for AnalysisOrchestrator.run_analysis."""

    def test_watson_analysis(self, store, watson_credentials, watson_response_body, json_response):
        transport, seen = json_response(watson_response_body)
        request = AnalysisRequest(text="Acme bra", features={Feature.KEYWORDS})

        result = _analyze(
            store, transport, lambda o: o.run_analysis(request), watson_credentials=watson_credentials
        )

        assert len(seen) == 1
        assert result.provider == "watson"
        assert result.request_id

    def test_request_ids_unique(self, store, watson_credentials, watson_response_body, json_response):
        transport, _ = json_response(watson_response_body)
        request = AnalysisRequest(text="Acme bra", features={Feature.KEYWORDS})

        async def twice(orchestrator):
            return await orchestrator.run_analysis(request), await orchestrator.run_analysis(request)

        first, second = _analyze(store, transport, twice, watson_credentials=watson_credentials)

        assert first.request_id != second.request_id

    def test_google_selected_from_store(self, store, google_credentials, json_response):
        transport, seen = json_response({"entities": [], "language": "en"})
        store.set(ANALYSIS_PROVIDER, "google")
        request = AnalysisRequest(text="x", features={Feature.ENTITIES})

        result = _analyze(
            store, transport, lambda o: o.run_analysis(request), google_credentials=google_credentials
        )

        assert result.provider == "google"
        assert seen[0].url.host == "language.googleapis.com"

    def test_unsupported_provider(self, store, json_response):
        transport, seen = json_response({})

        with pytest.raises(UnsupportedProviderError):
            _analyze(store, transport, lambda o: o.run_analysis(AnalysisRequest(text="x"), "azure"))
        assert seen == []

    def test_missing_watson_instance_id(self, store, json_response):
        transport, seen = json_response({})
        store.set(WATSON_API_KEY, "key")

        with pytest.raises(MissingCredentialsError) as exc_info:
            _analyze(store, transport, lambda o: o.run_analysis(AnalysisRequest(text="x")))

        assert "instance ID" in exc_info.value.guidance
        assert seen == []

    def test_missing_google_key(self, store, json_response):
        transport, seen = json_response({})

        with pytest.raises(MissingCredentialsError):
            _analyze(store, transport, lambda o: o.run_analysis(AnalysisRequest(text="x"), "google"))
        assert seen == []

    def test_empty_text(self, store, watson_credentials, json_response):
        transport, _ = json_response({})

        with pytest.raises(ValueError):
            _analyze(
                store, transport, lambda o: o.run_analysis(AnalysisRequest(text="  ")),
                watson_credentials=watson_credentials,
            )

    def test_auth_error_guidance(self, store, watson_credentials, json_response):
        transport, _ = json_response({"error": "Unauthorized"}, status_code=401)

        with pytest.raises(AuthError) as exc_info:
            _analyze(
                store, transport, lambda o: o.run_analysis(AnalysisRequest(text="x")),
                watson_credentials=watson_credentials,
            )

        assert exc_info.value.guidance == "Authentication failed. Please check your API key."


class TestToneSupport:
    """Tone analysis is dropped for unsupported languages."""

    def test_classifications_dropped_for_german(self, store, watson_credentials, watson_response_body, json_response):
        transport, seen = json_response(watson_response_body)
        config = AnalysisConfig(language="de", features={Feature.KEYWORDS, Feature.CLASSIFICATIONS})

        _analyze(
            store, transport, lambda o: o.analyze_text("Ein bequemer BH.", config),
            watson_credentials=watson_credentials,
        )

        features = json.loads(seen[0].content)["features"]
        assert "classifications" not in features
        assert "keywords" in features

    def test_classifications_kept_for_french(self, store, watson_credentials, watson_response_body, json_response):
        transport, seen = json_response(watson_response_body)
        config = AnalysisConfig(language="fr", features={Feature.CLASSIFICATIONS})

        _analyze(
            store, transport, lambda o: o.analyze_text("Un soutien-gorge confortable.", config),
            watson_credentials=watson_credentials,
        )

        features = json.loads(seen[0].content)["features"]
        assert features["classifications"] == {"model": "tone-classifications-fr-v1"}


class TestCredentials:
    """Tests for credential persistence."""

    def test_save_and_load_watson(self, store):
        orchestrator = AnalysisOrchestrator(store)
        orchestrator.save_watson_credentials(WatsonCredentials(api_key="k", region="us-south", instance_id="i-1"))

        loaded = AnalysisOrchestrator(store).watson_credentials()

        assert loaded.api_key == "k"
        assert loaded.region == "us-south"
        assert store.get(WATSON_INSTANCE_ID) == "i-1"

    def test_bearer_auth_type_survives_reload(self, store):
        AnalysisOrchestrator(store).save_watson_credentials(
            WatsonCredentials(api_key="tok", auth_type="bearer", region="eu-de", instance_id="i-2")
        )

        loaded = AnalysisOrchestrator(store).watson_credentials()

        assert loaded.auth_type == "bearer"
        assert WatsonClient(loaded).auth_header() == "Bearer tok"

    def test_auth_type_defaults_to_iam(self, store):
        store.set(WATSON_API_KEY, "k")
        assert AnalysisOrchestrator(store).watson_credentials().auth_type == "iam"

    def test_save_and_load_google(self, store):
        AnalysisOrchestrator(store).save_google_credentials(GoogleCredentials(api_key="g"))
        assert AnalysisOrchestrator(store).google_credentials().api_key == "g"

    def test_injected_credentials_take_precedence(self, store):
        store.set(WATSON_API_KEY, "stored")
        orchestrator = AnalysisOrchestrator(store, watson_credentials=WatsonCredentials(api_key="injected"))
        assert orchestrator.watson_credentials().api_key == "injected"
