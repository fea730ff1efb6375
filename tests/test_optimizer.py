"""Tests for the keyword optimization orchestrator."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from nlu_content_analyzer.cost_tracker import CostTracker
from nlu_content_analyzer.errors import ApiError, EmptyResponseError, MissingCredentialsError
from nlu_content_analyzer.models import (
    AIProvider,
    AnalysisResult,
    CompletionResult,
    EntityItem,
    KeywordStatus,
    OptimizationOutcome,
)
from nlu_content_analyzer.optimizer import (
    TextOptimizer,
    build_optimization_prompt,
    filter_target_keywords,
    mock_analysis_for_keywords,
)
from nlu_content_analyzer.session_store import AI_MODEL

ORIGINAL = "Our new bra is soft and light."
OPTIMIZED = "Our new comfortable bra is soft, light and gives all-day support."


def _optimizer(store, completion=None, side_effect=None):
    client = MagicMock()
    client.complete = AsyncMock(return_value=completion, side_effect=side_effect)
    factory = MagicMock(return_value=client)
    return TextOptimizer(store, client_factory=factory), factory, client


class TestFilterTargetKeywords:
    """Tests for generic keyword filtering."""

    def test_single_generic_word_dropped(self):
        assert filter_target_keywords(["comfortable bra", "support"], AnalysisResult()) == ["comfortable bra"]

    def test_single_word_kept_when_named_entity(self):
        prior = AnalysisResult(entities=[EntityItem(text="Acme", type="Company", relevance=0.9)])
        assert filter_target_keywords(["acme", "support"], prior) == ["acme"]

    def test_single_word_dropped_for_other_entity_types(self):
        prior = AnalysisResult(entities=[EntityItem(text="Paris", type="Location", relevance=0.9)])
        assert filter_target_keywords(["Paris"], prior) == []

    def test_no_prior_result(self):
        assert filter_target_keywords(["lace bralette", "lace"], None) == ["lace bralette"]


class TestBuildOptimizationPrompt:
    """Tests for prompt construction."""

    def test_sections(self, sample_result):
        prompt = build_optimization_prompt(
            ORIGINAL, ["comfortable bra", "support"], sample_result, ["comfortable bra"]
        )

        assert f"### ORIGINAL\n{ORIGINAL}\n" in prompt
        assert "### TARGET KEYWORDS\ncomfortable bra, support\n" in prompt
        assert "- Entities: Acme (Company), Paris (Location)" in prompt
        assert "- Top keywords: comfortable bra, lace trim, cats" in prompt
        assert "- Priority keywords: comfortable bra" in prompt
        assert "### INSTRUCTIONS" in prompt

    def test_without_prior_result(self):
        prompt = build_optimization_prompt(ORIGINAL, ["lace"], None)

        assert "- Entities: None detected" in prompt
        assert "- Priority keywords: None" in prompt


class TestMockAnalysis:
    """Tests for the heuristic re-analysis."""

    def test_exact_keyword_ranked_first(self):
        result = mock_analysis_for_keywords(
            "This comfortable bra offers support.", ["comfortable bra"]
        )

        assert result.keywords[0].text == "comfortable bra"
        assert result.keywords[0].relevance == 0.95

    def test_substring_only_is_partial(self):
        result = mock_analysis_for_keywords("A lovely bralette.", ["bra"])

        assert result.keywords[0].text == "bra (partial)"
        assert result.keywords[0].relevance == 0.8

    def test_absent_keyword_not_added(self):
        result = mock_analysis_for_keywords("Soft cotton.", ["silk"])
        assert all("silk" not in k.text.lower() for k in result.keywords)

    def test_ngram_relevance_and_limit(self):
        text = " ".join(f"word{i}" for i in range(20))

        result = mock_analysis_for_keywords(text, [])

        assert len(result.keywords) == 15
        assert all(k.relevance == pytest.approx(0.6) for k in result.keywords)

    def test_short_and_duplicate_phrases_skipped(self):
        result = mock_analysis_for_keywords("on on", [])

        texts = [k.text.lower() for k in result.keywords]
        assert "on" not in texts
        assert texts.count("on on") == 1

    def test_keyword_with_regex_characters(self):
        result = mock_analysis_for_keywords("We sell c++ books.", ["c++"])
        assert result.keywords[0].text == "c++"

    def test_prior_fields_carried_over(self, sample_result):
        result = mock_analysis_for_keywords("comfortable bra", ["comfortable bra"], sample_result)

        assert result.entities == sample_result.entities
        assert result.categories == sample_result.categories
        assert result.keywords != sample_result.keywords


class TestTextOptimizer:
    """Tests for TextOptimizer.optimize."""

    def test_successful_optimization(self, store, sample_result):
        optimizer, factory, client = _optimizer(store, CompletionResult(text=OPTIMIZED, model="gpt-4o"))

        result = asyncio.run(
            optimizer.optimize(ORIGINAL, ["comfortable bra", "support"], sample_result, "sk-test", "gpt-4o")
        )

        factory.assert_called_once_with("sk-test", "gpt-4o")
        prompt, keywords = client.complete.call_args.args
        assert "### TARGET KEYWORDS\ncomfortable bra, support" in prompt
        assert keywords == ["comfortable bra", "support"]

        assert result.optimized_text == OPTIMIZED
        assert result.outcome == OptimizationOutcome.SUCCESS
        assert result.focus_keywords == ["comfortable bra"]
        assert result.keyword_statuses["comfortable bra"] == KeywordStatus.EXACT
        assert result.optimized_analysis.keywords[0].relevance == 0.95
        assert store.get(AI_MODEL) == "gpt-4o"

    def test_cost_charged_on_original_text(self, store):
        optimizer, _, _ = _optimizer(store, CompletionResult(text=OPTIMIZED))

        result = asyncio.run(optimizer.optimize(ORIGINAL, ["comfortable bra"], None, "sk-test", "gpt-4o"))

        assert result.cost_record.input_chars == len(ORIGINAL)
        assert result.cost_record.output_chars == len(OPTIMIZED)
        tracker = CostTracker(store)
        assert tracker.history() == [result.cost_record]
        assert tracker.remaining_budget[AIProvider.OPENAI] < 5.0

    def test_degraded_result_not_charged(self, store):
        completion = CompletionResult(text="fallback", outcome=OptimizationOutcome.DEGRADED_FALLBACK)
        optimizer, _, _ = _optimizer(store, completion)

        result = asyncio.run(
            optimizer.optimize(ORIGINAL, ["comfortable bra"], None, "sk-ant-bad", "claude-sonnet-4-0")
        )

        assert result.is_degraded
        assert result.cost_record is None
        assert CostTracker(store).history() == []
        assert CostTracker(store).remaining_budget[AIProvider.ANTHROPIC] == 5.0

    def test_unpriced_model_not_charged(self, store):
        optimizer, _, _ = _optimizer(store, CompletionResult(text=OPTIMIZED))

        result = asyncio.run(optimizer.optimize(ORIGINAL, ["comfortable bra"], None, "sk-test", "gpt-5-preview"))

        assert result.outcome == OptimizationOutcome.SUCCESS
        assert result.cost_record is None

    def test_empty_response_raises(self, store):
        optimizer, _, _ = _optimizer(store, CompletionResult(text="   "))

        with pytest.raises(EmptyResponseError) as exc_info:
            asyncio.run(optimizer.optimize(ORIGINAL, ["comfortable bra"], None, "sk-test", "gpt-4o"))

        assert "empty response" in exc_info.value.guidance
        assert CostTracker(store).history() == []

    def test_missing_key_raises_before_call(self, store):
        optimizer, factory, _ = _optimizer(store, CompletionResult(text=OPTIMIZED))

        with pytest.raises(MissingCredentialsError):
            asyncio.run(optimizer.optimize(ORIGINAL, ["comfortable bra"], None, "", "o4-mini"))

        factory.assert_not_called()

    def test_empty_text_raises(self, store):
        optimizer, _, _ = _optimizer(store, CompletionResult(text=OPTIMIZED))

        with pytest.raises(ValueError):
            asyncio.run(optimizer.optimize("  ", ["comfortable bra"], None, "sk-test", "o4-mini"))

    def test_adapter_error_gets_guidance(self, store):
        error = ApiError("Incorrect API key provided", status_code=401, provider="openai")
        optimizer, _, _ = _optimizer(store, side_effect=error)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(optimizer.optimize(ORIGINAL, ["comfortable bra"], None, "sk-test", "gpt-4o"))

        assert exc_info.value.guidance == "Authentication failed. Please check your API key."
        assert store.get(AI_MODEL) is None

    def test_claude_bad_key_degrades_through_default_factory(self, store, monkeypatch):
        error = anthropic.AuthenticationError(
            "invalid x-api-key",
            response=httpx.Response(401, request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")),
            body=None,
        )
        sdk = MagicMock()
        sdk.__aenter__.return_value = sdk
        sdk.messages.create = AsyncMock(side_effect=error)
        monkeypatch.setattr(anthropic, "AsyncAnthropic", MagicMock(return_value=sdk))

        result = asyncio.run(
            TextOptimizer(store).optimize(ORIGINAL, ["comfortable bra"], None, "sk-ant-bad", "claude-sonnet-4-0")
        )

        assert result.outcome == OptimizationOutcome.DEGRADED_FALLBACK
        assert "comfortable bra" in result.optimized_text
        assert CostTracker(store).history() == []
