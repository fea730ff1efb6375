"""Tests for data models."""

import pytest

from nlu_content_analyzer.models import (
    AnalysisRequest,
    AnalysisResult,
    CompletionResult,
    CostRecord,
    Feature,
    OptimizationOutcome,
    OptimizationRequest,
    OptimizationResult,
    Sentiment,
    sentiment_label,
)


class TestSentiment:
    """Tests for sentiment labels."""

    def test_label_from_score_sign(self):
        assert sentiment_label(0.4) == "positive"
        assert sentiment_label(-0.1) == "negative"
        assert sentiment_label(0.0) == "neutral"

    def test_from_score(self):
        sentiment = Sentiment.from_score(-0.5)
        assert sentiment.score == -0.5
        assert sentiment.label == "negative"


class TestAnalysisRequest:
    """Tests for AnalysisRequest validation."""

    def test_string_features_and_limits_are_normalized(self):
        request = AnalysisRequest(text="hi", features={"keywords"}, limits={"keywords": 5})

        assert request.wants(Feature.KEYWORDS)
        assert request.limit_for(Feature.KEYWORDS) == 5
        assert request.limit_for(Feature.ENTITIES) == 10

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            AnalysisRequest(text="hi", features={Feature.KEYWORDS}, limits={Feature.KEYWORDS: 0})

    def test_rejects_unknown_feature(self):
        with pytest.raises(ValueError):
            AnalysisRequest(text="hi", features={"sarcasm"})

    def test_without_removes_feature_only(self):
        request = AnalysisRequest(
            text="hi",
            features={Feature.KEYWORDS, Feature.CLASSIFICATIONS},
            limits={Feature.KEYWORDS: 3},
        )

        trimmed = request.without(Feature.CLASSIFICATIONS)

        assert trimmed.features == frozenset({Feature.KEYWORDS})
        assert trimmed.limits == {Feature.KEYWORDS: 3}
        assert request.wants(Feature.CLASSIFICATIONS)


class TestAnalysisResultSerialization:
    """Tests for the Watson-shaped dict form."""

    def test_to_dict_omits_empty_parts(self):
        data = AnalysisResult(language="en").to_dict()
        assert data == {"language": "en"}

    def test_from_dict_reads_watson_body(self, watson_response_body):
        result = AnalysisResult.from_dict(watson_response_body)

        assert result.language == "en"
        assert [k.text for k in result.keywords] == ["comfortable bra", "lace trim"]
        assert result.keywords[0].sentiment.label == "positive"
        assert result.keywords[1].sentiment is None
        assert result.entities[0].type == "Company"
        assert result.classifications[0].class_name == "excited"

    def test_from_dict_defaults_unknown_language(self):
        assert AnalysisResult.from_dict({}).language == "unknown"

    def test_to_dict_preserves_document_sentiment_and_emotion(self):
        data = {
            "language": "en",
            "sentiment": {"document": {"score": -0.3, "label": "negative"}},
            "emotion": {"document": {"emotion": {"joy": 0.2, "anger": 0.6}}},
        }

        result = AnalysisResult.from_dict(data)
        out = result.to_dict()

        assert out["sentiment"]["document"] == {"score": -0.3, "label": "negative"}
        assert out["emotion"]["document"]["emotion"]["anger"] == 0.6
        assert out["emotion"]["document"]["emotion"]["sadness"] == 0.0

    def test_semantic_roles_and_syntax_shape(self):
        data = {
            "semantic_roles": [
                {"sentence": "Acme sells bras.", "subject": {"text": "Acme"}, "action": {"text": "sells"}},
            ],
            "syntax": {"tokens": [{"text": "Acme", "part_of_speech": "PROPN", "lemma": "Acme"}]},
        }

        result = AnalysisResult.from_dict(data)

        assert result.semantic_roles[0].subject == "Acme"
        assert result.semantic_roles[0].object is None
        assert result.syntax_tokens[0].part_of_speech == "PROPN"
        assert result.to_dict()["semantic_roles"][0]["object"] is None


class TestCostRecord:
    """Tests for cost record serialization."""

    def test_dict_uses_camel_case_keys(self):
        record = CostRecord(
            timestamp=1.0,
            model="gpt-4o",
            input_chars=4,
            output_chars=8,
            estimated_input_tokens=1,
            estimated_output_tokens=2,
            estimated_cost=0.5,
        )

        data = record.to_dict()

        assert data["inputChars"] == 4
        assert data["estimatedCost"] == 0.5
        assert CostRecord.from_dict(data) == record

    def test_is_immutable(self):
        record = CostRecord(1.0, "gpt-4o", 1, 1, 1, 1, 0.1)
        with pytest.raises(AttributeError):
            record.estimated_cost = 0.0


class TestOptimizationModels:
    """Tests for optimization request/result models."""

    def test_request_deduplicates_keywords(self):
        request = OptimizationRequest(
            original_text="text",
            target_keywords=[" comfortable bra", "comfortable bra", "", "lace"],
            prior_result=AnalysisResult(),
            model="o4-mini",
            api_key="sk-test",
        )
        assert request.target_keywords == ["comfortable bra", "lace"]

    def test_result_has_unique_request_ids(self):
        a = OptimizationResult(optimized_text="a", outcome=OptimizationOutcome.SUCCESS, model="o3")
        b = OptimizationResult(optimized_text="b", outcome=OptimizationOutcome.SUCCESS, model="o3")
        assert a.request_id != b.request_id

    def test_degraded_flag(self):
        completion = CompletionResult(text="x", outcome=OptimizationOutcome.DEGRADED_FALLBACK)
        assert completion.is_degraded
        assert not CompletionResult(text="x").is_degraded
