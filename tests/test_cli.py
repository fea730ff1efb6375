"""Tests for the command-line interface."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from nlu_content_analyzer import cli
from nlu_content_analyzer.cli import main
from nlu_content_analyzer.cost_tracker import CostTracker
from nlu_content_analyzer.llm_client import OpenAIClient
from nlu_content_analyzer.models import AIProvider, CompletionResult, Feature
from nlu_content_analyzer.session_store import JsonFileSessionStore

CREDENTIAL_ENV_VARS = [
    "NATURAL_LANGUAGE_UNDERSTANDING_APIKEY",
    "NATURAL_LANGUAGE_UNDERSTANDING_IAM_APIKEY",
    "NATURAL_LANGUAGE_UNDERSTANDING_URL",
    "GOOGLE_NLP_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def session_file(tmp_path, monkeypatch):
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return tmp_path / "session.json"


def _invoke(runner, session_file, *args):
    return runner.invoke(main, ["--session-file", str(session_file), *args])


class TestModelsCommand:
    def test_lists_catalog(self, runner, session_file, monkeypatch):
        monkeypatch.setattr(cli.console, "width", 200)
        result = _invoke(runner, session_file, "models")

        assert result.exit_code == 0
        assert "o4-mini" in result.output
        assert "claude-opus-4-0" in result.output


class TestCostsCommand:
    """Tests for the costs command."""

    def test_default_budgets(self, runner, session_file):
        result = _invoke(runner, session_file, "costs")

        assert result.exit_code == 0
        assert "Budgets" in result.output
        assert "$5.00" in result.output

    def test_set_budget_persists(self, runner, session_file):
        result = _invoke(runner, session_file, "costs", "--set-budget", "openai", "2.5")

        assert result.exit_code == 0
        assert "$2.50" in result.output
        tracker = CostTracker(JsonFileSessionStore(session_file))
        assert tracker.remaining_budget[AIProvider.OPENAI] == 2.5

    def test_reset_all(self, runner, session_file):
        tracker = CostTracker(JsonFileSessionStore(session_file))
        tracker.track_operation("gpt-4o", "in" * 100, "out" * 100)

        result = _invoke(runner, session_file, "costs", "--reset", "all")

        assert result.exit_code == 0
        assert "reset for all" in result.output
        assert CostTracker(JsonFileSessionStore(session_file)).history() == []

    def test_history_table(self, runner, session_file):
        CostTracker(JsonFileSessionStore(session_file)).track_operation("o3", "in", "out")

        result = _invoke(runner, session_file, "costs")

        assert "Cost History" in result.output


class TestStatusCommand:
    def test_statuses(self, runner, session_file, analysis_file):
        result = _invoke(
            runner, session_file, "status", "-k", "comfortable bra, swimwear", "--analysis", str(analysis_file)
        )

        assert result.exit_code == 0
        assert "exact" in result.output
        assert "missing" in result.output

    def test_malformed_analysis_file(self, runner, session_file, tmp_path):
        broken = tmp_path / "broken.json"
        broken.write_text("{not json")

        result = _invoke(runner, session_file, "status", "-k", "comfortable bra", "--analysis", str(broken))

        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_analysis_file_not_an_object(self, runner, session_file, tmp_path):
        listing = tmp_path / "list.json"
        listing.write_text("[1, 2]")

        result = _invoke(runner, session_file, "status", "-k", "comfortable bra", "--analysis", str(listing))

        assert result.exit_code == 1
        assert "no saved analysis in" in result.output


class TestAnalyzeCommand:
    """Tests for the analyze command."""

    def test_analyze_with_export(self, runner, session_file, sample_result, tmp_path):
        orchestrator = MagicMock()
        orchestrator.analyze_text = AsyncMock(return_value=sample_result)
        saved = tmp_path / "analysis.json"
        exported = tmp_path / "report.csv"

        with patch("nlu_content_analyzer.cli.AnalysisOrchestrator", return_value=orchestrator):
            result = _invoke(
                runner, session_file, "analyze", "Acme makes a comfortable bra.",
                "--feature", "keywords", "--limit", "keywords=5",
                "--save", str(saved), "--output", str(exported),
            )

        assert result.exit_code == 0, result.output
        assert "comfortable bra" in result.output
        text, config, provider = orchestrator.analyze_text.call_args.args
        assert text == "Acme makes a comfortable bra."
        assert provider == "watson"
        assert config.features == frozenset({Feature.KEYWORDS})
        assert config.limits[Feature.KEYWORDS] == 5
        assert json.loads(saved.read_text())["keywords"][0]["text"] == "comfortable bra"
        assert exported.read_text().startswith("## METADATA ##")

    def test_missing_credentials(self, runner, session_file):
        result = _invoke(runner, session_file, "analyze", "Some text.")

        assert result.exit_code == 1
        assert "Analysis failed" in result.output

    def test_no_text(self, runner, session_file):
        result = _invoke(runner, session_file, "analyze")

        assert result.exit_code == 1

    def test_bad_limit(self, runner, session_file):
        result = _invoke(runner, session_file, "analyze", "text", "--limit", "keywords")

        assert result.exit_code != 0
        assert "FEATURE=N" in result.output


class TestOptimizeCommand:
    """Tests for the optimize command."""

    def test_optimize_records_cost(self, runner, session_file, tmp_path):
        out = tmp_path / "optimized.txt"
        completion = CompletionResult(text="A truly comfortable bra for every day.")

        with patch.object(OpenAIClient, "complete", new=AsyncMock(return_value=completion)):
            result = _invoke(
                runner, session_file, "optimize", "A bra for every day.",
                "-k", "comfortable bra", "--model", "gpt-4o", "--api-key", "sk-test",
                "--output", str(out),
            )

        assert result.exit_code == 0, result.output
        assert "Remaining budget" in result.output
        assert out.read_text() == "A truly comfortable bra for every day."
        history = CostTracker(JsonFileSessionStore(session_file)).history()
        assert [r.model for r in history] == ["gpt-4o"]

    def test_keywords_required(self, runner, session_file):
        result = _invoke(runner, session_file, "optimize", "Some text.")

        assert result.exit_code == 1
        assert "target keywords" in result.output

    def test_malformed_prior_analysis(self, runner, session_file, tmp_path):
        broken = tmp_path / "prior.json"
        broken.write_text("")

        result = _invoke(
            runner, session_file, "optimize", "Some text.", "-k", "comfortable bra", "--prior", str(broken)
        )

        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_missing_api_key(self, runner, session_file):
        result = _invoke(runner, session_file, "optimize", "Some text.", "-k", "comfortable bra")

        assert result.exit_code == 1
        assert "Optimization failed" in result.output
