"""
Pytest fixtures and configuration for NLU Content Analyzer tests.
"""

import json
from pathlib import Path

import httpx
import pytest

from nlu_content_analyzer.config import GoogleCredentials, WatsonCredentials
from nlu_content_analyzer.models import (
    AnalysisResult,
    CategoryItem,
    ConceptItem,
    EntityItem,
    KeywordItem,
    Sentiment,
)
from nlu_content_analyzer.session_store import InMemorySessionStore


@pytest.fixture
def store() -> InMemorySessionStore:
    """Empty in-memory session store."""
    return InMemorySessionStore()


@pytest.fixture
def watson_credentials() -> WatsonCredentials:
    """Complete Watson credentials for a templated region."""
    return WatsonCredentials(
        api_key="watson-test-key",
        region="eu-de",
        instance_id="abc-123",
    )


@pytest.fixture
def google_credentials() -> GoogleCredentials:
    return GoogleCredentials(api_key="google-test-key")


@pytest.fixture
def sample_result() -> AnalysisResult:
    """Analysis result of a short lingerie product description."""
    return AnalysisResult(
        language="en",
        keywords=[
            KeywordItem(text="comfortable bra", relevance=0.92, count=2, sentiment=Sentiment.from_score(0.6)),
            KeywordItem(text="lace trim", relevance=0.71, count=1),
            KeywordItem(text="cats", relevance=0.40, count=1),
        ],
        entities=[
            EntityItem(text="Acme", type="Company", relevance=0.88, confidence=0.9, count=1),
            EntityItem(text="Paris", type="Location", relevance=0.35, confidence=0.8, count=1),
        ],
        concepts=[ConceptItem(text="Brassiere", relevance=0.83, dbpedia_resource="http://dbpedia.org/resource/Brassiere")],
        categories=[CategoryItem(label="/style and fashion/clothing", score=0.94)],
        provider="watson",
    )


@pytest.fixture
def watson_response_body() -> dict:
    """Watson NLU analyze response body."""
    return {
        "language": "en",
        "keywords": [
            {"text": "comfortable bra", "relevance": 0.92, "count": 2,
             "sentiment": {"score": 0.6, "label": "positive"}},
            {"text": "lace trim", "relevance": 0.71, "count": 1},
        ],
        "entities": [
            {"type": "Company", "text": "Acme", "relevance": 0.88, "confidence": 0.9, "count": 1},
        ],
        "categories": [{"label": "/style and fashion/clothing", "score": 0.94}],
        "classifications": [{"class_name": "excited", "confidence": 0.7}],
    }


@pytest.fixture
def json_response():
    """Build an httpx.MockTransport handler that records requests and answers JSON."""
    def _factory(body, status_code: int = 200):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(status_code, json=body)

        return httpx.MockTransport(handler), seen

    return _factory


@pytest.fixture
def sample_keywords_csv(tmp_path: Path) -> Path:
    """Create a sample keywords CSV file."""
    csv_path = tmp_path / "keywords.csv"
    csv_content = """keyword,search_volume
comfortable bra,1200
lace bralette,800
Comfortable Bra,150
wireless support bra,200
"""
    csv_path.write_text(csv_content)
    return csv_path


@pytest.fixture
def sample_keywords_excel(tmp_path: Path) -> Path:
    """Create a sample keywords Excel file."""
    import pandas as pd

    xlsx_path = tmp_path / "keywords.xlsx"
    df = pd.DataFrame({
        "Target Keyword": ["comfortable bra", "lace bralette", "sports bra"],
        "volume": [1000, 500, 300],
    })
    df.to_excel(xlsx_path, index=False)
    return xlsx_path


@pytest.fixture
def analysis_file(tmp_path: Path, sample_result: AnalysisResult) -> Path:
    """Analysis result saved as Watson-shaped JSON."""
    path = tmp_path / "analysis.json"
    path.write_text(json.dumps(sample_result.to_dict()))
    return path
