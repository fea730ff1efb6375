"""
Google Cloud Natural Language adapter.

Translates a canonical AnalysisRequest into a `documents:<endpoint>` call and
normalizes the response into the same AnalysisResult shape Watson produces.
Features Google cannot provide (concepts, relations, tone, emotion,
semantic roles) are dropped.
"""

import logging
from typing import Any, Optional

import httpx

from .config import GoogleCredentials
from .errors import ApiError, AuthError, MissingCredentialsError, ResponseFormatError
from .models import (
    AnalysisRequest,
    AnalysisResult,
    CategoryItem,
    EntityItem,
    Feature,
    KeywordItem,
    Sentiment,
    SyntaxToken,
)

logger = logging.getLogger(__name__)


PROVIDER_NAME = "google"
BASE_URL = "https://language.googleapis.com/v1/documents"

GOOGLE_FEATURES: frozenset[Feature] = frozenset({
    Feature.KEYWORDS,
    Feature.ENTITIES,
    Feature.SENTIMENT,
    Feature.SYNTAX,
    Feature.CATEGORIES,
})

# Entities above this salience are also reported as keywords
KEYWORD_SALIENCE_THRESHOLD = 0.1

DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=30.0)


def map_features(request: AnalysisRequest) -> dict[str, bool]:
    """Map requested features to Google's annotateText feature flags."""
    return {
        "extractEntities": request.wants(Feature.ENTITIES) or request.wants(Feature.KEYWORDS),
        "extractDocumentSentiment": request.wants(Feature.SENTIMENT),
        "extractSyntax": request.wants(Feature.SYNTAX),
        "classifyText": request.wants(Feature.CATEGORIES),
    }


def select_endpoint(flags: dict[str, bool]) -> str:
    """
    Pick the narrowest endpoint for the enabled flags.

    analyzeEntitySentiment when entities are the only flag, classifyText when
    classification is the only flag, annotateText otherwise.
    """
    enabled = {name for name, on in flags.items() if on}
    if enabled == {"extractEntities"}:
        return "analyzeEntitySentiment"
    if enabled == {"classifyText"}:
        return "classifyText"
    return "annotateText"


def format_category(name: str) -> str:
    """'/Arts & Entertainment/Music' -> 'Arts & Entertainment > Music'."""
    return name.removeprefix("/").replace("/", " > ")


def _sentiment(raw: Optional[dict]) -> Optional[Sentiment]:
    if not raw or raw.get("score") is None:
        return None
    return Sentiment.from_score(float(raw["score"]))


class GoogleNLPClient:
    """Async client for the Google Cloud Natural Language API."""

    def __init__(
        self,
        credentials: GoogleCredentials,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.credentials = credentials
        self.http_client = http_client

    def build_call(self, request: AnalysisRequest) -> tuple[str, dict[str, Any]]:
        """
        Build the endpoint name and JSON body for a request.

        Returns:
            Tuple of (endpoint, body).
        """
        flags = map_features(request)
        if not any(flags.values()):
            logger.info("No Google-supported features requested, falling back to document sentiment")
            flags["extractDocumentSentiment"] = True

        document = {"type": "PLAIN_TEXT", "content": request.text}
        if request.language and request.language != "auto":
            document["language"] = request.language

        endpoint = select_endpoint(flags)
        if endpoint == "classifyText":
            return endpoint, {"document": document}
        if endpoint == "analyzeEntitySentiment":
            return endpoint, {"document": document, "encodingType": "UTF8"}
        return endpoint, {"document": document, "features": flags, "encodingType": "UTF8"}

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Analyze text with Google Natural Language.

        Args:
            request: Canonical analysis request.

        Returns:
            Normalized AnalysisResult.

        Raises:
            MissingCredentialsError: If no API key is configured.
            AuthError: If Google rejects the key (401/403).
            ApiError: For any other non-2xx answer or transport failure.
        """
        if not self.credentials.api_key:
            raise MissingCredentialsError("Please enter your Google Cloud Natural Language API key.")

        endpoint, body = self.build_call(request)
        url = f"{BASE_URL}:{endpoint}"
        params = {"key": self.credentials.api_key}

        logger.info(f"Google NLP {endpoint}: {len(request.text)} chars")

        try:
            if self.http_client is not None:
                response = await self.http_client.post(url, params=params, json=body)
            else:
                async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                    response = await client.post(url, params=params, json=body)
        except httpx.HTTPError as e:
            raise ApiError(f"Google NLP request failed: {e}", provider=PROVIDER_NAME) from e

        if not response.is_success:
            message = _error_message(response)
            error_cls = AuthError if response.status_code in (401, 403) else ApiError
            logger.error(f"Google NLP API error {response.status_code}: {message}")
            raise error_cls(message, status_code=response.status_code, provider=PROVIDER_NAME)

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseFormatError(
                "Invalid response format from Google NLP API", provider=PROVIDER_NAME
            ) from e

        if not isinstance(data, dict):
            raise ResponseFormatError("Invalid response format from Google NLP API", provider=PROVIDER_NAME)

        return self.normalize(data, request)

    @staticmethod
    def normalize(data: dict[str, Any], request: AnalysisRequest) -> AnalysisResult:
        """
        Convert a Google response body into an AnalysisResult.

        Args:
            data: Parsed response JSON.
            request: The request that produced it (selects which parts to keep).

        Returns:
            AnalysisResult in Watson shape.
        """
        result = AnalysisResult(language=data.get("language") or "en", provider=PROVIDER_NAME)
        raw_entities = data.get("entities") or []

        if request.wants(Feature.ENTITIES):
            result.entities = [
                EntityItem(
                    text=e.get("name", ""),
                    type=e.get("type", ""),
                    relevance=float(e.get("salience", 0.0)),
                    confidence=1.0,
                    count=len(e.get("mentions") or []) or 1,
                    sentiment=_sentiment(e.get("sentiment")),
                )
                for e in raw_entities
            ]

        if request.wants(Feature.ENTITIES) or request.wants(Feature.KEYWORDS):
            result.keywords = [
                KeywordItem(
                    text=e.get("name", ""),
                    relevance=float(e.get("salience", 0.0)),
                    count=len(e.get("mentions") or []) or 1,
                    sentiment=_sentiment(e.get("sentiment")),
                )
                for e in raw_entities
                if float(e.get("salience", 0.0)) > KEYWORD_SALIENCE_THRESHOLD
            ]

        if data.get("documentSentiment"):
            result.sentiment = _sentiment(data["documentSentiment"])

        if request.wants(Feature.CATEGORIES):
            result.categories = [
                CategoryItem(label=format_category(c.get("name", "")), score=float(c.get("confidence", 0.0)))
                for c in data.get("categories") or []
            ]

        if request.wants(Feature.SYNTAX):
            result.syntax_tokens = [
                SyntaxToken(
                    text=(t.get("text") or {}).get("content", ""),
                    part_of_speech=(t.get("partOfSpeech") or {}).get("tag"),
                    lemma=t.get("lemma"),
                )
                for t in data.get("tokens") or []
            ]

        return result


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "Google NLP API request failed"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return "Google NLP API request failed"
