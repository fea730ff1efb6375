"""
IBM Watson Natural Language Understanding adapter.

Translates a canonical AnalysisRequest into a Watson `/v1/analyze` call and
normalizes the response into an AnalysisResult.
"""

import base64
import logging
from typing import Any, Optional

import httpx

from .config import WatsonCredentials, tone_model_for_language
from .errors import ApiError, AuthError, MissingCredentialsError, ResponseFormatError
from .models import AnalysisRequest, AnalysisResult, Feature

logger = logging.getLogger(__name__)


PROVIDER_NAME = "watson"

# Watson supports every feature
WATSON_FEATURES: frozenset[Feature] = frozenset(Feature)

DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=30.0)


class WatsonClient:
    """
    Async client for Watson NLU.

    One analyze() call is one HTTP round trip. A shared httpx.AsyncClient can
    be injected; otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        credentials: WatsonCredentials,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.credentials = credentials
        self.http_client = http_client

    def auth_header(self) -> str:
        """Get the Authorization header value for the configured auth type."""
        api_key = self.credentials.api_key
        if self.credentials.auth_type == "iam":
            token = base64.b64encode(f"apikey:{api_key}".encode("utf-8")).decode("ascii")
            return f"Basic {token}"
        return f"Bearer {api_key}"

    def build_features(self, request: AnalysisRequest) -> dict[str, Any]:
        """
        Map requested features to Watson feature options.

        Only requested features appear in the result.
        """
        features: dict[str, Any] = {}

        if request.wants(Feature.KEYWORDS):
            features["keywords"] = {"limit": request.limit_for(Feature.KEYWORDS, 10), "sentiment": True}
        if request.wants(Feature.ENTITIES):
            features["entities"] = {"limit": request.limit_for(Feature.ENTITIES, 10), "sentiment": True}
        if request.wants(Feature.CONCEPTS):
            features["concepts"] = {"limit": request.limit_for(Feature.CONCEPTS, 5)}
        if request.wants(Feature.CATEGORIES):
            features["categories"] = {"limit": request.limit_for(Feature.CATEGORIES, 3)}
        if request.wants(Feature.CLASSIFICATIONS):
            features["classifications"] = {
                "model": request.tone_model or tone_model_for_language(request.language)
            }
        if request.wants(Feature.RELATIONS):
            features["relations"] = {}
        if request.wants(Feature.SENTIMENT):
            features["sentiment"] = {}
        if request.wants(Feature.EMOTION):
            features["emotion"] = {}
        if request.wants(Feature.SEMANTIC_ROLES):
            features["semantic_roles"] = {"limit": request.limit_for(Feature.SEMANTIC_ROLES, 10)}
        if request.wants(Feature.SYNTAX):
            features["syntax"] = {
                "tokens": {"lemma": True, "part_of_speech": True},
                "sentences": True,
            }

        return features

    def build_payload(self, request: AnalysisRequest) -> dict[str, Any]:
        """Build the JSON body of an analyze call."""
        payload: dict[str, Any] = {
            "text": request.text,
            "features": self.build_features(request),
        }
        # Watson detects the language itself when none is sent
        if request.language and request.language != "auto":
            payload["language"] = request.language
        return payload

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Analyze text with Watson NLU.

        Args:
            request: Canonical analysis request.

        Returns:
            Normalized AnalysisResult.

        Raises:
            MissingCredentialsError: If the API key or endpoint is missing.
            AuthError: If Watson rejects the credentials (401/403).
            ApiError: For any other non-2xx answer or transport failure.
            ResponseFormatError: If the body is not a JSON object.
        """
        url = self.credentials.endpoint_url
        if not self.credentials.api_key:
            raise MissingCredentialsError("Please enter your IBM Watson NLU API key.")
        if not url:
            raise MissingCredentialsError("Please provide a valid URL for the IBM Watson NLU service.")

        payload = self.build_payload(request)
        headers = {"Content-Type": "application/json", "Authorization": self.auth_header()}

        logger.info(f"Watson analyze: {len(request.text)} chars, features={sorted(payload['features'])}")

        try:
            if self.http_client is not None:
                response = await self.http_client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ApiError(f"Watson request failed: {e}", provider=PROVIDER_NAME) from e

        if not response.is_success:
            message = _error_message(response)
            error_cls = AuthError if response.status_code in (401, 403) else ApiError
            logger.error(f"Watson API error {response.status_code}: {message}")
            raise error_cls(message, status_code=response.status_code, provider=PROVIDER_NAME)

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseFormatError(
                "Invalid response format from Watson NLU API", provider=PROVIDER_NAME
            ) from e

        if not isinstance(data, dict):
            raise ResponseFormatError("Invalid response format from Watson NLU API", provider=PROVIDER_NAME)

        return self.normalize(data)

    @staticmethod
    def normalize(data: dict[str, Any]) -> AnalysisResult:
        """Convert a Watson response body into an AnalysisResult."""
        result = AnalysisResult.from_dict(data)
        result.provider = PROVIDER_NAME
        return result


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "API request failed"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return "API request failed"
