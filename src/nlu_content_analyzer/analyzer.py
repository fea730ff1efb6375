"""
Analysis orchestrator.

Selects the NLU provider, checks credentials before any network call,
drops tone analysis for unsupported languages and dispatches to the
provider adapter.
"""

import logging
import uuid
from typing import Optional, Union

import httpx

from .config import (
    CUSTOM_REGION,
    DEFAULT_WATSON_REGION,
    TONE_SUPPORTED_LANGUAGES,
    AnalysisConfig,
    GoogleCredentials,
    WatsonCredentials,
)
from .errors import AnalyzerError, MissingCredentialsError, UnsupportedProviderError, user_guidance
from .google_nlp_client import GoogleNLPClient
from .models import AnalysisProvider, AnalysisRequest, AnalysisResult, Feature
from .session_store import (
    ANALYSIS_PROVIDER,
    GOOGLE_NLP_API_KEY,
    WATSON_API_KEY,
    WATSON_AUTH_TYPE,
    WATSON_INSTANCE_ID,
    WATSON_REGION,
    WATSON_URL,
    SessionStore,
)
from .watson_client import WatsonClient

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """
    Runs text analysis against Watson or Google.

    Credentials passed to the constructor take precedence over those saved
    in the session store.
    """

    def __init__(
        self,
        store: SessionStore,
        watson_credentials: Optional[WatsonCredentials] = None,
        google_credentials: Optional[GoogleCredentials] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        tone_supported_languages: tuple[str, ...] = TONE_SUPPORTED_LANGUAGES,
    ):
        self.store = store
        self._watson_credentials = watson_credentials
        self._google_credentials = google_credentials
        self.http_client = http_client
        self.tone_supported_languages = tone_supported_languages

    # -- credentials -----------------------------------------------------

    def watson_credentials(self) -> WatsonCredentials:
        if self._watson_credentials is not None:
            return self._watson_credentials
        return WatsonCredentials(
            api_key=self.store.get(WATSON_API_KEY, ""),
            url=self.store.get(WATSON_URL, ""),
            region=self.store.get(WATSON_REGION, DEFAULT_WATSON_REGION),
            instance_id=self.store.get(WATSON_INSTANCE_ID, ""),
            auth_type=self.store.get(WATSON_AUTH_TYPE, "iam"),
        )

    def google_credentials(self) -> GoogleCredentials:
        if self._google_credentials is not None:
            return self._google_credentials
        return GoogleCredentials(api_key=self.store.get(GOOGLE_NLP_API_KEY, ""))

    def save_watson_credentials(self, credentials: WatsonCredentials) -> None:
        """Persist Watson credentials in the session store."""
        self._watson_credentials = credentials
        self.store.set(WATSON_API_KEY, credentials.api_key)
        self.store.set(WATSON_URL, credentials.url)
        self.store.set(WATSON_REGION, credentials.region)
        self.store.set(WATSON_INSTANCE_ID, credentials.instance_id)
        self.store.set(WATSON_AUTH_TYPE, credentials.auth_type)

    def save_google_credentials(self, credentials: GoogleCredentials) -> None:
        """Persist the Google API key in the session store."""
        self._google_credentials = credentials
        self.store.set(GOOGLE_NLP_API_KEY, credentials.api_key)

    def selected_provider(self) -> str:
        return self.store.get(ANALYSIS_PROVIDER, AnalysisProvider.WATSON.value)

    # -- analysis --------------------------------------------------------

    def _resolve_provider(self, provider: Union[AnalysisProvider, str, None]) -> AnalysisProvider:
        if provider is None:
            provider = self.selected_provider()
        if isinstance(provider, AnalysisProvider):
            return provider
        try:
            return AnalysisProvider(str(provider).lower())
        except ValueError:
            raise UnsupportedProviderError(f"Unsupported analysis provider: {provider}")

    def _check_credentials(self, provider: AnalysisProvider) -> None:
        if provider == AnalysisProvider.GOOGLE:
            if not self.google_credentials().api_key:
                raise MissingCredentialsError(
                    "Please enter your Google Cloud Natural Language API key."
                )
            return

        creds = self.watson_credentials()
        if not creds.api_key:
            raise MissingCredentialsError(
                "Please enter your IBM Watson NLU API key or enable secrets."
            )
        if creds.region == CUSTOM_REGION and not creds.url:
            raise MissingCredentialsError(
                "Please provide a valid URL for the IBM Watson NLU service."
            )
        if creds.region != CUSTOM_REGION and not creds.instance_id:
            raise MissingCredentialsError(
                "Please provide the instance ID of your IBM Watson NLU service."
            )

    def prepare_request(self, request: AnalysisRequest) -> AnalysisRequest:
        """Drop tone analysis when the language does not support it."""
        if request.wants(Feature.CLASSIFICATIONS) and request.language not in self.tone_supported_languages:
            logger.info(
                f"Tone analysis not supported for language '{request.language}', skipping classifications"
            )
            return request.without(Feature.CLASSIFICATIONS)
        return request

    async def run_analysis(
        self,
        request: AnalysisRequest,
        provider: Union[AnalysisProvider, str, None] = None,
    ) -> AnalysisResult:
        """
        Analyze text with the selected provider.

        Args:
            request: Canonical analysis request.
            provider: "watson" or "google"; defaults to the session selection.

        Returns:
            Normalized AnalysisResult tagged with a fresh request_id.

        Raises:
            ValueError: If the text is empty.
            UnsupportedProviderError: For any other provider.
            MissingCredentialsError: If the provider's credentials are incomplete.
            ApiError: If the provider call fails.
        """
        if not request.text or not request.text.strip():
            raise ValueError("Please enter text to analyze.")

        try:
            selected = self._resolve_provider(provider)
            self._check_credentials(selected)
            prepared = self.prepare_request(request)

            if selected == AnalysisProvider.GOOGLE:
                client = GoogleNLPClient(self.google_credentials(), http_client=self.http_client)
            else:
                client = WatsonClient(self.watson_credentials(), http_client=self.http_client)

            result = await client.analyze(prepared)
        except AnalyzerError as e:
            e.guidance = user_guidance(e)
            logger.error(f"Analysis failed: {e.message}")
            raise

        result.request_id = str(uuid.uuid4())
        logger.info(
            f"Analysis completed with {selected.value}: {len(result.keywords)} keywords, "
            f"{len(result.entities)} entities"
        )
        return result

    async def analyze_text(
        self,
        text: str,
        config: Optional[AnalysisConfig] = None,
        provider: Union[AnalysisProvider, str, None] = None,
    ) -> AnalysisResult:
        """Analyze text using an AnalysisConfig (defaults when None)."""
        config = config or AnalysisConfig()
        return await self.run_analysis(config.to_request(text), provider)

