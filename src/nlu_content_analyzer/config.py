"""
Configuration for NLU Content Analyzer.

This module holds the analysis feature/limit defaults and the provider
credential objects. Credentials can be built from the environment, from an
IBM `ibm-credentials.env` file, or from the service-credentials JSON shown
in the IBM Cloud console.
"""

import io
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Union
from urllib.parse import urlparse

from dotenv import dotenv_values

from .model_catalog import DEFAULT_MODEL, provider_for_model
from .models import AIProvider, AnalysisRequest, Feature

logger = logging.getLogger(__name__)


# Features enabled when the caller does not choose any
DEFAULT_FEATURES: frozenset[Feature] = frozenset({
    Feature.KEYWORDS,
    Feature.ENTITIES,
    Feature.CONCEPTS,
    Feature.CATEGORIES,
})

DEFAULT_LIMITS: dict[Feature, int] = {
    Feature.KEYWORDS: 10,
    Feature.ENTITIES: 10,
    Feature.CONCEPTS: 5,
    Feature.CATEGORIES: 3,
}

# Tone analysis (classifications) is only available for these languages
TONE_SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "fr", "auto")

TONE_MODELS: dict[str, str] = {
    "en": "tone-classifications-en-v1",
    "fr": "tone-classifications-fr-v1",
    "auto": "tone-classifications-en-v1",
}

WATSON_API_VERSION = "2022-04-07"
WATSON_URL_TEMPLATE = (
    "https://api.{region}.natural-language-understanding.watson.cloud.ibm.com"
    "/instances/{instance_id}/v1/analyze?version=" + WATSON_API_VERSION
)
DEFAULT_WATSON_REGION = "eu-de"
CUSTOM_REGION = "custom"

# Environment variable names used by IBM's generated credentials
ENV_WATSON_APIKEY = "NATURAL_LANGUAGE_UNDERSTANDING_APIKEY"
ENV_WATSON_IAM_APIKEY = "NATURAL_LANGUAGE_UNDERSTANDING_IAM_APIKEY"
ENV_WATSON_URL = "NATURAL_LANGUAGE_UNDERSTANDING_URL"
ENV_WATSON_AUTH_TYPE = "NATURAL_LANGUAGE_UNDERSTANDING_AUTH_TYPE"
ENV_WATSON_REGION = "WATSON_REGION"
ENV_WATSON_INSTANCE_ID = "WATSON_INSTANCE_ID"
ENV_GOOGLE_NLP_API_KEY = "GOOGLE_NLP_API_KEY"
ENV_OPENAI_API_KEY = "OPENAI_API_KEY"
ENV_ANTHROPIC_API_KEY = "ANTHROPIC_API_KEY"


def tone_model_for_language(language: str) -> str:
    """Get the default tone model for a language (English model otherwise)."""
    return TONE_MODELS.get(language, TONE_MODELS["en"])


def is_tone_supported(language: str) -> bool:
    return language in TONE_SUPPORTED_LANGUAGES


@dataclass
class AnalysisConfig:
    """
    User-facing analysis settings.

    Attributes:
        language: ISO language code, or "auto" to let the provider detect it.
        features: Features to request.
        limits: Maximum items per feature.
        tone_model: Watson tone model. Defaults from the language when None.
    """
    language: str = "auto"
    features: frozenset[Feature] = field(default_factory=lambda: DEFAULT_FEATURES)
    limits: dict[Feature, int] = field(default_factory=lambda: dict(DEFAULT_LIMITS))
    tone_model: Optional[str] = None

    def __post_init__(self):
        """Validate configuration values."""
        if not self.language or not self.language.strip():
            raise ValueError("language must not be empty")
        self.language = self.language.strip().lower()

        self.features = frozenset(Feature(f) for f in self.features)
        self.limits = {Feature(k): v for k, v in self.limits.items()}
        for feature, limit in self.limits.items():
            if not isinstance(limit, int) or limit < 1:
                raise ValueError(f"limit for '{feature.value}' must be >= 1, got {limit!r}")

        if self.tone_model is None:
            self.tone_model = tone_model_for_language(self.language)

    def to_request(self, text: str) -> AnalysisRequest:
        """Build a canonical analysis request for a text."""
        return AnalysisRequest(
            text=text,
            language=self.language,
            features=self.features,
            limits=dict(self.limits),
            tone_model=self.tone_model,
        )


def _region_from_url(url: str) -> Optional[str]:
    """Extract the region from a Watson host, e.g. api.eu-de.natural-... -> eu-de."""
    host = urlparse(url).hostname or ""
    parts = host.split(".")
    if len(parts) > 2 and "natural-language-understanding" in host:
        return parts[1]
    return None


def _instance_from_url(url: str) -> str:
    path = urlparse(url).path.rstrip("/")
    if "/instances/" not in path:
        return ""
    return path.split("/instances/", 1)[1].split("/", 1)[0]


@dataclass
class WatsonCredentials:
    """
    IBM Watson NLU credentials and endpoint selection.

    Attributes:
        api_key: Watson NLU API key.
        url: Custom instance URL, used when region is "custom".
        auth_type: "iam" sends Basic apikey auth, anything else a Bearer token.
        region: Watson region (e.g. "eu-de", "us-south") or "custom".
        instance_id: Service instance id, used with a templated region URL.
    """
    api_key: str = ""
    url: str = ""
    auth_type: str = "iam"
    region: str = DEFAULT_WATSON_REGION
    instance_id: str = ""

    def __post_init__(self):
        self.api_key = (self.api_key or "").strip()
        self.url = (self.url or "").strip()
        self.auth_type = (self.auth_type or "iam").strip().lower()
        self.region = (self.region or DEFAULT_WATSON_REGION).strip()
        self.instance_id = (self.instance_id or "").strip()

    @property
    def endpoint_url(self) -> str:
        """
        Get the analyze endpoint URL.

        Returns:
            The templated regional URL, or the custom URL with the analyze
            path appended when it is missing. Empty string if neither an
            instance id nor a custom URL is available.
        """
        if self.region != CUSTOM_REGION:
            if not self.instance_id:
                return ""
            return WATSON_URL_TEMPLATE.format(region=self.region, instance_id=self.instance_id)

        if not self.url:
            return ""
        if "/v1/analyze" in self.url:
            return self.url
        return f"{self.url.rstrip('/')}/v1/analyze?version={WATSON_API_VERSION}"

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key and self.endpoint_url)

    @classmethod
    def from_url(cls, api_key: str, url: str, auth_type: str = "iam") -> "WatsonCredentials":
        """
        Build credentials from an instance URL.

        A standard IBM Cloud URL yields region + instance id; anything else is
        kept as a custom URL.
        """
        region = _region_from_url(url)
        instance_id = _instance_from_url(url)
        if region and instance_id:
            return cls(api_key=api_key, url=url, auth_type=auth_type, region=region, instance_id=instance_id)
        return cls(api_key=api_key, url=url, auth_type=auth_type, region=CUSTOM_REGION)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WatsonCredentials":
        """
        Load credentials from environment variables.

        NATURAL_LANGUAGE_UNDERSTANDING_APIKEY (or _IAM_APIKEY), _URL and
        _AUTH_TYPE follow IBM's naming; WATSON_REGION and WATSON_INSTANCE_ID
        select a regional endpoint when no URL is set.
        """
        env = os.environ if environ is None else environ
        api_key = env.get(ENV_WATSON_APIKEY) or env.get(ENV_WATSON_IAM_APIKEY) or ""
        auth_type = env.get(ENV_WATSON_AUTH_TYPE) or "iam"
        url = env.get(ENV_WATSON_URL) or ""

        if url:
            return cls.from_url(api_key, url, auth_type)

        return cls(
            api_key=api_key,
            auth_type=auth_type,
            region=env.get(ENV_WATSON_REGION) or DEFAULT_WATSON_REGION,
            instance_id=env.get(ENV_WATSON_INSTANCE_ID) or "",
        )

    @classmethod
    def from_credentials_text(cls, content: str) -> "WatsonCredentials":
        """
        Parse the contents of an ibm-credentials.env file.

        Raises:
            ValueError: If the API key or URL line is missing.
        """
        values = dotenv_values(stream=io.StringIO(content))

        api_key = values.get(ENV_WATSON_APIKEY) or values.get(ENV_WATSON_IAM_APIKEY)
        url = values.get(ENV_WATSON_URL)
        if not api_key or not url:
            raise ValueError(
                f"Invalid credentials file: {ENV_WATSON_APIKEY} and {ENV_WATSON_URL} are required"
            )
        return cls.from_url(api_key, url, values.get(ENV_WATSON_AUTH_TYPE) or "iam")

    @classmethod
    def from_credentials_file(cls, path: Union[str, Path]) -> "WatsonCredentials":
        """Load credentials from an ibm-credentials.env file."""
        path = Path(path)
        logger.info(f"Loading Watson credentials from {path}")
        return cls.from_credentials_text(path.read_text(encoding="utf-8"))

    @classmethod
    def from_service_json(cls, raw: str) -> "WatsonCredentials":
        """
        Parse IBM Cloud service-credentials JSON ({"apikey": ..., "url": ...}).

        Raises:
            ValueError: If the JSON is malformed or has no apikey.
        """
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid service credentials JSON: {e}") from e

        if not isinstance(data, dict) or not data.get("apikey"):
            raise ValueError("Service credentials JSON must contain 'apikey'")

        creds = cls.from_url(data["apikey"], data.get("url", ""))
        if data.get("instance_id") and creds.region != CUSTOM_REGION:
            creds.instance_id = data["instance_id"]
        return creds


@dataclass
class GoogleCredentials:
    """Google Cloud Natural Language API key."""
    api_key: str = ""

    def __post_init__(self):
        self.api_key = (self.api_key or "").strip()

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GoogleCredentials":
        env = os.environ if environ is None else environ
        return cls(api_key=env.get(ENV_GOOGLE_NLP_API_KEY, ""))


@dataclass
class OptimizationSettings:
    """
    LLM optimization settings.

    Attributes:
        model: Model identifier; its provider is resolved from the model catalog.
        openai_api_key: Key used for OpenAI models.
        anthropic_api_key: Key used for Anthropic models.
    """
    model: str = DEFAULT_MODEL
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    def __post_init__(self):
        if not self.model or not self.model.strip():
            raise ValueError("model must not be empty")
        self.model = self.model.strip()

    @property
    def provider(self) -> AIProvider:
        return provider_for_model(self.model)

    @property
    def api_key(self) -> str:
        """Get the key for the configured model's provider."""
        if self.provider == AIProvider.ANTHROPIC:
            return self.anthropic_api_key
        return self.openai_api_key

    @classmethod
    def from_env(
        cls,
        model: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "OptimizationSettings":
        env = os.environ if environ is None else environ
        return cls(
            model=model or DEFAULT_MODEL,
            openai_api_key=env.get(ENV_OPENAI_API_KEY, ""),
            anthropic_api_key=env.get(ENV_ANTHROPIC_API_KEY, ""),
        )
