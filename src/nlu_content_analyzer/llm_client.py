"""
LLM client abstraction for keyword optimization.

This module provides the OpenAI (chat completions over httpx) and Anthropic
(official SDK) adapters used to rewrite text around target keywords. Both
return a CompletionResult; neither retries.
"""

import logging
import re
from typing import Optional, Union

import anthropic
import httpx

from .errors import ApiError, MissingCredentialsError, ResponseFormatError
from .model_catalog import resolve_model
from .models import AIProvider, CompletionResult, OptimizationOutcome

logger = logging.getLogger(__name__)


OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_MAX_TOKENS = 4000
OPENAI_TEMPERATURE = 0.7

ANTHROPIC_MAX_TOKENS = 2000
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-0"

DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=30.0)
ANTHROPIC_TIMEOUT_SECONDS = 60.0


# System prompt shared by both providers
BRAND_TONE_SYSTEM_PROMPT = """You are a senior SEO content optimizer and linguistic stylist. You optimize content for search while staying strictly within the brand's tone of voice and preserving the semantic structure of the original.

Follow these rules:

1. Respect the brand's tone of voice: direct, intentional, earnest and personal. Do not use humor, puns or sales language.
2. Preserve the authentic voice of the original text, including paragraph count, structure, tone, punctuation and spacing. Do not reformat or restructure content.
3. Favor rich, multi-word entity phrases (2-5 tokens) over generic one-word entities, using the taxonomy: Brand, ProductType, Material, Feature, Benefit.
4. Use all provided keywords verbatim in high-impact, natural positions. Optimize for search without keyword stuffing. If a keyword would disrupt tone or grammar, omit it gracefully.
5. Where relevant, integrate semantically related terms to strengthen topical relevance, naturally and unobtrusively.
6. Never use inappropriate or objectifying language.
7. Avoid verb-brand fusion at the start of sentences (write "Discover the Brand Fit", not "DiscoverBrandFit").
8. Maintain the original language of the input content. Do not translate.
9. Do not output JSON, explanations, markdown or bullet points that were not in the original. Return only the optimized plain text.

HUMAN STYLE REQUIREMENTS:
- Vary sentence structure and length for a natural rhythm.
- Avoid redundancy and formulaic transitions.
- Do not use overused phrases such as "Indeed", "Furthermore", "Moreover", "Unlock the potential of", "Delve into", "Embark on a journey", "It is worth mentioning".
- Avoid words such as "realm", "landscape", "testament", "showcase".

Aim for a refined, confident, human voice."""


FALLBACK_TEMPLATE = """I've attempted to optimize your text with the keywords: {keywords}.

The AI provider rejected the request credentials, so the optimized result could not be generated.

Options to resolve this:
1. Check your Anthropic API key in the AI configuration
2. Use OpenAI instead (GPT-4o), which uses a separate key
3. Set ANTHROPIC_API_KEY in the server environment

The original text is preserved."""

_PROMPT_KEYWORDS_RE = re.compile(r"### TARGET KEYWORDS\s*\n(.+?)(?:\n\s*\n|\n###|\Z)", re.DOTALL)


def extract_prompt_keywords(prompt: str) -> str:
    """Get the keyword line of an optimization prompt, or a placeholder."""
    match = _PROMPT_KEYWORDS_RE.search(prompt)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return "(keywords not found)"


def fallback_message(prompt: str, keywords: Optional[list[str]] = None) -> str:
    """
    Build the deterministic text returned when Anthropic rejects the key.

    Args:
        prompt: The optimization prompt that was sent.
        keywords: Target keywords; parsed from the prompt when not given.

    Returns:
        A message naming the keywords and how to recover.
    """
    keyword_text = ", ".join(keywords) if keywords else extract_prompt_keywords(prompt)
    return FALLBACK_TEMPLATE.format(keywords=keyword_text)


class OpenAIClient:
    """
    Client for OpenAI chat completions.

    Reasoning models (param style "max_completion_tokens") get
    max_completion_tokens and no temperature; chat models get temperature
    and max_tokens.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "o4-mini",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the OpenAI client.

        Args:
            api_key: OpenAI API key.
            model: Model identifier.
            http_client: Optional shared async HTTP client.
        """
        if not api_key:
            raise MissingCredentialsError("Please enter your OpenAI API key in the AI configuration.")
        self.api_key = api_key
        self.model = model
        self.http_client = http_client

    def build_payload(self, prompt: str) -> dict:
        """Build the chat-completions request body for a prompt."""
        payload: dict = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": BRAND_TONE_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if resolve_model(self.model).param_style == "max_completion_tokens":
            payload["max_completion_tokens"] = OPENAI_MAX_TOKENS
        else:
            payload["temperature"] = OPENAI_TEMPERATURE
            payload["max_tokens"] = OPENAI_MAX_TOKENS
        return payload

    async def complete(self, prompt: str, keywords: Optional[list[str]] = None) -> CompletionResult:
        """
        Send a prompt and return the model's text.

        Args:
            prompt: User prompt.
            keywords: Unused; accepted so both adapters share one signature.

        Returns:
            CompletionResult with the raw message content (may be empty).

        Raises:
            ApiError: On non-2xx responses or transport failure.
            ResponseFormatError: If the response has no message content field.
        """
        payload = self.build_payload(prompt)
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}

        logger.info(f"Using OpenAI model: {self.model}")

        try:
            if self.http_client is not None:
                response = await self.http_client.post(OPENAI_CHAT_URL, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
                    response = await client.post(OPENAI_CHAT_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ApiError(f"OpenAI request failed: {e}", provider=AIProvider.OPENAI.value) from e

        if not response.is_success:
            message = _openai_error_message(response)
            logger.error(f"OpenAI API error: {message}")
            raise ApiError(message, status_code=response.status_code, provider=AIProvider.OPENAI.value)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ResponseFormatError(
                "Invalid response format from OpenAI API",
                status_code=response.status_code,
                provider=AIProvider.OPENAI.value,
            ) from e

        return CompletionResult(text=content or "", model=self.model)


class AnthropicClient:
    """
    Client for Anthropic Claude via the official async SDK.

    SDK retries are disabled. An authentication failure does not raise: it
    returns a DEGRADED_FALLBACK result whose text explains the problem.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        """
        Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key.
            model: Claude model identifier.
            client: Optional preconfigured SDK client.
        """
        if not api_key:
            raise MissingCredentialsError("Please enter your Anthropic API key in the AI configuration.")
        self.api_key = api_key
        self.model = model
        self.client = client

    def _new_sdk_client(self) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(
            api_key=self.api_key,
            max_retries=0,
            timeout=ANTHROPIC_TIMEOUT_SECONDS,
            default_headers={"anthropic-dangerous-direct-browser-access": "true"},
        )

    async def complete(self, prompt: str, keywords: Optional[list[str]] = None) -> CompletionResult:
        """
        Send a prompt and return Claude's text.

        Args:
            prompt: User prompt.
            keywords: Target keywords, embedded in the fallback message.

        Returns:
            CompletionResult; outcome is DEGRADED_FALLBACK on auth failure.

        Raises:
            ApiError: For any other API or transport failure.
        """
        logger.info(f"Using Claude model: {self.model}")

        if self.client is not None:
            return await self._create(self.client, prompt, keywords)
        # A client built here is closed once the call completes.
        async with self._new_sdk_client() as client:
            return await self._create(client, prompt, keywords)

    async def _create(
        self, client: anthropic.AsyncAnthropic, prompt: str, keywords: Optional[list[str]]
    ) -> CompletionResult:
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=ANTHROPIC_MAX_TOKENS,
                system=BRAND_TONE_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.AuthenticationError as e:
            logger.warning(f"Anthropic authentication failed, returning fallback text: {e}")
            return CompletionResult(
                text=fallback_message(prompt, keywords),
                outcome=OptimizationOutcome.DEGRADED_FALLBACK,
                model=self.model,
            )
        except anthropic.APIStatusError as e:
            raise ApiError(
                f"Claude API error: {e.message}",
                status_code=e.status_code,
                provider=AIProvider.ANTHROPIC.value,
            ) from e
        except anthropic.APIError as e:
            raise ApiError(f"Claude API request failed: {e}", provider=AIProvider.ANTHROPIC.value) from e

        text = next((block.text for block in response.content if block.type == "text"), "")
        return CompletionResult(text=text.strip(), model=self.model)


LLMClient = Union[OpenAIClient, AnthropicClient]


def create_llm_client(api_key: str, model: str) -> LLMClient:
    """
    Factory function to create the adapter serving a model.

    Args:
        api_key: API key for the model's provider.
        model: Model identifier; its provider comes from the model catalog.

    Returns:
        Configured OpenAIClient or AnthropicClient.
    """
    if resolve_model(model).provider == AIProvider.ANTHROPIC:
        return AnthropicClient(api_key=api_key, model=model)
    return OpenAIClient(api_key=api_key, model=model)


def _openai_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"OpenAI API error: {response.status_code} {response.reason_phrase}"
