"""
Keyword optimization orchestrator.

Runs the optimization pipeline:
filter keywords -> build prompt -> LLM adapter -> empty check ->
mock re-analysis -> keyword statuses -> cost tracking.
"""

import dataclasses
import logging
import re
from typing import Callable, Optional

from .cost_tracker import CostTracker
from .errors import (
    AnalyzerError,
    EmptyResponseError,
    MissingCredentialsError,
    user_guidance,
    validate_api_key_format,
)
from .keyword_matcher import keyword_statuses
from .llm_client import LLMClient, create_llm_client
from .model_catalog import provider_for_model
from .models import (
    AnalysisResult,
    KeywordItem,
    OptimizationRequest,
    OptimizationResult,
)
from .session_store import AI_MODEL, SessionStore

logger = logging.getLogger(__name__)


# Entity types whose names count as specific enough to keep single-word keywords
NAMED_ENTITY_TYPES = frozenset({"Organization", "Company", "Brand", "Product"})

# Mock re-analysis constants
EXACT_MATCH_RELEVANCE = 0.95
PARTIAL_MATCH_RELEVANCE = 0.8
NGRAM_BASE_RELEVANCE = 0.7
NGRAM_DECAY_PER_WORD = 0.1
NGRAM_MAX_WORDS = 3
NGRAM_MIN_CHARS = 3
MOCK_KEYWORD_LIMIT = 15


def filter_target_keywords(
    target_keywords: list[str],
    prior_result: Optional[AnalysisResult],
) -> list[str]:
    """
    Drop generic single-word keywords.

    Multi-word keywords are always kept. A single word is kept only when it
    equals (case-insensitive) an Organization/Company/Brand/Product entity of
    the prior analysis.

    Args:
        target_keywords: Keywords entered by the user.
        prior_result: Analysis of the original text.

    Returns:
        Filtered keywords in input order.
    """
    entity_names = set()
    if prior_result is not None:
        entity_names = {
            e.text.lower().strip()
            for e in prior_result.entities
            if e.type in NAMED_ENTITY_TYPES
        }

    filtered = []
    for keyword in target_keywords:
        if len(keyword.split()) > 1 or keyword.lower().strip() in entity_names:
            filtered.append(keyword)
        else:
            logger.debug(f"Dropping generic single-word keyword '{keyword}'")
    return filtered


def build_optimization_prompt(
    original_text: str,
    target_keywords: list[str],
    prior_result: Optional[AnalysisResult],
    focus_keywords: Optional[list[str]] = None,
) -> str:
    """
    Build the user prompt for an optimization call.

    Args:
        original_text: Text to optimize, embedded verbatim.
        target_keywords: Full (unfiltered) keyword list.
        prior_result: Analysis of the original text, used as context.
        focus_keywords: Filtered keywords to prioritize.

    Returns:
        Prompt string.
    """
    keywords_string = ", ".join(target_keywords)

    entities = "None detected"
    top_keywords = "None detected"
    categories = "None detected"
    if prior_result is not None:
        if prior_result.entities:
            entities = ", ".join(f"{e.text} ({e.type})" for e in prior_result.entities)
        if prior_result.keywords:
            top_keywords = ", ".join(k.text for k in prior_result.keywords[:5])
        if prior_result.categories:
            categories = ", ".join(c.label for c in prior_result.categories[:2])

    priority = ", ".join(focus_keywords) if focus_keywords else "None"

    return f"""### TASK
Optimize this text for SEO while preserving its meaning, intent, and paragraph structure.

### ORIGINAL
{original_text}

### TARGET KEYWORDS
{keywords_string}

### ANALYSIS CONTEXT
- Entities: {entities}
- Top keywords: {top_keywords}
- Categories: {categories}
- Priority keywords: {priority}

### INSTRUCTIONS
1. Work only on the exact text given under ORIGINAL. Do not add content about other topics.
2. Do not introduce headings that are not present in the original.
3. Preserve the original structure: paragraph count, order and formatting.
4. Increase the density of the target keywords, using them verbatim and naturally, without keyword stuffing.
5. Output only the optimized plain text, with no explanations, notes or JSON."""


def mock_analysis_for_keywords(
    optimized_text: str,
    target_keywords: list[str],
    prior_result: Optional[AnalysisResult] = None,
) -> AnalysisResult:
    """
    Approximate the keywords an NLU provider would report for optimized text.

    This is a heuristic, not a real analysis. Each target keyword found on a
    word boundary gets relevance 0.95; found only as a substring, 0.8 with
    " (partial)" appended. Every 1-3 word phrase of the text is then added
    with relevance 0.7 - 0.1 * words, skipping phrases under 3 characters and
    case-insensitive duplicates. The list is sorted by relevance and cut to 15.

    Args:
        optimized_text: Text returned by the LLM.
        target_keywords: Keywords to look for.
        prior_result: Result whose other fields are carried over.

    Returns:
        A copy of prior_result (or an empty result) with synthesized keywords.
    """
    lower_content = optimized_text.lower()
    mock_keywords: list[KeywordItem] = []

    for keyword in target_keywords:
        lower_keyword = keyword.lower().strip()
        exact_re = re.compile(rf"(^|\s|[,.;!?]){re.escape(lower_keyword)}($|\s|[,.;!?])", re.IGNORECASE)

        if exact_re.search(lower_content):
            mock_keywords.append(KeywordItem(text=keyword, relevance=EXACT_MATCH_RELEVANCE, count=1))
        elif lower_keyword in lower_content:
            mock_keywords.append(
                KeywordItem(text=f"{keyword} (partial)", relevance=PARTIAL_MATCH_RELEVANCE, count=1)
            )
        else:
            logger.debug(f"Mock analysis: no match for '{keyword}'")

    seen = {k.text.lower() for k in mock_keywords}
    words = optimized_text.split()
    for i in range(len(words)):
        for j in range(1, NGRAM_MAX_WORDS + 1):
            if i + j > len(words):
                continue
            phrase = " ".join(words[i:i + j])
            if len(phrase) < NGRAM_MIN_CHARS or phrase.lower() in seen:
                continue
            seen.add(phrase.lower())
            mock_keywords.append(
                KeywordItem(
                    text=phrase,
                    relevance=NGRAM_BASE_RELEVANCE - NGRAM_DECAY_PER_WORD * j,
                    count=1,
                )
            )

    ranked = sorted(mock_keywords, key=lambda k: k.relevance, reverse=True)[:MOCK_KEYWORD_LIMIT]

    base = prior_result if prior_result is not None else AnalysisResult()
    return dataclasses.replace(base, keywords=ranked)


class TextOptimizer:
    """
    Orchestrates one keyword optimization.

    The LLM adapter is created through client_factory so tests and callers
    can substitute it.
    """

    def __init__(
        self,
        store: SessionStore,
        cost_tracker: Optional[CostTracker] = None,
        client_factory: Callable[[str, str], LLMClient] = create_llm_client,
    ):
        self.store = store
        self.cost_tracker = cost_tracker or CostTracker(store)
        self.client_factory = client_factory

    async def optimize(
        self,
        text: str,
        target_keywords: list[str],
        prior_result: Optional[AnalysisResult],
        api_key: str,
        model: str,
    ) -> OptimizationResult:
        """
        Optimize text for target keywords.

        Args:
            text: Original text.
            target_keywords: Keywords to work into the text.
            prior_result: Analysis of the original text.
            api_key: Key for the model's provider.
            model: Model identifier.

        Returns:
            OptimizationResult with optimized text, mock analysis, keyword
            statuses and the recorded cost (None when degraded or unpriced).

        Raises:
            ValueError: If text is empty.
            AnalyzerError: Any adapter failure, with `guidance` set.
        """
        request = OptimizationRequest(
            original_text=text,
            target_keywords=target_keywords,
            prior_result=prior_result if prior_result is not None else AnalysisResult(),
            model=model,
            api_key=api_key,
        )
        return await self.run(request)

    async def run(self, request: OptimizationRequest) -> OptimizationResult:
        """Run an optimization described by an OptimizationRequest."""
        if not request.original_text or not request.original_text.strip():
            raise ValueError("Please enter text to optimize.")

        provider = request.provider or provider_for_model(request.model)

        try:
            if not request.api_key:
                raise MissingCredentialsError(
                    f"Please enter your {provider.value} API key in the AI configuration."
                )

            warning = validate_api_key_format(request.api_key, provider.value)
            if warning:
                logger.warning(f"API key format warning: {warning}")

            focus_keywords = filter_target_keywords(request.target_keywords, request.prior_result)
            prompt = build_optimization_prompt(
                request.original_text,
                request.target_keywords,
                request.prior_result,
                focus_keywords,
            )

            logger.info(f"Starting optimization with {provider.value} model: {request.model}")
            client = self.client_factory(request.api_key, request.model)
            completion = await client.complete(prompt, request.target_keywords)

            if not completion.text or not completion.text.strip():
                raise EmptyResponseError(
                    "The AI returned an empty response. Please try again or try a different model."
                )
        except AnalyzerError as e:
            e.guidance = user_guidance(e)
            logger.error(f"Optimization failed: {e.message}")
            raise

        self.store.set(AI_MODEL, request.model)
        optimized_text = completion.text

        optimized_analysis = mock_analysis_for_keywords(
            optimized_text, request.target_keywords, request.prior_result
        )

        cost_record = None
        if completion.is_degraded:
            logger.warning("Optimization returned fallback text; no cost recorded")
        else:
            cost_record = self.cost_tracker.track_operation(
                request.model, request.original_text, optimized_text
            )

        return OptimizationResult(
            optimized_text=optimized_text,
            outcome=completion.outcome,
            model=request.model,
            focus_keywords=focus_keywords,
            optimized_analysis=optimized_analysis,
            cost_record=cost_record,
            keyword_statuses=keyword_statuses(request.target_keywords, optimized_analysis),
        )
