"""
NLU Content Analyzer

Text analysis and keyword optimization tool that:
- Analyzes text with IBM Watson NLU or Google Cloud Natural Language
- Classifies target keywords against the analysis (optimized / partial / missing)
- Rewrites text for target keywords with OpenAI or Anthropic models
- Tracks estimated LLM spend against per-provider budgets
"""

__version__ = "1.0.0"
__author__ = "NLU Content Analyzer Team"

from .config import (
    AnalysisConfig,
    GoogleCredentials,
    OptimizationSettings,
    WatsonCredentials,
)

from .models import (
    Feature,
    AnalysisProvider,
    AIProvider,
    KeywordStatus,
    OptimizationOutcome,
    AnalysisRequest,
    AnalysisResult,
    TextStats,
    CostRecord,
    Budget,
    OptimizationRequest,
    OptimizationResult,
)

from .errors import (
    AnalyzerError,
    MissingCredentialsError,
    UnsupportedProviderError,
    ApiError,
    AuthError,
    ResponseFormatError,
    EmptyResponseError,
)

# Session state and cost tracking
from .session_store import (
    SessionStore,
    InMemorySessionStore,
    JsonFileSessionStore,
)

from .cost_tracker import (
    CostTracker,
    estimate_cost,
)

# Orchestrators
from .analyzer import AnalysisOrchestrator
from .optimizer import TextOptimizer

from .keyword_matcher import (
    match_status,
    keyword_statuses,
    keywords_to_optimize,
)

from .text_stats import calculate_text_stats

__all__ = [
    # Configuration
    "AnalysisConfig",
    "GoogleCredentials",
    "OptimizationSettings",
    "WatsonCredentials",
    # Models
    "Feature",
    "AnalysisProvider",
    "AIProvider",
    "KeywordStatus",
    "OptimizationOutcome",
    "AnalysisRequest",
    "AnalysisResult",
    "TextStats",
    "CostRecord",
    "Budget",
    "OptimizationRequest",
    "OptimizationResult",
    # Errors
    "AnalyzerError",
    "MissingCredentialsError",
    "UnsupportedProviderError",
    "ApiError",
    "AuthError",
    "ResponseFormatError",
    "EmptyResponseError",
    # Session state
    "SessionStore",
    "InMemorySessionStore",
    "JsonFileSessionStore",
    "CostTracker",
    "estimate_cost",
    # Orchestrators
    "AnalysisOrchestrator",
    "TextOptimizer",
    # Keyword matching
    "match_status",
    "keyword_statuses",
    "keywords_to_optimize",
    "calculate_text_stats",
]
