"""
FastAPI wrapper for NLU Content Analyzer - Vercel Serverless Function.

This module exposes text analysis, keyword optimization and cost tracking
as a REST API.
"""

import os
from typing import Optional, Union

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nlu_content_analyzer import __version__
from nlu_content_analyzer.analyzer import AnalysisOrchestrator
from nlu_content_analyzer.config import (
    DEFAULT_FEATURES,
    DEFAULT_LIMITS,
    AnalysisConfig,
    GoogleCredentials,
    OptimizationSettings,
    WatsonCredentials,
)
from nlu_content_analyzer.cost_tracker import CostTracker
from nlu_content_analyzer.errors import (
    AnalyzerError,
    AuthError,
    MissingCredentialsError,
    UnsupportedProviderError,
    validate_api_key_format,
)
from nlu_content_analyzer.export import default_export_filename, generate_csv, generate_json
from nlu_content_analyzer.keyword_loader import parse_keyword_list
from nlu_content_analyzer.keyword_matcher import keyword_statuses
from nlu_content_analyzer.model_catalog import MODELS
from nlu_content_analyzer.models import AIProvider, AnalysisResult, Feature
from nlu_content_analyzer.optimizer import TextOptimizer
from nlu_content_analyzer.session_store import (
    ANALYSIS_PROVIDER,
    ANTHROPIC_API_KEY,
    OPENAI_API_KEY,
    InMemorySessionStore,
    JsonFileSessionStore,
    SessionStore,
)
from nlu_content_analyzer.text_stats import calculate_text_stats

app = FastAPI(
    title="NLU Content Analyzer API",
    description="Text analysis with Watson / Google NLU and LLM keyword optimization with cost tracking",
    version=__version__,
)

# Enable CORS for all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Session state
# ============================================================================

_session_file = os.environ.get("NLU_SESSION_FILE")
_store: SessionStore = JsonFileSessionStore(_session_file) if _session_file else InMemorySessionStore()


def get_store() -> SessionStore:
    """Session store shared by all requests."""
    return _store


def get_orchestrator(store: SessionStore = Depends(get_store)) -> AnalysisOrchestrator:
    watson = WatsonCredentials.from_env()
    google = GoogleCredentials.from_env()
    return AnalysisOrchestrator(
        store,
        watson_credentials=watson if watson.api_key else None,
        google_credentials=google if google.api_key else None,
    )


def get_optimizer(store: SessionStore = Depends(get_store)) -> TextOptimizer:
    return TextOptimizer(store)


def get_cost_tracker(store: SessionStore = Depends(get_store)) -> CostTracker:
    return CostTracker(store)


# ============================================================================
# Request / response models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class AnalyzeRequest(BaseModel):
    """Request model for text analysis."""
    text: str = Field(..., description="Text to analyze")
    provider: Optional[str] = Field(None, description="'watson' or 'google'; defaults to the session selection")
    language: str = Field("auto", description="Language code or 'auto'")
    features: list[str] = Field(
        default_factory=lambda: sorted(f.value for f in DEFAULT_FEATURES),
        description="Features to request",
    )
    limits: dict[str, int] = Field(
        default_factory=lambda: {f.value: n for f, n in DEFAULT_LIMITS.items()},
        description="Maximum items per feature",
    )
    tone_model: Optional[str] = Field(None, description="Watson tone model; defaults from language")


class AnalyzeResponse(BaseModel):
    """Response model for analysis results."""
    request_id: str
    provider: str
    result: dict
    statistics: dict


class OptimizeRequest(BaseModel):
    """Request model for keyword optimization."""
    text: str = Field(..., description="Original text")
    target_keywords: Union[list[str], str] = Field(..., description="Keywords as a list or comma-separated string")
    prior_analysis: Optional[dict] = Field(None, description="Analysis of the original text (Watson-shaped JSON)")
    model: str = Field("o4-mini", description="LLM model id")
    api_key: Optional[str] = Field(None, description="API key; defaults to the session or environment key")


class OptimizeResponse(BaseModel):
    """Response model for optimization results."""
    request_id: str
    optimized_text: str
    outcome: str
    model: str
    focus_keywords: list[str]
    keyword_statuses: dict[str, str]
    optimized_analysis: Optional[dict] = None
    cost: Optional[dict] = None
    remaining_budget: float
    warning: Optional[str] = None


class KeywordStatusRequest(BaseModel):
    """Request model for keyword status checks."""
    keywords: Union[list[str], str]
    analysis: dict


class BudgetRequest(BaseModel):
    provider: AIProvider
    amount: float = Field(..., ge=0)


class ResetRequest(BaseModel):
    provider: Optional[AIProvider] = Field(None, description="Provider to reset; all when omitted")


class WatsonCredentialsInput(BaseModel):
    """Watson credentials supplied by the user."""
    api_key: str
    url: str = ""
    region: str = "eu-de"
    instance_id: str = ""
    auth_type: str = "iam"


class ExportRequest(BaseModel):
    analysis: dict
    text: Optional[str] = None


# ============================================================================
# Helpers
# ============================================================================

def _keyword_list(value: Union[list[str], str]) -> list[str]:
    if isinstance(value, str):
        return parse_keyword_list(value)
    return [kw.strip() for kw in value if kw.strip()]


def _http_error(error: AnalyzerError) -> HTTPException:
    """Map an analyzer error to an HTTP error carrying its user guidance."""
    if isinstance(error, (MissingCredentialsError, UnsupportedProviderError)):
        status_code = 400
    elif isinstance(error, AuthError):
        status_code = 401
    else:
        status_code = 502
    return HTTPException(status_code=status_code, detail=error.guidance or error.message)


def _analysis_config(request: AnalyzeRequest) -> AnalysisConfig:
    try:
        return AnalysisConfig(
            language=request.language,
            features=frozenset(Feature(f) for f in request.features),
            limits={Feature(k): v for k, v in request.limits.items()},
            tone_model=request.tone_model,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@app.post("/api/analyze", response_model=AnalyzeResponse)
async def analyze_text(
    request: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Analyze text with Watson or Google NLU.

    Returns the normalized result in Watson shape plus text statistics.
    """
    config = _analysis_config(request)

    try:
        result = await orchestrator.analyze_text(request.text, config, request.provider)
    except AnalyzerError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    stats = calculate_text_stats(request.text)
    return AnalyzeResponse(
        request_id=result.request_id,
        provider=result.provider or "",
        result=result.to_dict(),
        statistics={
            "wordCount": stats.word_count,
            "sentenceCount": stats.sentence_count,
            "charCount": stats.char_count,
        },
    )


@app.post("/api/optimize", response_model=OptimizeResponse)
async def optimize_text(
    request: OptimizeRequest,
    store: SessionStore = Depends(get_store),
    optimizer: TextOptimizer = Depends(get_optimizer),
):
    """
    Optimize text for target keywords with OpenAI or Anthropic.

    The API key falls back to the one saved in the session, then to the
    OPENAI_API_KEY / ANTHROPIC_API_KEY environment variables.
    """
    settings = OptimizationSettings.from_env(model=request.model)
    session_key = store.get(ANTHROPIC_API_KEY if settings.provider == AIProvider.ANTHROPIC else OPENAI_API_KEY)
    api_key = request.api_key or session_key or settings.api_key

    prior = AnalysisResult.from_dict(request.prior_analysis) if request.prior_analysis else None

    try:
        result = await optimizer.optimize(
            request.text,
            _keyword_list(request.target_keywords),
            prior,
            api_key,
            settings.model,
        )
    except AnalyzerError as e:
        raise _http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return OptimizeResponse(
        request_id=result.request_id,
        optimized_text=result.optimized_text,
        outcome=result.outcome.value,
        model=result.model,
        focus_keywords=result.focus_keywords,
        keyword_statuses={k: s.value for k, s in result.keyword_statuses.items()},
        optimized_analysis=result.optimized_analysis.to_dict() if result.optimized_analysis else None,
        cost=result.cost_record.to_dict() if result.cost_record else None,
        remaining_budget=optimizer.cost_tracker.budget(settings.provider).remaining,
        warning=validate_api_key_format(api_key, settings.provider.value),
    )


@app.post("/api/keywords/status")
async def check_keyword_status(request: KeywordStatusRequest):
    """Classify target keywords against an analysis result."""
    result = AnalysisResult.from_dict(request.analysis)
    statuses = keyword_statuses(_keyword_list(request.keywords), result)
    return {"statuses": {k: s.value for k, s in statuses.items()}}


@app.get("/api/costs")
async def get_costs(tracker: CostTracker = Depends(get_cost_tracker)):
    """Get budgets, total spend and cost history."""
    return {
        "remaining_budget": {p.value: v for p, v in tracker.remaining_budget.items()},
        "total_cost": {p.value: v for p, v in tracker.total_cost.items()},
        "history": [r.to_dict() for r in tracker.history()],
    }


@app.post("/api/costs/reset")
async def reset_costs(request: ResetRequest, tracker: CostTracker = Depends(get_cost_tracker)):
    """Reset cost tracking for one provider or all."""
    tracker.reset_tracking(request.provider)
    return {"status": "reset", "provider": request.provider.value if request.provider else "all"}


@app.post("/api/costs/budget")
async def set_budget(request: BudgetRequest, tracker: CostTracker = Depends(get_cost_tracker)):
    """Set the remaining budget of a provider."""
    tracker.set_budget(request.provider, request.amount)
    return {"provider": request.provider.value, "remaining": tracker.remaining_budget[request.provider]}


@app.get("/api/models")
async def list_models():
    """List available LLM models."""
    return {
        "models": [
            {
                "id": m.id,
                "name": m.name,
                "provider": m.provider.value,
                "param_style": m.param_style,
                "description": m.description,
                "cost_effective": m.cost_effective,
            }
            for m in MODELS.values()
        ]
    }


@app.post("/api/credentials/watson")
async def save_watson_credentials(
    credentials: WatsonCredentialsInput,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Save Watson credentials in the session."""
    creds = WatsonCredentials(**credentials.model_dump())
    orchestrator.save_watson_credentials(creds)
    return {"region": creds.region, "endpoint_url": creds.endpoint_url}


@app.post("/api/credentials/watson/file")
async def upload_watson_credentials(
    file: UploadFile = File(..., description="ibm-credentials.env file"),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Import Watson credentials from an ibm-credentials.env upload."""
    content = (await file.read()).decode("utf-8", errors="replace")
    try:
        creds = WatsonCredentials.from_credentials_text(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    orchestrator.save_watson_credentials(creds)
    return {"region": creds.region, "instance_id": creds.instance_id, "endpoint_url": creds.endpoint_url}


@app.post("/api/provider/{provider}")
async def select_provider(provider: str, store: SessionStore = Depends(get_store)):
    """Select the analysis provider for the session."""
    if provider not in ("watson", "google"):
        raise HTTPException(status_code=400, detail=f"Unsupported analysis provider: {provider}")
    store.set(ANALYSIS_PROVIDER, provider)
    return {"provider": provider}


@app.post("/api/export/{fmt}")
async def export_analysis(fmt: str, request: ExportRequest):
    """Export an analysis as CSV or JSON."""
    result = AnalysisResult.from_dict(request.analysis)
    stats = calculate_text_stats(request.text) if request.text else None

    if fmt == "csv":
        content, media_type = generate_csv(result), "text/csv"
    elif fmt == "json":
        content, media_type = generate_json(result, stats), "application/json"
    else:
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {fmt}")

    filename = default_export_filename(fmt)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/info")
async def api_info():
    """Get API information and usage instructions."""
    return {
        "name": "NLU Content Analyzer API",
        "version": __version__,
        "description": "Text analysis and keyword optimization",
        "endpoints": {
            "GET /api/health": "Health check",
            "POST /api/analyze": "Analyze text with Watson or Google NLU",
            "POST /api/optimize": "Optimize text for target keywords with an LLM",
            "POST /api/keywords/status": "Classify keywords against an analysis",
            "GET /api/costs": "Budgets, spend and cost history",
            "POST /api/costs/reset": "Reset cost tracking",
            "POST /api/costs/budget": "Set a provider budget",
            "GET /api/models": "List LLM models",
            "POST /api/credentials/watson": "Save Watson credentials",
            "POST /api/credentials/watson/file": "Import ibm-credentials.env",
            "POST /api/provider/{provider}": "Select analysis provider",
            "POST /api/export/{fmt}": "Export analysis as csv or json",
            "GET /api/info": "This endpoint",
        },
        "documentation": "/docs",
        "openapi": "/openapi.json",
    }
