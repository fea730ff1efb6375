"""
Data models for NLU Content Analyzer.

This module defines the canonical request/result shapes shared by every
provider adapter, plus the optimization and cost accounting records.
Provider-specific JSON is converted into these types at the adapter
boundary and never travels further.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
import uuid


class Feature(Enum):
    """Analysis features that can be requested from an NLU provider."""
    KEYWORDS = "keywords"
    ENTITIES = "entities"
    CONCEPTS = "concepts"
    CATEGORIES = "categories"
    RELATIONS = "relations"
    CLASSIFICATIONS = "classifications"  # Tone analysis
    SENTIMENT = "sentiment"
    EMOTION = "emotion"
    SEMANTIC_ROLES = "semantic_roles"
    SYNTAX = "syntax"


class AnalysisProvider(Enum):
    """NLU providers supported by the analysis orchestrator."""
    WATSON = "watson"
    GOOGLE = "google"


class AIProvider(Enum):
    """LLM providers supported by the optimization orchestrator."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class KeywordStatus(Enum):
    """How well a target keyword is represented in an analysis result."""
    MISSING = "missing"
    EXACT = "exact"
    PARTIAL = "partial"
    RELEVANT = "relevant"


class OptimizationOutcome(Enum):
    """Outcome of an LLM completion.

    DEGRADED_FALLBACK means the provider could not be used (authentication
    failure) and the text is a descriptive placeholder, not a rewrite.
    """
    SUCCESS = "success"
    DEGRADED_FALLBACK = "degraded_fallback"


def sentiment_label(score: float) -> str:
    """Map a sentiment score sign to a label."""
    if score > 0:
        return "positive"
    if score < 0:
        return "negative"
    return "neutral"


@dataclass
class AnalysisRequest:
    """Canonical analysis request passed to every provider adapter."""
    text: str
    language: str = "auto"
    features: frozenset[Feature] = field(default_factory=frozenset)
    limits: dict[Feature, int] = field(default_factory=dict)
    tone_model: Optional[str] = None

    def __post_init__(self) -> None:
        """Normalize features and validate limits."""
        self.features = frozenset(Feature(f) for f in self.features)
        self.limits = {Feature(k): v for k, v in self.limits.items()}
        for feature, limit in self.limits.items():
            if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
                raise ValueError(
                    f"limit for '{feature.value}' must be a positive integer, got {limit!r}"
                )

    def wants(self, feature: Feature) -> bool:
        """Check if a feature is requested."""
        return feature in self.features

    def limit_for(self, feature: Feature, default: int = 10) -> int:
        """Get the configured limit for a feature."""
        return self.limits.get(feature, default)

    def without(self, feature: Feature) -> "AnalysisRequest":
        """Return a copy of this request with a feature removed."""
        return AnalysisRequest(
            text=self.text,
            language=self.language,
            features=self.features - {feature},
            limits=dict(self.limits),
            tone_model=self.tone_model,
        )


@dataclass
class Sentiment:
    """Sentiment score in [-1, 1] with its label."""
    score: float
    label: str

    @classmethod
    def from_score(cls, score: float) -> "Sentiment":
        return cls(score=score, label=sentiment_label(score))

    def to_dict(self) -> dict:
        return {"score": self.score, "label": self.label}


@dataclass
class Emotion:
    """Emotion scores as returned by Watson."""
    sadness: float = 0.0
    joy: float = 0.0
    fear: float = 0.0
    disgust: float = 0.0
    anger: float = 0.0

    def to_dict(self) -> dict:
        return {
            "sadness": self.sadness,
            "joy": self.joy,
            "fear": self.fear,
            "disgust": self.disgust,
            "anger": self.anger,
        }


@dataclass
class KeywordItem:
    """A keyword extracted from the analyzed text."""
    text: str
    relevance: float
    count: int = 1
    sentiment: Optional[Sentiment] = None


@dataclass
class EntityItem:
    """A named entity extracted from the analyzed text."""
    text: str
    type: str
    relevance: float
    confidence: Optional[float] = None
    count: int = 1
    sentiment: Optional[Sentiment] = None


@dataclass
class ConceptItem:
    """A high-level concept related to the text."""
    text: str
    relevance: float
    dbpedia_resource: Optional[str] = None


@dataclass
class CategoryItem:
    """A hierarchical category, e.g. 'technology and computing > software'."""
    label: str
    score: float
    explanation: Optional[str] = None


@dataclass
class RelationArgument:
    """One side of a relation."""
    text: str
    entities: list[dict[str, str]] = field(default_factory=list)


@dataclass
class RelationItem:
    """A relation between two arguments of a sentence."""
    type: str
    score: float
    sentence: str = ""
    arguments: list[RelationArgument] = field(default_factory=list)


@dataclass
class ClassificationItem:
    """A tone classification."""
    class_name: str
    confidence: float


@dataclass
class SemanticRoleItem:
    """Subject/action/object parse of a sentence."""
    sentence: str
    subject: Optional[str] = None
    action: Optional[str] = None
    object: Optional[str] = None


@dataclass
class SyntaxToken:
    """A token with its part of speech and lemma."""
    text: str
    part_of_speech: Optional[str] = None
    lemma: Optional[str] = None


@dataclass
class AnalysisResult:
    """
    Normalized analysis result.

    Every provider adapter produces this shape. Sequences keep the order the
    provider returned them in (relevance order for keywords/entities).
    """
    language: str = "unknown"
    keywords: list[KeywordItem] = field(default_factory=list)
    entities: list[EntityItem] = field(default_factory=list)
    concepts: list[ConceptItem] = field(default_factory=list)
    categories: list[CategoryItem] = field(default_factory=list)
    relations: list[RelationItem] = field(default_factory=list)
    classifications: list[ClassificationItem] = field(default_factory=list)
    semantic_roles: list[SemanticRoleItem] = field(default_factory=list)
    syntax_tokens: list[SyntaxToken] = field(default_factory=list)
    sentiment: Optional[Sentiment] = None
    emotion: Optional[Emotion] = None
    provider: Optional[str] = None
    request_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the Watson-shaped JSON form used by exports and the API."""
        data: dict[str, Any] = {"language": self.language}
        if self.keywords:
            data["keywords"] = [
                {
                    "text": k.text,
                    "relevance": k.relevance,
                    "count": k.count,
                    "sentiment": k.sentiment.to_dict() if k.sentiment else None,
                }
                for k in self.keywords
            ]
        if self.entities:
            data["entities"] = [
                {
                    "type": e.type,
                    "text": e.text,
                    "relevance": e.relevance,
                    "confidence": e.confidence,
                    "count": e.count,
                    "sentiment": e.sentiment.to_dict() if e.sentiment else None,
                }
                for e in self.entities
            ]
        if self.concepts:
            data["concepts"] = [
                {"text": c.text, "relevance": c.relevance, "dbpedia_resource": c.dbpedia_resource}
                for c in self.concepts
            ]
        if self.categories:
            data["categories"] = [
                {"label": c.label, "score": c.score, "explanation": c.explanation}
                for c in self.categories
            ]
        if self.relations:
            data["relations"] = [
                {
                    "type": r.type,
                    "score": r.score,
                    "sentence": r.sentence,
                    "arguments": [
                        {"text": a.text, "entities": a.entities} for a in r.arguments
                    ],
                }
                for r in self.relations
            ]
        if self.classifications:
            data["classifications"] = [
                {"class_name": c.class_name, "confidence": c.confidence}
                for c in self.classifications
            ]
        if self.semantic_roles:
            data["semantic_roles"] = [
                {
                    "sentence": s.sentence,
                    "subject": {"text": s.subject} if s.subject else None,
                    "action": {"text": s.action} if s.action else None,
                    "object": {"text": s.object} if s.object else None,
                }
                for s in self.semantic_roles
            ]
        if self.syntax_tokens:
            data["syntax"] = {
                "tokens": [
                    {"text": t.text, "part_of_speech": t.part_of_speech, "lemma": t.lemma}
                    for t in self.syntax_tokens
                ]
            }
        if self.sentiment:
            data["sentiment"] = {"document": self.sentiment.to_dict()}
        if self.emotion:
            data["emotion"] = {"document": {"emotion": self.emotion.to_dict()}}
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisResult":
        """Build a result from its Watson-shaped JSON form."""
        def _sentiment(raw: Optional[dict]) -> Optional[Sentiment]:
            if not raw or raw.get("score") is None:
                return None
            score = float(raw["score"])
            return Sentiment(score=score, label=raw.get("label") or sentiment_label(score))

        def _text(raw: Optional[dict]) -> Optional[str]:
            return raw.get("text") if raw else None

        document_sentiment = (data.get("sentiment") or {}).get("document")
        emotion_raw = ((data.get("emotion") or {}).get("document") or {}).get("emotion")

        return cls(
            language=data.get("language") or "unknown",
            keywords=[
                KeywordItem(
                    text=k.get("text", ""),
                    relevance=float(k.get("relevance", 0.0)),
                    count=int(k.get("count") or 1),
                    sentiment=_sentiment(k.get("sentiment")),
                )
                for k in data.get("keywords") or []
            ],
            entities=[
                EntityItem(
                    text=e.get("text", ""),
                    type=e.get("type", ""),
                    relevance=float(e.get("relevance", 0.0)),
                    confidence=e.get("confidence"),
                    count=int(e.get("count") or 1),
                    sentiment=_sentiment(e.get("sentiment")),
                )
                for e in data.get("entities") or []
            ],
            concepts=[
                ConceptItem(
                    text=c.get("text", ""),
                    relevance=float(c.get("relevance", 0.0)),
                    dbpedia_resource=c.get("dbpedia_resource"),
                )
                for c in data.get("concepts") or []
            ],
            categories=[
                CategoryItem(
                    label=c.get("label", ""),
                    score=float(c.get("score", 0.0)),
                    explanation=c.get("explanation"),
                )
                for c in data.get("categories") or []
            ],
            relations=[
                RelationItem(
                    type=r.get("type", ""),
                    score=float(r.get("score", 0.0)),
                    sentence=r.get("sentence", ""),
                    arguments=[
                        RelationArgument(text=a.get("text", ""), entities=a.get("entities") or [])
                        for a in r.get("arguments") or []
                    ],
                )
                for r in data.get("relations") or []
            ],
            classifications=[
                ClassificationItem(
                    class_name=c.get("class_name", ""),
                    confidence=float(c.get("confidence", 0.0)),
                )
                for c in data.get("classifications") or []
            ],
            semantic_roles=[
                SemanticRoleItem(
                    sentence=s.get("sentence", ""),
                    subject=_text(s.get("subject")),
                    action=_text(s.get("action")),
                    object=_text(s.get("object")),
                )
                for s in data.get("semantic_roles") or []
            ],
            syntax_tokens=[
                SyntaxToken(
                    text=t.get("text", ""),
                    part_of_speech=t.get("part_of_speech"),
                    lemma=t.get("lemma"),
                )
                for t in (data.get("syntax") or {}).get("tokens") or []
            ],
            sentiment=_sentiment(document_sentiment),
            emotion=Emotion(**emotion_raw) if emotion_raw else None,
        )


@dataclass
class TextStats:
    """Basic statistics of an input text."""
    word_count: int
    sentence_count: int
    char_count: int


@dataclass
class CompletionResult:
    """Text returned by an LLM adapter together with its outcome."""
    text: str
    outcome: OptimizationOutcome = OptimizationOutcome.SUCCESS
    model: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.outcome == OptimizationOutcome.DEGRADED_FALLBACK


@dataclass(frozen=True)
class CostRecord:
    """Estimated cost of a single optimization call. Immutable once created."""
    timestamp: float
    model: str
    input_chars: int
    output_chars: int
    estimated_input_tokens: int
    estimated_output_tokens: int
    estimated_cost: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "model": self.model,
            "inputChars": self.input_chars,
            "outputChars": self.output_chars,
            "estimatedInputTokens": self.estimated_input_tokens,
            "estimatedOutputTokens": self.estimated_output_tokens,
            "estimatedCost": self.estimated_cost,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CostRecord":
        return cls(
            timestamp=float(data["timestamp"]),
            model=data["model"],
            input_chars=int(data["inputChars"]),
            output_chars=int(data["outputChars"]),
            estimated_input_tokens=int(data["estimatedInputTokens"]),
            estimated_output_tokens=int(data["estimatedOutputTokens"]),
            estimated_cost=float(data["estimatedCost"]),
        )


@dataclass
class Budget:
    """Remaining allowance and total spend for one AI provider."""
    provider: AIProvider
    remaining: float
    total_spent: float = 0.0


@dataclass
class OptimizationRequest:
    """Everything needed to run one keyword optimization."""
    original_text: str
    target_keywords: list[str]
    prior_result: AnalysisResult
    model: str
    api_key: str
    provider: Optional[AIProvider] = None

    def __post_init__(self) -> None:
        """Deduplicate target keywords, keeping the first occurrence."""
        seen: set[str] = set()
        unique: list[str] = []
        for kw in self.target_keywords:
            kw = kw.strip()
            if kw and kw not in seen:
                seen.add(kw)
                unique.append(kw)
        self.target_keywords = unique


@dataclass
class OptimizationResult:
    """Result of an optimization run."""
    optimized_text: str
    outcome: OptimizationOutcome
    model: str
    focus_keywords: list[str] = field(default_factory=list)
    optimized_analysis: Optional[AnalysisResult] = None
    cost_record: Optional[CostRecord] = None
    keyword_statuses: dict[str, KeywordStatus] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_degraded(self) -> bool:
        return self.outcome == OptimizationOutcome.DEGRADED_FALLBACK
