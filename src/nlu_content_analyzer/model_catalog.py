"""
Catalog of LLM models available for text optimization.

Each model id maps to its provider and to the token-limit parameter style
the provider expects. Models not listed explicitly are resolved through
PREFIX_RULES, so a new model family is a data addition here rather than a
code change in the adapters.
"""

from dataclasses import dataclass
from typing import Literal

from .models import AIProvider


# "max_tokens": classic chat models, accept temperature.
# "max_completion_tokens": reasoning models, reject max_tokens and temperature.
ParamStyle = Literal["max_tokens", "max_completion_tokens"]


@dataclass(frozen=True)
class ModelConfig:
    """Capabilities of a single LLM model."""
    id: str
    name: str
    provider: AIProvider
    param_style: ParamStyle = "max_tokens"
    description: str = ""
    cost_effective: bool = False


MODELS: dict[str, ModelConfig] = {
    "o4-mini": ModelConfig(
        id="o4-mini",
        name="o4-mini",
        provider=AIProvider.OPENAI,
        param_style="max_completion_tokens",
        description="Cost-effective OpenAI model for general purpose tasks",
        cost_effective=True,
    ),
    "o3": ModelConfig(
        id="o3",
        name="o3",
        provider=AIProvider.OPENAI,
        param_style="max_completion_tokens",
        description="High-performance OpenAI model with advanced capabilities",
    ),
    "gpt-4o-mini": ModelConfig(
        id="gpt-4o-mini",
        name="GPT-4o-mini",
        provider=AIProvider.OPENAI,
        description="Fast, inexpensive OpenAI chat model",
        cost_effective=True,
    ),
    "gpt-4o": ModelConfig(
        id="gpt-4o",
        name="GPT-4o",
        provider=AIProvider.OPENAI,
        description="OpenAI flagship chat model",
    ),
    "claude-sonnet-4-0": ModelConfig(
        id="claude-sonnet-4-0",
        name="Claude Sonnet 4",
        provider=AIProvider.ANTHROPIC,
        description="Cost-effective Anthropic model with good performance",
        cost_effective=True,
    ),
    "claude-opus-4-0": ModelConfig(
        id="claude-opus-4-0",
        name="Claude Opus 4",
        provider=AIProvider.ANTHROPIC,
        description="High-performance Anthropic model with superior capabilities",
    ),
}

# Ordered (prefix, provider, param_style) rules for ids not in MODELS.
# Anything that matches no rule is an OpenAI chat model.
PREFIX_RULES: list[tuple[str, AIProvider, ParamStyle]] = [
    ("claude", AIProvider.ANTHROPIC, "max_tokens"),
    ("o3", AIProvider.OPENAI, "max_completion_tokens"),
    ("o4", AIProvider.OPENAI, "max_completion_tokens"),
]

DEFAULT_MODEL = "o4-mini"


def resolve_model(model_id: str) -> ModelConfig:
    """
    Resolve a model id to its capabilities.

    Args:
        model_id: Model identifier, e.g. "o4-mini" or "claude-sonnet-4-20250514".

    Returns:
        ModelConfig from the catalog, or one derived from PREFIX_RULES.
    """
    if model_id in MODELS:
        return MODELS[model_id]

    for prefix, provider, param_style in PREFIX_RULES:
        if model_id.startswith(prefix):
            return ModelConfig(id=model_id, name=model_id, provider=provider, param_style=param_style)

    return ModelConfig(id=model_id, name=model_id, provider=AIProvider.OPENAI)


def provider_for_model(model_id: str) -> AIProvider:
    """Get the provider that serves a model id."""
    return resolve_model(model_id).provider


def get_model_by_id(model_id: str):
    """Get a catalog entry, or None if the id is not listed."""
    return MODELS.get(model_id)


def get_models_by_provider(provider: AIProvider) -> list[ModelConfig]:
    return [m for m in MODELS.values() if m.provider == provider]


def get_cost_effective_models() -> list[ModelConfig]:
    return [m for m in MODELS.values() if m.cost_effective]


def get_high_performance_models() -> list[ModelConfig]:
    return [m for m in MODELS.values() if not m.cost_effective]
