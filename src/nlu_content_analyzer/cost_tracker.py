"""
Cost estimation and budget tracking for LLM optimization calls.

Costs are estimated locally from character counts, not billed amounts:
tokens = ceil(chars * tokens_per_char), cost = tokens / 1M * rate.
Each successful optimization appends an immutable CostRecord to the
session history and is charged against the provider's remaining budget.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Optional

from .model_catalog import provider_for_model
from .models import AIProvider, Budget, CostRecord
from .session_store import COST_HISTORY, REMAINING_BUDGET, TOTAL_COST, SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelCostData:
    """Per-model pricing (USD per 1M tokens) and chars-to-tokens ratios."""
    name: str
    input_cost_per_1m: float
    output_cost_per_1m: float
    tokens_per_char_input: float = 0.25
    tokens_per_char_output: float = 0.25


MODEL_COSTS: dict[str, ModelCostData] = {
    "gpt-4o-mini": ModelCostData("GPT-4o-mini", 1.00, 3.00),
    "gpt-4o": ModelCostData("GPT-4o", 5.00, 15.00),
    "o4-mini": ModelCostData("o4-mini", 1.10, 4.40),
    "o4-mini-2025-04-16": ModelCostData("o4-mini", 1.10, 4.40),
    "o3": ModelCostData("o3", 2.00, 8.00),
    "claude-sonnet-4-0": ModelCostData("Claude 4 Sonnet", 3.00, 15.00),
    "claude-sonnet-4-20250514": ModelCostData("Claude 4 Sonnet", 3.00, 15.00),
    "claude-3-7-sonnet-20250219": ModelCostData("Claude 3.7 Sonnet", 3.00, 15.00),
    "claude-3-haiku-20240307": ModelCostData("Claude 3 Haiku", 0.25, 1.25),
    "claude-haiku-3-5": ModelCostData("Claude Haiku 3.5", 0.80, 4.00),
    "claude-opus-4-0": ModelCostData("Claude Opus 4", 15.00, 75.00),
    "claude-opus-4": ModelCostData("Claude Opus 4", 15.00, 75.00),
    "claude-opus-3": ModelCostData("Claude Opus 3", 15.00, 75.00),
}

DEFAULT_BUDGETS: dict[AIProvider, float] = {
    AIProvider.OPENAI: 5.00,
    AIProvider.ANTHROPIC: 5.00,
}


def estimate_cost(model: str, input_text: str, output_text: str) -> Optional[CostRecord]:
    """
    Estimate the cost of one LLM call.

    Args:
        model: Model identifier.
        input_text: Text sent to the model.
        output_text: Text returned by the model.

    Returns:
        CostRecord, or None if the model has no rate data. A missing rate
        means "no charge recorded", never an error.
    """
    model_data = MODEL_COSTS.get(model)
    if model_data is None:
        logger.warning(f"Model cost data not available for {model}")
        return None

    input_chars = len(input_text)
    output_chars = len(output_text)

    estimated_input_tokens = math.ceil(input_chars * model_data.tokens_per_char_input)
    estimated_output_tokens = math.ceil(output_chars * model_data.tokens_per_char_output)

    input_cost = (estimated_input_tokens / 1_000_000) * model_data.input_cost_per_1m
    output_cost = (estimated_output_tokens / 1_000_000) * model_data.output_cost_per_1m

    return CostRecord(
        timestamp=time.time(),
        model=model,
        input_chars=input_chars,
        output_chars=output_chars,
        estimated_input_tokens=estimated_input_tokens,
        estimated_output_tokens=estimated_output_tokens,
        estimated_cost=input_cost + output_cost,
    )


class CostTracker:
    """
    Tracks estimated spend per AI provider in a SessionStore.

    All mutations go through one lock so concurrent requests in a server
    process cannot lose budget updates.
    """

    def __init__(self, store: SessionStore):
        self.store = store
        self._lock = threading.Lock()

    # -- state accessors -------------------------------------------------

    def _load_money(self, key: str, defaults: dict[AIProvider, float]) -> dict[AIProvider, float]:
        saved = self.store.get(key) or {}
        return {
            provider: float(saved.get(provider.value, default))
            for provider, default in defaults.items()
        }

    def _save_money(self, key: str, values: dict[AIProvider, float]) -> None:
        self.store.set(key, {provider.value: amount for provider, amount in values.items()})

    def _load_history(self) -> list[CostRecord]:
        return [CostRecord.from_dict(r) for r in self.store.get(COST_HISTORY) or []]

    def _save_history(self, history: list[CostRecord]) -> None:
        self.store.set(COST_HISTORY, [r.to_dict() for r in history])

    @property
    def remaining_budget(self) -> dict[AIProvider, float]:
        return self._load_money(REMAINING_BUDGET, DEFAULT_BUDGETS)

    @property
    def total_cost(self) -> dict[AIProvider, float]:
        return self._load_money(TOTAL_COST, {p: 0.0 for p in DEFAULT_BUDGETS})

    def budget(self, provider: AIProvider) -> Budget:
        """Get the budget snapshot for a provider."""
        return Budget(
            provider=provider,
            remaining=self.remaining_budget[provider],
            total_spent=self.total_cost[provider],
        )

    def history(self, provider: Optional[AIProvider] = None) -> list[CostRecord]:
        """Get cost records, optionally only those of one provider."""
        records = self._load_history()
        if provider is None:
            return records
        return [r for r in records if provider_for_model(r.model) == provider]

    def get_model_cost_data(self, model: str) -> Optional[ModelCostData]:
        return MODEL_COSTS.get(model)

    # -- mutations -------------------------------------------------------

    def track_operation(self, model: str, input_text: str, output_text: str) -> Optional[CostRecord]:
        """
        Estimate and record the cost of an operation.

        Args:
            model: Model identifier.
            input_text: Text sent to the model.
            output_text: Text returned by the model.

        Returns:
            The recorded CostRecord, or None if the model has no rate data.
        """
        record = estimate_cost(model, input_text, output_text)
        if record is None:
            return None

        provider = provider_for_model(model)

        with self._lock:
            history = self._load_history()
            history.append(record)
            self._save_history(history)

            remaining = self.remaining_budget
            remaining[provider] = max(0.0, remaining[provider] - record.estimated_cost)
            self._save_money(REMAINING_BUDGET, remaining)

            totals = self.total_cost
            totals[provider] = totals[provider] + record.estimated_cost
            self._save_money(TOTAL_COST, totals)

        logger.info(
            f"Tracked {provider.value} cost ${record.estimated_cost:.5f} for {model}, "
            f"remaining ${remaining[provider]:.2f}"
        )
        return record

    def set_budget(self, provider: AIProvider, amount: float) -> None:
        """Set the remaining budget of a provider."""
        if amount < 0:
            raise ValueError(f"budget must be >= 0, got {amount}")

        with self._lock:
            remaining = self.remaining_budget
            remaining[provider] = float(amount)
            self._save_money(REMAINING_BUDGET, remaining)

    def reset_tracking(self, provider: Optional[AIProvider] = None) -> None:
        """
        Reset history, budget and total spend.

        Args:
            provider: Reset only this provider, leaving the other untouched.
                None resets everything.
        """
        with self._lock:
            if provider is None:
                self._save_history([])
                self._save_money(REMAINING_BUDGET, dict(DEFAULT_BUDGETS))
                self._save_money(TOTAL_COST, {p: 0.0 for p in DEFAULT_BUDGETS})
                logger.info("Reset cost tracking for all providers")
                return

            history = [r for r in self._load_history() if provider_for_model(r.model) != provider]
            self._save_history(history)

            remaining = self.remaining_budget
            remaining[provider] = DEFAULT_BUDGETS[provider]
            self._save_money(REMAINING_BUDGET, remaining)

            totals = self.total_cost
            totals[provider] = 0.0
            self._save_money(TOTAL_COST, totals)

        logger.info(f"Reset cost tracking for {provider.value}")
