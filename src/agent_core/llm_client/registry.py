"""Explicit registry of model endpoints.

Replaces a process-wide provider map: the host builds one registry, adds
the models it can reach and hands chains built from it to sessions.
"""

from collections.abc import Sequence
from typing import Any

from agent_core.llm_client.fallback import FallbackModel, MultiplexedFallbackModel
from agent_core.llm_client.pricing import ModelPricing
from agent_core.llm_client.types import StreamingModel, endpoint_key
from agent_core.telemetry import get_logger

log = get_logger(__name__)


class ModelRegistry:
    """Models addressable by ``provider/model_id``."""

    def __init__(self) -> None:
        self._models: dict[str, StreamingModel] = {}
        self._pricing: dict[str, ModelPricing] = {}

    def add(self, model: StreamingModel, pricing: ModelPricing | None = None) -> str:
        """Register a model.

        Args:
            model: The endpoint.
            pricing: Per-model pricing, if known.

        Returns:
            The key the model is registered under.

        Raises:
            ValueError: If a model with the same key is already registered.
        """
        key = endpoint_key(model)
        if key in self._models:
            raise ValueError(f"Model '{key}' is already registered")
        self._models[key] = model
        if pricing is not None:
            self._pricing[key] = pricing
        log.debug("model_registered", endpoint=key)
        return key

    def remove(self, key: str) -> bool:
        """Unregister a model. Returns True if it was registered."""
        self._pricing.pop(key, None)
        removed = self._models.pop(key, None) is not None
        if removed:
            log.debug("model_unregistered", endpoint=key)
        return removed

    def get(self, key: str) -> StreamingModel | None:
        return self._models.get(key)

    def list(self) -> list[str]:
        return list(self._models)

    def pricing_for(self, key: str) -> ModelPricing | None:
        return self._pricing.get(key)

    def build_chain(
        self, keys: Sequence[str], *, multiplexed: bool = False, **options: Any
    ) -> StreamingModel:
        """Build a model for a chain of keys.

        A single key returns that model unchanged; several keys are wrapped in
        a ``FallbackModel`` (or ``MultiplexedFallbackModel``).

        Args:
            keys: Primary key followed by fallbacks.
            multiplexed: The keys share one multiplexed endpoint.
            **options: Passed to the fallback model (observer, cooldown settings).

        Raises:
            KeyError: If a key is not registered.
            ValueError: If no keys are given.
        """
        if not keys:
            raise ValueError("build_chain needs at least one model key")
        missing = [key for key in keys if key not in self._models]
        if missing:
            raise KeyError(f"Unknown model(s): {', '.join(missing)}")

        models = [self._models[key] for key in keys]
        if len(models) == 1:
            return models[0]
        chain_class = MultiplexedFallbackModel if multiplexed else FallbackModel
        return chain_class(models, **options)
