"""
Provider registry.

Maps ``(providerID, modelID)`` to model handles and holds the native tools
offered for each provider.
"""

import logging

from config import Config
from config.defaults import AVAILABLE_MODELS

from .base import ModelCost, ModelHandle, ModelInfo, ModelLimit, ModelNotFoundError
from .tools import Tool

logger = logging.getLogger(__name__)

ALL_PROVIDERS = "*"


class ProviderRegistry:
    """In-process registry of models and tools."""

    def __init__(self) -> None:
        self._models: dict[tuple[str, str], ModelHandle] = {}
        self._tools: dict[str, list[Tool]] = {}

    def register_model(self, provider_id: str, handle: ModelHandle) -> None:
        self._models[(provider_id, handle.info.id)] = handle
        logger.debug("Registered model %s/%s", provider_id, handle.info.id)

    def register_tool(self, tool: Tool, provider_id: str = ALL_PROVIDERS) -> None:
        self._tools.setdefault(provider_id, []).append(tool)

    async def get_model(self, provider_id: str, model_id: str) -> ModelHandle:
        """
        Resolve a model.

        Raises:
            ModelNotFoundError: If the provider has no such model
        """
        handle = self._models.get((provider_id, model_id))
        if handle is None:
            raise ModelNotFoundError(provider_id, model_id)
        return handle

    async def tools(self, provider_id: str) -> list[Tool]:
        """Tools available to a provider: provider specific first, then shared ones."""
        return [*self._tools.get(provider_id, []), *self._tools.get(ALL_PROVIDERS, [])]

    def models(self) -> list[tuple[str, ModelInfo]]:
        return [(provider_id, handle.info) for (provider_id, _), handle in self._models.items()]

    @classmethod
    def from_config(cls, config: Config) -> "ProviderRegistry":
        """Register a pydantic-ai backed handle for every model in the model table."""
        from .pydantic_ai_model import PydanticAIModel

        registry = cls()
        for entry in AVAILABLE_MODELS:
            info = ModelInfo(
                id=entry["id"],
                name=entry.get("name"),
                limit=ModelLimit(
                    context=entry["context_window"],
                    output=entry.get("output_limit", 0),
                ),
                cost=ModelCost(**entry.get("cost", {})),
            )
            language = PydanticAIModel(f"{entry['provider']}:{entry['id']}", entry["provider"])
            registry.register_model(entry["provider"], ModelHandle(language=language, info=info))
        logger.info("Provider registry loaded %d models (default %s/%s)", len(registry.models()), config.provider, config.model)
        return registry
