from __future__ import annotations
import asyncio
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from promptbench.core.errors import ConfigurationError
from promptbench.providers.base import ChatProvider
from promptbench.providers.openai_compatible import OpenAICompatibleProvider
from promptbench.schemas.chat import ProbeResult, ProviderConfig

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderConfig], ChatProvider]


def model_key(config: ProviderConfig, model: str) -> str:
    return f"{config.id}:{model}"


class ProviderRouter:
    """Maps ``"<config id>:<model>"`` selections onto provider instances.

    Configurations are passed in on every call; the router keeps none of its own.
    """

    def __init__(self, factory: Optional[ProviderFactory] = None) -> None:
        self._factory: ProviderFactory = factory or OpenAICompatibleProvider

    def get_provider(self, config: ProviderConfig) -> ChatProvider:
        return self._factory(config)

    def resolve(self, configs: Sequence[ProviderConfig], key: str) -> Tuple[ProviderConfig, str]:
        config_id, sep, model = key.partition(":")
        if not sep or not model:
            raise ConfigurationError("No model selected")
        for config in configs:
            if config.id == config_id:
                if model not in config.models:
                    raise ConfigurationError(f"Model '{model}' is not configured for provider '{config.name or config.id}'")
                return config, model
        raise ConfigurationError(f"Unknown provider '{config_id}'")

    @staticmethod
    def default_key(configs: Sequence[ProviderConfig]) -> Optional[str]:
        for config in configs:
            if config.models:
                return model_key(config, config.models[0])
        return None

    async def probe_all(self, configs: Sequence[ProviderConfig]) -> List[ProbeResult]:
        """Probe every provider concurrently; each probe is independent of the others."""

        async def _probe(config: ProviderConfig) -> ProbeResult:
            try:
                return await self.get_provider(config).test_connection()
            except Exception as e:
                # A provider bug must not cancel the sibling probes
                logger.exception("probe crashed provider=%s", config.id)
                return ProbeResult(provider_id=config.id, success=False, message=str(e) or "Connection failed")

        return list(await asyncio.gather(*(_probe(c) for c in configs)))


router = ProviderRouter()
