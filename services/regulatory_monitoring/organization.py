"""
Organization Directory & Generation Resolution
==============================================

Lookup of organization contexts and per-organization LLM settings, and
resolution of the text-generation service a run should use.

Resolution order:
1. The organization's own active LLM settings
2. The global ``llm`` settings
3. None: every stage runs its rule-based path

Version: 0.1.0
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Protocol

from pydantic import BaseModel, SecretStr

from services.regulatory_monitoring.models import OrganizationContext
from shared.config import LLMProvider, LLMSettings, get_settings
from shared.llm import TextGenerationService, create_llm_provider
from shared.logging import get_logger


logger = get_logger(__name__)


class OrganizationLLMSettings(BaseModel):
    """LLM configuration an organization registered for itself."""

    provider: LLMProvider
    api_key: SecretStr | None = None
    model: str | None = None
    temperature: float | None = None
    active: bool = True

    @property
    def usable(self) -> bool:
        """Active and carrying a key (Ollama needs none)."""
        has_key = bool(self.api_key and self.api_key.get_secret_value())
        return self.active and (has_key or self.provider == LLMProvider.OLLAMA)


class OrganizationDirectory(Protocol):
    """Read access to organizations."""

    async def get_context(self, org_id: str) -> OrganizationContext | None: ...

    async def get_llm_settings(self, org_id: str) -> OrganizationLLMSettings | None: ...


class InMemoryOrganizationDirectory:
    """Dict-backed directory for tests and the command-line runner."""

    def __init__(
        self,
        contexts: Iterable[OrganizationContext] = (),
        llm_settings: Mapping[str, OrganizationLLMSettings] | None = None,
    ) -> None:
        self._contexts = {context.org_id: context for context in contexts}
        self._llm_settings = dict(llm_settings or {})

    def add(
        self,
        context: OrganizationContext,
        llm_settings: OrganizationLLMSettings | None = None,
    ) -> None:
        self._contexts[context.org_id] = context
        if llm_settings is not None:
            self._llm_settings[context.org_id] = llm_settings

    async def get_context(self, org_id: str) -> OrganizationContext | None:
        return self._contexts.get(org_id)

    async def get_llm_settings(self, org_id: str) -> OrganizationLLMSettings | None:
        return self._llm_settings.get(org_id)


class GenerationResolver(Protocol):
    """Picks the generation service for one run."""

    async def resolve(self, org_id: str | None) -> TextGenerationService | None: ...


ProviderFactory = Callable[..., TextGenerationService]


class SettingsGenerationResolver:
    """
    Resolve generation from organization settings, then global settings.

    Example:
        >>> resolver = SettingsGenerationResolver(directory=directory)
        >>> generator = await resolver.resolve("org-1")
        >>> generator is None  # no key configured anywhere
        True
    """

    def __init__(
        self,
        llm_settings: LLMSettings | None = None,
        directory: OrganizationDirectory | None = None,
        factory: ProviderFactory = create_llm_provider,
    ) -> None:
        self._llm = llm_settings or get_settings().llm
        self._directory = directory
        self._factory = factory

    async def resolve(self, org_id: str | None) -> TextGenerationService | None:
        if not self._llm.enabled:
            logger.info("generation_disabled", reason="llm.enabled is false")
            return None

        org_settings = await self._load_org_settings(org_id)
        if org_settings is not None and org_settings.usable:
            try:
                return self._factory(
                    org_settings.provider,
                    api_key=(
                        org_settings.api_key.get_secret_value() if org_settings.api_key else None
                    ),
                    model=org_settings.model,
                    temperature=org_settings.temperature,
                )
            except ValueError as e:
                logger.warning(
                    "org_generation_unavailable",
                    org_id=org_id,
                    provider=org_settings.provider.value,
                    error=str(e),
                )

        try:
            return self._factory(self._llm.provider)
        except ValueError as e:
            logger.info(
                "generation_disabled",
                provider=self._llm.provider.value,
                reason=str(e),
            )
            return None

    async def _load_org_settings(self, org_id: str | None) -> OrganizationLLMSettings | None:
        if not org_id or self._directory is None:
            return None
        try:
            return await self._directory.get_llm_settings(org_id)
        except Exception as e:
            logger.warning("org_llm_settings_lookup_failed", org_id=org_id, error=str(e))
            return None
