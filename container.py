"""
Dependency Injection Container: Centralized Object Lifecycle Management

Wires the long-form generation object graph with dependency-injector:
settings, database, metrics and provider clients as singletons; generators,
ledger, repository and service as factories over them.

Architecture: Container Pattern + Dependency Injection + Singleton Registry
Dependency Graph: Settings -> Infrastructure -> Execution/Knowledge -> Services
"""

from typing import Optional

from dependency_injector import containers, providers
from loguru import logger

from config.settings import Settings, get_settings

# Execution layer imports
from execution.content_generator import ContentGenerationConfig, ContentGenerator
from execution.media_validator import MediaValidator
from execution.outline_generator import OutlineGenerationConfig, OutlineGenerator

# Infrastructure layer imports
from infrastructure.database import DatabaseManager
from infrastructure.llm_client import (
    AbstractContentProvider,
    AbstractOutlineProvider,
    get_content_provider,
    get_outline_provider,
)
from infrastructure.monitoring import MetricsCollector

# Knowledge layer imports
from knowledge.content_repository import ContentRepository
from knowledge.quota_ledger import QuotaLedger

# Service layer imports
from services.generation_service import GenerationService


class Container(containers.DeclarativeContainer):
    """
    Central dependency injection container.

    - Singleton providers for infrastructure components and provider clients
    - Factory providers for stateless business components
    """

    # Configuration providers (singletons)
    config: providers.Singleton[Settings] = providers.Singleton(get_settings)

    # Infrastructure layer providers (singletons)
    database: providers.Singleton[DatabaseManager] = providers.Singleton(
        DatabaseManager, settings=config
    )

    metrics: providers.Singleton[MetricsCollector] = providers.Singleton(MetricsCollector)

    outline_provider: providers.Singleton[AbstractOutlineProvider] = providers.Singleton(
        get_outline_provider, settings=config
    )

    content_provider: providers.Singleton[AbstractContentProvider] = providers.Singleton(
        get_content_provider, settings=config
    )

    # Execution layer providers (factories)
    outline_generator: providers.Factory[OutlineGenerator] = providers.Factory(
        OutlineGenerator,
        provider=outline_provider,
        config=providers.Factory(OutlineGenerationConfig.from_settings, settings=config),
        metrics=metrics,
    )

    content_generator: providers.Factory[ContentGenerator] = providers.Factory(
        ContentGenerator,
        provider=content_provider,
        config=providers.Factory(ContentGenerationConfig.from_settings, settings=config),
        metrics=metrics,
    )

    media_validator: providers.Factory[MediaValidator] = providers.Factory(
        MediaValidator,
        settings=config.provided.media,
    )

    # Knowledge layer providers (factories)
    quota_ledger: providers.Factory[QuotaLedger] = providers.Factory(
        QuotaLedger,
        database_manager=database,
        cost=config.provided.generation.request_cost,
    )

    content_repository: providers.Factory[ContentRepository] = providers.Factory(
        ContentRepository,
        database_manager=database,
        ledger=quota_ledger,
    )

    # Service layer providers (factories)
    generation_service: providers.Factory[GenerationService] = providers.Factory(
        GenerationService,
        ledger=quota_ledger,
        repository=content_repository,
        outline_generator=outline_generator,
        content_generator=content_generator,
        media_validator=media_validator,
        metrics=metrics,
        cost=config.provided.generation.request_cost,
    )


# Global container instance
container = Container()


class ContainerManager:
    """
    Container lifecycle manager.

    Handles async initialization and cleanup of infrastructure that needs it.
    """

    def __init__(self, target: Optional[Container] = None) -> None:
        self._container: Container = target or container
        self._initialized: bool = False

    async def initialize(self) -> None:
        """
        Initialize infrastructure dependencies.

        Raises:
            RuntimeError: If the database cannot be initialized
        """
        if self._initialized:
            logger.warning("Container already initialized - skipping re-initialization")
            return

        logger.info("Initializing dependency injection container")
        try:
            await self._container.database().initialize()
        except Exception as e:
            logger.error(f"Container initialization failed | component=database | error={e}")
            raise RuntimeError(f"Failed to initialize dependency injection container: {e}") from e

        self._initialized = True
        logger.info("Container initialized | components=database")

    async def cleanup(self) -> None:
        """
        Close database connections.

        Idempotent; cleanup errors are logged and the manager is still reset.
        """
        if not self._initialized:
            logger.debug("Container not initialized - skipping cleanup")
            return

        try:
            await self._container.database().close()
            logger.info("Database connections closed")
        except Exception as e:
            logger.error(f"Database cleanup failed | error={e}")

        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized


# Global container manager instance
container_manager = ContainerManager()


# Export public API
__all__ = [
    "Container",
    "ContainerManager",
    "container",
    "container_manager",
]
