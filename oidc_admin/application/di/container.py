"""Dependency injection container for the application."""

import os
import logging
from typing import Optional

from oidc_admin.domain.ports import OidcConfigClient, Scheduler
from oidc_admin.domain.services import (
    ActionWorkflow,
    ConfigPersistenceCoordinator,
    MappingStore,
)
from oidc_admin.domain.services.config_persistence import DEFAULT_STATUS_DELAY_SECONDS
from oidc_admin.infrastructure.adapters.looker import LookerOidcConfigClient

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    This container manages the lifecycle of application dependencies
    and provides a clean way to inject them where needed.
    """

    def __init__(
        self,
        client: Optional[OidcConfigClient] = None,
        scheduler: Optional[Scheduler] = None
    ):
        """
        Initialize the container.

        Args:
            client: Pre-built remote client (defaults to the Looker adapter)
            scheduler: Scheduler for commit status transitions
        """
        self._client: Optional[OidcConfigClient] = client
        self._scheduler = scheduler
        self._store: Optional[MappingStore] = None
        self._coordinator: Optional[ConfigPersistenceCoordinator] = None
        self._workflow: Optional[ActionWorkflow] = None
        self._loaded = False

    def get_oidc_client(self) -> OidcConfigClient:
        """
        Get the remote OIDC configuration client.

        Returns:
            OidcConfigClient instance
        """
        if self._client is None:
            base_url = os.getenv("LOOKER_BASE_URL", "https://localhost:19999")
            client_id = os.getenv("LOOKER_CLIENT_ID", "")
            client_secret = os.getenv("LOOKER_CLIENT_SECRET", "")
            api_version = os.getenv("LOOKER_API_VERSION", "4.0")
            timeout = float(os.getenv("LOOKER_TIMEOUT", "30"))
            verify_ssl = os.getenv("LOOKER_VERIFY_SSL", "true").lower() not in ("false", "0", "no")

            if not client_id or not client_secret:
                logger.warning("⚠️ LOOKER_CLIENT_ID / LOOKER_CLIENT_SECRET not set")

            self._client = LookerOidcConfigClient(
                base_url=base_url,
                client_id=client_id,
                client_secret=client_secret,
                api_version=api_version,
                timeout=timeout,
                verify_ssl=verify_ssl,
            )
            logger.info(f"✅ LookerOidcConfigClient initialized ({base_url}, API {api_version})")

        return self._client

    def get_mapping_store(self) -> MappingStore:
        """
        Get the mapping store.

        Returns:
            MappingStore instance
        """
        if self._store is None:
            self._store = MappingStore()
            logger.info("✅ MappingStore initialized")

        return self._store

    def get_coordinator(self) -> ConfigPersistenceCoordinator:
        """
        Get the config persistence coordinator.

        Returns:
            ConfigPersistenceCoordinator instance
        """
        if self._coordinator is None:
            status_delay = float(
                os.getenv("OIDC_STATUS_DELAY_SECONDS", str(DEFAULT_STATUS_DELAY_SECONDS))
            )
            self._coordinator = ConfigPersistenceCoordinator(
                client=self.get_oidc_client(),
                scheduler=self._scheduler,
                status_delay=status_delay,
            )
            logger.info(f"✅ ConfigPersistenceCoordinator initialized (delay={status_delay}s)")

        return self._coordinator

    async def init_workflow(self) -> ActionWorkflow:
        """
        Initialize and return the action workflow.

        Loads the remote OIDC configuration into the store on first use.

        Returns:
            ActionWorkflow instance
        """
        if self._workflow is None:
            store = self.get_mapping_store()
            coordinator = self.get_coordinator()

            if not self._loaded:
                loaded = await coordinator.load(store)
                self._loaded = True
                if loaded:
                    logger.info(f"✅ OIDC config loaded ({len(store.mappings)} mappings)")
                else:
                    logger.warning("⚠️ OIDC config unavailable, admin features disabled")

            self._workflow = ActionWorkflow(store=store, coordinator=coordinator)
            logger.info("✅ ActionWorkflow initialized")

        return self._workflow

    async def close(self):
        """Close all resources."""
        logger.info("🧹 Closing container resources...")

        if self._client is not None:
            await self._client.close()
            logger.info("✅ OIDC client closed")


_container: Optional[Container] = None


def get_container() -> Container:
    """
    Get the global container instance.

    Returns:
        Container instance
    """
    global _container
    if _container is None:
        _container = Container()
        logger.info("🚀 Container created")
    return _container


async def close_container():
    """Close the global container."""
    global _container
    if _container is not None:
        await _container.close()
        _container = None
        logger.info("✅ Container closed")
