"""Config persistence coordinator - validate-then-commit against the remote."""

import asyncio
import logging
from typing import Callable, Optional, Sequence

from oidc_admin.domain.errors import (
    OidcApiError,
    PersistenceError,
    RemoteValidationError,
    UnexpectedError,
)
from oidc_admin.domain.models.mapping_models import (
    MAPPINGS_FIELD,
    CommitStatus,
    ConfigSnapshot,
    MappingRecord,
)
from oidc_admin.domain.ports.oidc_config_client import OidcConfigClient
from oidc_admin.domain.ports.scheduler import AsyncioScheduler, Scheduler
from oidc_admin.domain.services.mapping_store import Collection, MappingStore

logger = logging.getLogger(__name__)

StatusListener = Callable[[CommitStatus], None]

DEFAULT_STATUS_DELAY_SECONDS = 2.0


class ConfigPersistenceCoordinator:
    """
    Runs the two-phase protocol that applies a candidate mapping collection.

    Phase 1 tests the candidate merged into the rest of the configuration.
    Phase 2 writes only the mapping field, and is skipped if phase 1 fails.
    The "updating" status follows a fixed delay that runs alongside the
    write and never holds it back.
    Nothing is retried.
    """

    def __init__(
        self,
        client: OidcConfigClient,
        scheduler: Optional[Scheduler] = None,
        status_delay: float = DEFAULT_STATUS_DELAY_SECONDS
    ):
        """
        Initialize coordinator.

        Args:
            client: Remote configuration client
            scheduler: Scheduler for the delay before the update phase
            status_delay: Seconds between "test successful" and "updating"
        """
        self.client = client
        self.scheduler = scheduler or AsyncioScheduler()
        self.status_delay = status_delay

    async def load(self, store: MappingStore) -> bool:
        """
        Seed the store from the remote configuration.

        A failed fetch marks the store as non-admin with an empty snapshot.

        Returns:
            True if the configuration was loaded
        """
        try:
            snapshot = await self.client.fetch_config()
        except Exception as e:
            logger.error(f"Error fetching OIDC config: {e}")
            store.admin = False
            store.seed({})
            return False

        store.admin = True
        store.seed(snapshot or {})
        return True

    async def commit(
        self,
        candidate: Sequence[MappingRecord],
        snapshot: Optional[ConfigSnapshot],
        on_status: Optional[StatusListener] = None
    ) -> Collection:
        """
        Validate and persist a candidate mapping collection.

        Args:
            candidate: Full proposed mapping collection
            snapshot: Current remote configuration
            on_status: Receives each status transition

        Returns:
            The committed collection

        Raises:
            RemoteValidationError: Remote test rejected the candidate
            PersistenceError: Update failed after a successful test
            UnexpectedError: Any other failure
        """
        report = on_status or (lambda status: None)
        wire = [m.to_dict() for m in candidate]
        rest = {k: v for k, v in (snapshot or {}).items() if k != MAPPINGS_FIELD}

        # Phase 1 - test
        report(CommitStatus.RUNNING_TEST)
        try:
            await self.client.test_config({MAPPINGS_FIELD: wire, **rest})
        except OidcApiError as e:
            report(CommitStatus.TEST_FAILED)
            logger.error(f"OIDC test config rejected: {e.errors or e.message}")
            raise RemoteValidationError(e.errors, e.formatted()) from e
        except Exception as e:
            logger.exception(f"Unexpected error testing OIDC config: {e}")
            raise UnexpectedError() from e

        # Phase 2 - update
        report(CommitStatus.TEST_SUCCESSFUL)
        transition = asyncio.ensure_future(self._announce_update(report))
        try:
            await self.client.persist_config({MAPPINGS_FIELD: wire})
        except OidcApiError as e:
            transition.cancel()
            logger.error(
                f"OIDC config passed test but update failed: {e.errors or e.message}"
            )
            raise PersistenceError(
                "The configuration passed validation but could not be saved:\n"
                + e.formatted()
            ) from e
        except Exception as e:
            transition.cancel()
            logger.exception(f"Unexpected error updating OIDC config: {e}")
            raise UnexpectedError() from e

        # "Finished" must not be overwritten by a late "updating"
        await transition
        report(CommitStatus.FINISHED)
        logger.info(f"OIDC config updated successfully ({len(wire)} mappings)")
        return tuple(candidate)

    async def _announce_update(self, report: StatusListener) -> None:
        await self.scheduler.sleep(self.status_delay)
        report(CommitStatus.UPDATING_CONFIG)
