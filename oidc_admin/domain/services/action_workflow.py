"""Action workflow - stages one mapping edit and commits it on confirmation."""

import logging
import time
from typing import Callable, Optional, Union

from oidc_admin.domain.errors import (
    CommitError,
    LocalValidationError,
    MappingAdminError,
    MappingStoreError,
    WorkflowBusyError,
)
from oidc_admin.domain.models.mapping_models import (
    ActionKind,
    AddAction,
    CommitStatus,
    DeleteAction,
    MappingForm,
    MappingPatch,
    MappingRecord,
    PendingAction,
    UpdateAction,
    split_role_ids,
)
from oidc_admin.domain.services.bulk_parser import parse_bulk_lines
from oidc_admin.domain.services.config_persistence import ConfigPersistenceCoordinator
from oidc_admin.domain.services.mapping_store import (
    Collection,
    MappingStore,
    single_mapping_id,
)

logger = logging.getLogger(__name__)


class ActionWorkflow:
    """
    State machine for a single pending edit.

    The state is either idle (``state is None``) or one pending action. A new
    request replaces the pending action; only ``confirm`` reaches the remote,
    and the store changes only when the whole commit protocol succeeds.
    """

    def __init__(
        self,
        store: MappingStore,
        coordinator: ConfigPersistenceCoordinator,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize workflow.

        Args:
            store: Owner of the committed mappings
            coordinator: Runs the validate-then-commit protocol
            clock: Source of epoch seconds for single-add ids
        """
        self.store = store
        self.coordinator = coordinator
        self.clock = clock
        self.state: Optional[PendingAction] = None
        self.status: Optional[CommitStatus] = None
        self.last_error: Optional[MappingAdminError] = None
        self.in_flight = False

    @property
    def is_idle(self) -> bool:
        return self.state is None

    # ============================================
    # REQUESTS
    # ============================================

    def request_add(self, entry: Union[MappingForm, str]) -> AddAction:
        """
        Stage the addition of one mapping (form) or many (bulk text).

        Args:
            entry: Single-record form or raw bulk text

        Returns:
            The pending add action

        Raises:
            LocalValidationError: Empty name, empty bulk text or no valid lines
            WorkflowBusyError: A commit is in flight
        """
        self._ensure_not_in_flight()

        if isinstance(entry, str):
            action = self._bulk_add_action(entry)
        else:
            action = self._single_add_action(entry)

        self.state = action
        logger.info(f"Staged addition of {len(action.candidates)} mapping(s)")
        return action

    def request_update(self, target_id: str, change: Union[MappingForm, MappingPatch]) -> UpdateAction:
        """
        Stage an update of an existing mapping.

        Raises:
            NotFoundError: Target does not exist
            LocalValidationError: The update would blank the name
            WorkflowBusyError: A commit is in flight
        """
        self._ensure_not_in_flight()
        self.store.require(target_id)

        patch = change.to_patch() if isinstance(change, MappingForm) else change
        if patch.name is not None and not patch.name.strip():
            raise LocalValidationError("Name is required.")

        self.state = UpdateAction(target_id=target_id, patch=patch)
        logger.info(f"Staged update of mapping {target_id}")
        return self.state

    def request_delete(self, target_id: str) -> DeleteAction:
        """
        Stage removal of an existing mapping.

        Raises:
            NotFoundError: Target does not exist
            WorkflowBusyError: A commit is in flight
        """
        self._ensure_not_in_flight()
        self.store.require(target_id)

        self.state = DeleteAction(target_id=target_id)
        logger.info(f"Staged deletion of mapping {target_id}")
        return self.state

    def cancel(self) -> None:
        """Discard the pending action, if any."""
        if self.state is not None and not self.in_flight:
            logger.info(f"Cancelled pending {self.state.kind.value} action")
            self.state = None

    def dismiss_error(self) -> None:
        """Clear the retained error after the user has seen it."""
        self.last_error = None

    # ============================================
    # CONFIRMATION
    # ============================================

    async def confirm(self) -> bool:
        """
        Commit the pending action.

        Returns:
            True if the new collection was committed, False if idle or failed.
            Failures are kept in ``last_error``.

        Raises:
            WorkflowBusyError: A commit is already in flight
        """
        self._ensure_not_in_flight()
        action = self.state
        if action is None:
            return False

        self.in_flight = True
        try:
            candidate = self._candidate_collection(action)
            committed = await self.coordinator.commit(
                candidate,
                self.store.snapshot,
                on_status=self._set_status
            )
            self.store.replace(committed)
            self.last_error = None
            return True
        except (MappingStoreError, CommitError) as e:
            logger.warning(f"{action.kind.value.capitalize()} action failed: {e}")
            self.last_error = e
            return False
        finally:
            self.state = None
            self.status = None
            self.in_flight = False

    # ============================================
    # HELPERS
    # ============================================

    def _single_add_action(self, form: MappingForm) -> AddAction:
        name = form.name.strip()
        if not name:
            logger.warning("Name is required.")
            raise LocalValidationError("Name is required.")

        record = MappingRecord(
            id=single_mapping_id(name, self.clock),
            external_group_ref=form.external_group_ref.strip() or None,
            external_group_name=form.external_group_name.strip() or name,
            name=name,
            role_ids=tuple(split_role_ids(form.role_ids)),
        )
        return AddAction(candidates=(record,))

    def _bulk_add_action(self, text: str) -> AddAction:
        if not text.strip():
            logger.warning("Bulk input cannot be empty.")
            raise LocalValidationError("Bulk input cannot be empty.")

        result = parse_bulk_lines(text, self.store.mappings)
        if not result.mappings:
            logger.warning("No valid mappings to add.")
            raise LocalValidationError("No valid mappings to add.")

        return AddAction(
            candidates=tuple(result.mappings),
            rejected_lines=tuple(result.rejected)
        )

    def _candidate_collection(self, action: PendingAction) -> Collection:
        if action.kind is ActionKind.ADD:
            return self.store.add_many(action.candidates)
        if action.kind is ActionKind.UPDATE:
            return self.store.update_one(action.target_id, action.patch)
        return self.store.remove_one(action.target_id)

    def _set_status(self, status: CommitStatus) -> None:
        self.status = status

    def _ensure_not_in_flight(self) -> None:
        if self.in_flight:
            raise WorkflowBusyError("A configuration update is already in progress")
