"""Unit tests for the action/confirmation workflow."""

import pytest

from oidc_admin.domain.errors import (
    DuplicateIdError,
    LocalValidationError,
    NotFoundError,
    PersistenceError,
    RemoteValidationError,
    WorkflowBusyError,
)
from oidc_admin.domain.models.mapping_models import (
    ActionKind,
    CommitStatus,
    MappingForm,
    MappingPatch,
)
from oidc_admin.domain.ports import Scheduler
from oidc_admin.domain.services.action_workflow import ActionWorkflow
from oidc_admin.domain.services.config_persistence import ConfigPersistenceCoordinator
from oidc_admin.domain.services.mapping_store import MappingStore
from tests.conftest import run, validation_error


@pytest.fixture
def store(oidc_config):
    store = MappingStore()
    store.seed(oidc_config)
    return store


@pytest.fixture
def workflow(store, fake_client, scheduler):
    coordinator = ConfigPersistenceCoordinator(fake_client, scheduler=scheduler)
    return ActionWorkflow(store, coordinator, clock=lambda: 1700000000.5)


class TestRequestAdd:
    """Test suite for staging additions."""

    def test_single_add_defaults_group_name(self, workflow):
        action = workflow.request_add(MappingForm(name="engineers", role_ids="2, 5,"))

        assert workflow.state is action
        assert action.kind is ActionKind.ADD
        candidate = action.candidates[0]
        assert candidate.id == "1700000000500-engineers"
        assert candidate.external_group_name == "engineers"
        assert candidate.role_ids == ("2", "5")
        assert candidate.external_group_ref is None
        assert "looker_group_id" not in candidate.to_dict()

    def test_single_add_requires_name(self, workflow, fake_client):
        with pytest.raises(LocalValidationError):
            workflow.request_add(MappingForm(name="   ", role_ids="2"))

        assert workflow.is_idle
        assert fake_client.calls == []

    def test_bulk_add(self, workflow):
        action = workflow.request_add("6,Test Group,My Custom Name,2,5\nbad\n,,Another Group,1")

        assert [m.id for m in action.candidates] == ["12", "14"]
        assert [r.line_number for r in action.rejected_lines] == [2]

    @pytest.mark.parametrize("text", ["", "   \n  ", "no,name,\njust one"])
    def test_bulk_add_requires_valid_lines(self, workflow, text):
        with pytest.raises(LocalValidationError):
            workflow.request_add(text)
        assert workflow.is_idle

    def test_failed_request_keeps_previous_pending(self, workflow):
        first = workflow.request_delete("10")
        with pytest.raises(LocalValidationError):
            workflow.request_add(MappingForm(name=""))
        assert workflow.state is first


class TestRequestUpdateAndDelete:
    """Test suite for staging updates and deletions."""

    def test_update_from_form(self, workflow):
        action = workflow.request_update(
            "10",
            MappingForm(name="analysts-2", external_group_ref="999", role_ids="3,4")
        )

        assert action.kind is ActionKind.UPDATE
        assert action.patch.name == "analysts-2"
        assert action.patch.external_group_ref is None
        assert action.patch.role_ids == ("3", "4")

    def test_update_blank_group_name_follows_name(self, workflow, store):
        workflow.request_update("10", MappingForm(name="analysts-2", role_ids="2"))
        assert run(workflow.confirm()) is True

        updated = store.find("10")
        assert updated.external_group_name == "analysts-2"
        assert updated.external_group_ref == "3"

    def test_update_requires_target(self, workflow):
        with pytest.raises(NotFoundError):
            workflow.request_update("404", MappingPatch(name="x"))
        assert workflow.is_idle

    def test_update_cannot_blank_name(self, workflow):
        with pytest.raises(LocalValidationError):
            workflow.request_update("10", MappingPatch(name=" "))

    def test_delete_requires_target(self, workflow):
        with pytest.raises(NotFoundError):
            workflow.request_delete("404")

    def test_delete(self, workflow):
        action = workflow.request_delete("11")
        assert action.kind is ActionKind.DELETE
        assert action.target_id == "11"


class TestCancel:
    """Test suite for cancel."""

    def test_cancel_from_idle_is_noop(self, workflow, fake_client):
        workflow.cancel()
        assert workflow.is_idle
        assert fake_client.calls == []

    def test_cancel_discards_pending(self, workflow, store, fake_client):
        before = store.mappings
        workflow.request_delete("10")
        workflow.cancel()

        assert workflow.is_idle
        assert store.mappings == before
        assert fake_client.calls == []


class TestConfirm:
    """Test suite for confirm."""

    def test_confirm_from_idle(self, workflow, fake_client):
        assert run(workflow.confirm()) is False
        assert fake_client.calls == []

    def test_single_add_commits(self, workflow, store):
        before = len(store.mappings)
        workflow.request_add(MappingForm(name="engineers", external_group_name="Eng", role_ids="7"))

        assert run(workflow.confirm()) is True

        assert len(store.mappings) == before + 1
        added = store.mappings[-1]
        assert (added.name, added.external_group_name, added.role_ids) == ("engineers", "Eng", ("7",))
        assert workflow.is_idle
        assert workflow.status is None
        assert workflow.last_error is None

    def test_update_commits_only_target(self, workflow, store):
        untouched = store.mappings[1]
        workflow.request_update("10", MappingPatch(role_ids=("9",)))

        assert run(workflow.confirm()) is True
        assert store.mappings[0].role_ids == ("9",)
        assert store.mappings[0].name == "analysts"
        assert store.mappings[1] == untouched

    def test_delete_commits(self, workflow, store):
        workflow.request_delete("10")
        assert run(workflow.confirm()) is True
        assert [m.id for m in store.mappings] == ["11"]

    def test_committed_collection_matches_persisted(self, workflow, store, fake_client):
        workflow.request_add(",,Another Group,1")
        run(workflow.confirm())

        assert fake_client.persisted[-1]["groups_with_role_ids"] == store.to_wire()

    def test_latest_request_wins(self, workflow, store, fake_client):
        workflow.request_delete("10")
        workflow.request_delete("11")
        run(workflow.confirm())

        assert [m.id for m in store.mappings] == ["10"]
        assert len(fake_client.persisted) == 1

    def test_validation_failure_leaves_store_unchanged(self, workflow, store, fake_client):
        before = store.mappings
        fake_client.test_error = validation_error("Role 99 does not exist")
        workflow.request_add(MappingForm(name="bad", role_ids="99"))

        assert run(workflow.confirm()) is False

        assert store.mappings == before
        assert isinstance(workflow.last_error, RemoteValidationError)
        assert "Role 99 does not exist" in str(workflow.last_error)
        assert workflow.is_idle
        assert "persist" not in fake_client.calls

    def test_persistence_failure_leaves_store_unchanged(self, workflow, store, fake_client):
        before = store.mappings
        fake_client.persist_error = validation_error("write failed")
        workflow.request_delete("11")

        assert run(workflow.confirm()) is False
        assert store.mappings == before
        assert isinstance(workflow.last_error, PersistenceError)

    def test_duplicate_ids_are_reported(self, workflow, store, fake_client):
        store.replace([])
        workflow.request_add(",,A\n,,B")

        assert run(workflow.confirm()) is False
        assert isinstance(workflow.last_error, DuplicateIdError)
        assert fake_client.calls == []

    def test_delete_of_shared_id_removes_one_record(self, fake_client, scheduler):
        store = MappingStore()
        store.seed({"groups_with_role_ids": [
            {"name": "a", "role_ids": []},
            {"name": "b", "role_ids": []},
            {"id": "5", "name": "c", "role_ids": []},
        ]})
        coordinator = ConfigPersistenceCoordinator(fake_client, scheduler=scheduler)
        workflow = ActionWorkflow(store, coordinator)

        workflow.request_delete("")
        assert run(workflow.confirm()) is True

        assert [m.name for m in store.mappings] == ["b", "c"]
        assert len(fake_client.persisted[-1]["groups_with_role_ids"]) == 2

    def test_dismiss_error(self, workflow, fake_client):
        fake_client.test_error = validation_error("nope")
        workflow.request_delete("10")
        run(workflow.confirm())

        workflow.dismiss_error()
        assert workflow.last_error is None

    def test_status_visible_during_commit_and_busy_guard(self, store, fake_client):
        observed = {}

        class ProbeScheduler(Scheduler):
            async def sleep(self, seconds):
                observed["status"] = workflow.status
                observed["in_flight"] = workflow.in_flight
                with pytest.raises(WorkflowBusyError):
                    workflow.request_delete("11")
                with pytest.raises(WorkflowBusyError):
                    await workflow.confirm()
                workflow.cancel()

        coordinator = ConfigPersistenceCoordinator(fake_client, scheduler=ProbeScheduler())
        workflow = ActionWorkflow(store, coordinator)
        workflow.request_delete("10")

        assert run(workflow.confirm()) is True
        assert observed == {"status": CommitStatus.TEST_SUCCESSFUL, "in_flight": True}
        assert [m.id for m in store.mappings] == ["11"]
        assert workflow.in_flight is False
