import asyncio
import copy
from typing import Any, Dict, List, Optional

import pytest

from oidc_admin.domain.errors import OidcApiError
from oidc_admin.domain.models.mapping_models import RemoteFieldError
from oidc_admin.domain.ports import OidcConfigClient, Scheduler


class FakeOidcConfigClient(OidcConfigClient):
    """In-memory stand-in for the remote OIDC configuration API."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = copy.deepcopy(config) if config is not None else {}
        self.fetch_error: Optional[Exception] = None
        self.test_error: Optional[Exception] = None
        self.persist_error: Optional[Exception] = None
        self.calls: List[str] = []
        self.tested: List[Dict[str, Any]] = []
        self.persisted: List[Dict[str, Any]] = []
        self.closed = False

    async def fetch_config(self):
        self.calls.append("fetch")
        if self.fetch_error:
            raise self.fetch_error
        return copy.deepcopy(self.config)

    async def test_config(self, candidate):
        self.calls.append("test")
        self.tested.append(copy.deepcopy(candidate))
        if self.test_error:
            raise self.test_error

    async def persist_config(self, partial):
        self.calls.append("persist")
        self.persisted.append(copy.deepcopy(partial))
        if self.persist_error:
            raise self.persist_error
        self.config.update(copy.deepcopy(partial))

    async def close(self):
        self.closed = True


class RecordingScheduler(Scheduler):
    """Scheduler that returns immediately and remembers requested delays."""

    def __init__(self):
        self.sleeps: List[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


def validation_error(*messages: str) -> OidcApiError:
    return OidcApiError(
        "Validation Failed",
        status_code=422,
        errors=[RemoteFieldError(message=m, field="groups_with_role_ids", code="invalid") for m in messages],
    )


def run(coro):
    """Drive a coroutine to completion."""
    return asyncio.run(coro)


@pytest.fixture
def oidc_config() -> Dict[str, Any]:
    return {
        "enabled": True,
        "audience": "looker-client",
        "issuer": "https://idp.example.com",
        "scopes": ["openid", "profile", "groups"],
        "groups_attribute": "groups",
        "set_roles_from_groups": True,
        "groups_with_role_ids": [
            {"id": "10", "looker_group_id": "3", "looker_group_name": "Analysts", "name": "analysts", "role_ids": ["2"]},
            {"id": "11", "looker_group_name": "Admins", "name": "admins", "role_ids": ["1", "2"]},
        ],
    }


@pytest.fixture
def fake_client(oidc_config) -> FakeOidcConfigClient:
    return FakeOidcConfigClient(oidc_config)


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()
