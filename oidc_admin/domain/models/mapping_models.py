"""Domain models for OIDC group to role mappings."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

# Key of the mapping collection inside the remote OIDC configuration
MAPPINGS_FIELD = "groups_with_role_ids"

ConfigSnapshot = Dict[str, Any]


def split_role_ids(value: Union[str, List[str], None]) -> List[str]:
    """
    Normalize role ids entered as comma-separated text.

    Args:
        value: Comma-separated text or an already split list

    Returns:
        Trimmed, non-empty role ids in the order they were entered
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [
        token.strip()
        for part in value
        for token in str(part).split(",")
        if token.strip()
    ]


@dataclass(frozen=True)
class MappingRecord:
    """
    Maps an external identity-provider group to a set of role ids.

    Attributes:
        id: Unique identifier within the collection
        name: Display name of the mapping (required)
        external_group_name: Name of the group on the identity provider
        role_ids: Role ids granted to group members
        external_group_ref: Optional group id on the identity provider
    """
    id: str
    name: str
    external_group_name: str
    role_ids: Tuple[str, ...] = ()
    external_group_ref: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappingRecord":
        """Build a record from the remote wire format."""
        name = data.get("name") or ""
        return cls(
            id=str(data.get("id") or ""),
            name=name,
            external_group_name=data.get("looker_group_name") or name,
            role_ids=tuple(str(r) for r in data.get("role_ids") or []),
            external_group_ref=data.get("looker_group_id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the remote wire format."""
        data: Dict[str, Any] = {"id": self.id}
        if self.external_group_ref is not None:
            data["looker_group_id"] = self.external_group_ref
        data["looker_group_name"] = self.external_group_name
        data["name"] = self.name
        data["role_ids"] = list(self.role_ids)
        return data


@dataclass(frozen=True)
class MappingPatch:
    """Partial update of a mapping. ``None`` keeps the current value."""
    name: Optional[str] = None
    external_group_name: Optional[str] = None
    external_group_ref: Optional[str] = None
    role_ids: Optional[Tuple[str, ...]] = None

    def changes(self) -> Dict[str, Any]:
        """Fields present in the patch."""
        values = {
            "name": self.name,
            "external_group_name": self.external_group_name,
            "external_group_ref": self.external_group_ref,
            "role_ids": self.role_ids,
        }
        return {k: v for k, v in values.items() if v is not None}


@dataclass
class MappingForm:
    """
    Single-record form input as typed by the administrator.

    Attributes:
        name: Mapping name (required)
        external_group_name: Optional, defaults to name
        external_group_ref: Optional external group id
        role_ids: Comma-separated role ids
    """
    name: str = ""
    external_group_name: str = ""
    external_group_ref: str = ""
    role_ids: str = ""

    def to_patch(self) -> MappingPatch:
        """
        Convert an edit form into a patch.

        The external group ref is not editable once a mapping exists. A blank
        group name falls back to the (possibly new) name, as on creation.
        """
        name = self.name.strip()
        return MappingPatch(
            name=name,
            external_group_name=self.external_group_name.strip() or name or None,
            role_ids=tuple(split_role_ids(self.role_ids)),
        )


@dataclass(frozen=True)
class RejectedLine:
    """Bulk input line that could not be turned into a mapping."""
    line_number: int
    text: str
    reason: str


@dataclass(frozen=True)
class BulkParseResult:
    """Outcome of parsing bulk mapping text."""
    mappings: List[MappingRecord] = field(default_factory=list)
    rejected: List[RejectedLine] = field(default_factory=list)


class ActionKind(str, Enum):
    """Kinds of edits that can be pending confirmation."""
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class AddAction:
    """Pending addition of one or more mappings."""
    candidates: Tuple[MappingRecord, ...]
    rejected_lines: Tuple[RejectedLine, ...] = ()
    kind: ActionKind = field(default=ActionKind.ADD, init=False)


@dataclass(frozen=True)
class UpdateAction:
    """Pending update of an existing mapping."""
    target_id: str
    patch: MappingPatch
    kind: ActionKind = field(default=ActionKind.UPDATE, init=False)


@dataclass(frozen=True)
class DeleteAction:
    """Pending removal of an existing mapping."""
    target_id: str
    kind: ActionKind = field(default=ActionKind.DELETE, init=False)


PendingAction = Union[AddAction, UpdateAction, DeleteAction]


class CommitStatus(str, Enum):
    """Progress of the validate-then-commit protocol, for user feedback."""
    RUNNING_TEST = "Running Test"
    TEST_FAILED = "Test Failed"
    TEST_SUCCESSFUL = "Test Successful"
    UPDATING_CONFIG = "Updating OIDC Config"
    FINISHED = "Finished"


@dataclass(frozen=True)
class RemoteFieldError:
    """Field-level error reported by the remote configuration API."""
    message: str
    field: Optional[str] = None
    code: Optional[str] = None
