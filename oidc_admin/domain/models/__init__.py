from .mapping_models import (
    MAPPINGS_FIELD,
    ActionKind,
    AddAction,
    BulkParseResult,
    CommitStatus,
    ConfigSnapshot,
    DeleteAction,
    MappingForm,
    MappingPatch,
    MappingRecord,
    PendingAction,
    RejectedLine,
    RemoteFieldError,
    UpdateAction,
    split_role_ids,
)

__all__ = [
    "MAPPINGS_FIELD",
    "ActionKind",
    "AddAction",
    "BulkParseResult",
    "CommitStatus",
    "ConfigSnapshot",
    "DeleteAction",
    "MappingForm",
    "MappingPatch",
    "MappingRecord",
    "PendingAction",
    "RejectedLine",
    "RemoteFieldError",
    "UpdateAction",
    "split_role_ids",
]
