"""Snapshot export - backup of the OIDC configuration as JSON."""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from oidc_admin.domain.errors import LocalValidationError
from oidc_admin.domain.models.mapping_models import (
    MAPPINGS_FIELD,
    ConfigSnapshot,
    MappingRecord,
)

FILENAME_PREFIX = "oidc_config_backup_"


@dataclass(frozen=True)
class SnapshotDownload:
    """Serialized configuration ready to be sent as a file."""
    filename: str
    content: str
    media_type: str = "application/json"


def backup_timestamp(now: datetime) -> str:
    """ISO-8601 UTC timestamp with ``:`` and ``.`` made filename safe."""
    utc = now.astimezone(timezone.utc)
    iso = utc.strftime("%Y-%m-%dT%H:%M:%S") + f".{utc.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


def build_snapshot_download(
    snapshot: Optional[ConfigSnapshot],
    mappings: Sequence[MappingRecord],
    now: Optional[datetime] = None
) -> SnapshotDownload:
    """
    Overlay the in-memory mappings on the last-known configuration.

    Args:
        snapshot: Last-known remote configuration
        mappings: Current committed mappings
        now: Time used in the file name (defaults to current UTC time)

    Returns:
        SnapshotDownload with an indented JSON body

    Raises:
        LocalValidationError: If no configuration has been loaded
    """
    if snapshot is None:
        raise LocalValidationError("Cannot download config: OIDC config data is not loaded.")

    full_config = {**snapshot, MAPPINGS_FIELD: [m.to_dict() for m in mappings]}
    stamp = backup_timestamp(now or datetime.now(timezone.utc))

    return SnapshotDownload(
        filename=f"{FILENAME_PREFIX}{stamp}.json",
        content=json.dumps(full_config, indent=2),
    )
