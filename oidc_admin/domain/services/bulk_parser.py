"""
Bulk mapping parser.

Turns multi-line text into candidate mappings. Each non-blank line holds
comma-separated values in this order:

    external_group_ref (optional), external_group_name (optional),
    name (required), role_ids (comma-separated, optional)

Example:
    6,Test Group,My Custom Name,2,5
    ,,Another Group,1
"""

import logging
from typing import List, Sequence

from oidc_admin.domain.models.mapping_models import (
    BulkParseResult,
    MappingRecord,
    RejectedLine,
    split_role_ids,
)
from oidc_admin.domain.services.mapping_store import bulk_id_base, bulk_mapping_id

logger = logging.getLogger(__name__)


def parse_bulk_lines(text: str, existing: Sequence[MappingRecord]) -> BulkParseResult:
    """
    Parse bulk text into candidate mappings plus the lines that were rejected.

    Args:
        text: Raw multi-line input
        existing: Current collection, used to derive ids

    Returns:
        BulkParseResult with mappings in input order
    """
    base = bulk_id_base(existing)
    mappings: List[MappingRecord] = []
    rejected: List[RejectedLine] = []

    for position, line in enumerate(text.split("\n"), start=1):
        trimmed = line.strip()
        if not trimmed:
            continue

        parts = [part.strip() for part in trimmed.split(",")]

        if len(parts) < 3 or not parts[2]:
            logger.warning(
                f'Skipping malformed line {position}: "{trimmed}". '
                f"Name is required (third comma-separated value)."
            )
            rejected.append(RejectedLine(
                line_number=position,
                text=trimmed,
                reason="Name is required (third comma-separated value)"
            ))
            continue

        name = parts[2]
        mappings.append(MappingRecord(
            id=bulk_mapping_id(base, position),
            external_group_ref=parts[0],
            external_group_name=parts[1] or name,
            name=name,
            role_ids=tuple(split_role_ids(parts[3:])),
        ))

    return BulkParseResult(mappings=mappings, rejected=rejected)


def parse_bulk_input(text: str, existing: Sequence[MappingRecord]) -> List[MappingRecord]:
    """Candidate mappings parsed from bulk text, rejected lines dropped."""
    return parse_bulk_lines(text, existing).mappings
