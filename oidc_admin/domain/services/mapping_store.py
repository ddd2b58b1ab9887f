"""Mapping store - owns the committed collection of group mappings."""

import dataclasses
import logging
import math
import re
import time
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from oidc_admin.domain.errors import DuplicateIdError, NotFoundError
from oidc_admin.domain.models.mapping_models import (
    MAPPINGS_FIELD,
    ConfigSnapshot,
    MappingPatch,
    MappingRecord,
)

logger = logging.getLogger(__name__)

Collection = Tuple[MappingRecord, ...]

_DECIMAL_LITERAL = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$")
_PREFIXED_LITERAL = re.compile(r"^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")


# ============================================
# PURE COLLECTION OPERATIONS
# ============================================

def add_many(collection: Sequence[MappingRecord], candidates: Iterable[MappingRecord]) -> Collection:
    """
    Append candidates to a collection, keeping their relative order.

    Args:
        collection: Current mappings
        candidates: Mappings to append

    Returns:
        New collection

    Raises:
        DuplicateIdError: If a candidate id is already taken
    """
    seen = {m.id for m in collection}
    added = []
    for candidate in candidates:
        if candidate.id in seen:
            raise DuplicateIdError(candidate.id)
        seen.add(candidate.id)
        added.append(candidate)
    return tuple(collection) + tuple(added)


def update_one(collection: Sequence[MappingRecord], mapping_id: str, patch: MappingPatch) -> Collection:
    """
    Merge a patch over the first mapping with ``mapping_id``.

    Raises:
        NotFoundError: If no mapping has the id
    """
    index = _index_of(collection, mapping_id)
    result = list(collection)
    result[index] = dataclasses.replace(result[index], **patch.changes())
    return tuple(result)


def remove_one(collection: Sequence[MappingRecord], mapping_id: str) -> Collection:
    """
    Drop the first mapping with ``mapping_id``.

    Raises:
        NotFoundError: If no mapping has the id
    """
    index = _index_of(collection, mapping_id)
    return tuple(collection[:index]) + tuple(collection[index + 1:])


def duplicate_ids(collection: Iterable[MappingRecord]) -> List[str]:
    """Ids carried by more than one mapping, in first-seen order."""
    seen = set()
    duplicates = []
    for mapping in collection:
        if mapping.id in seen and mapping.id not in duplicates:
            duplicates.append(mapping.id)
        seen.add(mapping.id)
    return duplicates


def _index_of(collection: Sequence[MappingRecord], mapping_id: str) -> int:
    for index, mapping in enumerate(collection):
        if mapping.id == mapping_id:
            return index
    raise NotFoundError(mapping_id)


# ============================================
# ID ASSIGNMENT
# ============================================

def single_mapping_id(name: str, clock: Callable[[], float] = time.time) -> str:
    """
    Id for a mapping added through the single-record form.

    Two adds of the same name within one millisecond collide.
    """
    return f"{int(clock() * 1000)}-{name}"


def parse_numeric_id(value: str) -> float:
    """Interpret an id the way JavaScript ``Number()`` would, NaN if it can't."""
    text = value.strip()
    if not text:
        return 0.0
    if text in ("Infinity", "+Infinity"):
        return math.inf
    if text == "-Infinity":
        return -math.inf
    if _DECIMAL_LITERAL.match(text):
        return float(text)
    if _PREFIXED_LITERAL.match(text):
        return float(int(text, 0))
    return math.nan


def format_numeric_id(value: float) -> str:
    """Render a number the way JavaScript ``String()`` would for common values."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def bulk_id_base(collection: Sequence[MappingRecord]) -> float:
    """Highest numeric id in the collection, NaN when none is numeric."""
    numeric = [parse_numeric_id(m.id) for m in collection]
    numeric = [n for n in numeric if not math.isnan(n)]
    if not numeric:
        return math.nan
    return max(numeric)


def bulk_mapping_id(base: float, line_position: int) -> str:
    """Id for the bulk line at 1-based ``line_position``."""
    return format_numeric_id(base + line_position)


# ============================================
# STORE
# ============================================

class MappingStore:
    """
    Owner of the committed mapping collection.

    The collection only changes through ``replace`` (whole swap after a
    successful commit) or ``seed`` (initial load).
    """

    def __init__(self, mappings: Optional[Iterable[MappingRecord]] = None):
        self._mappings: Collection = tuple(mappings or ())
        self._snapshot: Optional[ConfigSnapshot] = None
        self.admin = True

    @property
    def mappings(self) -> Collection:
        """Committed mappings in order."""
        return self._mappings

    @property
    def snapshot(self) -> Optional[ConfigSnapshot]:
        """Last-known full remote configuration."""
        return self._snapshot

    def seed(self, snapshot: ConfigSnapshot) -> None:
        """
        Initialize from a fetched configuration.

        Records sharing an id are kept as fetched. Edits and deletions
        addressed to such an id only touch the first of them.

        Args:
            snapshot: Full remote configuration
        """
        self._snapshot = snapshot
        raw = snapshot.get(MAPPINGS_FIELD)
        if isinstance(raw, list):
            self._mappings = tuple(MappingRecord.from_dict(m) for m in raw)
            logger.info(f"Loaded {len(self._mappings)} group mapping(s)")
            for mapping_id in duplicate_ids(self._mappings):
                logger.warning(f"Mapping id {mapping_id!r} is shared by several records in config")
        else:
            self._mappings = ()
            logger.warning(f"{MAPPINGS_FIELD} not found or is not a list in config")

    def replace(self, mappings: Iterable[MappingRecord]) -> None:
        """Swap in a newly committed collection."""
        self._mappings = tuple(mappings)

    def find(self, mapping_id: str) -> Optional[MappingRecord]:
        """Get mapping by ID."""
        for mapping in self._mappings:
            if mapping.id == mapping_id:
                return mapping
        return None

    def require(self, mapping_id: str) -> MappingRecord:
        """
        Get mapping by ID.

        Raises:
            NotFoundError: If no mapping has the id
        """
        mapping = self.find(mapping_id)
        if mapping is None:
            raise NotFoundError(mapping_id)
        return mapping

    def add_many(self, candidates: Iterable[MappingRecord]) -> Collection:
        """Candidate collection with ``candidates`` appended."""
        return add_many(self._mappings, candidates)

    def update_one(self, mapping_id: str, patch: MappingPatch) -> Collection:
        """Candidate collection with one mapping patched."""
        return update_one(self._mappings, mapping_id, patch)

    def remove_one(self, mapping_id: str) -> Collection:
        """Candidate collection without one mapping."""
        return remove_one(self._mappings, mapping_id)

    def to_wire(self) -> List[dict]:
        """Committed mappings in the remote wire format."""
        return [m.to_dict() for m in self._mappings]
