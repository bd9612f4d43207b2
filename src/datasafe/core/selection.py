"""Filtering, counting and (de)serializing target selections."""

import json
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import structlog

from ..cloud.response_models import TargetDatabase
from ..constants import DEFAULT_TAG_NAMESPACE

logger = structlog.get_logger(__name__)


def filter_by_name(records: Iterable[TargetDatabase], pattern: str | None) -> list[TargetDatabase]:
    """
    Keep records whose display name matches a regular expression (search, not fullmatch).

    Raises:
        ValueError: If the pattern does not compile
    """
    records = list(records)
    if not pattern:
        return records
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid name filter {pattern!r}: {e}") from e
    return [r for r in records if regex.search(r.display_name or "")]


def filter_by_ocid(records: Iterable[TargetDatabase], ocids: Sequence[str]) -> list[TargetDatabase]:
    """Keep records whose OCID is in ``ocids``, in the order of ``ocids``."""
    by_id = {r.id: r for r in records}
    missing = [o for o in ocids if o not in by_id]
    if missing:
        logger.warning("Selected targets not present in listing", ocids=missing)
    return [by_id[o] for o in ocids if o in by_id]


def count_by_lifecycle(records: Iterable[TargetDatabase]) -> list[tuple[str, int]]:
    """Count records per lifecycle state, most common first, ties by state name."""
    counts = Counter(r.lifecycle_state or "UNKNOWN" for r in records)
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def find_untagged(
    records: Iterable[TargetDatabase], namespace: str = DEFAULT_TAG_NAMESPACE
) -> list[TargetDatabase]:
    """Records without any defined tag in ``namespace``."""
    untagged = []
    for record in records:
        tags = record.defined_tags.get(namespace)
        if not isinstance(tags, dict) or not tags:
            untagged.append(record)
    return untagged


def field_value(record: TargetDatabase, field: str) -> Any:
    """
    Look up a field by its CLI (kebab-case) or Python (snake_case) name.

    Top-level attributes win; otherwise the ``database_details`` block is
    searched, so ``infrastructure-type`` works like it does in the oci CLI
    tables.
    """
    name = field.strip()
    key = name.replace("-", "_")
    data = record.model_dump(mode="json")
    details = data.get("database_details") or {}
    for source in (data, details):
        for candidate in (key, name):
            if candidate in source:
                return source[candidate]
    return None


def load_selection(path: Path) -> list[TargetDatabase]:
    """
    Load targets saved by ``save_selection`` or by ``oci data-safe target-database list``.

    Accepts ``{"data": [...]}`` or a bare list.
    """
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)

    items = payload.get("data", []) if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise ValueError(f"Invalid selection file {path}: expected a list of targets")

    targets = [TargetDatabase.model_validate(item) for item in items]
    logger.debug("Loaded target selection", path=str(path), count=len(targets))
    return targets


def save_selection(records: Iterable[TargetDatabase], path: Path) -> int:
    """Write targets as an oci CLI style ``{"data": [...]}`` payload. Returns the count."""
    data = [r.to_cli_dict() for r in records]
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"data": data}, f, indent=2)
    logger.debug("Saved target selection", path=str(path), count=len(data))
    return len(data)
