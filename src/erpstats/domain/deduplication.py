"""Consolidation of reference entities that share a display name.

The ERP holds several user ids for the same salesperson. Entities are
grouped by their trimmed name (case-sensitive) and every id is mapped to the
smallest id of its group, the representative.
"""

import logging
from collections import defaultdict
from dataclasses import replace
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from erpstats.domain.entities import (
    ConsolidationCheck,
    DeduplicationReport,
    DuplicateGroup,
    ReferenceEntity,
    TransactionRecord,
)
from erpstats.domain.errors import ConsolidationIntegrityError
from erpstats.utils.coercion import coerce_int

logger = logging.getLogger(__name__)

EntityLike = Union[ReferenceEntity, Mapping[str, Any]]


def _id_and_name(entity: EntityLike) -> tuple[Optional[int], Optional[str]]:
    if isinstance(entity, ReferenceEntity):
        return coerce_int(entity.id), entity.name
    return coerce_int(entity.get("id")), entity.get("name")


def default_name_key(name: str) -> str:
    """Grouping key for a display name: trimmed, case preserved."""
    return name.strip()


class EntityDeduplicator:
    """Builds duplicate groups and the consolidation map for a master list."""

    def __init__(self, name_key: Callable[[str], str] = default_name_key):
        """Initialize the deduplicator.

        Args:
            name_key: Function turning a display name into its grouping key
        """
        self.name_key = name_key

    def analyze(self, entities: Iterable[EntityLike]) -> DeduplicationReport:
        """Group entities by name and map every id to its representative.

        Args:
            entities: ReferenceEntity instances or raw ``{"id", "name"}`` rows

        Returns:
            DeduplicationReport; its consolidation map covers every input id
        """
        members: dict[str, set[int]] = defaultdict(set)
        names: dict[int, str] = {}
        nameless: set[int] = set()
        total = 0

        for entity in entities:
            total += 1
            entity_id, name = _id_and_name(entity)
            if entity_id is None:
                continue
            if not isinstance(name, str) or not name.strip():
                nameless.add(entity_id)
                continue
            key = self.name_key(name)
            members[key].add(entity_id)
            names.setdefault(entity_id, name.strip())

        consolidation: dict[int, int] = {}
        groups: list[DuplicateGroup] = []
        for key, ids in members.items():
            representative = min(ids)
            for entity_id in ids:
                consolidation[entity_id] = representative
            if len(ids) > 1:
                groups.append(
                    DuplicateGroup(
                        name=key,
                        ids=tuple(sorted(ids)),
                        representative_id=representative,
                    )
                )

        for entity_id in nameless:
            consolidation.setdefault(entity_id, entity_id)

        groups.sort(key=lambda group: group.name)
        if groups:
            logger.info(
                "Found %d duplicated names covering %d ids",
                len(groups),
                sum(len(group.ids) for group in groups),
            )

        return DeduplicationReport(
            groups=tuple(groups),
            consolidation_map=MappingProxyType(consolidation),
            names=MappingProxyType(names),
            total_entities=total,
            unique_names=len(members),
        )


def representative_id(consolidation_map: Mapping[int, int], entity_id: Any) -> Optional[int]:
    """Representative for ``entity_id``; unknown ids represent themselves."""
    key = coerce_int(entity_id)
    if key is None:
        return None
    return consolidation_map.get(key, key)


def representative_name(
    report: DeduplicationReport, entity_id: Any, label: str = "Vendor"
) -> str:
    """Display name for an id, always taken from its representative."""
    rep = representative_id(report.consolidation_map, entity_id)
    if rep is None:
        return f"Unknown {label.lower()}"
    return report.names.get(rep) or f"{label} {rep}"


def consolidate(
    records: Iterable[TransactionRecord],
    consolidation_map: Mapping[int, int],
    field: str = "vendor_id",
) -> list[TransactionRecord]:
    """Return records with ``field`` replaced by its representative id."""
    consolidated = []
    for record in records:
        current = getattr(record, field)
        rep = representative_id(consolidation_map, current)
        if current is None or rep == current:
            consolidated.append(record)
        else:
            consolidated.append(replace(record, **{field: rep}))
    return consolidated


def _tally(
    records: Sequence[TransactionRecord],
    key_of: Callable[[TransactionRecord], Optional[int]],
) -> dict[int, dict[str, float]]:
    tally: dict[int, dict[str, float]] = defaultdict(
        lambda: {"count": 0, "total": 0.0}
    )
    for record in records:
        key = key_of(record)
        if key is None:
            continue
        tally[key]["count"] += 1
        tally[key]["total"] += record.revenue or 0.0
    return dict(tally)


def simulate_consolidation(
    records: Iterable[TransactionRecord],
    consolidation_map: Mapping[int, int],
    field: str = "vendor_id",
) -> tuple[dict[int, dict[str, float]], dict[int, dict[str, float]]]:
    """Tally count and revenue per raw id and per representative id."""
    records = list(records)
    raw = _tally(records, lambda record: coerce_int(getattr(record, field)))
    merged = _tally(
        records,
        lambda record: representative_id(consolidation_map, getattr(record, field)),
    )
    return raw, merged


def validate_consolidation(
    records: Iterable[TransactionRecord],
    consolidation_map: Mapping[int, int],
    field: str = "vendor_id",
    tolerance: float = 0.01,
) -> ConsolidationCheck:
    """Check that consolidation preserves revenue totals and record counts."""
    raw, merged = simulate_consolidation(records, consolidation_map, field)
    return ConsolidationCheck(
        total_before=sum(entry["total"] for entry in raw.values()),
        total_after=sum(entry["total"] for entry in merged.values()),
        count_before=int(sum(entry["count"] for entry in raw.values())),
        count_after=int(sum(entry["count"] for entry in merged.values())),
        vendors_before=len(raw),
        vendors_after=len(merged),
        tolerance=tolerance,
    )


def ensure_consistent(check: ConsolidationCheck) -> ConsolidationCheck:
    """Raise ConsolidationIntegrityError unless ``check`` is valid."""
    if not check.is_valid:
        logger.error(
            "Consolidation integrity failure: %.2f -> %.2f, %d -> %d",
            check.total_before,
            check.total_after,
            check.count_before,
            check.count_after,
        )
        raise ConsolidationIntegrityError(check)
    return check


def format_duplicate_report(report: DeduplicationReport) -> str:
    """Render a duplicate report as plain text."""
    lines = [
        "Duplicate entity report",
        "=" * 40,
        f"Total entities:   {report.total_entities}",
        f"Unique names:     {report.unique_names}",
        f"Duplicated names: {report.duplicated_names}",
        f"Ids merged:       {report.removed_ids}",
    ]
    for index, group in enumerate(report.groups, start=1):
        lines.append("")
        lines.append(f"{index}. \"{group.name}\" ({len(group.ids)} ids)")
        lines.append(f"   Representative id: {group.representative_id}")
        lines.append(f"   Ids: {', '.join(str(i) for i in group.ids)}")
    return "\n".join(lines)
