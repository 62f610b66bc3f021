"""Profit correction for invoice lines.

The ERP's stored line profit (``ben``) holds ``-cos``, not the real profit.
Every financial total in erpstats goes through ``corrected_profit``; the
stored value is only read by ``audit_stored_profit``.
"""

from dataclasses import replace
from typing import Iterable, Optional

from erpstats.domain.entities import (
    ProfitAudit,
    ProfitDiscrepancy,
    TransactionRecord,
)

AUDIT_SAMPLE_SIZE = 10


def line_cost(line: TransactionRecord) -> float:
    """Total cost of a line: unit cost times quantity."""
    return (line.unit_cost or 0.0) * (line.quantity or 0.0)


def corrected_profit(line: TransactionRecord) -> float:
    """Profit of a line computed from revenue and cost."""
    return (line.revenue or 0.0) - line_cost(line)


def margin_pct(profit: float, revenue: float) -> float:
    """Profit as a percentage of revenue, 0 when revenue is 0."""
    if not revenue:
        return 0.0
    return (profit / revenue) * 100


def markup_pct(profit: float, cost: float) -> float:
    """Profit as a percentage of cost, 0 when cost is 0."""
    if not cost:
        return 0.0
    return (profit / cost) * 100


def with_corrected_profit(line: TransactionRecord) -> TransactionRecord:
    """Return a copy of ``line`` with ``corrected_profit`` attached."""
    return replace(line, corrected_profit=corrected_profit(line))


def correct_all(lines: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    return [with_corrected_profit(line) for line in lines]


def split_unreadable(
    records: Iterable[TransactionRecord],
) -> tuple[list[TransactionRecord], int]:
    """Separate records whose amounts could not be read.

    Returns:
        The readable records and the number left out
    """
    readable = []
    skipped = 0
    for record in records:
        if record.amounts_ok:
            readable.append(record)
        else:
            skipped += 1
    return readable, skipped


def audit_stored_profit(
    lines: Iterable[TransactionRecord],
    tolerance: float = 0.01,
    sample_size: Optional[int] = AUDIT_SAMPLE_SIZE,
) -> ProfitAudit:
    """Compare the stored profit field against the corrected profit.

    Args:
        lines: Invoice lines to check; lines with unreadable amounts are skipped
        tolerance: Absolute difference still considered consistent
        sample_size: Maximum number of discrepancies kept for display

    Returns:
        ProfitAudit with consistent/inconsistent counts
    """
    total = 0
    consistent = 0
    samples: list[ProfitDiscrepancy] = []

    for line in lines:
        if not line.amounts_ok:
            continue
        total += 1
        stored = line.stored_profit or 0.0
        computed = corrected_profit(line)
        if abs(stored - computed) > tolerance:
            if sample_size is None or len(samples) < sample_size:
                samples.append(
                    ProfitDiscrepancy(
                        line_id=line.id,
                        invoice_id=line.parent_id,
                        product_name=line.product_name,
                        stored_profit=stored,
                        corrected_profit=computed,
                    )
                )
        else:
            consistent += 1

    return ProfitAudit(
        total=total,
        consistent=consistent,
        inconsistent=total - consistent,
        samples=tuple(samples),
    )
