"""Tests for the group-by aggregator."""

import pytest
from datetime import date

from erpstats.domain.aggregation import (
    Aggregator,
    calendar_month_key,
    concentration_index,
    field_key,
    month_key,
    rollup_revenue,
    sort_rollups,
    top_n,
    year_key,
)
from erpstats.domain.entities import RecordKind, SortOrder, TransactionRecord


def _line(line_id, revenue, invoice, vendor=None, product=None, cost=0.0, qty=1.0, **kwargs):
    return TransactionRecord(
        id=line_id,
        kind=RecordKind.INVOICE_LINE,
        parent_id=invoice,
        revenue=revenue,
        unit_cost=cost,
        quantity=qty,
        vendor_id=vendor,
        product_id=product,
        **kwargs,
    )


def test_empty_input_returns_empty_list():
    aggregator = Aggregator()
    assert aggregator.group_by([], field_key("vendor_id")) == []
    assert aggregator.last_dropped == 0


def test_group_metrics():
    lines = [
        _line(1, 100, invoice=10, vendor=1, product=100, cost=60),
        _line(2, 50, invoice=10, vendor=1, product=101, cost=10, qty=2),
        _line(3, 30, invoice=11, vendor="3", product=101, cost=10),
    ]
    rollups = Aggregator().group_by(lines, field_key("vendor_id"), name_fn=lambda k: f"V{k}")

    first, second = rollups
    assert first.key == 1
    assert first.name == "V1"
    assert first.total_revenue == 150
    assert first.total_cost == 80
    assert first.total_profit == 70
    assert first.total_quantity == 3
    assert first.line_count == 2
    assert first.invoice_count == 1
    assert first.product_count == 2
    assert first.average_ticket == 150
    assert first.average_price == 50
    assert first.margin_pct == pytest.approx(46.666, rel=1e-3)
    assert first.participation_pct == pytest.approx(83.333, rel=1e-3)
    assert second.key == 3
    assert second.participation_pct == pytest.approx(16.666, rel=1e-3)


def test_rollups_preserve_filtered_total():
    lines = [_line(i, revenue, invoice=i, vendor=i % 3) for i, revenue in enumerate([10, 20, 30, 40, 55.5])]
    rollups = Aggregator().group_by(lines, field_key("vendor_id"))
    assert rollup_revenue(rollups) == pytest.approx(155.5)
    assert sum(r.participation_pct for r in rollups) == pytest.approx(100)


def test_missing_key_is_dropped_and_counted():
    aggregator = Aggregator()
    lines = [_line(1, 100, invoice=1, vendor=1), _line(2, 40, invoice=2, vendor=None)]
    rollups = aggregator.group_by(lines, field_key("vendor_id"))
    assert [r.key for r in rollups] == [1]
    assert rollup_revenue(rollups) == 100
    assert aggregator.last_dropped == 1


def test_revenue_ties_break_by_key():
    lines = [_line(1, 50, invoice=1, vendor=9), _line(2, 50, invoice=2, vendor=2), _line(3, 80, invoice=3, vendor=5)]
    rollups = Aggregator().group_by(lines, field_key("vendor_id"))
    assert [r.key for r in rollups] == [5, 2, 9]


def test_zero_total_gives_zero_participation_and_margin():
    lines = [_line(1, 0, invoice=1, vendor=1), _line(2, 0, invoice=2, vendor=2)]
    rollups = Aggregator().group_by(lines, field_key("vendor_id"))
    assert all(r.participation_pct == 0 for r in rollups)
    assert all(r.margin_pct == 0 for r in rollups)


def test_month_series_sorted_by_key():
    lines = [
        _line(1, 10, invoice=1, date=date(2024, 3, 1)),
        _line(2, 99, invoice=2, date=date(2024, 1, 5)),
        _line(3, 5, invoice=3, year=2024, month=2),
        _line(4, 7, invoice=4),
    ]
    aggregator = Aggregator()
    rollups = aggregator.group_by(lines, month_key, sort=SortOrder.KEY)
    assert [r.key for r in rollups] == ["2024-01", "2024-02", "2024-03"]
    assert aggregator.last_dropped == 1


def test_key_helpers():
    record = _line(1, 10, invoice=1, date=date(2023, 12, 24), year="2024", month="1")
    assert month_key(record) == "2023-12"
    assert year_key(record) == 2023
    assert calendar_month_key(record) == 12
    assert year_key(_line(2, 10, invoice=1, year="2024")) == 2024
    assert calendar_month_key(_line(3, 10, invoice=1, month=13)) is None
    assert field_key("product_name", as_id=False)(_line(4, 1, invoice=1, product_name="  ")) is None


def test_totals():
    lines = [_line(1, 100, invoice=1, cost=60), _line(2, 50, invoice=1, cost=20)]
    totals = Aggregator().totals(lines)
    assert totals.name == "Total"
    assert totals.total_revenue == 150
    assert totals.total_profit == 70
    assert totals.invoice_count == 1
    assert totals.participation_pct == 100
    assert Aggregator().totals([]).participation_pct == 0


def test_seasonality_merges_years():
    lines = [
        _line(1, 10, invoice=1, date=date(2023, 3, 1)),
        _line(2, 20, invoice=2, date=date(2024, 3, 9)),
        _line(3, 5, invoice=3, date=date(2024, 1, 9)),
    ]
    rollups = Aggregator().seasonality(lines)
    assert [(r.key, r.name, r.total_revenue) for r in rollups] == [
        (1, "January", 5),
        (3, "March", 30),
    ]


def test_top_n_and_concentration():
    lines = [_line(i, revenue, invoice=i, vendor=i) for i, revenue in enumerate([50, 30, 20], start=1)]
    rollups = Aggregator().group_by(lines, field_key("vendor_id"))
    assert [r.key for r in top_n(rollups, 2)] == [1, 2]
    assert top_n(rollups, 0) == []
    assert concentration_index(rollups) == pytest.approx(0.25 + 0.09 + 0.04)
    assert [r.key for r in sort_rollups(rollups, SortOrder.KEY)] == [1, 2, 3]
