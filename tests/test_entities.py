"""Tests for domain entities."""

import pytest
from dataclasses import FrozenInstanceError
from datetime import date

from erpstats.domain.entities import (
    ConsolidationCheck,
    Dataset,
    DeduplicationReport,
    Diagnostics,
    DuplicateGroup,
    FetchResult,
    FilterConfiguration,
    ParsedDate,
    RecordKind,
    ReferenceEntity,
    TransactionRecord,
)


def test_transaction_record_is_frozen():
    record = TransactionRecord(id=1, kind=RecordKind.INVOICE)
    with pytest.raises(FrozenInstanceError):
        record.revenue = 10


def test_invoice_id():
    assert TransactionRecord(id=5, kind=RecordKind.INVOICE).invoice_id == 5
    assert TransactionRecord(id=1, kind=RecordKind.INVOICE_LINE, parent_id=5).invoice_id == 5


def test_parsed_date_ok():
    assert ParsedDate(raw="x", value=None, rule="unparseable").ok is False
    assert ParsedDate(raw="2024-01-01", value=date(2024, 1, 1), rule="iso").ok


def test_reference_entity_equality_ignores_attributes():
    assert ReferenceEntity(1, "Ana", {"a": 1}) == ReferenceEntity(1, "Ana", {"a": 2})


def test_fetch_result_complete():
    assert FetchResult("fac_t", ({"id": 1},), total_count=1, pages_fetched=1).complete
    assert not FetchResult("fac_t", ({"id": 1},), total_count=2, pages_fetched=1).complete


def test_deduplication_report_counts():
    report = DeduplicationReport(
        groups=(DuplicateGroup("Ana", (1, 2, 4), 1), DuplicateGroup("Eva", (6, 7), 6)),
        consolidation_map={},
        names={},
        total_entities=10,
        unique_names=7,
    )
    assert report.duplicated_names == 2
    assert report.removed_ids == 3


def test_consolidation_check_tolerance():
    check = ConsolidationCheck(100.0, 100.005, 3, 3, 3, 2)
    assert check.is_valid
    assert not ConsolidationCheck(100.0, 100.02, 3, 3, 3, 2).is_valid
    assert not ConsolidationCheck(100.0, 100.0, 3, 2, 3, 2).is_valid


def test_filter_configuration_is_empty():
    assert FilterConfiguration().is_empty
    assert not FilterConfiguration(year=2024).is_empty


def test_dataset_partial_tables_and_master():
    dataset = Dataset(
        masters={"usr_m": (ReferenceEntity(1, "Ana"),)},
        fetch_results={
            "usr_m": FetchResult("usr_m", (), total_count=0, pages_fetched=1),
            "fac_t": FetchResult("fac_t", (), total_count=5, pages_fetched=1, truncated=True),
        },
    )
    assert dataset.partial_tables == ("fac_t",)
    assert dataset.master("usr_m")[0].name == "Ana"
    assert dataset.master("mar_m") == ()


def test_diagnostics_degraded():
    assert not Diagnostics().degraded
    assert Diagnostics(partial_loads=("fac_t",)).degraded
