"""Tests for raw row mappers."""

from datetime import date

from erpstats.domain.entities import RecordKind, ReferenceEntity
from erpstats.domain.mappers import (
    article_attribute_map,
    entities_from_rows,
    entity_from_row,
    invoice_from_row,
    line_from_row,
    lines_from_rows,
    purchase_from_row,
)


class TestEntityMapper:
    """Tests for master row mapping."""

    def test_entity_from_row(self):
        entity = entity_from_row({"id": "10", "name": " Joyeria Sol ", "es_clt": True})
        assert entity == ReferenceEntity(id=10, name="Joyeria Sol")
        assert entity.attributes == {"es_clt": True}

    def test_rows_without_id_are_skipped(self):
        entities = entities_from_rows([{"id": None, "name": "x"}, {"id": 1, "name": None}])
        assert [e.id for e in entities] == [1]
        assert entities[0].name is None


class TestInvoiceMapper:
    """Tests for invoice mapping."""

    def test_invoice_from_row(self):
        invoice = invoice_from_row(
            {"id": "1000", "fch": "15/03/2024", "eje": "2024", "mes": "3", "tot": "100,50",
             "alt_usr": "2", "clt": 10, "fpg": 1, "emp": 5, "emp_div": 6}
        )
        assert invoice.kind == RecordKind.INVOICE
        assert invoice.id == 1000
        assert invoice.date == date(2024, 3, 15)
        assert invoice.raw_date == "15/03/2024"
        assert (invoice.year, invoice.month) == (2024, 3)
        assert invoice.revenue == 100.5
        assert invoice.vendor_id == 2
        assert invoice.division_id == 6
        assert invoice.invoice_id == 1000

    def test_year_and_month_derived_from_date(self):
        invoice = invoice_from_row({"id": 1, "fch": "2023-11-02", "tot": 5})
        assert (invoice.year, invoice.month) == (2023, 11)

    def test_unparseable_date_keeps_raw_value(self):
        invoice = invoice_from_row({"id": 1, "fch": "31/13/2024", "eje": 2024, "tot": 5})
        assert invoice.date is None
        assert invoice.raw_date == "31/13/2024"
        assert invoice.year == 2024
        assert invoice.month is None


class TestLineMapper:
    """Tests for invoice line mapping."""

    def test_line_inherits_from_invoice(self):
        invoice = invoice_from_row({"id": 1000, "fch": "2024-03-15", "alt_usr": 1, "clt": 10, "fpg": 2, "emp": 5})
        line = line_from_row(
            {"id": 1, "fac": "1000", "art": 100, "name": " Ring ", "can": "2", "cos": "10", "imp_pvp": 50, "ben": -10},
            invoice=invoice,
            season_by_article={100: 3},
            brand_by_article={100: 7},
        )
        assert line.kind == RecordKind.INVOICE_LINE
        assert line.parent_id == 1000
        assert line.invoice_id == 1000
        assert line.date == date(2024, 3, 15)
        assert line.vendor_id == 1
        assert line.payment_method_id == 2
        assert line.store_id == 5
        assert line.season_id == 3
        assert line.brand_id == 7
        assert line.product_name == "Ring"
        assert line.quantity == 2
        assert line.unit_cost == 10
        assert line.stored_profit == -10

    def test_line_own_brand_wins(self):
        line = line_from_row({"id": 1, "art": 100, "mar_m": 9}, brand_by_article={100: 7})
        assert line.brand_id == 9

    def test_orphan_line(self):
        line = line_from_row({"id": 1, "fac": 5, "imp_pvp": 10})
        assert line.date is None
        assert line.vendor_id is None
        assert line.stored_profit is None

    def test_unreadable_line_date_falls_back_to_invoice(self):
        invoice = invoice_from_row({"id": 1000, "fch": "2024-03-15"})
        line = line_from_row({"id": 1, "fac": 1000, "fch": "31/13/2024"}, invoice=invoice)
        assert line.date == date(2024, 3, 15)
        assert (line.year, line.month) == (2024, 3)

    def test_own_line_date_wins(self):
        invoice = invoice_from_row({"id": 1000, "fch": "2024-03-15"})
        line = line_from_row({"id": 1, "fac": 1000, "fch": "2024-04-01"}, invoice=invoice)
        assert line.date == date(2024, 4, 1)

    def test_unreadable_amounts_are_flagged(self):
        line = line_from_row({"id": 1, "imp_pvp": "n/a", "cos": 60, "can": "x", "ben": "?"})
        assert not line.amounts_ok
        assert line.unparseable_fields == ("imp_pvp", "can")
        assert line.revenue == 0.0
        assert line.unit_cost == 60
        assert line.stored_profit is None

    def test_missing_amounts_are_zero_not_unreadable(self):
        line = line_from_row({"id": 1})
        assert line.amounts_ok
        assert line.revenue == 0.0

    def test_lines_from_rows_joins_invoices_and_articles(self):
        invoices = [invoice_from_row({"id": 1, "fch": "2024-01-01", "alt_usr": 4})]
        articles = entities_from_rows([{"id": 100, "name": "Ring", "temp": "3", "mar": 7}])
        lines = lines_from_rows([{"id": 1, "fac": 1, "art": 100}, {"id": 2, "fac": 2, "art": 5}], invoices, articles)
        assert lines[0].vendor_id == 4
        assert lines[0].season_id == 3
        assert lines[1].vendor_id is None
        assert lines[1].season_id is None


def test_purchase_from_row():
    purchase = purchase_from_row({"id": 7, "fch": "20240201", "tot_alb": "1.250,00", "prv": 20, "emp": 5})
    assert purchase.kind == RecordKind.PURCHASE_LINE
    assert purchase.date == date(2024, 2, 1)
    assert purchase.revenue == 1250.0
    assert purchase.provider_id == 20
    assert (purchase.year, purchase.month) == (2024, 2)


def test_article_attribute_map():
    articles = entities_from_rows([{"id": 1, "temp": "2"}, {"id": 2, "temp": None}])
    assert article_attribute_map(articles, "temp") == {1: 2}


def test_invoice_with_unreadable_total():
    invoice = invoice_from_row({"id": 1, "fch": "2024-01-01", "tot": "12.3.4,5,6"})
    assert invoice.unparseable_fields == ("tot",)
