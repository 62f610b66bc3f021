"""Mapper functions converting raw ERP rows into domain entities.

This layer isolates the ERP's short field codes, so a renamed column only
touches the mappings below.
"""

from typing import Any, Iterable, Mapping, Optional

from erpstats.domain.entities import (
    RecordKind,
    ReferenceEntity,
    TransactionRecord,
)
from erpstats.utils.coercion import coerce_int, try_amount
from erpstats.utils.date_parser import parse_record_date

# ERP field codes
INVOICE_FIELDS = {
    "id": "id",
    "date": "fch",
    "year": "eje",
    "month": "mes",
    "revenue": "tot",
    "vendor_id": "alt_usr",
    "client_id": "clt",
    "payment_method_id": "fpg",
    "store_id": "emp",
    "division_id": "emp_div",
}

LINE_FIELDS = {
    "id": "id",
    "parent_id": "fac",
    "date": "fch",
    "product_id": "art",
    "product_name": "name",
    "quantity": "can",
    "unit_cost": "cos",
    "revenue": "imp_pvp",
    "stored_profit": "ben",
    "provider_id": "prv",
    "brand_id": "mar_m",
    "family_id": "fam",
}

PURCHASE_FIELDS = {
    "id": "id",
    "date": "fch",
    "year": "eje",
    "month": "mes",
    "revenue": "tot_alb",
    "provider_id": "prv",
    "store_id": "emp",
    "division_id": "alm",
}

ARTICLE_SEASON_FIELD = "temp"
ARTICLE_BRAND_FIELD = "mar"


def _get(row: Mapping[str, Any], fields: Mapping[str, str], name: str) -> Any:
    return row.get(fields[name])


def _amounts(
    row: Mapping[str, Any], fields: Mapping[str, str], *names: str
) -> dict[str, Any]:
    """Read amount fields; unreadable ones are 0.0 and listed by field code."""
    values: dict[str, Any] = {}
    failed = []
    for name in names:
        amount = try_amount(_get(row, fields, name))
        if amount is None:
            failed.append(fields[name])
            amount = 0.0
        values[name] = amount
    values["unparseable_fields"] = tuple(failed)
    return values


def _dated(row: Mapping[str, Any], fields: Mapping[str, str]) -> dict[str, Any]:
    parsed = parse_record_date(_get(row, fields, "date"))
    year = coerce_int(row.get(fields["year"])) if "year" in fields else None
    month = coerce_int(row.get(fields["month"])) if "month" in fields else None
    if parsed.ok:
        year = year if year is not None else parsed.value.year
        month = month if month is not None else parsed.value.month
    return {"raw_date": parsed.raw, "date": parsed.value, "year": year, "month": month}


def entity_from_row(row: Mapping[str, Any]) -> Optional[ReferenceEntity]:
    """Convert a master row into a ReferenceEntity; rows without id are skipped."""
    entity_id = coerce_int(row.get("id"))
    if entity_id is None:
        return None
    name = row.get("name")
    attributes = {key: value for key, value in row.items() if key not in ("id", "name")}
    return ReferenceEntity(
        id=entity_id,
        name=name.strip() if isinstance(name, str) else None,
        attributes=attributes,
    )


def entities_from_rows(rows: Iterable[Mapping[str, Any]]) -> tuple[ReferenceEntity, ...]:
    entities = (entity_from_row(row) for row in rows)
    return tuple(entity for entity in entities if entity is not None)


def invoice_from_row(row: Mapping[str, Any]) -> TransactionRecord:
    """Convert a raw invoice header into a TransactionRecord."""
    f = INVOICE_FIELDS
    return TransactionRecord(
        id=coerce_int(_get(row, f, "id")),
        kind=RecordKind.INVOICE,
        vendor_id=coerce_int(_get(row, f, "vendor_id")),
        client_id=coerce_int(_get(row, f, "client_id")),
        payment_method_id=coerce_int(_get(row, f, "payment_method_id")),
        store_id=coerce_int(_get(row, f, "store_id")),
        division_id=coerce_int(_get(row, f, "division_id")),
        **_amounts(row, f, "revenue"),
        **_dated(row, f),
    )


def line_from_row(
    row: Mapping[str, Any],
    invoice: Optional[TransactionRecord] = None,
    season_by_article: Optional[Mapping[int, int]] = None,
    brand_by_article: Optional[Mapping[int, int]] = None,
) -> TransactionRecord:
    """Convert a raw invoice line, inheriting date and parties from its invoice.

    The stored profit is kept for auditing only.
    """
    f = LINE_FIELDS
    product_id = coerce_int(_get(row, f, "product_id"))
    stored = _get(row, f, "stored_profit")

    brand_id = coerce_int(_get(row, f, "brand_id"))
    if brand_id is None and brand_by_article and product_id is not None:
        brand_id = brand_by_article.get(product_id)

    season_id = None
    if season_by_article and product_id is not None:
        season_id = season_by_article.get(product_id)

    dated = {"raw_date": None, "date": None, "year": None, "month": None}
    if _get(row, f, "date") is not None:
        dated = _dated(row, {"date": f["date"]})
    # An unreadable line date falls back to the invoice date
    if dated["date"] is None and invoice is not None:
        dated = {
            "raw_date": invoice.raw_date,
            "date": invoice.date,
            "year": invoice.year,
            "month": invoice.month,
        }

    name = _get(row, f, "product_name")
    return TransactionRecord(
        id=coerce_int(_get(row, f, "id")),
        kind=RecordKind.INVOICE_LINE,
        parent_id=coerce_int(_get(row, f, "parent_id")),
        stored_profit=None if stored is None else try_amount(stored),
        provider_id=coerce_int(_get(row, f, "provider_id")),
        brand_id=brand_id,
        season_id=season_id,
        family_id=coerce_int(_get(row, f, "family_id")),
        product_id=product_id,
        product_name=name.strip() if isinstance(name, str) else None,
        vendor_id=invoice.vendor_id if invoice else None,
        client_id=invoice.client_id if invoice else None,
        payment_method_id=invoice.payment_method_id if invoice else None,
        store_id=invoice.store_id if invoice else None,
        division_id=invoice.division_id if invoice else None,
        **_amounts(row, f, "revenue", "quantity", "unit_cost"),
        **dated,
    )


def purchase_from_row(row: Mapping[str, Any]) -> TransactionRecord:
    """Convert a raw purchase delivery note into a TransactionRecord."""
    f = PURCHASE_FIELDS
    return TransactionRecord(
        id=coerce_int(_get(row, f, "id")),
        kind=RecordKind.PURCHASE_LINE,
        provider_id=coerce_int(_get(row, f, "provider_id")),
        store_id=coerce_int(_get(row, f, "store_id")),
        division_id=coerce_int(_get(row, f, "division_id")),
        **_amounts(row, f, "revenue"),
        **_dated(row, f),
    )


def article_attribute_map(
    articles: Iterable[ReferenceEntity], attribute: str
) -> dict[int, int]:
    """Map article id to an id-valued attribute (season, brand...)."""
    mapping: dict[int, int] = {}
    for article in articles:
        value = coerce_int(article.attributes.get(attribute))
        if value is not None:
            mapping[article.id] = value
    return mapping


def lines_from_rows(
    rows: Iterable[Mapping[str, Any]],
    invoices: Iterable[TransactionRecord] = (),
    articles: Iterable[ReferenceEntity] = (),
) -> tuple[TransactionRecord, ...]:
    """Convert invoice lines, joining each with its invoice and article."""
    invoices_by_id = {invoice.id: invoice for invoice in invoices if invoice.id is not None}
    articles = tuple(articles)
    seasons = article_attribute_map(articles, ARTICLE_SEASON_FIELD)
    brands = article_attribute_map(articles, ARTICLE_BRAND_FIELD)
    return tuple(
        line_from_row(
            row,
            invoice=invoices_by_id.get(coerce_int(row.get(LINE_FIELDS["parent_id"]))),
            season_by_article=seasons,
            brand_by_article=brands,
        )
        for row in rows
    )
