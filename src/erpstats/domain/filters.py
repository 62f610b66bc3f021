"""Filter engine for transactional records."""

import logging
from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional

from erpstats.domain.entities import FilterConfiguration, FilterResult, TransactionRecord
from erpstats.domain.errors import ValidationError
from erpstats.utils.coercion import coerce_int, is_unset, parse_amount
from erpstats.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

Predicate = Callable[[TransactionRecord], bool]
NameLookup = Callable[[TransactionRecord], Iterable[Optional[str]]]

# Raw keys accepted by normalize_filters, including the dashboard's names
FILTER_ALIASES: dict[str, tuple[str, ...]] = {
    "year": ("year", "año", "eje", "selectedYear"),
    "month": ("month", "mes", "selectedMonth"),
    "date_from": ("date_from", "fechaDesde", "from"),
    "date_to": ("date_to", "fechaHasta", "to"),
    "store": ("store", "tienda", "selectedStore"),
    "client": ("client", "cliente", "selectedCliente"),
    "vendor": ("vendor", "vendedor", "selectedVendedor"),
    "payment_method": ("payment_method", "formaPago"),
    "provider": ("provider", "proveedor", "selectedProveedor"),
    "brand": ("brand", "marca", "selectedMarca"),
    "min_amount": ("min_amount", "ventasMinimas", "montoMinimo"),
    "search": ("search", "busqueda", "q"),
    "positive_only": ("positive_only", "soloVentasPositivas"),
}

ID_FIELDS = ("store", "client", "vendor", "payment_method", "provider", "brand")


def _pick(raw: Mapping[str, Any], name: str) -> Any:
    for alias in FILTER_ALIASES[name]:
        if alias in raw:
            return raw[alias]
    return None


def _to_int(name: str, value: Any) -> Optional[int]:
    if is_unset(value):
        return None
    coerced = coerce_int(value)
    if coerced is None:
        raise ValidationError(f"Invalid value for '{name}': {value!r}")
    return coerced


def _to_date(name: str, value: Any) -> Optional[date]:
    if is_unset(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_date(str(value))
    except ValueError as e:
        raise ValidationError(f"Invalid value for '{name}': {e}")


def normalize_filters(raw: Optional[Mapping[str, Any]]) -> FilterConfiguration:
    """Build a FilterConfiguration from a raw mapping.

    Sentinels such as "todos" or "all" leave a constraint unset. String and
    numeric ids are both accepted.

    Raises:
        ValidationError: If a value cannot be interpreted
    """
    raw = raw or {}

    month = _to_int("month", _pick(raw, "month"))
    if month is not None and not 1 <= month <= 12:
        raise ValidationError(f"Invalid value for 'month': {month} (expected 1-12)")

    date_from = _to_date("date_from", _pick(raw, "date_from"))
    date_to = _to_date("date_to", _pick(raw, "date_to"))
    if date_from and date_to and date_from > date_to:
        raise ValidationError(
            f"Start date {date_from.isoformat()} is after end date {date_to.isoformat()}"
        )

    min_amount_raw = _pick(raw, "min_amount")
    min_amount = None
    if not is_unset(min_amount_raw):
        try:
            if isinstance(min_amount_raw, str):
                min_amount = float(parse_amount(min_amount_raw))
            else:
                min_amount = float(min_amount_raw)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid value for 'min_amount': {e}")

    search = _pick(raw, "search")
    search = search.strip() if isinstance(search, str) and search.strip() else None

    ids = {name: _to_int(name, _pick(raw, name)) for name in ID_FIELDS}

    return FilterConfiguration(
        year=_to_int("year", _pick(raw, "year")),
        month=month,
        date_from=date_from,
        date_to=date_to,
        min_amount=min_amount,
        search=search,
        positive_only=bool(_pick(raw, "positive_only") or False),
        **ids,
    )


def record_year(record: TransactionRecord) -> Optional[int]:
    year = coerce_int(record.year)
    if year is None and record.date is not None:
        return record.date.year
    return year


def record_month(record: TransactionRecord) -> Optional[int]:
    month = coerce_int(record.month)
    if month is None and record.date is not None:
        return record.date.month
    return month


def _failed_for_missing_date(predicate_name: str, record: TransactionRecord) -> bool:
    if predicate_name in ("date_from", "date_to"):
        return record.date is None
    if predicate_name == "year":
        return record_year(record) is None
    if predicate_name == "month":
        return record_month(record) is None
    return False


def default_names(record: TransactionRecord) -> Iterable[Optional[str]]:
    return (record.product_name,)


class FilterEngine:
    """Evaluates a FilterConfiguration against a record stream."""

    def __init__(self, name_lookup: Optional[NameLookup] = None):
        """Initialize the filter engine.

        Args:
            name_lookup: Returns the names a free-text search should match for
                a record (product, vendor, client...). Defaults to the
                product name.
        """
        self.name_lookup = name_lookup or default_names

    def predicates(self, config: FilterConfiguration) -> list[tuple[str, Predicate]]:
        """Return one named predicate per populated constraint."""
        predicates: list[tuple[str, Predicate]] = []

        if config.year is not None:
            year = config.year
            predicates.append(("year", lambda r: record_year(r) == year))

        if config.month is not None:
            month = config.month
            predicates.append(("month", lambda r: record_month(r) == month))

        if config.date_from is not None:
            start = config.date_from
            predicates.append(
                ("date_from", lambda r: r.date is not None and r.date >= start)
            )

        if config.date_to is not None:
            end = config.date_to
            predicates.append(
                ("date_to", lambda r: r.date is not None and r.date <= end)
            )

        if config.store is not None:
            store = config.store
            predicates.append(
                (
                    "store",
                    lambda r: coerce_int(r.store_id) == store
                    or coerce_int(r.division_id) == store,
                )
            )

        for name, attribute in (
            ("client", "client_id"),
            ("vendor", "vendor_id"),
            ("payment_method", "payment_method_id"),
            ("provider", "provider_id"),
            ("brand", "brand_id"),
        ):
            wanted = getattr(config, name)
            if wanted is not None:
                predicates.append(
                    (
                        name,
                        lambda r, attribute=attribute, wanted=wanted: coerce_int(
                            getattr(r, attribute)
                        )
                        == wanted,
                    )
                )

        if config.min_amount is not None:
            minimum = config.min_amount
            predicates.append(("min_amount", lambda r: (r.revenue or 0.0) >= minimum))

        if config.positive_only:
            predicates.append(("positive_only", lambda r: (r.revenue or 0.0) > 0))

        if config.search:
            needle = config.search.lower()
            predicates.append(("search", lambda r: self._matches_text(r, needle)))

        return predicates

    def _matches_text(self, record: TransactionRecord, needle: str) -> bool:
        return any(
            needle in name.lower()
            for name in self.name_lookup(record)
            if isinstance(name, str)
        )

    def apply_with_diagnostics(
        self, records: Iterable[TransactionRecord], config: FilterConfiguration
    ) -> FilterResult:
        """Filter records and count which predicate excluded each one.

        A record is charged to the first predicate it fails. Records without
        a parseable date that fail a date predicate are also counted in
        ``undated_excluded``.
        """
        predicates = self.predicates(config)
        excluded: dict[str, int] = {name: 0 for name, _ in predicates}
        undated = 0
        kept: list[TransactionRecord] = []

        for record in records:
            for name, predicate in predicates:
                if not predicate(record):
                    excluded[name] += 1
                    if _failed_for_missing_date(name, record):
                        undated += 1
                    break
            else:
                kept.append(record)

        if undated:
            logger.warning("%d records without a valid date excluded by date filters", undated)

        return FilterResult(records=tuple(kept), excluded=excluded, undated_excluded=undated)

    def apply(
        self, records: Iterable[TransactionRecord], config: FilterConfiguration
    ) -> list[TransactionRecord]:
        """Return the records matching every populated constraint."""
        return list(self.apply_with_diagnostics(records, config).records)
