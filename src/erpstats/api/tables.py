"""ERP tables read by erpstats."""

from dataclasses import dataclass
from typing import Optional

from erpstats.domain.entities import RecordKind
from erpstats.domain.errors import ValidationError


@dataclass(frozen=True)
class TableSpec:
    """One paginated ERP endpoint.

    ``kind`` is None for master tables.
    """

    code: str
    description: str
    kind: Optional[RecordKind] = None
    fields: Optional[tuple[str, ...]] = None

    @property
    def endpoint(self) -> str:
        return f"/{self.code}"

    @property
    def record_key(self) -> str:
        return self.code

    @property
    def is_master(self) -> bool:
        return self.kind is None


INVOICES = TableSpec(
    "fac_t",
    "Invoices",
    RecordKind.INVOICE,
    fields=("id", "emp", "emp_div", "fch", "eje", "mes", "clt", "fpg", "tot", "fin", "alt_usr"),
)
INVOICE_LINES = TableSpec(
    "fac_lin_t",
    "Invoice lines",
    RecordKind.INVOICE_LINE,
    fields=("id", "fac", "fch", "art", "name", "can", "cos", "imp_pvp", "ben", "prv", "mar_m", "fam"),
)
PURCHASE_LINES = TableSpec("com_alb_g", "Purchase delivery notes", RecordKind.PURCHASE_LINE)
ARTICLES = TableSpec("art_m", "Articles")
ENTITIES = TableSpec("ent_m", "Clients and providers")
USERS = TableSpec("usr_m", "Users and vendors")
STORES = TableSpec("emp_m", "Companies and stores")
PAYMENT_METHODS = TableSpec("fpg_m", "Payment methods")
BRANDS = TableSpec("mar_m", "Brands")
SEASONS = TableSpec("temp_m", "Seasons")

TABLES: dict[str, TableSpec] = {
    spec.code: spec
    for spec in (
        INVOICES,
        INVOICE_LINES,
        PURCHASE_LINES,
        ARTICLES,
        ENTITIES,
        USERS,
        STORES,
        PAYMENT_METHODS,
        BRANDS,
        SEASONS,
    )
}

MASTER_TABLES = tuple(code for code, spec in TABLES.items() if spec.is_master)


def get_table(code: str) -> TableSpec:
    """Look up a table by code, accepting a leading slash.

    Raises:
        ValidationError: If the table is unknown
    """
    spec = TABLES.get(code.strip().lstrip("/"))
    if spec is None:
        raise ValidationError(
            f"Unknown table '{code}'. Available: {', '.join(sorted(TABLES))}"
        )
    return spec
