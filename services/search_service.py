"""
services.search_service - Catalog-centric and inventory-centric listings.

Both shapes run a query produced by services.predicate_compiler as a
raw driver statement, so the placeholders the compiler emits are the
ones the DB-API driver binds.
"""

from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy.orm import Session

from services.predicate_compiler import compile_filters, placeholder_for


# One result row per (part, representative lot, supplier).  A part with
# several supplier rows therefore appears several times.
CATALOG_SEARCH_SQL = """
SELECT DISTINCT
    p.sku, p.category, p.name, p.mpn, p.package_code, p.description,
    p.image_url, p.default_spec, p.unit,
    i.id AS inventory_id, i.location_code, i.quantity, i.spec_value, i.condition,
    s.supplier_code, s.supplier_name, s.product_url
FROM parts_catalog p
LEFT JOIN inventory i ON i.id = (
    SELECT i2.id FROM inventory i2
    WHERE i2.part_sku = p.sku
    ORDER BY CASE WHEN i2.quantity > 0 THEN 0 ELSE 1 END, i2.id
    LIMIT 1
)
LEFT JOIN part_suppliers s ON s.part_sku = p.sku
WHERE 1 = 1
"""

INVENTORY_SEARCH_SQL = """
SELECT
    i.id, i.part_sku, i.location_code, i.quantity, i.spec_value,
    i.condition, i.last_updated,
    p.name, p.category, p.package_code, p.default_spec, p.unit
FROM inventory i
JOIN parts_catalog p ON i.part_sku = p.sku
WHERE i.quantity > 0
"""

# Facets the inventory view exposes
INVENTORY_FACETS = ("category", "packageCode", "package_code", "supplierCode", "supplier_code")


class SearchService:

    @staticmethod
    def search_catalog(
        session: Session,
        filters: Mapping[str, Any],
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict]:
        """Catalog rows matching *filters*, left-joined to stock and suppliers."""
        ph = placeholder_for(session.get_bind().dialect.paramstyle)
        compiled = compile_filters(
            filters, base=CATALOG_SEARCH_SQL,
            order_by="p.sku, i.id, s.supplier_code", placeholder=ph,
        )
        sql = compiled.sql + f"\nLIMIT {ph} OFFSET {ph}"
        params = [*compiled.params, limit, offset]
        return SearchService._run(session, sql, params)

    @staticmethod
    def search_inventory(session: Session, filters: Mapping[str, Any]) -> list[dict]:
        """In-stock lots with catalog display fields flattened onto each lot."""
        ph = placeholder_for(session.get_bind().dialect.paramstyle)
        scoped = {k: v for k, v in filters.items() if k in INVENTORY_FACETS}
        compiled = compile_filters(
            scoped, base=INVENTORY_SEARCH_SQL, order_by="i.id", placeholder=ph,
        )
        rows = SearchService._run(session, compiled.sql, compiled.params)
        for row in rows:
            if row.get("last_updated") is not None and not isinstance(row["last_updated"], str):
                row["last_updated"] = row["last_updated"].isoformat()
        return rows

    # ── Internal ───────────────────────────────────────────────────────

    @staticmethod
    def _run(session: Session, sql: str, params: list) -> list[dict]:
        result = session.connection().exec_driver_sql(sql, tuple(params))
        return [dict(row) for row in result.mappings()]
