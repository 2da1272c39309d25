"""
services.predicate_compiler - Facet filters → parameterized SQL.

Pure functions, no database access.  A base query ends in an always-true
predicate (``WHERE 1 = 1`` or a fixed condition) so each present facet
is appended uniformly as ``AND (...)``.  Every value travels in the
parameter list; the query text only ever gains placeholders.

Facets (applied in this order):

    name          substring on part name
    sku           substring on SKU
    supplierCode  exact, any supplier row of the part
    packageCode   one or more values (csv or list), OR-joined equality
    category      one or more values (csv or list), OR-joined equality
    description   whitespace / full-width-space tokens, AND-joined substrings
    q             substring on SKU OR name

The catalog table must be aliased ``p`` in the base query.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping


FACET_ORDER = ("name", "sku", "supplierCode", "packageCode", "category", "description", "q")

# Accepted alternate spellings → canonical facet name
FACET_ALIASES = {
    "supplier_code": "supplierCode",
    "package_code": "packageCode",
}

# ASCII whitespace plus U+3000 ideographic space
_TOKEN_SPLIT = re.compile(r"[\s\u3000]+")

_LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class Clause:
    """One ``AND (...)`` group: its SQL fragment and the values it binds."""

    sql: str
    params: tuple


@dataclass
class CompiledQuery:
    sql: str
    params: list = field(default_factory=list)
    clauses: list[Clause] = field(default_factory=list)


def placeholder_for(paramstyle: str) -> str:
    """Positional placeholder token for a DB-API paramstyle."""
    if paramstyle == "qmark":
        return "?"
    if paramstyle in ("format", "pyformat"):
        return "%s"
    raise ValueError(f"Unsupported paramstyle for positional binding: {paramstyle}")


# ── Input normalisation ────────────────────────────────────────────────

def split_values(raw: Any) -> list[str]:
    """
    "IC, Resistor" / ["IC", "Resistor"] / ["IC,Resistor"] → ["IC", "Resistor"].
    Blank entries are dropped.
    """
    if raw is None:
        return []
    items = [raw] if isinstance(raw, str) else list(raw)
    values = []
    for item in items:
        for part in str(item).split(","):
            part = part.strip()
            if part:
                values.append(part)
    return values


def tokenize(text: Any) -> list[str]:
    if not text:
        return []
    return [t for t in _TOKEN_SPLIT.split(str(text)) if t]


def escape_like(value: str) -> str:
    """Make % and _ in user text match literally."""
    return (
        value.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def contains(value: str) -> str:
    return f"%{escape_like(value)}%"


def normalise_filters(filters: Mapping[str, Any]) -> dict[str, Any]:
    """Fold aliases onto canonical facet names and drop blank inputs."""
    out: dict[str, Any] = {}
    for key, value in filters.items():
        key = FACET_ALIASES.get(key, key)
        if key not in FACET_ORDER or value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        elif not isinstance(value, (list, tuple)):
            value = str(value)
        elif not value:
            continue
        out.setdefault(key, value)
    return out


# ── Clause builders ────────────────────────────────────────────────────

def _like(column: str, ph: str) -> str:
    return f"{column} LIKE {ph} ESCAPE '{_LIKE_ESCAPE}'"


def _single(value: Any) -> str:
    # repeated query args arrive as lists; single-valued facets use the first
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    return str(value).strip()


def _any_of(column: str, values: Iterable[str], ph: str) -> Clause | None:
    values = list(values)
    if not values:
        return None
    sql = " OR ".join(f"{column} = {ph}" for _ in values)
    return Clause(sql, tuple(values))


def _build_clause(facet: str, value: Any, ph: str) -> Clause | None:
    if facet == "name":
        text = _single(value)
        return Clause(_like("p.name", ph), (contains(text),)) if text else None

    if facet == "sku":
        text = _single(value)
        return Clause(_like("p.sku", ph), (contains(text),)) if text else None

    if facet == "supplierCode":
        code = _single(value)
        if not code:
            return None
        return Clause(
            "EXISTS (SELECT 1 FROM part_suppliers ps "
            f"WHERE ps.part_sku = p.sku AND ps.supplier_code = {ph})",
            (code,),
        )

    if facet == "packageCode":
        return _any_of("p.package_code", split_values(value), ph)

    if facet == "category":
        return _any_of("p.category", split_values(value), ph)

    if facet == "description":
        tokens = tokenize(" ".join(value) if isinstance(value, (list, tuple)) else value)
        if not tokens:
            return None
        sql = " AND ".join(_like("p.description", ph) for _ in tokens)
        return Clause(sql, tuple(contains(t) for t in tokens))

    if facet == "q":
        text = _single(value)
        if not text:
            return None
        pattern = contains(text)
        return Clause(f"{_like('p.sku', ph)} OR {_like('p.name', ph)}", (pattern, pattern))

    raise ValueError(f"Unknown facet: {facet}")


# ── Public API ─────────────────────────────────────────────────────────

def compile_filters(
    filters: Mapping[str, Any],
    *,
    base: str = "SELECT p.* FROM parts_catalog p WHERE 1 = 1",
    order_by: str | None = None,
    placeholder: str = "?",
) -> CompiledQuery:
    """
    Compile a facet mapping into (sql, params, clauses).

    ``base`` must already contain a WHERE with an always-applicable
    predicate.  Placeholders in the result match ``params`` one-to-one,
    left to right.
    """
    facets = normalise_filters(filters)
    clauses: list[Clause] = []
    for facet in FACET_ORDER:
        if facet not in facets:
            continue
        clause = _build_clause(facet, facets[facet], placeholder)
        if clause is not None:
            clauses.append(clause)

    sql = base.rstrip()
    params: list = []
    for clause in clauses:
        sql += f"\n  AND ({clause.sql})"
        params.extend(clause.params)
    if order_by:
        sql += f"\nORDER BY {order_by}"

    return CompiledQuery(sql=sql, params=params, clauses=clauses)
