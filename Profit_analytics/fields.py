"""Locate logical fields inside report rows of unknown shape.

Report rows come back either positional (a list of values plus a parallel
``columns`` list) or keyed (a mapping, sometimes with nested ``product`` or
``metrics`` objects), and the column naming may be snake_case or camelCase
depending on how the report was requested. Each logical field carries two
ranked alias tables:

* ``positional`` patterns use word boundaries and are matched against column
  names; the first column (in column order) matching any pattern wins.
* ``keyed`` patterns are anchored and matched against mapping keys; patterns
  are tried in order and the first key matching the current pattern wins.

Order inside each table matters: aggregate spellings (``sum_qty``) precede
bare ones (``qty``) so an ambiguous schema resolves the same way every time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Pattern, Sequence, Tuple, Union

from Profit_analytics.values import to_num

_NESTED_KEYS = ("product", "metrics")


@dataclass(frozen=True)
class FieldAliases:
    positional: Tuple[Pattern[str], ...]
    keyed: Tuple[Pattern[str], ...]


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


FIELD_ALIASES: Dict[str, FieldAliases] = {
    "id": FieldAliases(
        positional=_compile(r"(\bproduct\.?id\b|\bid\b)", r"\bproductid\b", r"product.?id"),
        keyed=_compile(r"(^|product[._])id$", r"^id$", r"productid$", r"product.?id$"),
    ),
    "sku": FieldAliases(
        positional=_compile(r"(\bproduct\.?sku\b|\bsku\b)", r"\bproductsku\b", r"product.?sku"),
        keyed=_compile(r"(^|product[._])sku$", r"^sku$", r"productsku$", r"product.?sku$"),
    ),
    "name": FieldAliases(
        positional=_compile(r"(\bproduct\.?name\b|\bname\b)", r"\bproductname\b", r"product.?name"),
        keyed=_compile(r"(^|product[._])name$", r"^name$", r"productname$", r"product.?name$"),
    ),
    "qty": FieldAliases(
        positional=_compile(
            r"\bsum[_ ]?qty\b",
            r"\bsumqty\b",
            r"\btotal[_ ]?qty\b",
            r"\bqty[_ ]?sold\b",
            r"\bqty\b",
            r"\bquantity\b",
            r"units?_sold?",
            r"\bunits?\b",
        ),
        keyed=_compile(
            r"sum[_ ]?qty",
            r"sumqty",
            r"total[_ ]?qty",
            r"qty[_ ]?sold",
            r"^qty$",
            r"quantity",
            r"units?_sold?",
            r"^units?$",
        ),
    ),
    "total": FieldAliases(
        positional=_compile(
            r"\bsum[_ ]?(total|amount|revenue)\b",
            r"\bsumtotal\b",
            r"\btotal[_ ]?amount\b",
            r"\bsubtotal\b",
            r"\bnet[_ ]?total\b",
            r"\bgross\b",
            r"\brevenue\b",
            r"\bsales\b",
            r"\btotal\b",
            r"\bamount\b",
        ),
        keyed=_compile(
            r"sum[_ ]?(total|amount|revenue)",
            r"sumtotal",
            r"total[_ ]?amount",
            r"subtotal",
            r"net[_ ]?total",
            r"gross",
            r"revenue",
            r"sales",
            r"^total$",
            r"^amount$",
        ),
    ),
}


@dataclass(frozen=True)
class PositionalRow:
    columns: Tuple[str, ...]
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class KeyedRow:
    mapping: Mapping[str, Any]


RowShape = Union[PositionalRow, KeyedRow]


def row_shape(row: Any, columns: Optional[Sequence[str]] = None) -> RowShape:
    """Wrap a raw report row in its tagged shape."""

    if isinstance(row, (PositionalRow, KeyedRow)):
        return row
    if isinstance(row, Mapping):
        return KeyedRow(mapping=row)
    if isinstance(row, (list, tuple)):
        return PositionalRow(
            columns=tuple(str(col) for col in (columns or ())),
            values=tuple(row),
        )
    return KeyedRow(mapping={})


def _aliases(field: str) -> FieldAliases:
    try:
        return FIELD_ALIASES[field]
    except KeyError as exc:
        raise KeyError(f"Unknown logical field '{field}'; expected one of {sorted(FIELD_ALIASES)}") from exc


def find_column(columns: Sequence[str], patterns: Sequence[Pattern[str]]) -> int:
    """Index of the first column matching any of ``patterns``, or ``-1``."""

    for index, column in enumerate(columns):
        if any(pattern.search(str(column)) for pattern in patterns):
            return index
    return -1


def pick_key(obj: Any, patterns: Sequence[Pattern[str]]) -> Any:
    if not isinstance(obj, Mapping):
        return None
    keys = [str(key) for key in obj.keys()]
    for pattern in patterns:
        for key in keys:
            if pattern.search(key):
                return obj[key]
    return None


def resolve(shape: RowShape, field: str) -> Any:
    aliases = _aliases(field)
    if isinstance(shape, PositionalRow):
        index = find_column(shape.columns, aliases.positional)
        if index < 0 or index >= len(shape.values):
            return None
        return shape.values[index]

    value = pick_key(shape.mapping, aliases.keyed)
    if value is not None:
        return value
    for nested in _NESTED_KEYS:
        value = pick_key(shape.mapping.get(nested), aliases.keyed)
        if value is not None:
            return value
    return None


def get_field(row: Any, columns: Optional[Sequence[str]], field: str) -> Any:
    """Raw value of logical ``field`` in ``row`` or ``None`` when unresolvable."""

    return resolve(row_shape(row, columns), field)


def get_number(row: Any, columns: Optional[Sequence[str]], field: str) -> float:
    return to_num(get_field(row, columns, field))
