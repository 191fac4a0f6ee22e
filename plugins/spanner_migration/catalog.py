"""
Catalog Adapter Contract

Schema and data conversion never issue query text. They consume the
normalized rows below from any object implementing CatalogAdapter; each
source engine supplies its own flat implementation (see mysql_catalog).
"""

from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Protocol


class ConstraintRow(NamedTuple):
    column_name: str
    constraint_type: str


class ForeignKeyRow(NamedTuple):
    referenced_table: str
    column_name: str
    referenced_column: str
    constraint_name: str


class IndexRow(NamedTuple):
    index_name: str
    column_name: str
    seq_in_index: Any
    collation: Optional[str]
    non_unique: Any


class ColumnRow(NamedTuple):
    column_name: str
    data_type: str
    column_type: Optional[str] = None
    is_nullable: Any = "YES"
    column_default: Optional[str] = None
    character_maximum_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    extra: Optional[str] = None


class CatalogAdapter(Protocol):
    """
    Capabilities the conversion core requires from a source engine.

    All list-returning methods must return rows in a stable, document order.
    iter_rows must stream; callers never expect a materialized table.
    """

    def get_tables(self) -> List[str]:
        ...

    def get_constraints(self, table: str) -> List[ConstraintRow]:
        ...

    def get_foreign_keys(self, table: str) -> List[ForeignKeyRow]:
        ...

    def get_indexes(self, table: str) -> List[IndexRow]:
        ...

    def get_columns(self, table: str) -> List[ColumnRow]:
        ...

    def iter_rows(self, table: str) -> Iterator[Dict[str, Any]]:
        ...

    def count_rows(self, table: str) -> int:
        ...
