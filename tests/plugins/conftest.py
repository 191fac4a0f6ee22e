"""
Shared fixtures: an in-memory catalog adapter and the sample source schema
used across the conversion tests.
"""

from typing import Any, Dict, Iterator, List, Optional

import pytest

from spanner_migration.catalog import ColumnRow, ConstraintRow, ForeignKeyRow, IndexRow


class FakeCatalog:
    """
    Catalog adapter backed by plain dictionaries.

    tables maps a table name to a dict with optional keys 'constraints',
    'foreign_keys', 'indexes', 'columns' (tuples in catalog column order)
    and 'rows' (list of dicts). failures maps (method, table) to an
    exception raised when that method is called for that table.
    """

    def __init__(self, tables: Dict[str, Dict[str, Any]], failures: Optional[Dict[tuple, Exception]] = None):
        self.tables = tables
        self.failures = failures or {}
        self.calls: List[tuple] = []

    def _get(self, method: str, table: str, key: str) -> List[Any]:
        self.calls.append((method, table))
        error = self.failures.get((method, table))
        if error is not None:
            raise error
        return list(self.tables[table].get(key, []))

    def get_tables(self) -> List[str]:
        return list(self.tables)

    def get_constraints(self, table: str) -> List[ConstraintRow]:
        return [ConstraintRow(*r) for r in self._get('get_constraints', table, 'constraints')]

    def get_foreign_keys(self, table: str) -> List[ForeignKeyRow]:
        return [ForeignKeyRow(*r) for r in self._get('get_foreign_keys', table, 'foreign_keys')]

    def get_indexes(self, table: str) -> List[IndexRow]:
        return [IndexRow(*r) for r in self._get('get_indexes', table, 'indexes')]

    def get_columns(self, table: str) -> List[ColumnRow]:
        return [ColumnRow(*r) for r in self._get('get_columns', table, 'columns')]

    def iter_rows(self, table: str) -> Iterator[Dict[str, Any]]:
        for row in self._get('iter_rows', table, 'rows'):
            yield dict(row)

    def count_rows(self, table: str) -> int:
        return len(self._get('count_rows', table, 'rows'))


def text_column(name: str, nullable: str = "NO") -> tuple:
    return (name, "text", "text", nullable, None, None, None, None, None)


def bigint_column(name: str, nullable: str = "NO") -> tuple:
    return (name, "bigint", "bigint", nullable, None, None, 64, 0, None)


SHOP_TABLES = {
    "user": {
        "constraints": [("user_id", "PRIMARY KEY"), ("ref", "FOREIGN KEY")],
        "foreign_keys": [("test", "ref", "id", "fk_test")],
        "columns": [text_column("user_id"), text_column("name"), bigint_column("ref")],
    },
    "cart": {
        "constraints": [("productid", "PRIMARY KEY"), ("userid", "PRIMARY KEY")],
        "foreign_keys": [
            ("product", "productid", "product_id", "fk_test2"),
            ("user", "userid", "user_id", "fk_test3"),
        ],
        "indexes": [
            ("index1", "userid", 1, None, "0"),
            ("index2", "userid", 1, "A", "1"),
            ("index2", "productid", 2, "D", "1"),
            ("index3", "productid", 1, "A", "0"),
            ("index3", "userid", 2, "D", "0"),
        ],
        "columns": [
            text_column("productid"),
            text_column("userid"),
            ("quantity", "bigint", "bigint", "YES", None, None, 64, 0, None),
        ],
    },
    "product": {
        "constraints": [("product_id", "PRIMARY KEY")],
        "columns": [text_column("product_id"), text_column("product_name")],
    },
    "test": {
        "constraints": [("id", "PRIMARY KEY"), ("id", "FOREIGN KEY")],
        "foreign_keys": [
            ("test_ref", "id", "ref_id", "fk_test4"),
            ("test_ref", "txt", "ref_txt", "fk_test4"),
        ],
        "columns": [
            ("id", "bigint", "bigint", "NO", None, None, 64, 0, None),
            ("s", "set", "set", "YES", None, None, None, None, None),
            ("txt", "text", "text", "NO", None, None, None, None, None),
            ("b", "boolean", "boolean", "YES", None, None, None, None, None),
            ("bs", "bigint", "bigint", "NO", "nextval('test11_bs_seq'::regclass)", None, 64, 0, None),
            ("bl", "blob", "blob", "YES", None, None, None, None, None),
            ("c", "char", "char(1)", "YES", None, 1, None, None, None),
            ("c8", "char", "char(8)", "YES", None, 8, None, None, None),
            ("d", "date", "date", "YES", None, None, None, None, None),
            ("dec", "decimal", "decimal(20,5)", "YES", None, None, 20, 5, None),
            ("f8", "double", "double", "YES", None, None, 53, None, None),
            ("f4", "float", "float", "YES", None, None, 24, None, None),
            ("i8", "bigint", "bigint", "YES", None, None, 64, 0, None),
            ("i4", "integer", "integer", "YES", None, None, 32, 0, "auto_increment"),
            ("i2", "smallint", "smallint", "YES", None, None, 16, 0, None),
            ("si", "integer", "integer", "NO", "nextval('test11_s_seq'::regclass)", None, 32, 0, None),
            ("ts", "datetime", "datetime", "YES", None, None, None, None, None),
            ("tz", "timestamp", "timestamp", "YES", None, None, None, None, None),
            ("vc", "varchar", "varchar", "YES", None, None, None, None, None),
            ("vc6", "varchar", "varchar(6)", "YES", None, 6, None, None, None),
        ],
    },
    "test_ref": {
        "constraints": [("ref_id", "PRIMARY KEY"), ("ref_txt", "PRIMARY KEY")],
        "columns": [bigint_column("ref_id"), text_column("ref_txt"), text_column("abc")],
    },
}


@pytest.fixture
def catalog_factory():
    """Build a FakeCatalog from table definitions."""
    return FakeCatalog


@pytest.fixture
def shop_catalog():
    """Catalog with five related tables covering keys, indexes and most types."""
    return FakeCatalog(SHOP_TABLES)


@pytest.fixture
def spaced_catalog():
    """
    Single keyed table whose names need normalization, with one row whose
    second value is not an integer.
    """
    return FakeCatalog({
        "te st": {
            "constraints": [("a a", "PRIMARY KEY")],
            "columns": [
                ("a a", "float", "float", "NO", None, None, None, None, None),
                (" b", "int", "int", "YES", None, None, None, None, None),
                (" c ", "text", "text", "YES", None, None, None, None, None),
            ],
            "rows": [
                {"a a": 42.3, " b": 3, " c ": "cat"},
                {"a a": 6.6, " b": "2006-01-02", " c ": "dog"},
                {"a a": 6.6, " b": 22, " c ": "dog"},
            ],
        },
    })


@pytest.fixture
def keyless_catalog():
    """Single table without a primary key and with NULL values in its rows."""
    return FakeCatalog({
        "test": {
            "columns": [
                ("a", "text", "text", "YES", None, None, None, None, None),
                ("b", "double", "double", "YES", None, None, 53, None, None),
                ("c", "bigint", "bigint", "YES", None, None, 64, 0, None),
            ],
            "rows": [
                {"a": "cat", "b": 42.3, "c": None},
                {"a": "dog", "b": None, "c": 22},
            ],
        },
    })
