"""
MySQL Catalog Adapter

This module reads schema metadata from MySQL's information_schema views and
streams table rows through the ODBC helper. It is the only place that knows
MySQL query text; the conversion modules consume the normalized rows defined
in catalog.
"""

from typing import Any, Dict, Iterator, List, Optional
import fnmatch
import logging

from spanner_migration.catalog import ColumnRow, ConstraintRow, ForeignKeyRow, IndexRow
from spanner_migration.odbc_helper import OdbcConnectionHelper

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    """Quote a MySQL identifier with backticks, doubling embedded backticks."""
    return "`" + name.replace("`", "``") + "`"


class InfoSchemaCatalog:
    """Catalog adapter over MySQL information_schema."""

    def __init__(
        self,
        helper: OdbcConnectionHelper,
        database: Optional[str] = None,
        exclude_patterns: Optional[List[str]] = None,
        batch_size: int = 10000,
    ):
        """
        Initialize the catalog adapter.

        Args:
            helper: ODBC helper for the source connection
            database: Source database name; defaults to the connection's schema
            exclude_patterns: Table name patterns to skip (supports wildcards)
            batch_size: Rows fetched per round trip when streaming table data
        """
        self.helper = helper
        self.database = database or helper.database
        self.exclude_patterns = exclude_patterns or []
        self.batch_size = batch_size

    def get_tables(self) -> List[str]:
        query = """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = ?
          AND table_type = 'BASE TABLE'
        ORDER BY table_name
        """
        tables = []
        for row in self.helper.get_records(query, parameters=[self.database]):
            name = row[0]
            if self._is_excluded(name):
                logger.info(f"Excluding table {name}")
                continue
            tables.append(name)

        logger.info(f"Found {len(tables)} tables in database '{self.database}'")
        return tables

    def get_constraints(self, table: str) -> List[ConstraintRow]:
        query = """
        SELECT k.column_name, t.constraint_type
        FROM information_schema.table_constraints AS t
        INNER JOIN information_schema.key_column_usage AS k
            ON t.constraint_name = k.constraint_name
           AND t.constraint_schema = k.constraint_schema
           AND t.table_name = k.table_name
        WHERE t.table_schema = ?
          AND t.table_name = ?
        ORDER BY k.ordinal_position
        """
        rows = self.helper.get_records(query, parameters=[self.database, table])
        return [ConstraintRow(column_name=r[0], constraint_type=r[1]) for r in rows]

    def get_foreign_keys(self, table: str) -> List[ForeignKeyRow]:
        query = """
        SELECT k.referenced_table_name, k.column_name, k.referenced_column_name, k.constraint_name
        FROM information_schema.referential_constraints AS c
        INNER JOIN information_schema.key_column_usage AS k
            ON c.constraint_name = k.constraint_name
           AND c.constraint_schema = k.constraint_schema
        WHERE k.table_schema = ?
          AND k.table_name = ?
        ORDER BY k.constraint_name, k.ordinal_position
        """
        rows = self.helper.get_records(query, parameters=[self.database, table])
        return [
            ForeignKeyRow(referenced_table=r[0], column_name=r[1], referenced_column=r[2], constraint_name=r[3])
            for r in rows
        ]

    def get_indexes(self, table: str) -> List[IndexRow]:
        # The primary key is reported through get_constraints
        query = """
        SELECT index_name, column_name, seq_in_index, collation, non_unique
        FROM information_schema.statistics
        WHERE table_schema = ?
          AND table_name = ?
          AND index_name != 'PRIMARY'
        ORDER BY index_name, seq_in_index
        """
        rows = self.helper.get_records(query, parameters=[self.database, table])
        return [
            IndexRow(index_name=r[0], column_name=r[1], seq_in_index=r[2], collation=r[3], non_unique=r[4])
            for r in rows
        ]

    def get_columns(self, table: str) -> List[ColumnRow]:
        query = """
        SELECT column_name, data_type, column_type, is_nullable, column_default,
               character_maximum_length, numeric_precision, numeric_scale, extra
        FROM information_schema.columns
        WHERE table_schema = ?
          AND table_name = ?
        ORDER BY ordinal_position
        """
        rows = self.helper.get_records(query, parameters=[self.database, table])
        return [ColumnRow(*r) for r in rows]

    def iter_rows(self, table: str) -> Iterator[Dict[str, Any]]:
        query = f"SELECT * FROM {quote_identifier(self.database)}.{quote_identifier(table)}"
        for columns, values in self.helper.iter_records(query, batch_size=self.batch_size):
            yield dict(zip(columns, values))

    def count_rows(self, table: str) -> int:
        query = f"SELECT COUNT(*) FROM {quote_identifier(self.database)}.{quote_identifier(table)}"
        row = self.helper.get_first(query)
        return int(row[0]) if row else 0

    def _is_excluded(self, name: str) -> bool:
        return any(fnmatch.fnmatch(name.lower(), pattern.lower()) for pattern in self.exclude_patterns)
