"""
MySQL to Spanner Migration Utilities

This package converts a relational source schema into a Spanner schema and
streams the source rows, converted to their Spanner types, to a data sink.

Modules:
- ddl: Spanner schema model (types, columns, keys, indexes, tables)
- type_mapping: Map source column types to Spanner types and issues
- identifiers: Turn source names into valid, unique Spanner identifiers
- synthetic_keys: Bit-reversed keys for tables without a primary key
- conversion_state: Shared state and reporting surface of one run
- schema_conversion: Build the Spanner schema from catalog metadata
- value_conversion: Convert individual source values
- data_conversion: Stream, convert and forward table rows
- row_stats: Per-table source row counts
- mysql_catalog: information_schema catalog adapter over ODBC
- pipeline: Run the stages in order and summarize the result

Configuration:
- SCHEMA_WORKERS=N: Tables whose schema is discovered concurrently
- DATA_WORKERS=N: Tables whose data is converted concurrently
- BAD_ROW_SAMPLE_SIZE=N: Bad-row descriptions kept for reporting
- SOURCE_TIMEZONE=tz: Timezone of naive source datetimes
"""

__version__ = "0.1.0"

# Core modules
from spanner_migration import ddl
from spanner_migration import type_mapping
from spanner_migration import identifiers
from spanner_migration import conversion_state
from spanner_migration import schema_conversion
from spanner_migration import data_conversion
from spanner_migration import row_stats
from spanner_migration import pipeline

# Source adapter (imports pyodbc and Airflow)
# from spanner_migration import mysql_catalog

__all__ = [
    "ddl",
    "type_mapping",
    "identifiers",
    "conversion_state",
    "schema_conversion",
    "data_conversion",
    "row_stats",
    "pipeline",
    "mysql_catalog",
]
