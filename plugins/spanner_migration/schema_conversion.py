"""
Schema Conversion Module

Builds one Spanner table definition per source table from catalog metadata:
primary keys, foreign keys, indexes and column types. Tables are processed on
a bounded thread pool; a failure on one table is recorded and never stops the
others.
"""

from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Tuple
import logging

from spanner_migration.catalog import CatalogAdapter, ForeignKeyRow, IndexRow
from spanner_migration.conversion_state import ConversionState
from spanner_migration.ddl import ColumnDef, CreateIndex, CreateTable, ForeignKey, IndexKey
from spanner_migration.source_schema import SourceColumn, SourceForeignKey, SourceTable
from spanner_migration.synthetic_keys import SYNTHETIC_KEY_COLUMN, synthetic_key_column
from spanner_migration.type_mapping import UnmappedTypeError, map_column

logger = logging.getLogger(__name__)

PRIMARY_KEY = "PRIMARY KEY"

_DESCENDING_COLLATIONS = {"D", "DESC", "DESCENDING"}
_TRUE_FLAGS = {"1", "Y", "YES", "T", "TRUE"}


def _is_descending(collation: Any) -> bool:
    """Only an explicit descending marker counts; NULL/unknown is ascending."""
    if collation is None:
        return False
    return str(collation).strip().upper() in _DESCENDING_COLLATIONS


def _is_set(flag: Any) -> bool:
    if isinstance(flag, str):
        return flag.strip().upper() in _TRUE_FLAGS
    return bool(flag)


def _seq_position(row: IndexRow) -> int:
    try:
        return int(row.seq_in_index)
    except (TypeError, ValueError):
        raise ValueError(f"Index {row.index_name} has invalid sequence position {row.seq_in_index!r}")


_ConvertedTable = Tuple[SourceTable, CreateTable, Dict[str, List[ForeignKeyRow]], List[CreateIndex]]


def process_schema(conv: ConversionState, catalog: CatalogAdapter, num_workers: int = 1) -> None:
    """
    Convert the schema of every base table the catalog reports.

    Args:
        conv: Conversion state to populate
        catalog: Source catalog adapter
        num_workers: Number of tables processed concurrently (1 = sequential)

    Raises:
        ValueError: If num_workers is less than 1
    """
    if num_workers < 1:
        raise ValueError(f"num_workers must be >= 1, got {num_workers}")

    tables = catalog.get_tables()
    logger.info(f"Found {len(tables)} tables to convert")

    # Table names are assigned up front so that renames do not depend on
    # worker completion order
    for table in tables:
        conv.register_table(table)

    converted: Dict[str, _ConvertedTable] = {}

    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        futures = {executor.submit(_convert_table, conv, catalog, table): table for table in tables}
        for future in as_completed(futures):
            table = futures[future]
            try:
                converted[table] = future.result()
            except Exception as e:
                logger.warning(f"Failed to convert schema for table {table}: {e}")
                conv.record_table_failure(table, e)
                conv.record_unexpected(f"Schema conversion failed for table {table}: {type(e).__name__}")

    # Foreign key targets and constraint names span tables, so they are
    # resolved sequentially in discovery order once every table is known
    done = [table for table in tables if table in converted]
    for table in done:
        conv.add_source_table(converted[table][0])
    for table in done:
        _, sp_table, fk_groups, indexes = converted[table]
        sp_table.foreign_keys = _resolve_foreign_keys(conv, table, fk_groups)
        for index in indexes:
            index.name = conv.claim_constraint_name(f"{table}.index.{index.name}", index.name)
        sp_table.indexes = indexes
        conv.add_table(sp_table)

    logger.info(f"Converted schema for {len(converted)} of {len(tables)} tables")


def _convert_table(
    conv: ConversionState,
    catalog: CatalogAdapter,
    table: str,
) -> _ConvertedTable:
    """Discover and convert one table. Foreign keys are returned unresolved."""
    sp_name = conv.target_table_name(table)
    col_names = conv.column_names(table)

    pk_columns = _primary_key_columns(catalog.get_constraints(table))
    fk_groups = _group_foreign_keys(catalog.get_foreign_keys(table))
    index_groups = _group_indexes(catalog.get_indexes(table))

    src_table = SourceTable(name=table)
    sp_table = CreateTable(name=sp_name)

    for column in catalog.get_columns(table):
        try:
            sp_type, not_null, issues = map_column(column)
        except UnmappedTypeError as e:
            conv.record_unexpected(f"{e} (table {table}, column {column.column_name})")
            continue

        src_table.col_names.append(column.column_name)
        src_table.col_defs[column.column_name] = SourceColumn(
            name=column.column_name,
            data_type=column.data_type,
            column_type=column.column_type,
            not_null=not_null,
            default=column.column_default,
        )
        sp_table.add_column(ColumnDef(
            name=col_names.claim(column.column_name),
            type=sp_type,
            not_null=not_null,
        ))
        conv.add_issues(table, column.column_name, issues)

    for col in pk_columns:
        if col not in src_table.col_defs:
            conv.record_unexpected(f"Primary key column {col} not found in table {table}")
            continue
        src_table.primary_keys.append(col)
        sp_table.primary_keys.append(IndexKey(column=col_names.lookup(col)))

    if not sp_table.primary_keys:
        synth = synthetic_key_column(col_names.reserve(SYNTHETIC_KEY_COLUMN))
        sp_table.add_column(synth)
        sp_table.primary_keys = [IndexKey(column=synth.name)]
        conv.set_synthetic_key(sp_name, synth)
        logger.info(f"Table {table} has no primary key; added synthetic key column {synth.name}")

    for fk_name, rows in fk_groups.items():
        src_table.foreign_keys.append(SourceForeignKey(
            name=fk_name,
            columns=[r.column_name for r in rows],
            refer_table=rows[0].referenced_table,
            refer_columns=[r.referenced_column for r in rows],
        ))

    indexes = []
    for index_name, rows in index_groups.items():
        keys = []
        for row in rows:
            if row.column_name not in src_table.col_defs:
                conv.record_unexpected(f"Index {index_name} column {row.column_name} not found in table {table}")
                continue
            keys.append(IndexKey(column=col_names.lookup(row.column_name), desc=_is_descending(row.collation)))
        if not keys:
            logger.warning(f"Dropping index {index_name} on table {table}: no usable columns")
            continue
        indexes.append(CreateIndex(
            name=index_name,
            table=sp_name,
            unique=not _is_set(rows[0].non_unique),
            keys=keys,
        ))

    logger.debug(f"Converted table {table} -> {sp_name} ({len(sp_table.col_names)} columns)")
    return src_table, sp_table, fk_groups, indexes


def _primary_key_columns(rows) -> List[str]:
    columns = []
    for row in rows:
        if str(row.constraint_type).strip().upper() == PRIMARY_KEY and row.column_name not in columns:
            columns.append(row.column_name)
    return columns


def _group_foreign_keys(rows) -> "OrderedDict[str, List[ForeignKeyRow]]":
    groups: "OrderedDict[str, List[ForeignKeyRow]]" = OrderedDict()
    for row in rows:
        groups.setdefault(row.constraint_name, []).append(row)
    return groups


def _group_indexes(rows) -> "OrderedDict[str, List[IndexRow]]":
    groups: "OrderedDict[str, List[IndexRow]]" = OrderedDict()
    for row in rows:
        groups.setdefault(row.index_name, []).append(row)
    # sorted() is stable, so equal positions keep catalog order
    return OrderedDict((name, sorted(group, key=_seq_position)) for name, group in groups.items())


def _resolve_foreign_keys(
    conv: ConversionState,
    table: str,
    fk_groups: Dict[str, List[ForeignKeyRow]],
) -> List[ForeignKey]:
    """Map foreign key columns and referenced tables/columns to Spanner names."""
    result = []
    for fk_name, rows in fk_groups.items():
        refer_table = rows[0].referenced_table
        sp_refer_table = conv.target_table_name(refer_table)
        if sp_refer_table is None:
            # Tables filtered out of the catalog listing are never registered
            logger.warning(
                f"Dropping foreign key {fk_name} on table {table}: referenced table {refer_table} is not converted"
            )
            continue
        if conv.source_table(refer_table) is None:
            conv.record_unexpected(f"Foreign key {fk_name} on table {table} references failed table {refer_table}")
            continue

        columns, refer_columns = [], []
        for row in rows:
            if row.referenced_table != refer_table:
                conv.record_unexpected(f"Foreign key {fk_name} on table {table} references multiple tables")
                columns = []
                break
            # Only successfully mapped columns have Spanner names
            local = conv.target_column_name(table, row.column_name)
            remote = conv.target_column_name(refer_table, row.referenced_column)
            if local is None:
                conv.record_unexpected(f"Foreign key {fk_name} column {row.column_name} not found in table {table}")
                columns = []
                break
            if remote is None:
                conv.record_unexpected(
                    f"Foreign key {fk_name} referenced column {row.referenced_column} not found in table {refer_table}"
                )
                columns = []
                break
            columns.append(local)
            refer_columns.append(remote)

        if not columns:
            logger.warning(f"Dropping foreign key {fk_name} on table {table}")
            continue

        result.append(ForeignKey(
            name=conv.claim_constraint_name(f"{table}.fk.{fk_name}", fk_name),
            columns=columns,
            refer_table=sp_refer_table,
            refer_columns=refer_columns,
        ))
    return result
