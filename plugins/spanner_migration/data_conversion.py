"""
Data Conversion Module

Streams rows for every converted table from the catalog adapter, converts
each value to its Spanner column type and hands good rows to the data sink.
A row with any unconvertible value is discarded whole and recorded as a bad
row; a table whose cursor fails is recorded and the run moves on.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Set
import logging
import threading

from spanner_migration.catalog import CatalogAdapter
from spanner_migration.conversion_state import ConversionState
from spanner_migration.ddl import CreateTable
from spanner_migration.source_schema import SourceTable
from spanner_migration.value_conversion import ValueConversionError, convert_value

logger = logging.getLogger(__name__)


def process_data(
    conv: ConversionState,
    catalog: CatalogAdapter,
    num_workers: int = 1,
    stop_event: Optional[threading.Event] = None,
) -> None:
    """
    Convert the data of every table whose schema has been converted.

    Args:
        conv: Conversion state holding the converted schema and data sink
        catalog: Source catalog adapter
        num_workers: Number of tables converted concurrently (1 = sequential)
        stop_event: When set, no further tables are started

    Raises:
        ValueError: If num_workers is less than 1
        RuntimeError: If no data sink is configured
    """
    if num_workers < 1:
        raise ValueError(f"num_workers must be >= 1, got {num_workers}")
    if not conv.has_data_sink:
        raise RuntimeError("Data conversion requires a data sink; call set_data_sink() first")

    tables = conv.source_tables()
    logger.info(f"Converting data for {len(tables)} tables")

    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        futures = {
            executor.submit(_convert_table_guarded, conv, catalog, src_table, stop_event): src_table.name
            for src_table in tables
        }
        for future in as_completed(futures):
            future.result()

    logger.info(f"Data conversion complete: {conv.bad_rows()} bad rows")


def _convert_table_guarded(
    conv: ConversionState,
    catalog: CatalogAdapter,
    src_table: SourceTable,
    stop_event: Optional[threading.Event],
) -> None:
    if stop_event is not None and stop_event.is_set():
        logger.info(f"Skipping table {src_table.name}: conversion stopped")
        return
    try:
        convert_table_data(conv, catalog, src_table)
    except Exception as e:
        logger.warning(f"Failed to convert data for table {src_table.name}: {e}")
        conv.record_table_failure(src_table.name, e)


def convert_table_data(conv: ConversionState, catalog: CatalogAdapter, src_table: SourceTable) -> int:
    """
    Stream and convert all rows of one table.

    Args:
        conv: Conversion state
        catalog: Source catalog adapter
        src_table: Source table record produced by schema conversion

    Returns:
        Number of rows read from the source
    """
    sp_name = conv.target_table_name(src_table.name)
    sp_table = conv.get_table(sp_name) if sp_name else None
    if sp_table is None:
        conv.record_unexpected(f"No converted schema for table {src_table.name}")
        return 0

    synth_column = conv.synthetic_key_column(sp_name)
    unknown_reported: Set[str] = set()
    rows_read = 0

    for row in catalog.iter_rows(src_table.name):
        rows_read += 1
        converted = convert_row(conv, src_table, sp_table, row, unknown_reported)
        if converted is None:
            conv.record_bad_row(src_table.name, list(row.keys()), list(row.values()))
            continue

        cols, vals = converted
        if synth_column:
            cols.append(synth_column)
            vals.append(conv.next_synthetic_key())
        conv.write_row(sp_name, cols, vals)

    logger.info(
        f"Table {src_table.name}: {rows_read} rows read, "
        f"{conv.good_rows(sp_name)} converted, {conv.bad_rows_for(src_table.name)} bad"
    )
    return rows_read


def convert_row(
    conv: ConversionState,
    src_table: SourceTable,
    sp_table: CreateTable,
    row: Dict[str, Any],
    unknown_reported: Optional[Set[str]] = None,
) -> Optional[tuple]:
    """
    Convert one source row.

    Null and absent columns are omitted from the output. Columns the schema
    does not know are reported once per table and omitted.

    Returns:
        Tuple of (Spanner column names, values), or None if any value failed
    """
    cols: List[str] = []
    vals: List[Any] = []

    for src_col, value in row.items():
        if value is None:
            continue

        sp_col = conv.target_column_name(src_table.name, src_col)
        if sp_col is None or src_col not in src_table.col_defs:
            if unknown_reported is not None and src_col not in unknown_reported:
                unknown_reported.add(src_col)
                conv.record_unexpected(f"Column {src_col} of table {src_table.name} is not in the converted schema")
            continue

        try:
            vals.append(convert_value(value, sp_table.col_defs[sp_col].type, conv.source_timezone))
        except ValueConversionError as e:
            logger.debug(f"Bad value in {src_table.name}.{src_col}: {e}")
            return None
        cols.append(sp_col)

    return cols, vals
