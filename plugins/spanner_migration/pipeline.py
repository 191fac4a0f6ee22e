"""
Migration Run Orchestration

Runs the conversion stages in order against one catalog adapter:
schema conversion, row statistics, data conversion. The returned
ConversionState is frozen and serves as the read-only report.
"""

from typing import Any, Dict, List, Optional
import logging
import threading

from spanner_migration.catalog import CatalogAdapter
from spanner_migration.config import get_conversion_config
from spanner_migration.conversion_state import ConversionState, DataSink
from spanner_migration.data_conversion import process_data
from spanner_migration.row_stats import set_row_stats
from spanner_migration.schema_conversion import process_schema

logger = logging.getLogger(__name__)


class RowCountingSink:
    """
    Data sink that counts the rows it receives per Spanner table.

    Used for dry runs, where rows are converted but not written anywhere.
    """

    def __init__(self, log_every: int = 100000):
        self.log_every = log_every
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def __call__(self, table: str, cols: List[str], vals: List[Any]) -> None:
        with self._lock:
            count = self._counts.get(table, 0) + 1
            self._counts[table] = count
        if self.log_every and count % self.log_every == 0:
            logger.info(f"{table}: {count:,} rows converted")

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)


def run_migration(
    catalog: CatalogAdapter,
    sink: Optional[DataSink] = None,
    config: Optional[Dict[str, Any]] = None,
    stop_event: Optional[threading.Event] = None,
) -> ConversionState:
    """
    Convert schema and (optionally) data for every table in the catalog.

    Args:
        catalog: Source catalog adapter
        sink: Receives (table, columns, values) per converted row. When None,
            only the schema is converted.
        config: Configuration overrides (see config.get_conversion_config)
        stop_event: When set, data conversion starts no further tables

    Returns:
        Frozen conversion state
    """
    settings = get_conversion_config(config)
    conv = ConversionState(
        bad_row_sample_size=settings['bad_row_sample_size'],
        source_timezone=settings['source_timezone'],
    )

    try:
        logger.info(f"Converting schema with {settings['schema_workers']} workers")
        process_schema(conv, catalog, settings['schema_workers'])

        if sink is not None:
            set_row_stats(conv, catalog)
            conv.set_data_sink(sink)
            logger.info(f"Converting data with {settings['data_workers']} workers")
            process_data(conv, catalog, settings['data_workers'], stop_event=stop_event)
    finally:
        conv.freeze()

    logger.info(
        f"Migration run finished: {len(conv.schema_snapshot())} tables, "
        f"{conv.bad_rows()} bad rows, {conv.unexpecteds()} unexpected conditions"
    )
    return conv


def summarize(conv: ConversionState, sample_size: int = 10) -> Dict[str, Any]:
    """
    Build a JSON-serializable summary of a conversion run.

    Args:
        conv: Conversion state (normally frozen)
        sample_size: Number of bad-row samples to include

    Returns:
        Summary dictionary with per-table details
    """
    schema = conv.schema_snapshot()
    row_counts = conv.row_counts()
    tables: List[Dict[str, Any]] = []

    for src_table in conv.source_tables():
        sp_name = conv.target_table_name(src_table.name)
        sp_table = schema.get(sp_name)
        issues = conv.table_issues(src_table.name)
        tables.append({
            'source_table': src_table.name,
            'spanner_table': sp_name,
            'columns': [
                {'name': col, 'type': str(sp_table.col_defs[col].type), 'not_null': sp_table.col_defs[col].not_null}
                for col in sp_table.col_names
            ] if sp_table else [],
            'primary_key': [k.column for k in sp_table.primary_keys] if sp_table else [],
            'synthetic_key': conv.synthetic_key_column(sp_name) if sp_name else None,
            'issues': {col: [i.value for i in col_issues] for col, col_issues in issues.items()},
            'source_rows': row_counts.get(src_table.name),
            'good_rows': conv.good_rows(sp_name) if sp_name else 0,
            'bad_rows': conv.bad_rows_for(src_table.name),
        })

    return {
        'tables': tables,
        'table_failures': conv.table_failures(),
        'row_count_failures': conv.row_count_failures(),
        'bad_rows': conv.bad_rows(),
        'bad_row_samples': conv.sample_bad_rows(sample_size),
        'unexpected_conditions': conv.unexpected_conditions(),
        'unexpected_count': conv.unexpecteds(),
    }
