"""
Row Statistics

Collects per-table source row counts for progress reporting.
"""

import logging

from spanner_migration.catalog import CatalogAdapter
from spanner_migration.conversion_state import ConversionState

logger = logging.getLogger(__name__)


def set_row_stats(conv: ConversionState, catalog: CatalogAdapter) -> None:
    """
    Count the rows of every source table and store the counts in conv.

    Counts are informational. A failed table listing is logged and skips
    the counts. A failed count is logged and recorded as a row count failure
    rather than a table failure. Nothing is retried.
    """
    try:
        tables = catalog.get_tables()
    except Exception as e:
        logger.warning(f"Could not list tables for row counts: {e}")
        return

    total = 0
    for table in tables:
        try:
            count = int(catalog.count_rows(table))
        except Exception as e:
            logger.warning(f"Could not count rows for table {table}: {e}")
            conv.record_row_count_failure(table, e)
            continue
        conv.set_row_count(table, count)
        total += count

    logger.info(f"Source contains {total:,} rows across {len(tables)} tables")
