"""
MySQL to Spanner Conversion DAG

This DAG converts a MySQL database's schema to a Spanner schema and
streams every table's rows through the value converters. It handles:
1. Schema discovery from information_schema
2. Type mapping and issue collection per column
3. Row counting for progress reporting
4. Row conversion with bad-row sampling
5. A JSON summary of the run pushed to XCom

Converted rows go to a counting sink; loading them into Spanner is left to
a downstream writer.
"""

from airflow.sdk import dag, task
from airflow.models.param import Param
from pendulum import datetime
from datetime import timedelta
from typing import Any, Dict
import logging

from spanner_migration.config import get_conversion_config
from spanner_migration.mysql_catalog import InfoSchemaCatalog
from spanner_migration.odbc_helper import OdbcConnectionHelper
from spanner_migration.pipeline import RowCountingSink, run_migration, summarize

logger = logging.getLogger(__name__)


@dag(
    start_date=datetime(2025, 1, 1),
    schedule=None,  # Run manually or trigger via API
    catchup=False,
    max_active_runs=1,
    is_paused_upon_creation=False,
    doc_md=__doc__,
    default_args={
        "owner": "data-team",
        "retries": 0,
        "retry_delay": timedelta(seconds=30),
    },
    params={
        "source_conn_id": Param(
            default="mysql_source",
            type="string",
            description="MySQL ODBC connection ID"
        ),
        "database": Param(
            default="",
            type="string",
            description="Source database (defaults to the connection's schema)"
        ),
        "exclude_tables": Param(
            default=[],
            type="array",
            description="List of table patterns to exclude (supports wildcards)"
        ),
        "schema_only": Param(
            default=False,
            type="boolean",
            description="Convert the schema only and skip data conversion"
        ),
        "schema_workers": Param(
            default=4,
            type="integer",
            minimum=1,
            maximum=32,
            description="Tables whose schema is discovered concurrently"
        ),
        "data_workers": Param(
            default=1,
            type="integer",
            minimum=1,
            maximum=32,
            description="Tables whose data is converted concurrently"
        ),
        "bad_row_sample_size": Param(
            default=100,
            type="integer",
            minimum=0,
            description="Number of bad-row descriptions kept for the report"
        ),
        "source_timezone": Param(
            default="UTC",
            type="string",
            description="Timezone of naive MySQL DATETIME values"
        ),
    },
    tags=["migration", "mysql", "spanner", "conversion"],
)
def mysql_to_spanner_migration():
    """
    Main DAG for MySQL to Spanner conversion.
    """

    @task
    def convert_database(**context) -> Dict[str, Any]:
        """
        Run schema and data conversion against the source database.

        Returns:
            JSON-serializable summary of the run
        """
        params = context["params"]
        settings = get_conversion_config({
            "schema_workers": params["schema_workers"],
            "data_workers": params["data_workers"],
            "bad_row_sample_size": params["bad_row_sample_size"],
            "source_timezone": params["source_timezone"],
        })

        helper = OdbcConnectionHelper(odbc_conn_id=params["source_conn_id"])
        catalog = InfoSchemaCatalog(
            helper,
            database=params.get("database") or None,
            exclude_patterns=params.get("exclude_tables", []),
            batch_size=settings["cursor_batch_size"],
        )

        sink = None if params.get("schema_only") else RowCountingSink()
        conv = run_migration(catalog, sink=sink, config=settings)

        summary = summarize(conv)
        if sink is not None:
            summary["sink_rows"] = sink.counts()

        context["ti"].xcom_push(key="unexpected_count", value=summary["unexpected_count"])
        context["ti"].xcom_push(key="bad_rows", value=summary["bad_rows"])
        return summary

    @task
    def report_summary(summary: Dict[str, Any]) -> str:
        """Log a per-table report of the conversion run."""
        logger.info("=" * 60)
        logger.info("CONVERSION SUMMARY")
        logger.info("=" * 60)

        for table in summary["tables"]:
            issue_count = sum(len(issues) for issues in table["issues"].values())
            logger.info(
                f"{table['source_table']} -> {table['spanner_table']}: "
                f"{len(table['columns'])} columns, {issue_count} issues, "
                f"{table['good_rows']} good rows, {table['bad_rows']} bad rows"
            )

        for table, error in summary["table_failures"].items():
            logger.error(f"✗ {table}: {error}")

        for table, error in summary["row_count_failures"].items():
            logger.warning(f"Row count unavailable for {table}: {error}")

        for sample in summary["bad_row_samples"]:
            logger.warning(f"Bad row: {sample}")

        if summary["unexpected_count"]:
            logger.warning(
                f"{summary['unexpected_count']} unexpected conditions: "
                f"{summary['unexpected_conditions']}"
            )

        status = (
            f"Converted {len(summary['tables'])} tables; "
            f"{summary['bad_rows']} bad rows, {len(summary['table_failures'])} failed tables"
        )
        logger.info(status)
        return status

    report_summary(convert_database())


# Instantiate the DAG
mysql_to_spanner_migration()
