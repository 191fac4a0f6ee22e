"""
Conversion State Module

ConversionState is the single shared aggregate of one migration run. Schema
conversion writes the target schema, identifier maps and issue ledger into it;
row statistics and data conversion add counters and bad-row samples. Once the
run completes the state is frozen and only the read accessors remain usable.

All writes are append-only or keyed overwrites and are serialized by one
lock, so worker threads converting different tables can share an instance.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence
import copy
import logging
import threading

from spanner_migration.config import validate_timezone
from spanner_migration.ddl import ColumnDef, CreateTable
from spanner_migration.identifiers import IdentifierScope, sanitize_identifier
from spanner_migration.issues import SchemaIssue
from spanner_migration.source_schema import SourceTable
from spanner_migration.synthetic_keys import SyntheticKeyGenerator

logger = logging.getLogger(__name__)

DataSink = Callable[[str, List[str], List[Any]], None]

DEFAULT_BAD_ROW_SAMPLE_SIZE = 100


class ConversionState:
    """Shared state of one schema and data conversion run."""

    def __init__(self, bad_row_sample_size: int = DEFAULT_BAD_ROW_SAMPLE_SIZE, source_timezone: str = "UTC"):
        """
        Initialize an empty conversion state.

        Args:
            bad_row_sample_size: Maximum number of bad-row descriptions retained
            source_timezone: Timezone used to interpret naive source datetimes
        """
        if bad_row_sample_size < 0:
            raise ValueError(f"bad_row_sample_size must be >= 0, got {bad_row_sample_size}")

        self.source_timezone = validate_timezone(source_timezone)
        self._lock = threading.Lock()
        self._frozen = False

        # Target schema keyed by Spanner table name
        self._schema: Dict[str, CreateTable] = {}
        # Source tables keyed by source name, in discovery order
        self._source_tables: Dict[str, SourceTable] = {}

        self._table_names = IdentifierScope()
        self._column_names: Dict[str, IdentifierScope] = {}
        # Spanner index and foreign key names share one schema-wide namespace
        self._constraint_names = IdentifierScope()

        self._issues: Dict[str, Dict[str, List[SchemaIssue]]] = {}
        self._synthetic_keys: Dict[str, str] = {}
        self._key_generator = SyntheticKeyGenerator()

        self._row_counts: Dict[str, int] = {}
        self._good_rows: Dict[str, int] = {}
        self._bad_rows: Dict[str, int] = {}
        self._bad_row_total = 0
        self._bad_row_samples: List[str] = []
        self._bad_row_sample_size = bad_row_sample_size

        self._unexpected: Dict[str, int] = {}
        self._table_failures: Dict[str, str] = {}
        # Tables whose COUNT(*) failed; their data may still convert
        self._row_count_failures: Dict[str, str] = {}
        self._sink: Optional[DataSink] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def freeze(self) -> None:
        """Make the state read-only. Called once the migration run completes."""
        with self._lock:
            self._frozen = True
            scopes = [self._table_names, self._constraint_names, *self._column_names.values()]
        for scope in scopes:
            scope.freeze()

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _check_writable(self) -> None:
        # Caller holds self._lock
        if self._frozen:
            raise RuntimeError("Conversion state is frozen; the migration run has completed")

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def register_table(self, source_table: str) -> str:
        """Assign (or return) the Spanner name for a source table."""
        with self._lock:
            self._check_writable()
            self._column_names.setdefault(source_table, IdentifierScope())
        existing = self._table_names.lookup(source_table)
        if existing is not None:
            return existing
        name = self._table_names.claim(source_table)
        # Index and foreign key names may not reuse a table name
        self._constraint_names.reserve(name)
        return name

    def target_table_name(self, source_table: str) -> Optional[str]:
        return self._table_names.lookup(source_table)

    def column_names(self, source_table: str) -> IdentifierScope:
        with self._lock:
            scope = self._column_names.get(source_table)
            if scope is None:
                self._check_writable()
                scope = self._column_names[source_table] = IdentifierScope()
            return scope

    def target_column_name(self, source_table: str, source_column: str) -> Optional[str]:
        scope = self._column_names.get(source_table)
        return scope.lookup(source_column) if scope else None

    def claim_constraint_name(self, key: str, source_name: str) -> str:
        with self._lock:
            self._check_writable()
        return self._constraint_names.claim(key, sanitize_identifier(source_name))

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def add_source_table(self, table: SourceTable) -> None:
        with self._lock:
            self._check_writable()
            self._source_tables[table.name] = table

    def add_table(self, table: CreateTable) -> None:
        with self._lock:
            self._check_writable()
            self._schema[table.name] = table

    def add_issues(self, source_table: str, source_column: str, issues: Sequence[SchemaIssue]) -> None:
        if not issues:
            return
        with self._lock:
            self._check_writable()
            columns = self._issues.setdefault(source_table, {})
            columns.setdefault(source_column, []).extend(issues)

    def set_synthetic_key(self, target_table: str, column: ColumnDef) -> None:
        with self._lock:
            self._check_writable()
            self._synthetic_keys[target_table] = column.name

    def synthetic_key_column(self, target_table: str) -> Optional[str]:
        return self._synthetic_keys.get(target_table)

    def next_synthetic_key(self) -> str:
        return self._key_generator.next_key()

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def set_data_sink(self, sink: DataSink) -> None:
        with self._lock:
            self._check_writable()
            self._sink = sink

    @property
    def has_data_sink(self) -> bool:
        return self._sink is not None

    def write_row(self, target_table: str, cols: List[str], vals: List[Any]) -> None:
        """Forward one converted row to the data sink."""
        with self._lock:
            self._check_writable()
            sink = self._sink
        if sink is None:
            raise RuntimeError("No data sink configured")
        sink(target_table, cols, vals)
        with self._lock:
            self._good_rows[target_table] = self._good_rows.get(target_table, 0) + 1

    def record_bad_row(self, source_table: str, cols: Sequence[str], vals: Sequence[Any]) -> None:
        with self._lock:
            self._check_writable()
            self._bad_row_total += 1
            self._bad_rows[source_table] = self._bad_rows.get(source_table, 0) + 1
            if len(self._bad_row_samples) < self._bad_row_sample_size:
                self._bad_row_samples.append(
                    f"table={source_table} cols={list(cols)} data={list(vals)}"
                )

    def set_row_count(self, source_table: str, count: int) -> None:
        with self._lock:
            self._check_writable()
            self._row_counts[source_table] = count

    # ------------------------------------------------------------------
    # Problems
    # ------------------------------------------------------------------

    def record_unexpected(self, message: str) -> None:
        """Count an internal invariant violation. A correct run has none."""
        logger.warning(f"Unexpected condition: {message}")
        with self._lock:
            self._check_writable()
            self._unexpected[message] = self._unexpected.get(message, 0) + 1

    def record_table_failure(self, source_table: str, error: Any) -> None:
        with self._lock:
            self._check_writable()
            self._table_failures[source_table] = str(error)

    def record_row_count_failure(self, source_table: str, error: Any) -> None:
        with self._lock:
            self._check_writable()
            self._row_count_failures[source_table] = str(error)

    # ------------------------------------------------------------------
    # Read accessors (reporting)
    # ------------------------------------------------------------------

    def schema_snapshot(self) -> Dict[str, CreateTable]:
        with self._lock:
            return copy.deepcopy(self._schema)

    def get_table(self, target_table: str) -> Optional[CreateTable]:
        with self._lock:
            return copy.deepcopy(self._schema.get(target_table))

    def source_tables(self) -> List[SourceTable]:
        with self._lock:
            return copy.deepcopy(list(self._source_tables.values()))

    def source_table(self, name: str) -> Optional[SourceTable]:
        with self._lock:
            return copy.deepcopy(self._source_tables.get(name))

    def table_issues(self, source_table: str) -> Dict[str, List[SchemaIssue]]:
        with self._lock:
            return {col: list(issues) for col, issues in self._issues.get(source_table, {}).items()}

    def bad_rows(self) -> int:
        with self._lock:
            return self._bad_row_total

    def bad_rows_for(self, source_table: str) -> int:
        with self._lock:
            return self._bad_rows.get(source_table, 0)

    def good_rows(self, target_table: str) -> int:
        with self._lock:
            return self._good_rows.get(target_table, 0)

    def sample_bad_rows(self, n: int) -> List[str]:
        with self._lock:
            return list(self._bad_row_samples[:max(0, n)])

    def row_counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._row_counts)

    def unexpecteds(self) -> int:
        with self._lock:
            return sum(self._unexpected.values())

    def unexpected_conditions(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._unexpected)

    def table_failures(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._table_failures)

    def row_count_failures(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._row_count_failures)
