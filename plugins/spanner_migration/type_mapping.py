"""
Source to Spanner Type Mapping Module

This module maps relational source column metadata (as reported by
information_schema) to Spanner column types, recording every lossy or
semantics-changing translation as a SchemaIssue on the column.
"""

from typing import Any, Dict, List, Optional, Tuple

from spanner_migration.catalog import ColumnRow
from spanner_migration.ddl import MAX_LENGTH, Type, TypeName
from spanner_migration.issues import SchemaIssue


class UnmappedTypeError(ValueError):
    """Raised when a declared source type has no entry in TYPE_MAPPING."""


# Length rules for sized types
DECLARED = "declared"  # Use character_maximum_length when present, else MAX
MAX = "max"  # Always MAX

# Complete mapping of source data types to Spanner
# Format: data_type -> (TypeName, length rule, base issues, is_array)
TYPE_MAPPING: Dict[str, Tuple[TypeName, Optional[str], Tuple[SchemaIssue, ...], bool]] = {
    # Boolean
    "bool": (TypeName.BOOL, None, (), False),
    "boolean": (TypeName.BOOL, None, (), False),

    # Integer Types
    "tinyint": (TypeName.INT64, None, (SchemaIssue.WIDENED,), False),
    "smallint": (TypeName.INT64, None, (SchemaIssue.WIDENED,), False),
    "mediumint": (TypeName.INT64, None, (SchemaIssue.WIDENED,), False),
    "int": (TypeName.INT64, None, (SchemaIssue.WIDENED,), False),
    "integer": (TypeName.INT64, None, (SchemaIssue.WIDENED,), False),
    "bigint": (TypeName.INT64, None, (), False),
    "year": (TypeName.INT64, None, (SchemaIssue.WIDENED,), False),

    # Approximate Numeric Types
    "float": (TypeName.FLOAT64, None, (SchemaIssue.WIDENED,), False),
    "real": (TypeName.FLOAT64, None, (SchemaIssue.WIDENED,), False),
    "double": (TypeName.FLOAT64, None, (), False),
    "double precision": (TypeName.FLOAT64, None, (), False),

    # Exact Numeric Types
    "decimal": (TypeName.NUMERIC, None, (), False),
    "numeric": (TypeName.NUMERIC, None, (), False),

    # Character String Types
    "char": (TypeName.STRING, DECLARED, (), False),
    "varchar": (TypeName.STRING, DECLARED, (), False),
    "nchar": (TypeName.STRING, DECLARED, (), False),
    "nvarchar": (TypeName.STRING, DECLARED, (), False),
    "character": (TypeName.STRING, DECLARED, (), False),
    "character varying": (TypeName.STRING, DECLARED, (), False),
    "tinytext": (TypeName.STRING, MAX, (), False),
    "text": (TypeName.STRING, MAX, (), False),
    "mediumtext": (TypeName.STRING, MAX, (), False),
    "longtext": (TypeName.STRING, MAX, (), False),
    "enum": (TypeName.STRING, MAX, (), False),
    "json": (TypeName.STRING, MAX, (), False),
    "set": (TypeName.STRING, MAX, (), True),

    # Binary String Types
    "bit": (TypeName.BYTES, MAX, (), False),
    "binary": (TypeName.BYTES, MAX, (), False),
    "varbinary": (TypeName.BYTES, MAX, (), False),
    "tinyblob": (TypeName.BYTES, MAX, (), False),
    "blob": (TypeName.BYTES, MAX, (), False),
    "mediumblob": (TypeName.BYTES, MAX, (), False),
    "longblob": (TypeName.BYTES, MAX, (), False),
    "bytea": (TypeName.BYTES, MAX, (), False),

    # Date and Time Types
    "date": (TypeName.DATE, None, (), False),
    "datetime": (TypeName.TIMESTAMP, None, (SchemaIssue.DATETIME,), False),
    "timestamp without time zone": (TypeName.TIMESTAMP, None, (SchemaIssue.DATETIME,), False),
    "timestamp": (TypeName.TIMESTAMP, None, (), False),
    "timestamp with time zone": (TypeName.TIMESTAMP, None, (), False),
    "time": (TypeName.STRING, MAX, (SchemaIssue.TIME,), False),
}

def has_default(default: Any) -> bool:
    """MariaDB reports a missing default as the string 'NULL'."""
    if default is None:
        return False
    text = str(default).strip()
    return bool(text) and text.upper() != "NULL"


def is_not_null(is_nullable: Any) -> bool:
    """Interpret information_schema IS_NULLABLE ('YES'/'NO') or a boolean."""
    if isinstance(is_nullable, str):
        return is_nullable.strip().upper() in ("NO", "N", "FALSE", "0")
    if is_nullable is None:
        return False
    return not bool(is_nullable)


def map_type(
    data_type: str,
    column_type: Optional[str] = None,
    is_nullable: Any = "YES",
    max_length: Optional[int] = None,
    default: Optional[str] = None,
    extra: Optional[str] = None,
) -> Tuple[Type, bool, List[SchemaIssue]]:
    """
    Map a source column to its Spanner type.

    Args:
        data_type: The source data type name (e.g. 'varchar')
        column_type: The full declared type string (e.g. 'varchar(6)', 'tinyint(1)')
        is_nullable: IS_NULLABLE value from the catalog
        max_length: Maximum character length for string types
        default: Column default expression
        extra: Extra column attributes (e.g. 'auto_increment')

    Returns:
        Tuple of (Spanner type, not-null flag, list of conversion issues)

    Raises:
        UnmappedTypeError: If data_type has no mapping
    """
    sql_type = (data_type or "").lower().strip()
    declared = (column_type or "").lower().strip()

    if sql_type not in TYPE_MAPPING:
        raise UnmappedTypeError(f"No Spanner mapping for source type '{data_type}'")

    type_name, length_rule, base_issues, is_array = TYPE_MAPPING[sql_type]
    issues = list(base_issues)

    # MySQL has no boolean storage; BOOL columns are declared tinyint(1),
    # and single-bit flags arrive from the driver as bool
    if (sql_type, declared.split(" ")[0]) in (("tinyint", "tinyint(1)"), ("bit", "bit(1)")):
        type_name, length_rule, issues = TypeName.BOOL, None, []
    # Unsigned 64-bit values do not fit in INT64
    elif sql_type == "bigint" and "unsigned" in declared:
        type_name, issues = TypeName.NUMERIC, [SchemaIssue.WIDENED]

    length = None
    if length_rule == DECLARED:
        length = int(max_length) if max_length and int(max_length) > 0 else MAX_LENGTH
    elif length_rule == MAX:
        length = MAX_LENGTH

    if extra and "auto_increment" in extra.lower():
        issues.append(SchemaIssue.AUTO_INCREMENT)

    # Spanner columns carry no defaults, so any default is dropped
    if has_default(default):
        issues.append(SchemaIssue.DEFAULT_VALUE)

    return Type(type_name, length, is_array), is_not_null(is_nullable), issues


def map_column(column: ColumnRow) -> Tuple[Type, bool, List[SchemaIssue]]:
    """
    Map a complete catalog column row to its Spanner type.

    Args:
        column: Normalized column row from the catalog adapter

    Returns:
        Tuple of (Spanner type, not-null flag, list of conversion issues)
    """
    return map_type(
        column.data_type,
        column_type=column.column_type,
        is_nullable=column.is_nullable,
        max_length=column.character_maximum_length,
        default=column.column_default,
        extra=column.extra,
    )


def validate_type_mapping(data_type: str) -> bool:
    """
    Check if a source type has a known mapping.

    Args:
        data_type: The source data type to check

    Returns:
        True if the type has a mapping, False otherwise
    """
    return (data_type or "").lower().strip() in TYPE_MAPPING


def get_supported_types() -> list:
    """
    Get a list of all supported source data types.

    Returns:
        List of supported source data type names
    """
    return list(TYPE_MAPPING.keys())
