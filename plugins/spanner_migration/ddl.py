"""
Spanner Schema Model

This module defines the target-side schema objects produced by schema
conversion: types, column definitions, keys, indexes and tables. Rendering
these objects as DDL text is left to the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


class TypeName(Enum):
    """Closed set of target column types."""

    STRING = "STRING"
    INT64 = "INT64"
    FLOAT64 = "FLOAT64"
    BOOL = "BOOL"
    BYTES = "BYTES"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    NUMERIC = "NUMERIC"


class _MaxLength:
    """Sentinel for STRING(MAX) / BYTES(MAX)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MAX"

    def __reduce__(self):
        return (_MaxLength, ())


MAX_LENGTH = _MaxLength()

# Types for which a length is meaningful
SIZED_TYPES = (TypeName.STRING, TypeName.BYTES)


@dataclass(frozen=True)
class Type:
    """A target column type with optional length and array flag."""

    name: TypeName
    length: Optional[Union[int, _MaxLength]] = None
    is_array: bool = False

    def __post_init__(self):
        if self.length is None:
            return
        if self.name not in SIZED_TYPES:
            raise ValueError(f"Length is not valid for type {self.name.value}")
        if self.length is not MAX_LENGTH and (not isinstance(self.length, int) or self.length <= 0):
            raise ValueError(f"Invalid length {self.length!r} for type {self.name.value}")

    def __str__(self) -> str:
        rendered = self.name.value
        if self.length is not None:
            length_text = "MAX" if self.length is MAX_LENGTH else str(self.length)
            rendered = f"{rendered}({length_text})"
        if self.is_array:
            rendered = f"ARRAY<{rendered}>"
        return rendered


@dataclass
class ColumnDef:
    name: str
    type: Type
    not_null: bool = False


@dataclass
class IndexKey:
    column: str
    desc: bool = False


@dataclass
class ForeignKey:
    name: str
    columns: List[str]
    refer_table: str
    refer_columns: List[str]


@dataclass
class CreateIndex:
    name: str
    table: str
    unique: bool
    keys: List[IndexKey]


@dataclass
class CreateTable:
    """
    A converted table.

    col_names keeps the source column order (the synthetic key, when present,
    is last); col_defs is keyed by the same names.
    """

    name: str
    col_names: List[str] = field(default_factory=list)
    col_defs: Dict[str, ColumnDef] = field(default_factory=dict)
    primary_keys: List[IndexKey] = field(default_factory=list)
    foreign_keys: List[ForeignKey] = field(default_factory=list)
    indexes: List[CreateIndex] = field(default_factory=list)

    def add_column(self, column: ColumnDef) -> None:
        self.col_names.append(column.name)
        self.col_defs[column.name] = column
