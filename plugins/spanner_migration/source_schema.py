"""
Source-side record of each discovered table, kept for reporting.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class SourceColumn:
    name: str
    data_type: str
    column_type: Optional[str] = None
    not_null: bool = False
    default: Optional[str] = None


@dataclass
class SourceForeignKey:
    name: str
    columns: List[str]
    refer_table: str
    refer_columns: List[str]


@dataclass
class SourceTable:
    name: str
    col_names: List[str] = field(default_factory=list)
    col_defs: Dict[str, SourceColumn] = field(default_factory=dict)
    primary_keys: List[str] = field(default_factory=list)
    foreign_keys: List[SourceForeignKey] = field(default_factory=list)
