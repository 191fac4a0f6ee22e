"""
Schema conversion issues attached to individual columns.
"""

from enum import Enum


class SchemaIssue(Enum):
    WIDENED = "widened"
    DEFAULT_VALUE = "default_value"
    AUTO_INCREMENT = "auto_increment"
    DATETIME = "datetime"
    TIME = "time"

    @property
    def description(self) -> str:
        return ISSUE_DESCRIPTIONS[self]


ISSUE_DESCRIPTIONS = {
    SchemaIssue.WIDENED: "Some columns will consume more storage in Spanner",
    SchemaIssue.DEFAULT_VALUE: "Some columns have default values which Spanner does not support",
    SchemaIssue.AUTO_INCREMENT: "Spanner does not support auto_increment attribute",
    SchemaIssue.DATETIME: "Spanner timestamps store UTC instants; datetime values are converted using the source timezone",
    SchemaIssue.TIME: "Spanner does not support the time type; values are stored as text",
}
