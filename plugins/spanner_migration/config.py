"""
Conversion run configuration read from environment variables.

Environment:
- SCHEMA_WORKERS: Tables whose schema is discovered concurrently (default 4)
- DATA_WORKERS: Tables whose data is converted concurrently (default 1)
- BAD_ROW_SAMPLE_SIZE: Bad-row descriptions kept for reporting (default 100)
- CURSOR_BATCH_SIZE: Rows fetched per round trip by row cursors (default 10000)
- SOURCE_TIMEZONE: Timezone of naive source datetimes (default UTC)
"""

from typing import Any, Dict, Optional
import logging
import os

import pendulum

logger = logging.getLogger(__name__)

DEFAULTS = {
    'schema_workers': 4,
    'data_workers': 1,
    'bad_row_sample_size': 100,
    'cursor_batch_size': 10000,
    'source_timezone': 'UTC',
}


def _int_env(name: str, default: int, minimum: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got '{raw}'")
    if value < minimum:
        logger.warning(f"{name}={value} is below minimum {minimum}; using {minimum}")
        return minimum
    return value


def validate_timezone(name: str) -> str:
    """Return name if pendulum knows the timezone, else raise ValueError."""
    try:
        pendulum.timezone(name)
    except Exception as e:
        raise ValueError(f"Unknown timezone '{name}': {e}")
    return name


def get_conversion_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the run configuration from environment variables.

    Args:
        overrides: Values that take precedence over the environment
            (e.g. Airflow DAG params); None values are ignored

    Returns:
        Dictionary with schema_workers, data_workers, bad_row_sample_size,
        cursor_batch_size and source_timezone
    """
    config = {
        'schema_workers': _int_env('SCHEMA_WORKERS', DEFAULTS['schema_workers'], 1),
        'data_workers': _int_env('DATA_WORKERS', DEFAULTS['data_workers'], 1),
        'bad_row_sample_size': _int_env('BAD_ROW_SAMPLE_SIZE', DEFAULTS['bad_row_sample_size'], 0),
        'cursor_batch_size': _int_env('CURSOR_BATCH_SIZE', DEFAULTS['cursor_batch_size'], 1),
        'source_timezone': os.environ.get('SOURCE_TIMEZONE') or DEFAULTS['source_timezone'],
    }

    for key, value in (overrides or {}).items():
        if key not in DEFAULTS:
            raise ValueError(f"Unknown configuration key '{key}'")
        if value is not None:
            config[key] = value

    for key in ('schema_workers', 'data_workers', 'cursor_batch_size'):
        if int(config[key]) < 1:
            raise ValueError(f"{key} must be >= 1, got {config[key]}")
        config[key] = int(config[key])

    config['source_timezone'] = validate_timezone(config['source_timezone'])
    return config
