"""
ODBC Connection Helper

This module provides a small query helper over pyodbc for reading a MySQL
source through its ODBC driver, using connection details stored as an Airflow
connection. It exposes the familiar hook methods (get_records, get_first)
plus a streaming iter_records for large result sets.
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple
import logging
import os

from airflow.hooks.base import BaseHook
import pyodbc

logger = logging.getLogger(__name__)

DEFAULT_DRIVER = '{MySQL ODBC 8.0 Unicode Driver}'
DEFAULT_PORT = 3306


class OdbcConnectionHelper:
    """
    Helper class for ODBC connections to a MySQL source database.

    Each call opens its own connection, so one helper can be shared by
    worker threads (pyodbc connections themselves are not thread-safe).
    """

    def __init__(self, odbc_conn_id: str, driver: Optional[str] = None):
        """
        Initialize the ODBC connection helper.

        Args:
            odbc_conn_id: Airflow connection ID for the source database
            driver: ODBC driver name; defaults to MYSQL_ODBC_DRIVER or the
                connection's 'driver' extra
        """
        self.conn_id = odbc_conn_id
        self._driver = driver
        self._conn_config: Optional[Dict[str, str]] = None

    def _get_connection_config(self) -> Dict[str, str]:
        """
        Get connection configuration from Airflow connection.

        Returns:
            Dictionary with ODBC connection parameters
        """
        if self._conn_config is None:
            conn = BaseHook.get_connection(self.conn_id)
            extra = conn.extra_dejson or {}

            driver = (
                self._driver
                or os.environ.get('MYSQL_ODBC_DRIVER')
                or extra.get('driver')
                or DEFAULT_DRIVER
            )

            self._conn_config = {
                'DRIVER': driver,
                'SERVER': conn.host,
                'PORT': str(conn.port or DEFAULT_PORT),
                'DATABASE': conn.schema,
                'UID': conn.login or '',
                'PWD': conn.password or '',
                'CHARSET': extra.get('charset', 'utf8mb4'),
            }

        return self._conn_config

    @property
    def database(self) -> str:
        """Name of the source database (stored in the connection's schema field)."""
        database = self._get_connection_config().get('DATABASE')
        if not database:
            raise ValueError(
                f"Cannot extract database name from connection '{self.conn_id}'. "
                f"Ensure the connection has a database/schema configured."
            )
        return database

    def _build_connection_string(self) -> str:
        """
        Build ODBC connection string from configuration.

        Returns:
            ODBC connection string
        """
        config = self._get_connection_config()
        return ';'.join([f"{k}={v}" for k, v in config.items() if v])

    def get_conn(self) -> pyodbc.Connection:
        """
        Open a new pyodbc connection to the database.

        Returns:
            pyodbc Connection object
        """
        return pyodbc.connect(self._build_connection_string())

    def get_records(
        self,
        sql: str,
        parameters: Optional[List[Any]] = None
    ) -> List[Tuple[Any, ...]]:
        """
        Execute a query and return all rows as a list of tuples.

        Args:
            sql: SQL query to execute
            parameters: Optional list of parameters for the query

        Returns:
            List of tuples, one per row
        """
        conn = None
        try:
            conn = self.get_conn()
            cursor = conn.cursor()

            if parameters:
                cursor.execute(sql, parameters)
            else:
                cursor.execute(sql)

            return [tuple(row) for row in cursor.fetchall()]
        except Exception as e:
            logger.error(f"Error executing query: {e}")
            logger.error(f"Query: {sql}")
            if parameters:
                logger.error(f"Parameters: {parameters}")
            raise
        finally:
            if conn is not None:
                conn.close()

    def get_first(
        self,
        sql: str,
        parameters: Optional[List[Any]] = None
    ) -> Optional[Tuple[Any, ...]]:
        """
        Execute a query and return the first row as a tuple.

        Args:
            sql: SQL query to execute
            parameters: Optional list of parameters for the query

        Returns:
            First row as a tuple, or None if no rows
        """
        conn = None
        try:
            conn = self.get_conn()
            cursor = conn.cursor()

            if parameters:
                cursor.execute(sql, parameters)
            else:
                cursor.execute(sql)

            row = cursor.fetchone()
            return tuple(row) if row is not None else None
        except Exception as e:
            logger.error(f"Error executing query: {e}")
            logger.error(f"Query: {sql}")
            if parameters:
                logger.error(f"Parameters: {parameters}")
            raise
        finally:
            if conn is not None:
                conn.close()

    def iter_records(
        self,
        sql: str,
        parameters: Optional[List[Any]] = None,
        batch_size: int = 10000,
    ) -> Iterator[Tuple[List[str], Tuple[Any, ...]]]:
        """
        Execute a query and stream its rows in batches.

        The connection stays open until the iterator is exhausted or closed.

        Args:
            sql: SQL query to execute
            parameters: Optional list of parameters for the query
            batch_size: Rows fetched per round trip

        Yields:
            Tuples of (column names, row values)
        """
        conn = None
        try:
            conn = self.get_conn()
            cursor = conn.cursor()

            if parameters:
                cursor.execute(sql, parameters)
            else:
                cursor.execute(sql)

            columns = [d[0] for d in cursor.description]
            while True:
                rows = cursor.fetchmany(batch_size)
                if not rows:
                    break
                for row in rows:
                    yield columns, tuple(row)
        except Exception as e:
            logger.error(f"Error streaming query: {e}")
            logger.error(f"Query: {sql}")
            if parameters:
                logger.error(f"Parameters: {parameters}")
            raise
        finally:
            if conn is not None:
                conn.close()
