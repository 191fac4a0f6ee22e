"""
Tests for ODBC Connection Helper Module

These tests validate connection configuration, parameterization,
streaming, error handling and connection cleanup.
"""

import pytest
from unittest.mock import Mock, MagicMock, patch
from spanner_migration.odbc_helper import OdbcConnectionHelper


def make_airflow_connection(**overrides):
    conn = Mock()
    conn.host = 'mysql.example.com'
    conn.port = 3306
    conn.schema = 'shop'
    conn.login = 'migrator'
    conn.password = 'TestPassword123'
    conn.extra_dejson = {}
    for key, value in overrides.items():
        setattr(conn, key, value)
    return conn


@pytest.fixture(autouse=True)
def clean_driver_env(monkeypatch):
    monkeypatch.delenv('MYSQL_ODBC_DRIVER', raising=False)


@pytest.fixture
def mock_cursor():
    return MagicMock()


@pytest.fixture
def mock_connection(mock_cursor):
    connection = MagicMock()
    connection.cursor.return_value = mock_cursor
    return connection


class TestOdbcConnectionHelper:
    """Test ODBC connection helper."""

    @pytest.fixture
    def helper(self):
        """Create ODBC helper with mocked Airflow connection."""
        with patch('spanner_migration.odbc_helper.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_airflow_connection()
            helper = OdbcConnectionHelper('test_conn_id')
            # Pre-cache the connection config so it doesn't need to call BaseHook again
            helper._get_connection_config()
            yield helper

    def test_connection_config(self, helper):
        config = helper._get_connection_config()

        assert config['DRIVER'] == '{MySQL ODBC 8.0 Unicode Driver}'
        assert config['SERVER'] == 'mysql.example.com'
        assert config['PORT'] == '3306'
        assert config['DATABASE'] == 'shop'
        assert config['UID'] == 'migrator'
        assert config['PWD'] == 'TestPassword123'
        assert config['CHARSET'] == 'utf8mb4'

    def test_default_port(self):
        with patch('spanner_migration.odbc_helper.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_airflow_connection(port=None)
            config = OdbcConnectionHelper('test_conn')._get_connection_config()

            assert config['PORT'] == '3306'

    def test_driver_from_environment(self, monkeypatch):
        monkeypatch.setenv('MYSQL_ODBC_DRIVER', '{MariaDB ODBC 3.1 Driver}')
        with patch('spanner_migration.odbc_helper.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_airflow_connection()
            config = OdbcConnectionHelper('test_conn')._get_connection_config()

            assert config['DRIVER'] == '{MariaDB ODBC 3.1 Driver}'

    def test_driver_argument_wins(self, monkeypatch):
        monkeypatch.setenv('MYSQL_ODBC_DRIVER', '{From Env}')
        with patch('spanner_migration.odbc_helper.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_airflow_connection(extra_dejson={'driver': '{From Extra}'})
            config = OdbcConnectionHelper('test_conn', driver='{Explicit}')._get_connection_config()

            assert config['DRIVER'] == '{Explicit}'

    def test_database_property(self, helper):
        assert helper.database == 'shop'

    def test_database_missing(self):
        with patch('spanner_migration.odbc_helper.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_airflow_connection(schema=None)
            helper = OdbcConnectionHelper('test_conn')

            with pytest.raises(ValueError, match='database'):
                helper.database

    def test_build_connection_string(self, helper):
        conn_str = helper._build_connection_string()

        assert 'DRIVER={MySQL ODBC 8.0 Unicode Driver}' in conn_str
        assert 'SERVER=mysql.example.com' in conn_str
        assert 'PORT=3306' in conn_str
        assert 'DATABASE=shop' in conn_str
        assert 'PWD=TestPassword123' in conn_str
        assert ';' in conn_str

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    def test_get_records_executes_query(self, mock_connect, helper, mock_connection, mock_cursor):
        mock_cursor.fetchall.return_value = [(1, 'Alice'), (2, 'Bob')]
        mock_connect.return_value = mock_connection

        result = helper.get_records('SELECT id, name FROM users')

        assert result == [(1, 'Alice'), (2, 'Bob')]
        mock_cursor.execute.assert_called_once_with('SELECT id, name FROM users')
        mock_connection.close.assert_called_once()

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    def test_get_records_with_parameters(self, mock_connect, helper, mock_connection, mock_cursor):
        mock_cursor.fetchall.return_value = [(1, 'Alice')]
        mock_connect.return_value = mock_connection

        helper.get_records('SELECT * FROM users WHERE id = ?', parameters=[1])

        mock_cursor.execute.assert_called_once_with('SELECT * FROM users WHERE id = ?', [1])

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    def test_get_first_returns_single_row(self, mock_connect, helper, mock_connection, mock_cursor):
        mock_cursor.fetchone.return_value = (5,)
        mock_connect.return_value = mock_connection

        assert helper.get_first('SELECT COUNT(*) FROM users') == (5,)

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    def test_get_first_with_no_results(self, mock_connect, helper, mock_connection, mock_cursor):
        mock_cursor.fetchone.return_value = None
        mock_connect.return_value = mock_connection

        assert helper.get_first('SELECT * FROM empty_table') is None

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    def test_iter_records_streams_batches(self, mock_connect, helper, mock_connection, mock_cursor):
        mock_cursor.description = [('id',), ('name',)]
        mock_cursor.fetchmany.side_effect = [[(1, 'a'), (2, 'b')], [(3, 'c')], []]
        mock_connect.return_value = mock_connection

        rows = list(helper.iter_records('SELECT * FROM t', batch_size=2))

        assert rows == [(['id', 'name'], (1, 'a')), (['id', 'name'], (2, 'b')), (['id', 'name'], (3, 'c'))]
        mock_cursor.fetchmany.assert_called_with(2)
        mock_connection.close.assert_called_once()

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    def test_iter_records_is_lazy(self, mock_connect, helper):
        helper.iter_records('SELECT * FROM t')
        mock_connect.assert_not_called()

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    def test_connection_cleanup_on_error(self, mock_connect, helper, mock_connection, mock_cursor):
        mock_cursor.execute.side_effect = Exception('Database error')
        mock_connect.return_value = mock_connection

        with pytest.raises(Exception):
            helper.get_records('SELECT * FROM nonexistent')

        mock_connection.close.assert_called_once()

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    def test_stream_cleanup_on_error(self, mock_connect, helper, mock_connection, mock_cursor):
        mock_cursor.description = [('id',)]
        mock_cursor.fetchmany.side_effect = Exception('Lost connection')
        mock_connect.return_value = mock_connection

        with pytest.raises(Exception, match='Lost connection'):
            list(helper.iter_records('SELECT * FROM t'))

        mock_connection.close.assert_called_once()


class TestErrorHandling:
    """Test error handling and logging."""

    @pytest.fixture
    def helper(self):
        with patch('spanner_migration.odbc_helper.BaseHook.get_connection') as mock_get_conn:
            mock_get_conn.return_value = make_airflow_connection()
            helper = OdbcConnectionHelper('test_conn')
            helper._get_connection_config()
            yield helper

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    @patch('spanner_migration.odbc_helper.logger')
    def test_error_logging_includes_query(self, mock_logger, mock_connect, helper, mock_connection, mock_cursor):
        mock_cursor.execute.side_effect = Exception('Syntax error')
        mock_connect.return_value = mock_connection

        with pytest.raises(Exception):
            helper.get_records('SELECT * FROM bad syntax')

        assert any('SELECT * FROM bad syntax' in str(call) for call in mock_logger.error.call_args_list)

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    @patch('spanner_migration.odbc_helper.logger')
    def test_error_logging_includes_parameters(self, mock_logger, mock_connect, helper, mock_connection, mock_cursor):
        mock_cursor.execute.side_effect = Exception('Parameter error')
        mock_connect.return_value = mock_connection

        with pytest.raises(Exception):
            helper.get_records('SELECT * FROM users WHERE id = ?', parameters=[999])

        error_calls = [str(call) for call in mock_logger.error.call_args_list]
        assert any('[999]' in call for call in error_calls)

    @patch('spanner_migration.odbc_helper.pyodbc.connect')
    @patch('spanner_migration.odbc_helper.logger')
    def test_password_not_logged(self, mock_logger, mock_connect, helper):
        mock_connect.side_effect = Exception('Connection failed')

        with pytest.raises(Exception):
            helper.get_records('SELECT 1')

        error_calls = [str(call) for call in mock_logger.error.call_args_list]
        assert not any('TestPassword123' in call for call in error_calls)
