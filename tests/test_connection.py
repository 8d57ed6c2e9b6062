"""Tests for recordstore.connection module."""

import sqlite3
import threading

import pytest

from recordstore.connection import SharedConnection, StatementResult, connect


class TestConnect:
    """Test connect()."""

    def test_creates_database_file(self, tmp_path):
        path = tmp_path / "new.db"
        assert not path.exists()
        with connect(path):
            pass
        assert path.exists()

    def test_accepts_string_path(self, tmp_path):
        path = str(tmp_path / "test.db")
        conn = connect(path)
        assert isinstance(conn, SharedConnection)
        conn.close()

    def test_enables_wal_mode(self, file_conn):
        result = file_conn.execute("PRAGMA journal_mode")
        assert result.rows[0][0].lower() == "wal"

    def test_wal_can_be_disabled(self, tmp_path):
        with connect(tmp_path / "plain.db", wal=False) as conn:
            assert conn.execute("PRAGMA journal_mode").rows[0][0].lower() != "wal"

    def test_usable_from_other_threads(self, conn):
        conn.execute("CREATE TABLE t (x INTEGER)")
        errors = []

        def worker():
            try:
                conn.execute("INSERT INTO t VALUES (1)", commit=True)
            except sqlite3.Error as e:
                errors.append(e)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()
        assert errors == []
        assert conn.execute("SELECT COUNT(*) FROM t").rows == [(1,)]


class TestExecute:
    """Test SharedConnection.execute()."""

    def test_returns_columns_and_rows(self, conn):
        result = conn.execute("SELECT 1 AS a, 'x' AS b")
        assert isinstance(result, StatementResult)
        assert result.columns == ["a", "b"]
        assert result.rows == [(1, "x")]

    def test_rowcount_for_writes(self, conn):
        conn.execute("CREATE TABLE t (x INTEGER)")
        conn.execute("INSERT INTO t VALUES (1), (2)", commit=True)
        result = conn.execute("DELETE FROM t", commit=True)
        assert result.rowcount == 2
        assert result.columns == []

    def test_named_parameters(self, conn):
        assert conn.execute("SELECT :v", {"v": 5}).rows == [(5,)]

    def test_errors_propagate(self, conn):
        with pytest.raises(sqlite3.OperationalError):
            conn.execute("SELECT * FROM missing")

    def test_commit_on_plain_connection(self, tmp_path):
        path = tmp_path / "legacy.db"
        conn = SharedConnection(sqlite3.connect(path))
        conn.execute("CREATE TABLE t (x INTEGER)", commit=True)
        conn.execute("INSERT INTO t VALUES (1)", commit=True)
        conn.close()

        other = sqlite3.connect(path)
        assert other.execute("SELECT x FROM t").fetchall() == [(1,)]
        other.close()

    def test_failed_statement_rolls_back(self, tmp_path):
        path = tmp_path / "legacy.db"
        conn = SharedConnection(sqlite3.connect(path))
        conn.execute("CREATE TABLE t (x INTEGER PRIMARY KEY)", commit=True)
        conn.execute("INSERT INTO t VALUES (1)", commit=True)

        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("INSERT INTO t VALUES (1)", commit=True)
        assert not conn.connection.in_transaction

        other = sqlite3.connect(path, timeout=0)
        other.execute("INSERT INTO t VALUES (2)")
        other.commit()
        other.close()
        conn.close()
