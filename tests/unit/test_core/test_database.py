"""
Unit tests for database module.

Tests SQLite database creation and schema initialization.
"""

import sqlite3

import pytest
from sipms.core.database import DatabaseManager
from sipms.core.exceptions import DatabaseError


class TestDatabaseManager:
    """Tests for DatabaseManager class."""

    def test_singleton_pattern(self, db_manager):
        """Test that DatabaseManager follows singleton pattern."""
        another_manager = DatabaseManager()
        assert db_manager is another_manager

    def test_schema_init(self, db_manager):
        """Test that init creates all SIPMS tables."""
        conn = db_manager.init(":memory:")

        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        )
        tables = [row[0] for row in cursor.fetchall()]

        for table in ("funds", "users", "sips", "transactions"):
            assert table in tables

    def test_connection_property_before_init(self):
        """Test that accessing connection before init raises error."""
        DatabaseManager.reset_instance()
        manager = DatabaseManager()

        with pytest.raises(DatabaseError) as exc_info:
            _ = manager.connection

        assert "not initialized" in str(exc_info.value).lower()
        DatabaseManager.reset_instance()

    def test_connection_property(self, db_connection, db_manager):
        assert db_manager.connection is db_connection

    def test_init_is_repeatable_on_file(self, db_manager, tmp_path):
        """Re-opening an existing file keeps its rows."""
        db_path = str(tmp_path / "sipms.db")
        conn = db_manager.init(db_path)
        conn.execute(
            "INSERT INTO users (id, name, email) VALUES (?, ?, ?)",
            ("USER_000001", "Test User", "test@example.com"),
        )
        conn.commit()
        db_manager.close()

        conn = db_manager.init(db_path)
        row = conn.execute("SELECT name FROM users WHERE id = ?", ("USER_000001",)).fetchone()

        assert row["name"] == "Test User"

    def test_close(self, db_manager):
        db_manager.init(":memory:")
        db_manager.close()

        with pytest.raises(DatabaseError):
            _ = db_manager.connection

    def test_check_constraint_on_state(self, db_connection, db_manager):
        with pytest.raises(sqlite3.IntegrityError):
            db_connection.execute(
                """
                INSERT INTO sips (id, user_id, fund_id, base_amount, frequency, state,
                                  start_date, next_execution_date)
                VALUES ('SIP_1', 'USER_1', 'FUND_1', '1000', 'MONTHLY', 'DORMANT',
                        '2024-01-01', '2024-01-01')
                """
            )

    def test_file_database(self, db_manager, tmp_path):
        db_path = tmp_path / "data" / "sipms.db"
        db_manager.init(str(db_path))

        assert db_path.exists()
        mode = db_manager.connection.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode.lower() == "wal"
