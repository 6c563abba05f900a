"""Tests for SQLite database setup."""

from clubdesk.loantracker.db import Database, Document, get_db, reset_db


class TestDatabaseCreation:
    """Tests for database initialization."""

    def test_database_creates_tables(self, db: Database):
        """Test that the documents table exists after initialization."""
        with db.get_session() as session:
            assert session.query(Document).first() is None

    def test_file_database_creates_directory(self, tmp_path):
        """Test that a file database creates its parent directory."""
        path = tmp_path / "nested" / "clubdesk.db"
        database = Database(str(path))
        database.create_tables()
        assert path.parent.exists()

    def test_session_rolls_back_on_error(self, db: Database):
        """Test that a failing session leaves nothing behind."""
        try:
            with db.get_session() as session:
                session.add(Document(collection="loans", id="loan-1", data={"status": "in_use"}))
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        with db.get_session() as session:
            assert session.get(Document, ("loans", "loan-1")) is None


class TestGlobalDatabase:
    """Tests for the module-level database instance."""

    def test_get_db_returns_same_instance(self):
        """Test that get_db caches its instance until reset."""
        reset_db()
        try:
            first = get_db(":memory:")
            assert get_db() is first
            reset_db()
            assert get_db(":memory:") is not first
        finally:
            reset_db()
