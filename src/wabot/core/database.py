"""
Centralized Database Module

Single point of access for the SQL database behind the knowledge base,
user profiles, conversation history and analytics tables. SQLite is used
for development and tests, MySQL in production; the schema is declared
with SQLAlchemy metadata so both dialects get the right DDL.
"""

import threading
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Optional, Dict, Any, List

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    text,
)
from sqlalchemy.pool import StaticPool

from wabot.core.config import settings
from wabot.core.logging import logger


metadata = MetaData()

knowledge_base = Table(
    "knowledge_base",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("category", String(100), nullable=False),
    Column("keywords", Text, nullable=False),
    Column("question", Text, nullable=False),
    Column("answer", Text, nullable=False),
    Column("priority", Integer, nullable=False, default=1),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
    Index("idx_knowledge_category", "category"),
    Index("idx_knowledge_active", "is_active"),
)

conversations = Table(
    "conversations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("phone_number", String(32), nullable=False),
    Column("user_name", String(100)),
    Column("message_text", Text, nullable=False),
    Column("message_type", String(16), nullable=False),
    Column("ai_model", String(50)),
    Column("response_time_ms", Integer),
    Column("metadata", Text),
    Column("created_at", String(40), nullable=False),
    Index("idx_conversations_phone", "phone_number"),
    Index("idx_conversations_created", "created_at"),
)

user_profiles = Table(
    "user_profiles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("phone_number", String(32), nullable=False, unique=True),
    Column("name", String(100)),
    Column("email", String(100)),
    Column("preferences", Text),
    Column("context_data", Text),
    Column("total_messages", Integer, nullable=False, default=0),
    Column("last_interaction", String(40)),
    Column("created_at", String(40), nullable=False),
    Column("updated_at", String(40), nullable=False),
    Index("idx_profiles_last_interaction", "last_interaction"),
)

bot_analytics = Table(
    "bot_analytics",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("metric_name", String(50), nullable=False),
    Column("metric_value", Float, nullable=False),
    Column("dimensions", Text),
    Column("recorded_at", String(40), nullable=False),
    Index("idx_analytics_metric", "metric_name"),
    Index("idx_analytics_recorded", "recorded_at"),
)


class Database:
    """Centralized database manager for WABOT."""

    def __init__(self, url: Optional[str] = None, in_memory: bool = False):
        """
        Initialize database connection.

        Args:
            url: SQLAlchemy URL. If None, uses settings.database.url
            in_memory: If True, creates an in-memory SQLite database (useful for testing)
        """
        if in_memory:
            self.url = "sqlite:///:memory:"
            # StaticPool keeps the single in-memory connection alive across checkouts
            self.engine = create_engine(
                self.url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.url = url or settings.database.url
            if self.url.startswith("sqlite:///"):
                Path(self.url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
                self.engine = create_engine(
                    self.url,
                    connect_args={"check_same_thread": False},
                    echo=settings.database.echo,
                )
            else:
                self.engine = create_engine(
                    self.url,
                    pool_size=settings.database.pool_size,
                    pool_pre_ping=True,
                    echo=settings.database.echo,
                )

        # SQLite has one writer and the in-memory engine shares one connection
        self._lock = threading.RLock() if self.dialect == "sqlite" else None
        self._initialize_schema()

    @property
    def dialect(self) -> str:
        """SQL dialect name ("sqlite", "mysql", ...)."""
        return self.engine.dialect.name

    def _initialize_schema(self):
        """Create database tables if they don't exist."""
        try:
            metadata.create_all(self.engine)
            logger.info(f"Database schema initialized: {self.engine.url.render_as_string(hide_password=True)}")
        except Exception as e:
            logger.error(f"Error initializing database schema: {e}")
            raise

    @contextmanager
    def get_connection(self):
        """
        Get a database connection context manager.

        Usage:
            with db.get_connection() as conn:
                result = conn.execute(text("SELECT * FROM table"))
        """
        with self._lock or nullcontext():
            conn = self.engine.connect()
            try:
                yield conn
            finally:
                conn.close()

    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> int:
        """
        Execute a write statement and commit.

        Returns:
            Number of affected rows
        """
        with self.get_connection() as conn:
            result = conn.execute(text(sql), params or {})
            conn.commit()
            return result.rowcount

    def fetchall(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Execute a query and fetch all rows as dictionaries.

        Args:
            sql: SQL query to execute
            params: Optional parameters for the query
        """
        with self.get_connection() as conn:
            result = conn.execute(text(sql), params or {})
            return [dict(row) for row in result.mappings().fetchall()]

    def fetchone(self, sql: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute a query and fetch one row as a dictionary (or None)."""
        with self.get_connection() as conn:
            result = conn.execute(text(sql), params or {})
            row = result.mappings().fetchone()
            return dict(row) if row is not None else None

    def insert(self, table: str, data: Dict[str, Any]) -> int:
        """
        Insert a row into a table.

        Returns:
            ID of inserted row
        """
        columns = ", ".join(data.keys())
        placeholders = ", ".join(f":{key}" for key in data.keys())
        sql = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"

        with self.get_connection() as conn:
            result = conn.execute(text(sql), data)
            conn.commit()
            return result.lastrowid

    def update(self, table: str, data: Dict[str, Any], where: str, where_params: Dict[str, Any]) -> int:
        """
        Update rows in a table.

        Args:
            table: Table name
            data: Dictionary of column: value pairs to update
            where: WHERE clause (without the WHERE keyword)
            where_params: Parameters for the WHERE clause

        Returns:
            Number of rows updated
        """
        set_clause = ", ".join(f"{key} = :{key}" for key in data.keys())
        sql = f"UPDATE {table} SET {set_clause} WHERE {where}"

        return self.execute(sql, {**data, **where_params})

    def delete(self, table: str, where: str, where_params: Dict[str, Any]) -> int:
        """Delete rows from a table, returning the number deleted."""
        sql = f"DELETE FROM {table} WHERE {where}"
        return self.execute(sql, where_params)

    def ping(self) -> bool:
        """Round-trip a trivial query."""
        with self.get_connection() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def status(self) -> Dict[str, Any]:
        """Connection status plus pool statistics for the admin endpoint."""
        try:
            self.ping()
        except Exception as e:
            return {"connected": False, "error": str(e)}

        pool = self.engine.pool
        return {
            "connected": True,
            "dialect": self.dialect,
            "pool_stats": {
                "status": pool.status(),
                "checked_out": getattr(pool, "checkedout", lambda: 0)(),
            },
        }

    def close(self):
        """Close the database connection."""
        self.engine.dispose()
        logger.info("Database connection closed")


# Global database instance (lazily initialized)
_db_instance: Optional[Database] = None


def get_db(url: Optional[str] = None, in_memory: bool = False) -> Database:
    """
    Get the global database instance.

    Args:
        url: Optional custom database URL
        in_memory: If True, creates in-memory database (for testing)
    """
    global _db_instance

    # For in-memory or custom URL, always create new instance
    if in_memory or url:
        return Database(url=url, in_memory=in_memory)

    if _db_instance is None:
        _db_instance = Database()

    return _db_instance


def reset_db():
    """Reset the global database instance. Useful for testing."""
    global _db_instance
    if _db_instance:
        _db_instance.close()
    _db_instance = None
