"""
Base Repository - Grant Review Engine
grant_review/repositories/base.py

Base repository class with Snowflake connection, transaction management and
common row utilities.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional
from uuid import UUID

import snowflake.connector
from snowflake.connector import DictCursor
from snowflake.connector.errors import DatabaseError, InterfaceError, ProgrammingError

from grant_review.core.exceptions import (
    DatabaseConnectionException,
    DuplicateEntityException,
    ForeignKeyViolationException,
    RepositoryException,
)
from grant_review.services.snowflake import get_snowflake_connection

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base repository with Snowflake connection management."""

    @contextmanager
    def get_connection(self) -> Generator[snowflake.connector.SnowflakeConnection, None, None]:
        """Context manager for Snowflake connections."""
        conn = None
        try:
            conn = get_snowflake_connection()
            yield conn
        except InterfaceError as e:
            raise DatabaseConnectionException(f"Failed to connect to Snowflake: {e}")
        finally:
            if conn:
                conn.close()

    @contextmanager
    def get_cursor(self, dict_cursor: bool = True) -> Generator[Any, None, None]:
        """Context manager for Snowflake cursors with automatic connection cleanup."""
        with self.get_connection() as conn:
            cursor = conn.cursor(DictCursor) if dict_cursor else conn.cursor()
            try:
                yield cursor
            finally:
                cursor.close()

    @contextmanager
    def transaction(self) -> Generator[Any, None, None]:
        """
        Run several statements as one Snowflake transaction.

        Yields a DictCursor to pass as ``cursor=`` to repository methods.
        Commits on normal exit; rolls back and re-raises on any exception.
        """
        with self.get_connection() as conn:
            cursor = conn.cursor(DictCursor)
            try:
                cursor.execute("BEGIN")
                yield cursor
                conn.commit()
            except Exception:
                logger.warning("Rolling back transaction")
                conn.rollback()
                raise
            finally:
                cursor.close()

    def execute_query(
        self,
        sql: str,
        params: Optional[tuple] = None,
        fetch_one: bool = False,
        fetch_all: bool = False,
        commit: bool = False,
        cursor: Optional[Any] = None,
    ) -> Optional[Any]:
        """
        Execute a SQL query with error handling.

        Args:
            sql: SQL query string
            params: Query parameters
            fetch_one: Return single row
            fetch_all: Return all rows
            commit: Commit after execution (ignored inside a transaction)
            cursor: Cursor of an open transaction; a fresh connection is used when omitted

        Returns:
            Query results, or the affected row count
        """
        if cursor is not None:
            return self._run(cursor, sql, params, fetch_one, fetch_all)

        with self.get_cursor() as own_cursor:
            result = self._run(own_cursor, sql, params, fetch_one, fetch_all)
            if commit:
                own_cursor.connection.commit()
            return result

    def _run(
        self,
        cursor: Any,
        sql: str,
        params: Optional[tuple],
        fetch_one: bool,
        fetch_all: bool,
    ) -> Optional[Any]:
        try:
            cursor.execute(sql, params or ())

            if fetch_one:
                return cursor.fetchone()
            elif fetch_all:
                return cursor.fetchall()

            return cursor.rowcount

        except ProgrammingError as e:
            error_msg = str(e).upper()
            if "UNIQUE" in error_msg or "DUPLICATE" in error_msg:
                raise DuplicateEntityException(str(e))
            elif "FOREIGN KEY" in error_msg:
                raise ForeignKeyViolationException(str(e))
            raise RepositoryException(f"Query error: {e}")
        except DatabaseError as e:
            raise RepositoryException(f"Database error: {e}")

    def uuid_to_str(self, uuid_val: Optional[UUID]) -> Optional[str]:
        """Convert UUID to string for Snowflake storage."""
        return str(uuid_val) if uuid_val else None

    def str_to_uuid(self, uuid_str: Optional[str]) -> Optional[UUID]:
        """Convert string from Snowflake to UUID."""
        return UUID(uuid_str) if uuid_str else None

    def normalize_timestamp(self, dt: Optional[datetime]) -> Optional[datetime]:
        """Ensure timestamp is UTC-aware."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    def parse_variant(self, raw: Any, default: Any = None) -> Any:
        """VARIANT columns arrive as JSON text through the Python connector."""
        if raw is None:
            return default
        if isinstance(raw, (list, dict)):
            return raw
        return json.loads(raw)

    def build_update_query(
        self,
        table_name: str,
        update_data: Dict[str, Any],
        where_column: str,
        where_value: Any,
        additional_set: Optional[Dict[str, str]] = None,
        placeholders: Optional[Dict[str, str]] = None,
    ) -> tuple[str, List[Any]]:
        """
        Build a dynamic UPDATE query.

        Args:
            table_name: Name of the table
            update_data: Dictionary of column -> value to update
            where_column: Column name for WHERE clause
            where_value: Value for WHERE clause
            additional_set: Raw SQL expressions per column (e.g. UPDATED_AT)
            placeholders: Per-column placeholder overrides (e.g. PARSE_JSON(%s))

        Returns:
            Tuple of (sql_string, params_list)
        """
        set_clauses = []
        params = []

        for column, value in update_data.items():
            placeholder = (placeholders or {}).get(column, "%s")
            set_clauses.append(f"{column.upper()} = {placeholder}")
            params.append(value)

        if additional_set:
            for column, expression in additional_set.items():
                set_clauses.append(f"{column.upper()} = {expression}")

        params.append(where_value)

        sql = f"""
            UPDATE {table_name}
            SET {', '.join(set_clauses)}
            WHERE {where_column} = %s
        """

        return sql, params
