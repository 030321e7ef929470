"""
Safe KuzuDB Connection Manager

Provides thread-safe access to KuzuDB connections with proper isolation
and concurrency control. One connection is opened per operation and closed
as soon as its rows have been read.
"""

import threading
import logging
import kuzu  # type: ignore
import os
import time
from pathlib import Path
from typing import Optional, Dict, Any, List, Generator
from contextlib import contextmanager
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

# Logging controls
_QUERY_LOG_ENABLED = os.getenv('KUZU_QUERY_LOG', 'false').lower() in ('1', 'true', 'on', 'yes')
try:
    _SLOW_QUERY_MS = int(os.getenv('KUZU_SLOW_QUERY_MS', '150'))
except ValueError:
    _SLOW_QUERY_MS = 150

DATABASE_FILENAME = 'ketchupsoon.db'

NODE_TABLES = {
    'Friend': """
        CREATE NODE TABLE Friend(
            id STRING,
            name STRING,
            last_seen STRING,
            location STRING,
            contact_identifier STRING,
            needs_to_connect_flag BOOLEAN,
            phone_number STRING,
            email STRING,
            additional_emails STRING,
            catch_up_frequency STRING,
            calendar_integration_enabled BOOLEAN,
            calendar_visibility_preference STRING,
            created_at STRING,
            updated_at STRING,
            PRIMARY KEY(id)
        )
    """,
    'Tag': """
        CREATE NODE TABLE Tag(
            id STRING,
            name STRING,
            is_predefined BOOLEAN,
            PRIMARY KEY(id)
        )
    """,
    'Hangout': """
        CREATE NODE TABLE Hangout(
            id STRING,
            start_date STRING,
            end_date STRING,
            title STRING,
            location STRING,
            is_scheduled BOOLEAN,
            is_completed BOOLEAN,
            needs_reschedule BOOLEAN,
            original_hangout_id STRING,
            event_link STRING,
            event_token STRING,
            google_event_id STRING,
            google_event_link STRING,
            attendee_emails STRING,
            created_at STRING,
            PRIMARY KEY(id)
        )
    """,
    'Event': """
        CREATE NODE TABLE Event(
            id STRING,
            title STRING,
            event_date STRING,
            location STRING,
            description STRING,
            duration INT64,
            creator_id STRING,
            is_private BOOLEAN,
            google_calendar_id STRING,
            google_calendar_link STRING,
            created_at STRING,
            PRIMARY KEY(id)
        )
    """,
    'EventAttendee': """
        CREATE NODE TABLE EventAttendee(
            id STRING,
            event_id STRING,
            name STRING,
            email STRING,
            phone_number STRING,
            rsvp_status STRING,
            PRIMARY KEY(id)
        )
    """,
    'Reminder': """
        CREATE NODE TABLE Reminder(
            id STRING,
            kind STRING,
            friend_id STRING,
            title STRING,
            body STRING,
            fire_at STRING,
            created_at STRING,
            PRIMARY KEY(id)
        )
    """,
}

REL_TABLES = {
    'TAGGED': "CREATE REL TABLE TAGGED(FROM Friend TO Tag)",
    'ATTENDS': "CREATE REL TABLE ATTENDS(FROM Friend TO Hangout)",
    'HAS_ATTENDEE': "CREATE REL TABLE HAS_ATTENDEE(FROM Event TO EventAttendee)",
}


class SafeKuzuManager:
    """
    Thread-safe KuzuDB connection manager.

    Key Features:
    - Thread-safe lazy initialization with proper locking
    - Connection-per-operation pattern to avoid shared state
    - Idempotent schema creation
    - Slow query logging and basic health metrics
    """

    def __init__(self, database_path: Optional[str] = None):
        """Initialize manager state (no heavy I/O)."""
        if database_path:
            self.database_path = database_path
        else:
            kuzu_dir = os.getenv('KUZU_DB_PATH', 'data/kuzu')
            self.database_path = os.path.join(kuzu_dir, DATABASE_FILENAME)

        # Reentrant lock for nested calls
        self._lock = threading.RLock()
        self._database: Optional[kuzu.Database] = None
        self._is_initialized = False

        self._connection_count = 0
        self._total_connections_created = 0
        self._total_queries = 0
        self._slow_queries = 0
        self._last_access_time: Optional[datetime] = None
        self._initialization_time: Optional[float] = None

        logger.info(f"SafeKuzuManager initialized for database: {self.database_path}")

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    def _initialize_database(self) -> None:
        """Open the database and make sure every table exists."""
        started = time.time()
        Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
        self._database = kuzu.Database(self.database_path)
        self._initialize_schema()
        self._is_initialized = True
        self._initialization_time = time.time() - started
        logger.info(f"Kuzu connected at {self.database_path} in {self._initialization_time:.2f}s")

    def _initialize_schema(self) -> None:
        """Create node and relationship tables, skipping those that already exist."""
        conn = kuzu.Connection(self._database)
        try:
            created = []
            for name, ddl in list(NODE_TABLES.items()) + list(REL_TABLES.items()):
                try:
                    conn.execute(ddl)
                    created.append(name)
                except Exception as e:
                    if "already exists" in str(e).lower():
                        logger.debug(f"Table {name} already exists")
                        continue
                    logger.error(f"Failed to create table {name}: {e}")
                    raise
            if created:
                logger.info(f"Created tables: {', '.join(created)}")
            else:
                logger.info("Schema is complete - skipping initialization")
        finally:
            conn.close()

    @contextmanager
    def get_connection(self, operation: str = "unknown") -> Generator[kuzu.Connection, None, None]:
        """
        Get a KuzuDB connection with automatic cleanup.

        Example:
            with manager.get_connection(operation="import_contacts") as conn:
                conn.execute("MATCH (f:Friend) RETURN f.name")
        """
        with self._lock:
            if not self._is_initialized:
                self._initialize_database()
            connection = kuzu.Connection(self._database)
            self._connection_count += 1
            self._total_connections_created += 1
            self._last_access_time = datetime.now(timezone.utc)
            logger.debug(f"Created connection #{self._total_connections_created} for operation '{operation}'")
        try:
            yield connection
        except Exception as e:
            logger.error(f"Error during KuzuDB operation '{operation}': {e}")
            raise
        finally:
            with self._lock:
                connection.close()
                self._connection_count -= 1

    def execute_query(self, query: str, params: Optional[Dict[str, Any]] = None,
                      operation: str = "query") -> List[Dict[str, Any]]:
        """
        Execute a query and return its rows as dictionaries (column name -> value).

        Rows are read before the connection is closed.
        """
        if _QUERY_LOG_ENABLED:
            q_snippet = ' '.join(query.split())[:120]
            logger.info(f"[KUZU] execute_query op='{operation}' q='{q_snippet}'")

        with self.get_connection(operation=operation) as conn:
            t0 = time.time()
            result = conn.execute(query, params or {})
            # Handle both single QueryResult and list[QueryResult]
            if isinstance(result, list):
                result = result[-1] if result else None
            rows = _read_rows(result)
            elapsed_ms = (time.time() - t0) * 1000

        with self._lock:
            self._total_queries += 1
            if elapsed_ms >= _SLOW_QUERY_MS:
                self._slow_queries += 1
        if elapsed_ms >= _SLOW_QUERY_MS:
            logger.warning(f"[KUZU] slow query op='{operation}' took {elapsed_ms:.0f}ms")
        return rows

    def query_value(self, query: str, params: Optional[Dict[str, Any]] = None,
                    operation: str = "query", default: Any = None) -> Any:
        """Execute a query and return the first column of the first row or default."""
        rows = self.execute_query(query, params, operation=operation)
        if not rows:
            return default
        return next(iter(rows[0].values()), default)

    def get_health_status(self) -> Dict[str, Any]:
        """Basic health and usage metrics."""
        with self._lock:
            return {
                'database_path': self.database_path,
                'initialized': self._is_initialized,
                'active_connections': self._connection_count,
                'total_connections_created': self._total_connections_created,
                'total_queries': self._total_queries,
                'slow_queries': self._slow_queries,
                'last_access_time': self._last_access_time.isoformat() if self._last_access_time else None,
                'initialization_seconds': self._initialization_time,
            }

    def close(self) -> None:
        with self._lock:
            if self._database is not None:
                try:
                    self._database.close()
                except AttributeError:
                    # Older kuzu releases close on garbage collection only
                    pass
            self._database = None
            self._is_initialized = False


def _read_rows(result) -> List[Dict[str, Any]]:
    """Convert a Kuzu QueryResult into a list of column-name keyed dicts."""
    rows: List[Dict[str, Any]] = []
    if result is None:
        return rows
    columns = result.get_column_names()
    while result.has_next():
        row = result.get_next()
        rows.append({col: row[i] for i, col in enumerate(columns)})
    return rows


def node_properties(node: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Strip Kuzu's internal keys (_id, _label) from a returned node."""
    if not node:
        return {}
    return {k: v for k, v in dict(node).items() if not k.startswith('_')}


_safe_kuzu_manager: Optional[SafeKuzuManager] = None
_manager_lock = threading.Lock()


def get_kuzu_manager() -> SafeKuzuManager:
    """Get the global thread-safe KuzuDB manager instance."""
    global _safe_kuzu_manager

    # Double-checked locking pattern for thread-safe singleton
    if _safe_kuzu_manager is None:
        with _manager_lock:
            if _safe_kuzu_manager is None:
                _safe_kuzu_manager = SafeKuzuManager()
                logger.info("Global SafeKuzuManager instance created")

    return _safe_kuzu_manager


def reset_kuzu_manager(database_path: Optional[str] = None) -> Optional[SafeKuzuManager]:
    """
    Reset the global SafeKuzuManager instance.

    Used by the application factory and tests to point the manager at a
    specific database path.
    """
    global _safe_kuzu_manager
    with _manager_lock:
        if _safe_kuzu_manager is not None:
            _safe_kuzu_manager.close()
        _safe_kuzu_manager = SafeKuzuManager(database_path) if database_path else None
        return _safe_kuzu_manager
