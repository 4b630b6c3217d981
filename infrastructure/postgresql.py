"""
PostgreSQL Repository Implementation - Direct Database Access

This module provides the PostgreSQL record stores for granules,
collections, workflow executions and PDRs.

Architecture:
    PostgreSQLRepository (connection management, query execution)
        ↓
    PostgreSQLGranuleStore, PostgreSQLCollectionStore,
    PostgreSQLExecutionStore, PostgreSQLPdrStore

Key Features:
- Direct PostgreSQL access using psycopg3
- SQL composition for injection safety
- Upserts with ON CONFLICT for idempotent writes
- psycopg errors translated into DatabaseError

Tables are created by schema deployment, not by this module.
"""

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from config import DatabaseConfig
from core.models import (
    CollectionRecord,
    ExecutionRecord,
    GranuleFile,
    GranuleRecord,
    GranuleStatus,
    PdrRecord,
)
from exceptions import DatabaseError
from interfaces.repository import (
    ICollectionStore,
    IExecutionStore,
    IGranuleStore,
    IPdrStore,
)
from util_logger import LoggerFactory, ComponentType


def _jsonb(value: Any) -> Optional[str]:
    return json.dumps(value, default=str) if value is not None else None


def _like_prefix(prefix: str) -> str:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


# ============================================================================
# POSTGRESQL BASE REPOSITORY - Connection and common operations
# ============================================================================

class PostgreSQLRepository:
    """
    PostgreSQL-specific repository base class with connection management.

    Thread Safety:
    -------------
    Each operation creates its own connection, making this class
    thread-safe for concurrent operations.
    """

    def __init__(self, config: DatabaseConfig, table_name: str):
        self.config = config
        self.schema_name = config.db_schema
        self.table_name = table_name
        self.conn_string = config.connection_string
        self.logger = LoggerFactory.create_logger(
            ComponentType.REPOSITORY,
            self.__class__.__name__
        )

    def _table(self) -> sql.Composed:
        return sql.SQL("{}.{}").format(
            sql.Identifier(self.schema_name),
            sql.Identifier(self.table_name)
        )

    @contextmanager
    def _get_connection(self):
        """
        Context manager for PostgreSQL database connections.

        Rolls back on error and always closes the connection.

        Yields:
            psycopg.Connection with dict_row row factory
        """
        conn = None
        try:
            conn = psycopg.connect(self.conn_string, row_factory=dict_row)
            yield conn
        except psycopg.Error as e:
            self.logger.error(f"PostgreSQL error: {type(e).__name__}: {e}")
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                conn.close()

    @contextmanager
    def _error_context(self, operation: str, entity_id: Optional[str] = None):
        """
        Log and translate database failures.

        psycopg errors become DatabaseError; anything else is logged and
        re-raised unchanged.
        """
        try:
            yield
        except psycopg.Error as e:
            error_msg = f"{operation} failed"
            if entity_id:
                error_msg += f" for {entity_id}"
            self.logger.error(f"{error_msg}: {e}")
            raise DatabaseError(f"{error_msg}: {e}") from e
        except Exception as e:
            error_msg = f"{operation} failed"
            if entity_id:
                error_msg += f" for {entity_id}"
            self.logger.error(f"{error_msg}: {e}")
            raise

    def _execute_query(
        self,
        query: sql.Composed,
        params: Optional[Tuple] = None,
        fetch: Optional[str] = None
    ) -> Optional[Any]:
        """
        Execute a query and always commit.

        Args:
            query: Query built with psycopg.sql composition
            params: Parameters for %s placeholders
            fetch: None | 'one' | 'all'

        Returns:
            Fetched row(s) when fetch is set, otherwise the affected row count
        """
        if not isinstance(query, sql.Composed):
            raise TypeError(f"SECURITY: Query must be sql.Composed, got {type(query)}")

        if fetch and fetch not in ('one', 'all'):
            raise ValueError(f"INVALID FETCH MODE: {fetch}")

        with self._get_connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, params)
                result = None
                if fetch == 'one':
                    result = cursor.fetchone()
                elif fetch == 'all':
                    result = cursor.fetchall()
                conn.commit()
                if fetch:
                    return result
                return cursor.rowcount


# ============================================================================
# GRANULE STORE
# ============================================================================

_GRANULE_COLUMNS = (
    "granule_id", "collection_id", "status", "published", "cmr_link",
    "execution", "pdr_name", "provider", "files", "error",
    "created_at", "updated_at",
    "processing_start_date_time", "processing_end_date_time",
    "time_to_preprocess", "time_to_archive",
)


class PostgreSQLGranuleStore(PostgreSQLRepository, IGranuleStore):
    """PostgreSQL implementation of the granule record store."""

    def __init__(self, config: DatabaseConfig):
        super().__init__(config, config.granules_table)

    @staticmethod
    def _params(granule: GranuleRecord) -> Tuple:
        return (
            granule.granule_id,
            granule.collection_id,
            granule.status.value,
            granule.published,
            granule.cmr_link,
            granule.execution,
            granule.pdr_name,
            granule.provider,
            _jsonb([f.model_dump(mode="json", by_alias=True, exclude_none=True) for f in granule.files]),
            _jsonb(granule.error),
            granule.created_at,
            granule.updated_at,
            granule.processing_start_date_time,
            granule.processing_end_date_time,
            granule.time_to_preprocess,
            granule.time_to_archive,
        )

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> GranuleRecord:
        data = dict(row)
        for column in ("files", "error"):
            if isinstance(data.get(column), str):
                data[column] = json.loads(data[column])
        data["files"] = data.get("files") or []
        return GranuleRecord.model_validate(data)

    def _column_list(self) -> sql.Composed:
        return sql.SQL(", ").join(sql.Identifier(c) for c in _GRANULE_COLUMNS)

    def get(self, granule_id: str) -> Optional[GranuleRecord]:
        with self._error_context("granule retrieval", granule_id):
            query = sql.SQL("SELECT {} FROM {} WHERE granule_id = %s").format(
                self._column_list(), self._table()
            )
            row = self._execute_query(query, (granule_id,), fetch='one')
            if not row:
                self.logger.debug(f"Granule not found: {granule_id}")
                return None
            return self._to_record(row)

    def create(self, granule: GranuleRecord) -> bool:
        with self._error_context("granule creation", granule.granule_id):
            query = sql.SQL(
                "INSERT INTO {} ({}) VALUES ({}) ON CONFLICT (granule_id) DO NOTHING"
            ).format(
                self._table(),
                self._column_list(),
                sql.SQL(", ").join(sql.Placeholder() * len(_GRANULE_COLUMNS))
            )
            created = self._execute_query(query, self._params(granule)) > 0
            if created:
                self.logger.info(f"Granule created: {granule.granule_id} status={granule.status.value}")
            else:
                self.logger.info(f"Granule already exists: {granule.granule_id} (idempotent)")
            return created

    def save(self, granule: GranuleRecord) -> GranuleRecord:
        with self._error_context("granule save", granule.granule_id):
            granule.touch()
            updates = sql.SQL(", ").join(
                sql.SQL("{} = EXCLUDED.{}").format(sql.Identifier(c), sql.Identifier(c))
                for c in _GRANULE_COLUMNS if c not in ("granule_id", "created_at")
            )
            query = sql.SQL(
                "INSERT INTO {} ({}) VALUES ({}) ON CONFLICT (granule_id) DO UPDATE SET {}"
            ).format(
                self._table(),
                self._column_list(),
                sql.SQL(", ").join(sql.Placeholder() * len(_GRANULE_COLUMNS)),
                updates
            )
            self._execute_query(query, self._params(granule))
            self.logger.debug(f"Granule saved: {granule.granule_id}")
            return granule

    def update_status(
        self,
        granule_id: str,
        status: GranuleStatus,
        error: Optional[Dict] = None,
        execution: Optional[str] = None
    ) -> bool:
        with self._error_context("granule status update", granule_id):
            query = sql.SQL("""
                UPDATE {}
                SET status = %s,
                    error = %s,
                    execution = COALESCE(%s, execution),
                    updated_at = %s
                WHERE granule_id = %s
            """).format(self._table())
            rowcount = self._execute_query(
                query,
                (status.value, _jsonb(error), execution, datetime.now(timezone.utc), granule_id)
            )
            return rowcount > 0

    def delete(self, granule_id: str) -> bool:
        with self._error_context("granule deletion", granule_id):
            query = sql.SQL("DELETE FROM {} WHERE granule_id = %s").format(self._table())
            return self._execute_query(query, (granule_id,)) > 0

    def list_granules(
        self,
        status: Optional[GranuleStatus] = None,
        collection_id: Optional[str] = None,
        published: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[GranuleRecord], int]:
        with self._error_context("granule listing"):
            conditions = []
            params: List[Any] = []
            if status is not None:
                conditions.append(sql.SQL("status = %s"))
                params.append(status.value)
            if collection_id is not None:
                conditions.append(sql.SQL("collection_id = %s"))
                params.append(collection_id)
            if published is not None:
                conditions.append(sql.SQL("published = %s"))
                params.append(published)
            where = (
                sql.SQL("WHERE ") + sql.SQL(" AND ").join(conditions)
                if conditions else sql.SQL("")
            )

            count_query = sql.SQL("SELECT COUNT(*) AS count FROM {} {}").format(self._table(), where)
            count_row = self._execute_query(count_query, tuple(params), fetch='one')

            page_query = sql.SQL(
                "SELECT {} FROM {} {} ORDER BY updated_at DESC, granule_id LIMIT %s OFFSET %s"
            ).format(self._column_list(), self._table(), where)
            rows = self._execute_query(page_query, tuple(params) + (limit, offset), fetch='all')

            return [self._to_record(r) for r in rows or []], (count_row['count'] if count_row else 0)

    def count_by_status(self, pdr_name: str) -> Dict[GranuleStatus, int]:
        with self._error_context("granule status tally", pdr_name):
            query = sql.SQL(
                "SELECT status, COUNT(*) AS count FROM {} WHERE pdr_name = %s GROUP BY status"
            ).format(self._table())
            rows = self._execute_query(query, (pdr_name,), fetch='all')
            return {GranuleStatus(r['status']): r['count'] for r in rows or []}

    def list_files_at_location(self, bucket: str, key_prefix: str = "") -> List[Tuple[str, GranuleFile]]:
        with self._error_context("granule file lookup", f"{bucket}/{key_prefix}"):
            query = sql.SQL("""
                SELECT g.granule_id, f.value AS file
                FROM {} g, jsonb_array_elements(g.files) f
                WHERE f.value->>'bucket' = %s
                  AND f.value->>'key' LIKE %s
            """).format(self._table())
            rows = self._execute_query(query, (bucket, _like_prefix(key_prefix)), fetch='all')
            return [
                (r['granule_id'], GranuleFile.model_validate(
                    json.loads(r['file']) if isinstance(r['file'], str) else r['file']
                ))
                for r in rows or []
            ]


# ============================================================================
# COLLECTION STORE
# ============================================================================

class PostgreSQLCollectionStore(PostgreSQLRepository, ICollectionStore):
    """PostgreSQL implementation of the collection record store."""

    def __init__(self, config: DatabaseConfig):
        super().__init__(config, config.collections_table)

    def get(self, name: str, version: str) -> Optional[CollectionRecord]:
        with self._error_context("collection retrieval", f"{name}___{version}"):
            query = sql.SQL("""
                SELECT name, version, duplicate_handling, url_path, files
                FROM {}
                WHERE name = %s AND version = %s
            """).format(self._table())
            row = self._execute_query(query, (name, version), fetch='one')
            if not row:
                return None
            data = dict(row)
            if isinstance(data.get("files"), str):
                data["files"] = json.loads(data["files"])
            data["files"] = data.get("files") or []
            return CollectionRecord.model_validate(data)

    def save(self, collection: CollectionRecord) -> CollectionRecord:
        with self._error_context("collection save", collection.collection_id):
            query = sql.SQL("""
                INSERT INTO {} (name, version, duplicate_handling, url_path, files)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (name, version) DO UPDATE SET
                    duplicate_handling = EXCLUDED.duplicate_handling,
                    url_path = EXCLUDED.url_path,
                    files = EXCLUDED.files
            """).format(self._table())
            self._execute_query(query, (
                collection.name,
                collection.version,
                collection.duplicate_handling.value,
                collection.url_path,
                _jsonb(collection.files),
            ))
            return collection


# ============================================================================
# EXECUTION STORE
# ============================================================================

class PostgreSQLExecutionStore(PostgreSQLRepository, IExecutionStore):
    """PostgreSQL implementation of the workflow execution store."""

    def __init__(self, config: DatabaseConfig):
        super().__init__(config, config.executions_table)

    def get(self, arn: str) -> Optional[ExecutionRecord]:
        with self._error_context("execution retrieval", arn):
            query = sql.SQL("""
                SELECT arn, name, workflow_name, status, parent_arn, collection_id,
                       error, original_payload, final_payload, created_at, updated_at
                FROM {}
                WHERE arn = %s
            """).format(self._table())
            row = self._execute_query(query, (arn,), fetch='one')
            if not row:
                return None
            data = dict(row)
            for column in ("error", "original_payload", "final_payload"):
                if isinstance(data.get(column), str):
                    data[column] = json.loads(data[column])
            return ExecutionRecord.model_validate(data)

    def save(self, execution: ExecutionRecord) -> ExecutionRecord:
        with self._error_context("execution save", execution.arn):
            execution.updated_at = datetime.now(timezone.utc)
            query = sql.SQL("""
                INSERT INTO {} (
                    arn, name, workflow_name, status, parent_arn, collection_id,
                    error, original_payload, final_payload, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (arn) DO UPDATE SET
                    name = COALESCE(EXCLUDED.name, {table}.name),
                    workflow_name = COALESCE(EXCLUDED.workflow_name, {table}.workflow_name),
                    status = EXCLUDED.status,
                    parent_arn = COALESCE(EXCLUDED.parent_arn, {table}.parent_arn),
                    collection_id = COALESCE(EXCLUDED.collection_id, {table}.collection_id),
                    error = EXCLUDED.error,
                    original_payload = COALESCE(EXCLUDED.original_payload, {table}.original_payload),
                    final_payload = COALESCE(EXCLUDED.final_payload, {table}.final_payload),
                    updated_at = EXCLUDED.updated_at
            """).format(self._table(), table=sql.Identifier(self.table_name))
            self._execute_query(query, (
                execution.arn,
                execution.name,
                execution.workflow_name,
                execution.status.value,
                execution.parent_arn,
                execution.collection_id,
                _jsonb(execution.error),
                _jsonb(execution.original_payload),
                _jsonb(execution.final_payload),
                execution.created_at,
                execution.updated_at,
            ))
            self.logger.debug(f"Execution saved: {execution.arn} status={execution.status.value}")
            return execution


# ============================================================================
# PDR STORE
# ============================================================================

class PostgreSQLPdrStore(PostgreSQLRepository, IPdrStore):
    """PostgreSQL implementation of the PDR record store."""

    def __init__(self, config: DatabaseConfig):
        super().__init__(config, config.pdrs_table)

    def get(self, pdr_name: str) -> Optional[PdrRecord]:
        with self._error_context("pdr retrieval", pdr_name):
            query = sql.SQL("""
                SELECT pdr_name, collection_id, provider, execution, status, stats,
                       created_at, updated_at
                FROM {}
                WHERE pdr_name = %s
            """).format(self._table())
            row = self._execute_query(query, (pdr_name,), fetch='one')
            if not row:
                return None
            data = dict(row)
            if isinstance(data.get("stats"), str):
                data["stats"] = json.loads(data["stats"])
            data["stats"] = {
                k: v for k, v in (data.get("stats") or {}).items()
                if k in ("running", "completed", "failed")
            }
            return PdrRecord.model_validate(data)

    def save(self, pdr: PdrRecord) -> PdrRecord:
        with self._error_context("pdr save", pdr.pdr_name):
            pdr.updated_at = datetime.now(timezone.utc)
            query = sql.SQL("""
                INSERT INTO {} (
                    pdr_name, collection_id, provider, execution, status, stats,
                    progress, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (pdr_name) DO UPDATE SET
                    collection_id = COALESCE(EXCLUDED.collection_id, {table}.collection_id),
                    provider = COALESCE(EXCLUDED.provider, {table}.provider),
                    execution = COALESCE(EXCLUDED.execution, {table}.execution),
                    status = EXCLUDED.status,
                    stats = EXCLUDED.stats,
                    progress = EXCLUDED.progress,
                    updated_at = EXCLUDED.updated_at
            """).format(self._table(), table=sql.Identifier(self.table_name))
            self._execute_query(query, (
                pdr.pdr_name,
                pdr.collection_id,
                pdr.provider,
                pdr.execution,
                pdr.status.value,
                _jsonb(pdr.stats.model_dump()),
                pdr.progress,
                pdr.created_at,
                pdr.updated_at,
            ))
            self.logger.info(
                f"PDR saved: {pdr.pdr_name} status={pdr.status.value} progress={pdr.progress}"
            )
            return pdr
