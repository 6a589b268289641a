"""Vector collections stored in PostgreSQL with pgvector."""

from contextlib import contextmanager
from typing import Iterator, List, Optional
import hashlib
import json
import re

import psycopg
from psycopg_pool import ConnectionPool

from academio_rag.errors import (
    CollectionNotFoundError,
    VectorStoreError,
    VectorStoreUnavailable,
)
from academio_rag.logging_utils import get_logger
from academio_rag.storage.base import (
    BaseCollection,
    BaseVectorStore,
    GetResponse,
    QueryResponse,
)

logger = get_logger(__name__)

# Postgres truncates identifiers longer than 63 characters:
# "rag_" + prefix + "_" + 8 hex digits.
_MAX_PREFIX = 50


def collection_table_name(name: str) -> str:
    """Map a collection name to its table name.

    The sanitised prefix keeps the table recognisable; the name digest keeps
    distinct collection names on distinct tables.
    """
    safe = re.sub(r"[^a-z0-9_]", "_", name.lower())[:_MAX_PREFIX]
    digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:8]
    return f"rag_{safe}_{digest}"


def _vector_literal(embedding: Optional[List[float]]) -> Optional[str]:
    if embedding is None:
        return None
    return "[" + ",".join(str(float(x)) for x in embedding) + "]"


class PgVectorStore(BaseVectorStore):
    """Vector store adapter over PostgreSQL + pgvector.

    Each collection is a table with a nullable ``vector`` column, so entries
    whose embedding failed are kept (text and metadata only) and skipped by
    similarity queries. Collections are listed in a registry table that also
    holds their descriptive metadata.
    """

    REGISTRY_TABLE = "rag_collections"

    def __init__(
        self,
        database_url: str,
        timeout: float = 30.0,
        max_pool_size: int = 4,
    ):
        """Initialize PgVectorStore.

        Args:
            database_url: PostgreSQL connection URL
            timeout: Seconds allowed for connecting, checking out a pooled
                connection and running a single statement
            max_pool_size: Maximum pooled connections
        """
        self._database_url = database_url
        self._timeout = timeout
        self._max_pool_size = max_pool_size
        self._pool: ConnectionPool | None = None

    def initialize(self) -> None:
        """Open the connection pool and create the registry table.

        Raises:
            VectorStoreUnavailable: If the database cannot be reached
        """
        if self._pool is not None:
            return

        pool = ConnectionPool(
            conninfo=self._database_url,
            min_size=1,
            max_size=self._max_pool_size,
            open=False,
            timeout=self._timeout,
            kwargs={
                "autocommit": True,
                "connect_timeout": max(1, int(self._timeout)),
                "options": f"-c statement_timeout={int(self._timeout * 1000)}",
            },
        )
        try:
            pool.open(wait=True, timeout=self._timeout)
            with pool.connection() as conn:
                conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
                conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {self.REGISTRY_TABLE} (
                        name TEXT PRIMARY KEY,
                        table_name TEXT NOT NULL,
                        metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)
        except psycopg.Error as e:
            pool.close()
            raise VectorStoreUnavailable(f"Vector store not reachable: {e}") from e

        self._pool = pool
        logger.info("Vector store connected")

    def close(self) -> None:
        """Close connections."""
        if self._pool:
            self._pool.close()
            self._pool = None

    @contextmanager
    def _connection(self) -> Iterator[psycopg.Connection]:
        if not self._pool:
            raise RuntimeError("VectorStore not initialized")
        try:
            with self._pool.connection() as conn:
                yield conn
        except psycopg.OperationalError as e:
            raise VectorStoreUnavailable(f"Vector store not reachable: {e}") from e
        except psycopg.Error as e:
            raise VectorStoreError(f"Vector store operation failed: {e}") from e

    def ping(self) -> None:
        """Run a trivial statement to prove the store answers."""
        if not self._pool:
            self.initialize()
        with self._connection() as conn:
            conn.execute("SELECT 1")

    def get_or_create_collection(
        self, name: str, metadata: Optional[dict] = None
    ) -> "PgCollection":
        """Return the collection, registering and creating its table if needed.

        Metadata is only written on creation; an existing collection keeps the
        metadata it was created with.
        """
        table_name = collection_table_name(name)
        with self._connection() as conn:
            conn.execute(
                f"""
                INSERT INTO {self.REGISTRY_TABLE} (name, table_name, metadata)
                VALUES (%s, %s, %s::jsonb)
                ON CONFLICT (name) DO NOTHING
                """,
                (name, table_name, json.dumps(metadata or {}, ensure_ascii=False)),
            )
            self._create_table(conn, table_name)
            row = conn.execute(
                f"SELECT metadata FROM {self.REGISTRY_TABLE} WHERE name = %s",
                (name,),
            ).fetchone()

        stored = row[0] if row and row[0] is not None else {}
        return PgCollection(self, name, table_name, stored)

    def get_collection(self, name: str) -> "PgCollection":
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT table_name, metadata FROM {self.REGISTRY_TABLE} WHERE name = %s",
                (name,),
            ).fetchone()
        if not row:
            raise CollectionNotFoundError(f'Collection "{name}" not found')
        return PgCollection(self, name, row[0], row[1] or {})

    def delete_collection(self, name: str) -> bool:
        """Drop the collection table and its registry entry."""
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT table_name FROM {self.REGISTRY_TABLE} WHERE name = %s",
                (name,),
            ).fetchone()
            if not row:
                return False
            with conn.transaction():
                conn.execute(f"DROP TABLE IF EXISTS {row[0]} CASCADE")
                conn.execute(
                    f"DELETE FROM {self.REGISTRY_TABLE} WHERE name = %s", (name,)
                )
        logger.info('Deleted collection "%s"', name)
        return True

    def list_collections(self) -> List[str]:
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT name FROM {self.REGISTRY_TABLE} ORDER BY name"
            ).fetchall()
        return [row[0] for row in rows]

    def _create_table(self, conn, table_name: str) -> None:
        """Create a collection table if it doesn't exist."""
        # Untyped vector column: the dimension is fixed by the embedding model.
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                id TEXT PRIMARY KEY,
                document TEXT NOT NULL,
                metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                embedding vector,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        conn.execute(f"""
            CREATE INDEX IF NOT EXISTS {table_name[:_MAX_IDENTIFIER - 13]}_metadata_idx
            ON {table_name} USING gin (metadata)
        """)


class PgCollection(BaseCollection):
    """A collection backed by one pgvector table."""

    def __init__(
        self,
        store: PgVectorStore,
        name: str,
        table_name: str,
        metadata: Optional[dict] = None,
    ):
        super().__init__(name, metadata)
        self._store = store
        self.table_name = table_name

    def upsert(
        self,
        ids: List[str],
        embeddings: List[Optional[List[float]]],
        documents: List[str],
        metadatas: List[dict],
    ) -> None:
        """Insert or replace entries in one transaction."""
        if not (len(ids) == len(embeddings) == len(documents) == len(metadatas)):
            raise ValueError("ids, embeddings, documents and metadatas must have equal length")
        if not ids:
            return

        rows = [
            (
                chunk_id,
                document,
                json.dumps(metadata or {}, ensure_ascii=False),
                _vector_literal(embedding),
            )
            for chunk_id, embedding, document, metadata in zip(
                ids, embeddings, documents, metadatas
            )
        ]
        sql = f"""
            INSERT INTO {self.table_name} (id, document, metadata, embedding, updated_at)
            VALUES (%s, %s, %s::jsonb, %s::vector, NOW())
            ON CONFLICT (id) DO UPDATE SET
                document = EXCLUDED.document,
                metadata = EXCLUDED.metadata,
                embedding = EXCLUDED.embedding,
                updated_at = NOW()
        """
        with self._store._connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.executemany(sql, rows)

    def count(self) -> int:
        with self._store._connection() as conn:
            row = conn.execute(f"SELECT count(*) FROM {self.table_name}").fetchone()
        return int(row[0]) if row else 0

    def get(self, ids: Optional[List[str]] = None) -> GetResponse:
        sql = f"""
            SELECT id, document, metadata, embedding IS NOT NULL
            FROM {self.table_name}
        """
        params: list = []
        if ids is not None:
            sql += " WHERE id = ANY(%s)"
            params.append(list(ids))
        sql += " ORDER BY id"

        with self._store._connection() as conn:
            rows = conn.execute(sql, params).fetchall()

        return GetResponse(
            ids=[row[0] for row in rows],
            documents=[row[1] for row in rows],
            metadatas=[row[2] or {} for row in rows],
            has_embedding=[bool(row[3]) for row in rows],
        )

    def query(
        self,
        query_embedding: List[float],
        top_k: int = 5,
        where: Optional[dict] = None,
    ) -> QueryResponse:
        """Nearest entries by squared L2 distance, ignoring entries without a vector."""
        sql = f"""
            SELECT id, document, metadata, (embedding <-> %s::vector) ^ 2 AS distance
            FROM {self.table_name}
            WHERE embedding IS NOT NULL
        """
        params: list = [_vector_literal(query_embedding)]
        if where:
            sql += " AND metadata @> %s::jsonb"
            params.append(json.dumps(where, ensure_ascii=False))
        sql += " ORDER BY distance LIMIT %s"
        params.append(int(top_k))

        with self._store._connection() as conn:
            rows = conn.execute(sql, params).fetchall()

        return QueryResponse(
            ids=[row[0] for row in rows],
            documents=[row[1] for row in rows],
            metadatas=[row[2] or {} for row in rows],
            distances=[float(row[3]) for row in rows],
        )
