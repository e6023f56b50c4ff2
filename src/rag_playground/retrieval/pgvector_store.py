"""PostgreSQL + pgvector implementation of the chunk-store abstraction.

Design:
- One table of ``(id, doc_title, chunk_index, content, embedding)`` rows
- HNSW index with ``vector_cosine_ops`` so the index and the ``<=>``
  operator agree on cosine distance
- Similarity is ``1 - (embedding <=> query)``, i.e. cosine similarity
- Every batch insert runs inside one transaction on one pooled connection
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

import numpy as np
import psycopg
from pgvector.psycopg import register_vector_async
from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from rag_playground.config import settings
from rag_playground.errors import ConfigurationError, StorageError
from rag_playground.retrieval.base import ChunkRow, ChunkStore
from rag_playground.retrieval.models import Chunk, ScoredChunk

logger = logging.getLogger(__name__)

_VECTOR_TYPE_RE = re.compile(r"^vector\((\d+)\)$")

# SQL templates
CREATE_CHUNKS_TABLE = """
    CREATE TABLE IF NOT EXISTS {table} (
        id BIGSERIAL PRIMARY KEY,
        doc_title TEXT NOT NULL,
        chunk_index INTEGER NOT NULL,
        content TEXT NOT NULL,
        embedding vector({dim}) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""

CREATE_HNSW_INDEX = """
    CREATE INDEX IF NOT EXISTS {index}
    ON {table} USING hnsw (embedding vector_cosine_ops)
    WITH (m = {m}, ef_construction = {ef_construction})
"""

EMBEDDING_COLUMN_TYPE = """
    SELECT format_type(atttypid, atttypmod)
    FROM pg_attribute
    WHERE attrelid = to_regclass(%s)
      AND attname = 'embedding'
      AND NOT attisdropped
"""

INSERT_CHUNK = """
    INSERT INTO {table} (doc_title, chunk_index, content, embedding)
    VALUES (%s, %s, %s, %s)
"""

SEARCH_CHUNKS = """
    SELECT id, doc_title, chunk_index, content, 1 - (embedding <=> %s) AS similarity
    FROM {table}
    ORDER BY embedding <=> %s
    LIMIT %s
"""

TRUNCATE_CHUNKS = "TRUNCATE {table} RESTART IDENTITY"


async def _configure_connection(conn: psycopg.AsyncConnection) -> None:
    await register_vector_async(conn)


class PgVectorChunkStore(ChunkStore):
    """pgvector-backed chunk store.

    Parameters
    ----------
    dimension:
        Declared size of the ``embedding`` column.
    database_url:
        PostgreSQL connection string.
    table:
        Table holding the chunks.
    min_size / max_size:
        Connection-pool bounds.
    pool:
        Optional pre-opened ``AsyncConnectionPool`` (for testing).  Its
        connections must already have the pgvector types registered.
    """

    def __init__(
        self,
        dimension: int = settings.embedding_dim,
        *,
        database_url: str = settings.database_url,
        table: str = settings.chunk_table,
        min_size: int = settings.db_pool_min_size,
        max_size: int = settings.db_pool_max_size,
        hnsw_m: int = 16,
        hnsw_ef_construction: int = 64,
        pool: AsyncConnectionPool | None = None,
    ) -> None:
        super().__init__(dimension)
        self._database_url = database_url
        self._table = table
        self._min_size = min_size
        self._max_size = max_size
        self._hnsw_m = hnsw_m
        self._hnsw_ef_construction = hnsw_ef_construction
        self._pool = pool

        ident = sql.Identifier(table)
        self._insert_sql = sql.SQL(INSERT_CHUNK).format(table=ident)
        self._search_sql = sql.SQL(SEARCH_CHUNKS).format(table=ident)
        self._truncate_sql = sql.SQL(TRUNCATE_CHUNKS).format(table=ident)

    # -- lifecycle ------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the extension, table and index if needed, then open the pool."""
        try:
            async with await psycopg.AsyncConnection.connect(
                self._database_url, autocommit=True
            ) as conn:
                await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
                await self._ensure_schema(conn)

            if self._pool is None:
                self._pool = AsyncConnectionPool(
                    self._database_url,
                    min_size=self._min_size,
                    max_size=self._max_size,
                    configure=_configure_connection,
                    open=False,
                )
                await self._pool.open(wait=True)
        except psycopg.Error as exc:
            logger.exception("Could not prepare table %s", self._table)
            raise StorageError(f"Could not prepare table {self._table!r}: {exc}") from exc
        logger.info("pgvector store ready (table=%s, dim=%d)", self._table, self.dimension)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def _ensure_schema(self, conn: psycopg.AsyncConnection) -> None:
        """Create the table with the configured dimension, or verify the
        dimension of an existing one."""
        cur = await conn.execute(EMBEDDING_COLUMN_TYPE, (self._table,))
        row = await cur.fetchone()

        if row is not None:
            match = _VECTOR_TYPE_RE.match(row[0] or "")
            existing_dim = int(match.group(1)) if match else None
            if existing_dim != self.dimension:
                raise ConfigurationError(
                    f"Dimension mismatch: table {self._table!r} stores {row[0]}, "
                    f"but EMBED_DIM is {self.dimension}. Clear and recreate the table "
                    "to change dimensions."
                )
            logger.debug("Using existing table %s (dim=%d)", self._table, existing_dim)
            return

        ident = sql.Identifier(self._table)
        await conn.execute(
            sql.SQL(CREATE_CHUNKS_TABLE).format(table=ident, dim=sql.Literal(self.dimension))
        )
        await conn.execute(
            sql.SQL(CREATE_HNSW_INDEX).format(
                index=sql.Identifier(f"{self._table}_embedding_hnsw_idx"),
                table=ident,
                m=sql.Literal(self._hnsw_m),
                ef_construction=sql.Literal(self._hnsw_ef_construction),
            )
        )
        logger.info("Created table %s (dim=%d)", self._table, self.dimension)

    def _require_pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            raise StorageError("Chunk store is not initialized.")
        return self._pool

    # -- ChunkStore overrides -------------------------------------------------

    async def insert_batch(self, document_title: str, rows: Sequence[ChunkRow]) -> int:
        params = []
        for index, (content, embedding) in enumerate(rows):
            vector = np.asarray(embedding, dtype=np.float32)
            if vector.shape != (self.dimension,):
                raise StorageError(
                    f"Chunk {index} of {document_title!r} has {vector.size} dimensions, "
                    f"expected {self.dimension}"
                )
            params.append((document_title, index, content, vector))
        if not params:
            return 0

        pool = self._require_pool()
        try:
            async with pool.connection() as conn:
                # Rolled back as a whole if any row fails.
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.executemany(self._insert_sql, params)
        except psycopg.Error as exc:
            logger.exception("Batch insert for %r rolled back", document_title)
            raise StorageError(f"Failed to store chunks for {document_title!r}: {exc}") from exc

        logger.info("Stored %d chunks for %r", len(params), document_title)
        return len(params)

    async def nearest_neighbors(self, query_vector: Sequence[float], k: int) -> list[ScoredChunk]:
        if k <= 0:
            return []
        query = np.asarray(query_vector, dtype=np.float32)
        pool = self._require_pool()
        try:
            async with pool.connection() as conn:
                cur = await conn.execute(self._search_sql, (query, query, k))
                rows = await cur.fetchall()
        except psycopg.Error as exc:
            logger.exception("Similarity search failed")
            raise StorageError(f"Similarity search failed: {exc}") from exc

        return [
            ScoredChunk(
                chunk=Chunk(
                    id=row[0],
                    document_title=row[1],
                    chunk_index=row[2],
                    content=row[3],
                ),
                similarity=float(row[4]) if row[4] is not None else 0.0,
            )
            for row in rows
        ]

    async def clear_all(self) -> None:
        pool = self._require_pool()
        try:
            async with pool.connection() as conn:
                await conn.execute(self._truncate_sql)
        except psycopg.Error as exc:
            logger.exception("Truncate of %s failed", self._table)
            raise StorageError(f"Failed to clear chunks: {exc}") from exc
        logger.info("Cleared table %s", self._table)

    async def health_check(self) -> bool:
        if self._pool is None:
            return False
        try:
            async with self._pool.connection() as conn:
                await conn.execute("SELECT 1")
            return True
        except psycopg.Error:
            logger.warning("pgvector health-check failed", exc_info=True)
            return False
