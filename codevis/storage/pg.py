from __future__ import annotations

import logging

import psycopg

from codevis.errors import RepositoryConflictError
from codevis.errors import RepositoryNotFoundError
from codevis.errors import StorageError
from codevis.storage.models import RepositoryRecord
from codevis.storage.models import new_repository_id

logger = logging.getLogger(__name__)


class RepositoryStorageClient:
    """Postgres 连接器。"""

    def __init__(self, dsn: str) -> None:
        self._dsn = dsn

    def connect(self) -> psycopg.Connection:
        return psycopg.connect(self._dsn)


def ensure_schema(client: RepositoryStorageClient) -> None:
    with client.connect() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS repositories (
                    id TEXT PRIMARY KEY,
                    uri TEXT NOT NULL UNIQUE,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
                )
                """
            )
        conn.commit()


def insert_repository(client: RepositoryStorageClient, uri: str) -> RepositoryRecord:
    if not uri:
        raise ValueError("uri must not be empty")
    with client.connect() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO repositories (id, uri) VALUES (%s, %s)
                ON CONFLICT (uri) DO NOTHING
                RETURNING id
                """,
                (new_repository_id(), uri),
            )
            row = cur.fetchone()
            if row is None:
                cur.execute("SELECT id FROM repositories WHERE uri = %s", (uri,))
                existing = cur.fetchone()
                if existing is None:
                    raise StorageError(f"Conflict on uri without existing row: {uri}")
                raise RepositoryConflictError(existing_id=existing[0])
        conn.commit()
    return RepositoryRecord(id=row[0], uri=uri)


def find_repository_by_id(client: RepositoryStorageClient, repo_id: str) -> RepositoryRecord:
    with client.connect() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT id, uri FROM repositories WHERE id = %s", (repo_id,))
            row = cur.fetchone()
    if row is None:
        raise RepositoryNotFoundError(f"Repository not found: {repo_id}")
    return RepositoryRecord(id=row[0], uri=row[1])


def list_repositories(client: RepositoryStorageClient) -> list[RepositoryRecord]:
    with client.connect() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT id, uri FROM repositories ORDER BY created_at, id")
            rows = cur.fetchall()
    return [RepositoryRecord(id=row[0], uri=row[1]) for row in rows]


class PostgresRepositoryStore:
    """`RepositoryStore` 的 Postgres 实现：把 psycopg 错误统一包装为 `StorageError`。"""

    def __init__(self, client: RepositoryStorageClient) -> None:
        self._client = client

    def insert(self, uri: str) -> RepositoryRecord:
        try:
            return insert_repository(self._client, uri=uri)
        except psycopg.Error as exc:
            logger.error(f"insert repository failed: uri={uri}: {exc}")
            raise StorageError(f"Could not insert repository: {uri}") from exc

    def find_by_id(self, repo_id: str) -> RepositoryRecord:
        try:
            return find_repository_by_id(self._client, repo_id=repo_id)
        except psycopg.Error as exc:
            logger.error(f"find repository failed: id={repo_id}: {exc}")
            raise StorageError(f"Could not look up repository: {repo_id}") from exc

    def list_all(self) -> list[RepositoryRecord]:
        try:
            return list_repositories(self._client)
        except psycopg.Error as exc:
            logger.error(f"list repositories failed: {exc}")
            raise StorageError("Could not list repositories") from exc
